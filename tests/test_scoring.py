from __future__ import annotations

import pytest

from photoguess.models.types import LatLng
from photoguess.scoring import (
    GuessScore,
    haversine_km,
    location_score,
    owner_bonus,
    score_guess,
)

NEW_YORK = LatLng(lat=40.7128, lng=-74.0060)
LONDON = LatLng(lat=51.5074, lng=-0.1278)

# One degree of arc on a 6371 km sphere.
KM_PER_DEGREE = 111.19492664


# ── haversine_km ──────────────────────────────────────────────────────────────


def test_new_york_to_london():
    distance = haversine_km(NEW_YORK, LONDON)
    # Roughly 5570 km; allow for the spherical-Earth simplification.
    assert 5500 < distance < 5650


def test_distance_to_self_is_zero():
    assert haversine_km(NEW_YORK, NEW_YORK) == 0
    assert haversine_km(LatLng(lat=-89.9, lng=179.9), LatLng(lat=-89.9, lng=179.9)) == 0


def test_distance_is_symmetric():
    assert haversine_km(NEW_YORK, LONDON) == pytest.approx(haversine_km(LONDON, NEW_YORK))


def test_one_degree_along_meridian():
    assert haversine_km(LatLng(lat=0, lng=0), LatLng(lat=1, lng=0)) == pytest.approx(
        KM_PER_DEGREE, rel=1e-6
    )


def test_antipodes_are_half_circumference():
    distance = haversine_km(LatLng(lat=0, lng=0), LatLng(lat=0, lng=180))
    assert distance == pytest.approx(KM_PER_DEGREE * 180, rel=1e-6)


# ── location_score ────────────────────────────────────────────────────────────


def test_perfect_guess_scores_max():
    assert location_score(0) == 5000


@pytest.mark.parametrize(
    ('distance_km', 'expected'),
    [
        (1000, 4000),
        (2500, 2500),
        (4999.4, 1),
        (0.4, 5000),
    ],
)
def test_linear_decay(distance_km: float, expected: int):
    assert location_score(distance_km) == expected


@pytest.mark.parametrize('distance_km', [5000, 5000.01, 10000, 20015])
def test_no_points_at_or_beyond_threshold(distance_km: float):
    assert location_score(distance_km) == 0


def test_score_is_non_increasing():
    scores = [location_score(d / 4) for d in range(0, 24000)]
    assert all(a >= b for a, b in zip(scores, scores[1:]))


# ── score_guess ───────────────────────────────────────────────────────────────


def test_owner_bonus_is_disabled():
    assert owner_bonus('someone', 'someone') == 0


def test_score_guess_total_is_location_score():
    score = score_guess(LatLng(lat=10, lng=0), LatLng(lat=0, lng=0))
    assert isinstance(score, GuessScore)
    assert score.distance_km == pytest.approx(KM_PER_DEGREE * 10, rel=1e-6)
    assert score.location_score == 3888
    assert score.owner_bonus == 0
    assert score.total_score == score.location_score


def test_guess_near_london_on_new_york_photo_scores_nothing():
    score = score_guess(LatLng(lat=51.5, lng=-0.12), NEW_YORK)
    assert score.distance_km > 5000
    assert score.total_score == 0

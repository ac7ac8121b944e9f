"""Great-circle distance and the distance-to-points curve."""

from __future__ import annotations

import math
from dataclasses import dataclass

from photoguess.models.types import LatLng

EARTH_RADIUS_KM = 6371.0
MAX_SCORE = 5000
MAX_SCORING_DISTANCE_KM = 5000.0


@dataclass(frozen=True)
class GuessScore:
    """Everything stored on a guess at insert time."""

    distance_km: float
    location_score: int
    owner_bonus: int
    total_score: int


def haversine_km(a: LatLng, b: LatLng) -> float:
    """Distance between two points on Earth in kilometers (Haversine formula)."""
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def location_score(distance_km: float) -> int:
    """Linear decay from 5000 points at 0 km down to 0 points at 5000 km and beyond."""
    if distance_km >= MAX_SCORING_DISTANCE_KM:
        return 0
    return max(0, round(MAX_SCORE - distance_km))


def owner_bonus(guessed_owner_id: object = None, actual_owner_id: object = None) -> int:
    """Bonus for naming a photo's owner. Disabled; kept so the stored field stays stable."""
    return 0


def score_guess(guess: LatLng, actual: LatLng) -> GuessScore:
    distance = haversine_km(guess, actual)
    points = location_score(distance)
    bonus = owner_bonus()
    return GuessScore(
        distance_km=distance,
        location_score=points,
        owner_bonus=bonus,
        total_score=points + bonus,
    )

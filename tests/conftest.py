from __future__ import annotations

import os

os.environ.setdefault('PHOTOGUESS_DATABASE_URL', 'sqlite://')

import uuid  # noqa: E402
from collections.abc import Generator  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

import photoguess.models  # noqa: F401, E402  registers all tables on metadata
from photoguess.config import get_settings  # noqa: E402
from photoguess.db import get_session  # noqa: E402
from photoguess.main import app  # noqa: E402
from photoguess.models.room import Player, Room  # noqa: E402
from photoguess.models.submission import Guess, PhotoSubmission  # noqa: E402
from photoguess.models.types import RoomPhase  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def session() -> Generator[Session, None, None]:
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(session: Session) -> Generator[TestClient, None, None]:
    def _override_get_session() -> Generator[Session, None, None]:
        yield session

    app.dependency_overrides[get_session] = _override_get_session
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


# ── Factory functions ─────────────────────────────────────────────────────────


def create_room(session: Session, **overrides: Any) -> Room:
    defaults: dict[str, Any] = {
        'code': overrides.pop('code', uuid.uuid4().hex[:5].upper()),
        'phase': RoomPhase.lobby,
        'current_round_index': 0,
    }
    defaults.update(overrides)
    room = Room(**defaults)
    session.add(room)
    session.commit()
    session.refresh(room)
    return room


def create_player(session: Session, room_id: uuid.UUID, **overrides: Any) -> Player:
    defaults: dict[str, Any] = {
        'room_id': room_id,
        'display_name': 'Test Player',
        'avatar': None,
        'is_host': False,
    }
    defaults.update(overrides)
    player = Player(**defaults)
    session.add(player)
    session.commit()
    session.refresh(player)
    return player


def create_submission(
    session: Session, room_id: uuid.UUID, player_id: uuid.UUID, **overrides: Any
) -> PhotoSubmission:
    defaults: dict[str, Any] = {
        'room_id': room_id,
        'player_id': player_id,
        'image_url': 'https://photos.example/test.jpg',
        'lat': 0.0,
        'lng': 0.0,
    }
    defaults.update(overrides)
    submission = PhotoSubmission(**defaults)
    session.add(submission)
    session.commit()
    session.refresh(submission)
    return submission


def create_guess(
    session: Session, submission_id: int, player_id: uuid.UUID, **overrides: Any
) -> Guess:
    defaults: dict[str, Any] = {
        'submission_id': submission_id,
        'player_id': player_id,
        'lat': 0.0,
        'lng': 0.0,
        'distance_km': 0.0,
        'location_score': 5000,
        'total_score': 5000,
        'applied': False,
    }
    defaults.update(overrides)
    guess = Guess(**defaults)
    session.add(guess)
    session.commit()
    session.refresh(guess)
    return guess

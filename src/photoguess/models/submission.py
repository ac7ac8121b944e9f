import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from sqlmodel import Field, Relationship, SQLModel


class PhotoSubmission(SQLModel, table=True):
    """A geotagged photo. Creation order (``id``) is round order."""

    __tablename__ = 'photo_submission'  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    room_id: uuid.UUID = Field(foreign_key='room.id', index=True)
    player_id: uuid.UUID = Field(foreign_key='player.id')
    image_url: str
    lat: float
    lng: float
    location_label: str | None = None
    caption: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    revealed_at: datetime | None = None
    auto_reveal_claimed: bool = False

    room: 'Room' = Relationship(back_populates='submissions')  # noqa: F821
    player: 'Player' = Relationship()  # noqa: F821
    guesses: list['Guess'] = Relationship(back_populates='submission')


class Guess(SQLModel, table=True):
    """A player's locked-in guess. Scored once at insert; counts only once applied."""

    __tablename__ = 'guess'  # type: ignore[assignment]
    __table_args__ = (sa.UniqueConstraint('submission_id', 'player_id'),)

    id: int | None = Field(default=None, primary_key=True)
    submission_id: int = Field(foreign_key='photo_submission.id', index=True)
    player_id: uuid.UUID = Field(foreign_key='player.id')
    lat: float
    lng: float
    distance_km: float
    location_score: int
    owner_bonus: int = 0
    total_score: int
    applied: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    submission: 'PhotoSubmission' = Relationship(back_populates='guesses')
    player: 'Player' = Relationship()  # noqa: F821


# Avoid circular imports; resolved at runtime by SQLModel.
from photoguess.models.room import Player, Room  # noqa: E402

__all__ = ['PhotoSubmission', 'Guess', 'Player', 'Room']

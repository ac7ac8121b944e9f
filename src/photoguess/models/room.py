import uuid
from datetime import UTC, datetime

from sqlmodel import Field, Relationship, SQLModel

from photoguess.models.types import RoomPhase


class Room(SQLModel, table=True):
    __tablename__ = 'room'  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    code: str = Field(sa_column_kwargs={'unique': True, 'index': True})
    phase: RoomPhase = RoomPhase.lobby
    current_round_index: int = 0
    host_player_id: uuid.UUID | None = None
    revision: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    players: list['Player'] = Relationship(
        back_populates='room',
        sa_relationship_kwargs={'order_by': 'Player.joined_at'},
    )
    submissions: list['PhotoSubmission'] = Relationship(  # noqa: F821
        back_populates='room',
        sa_relationship_kwargs={'order_by': 'PhotoSubmission.id'},
    )


class Player(SQLModel, table=True):
    __tablename__ = 'player'  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    room_id: uuid.UUID = Field(foreign_key='room.id', index=True)
    display_name: str
    avatar: str | None = None
    is_host: bool = False
    total_score: int = 0  # cache of the ledger sum, see queries.compute_scores
    joined_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    room: 'Room' = Relationship(back_populates='players')


# Avoid circular imports; resolved at runtime by SQLModel.
from photoguess.models.submission import PhotoSubmission  # noqa: E402

__all__ = ['Room', 'Player', 'PhotoSubmission']

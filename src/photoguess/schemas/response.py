"""Response schemas for the PhotoGuess API."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from photoguess.models.types import RoomPhase

if TYPE_CHECKING:
    from photoguess.models.room import Player as PlayerModel
    from photoguess.models.room import Room as RoomModel
    from photoguess.models.submission import Guess as GuessModel
    from photoguess.models.submission import PhotoSubmission as SubmissionModel
    from photoguess.queries import LeaderboardEntry as LeaderboardEntryData


# ── Players ───────────────────────────────────────────────────────────────────


class PlayerResponse(BaseModel):
    """A player in a room."""

    id: uuid.UUID
    display_name: str
    avatar: str | None
    is_host: bool
    total_score: int = Field(description='Sum of applied guess scores this game.')

    @staticmethod
    def from_model(player: PlayerModel) -> PlayerResponse:
        return PlayerResponse(
            id=player.id,
            display_name=player.display_name,
            avatar=player.avatar,
            is_host=player.is_host,
            total_score=player.total_score,
        )


# ── Rooms ─────────────────────────────────────────────────────────────────────


class RoomResponse(BaseModel):
    """Full room state, including players."""

    id: uuid.UUID
    code: str = Field(description='5-character code for joining.')
    phase: RoomPhase
    current_round_index: int = Field(description='0-based round pointer; meaningful while playing.')
    host_player_id: uuid.UUID | None
    revision: int = Field(description='Bumped on every committed change to the room.')
    players: list[PlayerResponse]
    created_at: datetime

    @staticmethod
    def from_model(room: RoomModel, players: list[PlayerModel]) -> RoomResponse:
        return RoomResponse(
            id=room.id,
            code=room.code,
            phase=room.phase,
            current_round_index=room.current_round_index,
            host_player_id=room.host_player_id,
            revision=room.revision,
            players=[PlayerResponse.from_model(p) for p in players],
            created_at=room.created_at,
        )


class JoinRoomResponse(BaseModel):
    """Returned when a player joins: the room state and the caller's player ID."""

    room: RoomResponse
    player_id: uuid.UUID = Field(description='Send as X-Player-Id on subsequent requests.')


# ── Submissions ───────────────────────────────────────────────────────────────


class SubmissionResponse(BaseModel):
    """A photo submission. The true location is withheld until it is revealed."""

    id: int
    room_id: uuid.UUID
    player_id: uuid.UUID
    image_url: str
    caption: str | None
    lat: float | None
    lng: float | None
    location_label: str | None
    revealed: bool
    created_at: datetime

    @staticmethod
    def from_model(
        submission: SubmissionModel, *, hide_location: bool = False
    ) -> SubmissionResponse:
        assert submission.id is not None
        return SubmissionResponse(
            id=submission.id,
            room_id=submission.room_id,
            player_id=submission.player_id,
            image_url=submission.image_url,
            caption=submission.caption,
            lat=None if hide_location else submission.lat,
            lng=None if hide_location else submission.lng,
            location_label=None if hide_location else submission.location_label,
            revealed=submission.revealed_at is not None,
            created_at=submission.created_at,
        )


# ── Guesses ───────────────────────────────────────────────────────────────────


class GuessResponse(BaseModel):
    """A locked-in guess with the score computed when it was made.

    Until the submission is revealed, other players see only who guessed.
    """

    id: int
    submission_id: int
    player_id: uuid.UUID
    lat: float | None
    lng: float | None
    distance_km: float | None
    location_score: int | None = Field(
        description='5000 at 0 km, decaying linearly to 0 at 5000 km. Null while hidden.'
    )
    owner_bonus: int = Field(description='Always 0; kept for compatibility.')
    total_score: int | None
    applied: bool = Field(description='True once revealed; only applied guesses count.')
    created_at: datetime

    @staticmethod
    def from_model(guess: GuessModel, *, hidden: bool = False) -> GuessResponse:
        assert guess.id is not None
        return GuessResponse(
            id=guess.id,
            submission_id=guess.submission_id,
            player_id=guess.player_id,
            lat=None if hidden else guess.lat,
            lng=None if hidden else guess.lng,
            distance_km=None if hidden else guess.distance_km,
            location_score=None if hidden else guess.location_score,
            owner_bonus=guess.owner_bonus,
            total_score=None if hidden else guess.total_score,
            applied=guess.applied,
            created_at=guess.created_at,
        )


# ── Scores ────────────────────────────────────────────────────────────────────


class LeaderboardEntryResponse(BaseModel):
    player_id: uuid.UUID
    display_name: str
    score: int
    rank: int = Field(description='1-based; tied scores share a rank.')

    @staticmethod
    def from_entry(entry: LeaderboardEntryData) -> LeaderboardEntryResponse:
        return LeaderboardEntryResponse(
            player_id=entry.player.id,
            display_name=entry.player.display_name,
            score=entry.score,
            rank=entry.rank,
        )


class RevealResponse(BaseModel):
    """Result of revealing a submission."""

    submission: SubmissionResponse
    newly_applied: int = Field(description='Guesses applied by this call; 0 on a repeat reveal.')
    guesses: list[GuessResponse]
    leaderboard: list[LeaderboardEntryResponse]


# ── Sync ──────────────────────────────────────────────────────────────────────


class RoomSnapshot(BaseModel):
    """Everything a client needs to render a room.

    When ``changed`` is false the caller's copy at ``revision`` is current and
    the other fields are omitted.
    """

    revision: int
    changed: bool
    room: RoomResponse | None = None
    submissions: list[SubmissionResponse] | None = None
    current_guesses: list[GuessResponse] | None = Field(
        default=None, description='Guesses on the current round, while playing.'
    )
    leaderboard: list[LeaderboardEntryResponse] | None = None

"""Database reads over rooms and the submission/guess ledger.

Return SQLModel objects; callers handle transformation. Nothing here commits:
writes belong to ``photoguess.game`` so each transition is a single transaction.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import func
from sqlmodel import Session, col, select

from photoguess.codes import normalize_room_code
from photoguess.models.room import Player, Room
from photoguess.models.submission import Guess, PhotoSubmission

# ── Rooms ─────────────────────────────────────────────────────────────────────


def find_room_by_code(session: Session, code: str) -> Room | None:
    """Find a room by its code, always re-reading the row from storage."""
    return session.exec(
        select(Room)
        .where(Room.code == normalize_room_code(code))
        .execution_options(populate_existing=True)
    ).first()


def get_room(session: Session, room_id: uuid.UUID) -> Room | None:
    return session.get(Room, room_id)


# ── Players ───────────────────────────────────────────────────────────────────


def list_players(session: Session, room_id: uuid.UUID) -> list[Player]:
    """Return a room's players in join order."""
    return list(
        session.exec(
            select(Player)
            .where(Player.room_id == room_id)
            .order_by(col(Player.joined_at), col(Player.id))
        ).all()
    )


def get_player(session: Session, player_id: uuid.UUID) -> Player | None:
    return session.get(Player, player_id)


# ── Submissions ───────────────────────────────────────────────────────────────


def list_submissions(session: Session, room_id: uuid.UUID) -> list[PhotoSubmission]:
    """Return a room's submissions in round order."""
    return list(
        session.exec(
            select(PhotoSubmission)
            .where(PhotoSubmission.room_id == room_id)
            .order_by(col(PhotoSubmission.id))
        ).all()
    )


def count_submissions(session: Session, room_id: uuid.UUID) -> int:
    return session.exec(
        select(func.count()).select_from(PhotoSubmission).where(PhotoSubmission.room_id == room_id)
    ).one()


def count_player_submissions(session: Session, room_id: uuid.UUID, player_id: uuid.UUID) -> int:
    return session.exec(
        select(func.count())
        .select_from(PhotoSubmission)
        .where(PhotoSubmission.room_id == room_id, PhotoSubmission.player_id == player_id)
    ).one()


def get_submission(session: Session, submission_id: int) -> PhotoSubmission | None:
    return session.get(PhotoSubmission, submission_id)


def submission_at_round(
    session: Session, room_id: uuid.UUID, round_index: int
) -> PhotoSubmission | None:
    """Return the submission played in the given 0-based round, or None past the end."""
    if round_index < 0:
        return None
    return session.exec(
        select(PhotoSubmission)
        .where(PhotoSubmission.room_id == room_id)
        .order_by(col(PhotoSubmission.id))
        .offset(round_index)
        .limit(1)
    ).first()


def current_submission(session: Session, room: Room) -> PhotoSubmission | None:
    """The submission at the room's round pointer."""
    return submission_at_round(session, room.id, room.current_round_index)


# ── Guesses ───────────────────────────────────────────────────────────────────


def list_guesses(session: Session, submission_id: int) -> list[Guess]:
    """Return a submission's guesses, best score first."""
    return list(
        session.exec(
            select(Guess)
            .where(Guess.submission_id == submission_id)
            .order_by(col(Guess.total_score).desc(), col(Guess.id))
        ).all()
    )


def has_guessed(session: Session, submission_id: int, player_id: uuid.UUID) -> bool:
    return (
        session.exec(
            select(Guess.id).where(
                Guess.submission_id == submission_id,
                Guess.player_id == player_id,
            )
        ).first()
        is not None
    )


def guesser_ids(session: Session, submission_id: int) -> set[uuid.UUID]:
    """IDs of every player who has locked in a guess on the submission."""
    return set(session.exec(select(Guess.player_id).where(Guess.submission_id == submission_id)))


# ── Scores ────────────────────────────────────────────────────────────────────


def compute_scores(session: Session, room_id: uuid.UUID) -> dict[uuid.UUID, int]:
    """Sum ``location_score`` over each player's applied guesses in the room.

    This is the single source of truth for scores; ``Player.total_score`` is
    only a cache of it. Every player in the room is present, with 0 if they
    have no applied guesses.
    """
    scores = {p.id: 0 for p in list_players(session, room_id)}
    rows = session.exec(
        select(Guess.player_id, func.sum(Guess.location_score))
        .join(PhotoSubmission, col(Guess.submission_id) == col(PhotoSubmission.id))
        .where(PhotoSubmission.room_id == room_id, col(Guess.applied).is_(True))
        .group_by(col(Guess.player_id))
    ).all()
    for player_id, total in rows:
        scores[player_id] = int(total or 0)
    return scores


@dataclass
class LeaderboardEntry:
    """A player and their ledger-derived score."""

    player: Player
    score: int
    rank: int


def leaderboard(session: Session, room_id: uuid.UUID) -> list[LeaderboardEntry]:
    """Players by score, highest first; ties share a rank and keep join order."""
    players = list_players(session, room_id)
    scores = compute_scores(session, room_id)
    ordered = sorted(players, key=lambda p: -scores[p.id])

    entries: list[LeaderboardEntry] = []
    for position, player in enumerate(ordered, start=1):
        score = scores[player.id]
        rank = entries[-1].rank if entries and entries[-1].score == score else position
        entries.append(LeaderboardEntry(player=player, score=score, rank=rank))
    return entries

"""Room state machine: every write to a room's phase, round pointer, host, or scores.

Each operation checks its guards first, then applies its writes and commits them
as one transaction. Cross-client ordering is enforced at the storage boundary
with conditional updates (compare-and-set on the observed phase or round
pointer) and unique constraints. No in-process locks are used; any number of
server processes may call these functions concurrently.

Every committed transition bumps ``Room.revision`` so sync clients can tell
their cached snapshot is stale.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from photoguess import queries
from photoguess.codes import generate_room_code
from photoguess.config import get_settings
from photoguess.errors import (
    DuplicateGuess,
    DuplicateSubmission,
    InsufficientSubmissions,
    InvalidPhase,
    NotCurrentRound,
    NotFound,
    NotInRoom,
    RoomCodeExhausted,
    RoundRevealed,
    SelfGuess,
    StorageConflict,
)
from photoguess.models.room import Player, Room
from photoguess.models.submission import Guess, PhotoSubmission
from photoguess.models.types import LatLng, RoomPhase
from photoguess.scoring import score_guess

logger = logging.getLogger(__name__)


# ── Helpers ───────────────────────────────────────────────────────────────────


@contextmanager
def _transaction(session: Session) -> Generator[None, None, None]:
    """Commit on success; roll back everything on any error."""
    try:
        yield
        session.commit()
    except Exception:
        session.rollback()
        raise


def _require_room(session: Session, code: str) -> Room:
    room = queries.find_room_by_code(session, code)
    if not room:
        raise NotFound(f'Room {code!r} not found.')
    return room


def _require_player(session: Session, room: Room, player_id: uuid.UUID) -> Player:
    player = queries.get_player(session, player_id)
    if not player or player.room_id != room.id:
        raise NotInRoom('You are not a player in this room.')
    return player


def _require_submission(session: Session, room: Room, submission_id: int) -> PhotoSubmission:
    submission = queries.get_submission(session, submission_id)
    if not submission or submission.room_id != room.id:
        raise NotFound('Submission not found in this room.')
    return submission


def _require_phase(room: Room, *phases: RoomPhase) -> None:
    if room.phase not in phases:
        expected = ' or '.join(phases)
        raise InvalidPhase(f'Room {room.code} is in {room.phase}, expected {expected}.')


def _compare_and_set(session: Session, room_id: uuid.UUID, *conditions: Any, **values: Any) -> bool:
    """Update the room row only if ``conditions`` still hold; bump its revision.

    Returns False when another writer changed the row first.
    """
    stmt = (
        update(Room)
        .where(col(Room.id) == room_id, *conditions)
        .values(revision=col(Room.revision) + 1, **values)
        .execution_options(synchronize_session=False)
    )
    result = session.exec(stmt)  # type: ignore[call-overload]
    return result.rowcount == 1


def _still_unrevealed(session: Session, submission_id: int) -> bool:
    """Touch the submission row only while it is unrevealed; False once revealed."""
    stmt = (
        update(PhotoSubmission)
        .where(
            col(PhotoSubmission.id) == submission_id,
            col(PhotoSubmission.revealed_at).is_(None),
        )
        .values(revealed_at=None)
        .execution_options(synchronize_session=False)
    )
    result = session.exec(stmt)  # type: ignore[call-overload]
    return result.rowcount == 1


# ── Room lifecycle ────────────────────────────────────────────────────────────


def create_room(session: Session) -> Room:
    """Create an empty room in the lobby under a fresh, unique code."""
    attempts = get_settings().room_code_max_attempts
    for _ in range(attempts):
        room = Room(code=generate_room_code())
        session.add(room)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.info('Room code %s already taken, retrying', room.code)
            continue
        session.refresh(room)
        logger.info('Room %s created', room.code)
        return room

    msg = f'Failed to allocate a unique room code after {attempts} attempts.'
    raise RoomCodeExhausted(msg)


def join_room(session: Session, code: str, display_name: str, avatar: str | None = None) -> Player:
    """Add a player to a room. The first player to join becomes host."""
    room = _require_room(session, code)
    room_id = room.id

    player = Player(room_id=room_id, display_name=display_name.strip(), avatar=avatar)
    with _transaction(session):
        session.add(player)
        session.flush()
        # Insert-if-first: only one joiner can fill an empty host slot.
        if _compare_and_set(
            session, room_id, col(Room.host_player_id).is_(None), host_player_id=player.id
        ):
            player.is_host = True
            session.add(player)
        else:
            _compare_and_set(session, room_id)

    session.refresh(player)
    logger.info(
        'Player %s joined room %s%s', player.id, room.code, ' as host' if player.is_host else ''
    )
    return player


def _transition(
    session: Session, room: Room, source: RoomPhase, target: RoomPhase, **values: Any
) -> Room:
    """Move ``room`` from ``source`` to ``target`` if nobody else moved it first."""
    _require_phase(room, source)
    code = room.code
    with _transaction(session):
        if not _compare_and_set(
            session, room.id, col(Room.phase) == source, phase=target, **values
        ):
            raise InvalidPhase(f'Room {code} left {source} before the update applied.')
    session.refresh(room)
    logger.info('Room %s: %s -> %s', code, source, target)
    return room


def start_submission_phase(session: Session, code: str) -> Room:
    """Open the room for photo submissions (lobby -> submission)."""
    room = _require_room(session, code)
    return _transition(session, room, RoomPhase.lobby, RoomPhase.submission)


def start_playing(session: Session, code: str) -> Room:
    """Start guessing rounds (submission -> playing) once enough photos are in."""
    room = _require_room(session, code)
    _require_phase(room, RoomPhase.submission)

    minimum = get_settings().min_submissions_to_play
    count = queries.count_submissions(session, room.id)
    if count < minimum:
        raise InsufficientSubmissions(
            f'At least {minimum} submissions are required to start; room has {count}.'
        )
    return _transition(
        session, room, RoomPhase.submission, RoomPhase.playing, current_round_index=0
    )


def restart_game(session: Session, code: str) -> Room:
    """Start a new generation: clear photos, guesses and scores; back to submission.

    Allowed from any phase. The host keeps the host flag.
    """
    room = _require_room(session, code)
    room_id = room.id
    previous = room.phase

    room_submissions = select(PhotoSubmission.id).where(PhotoSubmission.room_id == room_id)
    with _transaction(session):
        session.exec(  # type: ignore[call-overload]
            delete(Guess)
            .where(col(Guess.submission_id).in_(room_submissions))
            .execution_options(synchronize_session=False)
        )
        session.exec(  # type: ignore[call-overload]
            delete(PhotoSubmission)
            .where(col(PhotoSubmission.room_id) == room_id)
            .execution_options(synchronize_session=False)
        )
        session.exec(  # type: ignore[call-overload]
            update(Player)
            .where(col(Player.room_id) == room_id)
            .values(total_score=0)
            .execution_options(synchronize_session=False)
        )
        _compare_and_set(session, room_id, phase=RoomPhase.submission, current_round_index=0)

    session.refresh(room)
    logger.info('Room %s restarted from %s', room.code, previous)
    return room


# ── Submissions ───────────────────────────────────────────────────────────────


def submit_photo(
    session: Session,
    code: str,
    player_id: uuid.UUID,
    *,
    image_url: str,
    lat: float,
    lng: float,
    caption: str | None = None,
    location_label: str | None = None,
) -> PhotoSubmission:
    """Record a player's geotagged photo during the submission phase."""
    room = _require_room(session, code)
    _require_phase(room, RoomPhase.submission)
    player = _require_player(session, room, player_id)

    if (
        not get_settings().allow_multiple_submissions
        and queries.count_player_submissions(session, room.id, player.id) > 0
    ):
        raise DuplicateSubmission('You have already submitted a photo this game.')

    location = LatLng(lat=lat, lng=lng)
    submission = PhotoSubmission(
        room_id=room.id,
        player_id=player.id,
        image_url=image_url,
        lat=location.lat,
        lng=location.lng,
        caption=caption or None,
        location_label=location_label or None,
    )
    code = room.code
    with _transaction(session):
        session.add(submission)
        # Fails if the host started playing while this photo was in flight.
        if not _compare_and_set(session, room.id, col(Room.phase) == RoomPhase.submission):
            raise InvalidPhase(f'Room {code} is no longer accepting submissions.')

    session.refresh(submission)
    logger.info('Room %s: submission %s from player %s', code, submission.id, player_id)
    return submission


# ── Rounds ────────────────────────────────────────────────────────────────────


def submit_guess(
    session: Session,
    code: str,
    submission_id: int,
    player_id: uuid.UUID,
    *,
    lat: float,
    lng: float,
) -> Guess:
    """Lock in a guess on the current round's photo, scored at insert time.

    Triggers the auto-reveal once every eligible player has guessed.
    """
    room = _require_room(session, code)
    _require_phase(room, RoomPhase.playing)
    submission = _require_submission(session, room, submission_id)
    player = _require_player(session, room, player_id)

    round_index = room.current_round_index
    current = queries.submission_at_round(session, room.id, round_index)
    if current is None or current.id != submission.id:
        raise NotCurrentRound(f'Submission {submission_id} is not the current round.')
    if submission.player_id == player.id:
        raise SelfGuess('You cannot guess on your own photo.')
    if queries.has_guessed(session, submission.id, player.id):
        raise DuplicateGuess('You have already guessed on this photo.')
    if submission.revealed_at is not None:
        raise RoundRevealed(f'Submission {submission_id} has already been revealed.')

    score = score_guess(LatLng(lat=lat, lng=lng), LatLng(lat=submission.lat, lng=submission.lng))
    guess = Guess(
        submission_id=submission.id,
        player_id=player.id,
        lat=lat,
        lng=lng,
        distance_km=score.distance_km,
        location_score=score.location_score,
        owner_bonus=score.owner_bonus,
        total_score=score.total_score,
    )

    try:
        with _transaction(session):
            session.add(guess)
            session.flush()
            if not _compare_and_set(
                session,
                room.id,
                col(Room.phase) == RoomPhase.playing,
                col(Room.current_round_index) == round_index,
            ):
                raise NotCurrentRound(f'Round {round_index} ended before the guess arrived.')
            if not _still_unrevealed(session, submission_id):
                raise RoundRevealed(f'Submission {submission_id} was revealed before the guess.')
    except IntegrityError as exc:
        # A concurrent request from the same player won the unique constraint.
        raise DuplicateGuess('You have already guessed on this photo.') from exc

    session.refresh(guess)
    logger.info(
        'Room %s round %d: player %s guessed %.1f km off (%d points)',
        code,
        round_index,
        player_id,
        guess.distance_km,
        guess.location_score,
    )
    maybe_auto_reveal(session, code, submission_id)
    return guess


def _apply_guesses(session: Session, room_id: uuid.UUID, submission: PhotoSubmission) -> int:
    """Mark unapplied guesses applied and refresh cached totals. Does not commit."""
    result = session.exec(  # type: ignore[call-overload]
        update(Guess)
        .where(col(Guess.submission_id) == submission.id, col(Guess.applied).is_(False))
        .values(applied=True)
        .execution_options(synchronize_session=False)
    )
    newly_applied = result.rowcount
    first_reveal = submission.revealed_at is None
    if first_reveal:
        submission.revealed_at = datetime.now(UTC)
        session.add(submission)

    if newly_applied or first_reveal:
        scores = queries.compute_scores(session, room_id)
        for player in queries.list_players(session, room_id):
            player.total_score = scores[player.id]
            session.add(player)
        _compare_and_set(session, room_id)
    return newly_applied


def reveal_results(session: Session, code: str, submission_id: int) -> int:
    """Apply every pending guess on a submission so it counts toward scores.

    Idempotent: revealing again with nothing new to apply changes nothing.
    Returns the number of guesses newly applied.
    """
    room = _require_room(session, code)
    submission = _require_submission(session, room, submission_id)
    room_id = room.id

    with _transaction(session):
        newly_applied = _apply_guesses(session, room_id, submission)

    if newly_applied:
        logger.info(
            'Room %s: revealed submission %s (%d guesses)', code, submission_id, newly_applied
        )
    return newly_applied


def maybe_auto_reveal(session: Session, code: str, submission_id: int) -> bool:
    """Reveal a submission once every player other than its owner has guessed.

    Single-flight: the first caller to claim the submission performs the reveal;
    concurrent callers see the claim taken and return False. The claim and the
    reveal commit together, so a failed reveal releases the claim.
    """
    room = _require_room(session, code)
    submission = _require_submission(session, room, submission_id)
    room_id = room.id

    players = queries.list_players(session, room_id)
    eligible = {p.id for p in players if p.id != submission.player_id}
    if not eligible or not eligible <= queries.guesser_ids(session, submission_id):
        return False

    with _transaction(session):
        claimed = session.exec(  # type: ignore[call-overload]
            update(PhotoSubmission)
            .where(
                col(PhotoSubmission.id) == submission_id,
                col(PhotoSubmission.auto_reveal_claimed).is_(False),
            )
            .values(auto_reveal_claimed=True)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not claimed:
            logger.debug('Room %s: auto-reveal of %s already claimed', code, submission_id)
            return False
        newly_applied = _apply_guesses(session, room_id, submission)

    logger.info(
        'Room %s: auto-revealed submission %s (%d guesses)', code, submission_id, newly_applied
    )
    return True


def advance_round(session: Session, code: str, expected_round: int | None = None) -> Room:
    """Move to the next round, or finish the game after the last one.

    The next pointer is computed from the stored pointer, never a client's copy,
    and written with a compare-and-set on the value just read. If the write
    loses a race the operation re-reads and retries once before raising
    ``StorageConflict``.

    When ``expected_round`` is given and the room has already moved past it,
    the call is a no-op: a concurrent advance for that round already won.
    """
    for attempt in range(2):
        room = _require_room(session, code)
        if expected_round is not None:
            already_past = room.phase == RoomPhase.finished or (
                room.phase == RoomPhase.playing and room.current_round_index > expected_round
            )
            if already_past:
                logger.info('Room %s: round %d already advanced', code, expected_round)
                return room
        _require_phase(room, RoomPhase.playing)

        round_index = room.current_round_index
        if expected_round is not None and round_index != expected_round:
            raise NotCurrentRound(f'Round {expected_round} is not the current round.')

        next_index = round_index + 1
        finished = next_index >= queries.count_submissions(session, room.id)
        values: dict[str, Any] = (
            {'phase': RoomPhase.finished} if finished else {'current_round_index': next_index}
        )

        with _transaction(session):
            won = _compare_and_set(
                session,
                room.id,
                col(Room.phase) == RoomPhase.playing,
                col(Room.current_round_index) == round_index,
                **values,
            )
        if won:
            session.refresh(room)
            if finished:
                logger.info('Room %s: finished after round %d', code, round_index)
            else:
                logger.info('Room %s: round %d -> %d', code, round_index, next_index)
            return room

        logger.info(
            'Room %s: advance from round %d lost a race (attempt %d)',
            code,
            round_index,
            attempt + 1,
        )

    raise StorageConflict(f'Room {code} changed concurrently; re-sync and try again.')

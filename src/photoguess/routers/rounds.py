"""Guessing, reveal and scoring endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from photoguess import game, queries
from photoguess.db import get_session
from photoguess.dependencies import get_optional_player_id, get_player_in_room, get_room
from photoguess.errors import NotFound
from photoguess.models.room import Player, Room
from photoguess.models.submission import Guess, PhotoSubmission
from photoguess.routers.submissions import location_hidden
from photoguess.schemas.request import SubmitGuessRequest
from photoguess.schemas.response import (
    GuessResponse,
    LeaderboardEntryResponse,
    RevealResponse,
    SubmissionResponse,
)

router = APIRouter(prefix='/rooms/{code}', tags=['rounds'])


def guess_hidden(
    room: Room, submission: PhotoSubmission, guess: Guess, viewer_id: uuid.UUID | None
) -> bool:
    """Another player's guess gives the location away until the submission is revealed."""
    if guess.player_id == viewer_id:
        return False
    return location_hidden(room, submission, viewer_id)


@router.post(
    '/submissions/{submission_id}/guesses',
    response_model=GuessResponse,
    status_code=201,
)
def submit_guess(
    submission_id: int,
    body: SubmitGuessRequest,
    room: Room = Depends(get_room),
    player: Player = Depends(get_player_in_room),
    session: Session = Depends(get_session),
) -> GuessResponse:
    """Lock in a guess for the current round. Auto-reveals once everyone has guessed."""
    guess = game.submit_guess(
        session, room.code, submission_id, player.id, lat=body.lat, lng=body.lng
    )
    return GuessResponse.from_model(guess)


@router.get('/submissions/{submission_id}/guesses', response_model=list[GuessResponse])
def list_submission_guesses(
    submission_id: int,
    room: Room = Depends(get_room),
    viewer_id: uuid.UUID | None = Depends(get_optional_player_id),
    session: Session = Depends(get_session),
) -> list[GuessResponse]:
    """Guesses on a submission, best score first. Others' guesses stay hidden until reveal."""
    submission = queries.get_submission(session, submission_id)
    if not submission or submission.room_id != room.id:
        raise NotFound('Submission not found in this room.')
    return [
        GuessResponse.from_model(g, hidden=guess_hidden(room, submission, g, viewer_id))
        for g in queries.list_guesses(session, submission_id)
    ]


@router.post('/submissions/{submission_id}/reveal', response_model=RevealResponse)
def reveal_results(
    submission_id: int,
    room: Room = Depends(get_room),
    session: Session = Depends(get_session),
) -> RevealResponse:
    """Apply pending guesses on a submission to the scores. Safe to repeat."""
    newly_applied = game.reveal_results(session, room.code, submission_id)
    submission = queries.get_submission(session, submission_id)
    assert submission is not None
    return RevealResponse(
        submission=SubmissionResponse.from_model(submission),
        newly_applied=newly_applied,
        guesses=[GuessResponse.from_model(g) for g in queries.list_guesses(session, submission_id)],
        leaderboard=[
            LeaderboardEntryResponse.from_entry(e) for e in queries.leaderboard(session, room.id)
        ],
    )


@router.get('/scores', response_model=list[LeaderboardEntryResponse])
def get_scores(
    room: Room = Depends(get_room),
    session: Session = Depends(get_session),
) -> list[LeaderboardEntryResponse]:
    """Leaderboard computed from applied guesses."""
    return [LeaderboardEntryResponse.from_entry(e) for e in queries.leaderboard(session, room.id)]

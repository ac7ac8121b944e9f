"""Photo submission endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from photoguess import game
from photoguess.db import get_session
from photoguess.dependencies import get_optional_player_id, get_player_in_room, get_room
from photoguess.models.room import Player, Room
from photoguess.models.submission import PhotoSubmission
from photoguess.models.types import RoomPhase
from photoguess.queries import list_submissions
from photoguess.schemas.request import SubmitPhotoRequest
from photoguess.schemas.response import SubmissionResponse

router = APIRouter(prefix='/rooms/{code}', tags=['submissions'])


def location_hidden(room: Room, submission: PhotoSubmission, viewer_id: uuid.UUID | None) -> bool:
    """True locations stay hidden from everyone but the owner until revealed."""
    if submission.player_id == viewer_id:
        return False
    return submission.revealed_at is None and room.phase != RoomPhase.finished


@router.post('/submissions', response_model=SubmissionResponse, status_code=201)
def submit_photo(
    body: SubmitPhotoRequest,
    room: Room = Depends(get_room),
    player: Player = Depends(get_player_in_room),
    session: Session = Depends(get_session),
) -> SubmissionResponse:
    """Submit an uploaded photo and where it was taken."""
    submission = game.submit_photo(
        session,
        room.code,
        player.id,
        image_url=body.image_url,
        lat=body.lat,
        lng=body.lng,
        caption=body.caption,
        location_label=body.location_label,
    )
    return SubmissionResponse.from_model(submission)


@router.get('/submissions', response_model=list[SubmissionResponse])
def list_room_submissions(
    room: Room = Depends(get_room),
    viewer_id: uuid.UUID | None = Depends(get_optional_player_id),
    session: Session = Depends(get_session),
) -> list[SubmissionResponse]:
    """Submissions in round order. Unrevealed locations are hidden from non-owners."""
    return [
        SubmissionResponse.from_model(s, hide_location=location_hidden(room, s, viewer_id))
        for s in list_submissions(session, room.id)
    ]

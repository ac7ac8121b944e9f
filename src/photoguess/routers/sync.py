"""Room snapshot endpoint for polling clients."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from photoguess import queries
from photoguess.db import get_session
from photoguess.dependencies import get_optional_player_id, get_room
from photoguess.models.room import Room
from photoguess.models.types import RoomPhase
from photoguess.routers.rooms import room_response
from photoguess.routers.rounds import guess_hidden
from photoguess.routers.submissions import location_hidden
from photoguess.schemas.response import (
    GuessResponse,
    LeaderboardEntryResponse,
    RoomSnapshot,
    SubmissionResponse,
)

router = APIRouter(prefix='/rooms/{code}', tags=['sync'])


@router.get('/state', response_model=RoomSnapshot)
def get_room_snapshot(
    since: int | None = Query(
        default=None, ge=0, description='Revision the caller already has; omit for a full snapshot.'
    ),
    room: Room = Depends(get_room),
    viewer_id: uuid.UUID | None = Depends(get_optional_player_id),
    session: Session = Depends(get_session),
) -> RoomSnapshot:
    """Full room snapshot, or just the revision if nothing changed since ``since``."""
    if since is not None and since == room.revision:
        return RoomSnapshot(revision=room.revision, changed=False)

    submissions = queries.list_submissions(session, room.id)
    current_guesses = None
    if room.phase == RoomPhase.playing:
        current = queries.current_submission(session, room)
        if current is not None:
            assert current.id is not None
            current_guesses = [
                GuessResponse.from_model(g, hidden=guess_hidden(room, current, g, viewer_id))
                for g in queries.list_guesses(session, current.id)
            ]

    return RoomSnapshot(
        revision=room.revision,
        changed=True,
        room=room_response(session, room),
        submissions=[
            SubmissionResponse.from_model(s, hide_location=location_hidden(room, s, viewer_id))
            for s in submissions
        ],
        current_guesses=current_guesses,
        leaderboard=[
            LeaderboardEntryResponse.from_entry(e) for e in queries.leaderboard(session, room.id)
        ],
    )

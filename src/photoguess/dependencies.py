"""Shared FastAPI dependencies for the PhotoGuess API."""

from __future__ import annotations

import uuid

from fastapi import Depends, Header, Path
from sqlmodel import Session

from photoguess.db import get_session
from photoguess.errors import NotFound, NotInRoom
from photoguess.models.room import Player, Room
from photoguess.queries import find_room_by_code, get_player


def get_player_id(x_player_id: uuid.UUID = Header()) -> uuid.UUID:
    """Extract and validate the X-Player-Id header."""
    return x_player_id


def get_optional_player_id(
    x_player_id: uuid.UUID | None = Header(default=None),
) -> uuid.UUID | None:
    return x_player_id


def get_room(
    code: str = Path(min_length=1, max_length=16),
    session: Session = Depends(get_session),
) -> Room:
    """Resolve the room code path param to a Room, or 404."""
    room = find_room_by_code(session, code)
    if not room:
        raise NotFound('Room not found.')
    return room


def get_player_in_room(
    room: Room = Depends(get_room),
    player_id: uuid.UUID = Depends(get_player_id),
    session: Session = Depends(get_session),
) -> Player:
    """Resolve the calling player via X-Player-Id + room, or 403."""
    player = get_player(session, player_id)
    if not player or player.room_id != room.id:
        raise NotInRoom('You are not a player in this room.')
    return player

"""Room lifecycle endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends
from sqlmodel import Session

from photoguess import game, queries
from photoguess.db import get_session
from photoguess.dependencies import get_room
from photoguess.models.room import Room
from photoguess.schemas.request import AdvanceRoundRequest, JoinRoomRequest
from photoguess.schemas.response import JoinRoomResponse, PlayerResponse, RoomResponse

router = APIRouter(prefix='/rooms', tags=['rooms'])


def room_response(session: Session, room: Room) -> RoomResponse:
    return RoomResponse.from_model(room, queries.list_players(session, room.id))


@router.post('', response_model=RoomResponse, status_code=201)
def create_room(session: Session = Depends(get_session)) -> RoomResponse:
    """Create an empty room in the lobby."""
    room = game.create_room(session)
    return room_response(session, room)


@router.get('/{code}', response_model=RoomResponse)
def get_room_state(
    room: Room = Depends(get_room),
    session: Session = Depends(get_session),
) -> RoomResponse:
    """Fetch current room state."""
    return room_response(session, room)


@router.post('/{code}/players', response_model=JoinRoomResponse, status_code=201)
def join_room(
    code: str,
    body: JoinRoomRequest,
    session: Session = Depends(get_session),
) -> JoinRoomResponse:
    """Join a room by its code. The first player to join becomes host."""
    player = game.join_room(session, code, body.display_name, avatar=body.avatar)
    room = queries.get_room(session, player.room_id)
    assert room is not None
    return JoinRoomResponse(room=room_response(session, room), player_id=player.id)


@router.get('/{code}/players', response_model=list[PlayerResponse])
def list_room_players(
    room: Room = Depends(get_room),
    session: Session = Depends(get_session),
) -> list[PlayerResponse]:
    """Players in join order."""
    return [PlayerResponse.from_model(p) for p in queries.list_players(session, room.id)]


@router.post('/{code}/submission-phase', response_model=RoomResponse)
def start_submission_phase(
    room: Room = Depends(get_room),
    session: Session = Depends(get_session),
) -> RoomResponse:
    """Transition the room from lobby to submission."""
    room = game.start_submission_phase(session, room.code)
    return room_response(session, room)


@router.post('/{code}/start', response_model=RoomResponse)
def start_playing(
    room: Room = Depends(get_room),
    session: Session = Depends(get_session),
) -> RoomResponse:
    """Transition the room from submission to playing. Needs at least two photos."""
    room = game.start_playing(session, room.code)
    return room_response(session, room)


@router.post('/{code}/advance', response_model=RoomResponse)
def advance_round(
    body: AdvanceRoundRequest | None = Body(default=None),
    room: Room = Depends(get_room),
    session: Session = Depends(get_session),
) -> RoomResponse:
    """Move to the next round; finishes the game after the last one."""
    expected_round = body.expected_round if body else None
    room = game.advance_round(session, room.code, expected_round=expected_round)
    return room_response(session, room)


@router.post('/{code}/restart', response_model=RoomResponse)
def restart_game(
    room: Room = Depends(get_room),
    session: Session = Depends(get_session),
) -> RoomResponse:
    """Clear photos, guesses and scores, and return to the submission phase."""
    room = game.restart_game(session, room.code)
    return room_response(session, room)

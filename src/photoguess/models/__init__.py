from __future__ import annotations

from photoguess.models.room import Player, Room
from photoguess.models.submission import Guess, PhotoSubmission
from photoguess.models.types import LatLng, RoomPhase

__all__ = [
    # Table models
    'Guess',
    'PhotoSubmission',
    'Player',
    'Room',
    # Enums
    'RoomPhase',
    # Value objects
    'LatLng',
]

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

# ── Enums ──────────────────────────────────────────────────────────────────────


class RoomPhase(StrEnum):
    lobby = 'lobby'
    submission = 'submission'
    playing = 'playing'
    finished = 'finished'


# ── Value objects ─────────────────────────────────────────────────────────────


class LatLng(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)

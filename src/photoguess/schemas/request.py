"""Request body schemas for the PhotoGuess API."""

from __future__ import annotations

from pydantic import BaseModel, Field

# ── Rooms ─────────────────────────────────────────────────────────────────────


class JoinRoomRequest(BaseModel):
    """Join a room by its code."""

    display_name: str = Field(
        min_length=1,
        max_length=40,
        pattern=r'\S',
        description='Name shown to other players.',
    )
    avatar: str | None = Field(default=None, max_length=16, description='Optional avatar marker.')


# ── Submissions ───────────────────────────────────────────────────────────────


class SubmitPhotoRequest(BaseModel):
    """Submit a previously uploaded photo with where it was taken."""

    image_url: str = Field(min_length=1, description='Opaque reference from the upload step.')
    lat: float = Field(ge=-90, le=90, description='True latitude of the photo.')
    lng: float = Field(ge=-180, le=180, description='True longitude of the photo.')
    caption: str | None = Field(default=None, max_length=280)
    location_label: str | None = Field(
        default=None, max_length=120, description='Human-readable place name, e.g. "Lisbon".'
    )


# ── Rounds ────────────────────────────────────────────────────────────────────


class SubmitGuessRequest(BaseModel):
    """Lock in a guess for the current round's photo."""

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class AdvanceRoundRequest(BaseModel):
    """Advance past a round. ``expected_round`` makes duplicate advances no-ops."""

    expected_round: int | None = Field(
        default=None,
        ge=0,
        description='The round the caller believes is current. Omit to advance unconditionally.',
    )

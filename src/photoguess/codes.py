"""Human-shareable room codes."""

from __future__ import annotations

import random

# Uppercase letters and digits without the easily confused 0, O, 1 and I.
ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
ROOM_CODE_LENGTH = 5


def generate_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    """Return a random room code. Uniqueness is enforced by the caller, not here."""
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))


def normalize_room_code(code: str) -> str:
    return code.strip().upper()

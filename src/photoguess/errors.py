"""Game errors raised by the state machine and rendered by the API error handler.

Every error carries a stable ``code`` for clients and the HTTP status it maps to.
Guard violations are raised before any write; callers must re-sync before retrying.
"""

from __future__ import annotations


class GameError(Exception):
    """Base class for every error the game core reports to callers."""

    code = 'game_error'
    http_status = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict[str, str]:
        return {'detail': self.message, 'code': self.code}


class NotFound(GameError):
    code = 'not_found'
    http_status = 404


class NotInRoom(GameError):
    code = 'not_in_room'
    http_status = 403


class InvalidPhase(GameError):
    code = 'invalid_phase'
    http_status = 409


class NotCurrentRound(InvalidPhase):
    code = 'not_current_round'


class RoundRevealed(InvalidPhase):
    """Guessing on a submission closed when its results were revealed."""

    code = 'round_revealed'


class InsufficientSubmissions(GameError):
    code = 'insufficient_submissions'
    http_status = 409


class SelfGuess(GameError):
    code = 'self_guess'
    http_status = 403


class DuplicateGuess(GameError):
    code = 'duplicate_guess'
    http_status = 409


class DuplicateSubmission(GameError):
    code = 'duplicate_submission'
    http_status = 409


class StorageConflict(GameError):
    """A conditional update lost a race even after one retry on fresh state."""

    code = 'storage_conflict'
    http_status = 409


class RoomCodeExhausted(GameError):
    code = 'room_code_exhausted'
    http_status = 503


class UpstreamUnavailable(GameError):
    """Storage (server side) or the game server (client side) could not be reached."""

    code = 'upstream_unavailable'
    http_status = 503


def error_for_code(code: str | None) -> type[GameError]:
    """Map a response ``code`` back to its exception class (``GameError`` if unknown)."""
    pending: list[type[GameError]] = [GameError]
    while pending:
        cls = pending.pop()
        if cls.code == code:
            return cls
        pending.extend(cls.__subclasses__())
    return GameError

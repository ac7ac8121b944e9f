"""Client-side room synchronization.

``RoomSync`` keeps an advisory copy of a room's snapshot by polling
``GET /rooms/{code}/state``. The server is always authoritative: the local copy
is only replaced, never edited, and every mutation is followed by a re-fetch.

Transport failures and 5xx responses put the synchronizer into a disconnected
state and raise ``UpstreamUnavailable``; polling then backs off exponentially
with jitter. The first successful poll after a disconnect is a full resync
(no ``since``), since pushes may have been missed.
"""

from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from collections.abc import Callable
from typing import Any

import httpx

from photoguess.config import Settings, get_settings
from photoguess.errors import GameError, UpstreamUnavailable, error_for_code
from photoguess.schemas.response import RoomSnapshot

logger = logging.getLogger(__name__)


class RoomSync:
    """Polls one room's state on behalf of one player."""

    def __init__(
        self,
        client: httpx.Client,
        code: str,
        *,
        player_id: uuid.UUID | None = None,
        settings: Settings | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        settings = settings or get_settings()
        self.client = client
        self.code = code.strip().upper()
        self.player_id = player_id
        self.poll_interval_s = settings.sync_poll_interval_s
        self.backoff_base_s = settings.sync_backoff_base_s
        self.backoff_max_s = settings.sync_backoff_max_s
        self._sleep = sleep

        self.snapshot: RoomSnapshot | None = None
        self.connected = True
        self.failures = 0
        self._needs_full_resync = True

    @property
    def revision(self) -> int | None:
        return self.snapshot.revision if self.snapshot else None

    def _headers(self) -> dict[str, str]:
        return {'X-Player-Id': str(self.player_id)} if self.player_id else {}

    def _mark_disconnected(self, reason: object) -> None:
        self.failures += 1
        self._needs_full_resync = True
        if self.connected:
            logger.warning('Room %s: lost connection (%s)', self.code, reason)
        self.connected = False

    def _mark_connected(self) -> None:
        if not self.connected:
            logger.info('Room %s: reconnected after %d failures', self.code, self.failures)
        self.connected = True
        self.failures = 0

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self.client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TransportError as exc:
            self._mark_disconnected(exc)
            raise UpstreamUnavailable(f'Could not reach the game server: {exc}') from exc
        if response.status_code >= 500:
            self._mark_disconnected(f'HTTP {response.status_code}')
            raise UpstreamUnavailable(f'Game server returned {response.status_code}.')
        self._mark_connected()
        if response.is_error:
            is_json = response.headers.get('content-type', '').startswith('application/json')
            body = response.json() if is_json else {}
            detail = body.get('detail', response.reason_phrase)
            raise error_for_code(body.get('code'))(str(detail))
        return response

    # ── Polling ───────────────────────────────────────────────────────────────

    def poll(self) -> bool:
        """Fetch the room state. Returns True if the local snapshot was replaced."""
        params = {}
        if self.revision is not None and not self._needs_full_resync:
            params['since'] = self.revision

        response = self._send('GET', f'/rooms/{self.code}/state', params=params)
        snapshot = RoomSnapshot.model_validate(response.json())
        self._needs_full_resync = False
        if not snapshot.changed:
            return False

        self.snapshot = snapshot
        logger.debug('Room %s: synced to revision %d', self.code, snapshot.revision)
        return True

    def next_delay(self) -> float:
        """Seconds to wait before the next poll: fixed while connected, backoff otherwise."""
        if self.connected:
            return self.poll_interval_s
        delay = min(self.backoff_max_s, self.backoff_base_s * 2 ** (self.failures - 1))
        return delay * random.uniform(0.75, 1.25)  # nosec B311

    def run(
        self,
        stop: threading.Event,
        on_change: Callable[[RoomSnapshot], None] | None = None,
    ) -> None:
        """Poll until ``stop`` is set, calling ``on_change`` with each new snapshot."""
        while not stop.is_set():
            try:
                if self.poll() and on_change and self.snapshot:
                    on_change(self.snapshot)
            except UpstreamUnavailable as exc:
                logger.info('Room %s: poll failed, retrying in backoff: %s', self.code, exc)
            self._sleep(self.next_delay())

    # ── Mutations ─────────────────────────────────────────────────────────────

    def act(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        """Send a mutation for this room, then resync.

        ``path`` is relative to the room, e.g. ``'/advance'``. Failures are
        always raised (``GameError`` subclasses); a mutation is never dropped
        silently.
        """
        response = self._send(method, f'/rooms/{self.code}{path}', json=json)
        result = response.json()
        try:
            self.poll()
        except GameError as exc:
            logger.info('Room %s: resync after %s %s failed: %s', self.code, method, path, exc)
        return result

from __future__ import annotations

import threading
import uuid

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from photoguess.config import Settings
from photoguess.errors import InvalidPhase, UpstreamUnavailable
from photoguess.models.types import RoomPhase
from photoguess.schemas.response import RoomSnapshot
from photoguess.sync import RoomSync
from tests.conftest import create_guess, create_player, create_room, create_submission

SETTINGS = Settings(sync_poll_interval_s=2.0, sync_backoff_base_s=1.0, sync_backoff_max_s=30.0)


def _headers(player_id: uuid.UUID) -> dict[str, str]:
    return {'X-Player-Id': str(player_id)}


# ── GET /rooms/{code}/state ──────────────────────────────────────────────────


def test_full_snapshot(client: TestClient, session: Session):
    room = create_room(session)
    create_player(session, room.id, display_name='Alice')

    resp = client.get(f'/rooms/{room.code}/state')
    assert resp.status_code == 200
    data = resp.json()
    assert data['changed'] is True
    assert data['revision'] == room.revision
    assert data['room']['code'] == room.code
    assert data['submissions'] == []
    assert data['current_guesses'] is None
    assert [e['display_name'] for e in data['leaderboard']] == ['Alice']


def test_snapshot_unchanged_since_revision(client: TestClient):
    code = client.post('/rooms').json()['code']
    revision = client.get(f'/rooms/{code}/state').json()['revision']

    resp = client.get(f'/rooms/{code}/state', params={'since': revision})
    assert resp.json() == {
        'revision': revision,
        'changed': False,
        'room': None,
        'submissions': None,
        'current_guesses': None,
        'leaderboard': None,
    }


def test_snapshot_changes_after_join(client: TestClient):
    code = client.post('/rooms').json()['code']
    before = client.get(f'/rooms/{code}/state').json()['revision']
    client.post(f'/rooms/{code}/players', json={'display_name': 'Alice'})

    data = client.get(f'/rooms/{code}/state', params={'since': before}).json()
    assert data['changed'] is True
    assert data['revision'] > before
    assert len(data['room']['players']) == 1


def test_snapshot_includes_current_guesses_while_playing(client: TestClient, session: Session):
    room = create_room(session, phase=RoomPhase.playing)
    alice = create_player(session, room.id)
    bob = create_player(session, room.id)
    first = create_submission(session, room.id, alice.id, lat=10, lng=10)
    create_submission(session, room.id, bob.id)
    create_guess(session, first.id, bob.id)

    data = client.get(f'/rooms/{room.code}/state', headers=_headers(bob.id)).json()
    assert [g['player_id'] for g in data['current_guesses']] == [str(bob.id)]
    assert data['submissions'][0]['lat'] is None
    assert data['submissions'][1]['lat'] == 0


def test_snapshot_hides_other_players_guesses(client: TestClient, session: Session):
    room = create_room(session, phase=RoomPhase.playing)
    alice = create_player(session, room.id)
    bob = create_player(session, room.id)
    carol = create_player(session, room.id)
    first = create_submission(session, room.id, alice.id, lat=10, lng=10)
    create_guess(session, first.id, bob.id, lat=9, lng=9, distance_km=150, location_score=4850)

    data = client.get(f'/rooms/{room.code}/state', headers=_headers(carol.id)).json()
    [guess] = data['current_guesses']
    assert guess['player_id'] == str(bob.id)
    assert (guess['lat'], guess['lng'], guess['distance_km']) == (None, None, None)
    assert guess['location_score'] is None


def test_snapshot_rejects_negative_since(client: TestClient):
    code = client.post('/rooms').json()['code']
    assert client.get(f'/rooms/{code}/state', params={'since': -1}).status_code == 422


def test_snapshot_unknown_room(client: TestClient):
    assert client.get('/rooms/ZZZZZ/state').status_code == 404


# ── RoomSync against the app ─────────────────────────────────────────────────


def test_room_sync_polls_and_acts(client: TestClient):
    code = client.post('/rooms').json()['code']
    sync = RoomSync(client, code.lower(), settings=SETTINGS)

    assert sync.poll() is True
    assert sync.snapshot is not None
    assert sync.snapshot.room is not None
    assert sync.snapshot.room.phase == RoomPhase.lobby
    assert sync.poll() is False

    joined = sync.act('POST', '/players', json={'display_name': 'Alice'})
    sync.player_id = uuid.UUID(joined['player_id'])
    assert sync.snapshot.room is not None
    assert [p.display_name for p in sync.snapshot.room.players] == ['Alice']
    assert sync.revision == sync.snapshot.revision

    with pytest.raises(InvalidPhase):
        sync.act('POST', '/start')

    sync.act('POST', '/submission-phase')
    assert sync.snapshot.room is not None
    assert sync.snapshot.room.phase == RoomPhase.submission


# ── RoomSync connection handling ─────────────────────────────────────────────


class FlakyServer:
    """MockTransport handler that fails until told to recover."""

    def __init__(self) -> None:
        self.down = True
        self.revision = 7
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectError('connection refused', request=request)
        since = request.url.params.get('since')
        if since is not None and int(since) == self.revision:
            return httpx.Response(200, json={'revision': self.revision, 'changed': False})
        return httpx.Response(200, json={'revision': self.revision, 'changed': True})


def _flaky_sync(server: FlakyServer, **kwargs) -> RoomSync:
    client = httpx.Client(transport=httpx.MockTransport(server), base_url='http://game')
    return RoomSync(client, 'ABCDE', settings=SETTINGS, **kwargs)


def test_connection_loss_raises_upstream_unavailable():
    sync = _flaky_sync(FlakyServer())
    with pytest.raises(UpstreamUnavailable):
        sync.poll()
    assert sync.connected is False
    assert sync.failures == 1


def test_backoff_grows_with_jitter_and_caps():
    sync = _flaky_sync(FlakyServer())
    sync.connected = False

    sync.failures = 1
    assert 0.75 <= sync.next_delay() <= 1.25
    sync.failures = 3
    assert 3.0 <= sync.next_delay() <= 5.0
    sync.failures = 20
    assert 22.5 <= sync.next_delay() <= 37.5


def test_connected_uses_poll_interval():
    sync = _flaky_sync(FlakyServer())
    assert sync.next_delay() == 2.0


def test_full_resync_after_reconnect():
    server = FlakyServer()
    server.down = False
    sync = _flaky_sync(server)

    assert sync.poll() is True
    assert sync.poll() is False
    assert server.requests[-1].url.params['since'] == '7'

    server.down = True
    with pytest.raises(UpstreamUnavailable):
        sync.poll()

    server.down = False
    assert sync.poll() is True
    assert 'since' not in server.requests[-1].url.params
    assert sync.connected is True
    assert sync.failures == 0


def test_server_error_counts_as_disconnect():
    client = httpx.Client(
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        base_url='http://game',
    )
    sync = RoomSync(client, 'ABCDE', settings=SETTINGS)
    with pytest.raises(UpstreamUnavailable):
        sync.poll()
    assert sync.connected is False


def test_error_code_maps_to_exception():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={'detail': 'Room is in lobby.', 'code': 'invalid_phase'})

    client = httpx.Client(transport=httpx.MockTransport(handler), base_url='http://game')
    sync = RoomSync(client, 'ABCDE', settings=SETTINGS)
    with pytest.raises(InvalidPhase, match='Room is in lobby.'):
        sync.act('POST', '/advance')
    assert sync.connected is True


def test_player_header_sent():
    player_id = uuid.uuid4()
    server = FlakyServer()
    server.down = False
    sync = _flaky_sync(server, player_id=player_id)
    sync.poll()
    assert server.requests[-1].headers['X-Player-Id'] == str(player_id)


def test_run_polls_until_stopped():
    server = FlakyServer()
    stop = threading.Event()
    delays: list[float] = []
    snapshots: list[RoomSnapshot] = []

    def fake_sleep(seconds: float) -> None:
        delays.append(seconds)
        # Recover after the first failed poll; stop after the second round.
        server.down = False
        if len(delays) == 2:
            stop.set()

    sync = _flaky_sync(server, sleep=fake_sleep)
    sync.run(stop, on_change=snapshots.append)

    assert len(server.requests) == 2
    assert 0.75 <= delays[0] <= 1.25
    assert delays[1] == 2.0
    assert [s.revision for s in snapshots] == [7]

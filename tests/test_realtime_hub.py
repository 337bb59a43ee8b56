"""Tests for RealtimeHub: handshake, supersession, teardown, and per-user fan-out."""

from datetime import datetime, timedelta, timezone

import anyio
import pytest
from anyio import to_thread

from contactly.domain import ChangeKind, Contact, ContactChangeEvent, User
from contactly.infrastructure import (
    AuthRejected,
    ConnectionState,
    RealtimeHub,
    TokenIssuer,
)
from contactly.infrastructure.realtime import (
    CLOSE_FORBIDDEN,
    CLOSE_SUPERSEDED,
    CLOSE_UNAUTHENTICATED,
)

pytestmark = pytest.mark.anyio

SESSION_SECRET = "session-secret"
REALTIME_SECRET = "realtime-secret"


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeSocket:
    def __init__(self, *, broken: bool = False) -> None:
        self.accepted = False
        self.sent: list[dict] = []
        self.closed: tuple[int, str | None] | None = None
        self.broken = broken

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, data) -> None:
        if self.broken:
            raise RuntimeError("connection reset")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed = (code, reason)


@pytest.fixture
def tokens() -> TokenIssuer:
    return TokenIssuer(SESSION_SECRET, REALTIME_SECRET)


@pytest.fixture
def hub(tokens) -> RealtimeHub:
    return RealtimeHub(tokens)


@pytest.fixture
def ann() -> User:
    return User(email="a@x.com", name="Ann", password_hash="unused")


@pytest.fixture
def ben() -> User:
    return User(email="b@x.com", name="Ben", password_hash="unused")


def _event(owner: User, kind: ChangeKind = ChangeKind.CREATED) -> ContactChangeEvent:
    contact = Contact(owner_id=owner.id, name="Bob")
    return ContactChangeEvent(kind=kind, contact=contact, owner_id=owner.id)


async def test_handshake_registers_open_connection(hub, tokens, ann) -> None:
    grant = tokens.issue_realtime(ann)
    socket = FakeSocket()
    connection = await hub.handshake(grant.token, socket)

    assert socket.accepted
    assert connection.state is ConnectionState.OPEN
    assert connection.user_id == ann.id
    assert connection.nonce == grant.nonce
    assert hub.connections_for(ann.id) == [connection]
    assert hub.connection_for_nonce(grant.nonce) is connection
    assert hub.connection_count == 1


async def test_missing_token_is_rejected_as_missing(hub) -> None:
    socket = FakeSocket()
    with pytest.raises(AuthRejected) as exc:
        await hub.handshake(None, socket)
    assert exc.value.reason == "token_missing"
    assert exc.value.close_code == CLOSE_UNAUTHENTICATED
    assert not socket.accepted
    assert hub.connection_count == 0


async def test_expired_token_reason_differs_from_missing(hub, ann) -> None:
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    stale = TokenIssuer(SESSION_SECRET, REALTIME_SECRET, now=lambda: past)
    with pytest.raises(AuthRejected) as exc:
        await hub.handshake(stale.issue_realtime(ann).token, FakeSocket())
    assert exc.value.reason == "token_expired"
    assert exc.value.close_code == CLOSE_FORBIDDEN


async def test_session_token_is_rejected_as_wrong_kind(hub, tokens, ann) -> None:
    with pytest.raises(AuthRejected) as exc:
        await hub.handshake(tokens.issue_primary(ann), FakeSocket())
    assert exc.value.reason == "wrong_token_kind"


async def test_garbage_token_is_rejected_as_invalid(hub) -> None:
    with pytest.raises(AuthRejected) as exc:
        await hub.handshake("not-a-jwt", FakeSocket())
    assert exc.value.reason == "token_invalid"
    assert hub.connection_count == 0


async def test_reject_reports_reason_then_closes(hub) -> None:
    socket = FakeSocket()
    await hub.reject(socket, AuthRejected("token_expired"))
    assert socket.accepted
    assert socket.sent == [{"error": "auth_rejected", "reason": "token_expired"}]
    assert socket.closed == (CLOSE_FORBIDDEN, "token_expired")


async def test_same_nonce_supersedes_previous_connection(hub, tokens, ann) -> None:
    grant = tokens.issue_realtime(ann)
    old_socket, new_socket = FakeSocket(), FakeSocket()
    old = await hub.handshake(grant.token, old_socket)
    new = await hub.handshake(grant.token, new_socket)

    assert hub.connections_for(ann.id) == [new]
    assert hub.connection_for_nonce(grant.nonce) is new
    assert old.state is ConnectionState.CLOSED
    assert old_socket.closed == (CLOSE_SUPERSEDED, "superseded")

    # The stale socket's own disconnect must not unregister its replacement.
    hub.teardown(old)
    assert hub.connections_for(ann.id) == [new]
    assert hub.connection_for_nonce(grant.nonce) is new

    delivered = await hub.emit(_event(ann))
    assert delivered == 1
    assert old_socket.sent == []
    assert len(new_socket.sent) == 1


async def test_teardown_is_idempotent(hub, tokens, ann) -> None:
    grant = tokens.issue_realtime(ann)
    connection = await hub.handshake(grant.token, FakeSocket())
    hub.teardown(connection)
    hub.teardown(connection)
    assert connection.state is ConnectionState.CLOSED
    assert hub.connections_for(ann.id) == []
    assert hub.connection_for_nonce(grant.nonce) is None
    assert hub.connection_count == 0


async def test_emit_reaches_every_connection_of_owner_only(hub, tokens, ann, ben) -> None:
    ann_phone, ann_laptop, ben_socket = FakeSocket(), FakeSocket(), FakeSocket()
    await hub.handshake(tokens.issue_realtime(ann).token, ann_phone)
    await hub.handshake(tokens.issue_realtime(ann).token, ann_laptop)
    await hub.handshake(tokens.issue_realtime(ben).token, ben_socket)

    event = _event(ann, ChangeKind.UPDATED)
    delivered = await hub.emit(event)

    assert delivered == 2
    for socket in (ann_phone, ann_laptop):
        assert len(socket.sent) == 1
        payload = socket.sent[0]
        assert payload["kind"] == "updated"
        assert payload["owner"] == ann.id
        assert payload["contact"]["id"] == event.contact.id
        assert payload["contact"]["name"] == "Bob"
    assert ben_socket.sent == []


async def test_emit_without_connections_is_a_no_op(hub, ann) -> None:
    assert await hub.emit(_event(ann)) == 0


async def test_emit_after_teardown_sends_nothing(hub, tokens, ann) -> None:
    socket = FakeSocket()
    connection = await hub.handshake(tokens.issue_realtime(ann).token, socket)
    hub.teardown(connection)
    assert await hub.emit(_event(ann)) == 0
    assert socket.sent == []


async def test_failed_send_is_swallowed(hub, tokens, ann) -> None:
    broken, healthy = FakeSocket(broken=True), FakeSocket()
    await hub.handshake(tokens.issue_realtime(ann).token, broken)
    await hub.handshake(tokens.issue_realtime(ann).token, healthy)

    delivered = await hub.emit(_event(ann, ChangeKind.DELETED))
    assert delivered == 1
    assert healthy.sent[0]["kind"] == "deleted"


async def test_events_arrive_in_emit_order(hub, tokens, ann) -> None:
    socket = FakeSocket()
    await hub.handshake(tokens.issue_realtime(ann).token, socket)
    for kind in (ChangeKind.CREATED, ChangeKind.UPDATED, ChangeKind.DELETED):
        await hub.emit(_event(ann, kind))
    assert [p["kind"] for p in socket.sent] == ["created", "updated", "deleted"]


async def test_concurrent_handshakes_all_register(hub, tokens, ann, ben) -> None:
    sockets = [FakeSocket() for _ in range(20)]
    users = [ann if i % 2 == 0 else ben for i in range(20)]

    async with anyio.create_task_group() as tg:
        for user, socket in zip(users, sockets):
            tg.start_soon(hub.handshake, tokens.issue_realtime(user).token, socket)

    assert hub.connection_count == 20
    assert len(hub.connections_for(ann.id)) == 10
    assert len(hub.connections_for(ben.id)) == 10


async def test_teardown_from_worker_threads(hub, tokens, ann) -> None:
    connections = [
        await hub.handshake(tokens.issue_realtime(ann).token, FakeSocket()) for _ in range(10)
    ]

    async with anyio.create_task_group() as tg:
        for connection in connections:
            tg.start_soon(to_thread.run_sync, hub.teardown, connection)

    assert hub.connection_count == 0

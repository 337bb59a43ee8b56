"""Realtime hub: authenticates realtime sockets and fans contact changes out per user.

Each user has a logical room made of every open connection registered for them.
The registry (user id -> connections, nonce -> connection) lives only in this
process and is guarded by a lock, so handshake, teardown, and emit can be called
concurrently from the event loop and from worker threads.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

from contactly.domain import ContactChangeEvent, contact_to_dict
from contactly.infrastructure.tokens import TokenError, TokenIssuer

logger = logging.getLogger(__name__)

REASON_TOKEN_MISSING = "token_missing"

# Application close codes (4000-4999 range).
CLOSE_SUPERSEDED = 4000
CLOSE_UNAUTHENTICATED = 4401
CLOSE_FORBIDDEN = 4403


class RealtimeSocket(Protocol):
    """The subset of a WebSocket the hub needs. Starlette's WebSocket satisfies it."""

    async def accept(self) -> None:
        ...

    async def send_json(self, data: Any) -> None:
        ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        ...


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(eq=False)
class Connection:
    """One realtime socket and the session it was authenticated for."""

    socket: RealtimeSocket
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str | None = None
    nonce: str | None = None
    state: ConnectionState = ConnectionState.CONNECTING
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AuthRejected(Exception):
    """Handshake refused. ``reason`` tells the client how to recover."""

    def __init__(self, reason: str, message: str = "") -> None:
        super().__init__(message or reason)
        self.reason = reason

    @property
    def close_code(self) -> int:
        if self.reason == REASON_TOKEN_MISSING:
            return CLOSE_UNAUTHENTICATED
        return CLOSE_FORBIDDEN


def serialize_event(event: ContactChangeEvent) -> dict:
    return {
        "kind": event.kind.value,
        "contact": contact_to_dict(event.contact),
        "owner": event.owner_id,
    }


class RealtimeHub:
    """Owns the connection registry. All changes go through handshake and teardown."""

    def __init__(self, tokens: TokenIssuer) -> None:
        self._tokens = tokens
        self._lock = threading.Lock()
        self._by_user: dict[str, dict[str, Connection]] = {}
        self._by_nonce: dict[str, Connection] = {}

    async def handshake(self, credential: str | None, socket: RealtimeSocket) -> Connection:
        """Validate the realtime credential, accept the socket, and register it.

        Raises AuthRejected without accepting the socket; use reject() to report it.
        A previous connection registered under the same nonce is unregistered and closed.
        """
        connection = Connection(socket=socket)
        connection.state = ConnectionState.AUTHENTICATING
        if not credential:
            connection.state = ConnectionState.CLOSED
            raise AuthRejected(REASON_TOKEN_MISSING, "No realtime token presented.")
        try:
            claims = self._tokens.validate_realtime(credential)
        except TokenError as e:
            connection.state = ConnectionState.CLOSED
            logger.info("Realtime handshake rejected: %s", e.reason)
            raise AuthRejected(e.reason, str(e)) from e

        connection.user_id = claims.user_id
        connection.nonce = claims.nonce
        await socket.accept()
        superseded = self._register(connection)
        connection.state = ConnectionState.OPEN
        logger.info(
            "User %s connected (connection %s)", connection.user_id, connection.id
        )
        if superseded is not None:
            await self._close_superseded(superseded)
        return connection

    async def reject(self, socket: RealtimeSocket, error: AuthRejected) -> None:
        """Tell the client why the handshake failed, then close."""
        await socket.accept()
        await socket.send_json({"error": "auth_rejected", "reason": error.reason})
        await socket.close(code=error.close_code, reason=error.reason)

    def teardown(self, connection: Connection) -> None:
        """Remove the connection from the registry. Safe to call more than once."""
        with self._lock:
            room = self._by_user.get(connection.user_id)
            if room is not None:
                room.pop(connection.id, None)
                if not room:
                    del self._by_user[connection.user_id]
            if connection.nonce and self._by_nonce.get(connection.nonce) is connection:
                del self._by_nonce[connection.nonce]
        if connection.state is not ConnectionState.CLOSED:
            logger.info(
                "User %s disconnected (connection %s)", connection.user_id, connection.id
            )
        connection.state = ConnectionState.CLOSED

    async def emit(self, event: ContactChangeEvent) -> int:
        """Push the event to every connection of the owner. Returns how many sends succeeded.

        No connections is not an error. Failed sends are logged and dropped.
        """
        with self._lock:
            targets = list(self._by_user.get(event.owner_id, {}).values())
        if not targets:
            return 0
        payload = serialize_event(event)
        delivered = 0
        for connection in targets:
            try:
                await connection.socket.send_json(payload)
            except Exception:
                logger.warning(
                    "Could not deliver %s event to connection %s",
                    event.kind.value,
                    connection.id,
                    exc_info=True,
                )
                continue
            delivered += 1
        return delivered

    def connections_for(self, user_id: str) -> list[Connection]:
        with self._lock:
            return list(self._by_user.get(user_id, {}).values())

    def connection_for_nonce(self, nonce: str) -> Connection | None:
        with self._lock:
            return self._by_nonce.get(nonce)

    @property
    def connection_count(self) -> int:
        with self._lock:
            return sum(len(room) for room in self._by_user.values())

    def _register(self, connection: Connection) -> Connection | None:
        """Map user and nonce to the connection. Returns the connection it supersedes, if any."""
        with self._lock:
            previous = self._by_nonce.get(connection.nonce)
            if previous is connection:
                previous = None
            if previous is not None:
                room = self._by_user.get(previous.user_id)
                if room is not None:
                    room.pop(previous.id, None)
                    if not room:
                        del self._by_user[previous.user_id]
            self._by_nonce[connection.nonce] = connection
            self._by_user.setdefault(connection.user_id, {})[connection.id] = connection
        return previous

    async def _close_superseded(self, connection: Connection) -> None:
        connection.state = ConnectionState.CLOSED
        logger.info(
            "Connection %s superseded for user %s", connection.id, connection.user_id
        )
        try:
            await connection.socket.close(code=CLOSE_SUPERSEDED, reason="superseded")
        except Exception:
            logger.debug("Superseded connection %s already closed", connection.id, exc_info=True)

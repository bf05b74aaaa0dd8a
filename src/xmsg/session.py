"""Session state and the connect handshake.

There is no request/ack round trip. Each side broadcasts the same
``rpc_connect_ack`` announcement (its session id and exposed function names)
and treats an incoming announcement as enough to complete its own
connection. When the two session ids disagree both sides converge on the
smaller one: the side holding the greater id adopts the peer's, the side
holding the smaller keeps its own, and whichever side noticed the mismatch
re-announces so the peer sees the agreed id. A peer joining one that is
already connected therefore costs one extra announcement.

Simply adopting whatever id the peer sent would livelock when both sides
announce at the same time: each adopts the other's id, re-announces, and
receives the id it just gave up, forever. Agreeing on the smaller id ends
that exchange after one round.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from enum import Enum

from xmsg.ids import IdGenerator
from xmsg.stubs import Invoke, RemoteProxies
from xmsg.wire import RpcConnectAck, RpcConnectError, WireMessage

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Connection state of a peer."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"

    def __str__(self) -> str:
        return self.value


class SessionManager:
    """Negotiates the shared session id and builds the remote proxy set."""

    def __init__(
        self,
        send: Callable[[WireMessage], None],
        exposed_names: Sequence[str],
        invoke: Invoke,
        ids: IdGenerator | None = None,
        on_connected: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the session manager.

        Args:
            send: Fire-and-forget send for outgoing messages
            exposed_names: Names of the locally exposed functions
            invoke: Coroutine used by remote stubs to issue calls
            ids: Identifier generator for the tentative session id
            on_connected: Called every time an announcement is accepted
        """
        self._send = send
        self.exposed_names = list(exposed_names)
        self._invoke = invoke
        self._on_connected = on_connected
        self.session_id = (ids or IdGenerator()).session_id()
        self.state = SessionState.DISCONNECTED
        self.proxies = RemoteProxies()
        self._connected_future: asyncio.Future[None] | None = None

    @property
    def connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    def announcement(self) -> RpcConnectAck:
        """The announcement describing this side of the link."""
        return RpcConnectAck(self.session_id, list(self.exposed_names))

    async def connect(self) -> None:
        """Announce this peer and wait until the handshake completes.

        Returns immediately if already connected. Concurrent callers share
        one completion signal. There is no handshake timeout; wrap the call
        in ``asyncio.wait_for`` to bound it.
        """
        if self.connected:
            return

        logger.info("Connecting...")
        if self._connected_future is None or self._connected_future.done():
            self._connected_future = asyncio.get_running_loop().create_future()
        future = self._connected_future
        self.state = SessionState.CONNECTING

        self._send(self.announcement())
        # Shield so one cancelled waiter does not cancel the shared signal
        await asyncio.shield(future)

    def handle_connect_ack(self, message: RpcConnectAck) -> None:
        """Accept a peer announcement and complete the connection."""
        if message.session_id != self.session_id:
            if message.session_id < self.session_id:
                logger.debug(
                    "Adopting peer session id %s (was %s)",
                    message.session_id,
                    self.session_id,
                )
                self.session_id = message.session_id
            self._send(self.announcement())

        self.proxies = RemoteProxies(message.exposed_functions, self._invoke)
        self.state = SessionState.CONNECTED
        logger.info("Connected! session=%s", self.session_id)

        future = self._connected_future
        if future is not None and not future.done():
            future.set_result(None)

        if self._on_connected is not None:
            self._on_connected()

    def handle_connect_error(self, message: RpcConnectError) -> None:
        """Log a peer's handshake error. No state changes."""
        logger.error("Connection error: %s", message.error)

    def reset(self) -> None:
        """Mark the session disconnected.

        Waiters still blocked in ``connect()`` keep waiting for the next
        announcement.
        """
        self.state = SessionState.DISCONNECTED

    def cancel_waiters(self) -> None:
        """Cancel the shared signal so blocked ``connect()`` callers stop."""
        if self._connected_future is not None and not self._connected_future.done():
            self._connected_future.cancel()

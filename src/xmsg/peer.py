"""Peer: one endpoint of an xmsg RPC link."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Any, Self

from xmsg.calls import CallTable
from xmsg.config import PeerConfig
from xmsg.dispatch import Dispatcher, ExposedFunctions, error_text
from xmsg.error import RpcError
from xmsg.ids import IdGenerator
from xmsg.liveness import LivenessMonitor
from xmsg.session import SessionManager, SessionState
from xmsg.stubs import RemoteProxies
from xmsg.transports import ANY_ORIGIN, MessageEvent, MessageTarget
from xmsg.wire import (
    RpcCall,
    RpcConnect,
    RpcConnectAck,
    RpcConnectError,
    RpcKeepAlive,
    RpcResponse,
    WireMessage,
    parse_message,
)

logger = logging.getLogger(__name__)


class Peer:
    """Bidirectional RPC over a fire-and-forget message channel.

    Each side exposes a fixed set of named functions and calls the other
    side's functions as coroutines once the handshake has completed.

    The peer must be created while an event loop is running: it subscribes
    to the transport and starts polling ``target.closed`` immediately.

    Example:
        ```python
        channel = MessageChannel()
        host = Peer(channel.port1, exposed_functions={"add": lambda a, b: a + b})
        frame = Peer(channel.port2)

        await frame.connect()
        assert await frame.remote.add(2, 3) == 5
        ```
    """

    def __init__(
        self,
        target: MessageTarget,
        target_origin: str = ANY_ORIGIN,
        exposed_functions: ExposedFunctions | None = None,
        config: PeerConfig | None = None,
        *,
        ids: IdGenerator | None = None,
    ) -> None:
        """Initialize the peer.

        Args:
            target: The transport leading to the other context
            target_origin: Origin the peer is expected to have; "*" accepts
                messages from any origin
            exposed_functions: Functions the other side may call
            config: Intervals and timeouts
            ids: Identifier generator for session and call ids

        Raises:
            ValueError: If ``target`` cannot send or deliver messages
        """
        if target is None or not callable(getattr(target, "post_message", None)):
            msg = "Invalid target: must have a post_message method."
            raise ValueError(msg)
        if not callable(getattr(target, "add_listener", None)):
            msg = "Invalid target: must have an add_listener method."
            raise ValueError(msg)

        self.target = target
        self.target_origin = target_origin
        self.config = config or PeerConfig()
        ids = ids or IdGenerator()

        self._dispatcher = Dispatcher(exposed_functions)
        self._calls = CallTable(self._post, ids, timeout=self.config.call_timeout)
        self._session = SessionManager(
            self._post,
            self._dispatcher.names,
            self.call_remote,
            ids,
            on_connected=self._on_connected,
        )
        self._liveness = LivenessMonitor(
            is_closed=lambda: bool(self.target.closed),
            is_connected=lambda: self._session.connected,
            send_keep_alive=self._send_keep_alive,
            on_target_closed=lambda: self.disconnect("Target window closed"),
            keep_alive_interval=self.config.keep_alive_interval,
            window_check_interval=self.config.window_check_interval,
        )
        self._dispatch_tasks: set[asyncio.Task[None]] = set()
        self._closed = False

        self.target.add_listener(self._handle_event)
        self._liveness.start_target_watch()

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def connected(self) -> bool:
        return self._session.connected

    @property
    def exposed_function_names(self) -> list[str]:
        return list(self._dispatcher.names)

    @property
    def remote(self) -> RemoteProxies:
        """Stubs for the functions the remote peer advertised."""
        return self._session.proxies

    @property
    def pending_calls(self) -> int:
        """Number of outbound calls awaiting a response."""
        return len(self._calls)

    async def connect(self) -> None:
        """Perform the handshake. Returns at once if already connected."""
        await self._session.connect()

    async def call_remote(self, method: str, *args: Any) -> Any:
        """Call a function exposed by the remote peer.

        Args:
            method: Remote method name
            *args: Positional arguments

        Returns:
            The remote function's return value

        Raises:
            RpcError: ``not_connected`` before the handshake completes,
                ``remote`` if the remote function raised, ``timeout`` if no
                response arrived within ``config.call_timeout``
        """
        if not self._session.connected:
            msg = "Not connected. Call connect() first."
            raise RpcError.not_connected(msg)
        return await self._calls.call(method, list(args), self._session.session_id)

    def disconnect(self, reason: str = "Disconnected") -> None:
        """Tear down the session. No-op if not connected.

        Pending calls are dropped without being settled; each one still
        fails when its own timeout fires. Nothing is sent to the peer.
        """
        if not self._session.connected:
            return

        logger.warning("Disconnected: %s", reason)
        self._session.reset()
        self._calls.abandon_all()
        self._liveness.stop_heartbeat()

    async def close(self) -> None:
        """Disconnect, stop all background activity and unsubscribe."""
        if self._closed:
            return
        self._closed = True

        self.disconnect("Peer closed")
        self._session.cancel_waiters()
        self.target.remove_listener(self._handle_event)
        await self._liveness.aclose()

        tasks = list(self._dispatch_tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task

    def _post(self, message: WireMessage) -> None:
        self.target.post_message(message.to_json(), self.target_origin)

    def _send_keep_alive(self) -> None:
        self._post(RpcKeepAlive(self._session.session_id))

    def _on_connected(self) -> None:
        self._liveness.start_heartbeat()

    def _handle_event(self, event: MessageEvent) -> None:
        """Route one inbound message. Malformed or foreign input is dropped."""
        if self.target_origin != ANY_ORIGIN and event.origin != self.target_origin:
            logger.debug("Ignoring message from origin %s", event.origin)
            return

        try:
            message = parse_message(event.data)
        except ValueError as e:
            logger.debug("Ignoring malformed message: %s", e)
            return

        match message:
            case RpcResponse():
                self._calls.resolve(message)

            case RpcConnectAck():
                self._session.handle_connect_ack(message)

            case RpcConnectError():
                self._session.handle_connect_error(message)

            case RpcKeepAlive():
                logger.debug("Keep-alive from session %s", message.session_id)

            case RpcCall():
                self._start_dispatch(message, self._session.session_id)

            case RpcConnect():
                # Reserved, the handshake uses announcements only
                pass

    def _start_dispatch(self, request: RpcCall, session_id: str) -> None:
        task = asyncio.get_running_loop().create_task(self._dispatch(request, session_id))
        self._dispatch_tasks.add(task)
        task.add_done_callback(self._dispatch_tasks.discard)

    async def _dispatch(self, request: RpcCall, session_id: str) -> None:
        response = await self._dispatcher.dispatch(request, session_id)
        if response is None:
            return
        try:
            self._post(response)
        except Exception as e:
            if response.failed:
                logger.exception("Failed to send response for call %s", request.id)
                return
            # The result could not be sent, report that to the caller instead
            logger.debug("Result of call %s could not be sent: %s", request.id, e)
            self._post_failure(request, e)

    def _post_failure(self, request: RpcCall, error: Exception) -> None:
        response = RpcResponse(
            request.id, None, error_text(error), session_id=request.session_id
        )
        try:
            self._post(response)
        except Exception:
            logger.exception("Failed to send response for call %s", request.id)

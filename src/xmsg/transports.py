"""Message transports for xmsg.

A transport is anything shaped like a browser window seen from the other
side: it accepts fire-and-forget messages with ``post_message``, delivers
inbound messages to listeners together with the sender's origin, and reports
whether the remote context has terminated through ``closed``.

Two implementations are provided:

- ``MessageChannel``: an in-process pair of ``ChannelPort`` objects joined
  on the running event loop.
- ``WebSocketEndpoint``: a JSON-over-WebSocket endpoint built on aiohttp,
  usable on either the client or the server side.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Protocol, Self
from urllib.parse import urlsplit

import aiohttp
from aiohttp import web

from xmsg.error import RpcError

logger = logging.getLogger(__name__)

ANY_ORIGIN = "*"


@dataclass(frozen=True)
class MessageEvent:
    """An inbound message and the origin of the context that sent it."""

    data: Any
    origin: str


Listener = Callable[[MessageEvent], None]


class MessageTarget(Protocol):
    """Protocol for the remote end of a message channel."""

    @property
    def closed(self) -> bool:
        """True once the remote context has terminated."""
        ...

    def post_message(self, message: dict[str, Any], target_origin: str = ANY_ORIGIN) -> None:
        """Send a message. Delivery is not guaranteed or ordered."""
        ...

    def add_listener(self, listener: Listener) -> None:
        """Subscribe to inbound messages."""
        ...

    def remove_listener(self, listener: Listener) -> None:
        """Unsubscribe from inbound messages."""
        ...


def _origin_matches(target_origin: str, origin: str) -> bool:
    return target_origin == ANY_ORIGIN or target_origin == origin


class _ListenerMixin:
    _listeners: list[Listener]

    def add_listener(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        with suppress(ValueError):
            self._listeners.remove(listener)

    def _deliver(self, event: MessageEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Message listener failed")


class ChannelPort(_ListenerMixin):
    """One end of an in-process ``MessageChannel``.

    ``post_message`` delivers to the partner port's listeners on a later
    loop iteration, passing a deep copy of the message. ``closed`` reports
    whether the *partner* has been closed.
    """

    def __init__(self, origin: str = "null") -> None:
        self.origin = origin
        self._listeners = []
        self._partner: ChannelPort | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        partner = self._partner
        return partner is None or partner._closed

    def post_message(self, message: dict[str, Any], target_origin: str = ANY_ORIGIN) -> None:
        partner = self._partner
        if self._closed or partner is None or partner._closed:
            logger.debug("Dropping message on closed channel")
            return
        if not _origin_matches(target_origin, partner.origin):
            logger.debug(
                "Dropping message: target origin %s does not match %s",
                target_origin,
                partner.origin,
            )
            return

        event = MessageEvent(copy.deepcopy(message), self.origin)
        asyncio.get_running_loop().call_soon(partner._receive, event)

    def close(self) -> None:
        """Terminate this side. The partner will report ``closed``."""
        self._closed = True
        self._listeners.clear()

    def _receive(self, event: MessageEvent) -> None:
        if not self._closed:
            self._deliver(event)


class MessageChannel:
    """An in-process pair of linked ports."""

    def __init__(self, origin1: str = "null", origin2: str = "null") -> None:
        self.port1 = ChannelPort(origin1)
        self.port2 = ChannelPort(origin2)
        self.port1._partner = self.port2
        self.port2._partner = self.port1

    def close(self) -> None:
        """Close both ports."""
        self.port1.close()
        self.port2.close()


class WebSocketEndpoint(_ListenerMixin):
    """JSON-over-WebSocket transport built on aiohttp.

    Wraps either an ``aiohttp.ClientWebSocketResponse`` or a server-side
    ``aiohttp.web.WebSocketResponse``. Outgoing messages are sent as JSON
    text frames; inbound text or binary frames are decoded and delivered
    with ``origin`` as the sender identity.

    Example (server side):
        ```python
        async def handler(request):
            ws = web.WebSocketResponse()
            await ws.prepare(request)
            endpoint = WebSocketEndpoint(ws, origin=request.headers.get("Origin", "null"))
            async with Peer(endpoint, exposed_functions={"add": add}):
                await endpoint.run()
            return ws
        ```
    """

    def __init__(
        self,
        ws: aiohttp.ClientWebSocketResponse | web.WebSocketResponse,
        origin: str = "null",
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the endpoint.

        Args:
            ws: An open WebSocket
            origin: Origin reported for inbound messages
            session: Client session to close together with the endpoint
        """
        self.origin = origin
        self._ws = ws
        self._session = session
        self._listeners = []
        self._reader_task: asyncio.Task[None] | None = None
        self._send_tasks: set[asyncio.Task[None]] = set()
        self._finished = False

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    @property
    def closed(self) -> bool:
        return self._finished or self._ws.closed

    def post_message(self, message: dict[str, Any], target_origin: str = ANY_ORIGIN) -> None:
        if self.closed:
            logger.debug("Dropping message on closed WebSocket")
            return
        if not _origin_matches(target_origin, self.origin):
            logger.debug(
                "Dropping message: target origin %s does not match %s",
                target_origin,
                self.origin,
            )
            return

        text = json.dumps(message)
        task = asyncio.get_running_loop().create_task(self._ws.send_str(text))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_done)

    def start(self) -> None:
        """Start reading inbound messages in a background task."""
        if self._reader_task is None:
            self._reader_task = asyncio.get_running_loop().create_task(self.run())

    async def run(self) -> None:
        """Read inbound messages until the socket closes.

        Server handlers await this directly to keep the connection open.
        """
        try:
            async for msg in self._ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._receive(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    self._receive(msg.data.decode("utf-8"))
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.error("WebSocket error: %s", self._ws.exception())
                    break
        finally:
            self._finished = True

    async def close(self) -> None:
        """Close the WebSocket and the owned client session, if any."""
        self._finished = True
        self._listeners.clear()
        if self._reader_task is not None and not self._reader_task.done():
            self._reader_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._reader_task
        if self._send_tasks:
            await asyncio.gather(*self._send_tasks, return_exceptions=True)
        await self._ws.close()
        if self._session is not None:
            await self._session.close()
            self._session = None

    def _receive(self, text: str) -> None:
        try:
            data = json.loads(text)
        except ValueError:
            logger.debug("Dropping non-JSON frame: %s", text[:200])
            return
        self._deliver(MessageEvent(data, self.origin))

    def _send_done(self, task: asyncio.Task[None]) -> None:
        self._send_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("WebSocket send failed: %s", error)


async def connect_websocket(
    url: str,
    origin: str | None = None,
    session: aiohttp.ClientSession | None = None,
) -> WebSocketEndpoint:
    """Open a client WebSocket and return a started endpoint.

    Args:
        url: WebSocket URL (e.g., "ws://localhost:8080/xmsg")
        origin: Origin reported for inbound messages; defaults to the
            URL's scheme and host
        session: Existing client session to use; when omitted one is
            created and closed together with the endpoint

    Raises:
        RpcError: ``internal`` if the connection cannot be opened
    """
    owned = session is None
    client_session = session or aiohttp.ClientSession()
    try:
        ws = await client_session.ws_connect(url)
    except aiohttp.ClientError as e:
        if owned:
            await client_session.close()
        msg = f"WebSocket connection to {url} failed: {e}"
        raise RpcError.internal(msg) from e

    if origin is None:
        parts = urlsplit(url)
        origin = f"{parts.scheme}://{parts.netloc}"

    endpoint = WebSocketEndpoint(ws, origin=origin, session=client_session if owned else None)
    endpoint.start()
    return endpoint

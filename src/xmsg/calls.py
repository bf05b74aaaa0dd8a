"""Outbound call correlation.

Each outbound call gets a fresh id and a pending entry holding the future the
caller awaits and the timer that fails it. The entry is removed by whichever
comes first: a matching ``rpc_response`` or the timer.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from xmsg.config import CALL_TIMEOUT
from xmsg.error import RpcError
from xmsg.ids import IdGenerator
from xmsg.wire import RpcCall, RpcResponse, WireMessage

logger = logging.getLogger(__name__)


@dataclass
class PendingCall:
    """One outstanding outbound call."""

    id: str
    method: str
    future: asyncio.Future[Any]
    timer: asyncio.TimerHandle | None = None


class CallTable:
    """Tracks in-flight outbound calls by id."""

    def __init__(
        self,
        send: Callable[[WireMessage], None],
        ids: IdGenerator | None = None,
        timeout: float = CALL_TIMEOUT,
    ) -> None:
        """Initialize the table.

        Args:
            send: Fire-and-forget send for outgoing messages
            ids: Identifier generator for call ids
            timeout: Seconds before an unanswered call fails
        """
        self._send = send
        self._ids = ids or IdGenerator()
        self.timeout = timeout
        self._pending: dict[str, PendingCall] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, call_id: object) -> bool:
        return call_id in self._pending

    async def call(self, method: str, params: list[Any], session_id: str) -> Any:
        """Send a call request and wait for its result.

        Args:
            method: Remote method name
            params: Positional arguments
            session_id: Session the request belongs to

        Returns:
            The remote function's return value

        Raises:
            RpcError: ``remote`` if the peer reported a failure, ``timeout``
                if no response arrived in time
        """
        loop = asyncio.get_running_loop()
        call_id = self._ids.call_id(self._pending)
        future: asyncio.Future[Any] = loop.create_future()
        pending = PendingCall(call_id, method, future)
        self._pending[call_id] = pending

        pending.timer = loop.call_later(self.timeout, self._expire, pending)
        future.add_done_callback(lambda _: self._forget(pending))

        try:
            self._send(RpcCall(call_id, method, list(params), session_id))
        except Exception:
            future.cancel()
            raise
        return await future

    def resolve(self, response: RpcResponse) -> bool:
        """Settle the pending call matching ``response``.

        Returns:
            False if no call with that id is pending (already settled, timed
            out, or never issued); the response is then discarded.
        """
        pending = self._pending.pop(response.id, None)
        if pending is None:
            logger.debug("Discarding response for unknown call id=%s", response.id)
            return False

        if pending.timer is not None:
            pending.timer.cancel()
        if pending.future.done():
            return True

        if response.failed:
            pending.future.set_exception(RpcError.remote(str(response.error)))
        else:
            pending.future.set_result(response.result)
        return True

    def abandon_all(self) -> None:
        """Drop every pending entry without settling it.

        Late responses for abandoned calls are discarded. Their timers keep
        running, so each caller still fails with a timeout.
        """
        if self._pending:
            logger.debug("Abandoning %d pending call(s)", len(self._pending))
        self._pending.clear()

    def _expire(self, pending: PendingCall) -> None:
        self._pending.pop(pending.id, None)
        if not pending.future.done():
            pending.future.set_exception(
                RpcError.timeout(f"RPC call timed out: {pending.method}")
            )

    def _forget(self, pending: PendingCall) -> None:
        # Caller cancelled, or the call settled: drop the entry and its timer.
        if self._pending.get(pending.id) is pending:
            del self._pending[pending.id]
        if pending.timer is not None:
            pending.timer.cancel()

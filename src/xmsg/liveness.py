"""Keep-alive emission and remote-context liveness polling.

The two activities are independent:

- The heartbeat runs while the session is connected and sends
  ``rpc_keep_alive`` on a fixed interval. It is advisory: inbound keep-alives
  are never used to declare the peer dead.
- The target watch runs for the peer's whole life and polls the transport's
  ``closed`` flag. The first time it reads true it reports the closure once
  and stops for good.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import suppress

from xmsg.config import KEEP_ALIVE_INTERVAL, WINDOW_CHECK_INTERVAL

logger = logging.getLogger(__name__)


class LivenessMonitor:
    """Runs the heartbeat and target-watch loops on the running event loop."""

    def __init__(
        self,
        is_closed: Callable[[], bool],
        is_connected: Callable[[], bool],
        send_keep_alive: Callable[[], None],
        on_target_closed: Callable[[], None],
        keep_alive_interval: float = KEEP_ALIVE_INTERVAL,
        window_check_interval: float = WINDOW_CHECK_INTERVAL,
    ) -> None:
        self._is_closed = is_closed
        self._is_connected = is_connected
        self._send_keep_alive = send_keep_alive
        self._on_target_closed = on_target_closed
        self.keep_alive_interval = keep_alive_interval
        self.window_check_interval = window_check_interval
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._watch_task: asyncio.Task[None] | None = None
        self._target_closed = False

    @property
    def heartbeat_running(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    @property
    def watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    @property
    def target_closed(self) -> bool:
        """True once the target watch has observed the remote context close."""
        return self._target_closed

    def start_heartbeat(self) -> None:
        """Start sending keep-alives. No-op if already running."""
        if self.heartbeat_running:
            return
        self._heartbeat_task = asyncio.get_running_loop().create_task(
            self._heartbeat_loop()
        )

    def stop_heartbeat(self) -> None:
        """Stop sending keep-alives. Safe to call repeatedly."""
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    def start_target_watch(self) -> None:
        """Start polling for remote-context closure. Never restarts after closure."""
        if self.watching or self._target_closed:
            return
        self._watch_task = asyncio.get_running_loop().create_task(self._watch_loop())

    def stop_target_watch(self) -> None:
        """Stop polling. Safe to call repeatedly."""
        task, self._watch_task = self._watch_task, None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    async def aclose(self) -> None:
        """Stop both loops and wait for them to finish."""
        tasks = [t for t in (self._heartbeat_task, self._watch_task) if t is not None]
        self.stop_heartbeat()
        self.stop_target_watch()
        for task in tasks:
            if task is _current_task():
                continue
            with suppress(asyncio.CancelledError):
                await task

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.keep_alive_interval)
            if not self._is_connected():
                logger.debug("Heartbeat found session disconnected, stopping")
                self._heartbeat_task = None
                return
            try:
                self._send_keep_alive()
            except Exception:
                # A failed keep-alive is not fatal
                logger.exception("Failed to send keep-alive")

    async def _watch_loop(self) -> None:
        while True:
            await asyncio.sleep(self.window_check_interval)
            if self._is_closed():
                self._target_closed = True
                self._watch_task = None
                self._on_target_closed()
                return


def _current_task() -> asyncio.Task[object] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None

"""Tests for LivenessMonitor - heartbeat and target watch."""

import asyncio

import pytest

from xmsg.liveness import LivenessMonitor


class State:
    """Mutable flags shared with the monitor."""

    def __init__(self) -> None:
        self.closed = False
        self.connected = True
        self.keep_alives = 0
        self.closures = 0

    def monitor(self, keep_alive: float = 0.01, check: float = 0.01) -> LivenessMonitor:
        return LivenessMonitor(
            is_closed=lambda: self.closed,
            is_connected=lambda: self.connected,
            send_keep_alive=self.send,
            on_target_closed=self.on_closed,
            keep_alive_interval=keep_alive,
            window_check_interval=check,
        )

    def send(self) -> None:
        self.keep_alives += 1

    def on_closed(self) -> None:
        self.closures += 1


class TestHeartbeat:
    """Keep-alive emission."""

    @pytest.mark.asyncio
    async def test_sends_while_connected(self):
        state = State()
        monitor = state.monitor(keep_alive=0.01)
        monitor.start_heartbeat()
        await asyncio.sleep(0.055)
        await monitor.aclose()

        assert state.keep_alives >= 3

    @pytest.mark.asyncio
    async def test_stops_itself_when_disconnected(self):
        state = State()
        monitor = state.monitor(keep_alive=0.01)
        monitor.start_heartbeat()
        state.connected = False
        await asyncio.sleep(0.03)

        assert state.keep_alives == 0
        assert not monitor.heartbeat_running

    @pytest.mark.asyncio
    async def test_start_twice_runs_one_loop(self):
        state = State()
        monitor = state.monitor(keep_alive=0.02)
        monitor.start_heartbeat()
        monitor.start_heartbeat()
        await asyncio.sleep(0.05)
        await monitor.aclose()

        assert state.keep_alives <= 2

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self):
        state = State()
        monitor = state.monitor(keep_alive=0.01)
        monitor.start_heartbeat()
        monitor.stop_heartbeat()
        monitor.stop_heartbeat()
        await asyncio.sleep(0.03)

        assert state.keep_alives == 0
        assert not monitor.heartbeat_running

    @pytest.mark.asyncio
    async def test_send_failure_does_not_stop_heartbeat(self):
        state = State()
        calls = []

        def flaky_send():
            calls.append(True)
            raise ConnectionError("transport gone")

        monitor = LivenessMonitor(
            is_closed=lambda: False,
            is_connected=lambda: True,
            send_keep_alive=flaky_send,
            on_target_closed=state.on_closed,
            keep_alive_interval=0.01,
        )
        monitor.start_heartbeat()
        await asyncio.sleep(0.045)
        assert monitor.heartbeat_running
        await monitor.aclose()
        assert len(calls) >= 2


class TestTargetWatch:
    """Remote-context closure detection."""

    @pytest.mark.asyncio
    async def test_reports_closure_once(self):
        state = State()
        monitor = state.monitor(check=0.01)
        monitor.start_target_watch()
        await asyncio.sleep(0.025)
        assert state.closures == 0

        state.closed = True
        await asyncio.sleep(0.05)
        assert state.closures == 1
        assert monitor.target_closed
        assert not monitor.watching

    @pytest.mark.asyncio
    async def test_not_restarted_after_closure(self):
        state = State()
        state.closed = True
        monitor = state.monitor(check=0.01)
        monitor.start_target_watch()
        await asyncio.sleep(0.03)

        monitor.start_target_watch()
        await asyncio.sleep(0.03)
        assert state.closures == 1
        assert not monitor.watching

    @pytest.mark.asyncio
    async def test_runs_regardless_of_connection(self):
        state = State()
        state.connected = False
        monitor = state.monitor(check=0.01)
        monitor.start_target_watch()
        state.closed = True
        await asyncio.sleep(0.03)
        assert state.closures == 1

    @pytest.mark.asyncio
    async def test_aclose_stops_watch(self):
        state = State()
        monitor = state.monitor(check=0.01)
        monitor.start_target_watch()
        await monitor.aclose()

        state.closed = True
        await asyncio.sleep(0.03)
        assert state.closures == 0

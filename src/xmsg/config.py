"""Peer configuration."""

from __future__ import annotations

from dataclasses import dataclass

KEEP_ALIVE_INTERVAL = 30.0
CALL_TIMEOUT = 10.0
WINDOW_CHECK_INTERVAL = 1.0


@dataclass(frozen=True)
class PeerConfig:
    """Configuration for an xmsg peer. All intervals are in seconds."""

    keep_alive_interval: float = KEEP_ALIVE_INTERVAL
    call_timeout: float = CALL_TIMEOUT  # per call, does not disconnect
    window_check_interval: float = WINDOW_CHECK_INTERVAL

    def __post_init__(self) -> None:
        for name in ("keep_alive_interval", "call_timeout", "window_check_interval"):
            value = getattr(self, name)
            if value <= 0:
                msg = f"{name} must be positive, got {value}"
                raise ValueError(msg)

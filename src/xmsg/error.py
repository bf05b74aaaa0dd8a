"""Error types for the xmsg protocol."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """RPC error codes."""

    NOT_CONNECTED = "not_connected"
    REMOTE = "remote"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RpcError(Exception):
    """RPC error with code, message, and optional data."""

    code: ErrorCode
    message: str
    data: Any | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    @staticmethod
    def not_connected(message: str, data: Any | None = None) -> RpcError:
        """Create a NOT_CONNECTED error."""
        return RpcError(ErrorCode.NOT_CONNECTED, message, data)

    @staticmethod
    def remote(message: str, data: Any | None = None) -> RpcError:
        """Create a REMOTE error (the peer's function raised)."""
        return RpcError(ErrorCode.REMOTE, message, data)

    @staticmethod
    def timeout(message: str, data: Any | None = None) -> RpcError:
        """Create a TIMEOUT error."""
        return RpcError(ErrorCode.TIMEOUT, message, data)

    @staticmethod
    def not_found(message: str, data: Any | None = None) -> RpcError:
        """Create a NOT_FOUND error."""
        return RpcError(ErrorCode.NOT_FOUND, message, data)

    @staticmethod
    def internal(message: str, data: Any | None = None) -> RpcError:
        """Create an INTERNAL error."""
        return RpcError(ErrorCode.INTERNAL, message, data)

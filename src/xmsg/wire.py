"""Wire messages for the xmsg protocol.

Every message is a JSON-compatible dict tagged by its ``type`` key:

- ``rpc_call``:          {id, method, params, sessionId}
- ``rpc_response``:      {id, result, error, sessionId}
- ``rpc_connect``:       {sessionId} (reserved)
- ``rpc_connect_ack``:   {sessionId, exposedFunctions}
- ``rpc_connect_error``: {error, sessionId}
- ``rpc_keep_alive``:    {sessionId}

The dicts are what a structured-clone channel (``postMessage``) carries.
Text transports use ``serialize_message`` / ``parse_message_text``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RpcCall:
    """Call request: caller -> callee."""

    id: str
    method: str
    params: list[Any] = field(default_factory=list)
    session_id: str = ""

    def to_json(self) -> dict[str, Any]:
        """Convert to a wire dict."""
        return {
            "type": "rpc_call",
            "id": self.id,
            "method": self.method,
            "params": list(self.params),
            "sessionId": self.session_id,
        }


@dataclass(frozen=True)
class RpcResponse:
    """Call response: callee -> caller.

    ``error`` is None (or empty) on success, otherwise the failure text.
    """

    id: str
    result: Any = None
    error: str | None = None
    session_id: str = ""

    def to_json(self) -> dict[str, Any]:
        """Convert to a wire dict."""
        return {
            "type": "rpc_response",
            "id": self.id,
            "result": self.result,
            "error": self.error,
            "sessionId": self.session_id,
        }

    @property
    def failed(self) -> bool:
        return bool(self.error)


@dataclass(frozen=True)
class RpcConnect:
    """Connect request. Reserved; the handshake uses ``RpcConnectAck``."""

    session_id: str

    def to_json(self) -> dict[str, Any]:
        """Convert to a wire dict."""
        return {"type": "rpc_connect", "sessionId": self.session_id}


@dataclass(frozen=True)
class RpcConnectAck:
    """Handshake announcement, sent in both directions."""

    session_id: str
    exposed_functions: list[str] = field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        """Convert to a wire dict."""
        return {
            "type": "rpc_connect_ack",
            "sessionId": self.session_id,
            "exposedFunctions": list(self.exposed_functions),
        }


@dataclass(frozen=True)
class RpcConnectError:
    """Handshake error announcement. Diagnostic only."""

    error: str
    session_id: str = ""

    def to_json(self) -> dict[str, Any]:
        """Convert to a wire dict."""
        return {
            "type": "rpc_connect_error",
            "error": self.error,
            "sessionId": self.session_id,
        }


@dataclass(frozen=True)
class RpcKeepAlive:
    """Periodic keep-alive."""

    session_id: str

    def to_json(self) -> dict[str, Any]:
        """Convert to a wire dict."""
        return {"type": "rpc_keep_alive", "sessionId": self.session_id}


WireMessage = (
    RpcCall | RpcResponse | RpcConnect | RpcConnectAck | RpcConnectError | RpcKeepAlive
)


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        msg = f"Field {key!r} must be a string"
        raise ValueError(msg)
    return value


def _optional_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        msg = f"Field {key!r} must be a string"
        raise ValueError(msg)
    return value


def _require_list(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key, [])
    if not isinstance(value, list | tuple):
        msg = f"Field {key!r} must be a list"
        raise ValueError(msg)
    return list(value)


def parse_message(data: Any) -> WireMessage:  # noqa: C901
    """Parse a wire dict into a message.

    Raises:
        ValueError: If the value is not a dict, has no known ``type``,
            or is missing required fields
    """
    if not isinstance(data, dict):
        msg = "Wire message must be an object"
        raise ValueError(msg)

    msg_type = data.get("type")
    if not msg_type or not isinstance(msg_type, str):
        msg = "Message type must be a non-empty string"
        raise ValueError(msg)

    match msg_type:
        case "rpc_call":
            return RpcCall(
                id=_require_str(data, "id"),
                method=_require_str(data, "method"),
                params=_require_list(data, "params"),
                session_id=_optional_str(data, "sessionId"),
            )

        case "rpc_response":
            error = data.get("error")
            if not isinstance(error, str):
                # Any falsy error value means success
                error = str(error) if error else None
            return RpcResponse(
                id=_require_str(data, "id"),
                result=data.get("result"),
                error=error,
                session_id=_optional_str(data, "sessionId"),
            )

        case "rpc_connect":
            return RpcConnect(_optional_str(data, "sessionId"))

        case "rpc_connect_ack":
            names = _require_list(data, "exposedFunctions")
            if not all(isinstance(name, str) for name in names):
                msg = "exposedFunctions must contain only strings"
                raise ValueError(msg)
            return RpcConnectAck(_require_str(data, "sessionId"), names)

        case "rpc_connect_error":
            return RpcConnectError(
                error=str(data.get("error") or ""),
                session_id=_optional_str(data, "sessionId"),
            )

        case "rpc_keep_alive":
            return RpcKeepAlive(_optional_str(data, "sessionId"))

        case _:
            msg = f"Unknown message type: {msg_type}"
            raise ValueError(msg)


def serialize_message(msg: WireMessage) -> str:
    """Serialize a message to JSON text."""
    return json.dumps(msg.to_json())


def parse_message_text(data: str | bytes) -> WireMessage:
    """Parse a message from JSON text."""
    try:
        value = json.loads(data)
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON: {e}"
        raise ValueError(msg) from e
    return parse_message(value)

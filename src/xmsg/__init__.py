"""xmsg - bidirectional RPC between isolated contexts.

Two peers joined only by a fire-and-forget message channel (two windows, a
host and an embedded frame, two processes over a WebSocket) expose named
functions to each other and call them as local coroutines.
"""

from xmsg.config import PeerConfig
from xmsg.dispatch import exposed_methods
from xmsg.error import ErrorCode, RpcError
from xmsg.ids import IdGenerator
from xmsg.peer import Peer
from xmsg.session import SessionState
from xmsg.transports import (
    ChannelPort,
    MessageChannel,
    MessageEvent,
    MessageTarget,
    WebSocketEndpoint,
    connect_websocket,
)

__version__ = "0.1.0"

__all__ = [
    # Peer
    "Peer",
    "PeerConfig",
    "SessionState",
    "exposed_methods",
    # Transports
    "MessageTarget",
    "MessageEvent",
    "MessageChannel",
    "ChannelPort",
    "WebSocketEndpoint",
    "connect_websocket",
    # Core types
    "IdGenerator",
    # Errors
    "RpcError",
    "ErrorCode",
]

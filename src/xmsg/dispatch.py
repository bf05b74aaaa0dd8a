"""Inbound call dispatch against the locally exposed functions."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any

from xmsg.error import RpcError
from xmsg.wire import RpcCall, RpcResponse

logger = logging.getLogger(__name__)

ExposedFunctions = Mapping[str, Callable[..., Any]]


def exposed_methods(target: object) -> dict[str, Callable[..., Any]]:
    """Build a function registry from the public methods of ``target``.

    Methods starting with underscore are not exposed.

    Example:
        class Calculator:
            def add(self, a, b):
                return a + b

        peer = Peer(port, exposed_functions=exposed_methods(Calculator()))
    """
    registry: dict[str, Callable[..., Any]] = {}
    for name in dir(target):
        if name.startswith("_"):
            continue
        value = getattr(target, name)
        if callable(value):
            registry[name] = value
    return registry


def error_text(error: BaseException) -> str:
    """Text relayed to the caller for a failed call."""
    if isinstance(error, RpcError):
        text = error.message
    else:
        text = str(error)
    return text or type(error).__name__


class Dispatcher:
    """Executes inbound call requests against an exposed-function registry."""

    def __init__(self, functions: ExposedFunctions | None = None) -> None:
        self._functions: dict[str, Callable[..., Any]] = dict(functions or {})

    @property
    def names(self) -> list[str]:
        """Names of the exposed functions, in registration order."""
        return list(self._functions)

    async def dispatch(self, request: RpcCall, session_id: str) -> RpcResponse | None:
        """Run ``request`` and build its response.

        Args:
            request: The inbound call
            session_id: The receiver's current session id

        Returns:
            The response to send, or None if the request belongs to another
            session and must be ignored
        """
        if request.session_id != session_id:
            logger.debug(
                "Ignoring call %s for foreign session %s",
                request.id,
                request.session_id,
            )
            return None

        try:
            result = await self._invoke(request.method, request.params)
        except Exception as e:
            logger.debug("Call %s (%s) failed: %s", request.id, request.method, e)
            return RpcResponse(
                request.id, None, error_text(e), session_id=request.session_id
            )

        return RpcResponse(request.id, result, None, session_id=request.session_id)

    async def _invoke(self, method: str, params: list[Any]) -> Any:
        func = self._functions.get(method)
        if func is None:
            msg = f"{method} is not a function"
            raise RpcError.not_found(msg)

        result = func(*params)

        # Handle async functions
        if inspect.isawaitable(result):
            return await result

        return result

"""Local stubs for the functions a remote peer exposes.

A ``RemoteProxies`` instance maps each advertised method name to a
``RemoteFunction``. Stubs can be reached by item or by attribute:

    total = await peer.remote["add"](2, 3)
    total = await peer.remote.add(2, 3)

The set is not a ``Mapping``: it defines no ``get``, ``keys`` or similar
helpers, so a remote method with one of those names is still reached by
attribute.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Iterator
from typing import Any

Invoke = Callable[..., Awaitable[Any]]


class RemoteFunction:
    """Callable stub that issues a call to one remote method."""

    def __init__(self, name: str, invoke: Invoke) -> None:
        self.name = name
        self._invoke = invoke

    async def __call__(self, *args: Any) -> Any:
        return await self._invoke(self.name, *args)

    def __repr__(self) -> str:
        return f"RemoteFunction({self.name!r})"


class RemoteProxies:
    """Read-only set of stubs keyed by remote method name."""

    def __init__(self, names: Iterable[str] = (), invoke: Invoke | None = None) -> None:
        """Initialize the proxy set.

        Args:
            names: Method names the peer advertised
            invoke: ``invoke(name, *args)`` coroutine that performs the call
        """
        functions: dict[str, RemoteFunction] = {}
        if invoke is not None:
            for name in names:
                functions[name] = RemoteFunction(name, invoke)
        # Use object.__setattr__ to keep attribute lookup for stubs only
        object.__setattr__(self, "_functions", functions)

    def __getitem__(self, name: str) -> RemoteFunction:
        return self._functions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._functions)

    def __len__(self) -> int:
        return len(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __getattr__(self, name: str) -> RemoteFunction:
        if name.startswith("_"):
            # Avoid infinite recursion for private attrs
            msg = f"'{type(self).__name__}' object has no attribute '{name}'"
            raise AttributeError(msg)
        try:
            return self._functions[name]
        except KeyError:
            msg = f"Remote peer does not expose {name!r}"
            raise AttributeError(msg) from None

    def __setattr__(self, name: str, value: Any) -> None:
        msg = "RemoteProxies is read-only"
        raise AttributeError(msg)

    def __repr__(self) -> str:
        return f"RemoteProxies({sorted(self._functions)})"

"""Session and call identifier generation.

Identifiers are random UUID4 strings. Both sides of a link mint their own
ids without coordination, so they must be collision-resistant rather than
sequential.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Container


class IdGenerator:
    """Generates unique identifiers for sessions and call requests."""

    def __init__(self, factory: Callable[[], uuid.UUID | str] = uuid.uuid4) -> None:
        self._factory = factory

    def new_id(self) -> str:
        """Return a fresh identifier."""
        return str(self._factory())

    def session_id(self) -> str:
        """Allocate a tentative session id."""
        return self.new_id()

    def call_id(self, in_use: Container[str] = ()) -> str:
        """Allocate a call id that is not in ``in_use``.

        Args:
            in_use: Ids currently pending, which must not be handed out again
        """
        call_id = self.new_id()
        while call_id in in_use:
            call_id = self.new_id()
        return call_id

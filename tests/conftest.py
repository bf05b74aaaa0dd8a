"""Shared fixtures: a recording transport that never delivers anything."""

from typing import Any

import pytest

from xmsg.transports import MessageEvent


class FakeTarget:
    """Transport double that records outgoing messages.

    Inbound messages are injected by the test with ``inject``, which calls
    the listeners synchronously.
    """

    def __init__(self) -> None:
        self.sent: list[tuple[dict[str, Any], str]] = []
        self.closed = False
        self.listeners: list[Any] = []

    def post_message(self, message: dict[str, Any], target_origin: str = "*") -> None:
        self.sent.append((message, target_origin))

    def add_listener(self, listener: Any) -> None:
        self.listeners.append(listener)

    def remove_listener(self, listener: Any) -> None:
        self.listeners.remove(listener)

    def inject(self, data: Any, origin: str = "null") -> None:
        for listener in list(self.listeners):
            listener(MessageEvent(data, origin))

    @property
    def messages(self) -> list[dict[str, Any]]:
        return [message for message, _ in self.sent]

    def of_type(self, msg_type: str) -> list[dict[str, Any]]:
        return [m for m in self.messages if m.get("type") == msg_type]


@pytest.fixture
def fake_target() -> FakeTarget:
    return FakeTarget()

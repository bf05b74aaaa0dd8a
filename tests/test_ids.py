"""Tests for session and call id generation."""

import uuid

from xmsg.ids import IdGenerator


class TestIdGenerator:
    """Tests for IdGenerator."""

    def test_ids_are_uuid_strings(self) -> None:
        ids = IdGenerator()
        value = ids.new_id()
        assert isinstance(value, str)
        assert uuid.UUID(value).version == 4

    def test_session_ids_differ(self) -> None:
        ids = IdGenerator()
        assert ids.session_id() != ids.session_id()

    def test_custom_factory(self) -> None:
        values = iter(["a", "b"])
        ids = IdGenerator(lambda: next(values))
        assert ids.session_id() == "a"
        assert ids.call_id() == "b"

    def test_call_id_skips_ids_in_use(self) -> None:
        """A pending id is never handed out again."""
        values = iter(["x", "x", "y"])
        ids = IdGenerator(lambda: next(values))
        assert ids.call_id(in_use={"x"}) == "y"

    def test_many_ids_unique(self) -> None:
        ids = IdGenerator()
        generated = {ids.new_id() for _ in range(1000)}
        assert len(generated) == 1000

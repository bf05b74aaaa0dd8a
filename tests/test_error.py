"""Tests for error types."""

import pytest

from xmsg.error import ErrorCode, RpcError


class TestErrorCode:
    """Tests for ErrorCode enum."""

    def test_error_codes(self) -> None:
        """Test all error code values."""
        assert str(ErrorCode.NOT_CONNECTED) == "not_connected"
        assert str(ErrorCode.REMOTE) == "remote"
        assert str(ErrorCode.TIMEOUT) == "timeout"
        assert str(ErrorCode.NOT_FOUND) == "not_found"
        assert str(ErrorCode.INTERNAL) == "internal"


class TestRpcError:
    """Tests for RpcError."""

    def test_basic_error(self) -> None:
        error = RpcError(ErrorCode.REMOTE, "boom")
        assert error.code == ErrorCode.REMOTE
        assert error.message == "boom"
        assert error.data is None

    def test_error_with_data(self) -> None:
        data = {"method": "add"}
        error = RpcError(ErrorCode.TIMEOUT, "RPC call timed out: add", data)
        assert error.data == data

    @pytest.mark.parametrize(
        ("factory", "code"),
        [
            (RpcError.not_connected, ErrorCode.NOT_CONNECTED),
            (RpcError.remote, ErrorCode.REMOTE),
            (RpcError.timeout, ErrorCode.TIMEOUT),
            (RpcError.not_found, ErrorCode.NOT_FOUND),
            (RpcError.internal, ErrorCode.INTERNAL),
        ],
    )
    def test_named_constructors(self, factory, code) -> None:
        """Each convenience constructor sets its code."""
        error = factory("message")
        assert error.code == code
        assert error.message == "message"

    def test_str_representation(self) -> None:
        error = RpcError.timeout("RPC call timed out: add")
        assert str(error) == "timeout: RPC call timed out: add"

    def test_exception_behavior(self) -> None:
        """Test that RpcError can be raised as an exception."""
        with pytest.raises(RpcError) as exc_info:
            msg = "Not connected. Call connect() first."
            raise RpcError.not_connected(msg)

        assert exc_info.value.code == ErrorCode.NOT_CONNECTED

"""Integration tests: two peers over a real aiohttp WebSocket."""

import asyncio

import pytest
from aiohttp import test_utils, web

from xmsg import ErrorCode, Peer, PeerConfig, RpcError, WebSocketEndpoint, connect_websocket

CONFIG = PeerConfig(keep_alive_interval=0.05, call_timeout=2.0, window_check_interval=0.02)


class Calculator:
    """Functions exposed by the server side."""

    def __init__(self) -> None:
        self.calls = 0

    def add(self, a, b):
        self.calls += 1
        return a + b

    async def divide(self, a, b):
        if b == 0:
            msg = "Cannot divide by zero"
            raise ZeroDivisionError(msg)
        return a / b


def make_app(calculator: Calculator, peers: list[Peer]) -> web.Application:
    async def handler(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        endpoint = WebSocketEndpoint(ws, origin=request.headers.get("Origin", "null"))
        async with Peer(
            endpoint,
            exposed_functions={"add": calculator.add, "divide": calculator.divide},
            config=CONFIG,
        ) as peer:
            peers.append(peer)
            await endpoint.run()
        return ws

    app = web.Application()
    app.router.add_get("/xmsg", handler)
    return app


@pytest.mark.asyncio
async def test_call_over_websocket():
    calculator = Calculator()
    peers: list[Peer] = []
    async with test_utils.TestServer(make_app(calculator, peers)) as server:
        endpoint = await connect_websocket(str(server.make_url("/xmsg")))
        async with endpoint, Peer(
            endpoint, exposed_functions={"echo": lambda x: x}, config=CONFIG
        ) as client:
            await asyncio.wait_for(client.connect(), 2)

            assert await client.remote.add(2, 3) == 5
            assert await client.remote.divide(9, 3) == 3
            assert calculator.calls == 1

            with pytest.raises(RpcError) as exc_info:
                await client.remote.divide(1, 0)
            assert exc_info.value.code == ErrorCode.REMOTE
            assert exc_info.value.message == "Cannot divide by zero"

            # The server side can call back into the client
            [server_peer] = peers
            assert server_peer.session_id == client.session_id
            assert await server_peer.remote.echo("hi") == "hi"


@pytest.mark.asyncio
async def test_client_close_disconnects_server_peer():
    calculator = Calculator()
    peers: list[Peer] = []
    async with test_utils.TestServer(make_app(calculator, peers)) as server:
        endpoint = await connect_websocket(str(server.make_url("/xmsg")))
        client = Peer(endpoint, config=CONFIG)
        await asyncio.wait_for(client.connect(), 2)
        await asyncio.sleep(0.05)
        [server_peer] = peers
        assert server_peer.connected

        await client.close()
        await endpoint.close()
        assert endpoint.closed

        for _ in range(50):
            if not server_peer.connected:
                break
            await asyncio.sleep(0.02)
        assert not server_peer.connected


@pytest.mark.asyncio
async def test_endpoint_origin_defaults_to_url():
    peers: list[Peer] = []
    async with test_utils.TestServer(make_app(Calculator(), peers)) as server:
        url = server.make_url("/xmsg")
        endpoint = await connect_websocket(str(url))
        async with endpoint:
            assert endpoint.origin == f"http://{url.host}:{url.port}"
            assert not endpoint.closed


@pytest.mark.asyncio
async def test_connect_failure_is_internal_error():
    peers: list[Peer] = []
    async with test_utils.TestServer(make_app(Calculator(), peers)) as server:
        with pytest.raises(RpcError) as exc_info:
            await connect_websocket(str(server.make_url("/missing")))
    assert exc_info.value.code == ErrorCode.INTERNAL
    assert "/missing" in exc_info.value.message

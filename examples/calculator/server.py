import asyncio
import logging

from aiohttp import web

from xmsg import Peer, WebSocketEndpoint, exposed_methods


class Calculator:
    """Calculator whose public methods are exposed to the connected peer."""

    async def add(self, a: int, b: int) -> int:
        """Add two numbers."""
        return a + b

    async def subtract(self, a: int, b: int) -> int:
        """Subtract b from a."""
        return a - b

    def divide(self, a: float, b: float) -> float:
        return a / b


async def announce_ready(peer: Peer) -> None:
    # The client exposes "log"; call it once the handshake is done
    await peer.connect()
    await peer.remote.log("calculator ready")


async def handle(request: web.Request) -> web.WebSocketResponse:
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    endpoint = WebSocketEndpoint(ws, origin=request.headers.get("Origin", "null"))
    async with Peer(endpoint, exposed_functions=exposed_methods(Calculator())) as peer:
        greeting = asyncio.create_task(announce_ready(peer))
        await endpoint.run()
        greeting.cancel()
    return ws


async def main() -> None:
    logging.basicConfig(level=logging.INFO)

    app = web.Application()
    app.router.add_get("/xmsg", handle)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 8080)
    await site.start()

    print("Calculator peer listening on ws://127.0.0.1:8080/xmsg")

    # Keep running
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


if __name__ == "__main__":
    asyncio.run(main())

# ruff: noqa: S311

import asyncio
import random

from xmsg import Peer, RpcError, connect_websocket


def log(message: str) -> None:
    print(f"[server] {message}")


async def main() -> None:
    endpoint = await connect_websocket("ws://127.0.0.1:8080/xmsg")

    async with endpoint, Peer(endpoint, exposed_functions={"log": log}) as peer:
        await peer.connect()

        for _ in range(5):
            x = random.randint(0, 100)
            y = random.randint(0, 100)
            result = await peer.remote.add(x, y)
            print(f"{x} + {y} = {result}")
            await asyncio.sleep(1)

        try:
            await peer.remote.divide(1, 0)
        except RpcError as e:
            print(f"divide failed remotely: {e.message}")


if __name__ == "__main__":
    asyncio.run(main())

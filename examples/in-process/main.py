"""Host and embedded frame in one process, joined by a MessageChannel.

Both sides connect at the same time with different tentative session ids;
they agree on one id before any call is dispatched.
"""

import asyncio
import logging

from xmsg import MessageChannel, Peer

HOST_ORIGIN = "https://host.example"
FRAME_ORIGIN = "https://frame.example"


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    channel = MessageChannel(HOST_ORIGIN, FRAME_ORIGIN)

    host = Peer(
        channel.port1,
        FRAME_ORIGIN,
        exposed_functions={"title": lambda: "Host page", "add": lambda a, b: a + b},
    )
    frame = Peer(
        channel.port2,
        HOST_ORIGIN,
        exposed_functions={"resize": lambda w, h: f"resized to {w}x{h}"},
    )

    async with host, frame:
        await asyncio.gather(host.connect(), frame.connect())
        print(f"session: host={host.session_id} frame={frame.session_id}")

        print(await frame.remote.title())
        print(await frame.remote.add(2, 3))
        print(await host.remote.resize(640, 480))

        # Closing the frame's side makes the host disconnect on its next check
        channel.port2.close()
        await asyncio.sleep(1.5)
        print(f"host connected after frame closed: {host.connected}")


if __name__ == "__main__":
    asyncio.run(main())

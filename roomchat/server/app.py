"""The chat server: accepts connections and runs a session for each."""

from __future__ import annotations

import argparse
import asyncio
import signal
from pathlib import Path

from roomchat.server.manager import RoomManager, build_room_manager, load_room_metadata
from roomchat.server.session import handle_user_session

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8085


async def serve(
    room_manager: RoomManager, host: str, port: int, quit_event: asyncio.Event
) -> None:
    """Accept clients until ``quit_event`` is set, then wait for their sessions to end."""
    sessions: set[asyncio.Task] = set()

    def finish(task: asyncio.Task) -> None:
        sessions.discard(task)
        if not task.cancelled():
            task.exception()

    def on_connect(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.create_task(handle_user_session(room_manager, quit_event, reader, writer))
        sessions.add(task)
        task.add_done_callback(finish)

    server = await asyncio.start_server(on_connect, host, port)
    print(f"Listening on port {port}", flush=True)
    try:
        await quit_event.wait()
        print("Server interrupted. Gracefully shutting down.", flush=True)
    finally:
        server.close()
        if sessions:
            await asyncio.gather(*list(sessions), return_exceptions=True)
        await server.wait_closed()
    print("Server shut down", flush=True)


async def _run(room_manager: RoomManager, host: str, port: int) -> None:
    quit_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, quit_event.set)
    except (NotImplementedError, RuntimeError):
        pass
    await serve(room_manager, host, port, quit_event)


def main(argv: list[str] | None = None) -> int:
    """Run the chat server from the command line."""
    parser = argparse.ArgumentParser(prog="roomchat-server", description="Run the chat server.")
    parser.add_argument(
        "--rooms",
        required=True,
        type=Path,
        help="JSON file listing the rooms as objects with 'name' and 'description'",
    )
    parser.add_argument("--host", default=DEFAULT_HOST, help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    args = parser.parse_args(argv)

    metadata = load_room_metadata(args.rooms.read_text(encoding="utf-8"))
    room_manager = build_room_manager(metadata)
    asyncio.run(_run(room_manager, args.host, args.port))
    return 0
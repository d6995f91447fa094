"""Line-delimited JSON transport of commands and events over asyncio streams."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import Callable, Generic, TypeVar

from roomchat.commands import ProtocolError, UserCommand, decode_command, encode_command
from roomchat.events import Event, decode_event, encode_event

NEW_LINE = b"\r\n"

T = TypeVar("T")


class TransportError(Exception):
    """Raised when a message cannot be read from or written to a stream."""


class _MessageStream(Generic[T]):
    """Async iterator of messages, one per line.

    A line that cannot be read or decoded raises TransportError from that
    step only; the stream can still be advanced afterwards.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        decode: Callable[[str], T],
        read_failure: str,
        decode_failure: str,
    ) -> None:
        self._reader = reader
        self._decode = decode
        self._read_failure = read_failure
        self._decode_failure = decode_failure

    def __aiter__(self) -> _MessageStream[T]:
        return self

    async def __anext__(self) -> T:
        try:
            raw = await self._reader.readline()
        except (OSError, ValueError) as exc:
            raise TransportError(self._read_failure) from exc
        if not raw:
            raise StopAsyncIteration
        try:
            line = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TransportError(self._read_failure) from exc
        line = line.removesuffix("\n").removesuffix("\r")
        try:
            return self._decode(line)
        except ProtocolError as exc:
            raise TransportError(f"{self._decode_failure}: {exc}") from exc


class _LineWriter:
    def __init__(self, writer: asyncio.StreamWriter) -> None:
        self._writer = writer

    async def _send(self, text: str) -> None:
        try:
            self._writer.write(text.encode("utf-8") + NEW_LINE)
            await self._writer.drain()
        except OSError as exc:
            raise TransportError(f"could not write to the stream: {exc}") from exc

    async def _close(self) -> None:
        self._writer.close()
        with suppress(OSError):
            await self._writer.wait_closed()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self._close()


class CommandWriter(_LineWriter):
    """Writes user commands to the server, one JSON line each."""

    async def write(self, command: UserCommand) -> None:
        """Send one command."""
        await self._send(encode_command(command))

    async def close(self) -> None:
        """Close the underlying stream."""
        await self._close()


class EventWriter(_LineWriter):
    """Writes events to a client, one JSON line each."""

    async def write(self, event: Event) -> None:
        """Send one event."""
        await self._send(encode_event(event))

    async def close(self) -> None:
        """Close the underlying stream."""
        await self._close()


def read_events(reader: asyncio.StreamReader) -> _MessageStream[Event]:
    """Iterate over the events the server sends."""
    return _MessageStream(
        reader,
        decode_event,
        "could not read line from the server",
        "failed to deserialize event from the server",
    )


def read_commands(reader: asyncio.StreamReader) -> _MessageStream[UserCommand]:
    """Iterate over the commands a client sends."""
    return _MessageStream(
        reader,
        decode_command,
        "could not read line from the client",
        "failed to deserialize command from client",
    )


def split_client_stream(
    reader: asyncio.StreamReader, writer: asyncio.StreamWriter
) -> tuple[_MessageStream[Event], CommandWriter]:
    """Turn a client connection into an event stream and a command writer."""
    return read_events(reader), CommandWriter(writer)


def split_server_stream(
    reader: asyncio.StreamReader, writer: asyncio.StreamWriter
) -> tuple[_MessageStream[UserCommand], EventWriter]:
    """Turn a server-side connection into a command stream and an event writer."""
    return read_commands(reader), EventWriter(writer)


async def open_connection(addr: str) -> tuple[_MessageStream[Event], CommandWriter]:
    """Connect to a server at "host:port" and split the connection."""
    host, sep, port_text = addr.strip().rpartition(":")
    host = host.removeprefix("[").removesuffix("]")
    if not sep or not host or not port_text.isdigit() or int(port_text) > 65535:
        raise TransportError(f"invalid address '{addr}'")
    try:
        reader, writer = await asyncio.open_connection(host, int(port_text))
    except OSError as exc:
        raise TransportError(str(exc) or f"could not connect to '{addr}'") from exc
    return split_client_stream(reader, writer)
"""User commands sent from a chat client to the server, and their wire format."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Union

TAG_KEY = "_ct"


class ProtocolError(ValueError):
    """Raised when a wire message cannot be decoded."""


@dataclass(frozen=True)
class JoinRoomCommand:
    """Join the named room."""

    room: str


@dataclass(frozen=True)
class LeaveRoomCommand:
    """Leave the named room."""

    room: str


@dataclass(frozen=True)
class SendMessageCommand:
    """Send a message to the named room."""

    room: str
    content: str


@dataclass(frozen=True)
class QuitCommand:
    """End the whole chat session."""


@dataclass(frozen=True)
class GetHistoryCommand:
    """Ask for the recent history of the named room."""

    room: str


UserCommand = Union[
    JoinRoomCommand,
    LeaveRoomCommand,
    SendMessageCommand,
    QuitCommand,
    GetHistoryCommand,
]


def _dumps(payload: dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _load_object(text: str | bytes) -> dict[str, Any]:
    try:
        obj = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProtocolError(f"invalid JSON: {exc}") from exc
    if not isinstance(obj, dict):
        raise ProtocolError("expected a JSON object")
    return obj


def _string(obj: dict[str, Any], key: str) -> str:
    if key not in obj:
        raise ProtocolError(f"missing field '{key}'")
    value = obj[key]
    if not isinstance(value, str):
        raise ProtocolError(f"field '{key}' must be a string")
    return value


def encode_command(command: UserCommand) -> str:
    """Serialise a command to its compact JSON form."""
    match command:
        case JoinRoomCommand(room=room):
            payload = {TAG_KEY: "join_room", "r": room}
        case LeaveRoomCommand(room=room):
            payload = {TAG_KEY: "leave_room", "r": room}
        case SendMessageCommand(room=room, content=content):
            payload = {TAG_KEY: "send_message", "r": room, "c": content}
        case QuitCommand():
            payload = {TAG_KEY: "quit"}
        case GetHistoryCommand(room=room):
            payload = {TAG_KEY: "get_history", "r": room}
        case _:
            raise TypeError(f"not a user command: {command!r}")
    return _dumps(payload)


_DECODERS: dict[str, Callable[[dict[str, Any]], UserCommand]] = {
    "join_room": lambda obj: JoinRoomCommand(room=_string(obj, "r")),
    "leave_room": lambda obj: LeaveRoomCommand(room=_string(obj, "r")),
    "send_message": lambda obj: SendMessageCommand(
        room=_string(obj, "r"), content=_string(obj, "c")
    ),
    "quit": lambda obj: QuitCommand(),
    "get_history": lambda obj: GetHistoryCommand(room=_string(obj, "r")),
}


def decode_command(text: str | bytes) -> UserCommand:
    """Parse a command from its JSON form; unknown fields are ignored."""
    obj = _load_object(text)
    tag = _string(obj, TAG_KEY)
    decoder = _DECODERS.get(tag)
    if decoder is None:
        raise ProtocolError(f"unknown command type '{tag}'")
    return decoder(obj)
"""Events sent from the chat server to a single client session, and their wire format."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Union

from roomchat.commands import ProtocolError

TAG_KEY = "_et"


class RoomParticipationStatus(str, enum.Enum):
    """A user's new participation status in a room."""

    JOINED = "joined"
    LEFT = "left"


@dataclass
class RoomDetail:
    """Name and description of a room."""

    name: str
    description: str


@dataclass
class LoginSuccessfulReplyEvent:
    """A user has logged in; carries the rooms they may take part in."""

    session_id: str
    user_id: str
    rooms: list[RoomDetail] = field(default_factory=list)


@dataclass
class RoomParticipationBroadcastEvent:
    """A user has joined or left a room."""

    room: str
    user_id: str
    status: RoomParticipationStatus


@dataclass
class UserJoinedRoomReplyEvent:
    """Reply to a user who joined a room, listing the users in it."""

    room: str
    users: list[str] = field(default_factory=list)


@dataclass
class UserMessageBroadcastEvent:
    """A user has sent a message to a room."""

    room: str
    user_id: str
    content: str


@dataclass
class HistoryMessage:
    """One stored message of a room's history."""

    user_id: str
    content: str


@dataclass
class ChatHistoryReplyEvent:
    """The recent message history of a room."""

    room: str
    messages: list[HistoryMessage] = field(default_factory=list)


Event = Union[
    LoginSuccessfulReplyEvent,
    RoomParticipationBroadcastEvent,
    UserJoinedRoomReplyEvent,
    UserMessageBroadcastEvent,
    ChatHistoryReplyEvent,
]


def _string(obj: dict[str, Any], key: str) -> str:
    if key not in obj:
        raise ProtocolError(f"missing field '{key}'")
    value = obj[key]
    if not isinstance(value, str):
        raise ProtocolError(f"field '{key}' must be a string")
    return value


def _objects(obj: dict[str, Any], key: str) -> list[dict[str, Any]]:
    if key not in obj:
        raise ProtocolError(f"missing field '{key}'")
    value = obj[key]
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ProtocolError(f"field '{key}' must be a list of objects")
    return value


def _strings(obj: dict[str, Any], key: str) -> list[str]:
    if key not in obj:
        raise ProtocolError(f"missing field '{key}'")
    value = obj[key]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ProtocolError(f"field '{key}' must be a list of strings")
    return list(value)


def _status(obj: dict[str, Any], key: str) -> RoomParticipationStatus:
    value = _string(obj, key)
    try:
        return RoomParticipationStatus(value)
    except ValueError as exc:
        raise ProtocolError(f"unknown participation status '{value}'") from exc


def encode_event(event: Event) -> str:
    """Serialise an event to its compact JSON form."""
    match event:
        case LoginSuccessfulReplyEvent(session_id=session_id, user_id=user_id, rooms=rooms):
            payload = {
                TAG_KEY: "login_successful",
                "s": session_id,
                "u": user_id,
                "rs": [{"n": room.name, "d": room.description} for room in rooms],
            }
        case RoomParticipationBroadcastEvent(room=room, user_id=user_id, status=status):
            payload = {
                TAG_KEY: "room_participation",
                "r": room,
                "u": user_id,
                "s": RoomParticipationStatus(status).value,
            }
        case UserJoinedRoomReplyEvent(room=room, users=users):
            payload = {TAG_KEY: "user_joined_room", "r": room, "us": list(users)}
        case UserMessageBroadcastEvent(room=room, user_id=user_id, content=content):
            payload = {TAG_KEY: "user_message", "r": room, "u": user_id, "c": content}
        case ChatHistoryReplyEvent(room=room, messages=messages):
            payload = {
                TAG_KEY: "chat_history",
                "r": room,
                "m": [{"u": msg.user_id, "c": msg.content} for msg in messages],
            }
        case _:
            raise TypeError(f"not an event: {event!r}")
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


_DECODERS: dict[str, Callable[[dict[str, Any]], Event]] = {
    "login_successful": lambda obj: LoginSuccessfulReplyEvent(
        session_id=_string(obj, "s"),
        user_id=_string(obj, "u"),
        rooms=[
            RoomDetail(name=_string(room, "n"), description=_string(room, "d"))
            for room in _objects(obj, "rs")
        ],
    ),
    "room_participation": lambda obj: RoomParticipationBroadcastEvent(
        room=_string(obj, "r"), user_id=_string(obj, "u"), status=_status(obj, "s")
    ),
    "user_joined_room": lambda obj: UserJoinedRoomReplyEvent(
        room=_string(obj, "r"), users=_strings(obj, "us")
    ),
    "user_message": lambda obj: UserMessageBroadcastEvent(
        room=_string(obj, "r"), user_id=_string(obj, "u"), content=_string(obj, "c")
    ),
    "chat_history": lambda obj: ChatHistoryReplyEvent(
        room=_string(obj, "r"),
        messages=[
            HistoryMessage(user_id=_string(msg, "u"), content=_string(msg, "c"))
            for msg in _objects(obj, "m")
        ],
    ),
}


def decode_event(text: str | bytes) -> Event:
    """Parse an event from its JSON form; unknown fields are ignored."""
    try:
        obj = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProtocolError(f"invalid JSON: {exc}") from exc
    if not isinstance(obj, dict):
        raise ProtocolError("expected a JSON object")
    tag = _string(obj, TAG_KEY)
    decoder = _DECODERS.get(tag)
    if decoder is None:
        raise ProtocolError(f"unknown event type '{tag}'")
    return decoder(obj)
"""Client-side application state and the actions the user interface emits."""

from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass, field
from typing import Union

from roomchat.events import (
    ChatHistoryReplyEvent,
    Event,
    LoginSuccessfulReplyEvent,
    RoomParticipationBroadcastEvent,
    RoomParticipationStatus,
    UserJoinedRoomReplyEvent,
    UserMessageBroadcastEvent,
)

MAX_MESSAGES_TO_STORE_PER_ROOM = 100


@dataclass(frozen=True)
class ConnectToServerRequest:
    """Ask to connect to the server at ``addr``."""

    addr: str


@dataclass(frozen=True)
class SendMessage:
    """Send a message to the active room."""

    content: str


@dataclass(frozen=True)
class SelectRoom:
    """Make a room the active one, joining it if needed."""

    room: str


@dataclass(frozen=True)
class Exit:
    """Leave the application."""


Action = Union[ConnectToServerRequest, SendMessage, SelectRoom, Exit]


@dataclass(frozen=True)
class ChatMessage:
    """A message a user sent to a room."""

    user_id: str
    content: str


@dataclass(frozen=True)
class Notification:
    """A notice about the room, such as a user joining."""

    text: str


MessageBoxItem = Union[ChatMessage, Notification]


def _message_box() -> deque:
    return deque(maxlen=MAX_MESSAGES_TO_STORE_PER_ROOM)


@dataclass
class RoomData:
    """What the client knows about one room."""

    name: str = ""
    description: str = ""
    users: set[str] = field(default_factory=set)
    messages: deque[MessageBoxItem] = field(default_factory=_message_box)
    has_joined: bool = False
    has_unread: bool = False


class ConnectionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERRORED = "errored"


@dataclass(frozen=True)
class ServerConnectionStatus:
    """Where the connection to the server stands."""

    state: ConnectionState = ConnectionState.UNINITIALIZED
    addr: str | None = None
    err: str | None = None

    def __str__(self) -> str:
        match self.state:
            case ConnectionState.UNINITIALIZED:
                return "Uninitialized"
            case ConnectionState.CONNECTING:
                return "Connecting"
            case ConnectionState.CONNECTED:
                return f"Connected to {self.addr}"
            case _:
                return f"Errored: {self.err}"


@dataclass
class State:
    """The whole state of the chat client."""

    server_connection_status: ServerConnectionStatus = field(
        default_factory=ServerConnectionStatus
    )
    active_room: str | None = None
    user_id: str = ""
    room_data_map: dict[str, RoomData] = field(default_factory=dict)
    timer: int = 0

    def handle_server_event(self, event: Event) -> None:
        """Update the state from an event the server sent."""
        match event:
            case LoginSuccessfulReplyEvent(user_id=user_id, rooms=rooms):
                self.user_id = user_id
                self.room_data_map = {
                    room.name: RoomData(name=room.name, description=room.description)
                    for room in rooms
                }
            case RoomParticipationBroadcastEvent(room=room, user_id=user_id, status=status):
                room_data = self.room_data_map.get(room)
                if room_data is None:
                    return
                status = RoomParticipationStatus(status)
                if status is RoomParticipationStatus.JOINED:
                    room_data.users.add(user_id)
                    if user_id == self.user_id:
                        room_data.has_joined = True
                else:
                    room_data.users.discard(user_id)
                    if user_id == self.user_id:
                        room_data.has_joined = False
                room_data.messages.append(
                    Notification(f"{user_id} has {status.value} the room")
                )
            case UserJoinedRoomReplyEvent(room=room, users=users):
                self.room_data_map[room].users = set(users)
            case UserMessageBroadcastEvent(room=room, user_id=user_id, content=content):
                room_data = self.room_data_map[room]
                room_data.messages.append(ChatMessage(user_id=user_id, content=content))
                if self.active_room is not None and self.active_room != room:
                    room_data.has_unread = True
            case ChatHistoryReplyEvent(room=room, messages=messages):
                room_data = self.room_data_map.get(room)
                if room_data is None:
                    return
                room_data.messages.clear()
                room_data.messages.extend(
                    ChatMessage(user_id=msg.user_id, content=msg.content) for msg in messages
                )

    def mark_connection_request_start(self) -> None:
        self.server_connection_status = ServerConnectionStatus(ConnectionState.CONNECTING)

    def process_connection_request_result(self, result: str | BaseException) -> None:
        """Record the outcome of a connection attempt: an address or the error raised."""
        if isinstance(result, BaseException):
            self.server_connection_status = ServerConnectionStatus(
                ConnectionState.ERRORED, err=str(result)
            )
        else:
            self.server_connection_status = ServerConnectionStatus(
                ConnectionState.CONNECTED, addr=result
            )

    def try_set_active_room(self, room: str) -> RoomData | None:
        """Make ``room`` active and return its data, or return None if it is unknown."""
        room_data = self.room_data_map.get(room)
        if room_data is None:
            return None
        room_data.has_unread = False
        self.active_room = room
        return room_data

    def tick_timer(self) -> None:
        self.timer += 1
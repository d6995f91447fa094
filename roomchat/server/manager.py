"""The set of chat rooms a server offers, and access to them by name."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterable

from roomchat.server.room import (
    ChatRoom,
    ChatRoomMetadata,
    SessionAndUserId,
    Subscription,
    UserSessionHandle,
)


class RoomNotFoundError(LookupError):
    """Raised when a room with the requested name does not exist."""

    def __init__(self, room_name: str) -> None:
        super().__init__(f"room '{room_name}' not found")
        self.room_name = room_name


class RoomManager:
    """Holds the rooms and serialises access to each one."""

    def __init__(self, chat_rooms: Iterable[tuple[ChatRoomMetadata, ChatRoom]]) -> None:
        pairs = list(chat_rooms)
        self._metadata = [metadata for metadata, _ in pairs]
        self._rooms = {metadata.name: room for metadata, room in pairs}
        self._locks = {name: asyncio.Lock() for name in self._rooms}

    def chat_room_metadata(self) -> list[ChatRoomMetadata]:
        """Return the metadata of every room, in creation order."""
        return list(self._metadata)

    def _room(self, room_name: str) -> tuple[ChatRoom, asyncio.Lock]:
        try:
            return self._rooms[room_name], self._locks[room_name]
        except KeyError:
            raise RoomNotFoundError(room_name) from None

    async def join_room(
        self, room_name: str, session_and_user_id: SessionAndUserId
    ) -> tuple[Subscription, UserSessionHandle, list[str]]:
        """Join a session to a room.

        Returns the room's event subscription, the session's handle and the
        users now in the room.
        """
        room, lock = self._room(room_name)
        async with lock:
            subscription, handle = room.join(session_and_user_id)
            return subscription, handle, room.unique_user_ids()

    async def drop_user_session_handle(self, handle: UserSessionHandle) -> None:
        """Take the handle's session out of its room."""
        room, lock = self._room(handle.room)
        async with lock:
            room.leave(handle)

    async def handle_message(self, room_name: str, user_id: str, content: str) -> None:
        """Store and broadcast a message in a room."""
        room, lock = self._room(room_name)
        async with lock:
            room.handle_message(user_id, content)

    async def get_room_history(self, room_name: str, session_id: str) -> None:
        """Broadcast a room's history for the given session."""
        room, lock = self._room(room_name)
        async with lock:
            room.send_history_to_session(session_id)


class RoomManagerBuilder:
    """Collects rooms, refusing duplicate names, and builds a RoomManager."""

    def __init__(self) -> None:
        self._chat_rooms: list[tuple[ChatRoomMetadata, ChatRoom]] = []

    def create_room(self, metadata: ChatRoomMetadata) -> RoomManagerBuilder:
        """Add a room; raises ValueError if one with the same name exists."""
        if any(existing.name == metadata.name for existing, _ in self._chat_rooms):
            raise ValueError("room with the same name already exists")
        self._chat_rooms.append((metadata, ChatRoom(metadata)))
        return self

    def build(self) -> RoomManager:
        return RoomManager(self._chat_rooms)


def load_room_metadata(text: str | bytes) -> list[ChatRoomMetadata]:
    """Parse a JSON list of {"name": ..., "description": ...} objects."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValueError(f"could not parse the chat rooms metadata: {exc}") from exc
    if not isinstance(data, list):
        raise ValueError("chat rooms metadata must be a JSON list")
    rooms = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError("each chat room metadata entry must be an object")
        name, description = entry.get("name"), entry.get("description")
        if not isinstance(name, str) or not isinstance(description, str):
            raise ValueError("chat room metadata needs string 'name' and 'description'")
        rooms.append(ChatRoomMetadata(name=name, description=description))
    return rooms


def build_room_manager(metadata: Iterable[ChatRoomMetadata]) -> RoomManager:
    """Build a RoomManager with one room per metadata entry."""
    builder = RoomManagerBuilder()
    for entry in metadata:
        builder.create_room(entry)
    return builder.build()
"""Server-side handling of one connected user and the rooms they take part in."""

from __future__ import annotations

import asyncio
import secrets
import string
from dataclasses import dataclass

from roomchat.commands import (
    GetHistoryCommand,
    JoinRoomCommand,
    LeaveRoomCommand,
    QuitCommand,
    SendMessageCommand,
    UserCommand,
)
from roomchat.events import (
    Event,
    LoginSuccessfulReplyEvent,
    RoomDetail,
    UserJoinedRoomReplyEvent,
)
from roomchat.server.manager import RoomManager
from roomchat.server.room import (
    BroadcastError,
    SessionAndUserId,
    Subscription,
    UserSessionHandle,
)
from roomchat.transport import EventWriter, TransportError, split_server_stream

SESSION_QUEUE_CAPACITY = 100
USER_ID_LENGTH = 5

_ID_ALPHABET = string.ascii_letters + string.digits + "_-"
_ID_SIZE = 21
_END = object()


class SessionError(Exception):
    """Raised when a user command cannot be carried out for a session."""


def _generate_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SIZE))


@dataclass
class _Participation:
    handle: UserSessionHandle
    subscription: Subscription
    forwarder: asyncio.Task


class ChatSession:
    """The rooms one user session takes part in.

    Events from every joined room are merged into a single queue that
    ``recv`` reads from.
    """

    def __init__(self, session_id: str, user_id: str, room_manager: RoomManager) -> None:
        self.session_and_user_id = SessionAndUserId(session_id=session_id, user_id=user_id)
        self._room_manager = room_manager
        self._joined: dict[str, _Participation] = {}
        self._events: asyncio.Queue[Event] = asyncio.Queue(maxsize=SESSION_QUEUE_CAPACITY)

    @property
    def session_id(self) -> str:
        return self.session_and_user_id.session_id

    @property
    def user_id(self) -> str:
        return self.session_and_user_id.user_id

    async def handle_user_command(self, command: UserCommand) -> None:
        """Carry out a join, leave, send-message or history command."""
        match command:
            case JoinRoomCommand(room=room):
                await self._join(room)
            case SendMessageCommand(room=room, content=content):
                if room in self._joined:
                    await self._room_manager.handle_message(room, self.user_id, content)
            case GetHistoryCommand(room=room):
                await self._room_manager.get_room_history(room, self.session_id)
            case LeaveRoomCommand(room=room):
                participation = self._joined.pop(room, None)
                if participation is not None:
                    await self._cleanup(participation)
            case _:
                pass

    async def _join(self, room: str) -> None:
        if room in self._joined:
            raise SessionError(f"already joined room '{room}'")
        subscription, handle, user_ids = await self._room_manager.join_room(
            room, self.session_and_user_id
        )
        try:
            await self._room_manager.get_room_history(room, self.session_id)
            await self._events.put(UserJoinedRoomReplyEvent(room=room, users=user_ids))
        except BaseException:
            subscription.close()
            raise
        forwarder = asyncio.create_task(self._forward(subscription))
        self._joined[room] = _Participation(handle, subscription, forwarder)

    async def _forward(self, subscription: Subscription) -> None:
        while True:
            try:
                event = await subscription.recv()
            except BroadcastError:
                return
            await self._events.put(event)

    async def leave_all_rooms(self) -> None:
        """Leave every room the session is in."""
        drained = list(self._joined.values())
        self._joined.clear()
        for participation in drained:
            await self._cleanup(participation)

    async def _cleanup(self, participation: _Participation) -> None:
        await self._room_manager.drop_user_session_handle(participation.handle)
        participation.forwarder.cancel()
        participation.subscription.close()
        await asyncio.wait([participation.forwarder])

    def _abort(self) -> None:
        """Stop forwarding events without announcing a departure."""
        for participation in self._joined.values():
            participation.forwarder.cancel()
            participation.subscription.close()
        self._joined.clear()

    async def recv(self) -> Event:
        """Wait for the next event from any joined room."""
        return await self._events.get()


async def _next_command(commands) -> object:
    try:
        return await commands.__anext__()
    except StopAsyncIteration:
        return _END


async def handle_user_session(
    room_manager: RoomManager,
    quit_event: asyncio.Event,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
) -> None:
    """Serve one client connection until it quits, disconnects or the server stops."""
    session_id = _generate_id()
    user_id = _generate_id()[:USER_ID_LENGTH]
    commands, event_writer = split_server_stream(reader, writer)
    try:
        await event_writer.write(
            LoginSuccessfulReplyEvent(
                session_id=session_id,
                user_id=user_id,
                rooms=[
                    RoomDetail(name=metadata.name, description=metadata.description)
                    for metadata in room_manager.chat_room_metadata()
                ],
            )
        )
        chat_session = ChatSession(session_id, user_id, room_manager)
        try:
            await _run_session(chat_session, commands, event_writer, quit_event)
        finally:
            chat_session._abort()
    finally:
        await event_writer.close()


async def _run_session(
    chat_session: ChatSession,
    commands,
    event_writer: EventWriter,
    quit_event: asyncio.Event,
) -> None:
    command_task = asyncio.create_task(_next_command(commands))
    event_task = asyncio.create_task(chat_session.recv())
    quit_task = asyncio.create_task(quit_event.wait())
    try:
        while True:
            done, _ = await asyncio.wait(
                {command_task, event_task, quit_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if command_task in done:
                exc = command_task.exception()
                if exc is not None:
                    if not isinstance(exc, TransportError):
                        raise exc
                    command_task = asyncio.create_task(_next_command(commands))
                    continue
                command = command_task.result()
                if command is _END or isinstance(command, QuitCommand):
                    await chat_session.leave_all_rooms()
                    return
                command_task = asyncio.create_task(_next_command(commands))
                await chat_session.handle_user_command(command)
            elif event_task in done:
                event = event_task.result()
                event_task = asyncio.create_task(chat_session.recv())
                await event_writer.write(event)
            else:
                print("Gracefully shutting down user tcp stream.")
                return
    finally:
        tasks = (command_task, event_task, quit_task)
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)
        for task in tasks:
            if not task.cancelled():
                task.exception()
"""A single chat room: its participants, its broadcast channel and its history."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field

from roomchat.events import (
    ChatHistoryReplyEvent,
    Event,
    HistoryMessage,
    RoomParticipationBroadcastEvent,
    RoomParticipationStatus,
    UserMessageBroadcastEvent,
)
from roomchat.server.registry import UserRegistry

BROADCAST_CHANNEL_CAPACITY = 100
MAX_HISTORY_SIZE = 10


class BroadcastError(Exception):
    """Raised when an event cannot be sent to or received from a broadcast channel."""


class Subscription:
    """One receiver of a broadcast channel.

    Holds at most ``capacity`` pending events; when it falls further behind,
    the oldest events are dropped and the next ``recv`` reports the lag.
    """

    def __init__(self, broadcaster: Broadcaster, capacity: int) -> None:
        self._broadcaster = broadcaster
        self._queue: deque[Event] = deque(maxlen=capacity)
        self._missed = 0
        self._closed = False
        self._ready = asyncio.Event()

    def _push(self, event: Event) -> None:
        if len(self._queue) == self._queue.maxlen:
            self._missed += 1
        self._queue.append(event)
        self._ready.set()

    @property
    def closed(self) -> bool:
        return self._closed

    async def recv(self) -> Event:
        """Wait for the next event.

        Raises BroadcastError once if events were dropped because this
        subscription lagged behind, and whenever it has been closed.
        """
        while True:
            if self._missed:
                missed, self._missed = self._missed, 0
                raise BroadcastError(f"subscription lagged behind by {missed} events")
            if self._queue:
                return self._queue.popleft()
            if self._closed:
                raise BroadcastError("subscription is closed")
            self._ready.clear()
            await self._ready.wait()

    def close(self) -> None:
        """Stop receiving events and drop those still pending."""
        if self._closed:
            return
        self._closed = True
        self._queue.clear()
        self._missed = 0
        self._broadcaster._unsubscribe(self)
        self._ready.set()


class Broadcaster:
    """Fans each event out to every open subscription."""

    def __init__(self, capacity: int = BROADCAST_CHANNEL_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._subscriptions: list[Subscription] = []

    @property
    def receiver_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        """Open a new subscription that sees every event sent from now on."""
        subscription = Subscription(self, self._capacity)
        self._subscriptions.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def send(self, event: Event) -> int:
        """Deliver an event to all subscriptions; return how many got it.

        Raises BroadcastError when there is no subscription to deliver to.
        """
        if not self._subscriptions:
            raise BroadcastError("channel has no active subscribers")
        for subscription in self._subscriptions:
            subscription._push(event)
        return len(self._subscriptions)


@dataclass(frozen=True)
class ChatRoomMetadata:
    """Name and description of a room."""

    name: str
    description: str


@dataclass(frozen=True)
class SessionAndUserId:
    """A user together with one of their sessions."""

    session_id: str
    user_id: str


@dataclass(frozen=True)
class UserSessionHandle:
    """Lets one user/session pair send messages to one room.

    Handed out when the session joins the room.
    """

    room: str
    broadcaster: Broadcaster = field(repr=False, compare=False)
    session_and_user_id: SessionAndUserId

    @property
    def session_id(self) -> str:
        return self.session_and_user_id.session_id

    @property
    def user_id(self) -> str:
        return self.session_and_user_id.user_id

    def send_message(self, content: str) -> None:
        """Broadcast a message from this user to the room."""
        try:
            self.broadcaster.send(
                UserMessageBroadcastEvent(room=self.room, user_id=self.user_id, content=content)
            )
        except BroadcastError as exc:
            raise BroadcastError(f"could not write to the broadcast channel: {exc}") from exc


class ChatRoom:
    """A room with its participants, broadcast channel and recent history."""

    def __init__(self, metadata: ChatRoomMetadata) -> None:
        self.metadata = metadata
        self._broadcaster = Broadcaster(BROADCAST_CHANNEL_CAPACITY)
        self._registry = UserRegistry()
        self._history: deque[HistoryMessage] = deque(maxlen=MAX_HISTORY_SIZE)

    @property
    def name(self) -> str:
        return self.metadata.name

    def history(self) -> list[HistoryMessage]:
        """Return the stored messages, oldest first."""
        return [HistoryMessage(user_id=m.user_id, content=m.content) for m in self._history]

    def unique_user_ids(self) -> list[str]:
        """Return the ids of the users in the room."""
        return self._registry.unique_user_ids()

    def join(self, session_and_user_id: SessionAndUserId) -> tuple[Subscription, UserSessionHandle]:
        """Add a session to the room.

        Announces the user to the room if this is their first session there.
        """
        subscription = self._broadcaster.subscribe()
        handle = UserSessionHandle(
            room=self.name,
            broadcaster=self._broadcaster,
            session_and_user_id=session_and_user_id,
        )
        if self._registry.insert(handle.user_id, handle.session_id):
            self._broadcaster.send(
                RoomParticipationBroadcastEvent(
                    room=self.name,
                    user_id=handle.user_id,
                    status=RoomParticipationStatus.JOINED,
                )
            )
        return subscription, handle

    def leave(self, handle: UserSessionHandle) -> None:
        """Remove a session; announce the departure if it was the user's last."""
        if self._registry.remove(handle.user_id, handle.session_id):
            try:
                self._broadcaster.send(
                    RoomParticipationBroadcastEvent(
                        room=self.name,
                        user_id=handle.user_id,
                        status=RoomParticipationStatus.LEFT,
                    )
                )
            except BroadcastError:
                pass

    def handle_message(self, user_id: str, content: str) -> None:
        """Store a message in the history and broadcast it to the room."""
        self._history.append(HistoryMessage(user_id=user_id, content=content))
        try:
            self._broadcaster.send(
                UserMessageBroadcastEvent(room=self.name, user_id=user_id, content=content)
            )
        except BroadcastError as exc:
            raise BroadcastError(f"could not write to the broadcast channel: {exc}") from exc

    def send_history_to_session(self, session_id: str) -> None:
        """Broadcast the room's history so a session can pick it up."""
        try:
            self._broadcaster.send(
                ChatHistoryReplyEvent(room=self.name, messages=self.history())
            )
        except BroadcastError as exc:
            raise BroadcastError(f"could not send chat history: {exc}") from exc
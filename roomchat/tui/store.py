"""The client's state store: turns user actions and server events into new states."""

from __future__ import annotations

import asyncio
import copy
from typing import Awaitable, Callable

from roomchat.commands import JoinRoomCommand, SendMessageCommand
from roomchat.transport import CommandWriter, TransportError, open_connection
from roomchat.tui.state import (
    Action,
    ConnectToServerRequest,
    Exit,
    SelectRoom,
    SendMessage,
    State,
)
from roomchat.tui.termination import Interrupted, Terminator

TICK_INTERVAL = 1.0

_END = object()

Connector = Callable[[str], Awaitable[tuple]]


async def _next_event(events) -> object:
    try:
        return await events.__anext__()
    except StopAsyncIteration:
        return _END


class StateStore:
    """Owns the application state and publishes a copy of it to ``states`` on every change."""

    def __init__(
        self, connect: Connector = open_connection, tick_interval: float = TICK_INTERVAL
    ) -> None:
        self.states: asyncio.Queue[State] = asyncio.Queue()
        self._connect = connect
        self._tick_interval = tick_interval

    def _publish(self, state: State) -> None:
        self.states.put_nowait(copy.deepcopy(state))

    async def main_loop(self, terminator: Terminator, actions: asyncio.Queue) -> Interrupted:
        """Run until the user exits or termination is requested; return the reason."""
        loop = asyncio.get_running_loop()
        state = State()
        connection: tuple | None = None
        deadline = 0.0
        self._publish(state)

        interrupt_task = asyncio.create_task(terminator.wait())
        action_task = asyncio.create_task(actions.get())
        event_task: asyncio.Task | None = None
        tick_task: asyncio.Task | None = None
        try:
            while True:
                waiting = {interrupt_task, action_task}
                if connection is not None:
                    if event_task is None:
                        event_task = asyncio.create_task(_next_event(connection[0]))
                    if tick_task is None:
                        tick_task = asyncio.create_task(
                            asyncio.sleep(max(0.0, deadline - loop.time()))
                        )
                    waiting |= {event_task, tick_task}

                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)

                if interrupt_task in done:
                    return interrupt_task.result()

                if action_task in done:
                    action = action_task.result()
                    action_task = asyncio.create_task(actions.get())
                    if isinstance(action, Exit):
                        terminator.terminate(Interrupted.USER_INT)
                        return Interrupted.USER_INT
                    if connection is None:
                        if isinstance(action, ConnectToServerRequest):
                            state.mark_connection_request_start()
                            self._publish(state)
                            try:
                                connection = await self._connect(action.addr)
                            except (TransportError, OSError) as exc:
                                state.process_connection_request_result(exc)
                            else:
                                state.process_connection_request_result(action.addr)
                                deadline = loop.time() + self._tick_interval
                    else:
                        await self._perform(state, connection[1], action)
                elif event_task is not None and event_task in done:
                    finished, event_task = event_task, None
                    try:
                        event = finished.result()
                    except TransportError:
                        event = None
                    if event is _END:
                        await connection[1].close()
                        connection = None
                        state = State()
                        if tick_task is not None:
                            tick_task.cancel()
                            tick_task = None
                    elif event is not None:
                        state.handle_server_event(event)
                elif tick_task is not None and tick_task in done:
                    tick_task = None
                    deadline += self._tick_interval
                    state.tick_timer()

                self._publish(state)
        finally:
            tasks = [
                task
                for task in (interrupt_task, action_task, event_task, tick_task)
                if task is not None
            ]
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.wait(pending)
            for task in tasks:
                if not task.cancelled():
                    task.exception()
            if connection is not None:
                await connection[1].close()

    @staticmethod
    async def _perform(state: State, writer: CommandWriter, action: Action) -> None:
        match action:
            case SendMessage(content=content):
                if state.active_room is not None:
                    try:
                        await writer.write(
                            SendMessageCommand(room=state.active_room, content=content)
                        )
                    except TransportError as exc:
                        raise TransportError(f"could not send message: {exc}") from exc
            case SelectRoom(room=room):
                room_data = state.try_set_active_room(room)
                if room_data is not None and not room_data.has_joined:
                    try:
                        await writer.write(JoinRoomCommand(room=room))
                    except TransportError as exc:
                        raise TransportError(f"could not join room: {exc}") from exc
            case _:
                pass
# roomchat

A small multi-room chat system built on asyncio: a TCP server that hosts a
fixed set of rooms, plus the building blocks of a terminal client (its
application state, a state store that talks to the server, and a connect
page drawn with `rich`).

Client and server exchange one JSON object per line, each line ending in
`\r\n`. Commands sent by the client carry a `_ct` tag (`join_room`,
`leave_room`, `send_message`, `get_history`, `quit`); events sent by the
server carry an `_et` tag (`login_successful`, `room_participation`,
`user_joined_room`, `user_message`, `chat_history`).

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Running the server

The server needs a JSON file that lists its rooms, for example `rooms.json`:

```json
[
  {"name": "general", "description": "Talk about anything"},
  {"name": "random", "description": "Off-topic chatter"}
]
```

Then start it:

```
roomchat-server --rooms rooms.json
```

Options:

- `--rooms PATH` (required): the room list; two rooms with the same name are refused.
- `--host HOST`: address to listen on, default `0.0.0.0`.
- `--port PORT`: port to listen on, default `8085`.

On start it prints `Listening on port 8085` (or the chosen port). Every
connecting client is given a random session id and a five-character random
user id, and receives a `login_successful` event with the list of rooms and
their descriptions. Each room keeps its last 10 messages; when a client joins
a room, that history is broadcast to the room as a `chat_history` event,
followed by a `user_joined_room` reply listing the users present.

Press Ctrl+C to stop the server; open sessions are closed and the server
waits for them to finish before exiting.

## Using the library

The wire format and the TCP transport can be used on their own:

```python
import asyncio

from roomchat.commands import JoinRoomCommand, SendMessageCommand
from roomchat.transport import open_connection


async def talk() -> None:
    events, writer = await open_connection("localhost:8085")
    login = await anext(events)
    print("logged in as", login.user_id)
    await writer.write(JoinRoomCommand(room="general"))
    await writer.write(SendMessageCommand(room="general", content="hello"))
    await writer.close()


asyncio.run(talk())
```

- `roomchat.commands` and `roomchat.events`: `encode_command` /
  `decode_command` and `encode_event` / `decode_event` convert between the
  message classes and their JSON lines; malformed input raises
  `ProtocolError`.
- `roomchat.transport`: `split_client_stream` and `split_server_stream` turn
  an asyncio reader/writer pair into an async iterator of incoming messages
  and a `CommandWriter` or `EventWriter`; a line that cannot be read or
  decoded raises `TransportError`.
- `roomchat.server.manager`: `load_room_metadata` parses the room list,
  `RoomManagerBuilder` / `build_room_manager` assemble a `RoomManager`.
- `roomchat.server.app`: `serve(room_manager, host, port, quit_event)` runs
  the listener until `quit_event` is set.

### Client building blocks

- `roomchat.tui.state.State` holds what a client knows: connection status,
  the user id, per-room users and the last 100 messages, unread flags and a
  seconds timer. `handle_server_event` applies an incoming event.
- `roomchat.tui.store.StateStore.main_loop(terminator, actions)` reads
  actions (`ConnectToServerRequest`, `SelectRoom`, `SendMessage`, `Exit`)
  from an `asyncio.Queue`, connects to the server, sends the matching
  commands and puts a copy of the state on `StateStore.states` after every
  change.
- `roomchat.tui.termination`: `create_termination` returns a `Terminator`
  that fires on the first SIGINT or on `terminate(...)`.
- `roomchat.tui.components.InputBox` is an editable line with a cursor, and
  `roomchat.tui.connect_page.ConnectPage` is the server-address page
  (pre-filled with `localhost:8080`), both rendered as `rich` renderables.

## What this package does not do

There is no runnable terminal client. The package has no chat page, room
list or usage panel, and no loop that reads keys from the terminal and
redraws the screen; the client pieces above have to be driven by your own
code. The only command installed is `roomchat-server`.
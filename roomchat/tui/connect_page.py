"""The page that asks for a server address and connects to it."""

from __future__ import annotations

from typing import Optional

from rich.console import Group
from rich.text import Text

from roomchat.tui.components import (
    Component,
    Dispatch,
    InputBox,
    KeyCode,
    KeyEvent,
    KeyEventKind,
    KeyModifiers,
)
from roomchat.tui.state import ConnectionState, ConnectToServerRequest, Exit, State

DEFAULT_SERVER_ADDR = "localhost:8080"


def _error_message(state: State) -> Optional[str]:
    status = state.server_connection_status
    if status.state is ConnectionState.ERRORED:
        return str(status.err)
    return None


class ConnectPage(Component):
    """Takes a server address and asks the store to connect to it."""

    name = "Connect Page"

    def __init__(self, state: State, dispatch: Dispatch) -> None:
        super().__init__(state, dispatch)
        self.error_message: Optional[str] = _error_message(state)
        self.input_box = InputBox(state, dispatch)
        self.input_box.set_text(DEFAULT_SERVER_ADDR)

    def _connect_to_server(self) -> None:
        if self.input_box.is_empty():
            return
        self.dispatch(ConnectToServerRequest(addr=self.input_box.text))

    def move_with_state(self, state: State) -> ConnectPage:
        self.error_message = _error_message(state)
        return self

    def handle_key_event(self, key: KeyEvent) -> None:
        self.input_box.handle_key_event(key)
        if key.kind is not KeyEventKind.PRESS:
            return
        if key.code is KeyCode.ENTER:
            self._connect_to_server()
        elif key.code is KeyCode.CHAR and key.char == "q":
            self.dispatch(Exit())
        elif (
            key.code is KeyCode.CHAR
            and key.char == "c"
            and KeyModifiers.CONTROL in key.modifiers
        ):
            self.dispatch(Exit())

    def render(self) -> Group:
        """Draw the address input, a hint and the last connection error."""
        input_panel = self.input_box.render("Server Host and Port", "yellow", True)
        help_text = Text.assemble("Press ", ("<Enter>", "bold"), " to connect")
        if self.error_message is not None:
            error = Text(f"Error: {self.error_message}", style="red blink italic")
        else:
            error = Text("")
        return Group(input_panel, help_text, error)
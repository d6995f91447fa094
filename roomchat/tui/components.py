"""Keyboard events, the component interface and a single-line text input."""

from __future__ import annotations

import abc
import enum
from dataclasses import dataclass
from typing import Callable, Optional

from rich.panel import Panel
from rich.text import Text

from roomchat.tui.state import Action, State

Dispatch = Callable[[Action], None]


class KeyCode(enum.Enum):
    """Which key was pressed."""

    CHAR = "char"
    ENTER = "enter"
    BACKSPACE = "backspace"
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    ESC = "esc"
    TAB = "tab"
    OTHER = "other"


class KeyModifiers(enum.Flag):
    """Modifier keys held down with a key."""

    NONE = 0
    SHIFT = enum.auto()
    CONTROL = enum.auto()
    ALT = enum.auto()


class KeyEventKind(enum.Enum):
    """Whether a key was pressed, repeated or released."""

    PRESS = "press"
    REPEAT = "repeat"
    RELEASE = "release"


@dataclass(frozen=True)
class KeyEvent:
    """A single keyboard event; ``char`` is set only for character keys."""

    code: KeyCode
    char: str = ""
    modifiers: KeyModifiers = KeyModifiers.NONE
    kind: KeyEventKind = KeyEventKind.PRESS

    def __post_init__(self) -> None:
        if self.code is KeyCode.CHAR and len(self.char) != 1:
            raise ValueError("a character key needs exactly one character")
        if self.code is not KeyCode.CHAR and self.char:
            raise ValueError("only character keys carry a character")


class Component(abc.ABC):
    """A piece of the user interface that follows the state and reacts to keys."""

    name: str = ""

    def __init__(self, state: Optional[State], dispatch: Optional[Dispatch]) -> None:
        self.dispatch = dispatch

    def move_with_state(self, state: State) -> Component:
        """Take in a new state and return the updated component."""
        return self

    @abc.abstractmethod
    def handle_key_event(self, key: KeyEvent) -> None:
        """React to a keyboard event."""


class InputBox(Component):
    """An editable line of text with a cursor."""

    name = "Input Box"

    def __init__(
        self, state: Optional[State] = None, dispatch: Optional[Dispatch] = None
    ) -> None:
        super().__init__(state, dispatch)
        self._text = ""
        self._cursor = 0

    @property
    def text(self) -> str:
        return self._text

    @property
    def cursor_position(self) -> int:
        return self._cursor

    def set_text(self, text: str) -> None:
        """Replace the text and put the cursor at its end."""
        self._text = text
        self._cursor = len(text)

    def reset(self) -> None:
        """Clear the text and move the cursor to the start."""
        self._text = ""
        self._cursor = 0

    def is_empty(self) -> bool:
        return not self._text

    def _move_cursor(self, delta: int) -> None:
        self._cursor = min(max(self._cursor + delta, 0), len(self._text))

    def _enter_char(self, char: str) -> None:
        self._text = self._text[: self._cursor] + char + self._text[self._cursor :]
        self._move_cursor(1)

    def _delete_char(self) -> None:
        if self._cursor == 0:
            return
        self._text = self._text[: self._cursor - 1] + self._text[self._cursor :]
        self._move_cursor(-1)

    def move_with_state(self, state: State) -> InputBox:
        return self

    def handle_key_event(self, key: KeyEvent) -> None:
        if key.kind is not KeyEventKind.PRESS:
            return
        match key.code:
            case KeyCode.CHAR:
                self._enter_char(key.char)
            case KeyCode.BACKSPACE:
                self._delete_char()
            case KeyCode.LEFT:
                self._move_cursor(-1)
            case KeyCode.RIGHT:
                self._move_cursor(1)
            case _:
                pass

    def render(self, title: str, border_color: str, show_cursor: bool) -> Panel:
        """Draw the text in a bordered box, marking the cursor when asked to."""
        content = Text(self._text, style="yellow")
        if show_cursor:
            if self._cursor >= len(self._text):
                content.append(" ", style="reverse")
            else:
                content.stylize("reverse", self._cursor, self._cursor + 1)
        return Panel(content, title=title, title_align="left", border_style=border_color)
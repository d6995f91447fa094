"""Shutdown signalling for the chat client."""

from __future__ import annotations

import asyncio
import enum
import signal


class Interrupted(enum.Enum):
    """Why the application is stopping."""

    OS_SIG_INT = "os_sig_int"
    USER_INT = "user_int"


class Terminator:
    """Announces, once, that the application should stop and why."""

    def __init__(self) -> None:
        self._reason: Interrupted | None = None
        self._event = asyncio.Event()

    @property
    def interrupted(self) -> Interrupted | None:
        return self._reason

    def terminate(self, interrupted: Interrupted | str) -> None:
        """Request termination; only the first reason given is kept."""
        reason = Interrupted(interrupted)
        if self._reason is None:
            self._reason = reason
            self._event.set()

    async def wait(self) -> Interrupted:
        """Wait until termination is requested and return the reason."""
        await self._event.wait()
        assert self._reason is not None
        return self._reason


def create_termination() -> Terminator:
    """Create a Terminator that also fires on the first SIGINT, where supported.

    The signal handler is installed only when called inside a running loop.
    """
    terminator = Terminator()
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return terminator

    def on_interrupt() -> None:
        loop.remove_signal_handler(signal.SIGINT)
        terminator.terminate(Interrupted.OS_SIG_INT)

    try:
        loop.add_signal_handler(signal.SIGINT, on_interrupt)
    except (NotImplementedError, RuntimeError, ValueError):
        pass
    return terminator
"""Tracks which users, and which of their sessions, are present in a room."""

from __future__ import annotations


class UserRegistry:
    """Keeps the unique list of users in a room.

    A user may be connected through several sessions at once, so each user
    is mapped to the set of their sessions. A user counts as present while
    at least one of their sessions is.
    """

    def __init__(self) -> None:
        self._sessions_by_user: dict[str, set[str]] = {}

    def insert(self, user_id: str, session_id: str) -> bool:
        """Add a session of a user; return True if the user now has exactly one session."""
        sessions = self._sessions_by_user.setdefault(user_id, set())
        sessions.add(session_id)
        return len(sessions) == 1

    def remove(self, user_id: str, session_id: str) -> bool:
        """Remove a session; return True if the user is no longer in the room.

        Returns False without doing anything if the user is unknown.
        """
        sessions = self._sessions_by_user.get(user_id)
        if sessions is None:
            return False
        sessions.discard(session_id)
        if sessions:
            return False
        del self._sessions_by_user[user_id]
        return True

    def unique_user_ids(self) -> list[str]:
        """Return the ids of the users currently present."""
        return list(self._sessions_by_user)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions_by_user

    def __len__(self) -> int:
        return len(self._sessions_by_user)
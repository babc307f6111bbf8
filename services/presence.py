"""Online presence.

Membership is fed by the real-time connection layer (see routes/presence.py):
every open socket counts as one connection, a user is online while at least
one is open. Handlers receive the oracle through ``get_presence`` instead of
importing a module global.
"""
from collections import Counter
from datetime import datetime
from threading import Lock
from typing import Optional, Protocol

from fastapi import Request

from utils.timeutils import utcnow


class PresenceOracle(Protocol):
    def is_online(self, user_id: str) -> bool:
        ...

    def last_seen(self, user_id: str) -> Optional[datetime]:
        ...


class InMemoryPresence:
    def __init__(self):
        self._connections = Counter()
        self._last_seen = {}
        self._lock = Lock()

    def connect(self, user_id: str) -> None:
        with self._lock:
            self._connections[user_id] += 1

    def disconnect(self, user_id: str) -> None:
        with self._lock:
            self._connections[user_id] -= 1
            if self._connections[user_id] <= 0:
                del self._connections[user_id]
                self._last_seen[user_id] = utcnow()

    def is_online(self, user_id: str) -> bool:
        return self._connections.get(user_id, 0) > 0

    def last_seen(self, user_id: str) -> Optional[datetime]:
        """Now while online, else when the last connection closed (None if never seen)."""
        if self.is_online(user_id):
            return utcnow()
        return self._last_seen.get(user_id)

    def online_users(self) -> set:
        with self._lock:
            return set(self._connections)


def get_presence(request: Request) -> PresenceOracle:
    return request.app.state.presence

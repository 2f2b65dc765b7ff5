"""
SupaAuth Session Storage

Holds at most one session. Writes replace the whole value; reads hand out
copies so callers can never mutate the cached session in place.
"""

import threading
from typing import Optional

from .types import Session


class MemorySessionStorage:
    """In-memory session storage (default, non-persistent)."""

    def __init__(self) -> None:
        self._session: Optional[Session] = None
        self._lock = threading.Lock()

    def get_session(self) -> Optional[Session]:
        """Get a copy of the stored session."""
        with self._lock:
            if self._session is None:
                return None
            return self._session.copy()

    def set_session(self, session: Session) -> None:
        """Replace the stored session."""
        snapshot = session.copy()
        with self._lock:
            self._session = snapshot

    def clear_session(self) -> None:
        """Drop the stored session."""
        with self._lock:
            self._session = None

    def has_session(self) -> bool:
        with self._lock:
            return self._session is not None

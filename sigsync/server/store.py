"""Single-writer store for the shared message.

The store is the only owner of ``CurrentState``.  Writes are serialized by
a lock; ``compare_and_set`` lets a caller make a write conditional on the
version it last read.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class CurrentState:
    message: str
    version: int = 0
    # last signature the server itself produced over ``message``
    signature: Optional[bytes] = None


class MessageStore:
    """In-memory current value with serialized writes."""

    def __init__(self, initial_message: str) -> None:
        self._lock = threading.Lock()
        self._state = CurrentState(message=initial_message)

    def get(self) -> CurrentState:
        with self._lock:
            return self._state

    def set(self, message: str) -> CurrentState:
        """Replace the message unconditionally (last writer wins)."""
        with self._lock:
            self._state = CurrentState(message=message, version=self._state.version + 1)
            return self._state

    def compare_and_set(self, expected_version: int, message: str) -> Optional[CurrentState]:
        """Replace the message only if the version is still *expected_version*.

        Returns the new state, or ``None`` if another write got in first.
        """
        with self._lock:
            if self._state.version != expected_version:
                return None
            self._state = CurrentState(message=message, version=expected_version + 1)
            return self._state

    def record_signature(self, version: int, signature: bytes) -> None:
        """Remember the server's signature over the state at *version*.

        Ignored if the message changed since the signature was computed.
        """
        with self._lock:
            if self._state.version == version:
                self._state = replace(self._state, signature=signature)

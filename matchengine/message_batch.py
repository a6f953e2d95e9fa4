"""A thread-safe accumulator of raw messages."""

from __future__ import annotations

import threading
from typing import List


class MessageBatch:
    """Collects messages until they are taken out all at once."""

    def __init__(self) -> None:
        self._messages: List[bytes] = []
        self._lock = threading.Lock()

    def add_message(self, message: bytes) -> None:
        with self._lock:
            self._messages.append(message)

    def get_and_clear_messages(self) -> List[bytes]:
        """Return the collected messages in arrival order and start afresh."""
        with self._lock:
            messages, self._messages = self._messages, []
        return messages

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
"""Bounded conversation history shared between concurrent queries."""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, List

from ..models import ConversationEntry

ASSISTANT_NAME = "CodeLve"


class ConversationHistory:
    """FIFO of query/response pairs; the oldest entry is evicted past capacity."""

    def __init__(self, max_entries: int = 10) -> None:
        self.max_entries = max(0, max_entries)
        self._entries: Deque[ConversationEntry] = deque(maxlen=self.max_entries)
        self._lock = threading.Lock()

    def add(self, query: str, response: str) -> None:
        with self._lock:
            self._entries.append(ConversationEntry(query=query, response=response))

    def entries(self) -> List[ConversationEntry]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def render(self) -> str:
        """Render entries oldest first as ``User:``/assistant blocks."""
        return "".join(
            f"User: {entry.query}\n{ASSISTANT_NAME}: {entry.response}\n\n" for entry in self.entries()
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

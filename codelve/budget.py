"""Explicit resource budget shared by the scanner and the context builder."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from .config import (
    DEFAULT_MAX_CONTEXT_SIZE,
    DEFAULT_MAX_FILE_COUNT,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MAX_HISTORY,
    DEFAULT_MAX_LINE_COUNT,
    CodelveConfig,
)

# Rough characters-per-token ratio used for context budgeting.
CHARS_PER_TOKEN = 4


@dataclass
class ResourceBudget:
    """Limits for one codelve session plus running accounting of indexed bytes.

    Created once at startup and handed to the components that need it; a rescan
    resets the accounting, it never outlives the engine that built it.
    """

    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_file_count: int = DEFAULT_MAX_FILE_COUNT
    max_line_count: int = DEFAULT_MAX_LINE_COUNT
    max_context_size: int = DEFAULT_MAX_CONTEXT_SIZE
    max_history_entries: int = DEFAULT_MAX_HISTORY
    _indexed_bytes: int = field(default=0, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    @classmethod
    def from_config(cls, config: CodelveConfig) -> "ResourceBudget":
        scanner = config.scanner
        return cls(
            max_file_size=scanner.max_file_size,
            max_file_count=scanner.max_file_count,
            max_line_count=scanner.max_line_count,
            max_context_size=config.llm.max_context_size,
            max_history_entries=config.max_history_entries,
        )

    @property
    def context_char_limit(self) -> int:
        return self.max_context_size * CHARS_PER_TOKEN

    @property
    def indexed_bytes(self) -> int:
        with self._lock:
            return self._indexed_bytes

    def record_indexed(self, size: int) -> None:
        with self._lock:
            self._indexed_bytes += max(0, size)

    def reset(self) -> None:
        with self._lock:
            self._indexed_bytes = 0

    def report(self) -> str:
        return "\n".join(
            [
                f"Max file size: {format_size(self.max_file_size)}",
                f"Max file count: {self.max_file_count}",
                f"Max lines per file: {self.max_line_count}",
                f"Context window: {self.max_context_size} tokens ({self.context_char_limit} characters)",
                f"History entries: {self.max_history_entries}",
                f"Indexed: {format_size(self.indexed_bytes)}",
            ]
        )


def format_size(size: int) -> str:
    units = ("B", "KB", "MB", "GB", "TB")
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{value:.2f} {units[index]}"

"""Assembles the bounded context window sent to the inference backend."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from jinja2 import Environment

from ..budget import ResourceBudget
from ..logging import get_logger
from ..models import IndexedCode
from ..prompting.rendering import create_environment
from .history import ConversationHistory
from .ranking import find_relevant_symbols, select_relevant_files

CONTEXT_TEMPLATE = "context.j2"
DEFAULT_MAX_FILES = 5


@dataclass(frozen=True)
class _Snapshot:
    root: str = ""
    files: Dict[str, str] = field(default_factory=dict)
    symbols: Dict[str, List[str]] = field(default_factory=dict)


class ContextBuilder:
    """Ranks indexed files against a query and renders history plus code.

    The indexed snapshot is swapped wholesale by :meth:`initialize`; readers take
    one reference and use it for the whole call, so a rescan never shows them a
    mix of old and new files.
    """

    def __init__(
        self,
        budget: ResourceBudget | None = None,
        *,
        history: ConversationHistory | None = None,
        templates_dir: Path | None = None,
        environment: Environment | None = None,
    ) -> None:
        self.budget = budget or ResourceBudget()
        self.history = history or ConversationHistory(self.budget.max_history_entries)
        self._env = environment or create_environment(templates_dir)
        self._snapshot = _Snapshot()
        self._lock = threading.Lock()
        self.logger = get_logger("context")
        self.logger.info(
            "Context builder initialized with max context size: %d", self.budget.max_context_size
        )

    def initialize(self, indexed_code: IndexedCode) -> bool:
        """Install a scan result; on failure the previous snapshot stays in place."""
        try:
            snapshot = _Snapshot(
                root=indexed_code.root,
                files=dict(indexed_code.files),
                symbols={name: list(paths) for name, paths in indexed_code.symbols.items() if paths},
            )
        except Exception:
            self.logger.exception("Failed to initialize with indexed code")
            return False

        with self._lock:
            self._snapshot = snapshot
        self.logger.info(
            "Initialized with %d files and %d symbols", len(snapshot.files), len(snapshot.symbols)
        )
        return True

    def reset_index(self) -> None:
        """Drop the indexed snapshot, leaving history untouched."""
        with self._lock:
            self._snapshot = _Snapshot()

    @property
    def root(self) -> str:
        return self._current().root

    @property
    def file_count(self) -> int:
        return len(self._current().files)

    @property
    def symbol_count(self) -> int:
        return len(self._current().symbols)

    def build_context(self, query: str) -> str:
        """Render history, the query and relevant files, cut to the character budget."""
        snapshot = self._current()
        paths = select_relevant_files(query, snapshot.files, snapshot.symbols, DEFAULT_MAX_FILES)
        files = [{"path": path, "content": snapshot.files[path]} for path in paths if path in snapshot.files]

        template = self._env.get_template(CONTEXT_TEMPLATE)
        result = template.render(history=self.history.render(), query=query, files=files)

        limit = self.budget.context_char_limit
        if len(result) > limit:
            result = result[:limit]
            self.logger.warning("Context truncated to fit token limit (%d characters)", limit)

        self.logger.info("Built context with %d characters", len(result))
        return result

    def get_file(self, file_path: str) -> str:
        return self._current().files.get(file_path, "")

    def get_relevant_files(self, query: str, max_files: int = DEFAULT_MAX_FILES) -> List[str]:
        snapshot = self._current()
        return select_relevant_files(query, snapshot.files, snapshot.symbols, max_files)

    def get_relevant_symbols(self, query: str) -> List[str]:
        return find_relevant_symbols(query, self._current().symbols)

    def find_file_containing_symbol(self, symbol: str) -> Optional[str]:
        paths = self._current().symbols.get(symbol)
        return paths[0] if paths else None

    def format_code_snippet(self, file_path: str, start_line: int, end_line: int) -> str:
        """Return lines ``start_line..end_line`` (0-based, inclusive) of an indexed file."""
        content = self.get_file(file_path)
        if not content:
            return ""
        lines = content.split("\n")
        if content.endswith("\n"):
            lines.pop()
        start = max(0, start_line)
        end = min(end_line, len(lines) - 1)
        if start > end:
            return ""
        return "\n".join(lines[start : end + 1])

    def add_to_history(self, query: str, response: str) -> None:
        self.history.add(query, response)

    def get_conversation_history(self) -> str:
        return self.history.render()

    def clear_history(self) -> None:
        self.history.clear()
        self.logger.info("Conversation history cleared")

    def _current(self) -> _Snapshot:
        with self._lock:
            return self._snapshot

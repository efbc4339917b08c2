"""Core data models shared across codelve components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class SymbolKind(str, Enum):
    """Closed set of symbol categories produced by the extractors."""

    INCLUDE = "include"
    IMPORT = "import"
    CLASS = "class"
    FUNCTION = "function"
    CONSTANT = "constant"
    COMMENT = "comment"


@dataclass(frozen=True)
class SymbolInfo:
    """A single extracted code entity with its location and raw signature."""

    name: str
    kind: SymbolKind
    file_path: str
    line_number: int
    signature: str
    documentation: Optional[str] = None


@dataclass(frozen=True)
class IndexedCode:
    """Snapshot of a scanned codebase, produced wholesale by one scan."""

    root: str = ""
    files: Dict[str, str] = field(default_factory=dict)
    symbols: Dict[str, List[str]] = field(default_factory=dict)
    symbol_details: List[SymbolInfo] = field(default_factory=list)
    directories: List[str] = field(default_factory=list)
    file_extensions: List[str] = field(default_factory=list)
    total_size: int = 0
    file_count: int = 0

    @property
    def symbol_count(self) -> int:
        return len(self.symbols)

    def is_empty(self) -> bool:
        return not self.files


@dataclass(frozen=True)
class ConversationEntry:
    """One query/response exchange kept in the conversation history."""

    query: str
    response: str

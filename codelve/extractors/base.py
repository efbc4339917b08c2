"""Base classes for pattern-based symbol extractors."""

from __future__ import annotations

import re
from abc import ABC
from bisect import bisect_right
from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterator, List, Optional, Sequence

from ..models import SymbolInfo, SymbolKind


@dataclass(frozen=True)
class PatternRule:
    """A regex whose first non-empty name group becomes a symbol of ``kind``."""

    kind: SymbolKind
    pattern: re.Pattern[str]
    name_groups: Sequence[int] = (1,)
    fixed_name: Optional[str] = None
    documentation_group: Optional[int] = None
    reject: Optional[Callable[[re.Match[str]], bool]] = None

    def symbol_name(self, match: re.Match[str]) -> str:
        if self.fixed_name is not None:
            return self.fixed_name
        for group in self.name_groups:
            value = match.group(group)
            if value:
                return value
        return ""


class LineIndex:
    """Maps character offsets of a file to 1-based line numbers."""

    def __init__(self, content: str) -> None:
        self._starts: List[int] = [0]
        self._starts.extend(match.end() for match in re.finditer("\n", content))

    def line_for(self, offset: int) -> int:
        return bisect_right(self._starts, offset)


class SymbolExtractor(ABC):
    """Contract for extractors that turn file content into symbol records."""

    name: str = "base"
    extensions: FrozenSet[str] = frozenset()
    rules: Sequence[PatternRule] = ()

    def supports(self, extension: str) -> bool:
        """Return True when this extractor handles files with ``extension``."""
        return extension.lower() in self.extensions

    def extract(self, file_path: str, content: str) -> Iterator[SymbolInfo]:
        """Yield symbols for every rule, in rule order then match order."""
        lines = LineIndex(content)
        for rule in self.rules:
            for match in rule.pattern.finditer(content):
                if rule.reject is not None and rule.reject(match):
                    continue
                name = rule.symbol_name(match)
                if not name:
                    continue
                documentation = None
                if rule.documentation_group is not None:
                    documentation = (match.group(rule.documentation_group) or "").strip()
                yield SymbolInfo(
                    name=name,
                    kind=rule.kind,
                    file_path=file_path,
                    line_number=lines.line_for(match.start()),
                    signature=match.group(0).strip(),
                    documentation=documentation,
                )

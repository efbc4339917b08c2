"""Extractor for Python modules."""

from __future__ import annotations

import re

from ..models import SymbolKind
from .base import PatternRule, SymbolExtractor


class PythonExtractor(SymbolExtractor):
    """Finds imports, classes and function definitions in ``.py`` files."""

    name = "python"
    extensions = frozenset({".py"})
    rules = (
        PatternRule(
            kind=SymbolKind.IMPORT,
            pattern=re.compile(
                r"^[ \t]*import[ \t]+([\w.]+)|^[ \t]*from[ \t]+([\w.]+)[ \t]+import\b",
                re.MULTILINE,
            ),
            name_groups=(1, 2),
        ),
        PatternRule(
            kind=SymbolKind.CLASS,
            pattern=re.compile(r"^[ \t]*class[ \t]+(\w+)[ \t]*(\([^)]*\))?[ \t]*:", re.MULTILINE),
        ),
        PatternRule(
            kind=SymbolKind.FUNCTION,
            pattern=re.compile(
                r"^[ \t]*(?:async[ \t]+)?def[ \t]+(\w+)[ \t]*\([^)]*\)[ \t]*(?:->[^:\n]+)?:",
                re.MULTILINE,
            ),
        ),
    )

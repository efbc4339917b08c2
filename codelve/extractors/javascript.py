"""Extractor for JavaScript and TypeScript sources."""

from __future__ import annotations

import re

from ..models import SymbolKind
from .base import PatternRule, SymbolExtractor


class JavaScriptExtractor(SymbolExtractor):
    """Finds imports, classes, functions and arrow functions in JS/TS files."""

    name = "javascript"
    extensions = frozenset({".js", ".ts"})
    rules = (
        PatternRule(
            kind=SymbolKind.IMPORT,
            pattern=re.compile(
                r"""import\s+.*?from\s+['"]([^'"]+)['"]"""
                r"""|require\s*\(\s*['"]([^'"]+)['"]\s*\)"""
            ),
            name_groups=(1, 2),
        ),
        PatternRule(
            kind=SymbolKind.CLASS,
            pattern=re.compile(r"\bclass\s+(\w+)(\s+extends\s+[\w.]+)?\s*\{"),
        ),
        PatternRule(
            kind=SymbolKind.FUNCTION,
            pattern=re.compile(
                r"\bfunction\s+(\w+)\s*\([^)]*\)"
                r"|(\w+)\s*:\s*function\s*\([^)]*\)"
                r"|\b(?:const|let|var)\s+(\w+)\s*=\s*function\b\s*\w*\s*\([^)]*\)"
            ),
            name_groups=(1, 2, 3),
        ),
        PatternRule(
            kind=SymbolKind.FUNCTION,
            pattern=re.compile(r"\b(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s*)?\([^)]*\)\s*=>"),
        ),
    )

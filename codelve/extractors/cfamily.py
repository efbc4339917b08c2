"""Extractor for C and C++ sources and headers."""

from __future__ import annotations

import re

from ..models import SymbolKind
from .base import PatternRule, SymbolExtractor

# Apparent return types that are really control-flow keywords.
_CONTROL_FLOW_KEYWORDS = frozenset({"if", "for", "while", "switch"})


def _is_control_flow(match: re.Match[str]) -> bool:
    return match.group(1) in _CONTROL_FLOW_KEYWORDS


class CFamilyExtractor(SymbolExtractor):
    """Finds includes, classes and function declarations in C-family files."""

    name = "cfamily"
    extensions = frozenset({".c", ".cpp", ".h", ".hpp"})
    rules = (
        PatternRule(
            kind=SymbolKind.INCLUDE,
            pattern=re.compile(r"#[ \t]*include\s*[<\"]([^>\"]+)[>\"]"),
        ),
        PatternRule(
            kind=SymbolKind.CLASS,
            pattern=re.compile(r"\bclass\s+(\w+)(\s*:\s*\w+\s+\w+)?\s*\{"),
        ),
        PatternRule(
            kind=SymbolKind.FUNCTION,
            pattern=re.compile(r"\b(\w+)\s+(\w+)\s*\([^)]*\)\s*(\{|;)"),
            name_groups=(2,),
            reject=_is_control_flow,
        ),
    )

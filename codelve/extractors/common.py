"""Language-agnostic extractor applied to every scanned file."""

from __future__ import annotations

import re

from ..models import SymbolKind
from .base import PatternRule, SymbolExtractor


class CommonExtractor(SymbolExtractor):
    """Finds TODO comments and upper-case constants in any supported file."""

    name = "common"
    rules = (
        PatternRule(
            kind=SymbolKind.COMMENT,
            pattern=re.compile(r"TODO[ \t]*:?[ \t]*(.*)"),
            fixed_name="TODO",
            documentation_group=1,
        ),
        PatternRule(
            kind=SymbolKind.CONSTANT,
            pattern=re.compile(r"\bconst\s+([A-Z][A-Z0-9_]*)\s*=|#[ \t]*define\s+([A-Z][A-Z0-9_]*)"),
            name_groups=(1, 2),
        ),
    )

    def supports(self, extension: str) -> bool:
        return True

"""Keyword heuristics that pick the symbols and files relevant to a query."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Sequence

# Query tokens must be longer than this to count as search terms.
MIN_TERM_LENGTH = 3

_TOKEN_PUNCTUATION = "\"'`.,;:!?()[]{}<>"

# Whole-token matches ignore these so common words never pull in code.
_STOP_WORDS = frozenset(
    "a an and are as at be by do for how i if in is it me my of on or the to was we what who why you".split()
)


def extract_query_terms(query: str) -> List[str]:
    """Return lowercased whitespace tokens longer than three characters."""
    return [token.lower() for token in query.split() if len(token) > MIN_TERM_LENGTH]


def _query_tokens(query: str) -> set[str]:
    tokens = (token.strip(_TOKEN_PUNCTUATION).lower() for token in query.split())
    return {token for token in tokens if len(token) >= 2 and token not in _STOP_WORDS}


def find_relevant_symbols(query: str, symbols: Mapping[str, Sequence[str]]) -> List[str]:
    """Return symbol names matching the query, in symbol-table order.

    A symbol matches when a query term is a substring of its lowercased name, or
    when the whole name (two or more characters, not a common word) appears
    as a query token.
    """
    terms = extract_query_terms(query)
    tokens = _query_tokens(query)
    relevant: List[str] = []
    for name in symbols:
        lowered = name.lower()
        if lowered in tokens or any(term in lowered for term in terms):
            relevant.append(name)
    return relevant


def select_relevant_files(
    query: str,
    files: Mapping[str, str],
    symbols: Mapping[str, Sequence[str]],
    max_files: int = 5,
) -> List[str]:
    """Pick up to ``max_files`` paths: symbol owners first, then filename matches."""
    if max_files <= 0:
        return []

    selected: List[str] = []
    for name in find_relevant_symbols(query, symbols):
        owners = symbols.get(name)
        if not owners:
            continue
        path = owners[0]
        if path in selected:
            continue
        selected.append(path)
        if len(selected) >= max_files:
            return selected

    terms = extract_query_terms(query)
    if not terms:
        return selected
    for path in files:
        if path in selected:
            continue
        filename = Path(path).name.lower()
        if any(term in filename for term in terms):
            selected.append(path)
            if len(selected) >= max_files:
                break
    return selected

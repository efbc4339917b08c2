"""Context assembly: conversation history, relevance ranking and the builder."""

from .builder import DEFAULT_MAX_FILES, ContextBuilder
from .history import ASSISTANT_NAME, ConversationHistory
from .ranking import extract_query_terms, find_relevant_symbols, select_relevant_files

__all__ = [
    "ASSISTANT_NAME",
    "ContextBuilder",
    "ConversationHistory",
    "DEFAULT_MAX_FILES",
    "extract_query_terms",
    "find_relevant_symbols",
    "select_relevant_files",
]

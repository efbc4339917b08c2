"""Shared constants for query classification and prompt assembly."""

from __future__ import annotations

APP_NAME = "CodeLve"

# Order matters: the first command that matches a query wins.
COMMANDS: tuple[str, ...] = (
    "/help",
    "/clear",
    "/reset",
    "/exit",
    "/info",
    "/settings",
)

EXIT_COMMANDS: tuple[str, ...] = ("/exit", "/quit")

COMMAND_DESCRIPTIONS: tuple[tuple[str, str], ...] = (
    ("/clear", "clear the chat history"),
    ("/reset", "clear the chat history and drop the loaded codebase"),
    ("/info", "show details about the indexed codebase and the model"),
    ("/settings", "show the active resource limits"),
    ("/exit or /quit", "exit the application"),
    ("/help", "show this help message"),
)

CODE_KEYWORDS: tuple[str, ...] = (
    "code",
    "function",
    "class",
    "method",
    "variable",
    "implement",
    "debug",
    "bug",
    "error",
    "refactor",
    "optimize",
    "documentation",
    "api",
    "module",
    "library",
    "interface",
    "test",
    "unit test",
)

EXPLAIN_INSTRUCTIONS = (
    "Focus on explaining the code's purpose, functionality, and structure. "
    "Break down complex parts and explain the logic step by step."
)
DEBUG_INSTRUCTIONS = (
    "Identify potential bugs or issues in the code. "
    "Suggest specific fixes and explain why they would solve the problem."
)
OPTIMIZE_INSTRUCTIONS = (
    "Analyze the code for performance bottlenecks. "
    "Suggest optimizations and explain the expected improvements."
)
IMPLEMENT_INSTRUCTIONS = (
    "Provide a complete implementation that follows best practices. "
    "Ensure the code is well-documented and fits with the existing codebase style."
)
DOCUMENT_INSTRUCTIONS = (
    "Generate comprehensive documentation for the code. "
    "Include function descriptions, parameter details, return values, and usage examples."
)
GENERIC_INSTRUCTIONS = (
    "Provide a detailed analysis relevant to the user's query. "
    "Include code examples where appropriate and explain any technical concepts."
)

# Evaluated top to bottom; the first rule with a keyword present in the query wins.
INSTRUCTION_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("explain", "understand", "what does"), EXPLAIN_INSTRUCTIONS),
    (("bug", "error", "fix", "issue"), DEBUG_INSTRUCTIONS),
    (("optimize", "performance", "faster", "efficient"), OPTIMIZE_INSTRUCTIONS),
    (("implement", "create", "write", "add"), IMPLEMENT_INSTRUCTIONS),
    (("document", "comments", "readme"), DOCUMENT_INSTRUCTIONS),
)

DEFAULT_CODE_TEMPLATE = (
    "You are CodeLve, an AI assistant for code analysis.\n"
    "Analyze the following code and answer the user's question:\n\n"
    "{context}\n\n"
    "User query: {query}\n"
    "Provide a detailed and accurate response focusing on the code."
)

DEFAULT_GENERAL_TEMPLATE = (
    "You are CodeLve, an AI assistant for developers.\n"
    "Answer the following question based on your knowledge:\n\n"
    "User query: {query}\n"
    "Provide a concise and helpful response."
)

CONTEXT_PLACEHOLDER = "{context}"
QUERY_PLACEHOLDER = "{query}"


__all__ = [
    "APP_NAME",
    "CODE_KEYWORDS",
    "COMMANDS",
    "COMMAND_DESCRIPTIONS",
    "CONTEXT_PLACEHOLDER",
    "DEFAULT_CODE_TEMPLATE",
    "DEFAULT_GENERAL_TEMPLATE",
    "EXIT_COMMANDS",
    "GENERIC_INSTRUCTIONS",
    "INSTRUCTION_RULES",
    "QUERY_PLACEHOLDER",
]

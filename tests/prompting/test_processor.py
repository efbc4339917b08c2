"""Tests for codelve.prompting.processor."""

from __future__ import annotations

import pytest

from codelve.config import CodelveConfig
from codelve.context.builder import ContextBuilder
from codelve.models import IndexedCode
from codelve.prompting.constants import (
    DEBUG_INSTRUCTIONS,
    DOCUMENT_INSTRUCTIONS,
    EXPLAIN_INSTRUCTIONS,
    GENERIC_INSTRUCTIONS,
    IMPLEMENT_INSTRUCTIONS,
    OPTIMIZE_INSTRUCTIONS,
)
from codelve.prompting.processor import QueryProcessor


@pytest.fixture
def processor() -> QueryProcessor:
    builder = ContextBuilder()
    builder.initialize(
        IndexedCode(
            root="/repo",
            files={"/repo/scheduler.py": "class Scheduler:\n    pass"},
            symbols={"Scheduler": ["/repo/scheduler.py"]},
        )
    )
    return QueryProcessor(builder)


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("/help", "/help"),
        ("  /clear  ", "/clear"),
        ("/reset everything", "/reset"),
        ("/exit", "/exit"),
        ("/info please", "/info"),
        ("/settings", "/settings"),
        ("/helpme", ""),
        ("/quit", ""),
        ("tell me about /help", ""),
    ],
)
def test_extract_command(query: str, expected: str) -> None:
    assert QueryProcessor.extract_command(query) == expected


def test_process_query_returns_command_verbatim(processor: QueryProcessor) -> None:
    assert processor.process_query(" /help ") == "/help"
    assert processor.prepare("/settings").is_command


def test_is_codebase_query_uses_keywords_then_index(processor: QueryProcessor) -> None:
    assert processor.is_codebase_query("please refactor this loop")
    assert processor.is_codebase_query("How is the SCHEDULER wired up?")
    assert not processor.is_codebase_query("what is the weather today")


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("Explain the scheduler", EXPLAIN_INSTRUCTIONS),
        ("what does this do", EXPLAIN_INSTRUCTIONS),
        ("fix the crash", DEBUG_INSTRUCTIONS),
        ("explain this error", EXPLAIN_INSTRUCTIONS),
        ("make it faster", OPTIMIZE_INSTRUCTIONS),
        ("write a retry helper", IMPLEMENT_INSTRUCTIONS),
        ("update the README", DOCUMENT_INSTRUCTIONS),
        ("review the scheduler", GENERIC_INSTRUCTIONS),
    ],
)
def test_format_instructions_priority(query: str, expected: str) -> None:
    assert QueryProcessor.format_instructions(query) == expected


def test_codebase_prompt_contains_context_query_and_instructions(processor: QueryProcessor) -> None:
    prompt = processor.process_query("explain the Scheduler class")

    assert prompt.startswith("You are CodeLve, an AI assistant for code analysis.")
    assert "### Current Query ###\nexplain the Scheduler class" in prompt
    assert "File: /repo/scheduler.py" in prompt
    assert "User query: explain the Scheduler class\n" in prompt
    assert prompt.endswith("\n" + EXPLAIN_INSTRUCTIONS)


def test_general_prompt_uses_general_template(processor: QueryProcessor) -> None:
    prepared = processor.prepare("what is the weather today")

    assert not prepared.is_codebase
    assert prepared.prompt == (
        "You are CodeLve, an AI assistant for developers.\n"
        "Answer the following question based on your knowledge:\n\n"
        "User query: what is the weather today\n"
        "Provide a concise and helpful response."
    )


def test_custom_templates_replace_first_placeholder_only(processor: QueryProcessor) -> None:
    custom = QueryProcessor(
        processor.context_builder,
        general_template="{query} / {query}",
        code_template="no placeholders here",
    )

    assert custom.process_query("hello there") == "hello there / {query}"
    assert custom.process_query("refactor it") == "no placeholders here\n" + GENERIC_INSTRUCTIONS


def test_from_config_reads_prompt_templates(processor: QueryProcessor) -> None:
    config = CodelveConfig(values={"prompts.general_template": "Q: {query}"})

    configured = QueryProcessor.from_config(config, processor.context_builder)

    assert configured.process_query("good morning") == "Q: good morning"


def test_short_common_symbols_do_not_make_general_questions_codebase_queries() -> None:
    builder = ContextBuilder()
    builder.initialize(
        IndexedCode(
            root="/repo",
            files={"/repo/words.py": "is = 1\nthe = 2\n"},
            symbols={"is": ["/repo/words.py"], "the": ["/repo/words.py"]},
        )
    )

    assert not QueryProcessor(builder).is_codebase_query("what is the weather today")

"""Tests for codelve.context.builder."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from codelve.budget import ResourceBudget
from codelve.context.builder import ContextBuilder
from codelve.models import IndexedCode


def _indexed(files: dict[str, str], symbols: dict[str, list[str]] | None = None) -> IndexedCode:
    return IndexedCode(root="/repo", files=files, symbols=symbols or {}, file_count=len(files))


def test_build_context_renders_sections_in_order() -> None:
    builder = ContextBuilder()
    builder.initialize(_indexed({"/repo/parser.py": "def parse():\n    pass"}, {"parse": ["/repo/parser.py"]}))
    builder.add_to_history("first question", "first answer")

    context = builder.build_context("where is parse defined")

    assert context == (
        "### Conversation History ###\n"
        "User: first question\nCodeLve: first answer\n\n"
        "\n\n"
        "### Current Query ###\n"
        "where is parse defined\n\n"
        "### Relevant Code ###\n"
        "File: /repo/parser.py\n"
        "```\n"
        "def parse():\n    pass\n"
        "```\n\n"
    )


def test_build_context_omits_empty_history_section() -> None:
    builder = ContextBuilder()
    builder.initialize(_indexed({"/repo/a.py": "x = 1"}))

    context = builder.build_context("anything at all")

    assert context == "### Current Query ###\nanything at all\n\n### Relevant Code ###\n"


def test_build_context_truncates_to_character_budget(caplog: pytest.LogCaptureFixture) -> None:
    builder = ContextBuilder(ResourceBudget(max_context_size=10))
    builder.initialize(_indexed({"/repo/huge.py": "y" * 500}, {"huge": ["/repo/huge.py"]}))

    with caplog.at_level(logging.WARNING, logger="codelve.context"):
        context = builder.build_context("show the huge module")

    assert len(context) == 40
    assert context.startswith("### Current Query ###")
    assert "Context truncated to fit token limit" in caplog.text


def test_build_context_is_idempotent() -> None:
    builder = ContextBuilder()
    builder.initialize(_indexed({"/repo/engine.py": "class Engine: ..."}, {"Engine": ["/repo/engine.py"]}))
    builder.add_to_history("hi", "hello")

    assert builder.build_context("explain engine") == builder.build_context("explain engine")


def test_initialize_replaces_snapshot_wholesale() -> None:
    builder = ContextBuilder()
    builder.initialize(_indexed({"/repo/old.py": "old"}, {"old": ["/repo/old.py"]}))

    assert builder.initialize(_indexed({"/repo/new.py": "new"}, {"new": ["/repo/new.py"], "empty": []}))

    assert builder.get_file("/repo/old.py") == ""
    assert builder.get_file("/repo/new.py") == "new"
    assert builder.file_count == 1
    assert builder.symbol_count == 1
    assert builder.find_file_containing_symbol("new") == "/repo/new.py"
    assert builder.find_file_containing_symbol("empty") is None


def test_initialize_failure_keeps_previous_snapshot(caplog: pytest.LogCaptureFixture) -> None:
    builder = ContextBuilder()
    builder.initialize(_indexed({"/repo/keep.py": "keep"}))

    class _Broken:
        root = "/broken"
        files = None
        symbols: dict[str, list[str]] = {}

    with caplog.at_level(logging.ERROR, logger="codelve.context"):
        assert builder.initialize(_Broken()) is False  # type: ignore[arg-type]

    assert builder.get_file("/repo/keep.py") == "keep"
    assert builder.root == "/repo"
    assert "Failed to initialize with indexed code" in caplog.text


def test_format_code_snippet_clamps_and_slices() -> None:
    builder = ContextBuilder()
    builder.initialize(_indexed({"/repo/lines.py": "l0\nl1\nl2\nl3"}))

    assert builder.format_code_snippet("/repo/lines.py", 1, 2) == "l1\nl2"
    assert builder.format_code_snippet("/repo/lines.py", -5, 0) == "l0"
    assert builder.format_code_snippet("/repo/lines.py", 2, 99) == "l2\nl3"
    assert builder.format_code_snippet("/repo/lines.py", 3, 1) == ""
    assert builder.format_code_snippet("/repo/missing.py", 0, 1) == ""


def test_format_code_snippet_splits_on_newlines_only() -> None:
    builder = ContextBuilder()
    builder.initialize(_indexed({"/repo/page.c": "int a;\x0c int b;\nint c;\n"}))

    assert builder.format_code_snippet("/repo/page.c", 0, 0) == "int a;\x0c int b;"
    assert builder.format_code_snippet("/repo/page.c", 1, 1) == "int c;"
    assert builder.format_code_snippet("/repo/page.c", 1, 5) == "int c;"


def test_history_round_trip_and_clear() -> None:
    builder = ContextBuilder(ResourceBudget(max_history_entries=2))

    builder.add_to_history("q1", "r1")
    builder.add_to_history("q2", "r2")
    builder.add_to_history("q3", "r3")

    assert builder.get_conversation_history() == "User: q2\nCodeLve: r2\n\nUser: q3\nCodeLve: r3\n\n"
    builder.clear_history()
    assert builder.get_conversation_history() == ""


def test_reset_index_drops_files_but_keeps_history() -> None:
    builder = ContextBuilder()
    builder.initialize(_indexed({"/repo/a.py": "a"}))
    builder.add_to_history("q", "r")

    builder.reset_index()

    assert builder.file_count == 0
    assert builder.get_conversation_history() != ""


def test_custom_templates_directory_overrides_layout(tmp_path: Path) -> None:
    (tmp_path / "context.j2").write_text("Q={{ query }} N={{ files | length }}", encoding="utf-8")
    builder = ContextBuilder(templates_dir=tmp_path)
    builder.initialize(_indexed({"/repo/alpha.py": "a"}))

    assert builder.build_context("alpha please") == "Q=alpha please N=1"


def test_relevant_files_and_symbols_use_current_snapshot() -> None:
    builder = ContextBuilder()
    builder.initialize(
        _indexed(
            {"/repo/cache.py": "", "/repo/store.py": ""},
            {"CacheEntry": ["/repo/cache.py"], "Store": ["/repo/store.py"]},
        )
    )

    assert builder.get_relevant_symbols("invalidate a cache entry") == ["CacheEntry"]
    assert builder.get_relevant_files("invalidate a cache entry", max_files=1) == ["/repo/cache.py"]

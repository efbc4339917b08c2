"""Tests for codelve.config."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from codelve.config import (
    DEFAULT_EXCLUDED_DIRECTORIES,
    DEFAULT_SUPPORTED_EXTENSIONS,
    CodelveConfig,
    ConfigError,
    load_config,
)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, CodelveConfig)
    assert config.root == tmp_path.resolve()
    assert config.values == {}
    assert config.scanner.max_file_size == 10 * 1024 * 1024
    assert config.scanner.max_file_count == 10_000
    assert config.scanner.max_line_count == 10_000
    assert config.scanner.supported_extensions == list(DEFAULT_SUPPORTED_EXTENSIONS)
    assert config.scanner.exclude_directories == list(DEFAULT_EXCLUDED_DIRECTORIES)
    assert config.llm.backend == "stub"
    assert config.llm.max_context_size == 8192
    assert config.llm.temperature == pytest.approx(0.7)
    assert config.llm.max_tokens == 1024
    assert config.llm.top_p == pytest.approx(0.95)
    assert config.max_history_entries == 10
    assert config.prompts.code_template is None
    assert config.log_level == "info"


def test_load_config_parses_nested_and_dotted_keys(tmp_path: Path) -> None:
    config_file = tmp_path / ".codelve.yml"
    config_file.write_text(
        """
scanner:
  max_file_count: 5
  supported_extensions: "py, JS ,cpp"
  exclude_directories:
    - vendor
    - build
"llm.max_context_size": 100
llm:
  backend: OLLAMA
  model: "codellama:7b"
  temperature: 0.1
  stop_sequences: ["User:", "###"]
  preload_model: "yes"
context:
  max_history: 3
prompts:
  general_template: "Q: {query}"
log_level: debug
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.root == tmp_path.resolve()
    assert config.has_key("scanner.max_file_count")
    assert config.scanner.max_file_count == 5
    assert config.scanner.supported_extensions == [".py", ".js", ".cpp"]
    assert config.scanner.exclude_directories == ["vendor", "build"]
    assert config.llm.max_context_size == 100
    assert config.llm.backend == "ollama"
    assert config.llm.model == "codellama:7b"
    assert config.llm.temperature == pytest.approx(0.1)
    assert config.llm.stop_sequences == ["User:", "###"]
    assert config.llm.preload_model is True
    assert config.max_history_entries == 3
    assert config.prompts.general_template == "Q: {query}"
    assert config.prompts.code_template is None
    assert config.log_level == "debug"


def test_directory_argument_resolves_config_file(tmp_path: Path) -> None:
    (tmp_path / ".codelve.yml").write_text("scanner:\n  max_line_count: 42\n", encoding="utf-8")

    config = load_config(tmp_path)

    assert config.scanner.max_line_count == 42


def test_typed_accessors_fall_back_on_mismatch(caplog: pytest.LogCaptureFixture) -> None:
    config = CodelveConfig(
        values={
            "a.int": "not-a-number",
            "a.float": "1.5",
            "a.bool": "off",
            "a.text": 12,
            "a.flag": True,
        }
    )

    with caplog.at_level(logging.WARNING, logger="codelve.config"):
        assert config.get_int("a.int", 7) == 7
    assert "Type mismatch for key a.int" in caplog.text

    assert config.get_float("a.float", 0.0) == pytest.approx(1.5)
    assert config.get_bool("a.bool", True) is False
    assert config.get_string("a.text", "") == "12"
    assert config.get_int("a.flag", 3) == 3
    assert config.get_string("missing", "fallback") == "fallback"
    assert config.get_list("missing", ["x"]) == ["x"]


def test_invalid_yaml_raises_config_error(tmp_path: Path) -> None:
    (tmp_path / ".codelve.yml").write_text("scanner: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_non_mapping_root_raises_config_error(tmp_path: Path) -> None:
    (tmp_path / ".codelve.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_empty_file_yields_defaults(tmp_path: Path) -> None:
    (tmp_path / ".codelve.yml").write_text("\n", encoding="utf-8")

    config = load_config(tmp_path)

    assert config.values == {}
    assert config.llm.backend == "stub"

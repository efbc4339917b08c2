"""Configuration loading for codelve (.codelve.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .logging import get_logger

CONFIG_FILENAME = ".codelve.yml"

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_MAX_FILE_COUNT = 10_000
DEFAULT_MAX_LINE_COUNT = 10_000
DEFAULT_MAX_CONTEXT_SIZE = 8192
DEFAULT_MAX_HISTORY = 10
DEFAULT_MAX_TOKENS = 1024

DEFAULT_SUPPORTED_EXTENSIONS: tuple[str, ...] = (
    ".cpp",
    ".h",
    ".hpp",
    ".c",
    ".cs",
    ".java",
    ".py",
    ".js",
    ".ts",
    ".go",
    ".rs",
    ".php",
    ".rb",
    ".swift",
    ".kt",
    ".scala",
)

DEFAULT_EXCLUDED_DIRECTORIES: tuple[str, ...] = (
    "node_modules",
    "build",
    "dist",
    "target",
    "bin",
    "obj",
    ".git",
    ".svn",
    ".hg",
    ".vs",
    ".idea",
    "venv",
    "__pycache__",
)

_logger = get_logger("config")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ScannerConfig:
    """Filtering limits and file selection rules for the scanner."""

    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_file_count: int = DEFAULT_MAX_FILE_COUNT
    max_line_count: int = DEFAULT_MAX_LINE_COUNT
    supported_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_SUPPORTED_EXTENSIONS))
    exclude_directories: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_DIRECTORIES))


@dataclass
class LLMConfig:
    """Inference backend selection and sampling parameters."""

    backend: str = "stub"
    model: Optional[str] = None
    model_path: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    executable: Optional[str] = None
    request_timeout: float = 60.0
    temperature: float = 0.7
    max_tokens: int = DEFAULT_MAX_TOKENS
    top_p: float = 0.95
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0
    stop_sequences: List[str] = field(default_factory=list)
    preload_model: bool = False
    max_context_size: int = DEFAULT_MAX_CONTEXT_SIZE


@dataclass
class PromptConfig:
    """Prompt template overrides; ``None`` keeps the built-in template."""

    code_template: Optional[str] = None
    general_template: Optional[str] = None


@dataclass
class CodelveConfig:
    """Flattened view of .codelve.yml with typed dotted-key accessors."""

    root: Optional[Path] = None
    values: Dict[str, Any] = field(default_factory=dict)

    def has_key(self, key: str) -> bool:
        return key in self.values

    def get_string(self, key: str, default: str = "") -> str:
        value = self._lookup(key, _as_str, "string")
        return default if value is None else value

    def get_int(self, key: str, default: int = 0) -> int:
        value = self._lookup(key, _as_int, "int")
        return default if value is None else value

    def get_float(self, key: str, default: float = 0.0) -> float:
        value = self._lookup(key, _as_float, "float")
        return default if value is None else value

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._lookup(key, _as_bool, "bool")
        return default if value is None else value

    def get_list(self, key: str, default: Sequence[str] = ()) -> List[str]:
        """Return a string list from a YAML sequence or a comma separated string."""
        if key not in self.values:
            return list(default)
        items = _as_str_list(self.values[key])
        return items if items else list(default)

    @property
    def scanner(self) -> ScannerConfig:
        extensions = [_normalise_extension(ext) for ext in self.get_list("scanner.supported_extensions")]
        extensions = [ext for ext in extensions if ext]
        return ScannerConfig(
            max_file_size=self.get_int("scanner.max_file_size_bytes", DEFAULT_MAX_FILE_SIZE),
            max_file_count=self.get_int("scanner.max_file_count", DEFAULT_MAX_FILE_COUNT),
            max_line_count=self.get_int("scanner.max_line_count", DEFAULT_MAX_LINE_COUNT),
            supported_extensions=extensions or list(DEFAULT_SUPPORTED_EXTENSIONS),
            exclude_directories=self.get_list(
                "scanner.exclude_directories", DEFAULT_EXCLUDED_DIRECTORIES
            ),
        )

    @property
    def llm(self) -> LLMConfig:
        return LLMConfig(
            backend=self.get_string("llm.backend", "stub").strip().lower() or "stub",
            model=self._optional_string("llm.model"),
            model_path=self._optional_string("llm.model_path"),
            base_url=self._optional_string("llm.base_url"),
            api_key=self._optional_string("llm.api_key"),
            executable=self._optional_string("llm.executable"),
            request_timeout=self.get_float("llm.request_timeout", 60.0),
            temperature=self.get_float("llm.temperature", 0.7),
            max_tokens=self.get_int("llm.max_tokens", DEFAULT_MAX_TOKENS),
            top_p=self.get_float("llm.top_p", 0.95),
            presence_penalty=self.get_float("llm.presence_penalty", 0.0),
            frequency_penalty=self.get_float("llm.frequency_penalty", 0.0),
            stop_sequences=self.get_list("llm.stop_sequences"),
            preload_model=self.get_bool("llm.preload_model", False),
            max_context_size=self.get_int("llm.max_context_size", DEFAULT_MAX_CONTEXT_SIZE),
        )

    @property
    def prompts(self) -> PromptConfig:
        return PromptConfig(
            code_template=self._optional_string("prompts.code_template"),
            general_template=self._optional_string("prompts.general_template"),
        )

    @property
    def max_history_entries(self) -> int:
        return self.get_int("context.max_history", DEFAULT_MAX_HISTORY)

    @property
    def log_level(self) -> str:
        return self.get_string("log_level", "info")

    def _optional_string(self, key: str) -> Optional[str]:
        value = self.get_string(key, "")
        return value if value else None

    def _lookup(self, key: str, coerce, type_name: str):  # type: ignore[no-untyped-def]
        if key not in self.values:
            return None
        raw = self.values[key]
        if raw is None:
            return None
        value = coerce(raw)
        if value is None:
            _logger.warning("Type mismatch for key %s: expected %s, got %r", key, type_name, raw)
        return value


def load_config(config_path: Path | None = None) -> CodelveConfig:
    """Load configuration from disk, returning defaults when the file is absent."""
    if config_path is None:
        return CodelveConfig()

    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return CodelveConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    return CodelveConfig(root=root, values=flatten_mapping(data))


def flatten_mapping(data: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested mappings into dotted keys; sequences stay as values."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten_mapping(value, full_key))
        else:
            flat[full_key] = value
    return flat


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _normalise_extension(value: str) -> str:
    ext = value.strip().lower()
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    return ext


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, bool)):
        return str(value)
    return None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1", "on"}:
            return True
        if lowered in {"false", "no", "0", "off"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, Sequence):
        return [str(item).strip() for item in value if isinstance(item, (str, int, float)) and str(item).strip()]
    return []

"""Symbol extractor implementations and dispatch utilities."""

from __future__ import annotations

from importlib import metadata
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Set

from ..models import SymbolInfo
from .base import LineIndex, PatternRule, SymbolExtractor
from .cfamily import CFamilyExtractor
from .common import CommonExtractor
from .javascript import JavaScriptExtractor
from .python import PythonExtractor

_ENTRY_POINT_GROUP = "codelve.extractors"

_BUILTIN_FACTORIES: dict[str, Callable[[], SymbolExtractor]] = {
    "cfamily": CFamilyExtractor,
    "python": PythonExtractor,
    "javascript": JavaScriptExtractor,
}


class ExtractorRegistry:
    """Dispatches a file to its language extractor, then the common one."""

    def __init__(
        self,
        extractors: Optional[Iterable[SymbolExtractor]] = None,
        *,
        common: Optional[SymbolExtractor] = None,
    ) -> None:
        self._extractors: List[SymbolExtractor] = (
            list(extractors) if extractors is not None else discover_extractors()
        )
        self._common = common or CommonExtractor()

    @property
    def extractors(self) -> Sequence[SymbolExtractor]:
        return tuple(self._extractors)

    def for_extension(self, extension: str) -> Optional[SymbolExtractor]:
        """Return the first language extractor that handles ``extension``."""
        lowered = extension.lower()
        for extractor in self._extractors:
            if extractor.supports(lowered):
                return extractor
        return None

    def extract(self, file_path: str, content: str) -> List[SymbolInfo]:
        """Return every symbol found in ``content``, language rules first."""
        symbols: List[SymbolInfo] = []
        language = self.for_extension(Path(file_path).suffix)
        if language is not None:
            symbols.extend(language.extract(file_path, content))
        symbols.extend(self._common.extract(file_path, content))
        return symbols


def discover_extractors(enabled: Sequence[str] | None = None) -> List[SymbolExtractor]:
    """Return instantiated language extractors, honoring optional enabled names."""

    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    extractors: List[SymbolExtractor] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[], SymbolExtractor]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory()
        if not isinstance(instance, SymbolExtractor):
            raise TypeError(f"Extractor factory for '{name}' did not return a SymbolExtractor instance")
        extractors.append(instance)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        name = entry.name
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - third-party plugin failure
            raise RuntimeError(f"Failed to load extractor entry point '{name}': {exc}") from exc

        def _factory(obj: object = loaded) -> SymbolExtractor:
            return _coerce_extractor(obj)

        _add(name, _factory)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown extractors requested: {missing}")

    return extractors


def _coerce_extractor(obj: object) -> SymbolExtractor:
    if isinstance(obj, SymbolExtractor):
        return obj
    if isinstance(obj, type) and issubclass(obj, SymbolExtractor):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, SymbolExtractor):
            return instance
    raise TypeError("Extractor entry point must be a SymbolExtractor subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "CFamilyExtractor",
    "CommonExtractor",
    "ExtractorRegistry",
    "JavaScriptExtractor",
    "LineIndex",
    "PatternRule",
    "PythonExtractor",
    "SymbolExtractor",
    "discover_extractors",
]

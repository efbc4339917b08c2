"""Directory scanning and symbol indexing."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .budget import ResourceBudget
from .config import DEFAULT_EXCLUDED_DIRECTORIES, DEFAULT_SUPPORTED_EXTENSIONS, CodelveConfig
from .extractors import ExtractorRegistry
from .logging import get_logger
from .models import IndexedCode, SymbolInfo

STAGE_COUNTING = "Counting files"
STAGE_SCANNING = "Scanning files"
STAGE_COMPLETE = "Scan complete"

ProgressSink = Callable[[str, float, str], None]
StopCheck = Callable[[], bool]


class Scanner:
    """Walks a source tree, filters files and indexes their symbols."""

    def __init__(
        self,
        budget: ResourceBudget | None = None,
        *,
        supported_extensions: Optional[Iterable[str]] = None,
        exclude_directories: Optional[Iterable[str]] = None,
        registry: ExtractorRegistry | None = None,
    ) -> None:
        self.budget = budget or ResourceBudget()
        extensions = supported_extensions if supported_extensions is not None else DEFAULT_SUPPORTED_EXTENSIONS
        self._extensions: List[str] = list(dict.fromkeys(ext.lower() for ext in extensions))
        excluded = exclude_directories if exclude_directories is not None else DEFAULT_EXCLUDED_DIRECTORIES
        self._excluded = frozenset(excluded)
        self.registry = registry or ExtractorRegistry()
        self.logger = get_logger("scanner")
        self.logger.info("Scanner initialized with %d supported extensions", len(self._extensions))

    @classmethod
    def from_config(cls, config: CodelveConfig, budget: ResourceBudget) -> "Scanner":
        settings = config.scanner
        return cls(
            budget,
            supported_extensions=settings.supported_extensions,
            exclude_directories=settings.exclude_directories,
        )

    @property
    def supported_extensions(self) -> List[str]:
        return list(self._extensions)

    @property
    def exclude_directories(self) -> List[str]:
        return sorted(self._excluded)

    def is_relevant_file(self, file_path: str | Path) -> bool:
        """Return True when the file extension is supported (case-insensitive)."""
        return Path(file_path).suffix.lower() in self._extensions

    def scan(
        self,
        root: str | Path,
        progress: ProgressSink | None = None,
        *,
        should_stop: StopCheck | None = None,
    ) -> IndexedCode:
        """Return a snapshot of every eligible file beneath ``root``."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists() or not root_path.is_dir():
            self.logger.error("Invalid directory path: %s", root)
            return IndexedCode(root=str(root_path))

        self.logger.info("Starting scan of directory: %s", root_path)
        notify = progress or _ignore_progress
        limit = self.budget.max_file_count

        notify(STAGE_COUNTING, 0.0, "Counting relevant files")
        total = min(self._count_candidates(root_path, limit), limit)
        notify(STAGE_SCANNING, 0.0, f"Found {total} relevant files")

        files: Dict[str, str] = {}
        symbols: Dict[str, List[str]] = {}
        details: List[SymbolInfo] = []
        directories: List[str] = []
        extensions: List[str] = []
        total_size = 0
        processed = 0

        for path, is_dir in self._walk(root_path):
            if should_stop is not None and should_stop():
                self.logger.info("Scan of %s cancelled after %d files", root_path, processed)
                break
            if is_dir:
                directories.append(str(path))
                continue
            loaded = self._load_file(path)
            if loaded is None:
                continue
            content, size = loaded

            file_path = str(path)
            files[file_path] = content
            extension = path.suffix.lower()
            if extension and extension not in extensions:
                extensions.append(extension)
            _register_symbols(symbols, details, file_path, self.registry.extract(file_path, content))

            total_size += size
            processed += 1
            fraction = min(1.0, processed / total) if total else 1.0
            notify(STAGE_SCANNING, fraction, f"Processed {processed} of {total} files")

            if processed >= limit:
                self.logger.warning("Reached maximum file count limit (%d)", limit)
                break

        notify(STAGE_COMPLETE, 1.0, f"Scanned {processed} files")
        self.logger.info(
            "Completed scan of %s: %d files, %d bytes, %d symbols",
            root_path,
            processed,
            total_size,
            len(symbols),
        )
        return IndexedCode(
            root=str(root_path),
            files=files,
            symbols=symbols,
            symbol_details=details,
            directories=directories,
            file_extensions=extensions,
            total_size=total_size,
            file_count=processed,
        )

    def _count_candidates(self, root: Path, limit: int) -> int:
        total = 0
        for path, is_dir in self._walk(root, log_excluded=False):
            if is_dir or not self.is_relevant_file(path):
                continue
            total += 1
            if total > limit:
                break
        return total

    def _walk(self, root: Path, *, log_excluded: bool = True) -> Iterator[Tuple[Path, bool]]:
        """Yield ``(path, is_dir)`` pairs, recording but not entering excluded dirs."""
        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            kept: List[str] = []
            for name in sorted(dirnames):
                yield current / name, True
                if name in self._excluded:
                    if log_excluded:
                        self.logger.debug("Skipping excluded directory: %s", current / name)
                    continue
                kept.append(name)
            dirnames[:] = kept
            for filename in sorted(filenames):
                path = current / filename
                if path.is_file():
                    yield path, False

    def _load_file(self, path: Path) -> Optional[Tuple[str, int]]:
        if not self.is_relevant_file(path):
            return None
        try:
            size = path.stat().st_size
        except OSError as exc:
            self.logger.warning("Failed to stat file %s: %s", path, exc)
            return None
        if size > self.budget.max_file_size:
            self.logger.debug("Skipping large file (%d bytes): %s", size, path)
            return None
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            self.logger.warning("Failed to open file %s: %s", path, exc)
            return None
        line_count = content.count("\n") + 1
        if line_count > self.budget.max_line_count:
            self.logger.debug("Skipping file with excessive line count (%d lines): %s", line_count, path)
            return None
        return content, size


def _register_symbols(
    symbols: Dict[str, List[str]],
    details: List[SymbolInfo],
    file_path: str,
    extracted: Sequence[SymbolInfo],
) -> None:
    for symbol in extracted:
        paths = symbols.setdefault(symbol.name, [])
        if file_path not in paths:
            paths.append(file_path)
        details.append(symbol)


def _ignore_progress(stage: str, fraction: float, message: str) -> None:
    return None

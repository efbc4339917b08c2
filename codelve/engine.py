"""Session engine coordinating scans, queries and the inference backend."""

from __future__ import annotations

import itertools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .budget import ResourceBudget, format_size
from .config import CodelveConfig
from .context.builder import ContextBuilder
from .errors import CodelveError, IndexInitError, InferenceUnavailableError, InvalidPathError
from .events import EventChannel, Response, ResponseKind, ScanFinished, ScanProgress
from .llm import InferenceBackend, InferenceParams, create_backend
from .logging import get_logger
from .models import IndexedCode
from .prompting.constants import APP_NAME, COMMAND_DESCRIPTIONS, EXIT_COMMANDS
from .prompting.processor import QueryProcessor
from .prompting.rendering import create_environment
from .scanner import Scanner

HELP_TEMPLATE = "help.md.j2"
MODEL_LOAD_FAILURE = "Sorry, I couldn't load the language model. Please check the logs for details."

TokenSink = Callable[[str, bool], None]


@dataclass(frozen=True)
class QueryHandle:
    """Handle for one submitted query; ``result`` blocks until the reply is ready."""

    query_id: int
    future: "Future[Response]"

    def result(self, timeout: Optional[float] = None) -> Response:
        return self.future.result(timeout)

    def done(self) -> bool:
        return self.future.done()


class Engine:
    """Owns the budget, scanner, context builder, query processor and backend."""

    def __init__(
        self,
        config: CodelveConfig | None = None,
        *,
        backend: InferenceBackend | None = None,
        budget: ResourceBudget | None = None,
        scanner: Scanner | None = None,
        context_builder: ContextBuilder | None = None,
        query_processor: QueryProcessor | None = None,
        events: EventChannel | None = None,
        templates_dir: Path | None = None,
        query_workers: int = 4,
    ) -> None:
        self.config = config or CodelveConfig()
        self.logger = get_logger("engine")
        self.budget = budget or ResourceBudget.from_config(self.config)
        self.scanner = scanner or Scanner.from_config(self.config, self.budget)
        self.context_builder = context_builder or ContextBuilder(self.budget, templates_dir=templates_dir)
        self.query_processor = query_processor or QueryProcessor.from_config(
            self.config, self.context_builder
        )
        self.events = events or EventChannel()
        self.params = InferenceParams.from_config(self.config.llm)
        self._templates = create_environment(templates_dir)

        self._backend_error: Optional[str] = None
        self.backend = backend if backend is not None else self._create_backend()
        self._backend_lock = threading.Lock()

        self._scan_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="codelve-scan")
        self._query_executor = ThreadPoolExecutor(
            max_workers=max(1, query_workers), thread_name_prefix="codelve-query"
        )
        self._scan_lock = threading.Lock()
        self._scan_future: Optional["Future[Optional[IndexedCode]]"] = None
        self._cancel_scan = threading.Event()
        self._query_ids = itertools.count(1)
        self._status = "Ready"

        if self.config.llm.preload_model:
            self.preload()

    @property
    def status(self) -> str:
        return self._status

    @property
    def is_scanning(self) -> bool:
        future = self._scan_future
        return future is not None and not future.done()

    def scan(self, path: str | Path) -> bool:
        """Start a background scan of ``path``; returns False when it cannot start."""
        root = Path(path).expanduser()
        with self._scan_lock:
            if self.is_scanning:
                self.logger.warning("Scan of %s rejected: another scan is in progress", root)
                self.events.publish(Response(ResponseKind.ERROR, "A scan is already in progress."))
                return False
            if not root.is_dir():
                error = InvalidPathError(f"Invalid directory path: {path}")
                self.logger.error("%s", error)
                self.events.publish(Response(ResponseKind.ERROR, str(error)))
                return False
            self._cancel_scan.clear()
            self._set_status(f"Scanning {root}...")
            self._scan_future = self._scan_executor.submit(self._run_scan, root)
        return True

    def cancel_scan(self) -> bool:
        """Ask the running scan to stop; its partial result is discarded."""
        if not self.is_scanning:
            return False
        self.logger.info("Cancelling active scan")
        self._cancel_scan.set()
        return True

    def wait_for_scan(self, timeout: Optional[float] = None) -> Optional[IndexedCode]:
        """Block until the current scan finishes; returns the installed snapshot or None."""
        future = self._scan_future
        if future is None:
            return None
        return future.result(timeout)

    def submit_query(self, query: str, *, on_token: TokenSink | None = None) -> QueryHandle:
        """Queue ``query``; commands are answered immediately, prompts in the background."""
        query_id = next(self._query_ids)
        trimmed = query.strip()

        if trimmed.lower() in EXIT_COMMANDS:
            return self._completed(Response(ResponseKind.EXIT, "Goodbye.", query_id))

        command = self.query_processor.extract_command(trimmed)
        if command:
            return self._completed(self._handle_command(command, query_id))

        self.events.publish(Response(ResponseKind.TYPING, query_id=query_id))
        future = self._query_executor.submit(self._answer, query_id, query, on_token)
        return QueryHandle(query_id, future)

    def ask(self, query: str, timeout: Optional[float] = None) -> Response:
        """Submit ``query`` and wait for its final response."""
        return self.submit_query(query).result(timeout)

    def preload(self) -> bool:
        """Initialize the backend eagerly instead of on the first query."""
        try:
            self._ensure_backend()
        except InferenceUnavailableError as exc:
            self.logger.error("Model preload failed: %s", exc)
            return False
        return True

    def show_file(self, path: str | Path) -> str:
        """Return indexed content for ``path``, or an empty string if it was not indexed."""
        content = self.context_builder.get_file(str(path))
        if content:
            return content
        return self.context_builder.get_file(str(Path(path).expanduser().resolve()))

    def help_text(self) -> str:
        template = self._templates.get_template(HELP_TEMPLATE)
        commands = [{"name": name, "description": text} for name, text in COMMAND_DESCRIPTIONS]
        return template.render(app_name=APP_NAME, commands=commands).rstrip("\n")

    def info_text(self) -> str:
        builder = self.context_builder
        lines: List[str] = [
            f"Indexed directory: {builder.root or 'none'}",
            f"Files: {builder.file_count}",
            f"Symbols: {builder.symbol_count}",
            f"Indexed size: {format_size(self.budget.indexed_bytes)}",
            f"History entries: {len(builder.history)}",
        ]
        if self.backend is None:
            lines.append(f"Backend: unavailable ({self._backend_error})")
        else:
            lines.append(self.backend.model_info())
            state = "loaded" if self.backend.is_initialized() else "not loaded"
            lines.append(f"Model state: {state}")
        return "\n".join(lines)

    def settings_text(self) -> str:
        return self.budget.report()

    def shutdown(self, *, wait: bool = True) -> None:
        self.cancel_scan()
        self._scan_executor.shutdown(wait=wait)
        self._query_executor.shutdown(wait=wait)
        if self.backend is not None:
            self.backend.unload()
        self.logger.debug("Engine shut down")

    def __enter__(self) -> "Engine":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def _create_backend(self) -> Optional[InferenceBackend]:
        try:
            return create_backend(self.config.llm)
        except RuntimeError as exc:
            self._backend_error = str(exc)
            self.logger.error("Unable to configure inference backend: %s", exc)
            return None

    def _ensure_backend(self) -> InferenceBackend:
        with self._backend_lock:
            if self.backend is None:
                raise InferenceUnavailableError(self._backend_error or "No inference backend configured")
            if not self.backend.is_initialized():
                self.logger.info("Initializing %s backend", self.backend.name)
                if not self.backend.initialize():
                    raise InferenceUnavailableError(f"Failed to initialize {self.backend.name} backend")
            return self.backend

    def _run_scan(self, root: Path) -> Optional[IndexedCode]:
        try:
            indexed = self.scanner.scan(root, self._publish_progress, should_stop=self._cancel_scan.is_set)
            if self._cancel_scan.is_set():
                self._set_status("Scan cancelled")
                self.events.publish(ScanFinished(str(root), False, message="Scan cancelled"))
                return None
            if not self.context_builder.initialize(indexed):
                raise IndexInitError(f"Failed to load indexed code from {root}")
            self.budget.reset()
            self.budget.record_indexed(indexed.total_size)
        except CodelveError as exc:
            self.logger.error("%s", exc)
            self._set_status(str(exc))
            self.events.publish(ScanFinished(str(root), False, message=str(exc)))
            return None
        except Exception as exc:
            self._log_exception(f"Scan of {root} failed", exc)
            self._set_status(f"Scan failed: {exc}")
            self.events.publish(ScanFinished(str(root), False, message=str(exc)))
            return None

        message = f"Indexed {indexed.file_count} files with {indexed.symbol_count} symbols"
        self._set_status(message)
        self.events.publish(
            ScanFinished(
                str(root),
                True,
                file_count=indexed.file_count,
                symbol_count=indexed.symbol_count,
                message=message,
            )
        )
        return indexed

    def _publish_progress(self, stage: str, progress: float, message: str) -> None:
        self._set_status(message)
        self.events.publish(ScanProgress(stage, progress, message))

    def _handle_command(self, command: str, query_id: int) -> Response:
        if command == "/help":
            return Response(ResponseKind.TEXT, self.help_text(), query_id)
        if command == "/clear":
            self.context_builder.clear_history()
            return Response(ResponseKind.CLEAR_HISTORY, "Conversation history cleared.", query_id)
        if command == "/reset":
            self.context_builder.clear_history()
            self.context_builder.reset_index()
            self.budget.reset()
            self._set_status("Ready")
            return Response(
                ResponseKind.CLEAR_HISTORY, "Conversation history and indexed codebase cleared.", query_id
            )
        if command == "/info":
            return Response(ResponseKind.TEXT, self.info_text(), query_id)
        if command == "/settings":
            return Response(ResponseKind.TEXT, self.settings_text(), query_id)
        if command == "/exit":
            return Response(ResponseKind.EXIT, "Goodbye.", query_id)
        return Response(ResponseKind.ERROR, f"Unknown command: {command}", query_id)

    def _answer(self, query_id: int, query: str, on_token: TokenSink | None) -> Response:
        try:
            backend = self._ensure_backend()
        except InferenceUnavailableError as exc:
            self.logger.error("Inference unavailable: %s", exc)
            return self._publish(Response(ResponseKind.ERROR, MODEL_LOAD_FAILURE, query_id))

        try:
            prepared = self.query_processor.prepare(query)
            if on_token is None:
                text = backend.run_inference(prepared.prompt, self.params)
            else:
                text = self._stream(backend, prepared.prompt, on_token)
        except Exception as exc:
            self._log_exception("Query processing failed", exc)
            return self._publish(Response(ResponseKind.ERROR, f"Error processing query: {exc}", query_id))

        self.context_builder.add_to_history(query, text)
        return self._publish(Response(ResponseKind.TEXT, text, query_id))

    def _stream(self, backend: InferenceBackend, prompt: str, on_token: TokenSink) -> str:
        tokens: List[str] = []

        def _collect(token: str, is_last: bool) -> None:
            tokens.append(token)
            on_token(token, is_last)

        backend.run_inference_streaming(prompt, _collect, self.params)
        return "".join(tokens)

    def _completed(self, response: Response) -> QueryHandle:
        future: "Future[Response]" = Future()
        future.set_result(self._publish(response))
        return QueryHandle(response.query_id, future)

    def _publish(self, response: Response) -> Response:
        self.events.publish(response)
        return response

    def _set_status(self, message: str) -> None:
        self._status = message
        self.logger.debug("Status: %s", message)

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)

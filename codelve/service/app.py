"""FastAPI application entrypoint for codelve service mode."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Callable, List, Optional, TypeVar

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import CodelveConfig
from ..engine import Engine
from ..errors import InvalidPathError, ScanInProgressError
from ..events import Event, Response, ScanFinished, ScanProgress
from ..logging import get_logger
from ..models import IndexedCode

T = TypeVar("T")


class ScanRequest(BaseModel):
    path: str
    wait: bool = True


class ScanResponse(BaseModel):
    status: str
    root: str
    file_count: int = 0
    symbol_count: int = 0


class QueryRequest(BaseModel):
    query: str


class QueryResponse(BaseModel):
    kind: str
    text: str
    is_error: bool


class HistoryEntry(BaseModel):
    query: str
    response: str


class HistoryResponse(BaseModel):
    entries: List[HistoryEntry]


class HealthResponse(BaseModel):
    status: str
    scanning: bool
    file_count: int


async def _in_executor(func: Callable[[], T]) -> T:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:  # pragma: no cover - fallback path when not in async context
        return func()
    return await loop.run_in_executor(None, func)


def create_app(
    engine_factory: Callable[[], Engine] = Engine,
) -> FastAPI:
    """Create the FastAPI application exposing one codelve session."""

    # One engine per application: the index and history persist across requests.
    engine = engine_factory()
    logger = get_logger("service")

    def _log_event(event: Event) -> None:
        if isinstance(event, ScanProgress):
            logger.debug("%s: %s", event.stage, event.message)
        elif isinstance(event, ScanFinished):
            logger.info("Scan of %s finished: %s", event.root, event.message)
        elif isinstance(event, Response) and event.is_error:
            logger.warning("Query %d failed: %s", event.query_id, event.text)

    # Events are logged, not buffered.
    engine.events.subscribe(_log_event)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        engine.events.unsubscribe(_log_event)
        engine.shutdown(wait=False)

    app = FastAPI(title="CodeLve Service", version="1.0.0", lifespan=lifespan)

    async def get_engine() -> Engine:
        return engine

    @app.get("/health", response_model=HealthResponse)
    async def health(session: Engine = Depends(get_engine)) -> HealthResponse:
        return HealthResponse(
            status="ok",
            scanning=session.is_scanning,
            file_count=session.context_builder.file_count,
        )

    @app.post("/scan", response_model=ScanResponse)
    async def scan(payload: ScanRequest, session: Engine = Depends(get_engine)) -> ScanResponse:
        root = Path(payload.path).expanduser()
        if not root.is_dir():
            raise InvalidPathError(f"Invalid directory path: {payload.path}")
        if not session.scan(root):
            raise ScanInProgressError("A scan is already in progress.")
        if not payload.wait:
            return ScanResponse(status="started", root=str(root))

        indexed: Optional[IndexedCode] = await _in_executor(session.wait_for_scan)
        if indexed is None:
            return ScanResponse(status="failed", root=str(root))
        return ScanResponse(
            status="ok",
            root=indexed.root,
            file_count=indexed.file_count,
            symbol_count=indexed.symbol_count,
        )

    @app.post("/query", response_model=QueryResponse)
    async def query(payload: QueryRequest, session: Engine = Depends(get_engine)) -> QueryResponse:
        response = await _in_executor(lambda: session.ask(payload.query))
        return QueryResponse(kind=response.kind.value, text=response.text, is_error=response.is_error)

    @app.get("/history", response_model=HistoryResponse)
    async def history(session: Engine = Depends(get_engine)) -> HistoryResponse:
        entries = [
            HistoryEntry(query=entry.query, response=entry.response)
            for entry in session.context_builder.history.entries()
        ]
        return HistoryResponse(entries=entries)

    @app.delete("/history", response_model=HistoryResponse)
    async def clear_history(session: Engine = Depends(get_engine)) -> HistoryResponse:
        session.context_builder.clear_history()
        return HistoryResponse(entries=[])

    @app.exception_handler(InvalidPathError)
    async def invalid_path_handler(_: Any, exc: InvalidPathError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(_: Any, exc: RuntimeError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1",
    port: int = 8000,
    *,
    config: CodelveConfig | None = None,
) -> None:  # pragma: no cover - integration path
    app = create_app(lambda: Engine(config))
    uvicorn.run(app, host=host, port=port)

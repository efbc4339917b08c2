"""Inference backends and the factory that selects one from configuration."""

from __future__ import annotations

from ..config import LLMConfig
from ..errors import InferenceUnavailableError
from .base import InferenceBackend, InferenceParams, TokenCallback
from .llamacpp import LlamaCppBackend
from .runner import LLMRequest, LLMRunner
from .stub import STUB_RESPONSE, StubBackend

BACKENDS: tuple[str, ...] = ("stub", "http", "ollama", "llamacpp")


def create_backend(config: LLMConfig) -> InferenceBackend:
    """Instantiate the backend named by ``llm.backend``."""
    backend = config.backend
    if backend == "stub":
        return StubBackend()
    if backend == "http":
        return LLMRunner(
            config.model,
            base_url=config.base_url or LLMRunner.DEFAULT_BASE_URL,
            api_key=config.api_key,
            request_timeout=config.request_timeout,
        )
    if backend == "ollama":
        return LLMRunner(
            config.model,
            base_url=None,
            executable=config.executable or "ollama",
            request_timeout=config.request_timeout,
        )
    if backend == "llamacpp":
        if not config.model_path:
            raise InferenceUnavailableError("llm.model_path is required for the llamacpp backend")
        return LlamaCppBackend(
            model_path=config.model_path,
            executable=config.executable,
            request_timeout=config.request_timeout,
        )
    raise InferenceUnavailableError(
        f"Unknown llm.backend '{backend}'. Expected one of: {', '.join(BACKENDS)}"
    )


__all__ = [
    "BACKENDS",
    "InferenceBackend",
    "InferenceParams",
    "LLMRequest",
    "LLMRunner",
    "LlamaCppBackend",
    "STUB_RESPONSE",
    "StubBackend",
    "TokenCallback",
    "create_backend",
]

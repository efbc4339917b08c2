"""Inference backend capability shared by every model runtime."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List

from ..budget import CHARS_PER_TOKEN
from ..config import DEFAULT_MAX_TOKENS, LLMConfig
from ..errors import InferenceUnavailableError

TokenCallback = Callable[[str, bool], None]


@dataclass
class InferenceParams:
    """Sampling parameters passed with every inference request."""

    temperature: float = 0.7
    max_tokens: int = DEFAULT_MAX_TOKENS
    top_p: float = 0.95
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0
    stop_sequences: List[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: LLMConfig) -> "InferenceParams":
        return cls(
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            top_p=config.top_p,
            presence_penalty=config.presence_penalty,
            frequency_penalty=config.frequency_penalty,
            stop_sequences=list(config.stop_sequences),
        )


class InferenceBackend(ABC):
    """Base class for model runtimes the engine can send prompts to."""

    name: str = "backend"

    def __init__(self) -> None:
        self._initialized = False

    def initialize(self) -> bool:
        """Prepare the runtime; returns False instead of raising on failure."""
        if self._initialized:
            return True
        self._initialized = self._load()
        return self._initialized

    def is_initialized(self) -> bool:
        return self._initialized

    def unload(self) -> None:
        self._initialized = False

    def run_inference(self, prompt: str, params: InferenceParams | None = None) -> str:
        self._require_initialized()
        return self._generate(prompt, params or InferenceParams())

    def run_inference_streaming(
        self,
        prompt: str,
        callback: TokenCallback,
        params: InferenceParams | None = None,
    ) -> None:
        """Deliver the response through ``callback``; the final call has ``is_last`` set."""
        self._require_initialized()
        self._stream(prompt, callback, params or InferenceParams())

    def count_tokens(self, text: str) -> int:
        return len(text) // CHARS_PER_TOKEN

    def model_info(self) -> str:
        return f"Backend: {self.name}"

    @abstractmethod
    def _load(self) -> bool:
        """Return True when the runtime is ready to serve prompts."""

    @abstractmethod
    def _generate(self, prompt: str, params: InferenceParams) -> str:
        """Return the full completion for ``prompt``."""

    def _stream(self, prompt: str, callback: TokenCallback, params: InferenceParams) -> None:
        callback(self._generate(prompt, params), True)

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise InferenceUnavailableError(f"{self.name} backend is not initialized")

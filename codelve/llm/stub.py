"""Deterministic backend for tests and offline sessions."""

from __future__ import annotations

from typing import List

from .base import InferenceBackend, InferenceParams, TokenCallback

STUB_RESPONSE = (
    "This is a simulated response from the CodeLve stub backend. "
    "Configure llm.backend to use a local model."
)


class StubBackend(InferenceBackend):
    """Returns a fixed reply and records every prompt it receives."""

    name = "stub"

    def __init__(self, response: str = STUB_RESPONSE, *, fail_initialize: bool = False) -> None:
        super().__init__()
        self.response = response
        self.fail_initialize = fail_initialize
        self.prompts: List[str] = []

    def model_info(self) -> str:
        return "Backend: stub\nModel: simulated (no weights loaded)"

    def _load(self) -> bool:
        return not self.fail_initialize

    def _generate(self, prompt: str, params: InferenceParams) -> str:
        self.prompts.append(prompt)
        return self.response

    def _stream(self, prompt: str, callback: TokenCallback, params: InferenceParams) -> None:
        self.prompts.append(prompt)
        words = self.response.split(" ")
        for index, word in enumerate(words):
            is_last = index == len(words) - 1
            callback(word if is_last else word + " ", is_last)

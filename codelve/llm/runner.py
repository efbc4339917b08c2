"""Adapters around local model runtimes (OpenAI-compatible servers / Ollama)."""

from __future__ import annotations

import ipaddress
import json
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from ..logging import get_logger
from .base import InferenceBackend, InferenceParams, TokenCallback

_AUTO_BASE_URL = object()
_AUTO_API_KEY = object()

_SSE_PREFIX = "data:"
_SSE_DONE = "[DONE]"


@dataclass
class LLMRequest:
    """Represents an inference request for the local runner."""

    prompt: str
    model: str
    executable: Optional[str]
    base_url: Optional[str]
    api_key: Optional[str]
    request_timeout: Optional[float]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    stop: List[str] = field(default_factory=list)


class LLMRunner(InferenceBackend):
    """Executes prompts against a local OpenAI-compatible server or the Ollama CLI."""

    DEFAULT_MODEL = "qwen2.5-coder:1.5b"
    # Ollama serves an OpenAI-compatible API here.
    DEFAULT_BASE_URL = "http://localhost:11434/v1"
    ENV_MODEL_KEYS = ("CODELVE_LLM_MODEL", "OPENAI_MODEL")
    ENV_BASE_URL_KEYS = ("CODELVE_LLM_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("CODELVE_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None | object = _AUTO_BASE_URL,
        executable: str = "ollama",
        api_key: str | None | object = _AUTO_API_KEY,
        request_timeout: Optional[float] = 60.0,
        runner: Callable[[LLMRequest], str] | None = None,
    ) -> None:
        super().__init__()
        self.model = self._resolve_model(model)
        self.base_url = self._resolve_base_url(base_url)
        self.executable = executable
        self.api_key = self._resolve_api_key(api_key)
        self.request_timeout = request_timeout
        self.name = "http" if self.base_url else "ollama"
        self._custom_runner = runner is not None
        if runner is not None:
            self._runner = runner
        else:
            self._runner = self._http_runner if self.base_url else self._cli_runner
        self.logger = get_logger("llm")

    def run(self, prompt: str, params: InferenceParams | None = None) -> str:
        """Send the prompt to the configured local model and return the response text."""
        return self._runner(self._build_request(prompt, params or InferenceParams()))

    def model_info(self) -> str:
        location = self.base_url or self.executable
        return f"Backend: {self.name}\nModel: {self.model}\nEndpoint: {location}"

    def _load(self) -> bool:
        if self._custom_runner or self.base_url:
            return True
        if shutil.which(self.executable) is None:
            self.logger.error("Unable to locate '%s' on PATH", self.executable)
            return False
        return True

    def _generate(self, prompt: str, params: InferenceParams) -> str:
        return self.run(prompt, params)

    def _stream(self, prompt: str, callback: TokenCallback, params: InferenceParams) -> None:
        if self._custom_runner or not self.base_url:
            super()._stream(prompt, callback, params)
            return
        request = self._build_request(prompt, params)
        for token in self._http_stream(request):
            callback(token, False)
        callback("", True)

    def _build_request(self, prompt: str, params: InferenceParams) -> LLMRequest:
        return LLMRequest(
            prompt=prompt,
            model=self.model,
            executable=self.executable,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
            temperature=params.temperature,
            max_tokens=params.max_tokens,
            top_p=params.top_p,
            presence_penalty=params.presence_penalty,
            frequency_penalty=params.frequency_penalty,
            stop=list(params.stop_sequences),
        )

    @staticmethod
    def _cli_runner(request: LLMRequest) -> str:
        args = [request.executable or "ollama", "run", request.model, request.prompt]
        try:
            completed = subprocess.run(
                args,
                check=True,
                capture_output=True,
                text=True,
                timeout=request.request_timeout,
            )
        except FileNotFoundError as exc:  # pragma: no cover - depends on environment
            raise RuntimeError(
                f"Unable to locate '{request.executable}'. Install Ollama or configure llm.base_url."
            ) from exc
        except subprocess.CalledProcessError as exc:
            raise RuntimeError(
                f"LLM runner failed with exit code {exc.returncode}: {exc.stderr.strip()}"
            ) from exc
        except subprocess.TimeoutExpired as exc:  # pragma: no cover - depends on environment
            raise RuntimeError(f"LLM runner timed out after {exc.timeout} seconds") from exc
        return completed.stdout.strip()

    @staticmethod
    def _build_payload(request: LLMRequest, *, stream: bool = False) -> dict[str, object]:
        payload: dict[str, object] = {
            "model": request.model,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if request.top_p is not None:
            payload["top_p"] = request.top_p
        if request.presence_penalty:
            payload["presence_penalty"] = request.presence_penalty
        if request.frequency_penalty:
            payload["frequency_penalty"] = request.frequency_penalty
        if request.stop:
            payload["stop"] = list(request.stop)
        if stream:
            payload["stream"] = True
        return payload

    @staticmethod
    def _http_request(request: LLMRequest, payload: dict[str, object]) -> Request:
        if not request.base_url:
            raise RuntimeError("HTTP runner requires a base_url to be configured.")
        endpoint = f"{request.base_url}/chat/completions"
        data = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"
        return Request(endpoint, data=data, headers=headers, method="POST")

    @staticmethod
    def _http_runner(request: LLMRequest) -> str:
        http_request = LLMRunner._http_request(request, LLMRunner._build_payload(request))
        timeout = request.request_timeout or 60.0

        try:
            with urlopen(http_request, timeout=timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:  # pragma: no cover - depends on runtime
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            message = detail.strip() or exc.reason
            raise RuntimeError(
                f"LLM HTTP runner failed with status {exc.code}: {message}"
            ) from exc
        except URLError as exc:
            raise RuntimeError(f"LLM HTTP runner failed: {exc.reason}") from exc

        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise RuntimeError("LLM HTTP runner returned invalid JSON") from exc

        content = LLMRunner._extract_content(response_payload)
        if not content:
            raise RuntimeError("LLM HTTP runner returned an empty response")
        return content.strip()

    @staticmethod
    def _http_stream(request: LLMRequest) -> Iterable[str]:
        """Yield content deltas from a server-sent events response."""
        http_request = LLMRunner._http_request(request, LLMRunner._build_payload(request, stream=True))
        timeout = request.request_timeout or 60.0

        try:
            with urlopen(http_request, timeout=timeout) as response:  # type: ignore[arg-type]
                for raw_line in response:
                    line = raw_line.decode("utf-8", errors="ignore").strip()
                    if not line.startswith(_SSE_PREFIX):
                        continue
                    data = line[len(_SSE_PREFIX) :].strip()
                    if data == _SSE_DONE:
                        return
                    try:
                        chunk = json.loads(data)
                    except json.JSONDecodeError as exc:
                        raise RuntimeError("LLM HTTP runner streamed invalid JSON") from exc
                    token = LLMRunner._extract_delta(chunk)
                    if token:
                        yield token
        except HTTPError as exc:  # pragma: no cover - depends on runtime
            raise RuntimeError(f"LLM HTTP runner failed with status {exc.code}: {exc.reason}") from exc
        except URLError as exc:
            raise RuntimeError(f"LLM HTTP runner failed: {exc.reason}") from exc

    @staticmethod
    def _extract_content(payload: dict[str, object]) -> str:
        choice = _first_choice(payload)
        message = choice.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        text = choice.get("text")
        return text if isinstance(text, str) else ""

    @staticmethod
    def _extract_delta(payload: dict[str, object]) -> str:
        delta = _first_choice(payload).get("delta")
        if isinstance(delta, dict) and isinstance(delta.get("content"), str):
            return delta["content"]
        return ""

    def _resolve_model(self, model: str | None) -> str:
        return model or _first_env_value(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL

    def _resolve_base_url(self, base_url: str | None | object) -> str | None:
        if base_url is None:
            return None
        if base_url is _AUTO_BASE_URL:
            base_url = _first_env_value(self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        return _require_loopback(str(base_url))

    def _resolve_api_key(self, api_key: str | None | object) -> str | None:
        if api_key is _AUTO_API_KEY:
            return _first_env_value(self.ENV_API_KEY_KEYS)
        return api_key  # type: ignore[return-value]


_LOCAL_HOSTNAMES = frozenset({"localhost", "0.0.0.0", "host.docker.internal"})


def _first_choice(payload: dict[str, object]) -> dict[str, object]:
    choices = payload.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return {}


def _first_env_value(keys: Sequence[str]) -> str | None:
    return next((os.environ[key] for key in keys if os.environ.get(key)), None)


def _require_loopback(url: str) -> str:
    """Return ``url`` without a trailing slash, refusing hosts off this machine."""
    normalized = url.rstrip("/")
    host = urlparse(normalized).hostname
    if host is None or _is_local_host(host):
        return normalized
    raise RuntimeError(f"Remote base_url '{url}' is not permitted. Point llm.base_url at a local server.")


def _is_local_host(host: str) -> bool:
    lowered = host.lower()
    if lowered in _LOCAL_HOSTNAMES or lowered.endswith((".local", ".localdomain")):
        return True
    try:
        return ipaddress.ip_address(lowered).is_loopback
    except ValueError:
        return False

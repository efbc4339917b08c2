"""Backend for llama.cpp local execution over a GGUF model file."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional

from ..logging import get_logger
from .base import InferenceBackend, InferenceParams


class LlamaCppBackend(InferenceBackend):
    """Executes prompts using the llama.cpp CLI binary."""

    name = "llamacpp"

    def __init__(
        self,
        *,
        model_path: str,
        executable: str | None = None,
        request_timeout: Optional[float] = None,
    ) -> None:
        super().__init__()
        self.model_path = Path(model_path).expanduser()
        self.executable = executable or "llama-cli"
        self.request_timeout = request_timeout
        self.logger = get_logger("llm")

    def model_info(self) -> str:
        return f"Backend: {self.name}\nModel: {self.model_path.name}\nPath: {self.model_path}"

    def _load(self) -> bool:
        try:
            self.model_path = self._validate_model_path(self.model_path)
        except RuntimeError as exc:
            self.logger.error("%s", exc)
            return False
        self.logger.info("Using llama.cpp model %s", self.model_path)
        return True

    def _generate(self, prompt: str, params: InferenceParams) -> str:
        args = [
            self.executable,
            "-m",
            str(self.model_path),
            "-p",
            prompt,
            "--temp",
            str(params.temperature),
            "--top-p",
            str(params.top_p),
            "-n",
            str(params.max_tokens),
        ]
        if params.presence_penalty:
            args.extend(["--presence-penalty", str(params.presence_penalty)])
        if params.frequency_penalty:
            args.extend(["--frequency-penalty", str(params.frequency_penalty)])
        for stop in params.stop_sequences:
            args.extend(["-r", stop])

        try:
            completed = subprocess.run(
                args,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.request_timeout,
            )
        except FileNotFoundError as exc:  # pragma: no cover - environment dependent
            raise RuntimeError(
                f"Unable to locate llama.cpp executable '{self.executable}'."
            ) from exc
        except subprocess.CalledProcessError as exc:
            message = exc.stderr.strip() or exc.stdout.strip() or str(exc.returncode)
            raise RuntimeError(f"llama.cpp execution failed: {message}") from exc

        output = completed.stdout.strip()
        if not output:
            raise RuntimeError("llama.cpp returned no output")
        return output

    @staticmethod
    def _validate_model_path(model_path: str | Path) -> Path:
        path = Path(model_path).expanduser().resolve()
        if not path.exists():
            raise RuntimeError(f"llama.cpp model not found at {path}")
        if not path.is_file():
            raise RuntimeError(f"llama.cpp model must be a file: {path}")
        return path


__all__ = ["LlamaCppBackend"]

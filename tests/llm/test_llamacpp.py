"""Tests for the llama.cpp backend."""

from __future__ import annotations

from pathlib import Path

import pytest

from codelve.llm.base import InferenceParams
from codelve.llm.llamacpp import LlamaCppBackend


def test_llamacpp_backend_invokes_subprocess(monkeypatch, tmp_path: Path) -> None:
    model = tmp_path / "model.gguf"
    model.write_text("dummy", encoding="utf-8")

    recorded_args: list[list[str]] = []

    def fake_run(args, check, capture_output, text, timeout):  # type: ignore[no-untyped-def]
        recorded_args.append(list(args))

        class _Completed:
            stdout = "response\n"

        return _Completed()

    monkeypatch.setattr("codelve.llm.llamacpp.subprocess.run", fake_run)

    backend = LlamaCppBackend(model_path=str(model), executable="llama-binary")
    assert backend.initialize()
    response = backend.run_inference(
        "Hello",
        InferenceParams(temperature=0.5, max_tokens=64, stop_sequences=["User:"]),
    )

    assert response == "response"
    args = recorded_args[0]
    assert args[0] == "llama-binary"
    assert "-m" in args and str(model.resolve()) in args
    assert args[args.index("-p") + 1] == "Hello"
    assert args[args.index("-n") + 1] == "64"
    assert args[args.index("--temp") + 1] == "0.5"
    assert args[args.index("-r") + 1] == "User:"
    assert "--presence-penalty" not in args
    assert "model.gguf" in backend.model_info()


def test_llamacpp_backend_fails_to_initialize_without_model(tmp_path: Path) -> None:
    backend = LlamaCppBackend(model_path=str(tmp_path / "missing.gguf"))

    assert backend.initialize() is False
    assert not backend.is_initialized()


def test_llamacpp_backend_rejects_directory_model(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError, match="must be a file"):
        LlamaCppBackend._validate_model_path(tmp_path)


def test_llamacpp_backend_raises_on_empty_output(monkeypatch, tmp_path: Path) -> None:
    model = tmp_path / "model.gguf"
    model.write_text("dummy", encoding="utf-8")

    class _Completed:
        stdout = "   "

    monkeypatch.setattr(
        "codelve.llm.llamacpp.subprocess.run",
        lambda *args, **kwargs: _Completed(),
    )
    backend = LlamaCppBackend(model_path=str(model))
    backend.initialize()

    with pytest.raises(RuntimeError, match="no output"):
        backend.run_inference("Hello")

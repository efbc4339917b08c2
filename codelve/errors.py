"""Error types raised across codelve components."""

from __future__ import annotations


class CodelveError(RuntimeError):
    """Base class for recoverable codelve failures."""


class InvalidPathError(CodelveError, FileNotFoundError):
    """Raised when a scan target is missing or is not a directory."""


class ScanInProgressError(CodelveError):
    """Raised when a scan is requested while another one is still running."""


class IndexInitError(CodelveError):
    """Raised when a scan result cannot be installed into the context builder."""


class InferenceUnavailableError(CodelveError):
    """Raised when the inference backend is not initialized or cannot run."""

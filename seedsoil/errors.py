"""
Error taxonomy and error logging for seedsoil.

Collaborator failures (LLM calls, remote store) are raised as exceptions by
the collaborator and converted to a typed outcome carrying an ``ErrorKind``
at the call boundary. Nothing past that boundary sees the exception.
"""

import os
import traceback
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path


class ErrorKind(str, Enum):
    """Why a collaborator call did not produce a usable result."""
    TRANSPORT = "transport"                    # network error, timeout, SDK failure
    REMOTE_STATUS = "remote_status"            # non-2xx response
    MALFORMED_SUMMARY = "malformed_summary"    # distillation output failed validation
    MALFORMED_GAPS = "malformed_gaps"          # synthesis output failed validation
    MALFORMED_REMOTE = "malformed_remote"      # remote document is not valid JSON
    ITEM_GONE = "item_gone"                    # item removed or distilled meanwhile


class SeedSoilError(Exception):
    """Base class for seedsoil errors."""


class ProviderError(SeedSoilError):
    """An LLM provider call failed."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteStoreError(SeedSoilError):
    """Error communicating with the remote document store."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def classify_exception(exc: BaseException) -> ErrorKind:
    """Map a collaborator exception to an ErrorKind.

    Anything carrying an HTTP status (our own errors, httpx/openai/anthropic
    status errors, requests HTTPError) is REMOTE_STATUS; the rest is TRANSPORT.
    """
    status = getattr(exc, "status_code", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return ErrorKind.REMOTE_STATUS
    return ErrorKind.TRANSPORT


def _error_log_path() -> Path:
    """Resolve error log path, respecting SEEDSOIL_STORE_PATH."""
    store = os.environ.get("SEEDSOIL_STORE_PATH")
    if store:
        return Path(store) / "seedsoil-errors.log"
    return Path.home() / ".seedsoil" / "seedsoil-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log; don't crash over it
    return log_path

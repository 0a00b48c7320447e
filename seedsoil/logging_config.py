"""
Logging configuration for seedsoil.

Quiet by default: HTTP client chatter is suppressed and only our own
warnings reach the terminal. Every store also keeps a rotating ops log.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path

OPS_LOG_FILENAME = "seedsoil-ops.log"

_NOISY_LIBRARIES = ("httpx", "httpcore", "openai", "anthropic", "urllib3", "pypdf")


def configure_quiet_mode(quiet: bool = True):
    """
    Silence library loggers and Python warnings.

    Args:
        quiet: If True, suppress verbose output. If False, show everything.
    """
    if not quiet:
        return
    warnings.filterwarnings("ignore")
    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.ERROR)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    if not any(isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    for name in ("seedsoil", "httpx", "openai"):
        logging.getLogger(name).setLevel(logging.DEBUG)


def configure_ops_log(store_path):
    """Attach a persistent operations log for a store.

    Writes to {store_path}/seedsoil-ops.log (1MB max, 3 backups), at INFO
    regardless of --verbose. Returns the handler so it can be removed on
    close().
    """
    log_path = Path(store_path) / OPS_LOG_FILENAME
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    seedsoil_logger = logging.getLogger("seedsoil")
    seedsoil_logger.addHandler(handler)
    # Let INFO through even in quiet mode
    if seedsoil_logger.level == logging.NOTSET or seedsoil_logger.level > logging.INFO:
        seedsoil_logger.setLevel(logging.INFO)

    return handler


def remove_ops_log(handler) -> None:
    logging.getLogger("seedsoil").removeHandler(handler)
    handler.close()

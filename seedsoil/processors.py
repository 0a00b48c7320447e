"""
Pure processing functions for seedsoil.

These wrap one LLM call each (distill one item, synthesize gaps) and turn
every outcome, including a raised exception, into a DecodeResult. They do
no store reads or writes; the distillation queue applies the result.
"""

from __future__ import annotations

import logging

from .errors import ErrorKind, classify_exception
from .providers.base import DISTILL_SYSTEM_PROMPT, SYNTHESIS_SYSTEM_PROMPT
from .schemas import DecodeResult, decode_gaps, decode_summary
from .types import Seed

logger = logging.getLogger(__name__)

# Raw text beyond this many characters is not sent for distillation
MAX_RAW_CHARS = 30000

DISTILL_MAX_TOKENS = 1024
SYNTHESIS_MAX_TOKENS = 1024


def truncate_raw(raw: str, limit: int = MAX_RAW_CHARS) -> str:
    return raw[:limit]


def _call(provider, system: str, user: str, max_tokens: int) -> tuple[str | None, ErrorKind | None, str | None]:
    try:
        text = provider.generate(system, user, max_tokens=max_tokens, json_mode=True)
    except Exception as e:
        kind = classify_exception(e)
        logger.warning("LLM call failed (%s): %s", kind.value, e)
        return None, kind, str(e)
    return text, None, None


def process_distill(raw: str, provider) -> DecodeResult[Seed]:
    """Distill one item's raw text into a Seed."""
    text, kind, error = _call(
        provider, DISTILL_SYSTEM_PROMPT, truncate_raw(raw), DISTILL_MAX_TOKENS
    )
    if kind is not None:
        return DecodeResult(error_kind=kind, error=error)
    result = decode_summary(text)
    if not result.ok:
        logger.warning("Rejected distillation output: %s", result.error)
    return result


def process_synthesis(essences: list[str], provider) -> DecodeResult[list[str]]:
    """Ask for knowledge gaps given the essences of all active seeds."""
    text, kind, error = _call(
        provider, SYNTHESIS_SYSTEM_PROMPT, "\n".join(essences), SYNTHESIS_MAX_TOKENS
    )
    if kind is not None:
        return DecodeResult(error_kind=kind, error=error)
    result = decode_gaps(text)
    if not result.ok:
        logger.warning("Rejected synthesis output: %s", result.error)
    return result

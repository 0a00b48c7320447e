"""
Schema-validated decoding of LLM output.

Decoding never raises: the result is a DecodeResult that either carries a
value or an ErrorKind describing why the output was rejected.
"""

import re
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ErrorKind
from .types import Seed

T = TypeVar("T")

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


class SeedSummary(BaseModel):
    """Expected distillation output."""
    model_config = ConfigDict(extra="ignore", strict=True)

    essence: str = Field(min_length=1)
    nuggets: list[str]
    action: str

    def to_seed(self) -> Seed:
        return Seed(essence=self.essence.strip(), nuggets=list(self.nuggets), action=self.action.strip())


class GapsResult(BaseModel):
    """Expected synthesis output."""
    model_config = ConfigDict(extra="ignore", strict=True)

    gaps: list[str]


@dataclass
class DecodeResult(Generic[T]):
    value: Optional[T] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence (```json ... ```), if any."""
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _short(err: ValidationError) -> str:
    first = err.errors()[0] if err.errors() else {}
    loc = ".".join(str(p) for p in first.get("loc", ())) or "document"
    return f"{loc}: {first.get('msg', str(err))}"


def decode_summary(text: Optional[str]) -> DecodeResult[Seed]:
    """Decode ``{essence, nuggets, action}`` into a Seed."""
    if not text or not text.strip():
        return DecodeResult(error_kind=ErrorKind.MALFORMED_SUMMARY, error="empty response")
    try:
        summary = SeedSummary.model_validate_json(strip_code_fences(text))
    except ValidationError as e:
        return DecodeResult(error_kind=ErrorKind.MALFORMED_SUMMARY, error=_short(e))
    return DecodeResult(value=summary.to_seed())


def decode_gaps(text: Optional[str]) -> DecodeResult[list[str]]:
    """Decode ``{gaps: [...]}`` into a list of strings."""
    if not text or not text.strip():
        return DecodeResult(error_kind=ErrorKind.MALFORMED_GAPS, error="empty response")
    try:
        result = GapsResult.model_validate_json(strip_code_fences(text))
    except ValidationError as e:
        return DecodeResult(error_kind=ErrorKind.MALFORMED_GAPS, error=_short(e))
    return DecodeResult(value=[g.strip() for g in result.gaps if g.strip()])

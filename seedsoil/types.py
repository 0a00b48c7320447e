"""
Data types for seeds and their soil.

Timestamps are epoch milliseconds (UTC), matching the persisted document
format. Items serialize with camelCase soil keys (``lastSeen``,
``nextReview``) so that stores written by earlier clients load unchanged.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


MS_PER_HOUR = 3_600_000
MS_PER_DAY = 24 * MS_PER_HOUR

# Strength of a freshly captured (or successfully reviewed) item
FULL_STRENGTH = 1.0


class Status(str, Enum):
    """Soil status of an item."""
    ACTIVE = "active"
    BURIED = "buried"


def now_ms() -> int:
    """Current UTC time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_item_id() -> str:
    """Opaque identifier for a newly captured item."""
    return uuid.uuid4().hex[:12]


def clamp_strength(value: float) -> float:
    """Clamp a strength value into [0, 1]."""
    return max(0.0, min(FULL_STRENGTH, float(value)))


@dataclass
class Seed:
    """
    Structured summary produced by distillation.

    Attributes:
        essence: One-sentence core idea
        nuggets: Ordered supporting insights
        action: One concrete challenge for the reader
    """
    essence: str
    nuggets: list[str] = field(default_factory=list)
    action: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"essence": self.essence, "nuggets": list(self.nuggets), "action": self.action}

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Seed"]:
        """Build a Seed from stored data, or None if the shape is wrong."""
        if not isinstance(data, dict):
            return None
        essence = data.get("essence")
        nuggets = data.get("nuggets", [])
        action = data.get("action", "")
        if not isinstance(essence, str) or not isinstance(action, str):
            return None
        if not isinstance(nuggets, list) or not all(isinstance(n, str) for n in nuggets):
            return None
        return cls(essence=essence, nuggets=list(nuggets), action=action)


@dataclass
class Soil:
    """Scheduling metadata attached to an item."""
    strength: float
    last_seen: int
    next_review: int
    status: Status = Status.ACTIVE

    @classmethod
    def fresh(cls, now: int) -> "Soil":
        """Soil for an item captured at ``now``."""
        return cls(
            strength=FULL_STRENGTH,
            last_seen=now,
            next_review=now + MS_PER_DAY,
            status=Status.ACTIVE,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "strength": self.strength,
            "lastSeen": self.last_seen,
            "nextReview": self.next_review,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Any, *, default_now: int) -> "Soil":
        """Tolerant load: missing fields default to freshly captured values."""
        if not isinstance(data, dict):
            return cls.fresh(default_now)
        try:
            strength = clamp_strength(data.get("strength", FULL_STRENGTH))
        except (TypeError, ValueError):
            strength = FULL_STRENGTH
        try:
            last_seen = int(data.get("lastSeen", default_now))
        except (TypeError, ValueError):
            last_seen = default_now
        try:
            next_review = int(data.get("nextReview", last_seen + MS_PER_DAY))
        except (TypeError, ValueError):
            next_review = last_seen + MS_PER_DAY
        try:
            status = Status(data.get("status", Status.ACTIVE.value))
        except ValueError:
            status = Status.ACTIVE
        return cls(strength=strength, last_seen=last_seen, next_review=next_review, status=status)


@dataclass
class Item:
    """
    A captured knowledge item.

    ``is_processing`` is transient: it is set only while the distillation
    queue holds the item and is never persisted.
    """
    id: str
    raw: str
    soil: Soil
    seed: Optional[Seed] = None
    is_processing: bool = False

    @property
    def is_active(self) -> bool:
        return self.soil.status == Status.ACTIVE

    @property
    def is_buried(self) -> bool:
        return self.soil.status == Status.BURIED

    @property
    def is_distilled(self) -> bool:
        return self.seed is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "raw": self.raw,
            "seed": self.seed.to_dict() if self.seed else None,
            "soil": self.soil.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, default_now: Optional[int] = None) -> "Item":
        """
        Build an Item from its persisted form.

        Raises:
            ValueError: If the record has no usable id
        """
        item_id = data.get("id")
        if not isinstance(item_id, (str, int)) or item_id == "":
            raise ValueError(f"Item record has no id: {data!r:.80}")
        now = default_now if default_now is not None else now_ms()
        seed = Seed.from_dict(data.get("seed")) if data.get("seed") is not None else None
        if data.get("seed") is not None and seed is None:
            logger.warning("Dropping malformed seed on item %s", item_id)
        return cls(
            id=str(item_id),
            raw=str(data.get("raw") or ""),
            soil=Soil.from_dict(data.get("soil"), default_now=now),
            seed=seed,
        )


@dataclass
class Collection:
    """The full document: items (newest first) and the last synthesized gaps."""
    items: list[Item] = field(default_factory=list)
    gaps: list[str] = field(default_factory=list)

    def find(self, item_id: str) -> Optional[Item]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "gaps": list(self.gaps),
        }

    @classmethod
    def from_data(cls, data: Any) -> "Collection":
        """
        Build a Collection from a decoded JSON document.

        Accepts ``{"items": [...], "gaps": [...]}`` or a bare list of items.
        Records without an id are skipped.

        Raises:
            ValueError: If the document is neither a dict nor a list
        """
        if isinstance(data, list):
            raw_items, raw_gaps = data, []
        elif isinstance(data, dict):
            raw_items = data.get("items") or []
            raw_gaps = data.get("gaps") or []
        else:
            raise ValueError(f"Unsupported document type: {type(data).__name__}")

        now = now_ms()
        items = []
        for record in raw_items:
            if not isinstance(record, dict):
                continue
            try:
                items.append(Item.from_dict(record, default_now=now))
            except ValueError as e:
                logger.warning("Skipping item record: %s", e)
        gaps = [g for g in raw_gaps if isinstance(g, str)] if isinstance(raw_gaps, list) else []
        return cls(items=items, gaps=gaps)

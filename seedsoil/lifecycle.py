"""
Item lifecycle transitions.

    capture ─► active ──review ok──► active (strength reset to 1.0)
                 │  ▲
    review fail/ │  │ resurrect (strength 0.5)
    archive/     ▼  │
    decay to 0   buried

Transitions return True when they changed the item. A transition that is
not defined for the item's current status is a no-op and returns False.
"""

import logging
from typing import Optional

from .types import FULL_STRENGTH, Item, Soil, Status, new_item_id, now_ms

logger = logging.getLogger(__name__)

RESURRECT_STRENGTH = 0.5


def capture(text: str, now: Optional[int] = None) -> Optional[Item]:
    """Create a new active item from captured text, or None for empty input."""
    raw = (text or "").strip()
    if not raw:
        return None
    now = now_ms() if now is None else now
    return Item(id=new_item_id(), raw=raw, soil=Soil.fresh(now))


def review_success(item: Item, now: Optional[int] = None) -> bool:
    """Full strength reset after a successful review (not an increment)."""
    if not item.is_active:
        return False
    item.soil.strength = FULL_STRENGTH
    item.soil.last_seen = now_ms() if now is None else now
    return True


def bury(item: Item) -> bool:
    """Retire an active item; strength is left as it was."""
    if item.is_buried:
        return False
    item.soil.status = Status.BURIED
    logger.info("Buried %s", item.id)
    return True


def review_failure(item: Item) -> bool:
    """A failed review buries the item."""
    return bury(item)


def resurrect(item: Item, now: Optional[int] = None) -> bool:
    """Bring a buried item back with partial strength."""
    if not item.is_buried:
        return False
    item.soil.status = Status.ACTIVE
    item.soil.strength = RESURRECT_STRENGTH
    item.soil.last_seen = now_ms() if now is None else now
    logger.info("Resurrected %s", item.id)
    return True


def mark_reviewed(item: Item, success: bool, now: Optional[int] = None) -> bool:
    """Apply a review outcome."""
    if success:
        return review_success(item, now)
    return review_failure(item)

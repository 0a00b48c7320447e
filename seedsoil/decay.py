"""
Linear day-step decay of item strength.

Each whole day (24h) since an active item was last seen costs 0.1 strength.
A single call charges all elapsed whole days at once and then resets
``last_seen`` to ``now``, so partial days are forgiven and calling again
with the same ``now`` does nothing. An item whose strength reaches zero is
buried.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .types import MS_PER_HOUR, Item, Status, now_ms

logger = logging.getLogger(__name__)

DECAY_STEP = 0.1
DECAY_STEP_HOURS = 24

# Rounding applied to strength after each decay; keeps ten 0.1 steps from
# leaving a float residue above zero
STRENGTH_PRECISION = 6


@dataclass
class DecayReport:
    changed: bool
    items_seen: int
    items_decayed: int
    items_buried: int
    now: int


def decay_steps(last_seen: int, now: int) -> int:
    """Whole decay steps elapsed between two epoch-ms timestamps."""
    hours = (now - last_seen) / MS_PER_HOUR
    return int(hours // DECAY_STEP_HOURS) if hours > 0 else 0


def apply_decay(items: Iterable[Item], now: Optional[int] = None) -> DecayReport:
    """Decay active items in place.

    Args:
        items: Items to examine (buried items are skipped)
        now: Current time in epoch ms (default: wall clock)

    Returns:
        DecayReport; ``changed`` tells the caller whether to persist.
    """
    now = now_ms() if now is None else now
    seen = decayed = buried = 0

    for item in items:
        seen += 1
        if not item.is_active:
            continue
        steps = decay_steps(item.soil.last_seen, now)
        if steps <= 0:
            continue

        item.soil.strength = round(
            max(0.0, item.soil.strength - steps * DECAY_STEP), STRENGTH_PRECISION
        )
        item.soil.last_seen = now
        decayed += 1
        if item.soil.strength <= 0:
            item.soil.strength = 0.0
            item.soil.status = Status.BURIED
            buried += 1
            logger.info("Buried %s (strength exhausted)", item.id)

    if decayed:
        logger.info("Decay: %d of %d items decayed, %d buried", decayed, seen, buried)
    return DecayReport(
        changed=decayed > 0,
        items_seen=seen,
        items_decayed=decayed,
        items_buried=buried,
        now=now,
    )

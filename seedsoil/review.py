"""
Review selection: which items are presented, and in what order.

All functions are pure and never mutate their input.
"""

from typing import Iterable

from .types import Item

REVIEW_LIMIT = 3


def select_for_review(items: Iterable[Item], limit: int = REVIEW_LIMIT) -> list[Item]:
    """
    Active, distilled items ordered by strength (highest first).

    Ties keep collection order (``sorted`` is stable). Returns an empty
    list when nothing is eligible.
    """
    eligible = [item for item in items if item.is_active and item.is_distilled]
    eligible = sorted(eligible, key=lambda item: item.soil.strength, reverse=True)
    return eligible[:max(0, limit)]


def list_buried(items: Iterable[Item]) -> list[Item]:
    """Buried items in collection order."""
    return [item for item in items if item.is_buried]


def list_undistilled(items: Iterable[Item]) -> list[Item]:
    """Items still waiting for distillation, in collection order."""
    return [item for item in items if not item.is_distilled]


def list_synthesis_sources(items: Iterable[Item]) -> list[Item]:
    """Active distilled items whose essences feed the synthesis pass."""
    return [item for item in items if item.is_active and item.is_distilled]

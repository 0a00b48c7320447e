"""
Distillation queue: one pulse of summarization plus gap synthesis.

A pulse snapshots the un-distilled items into a work queue and drains it
with a single worker, one LLM call at a time. Each item's result is applied
and persisted before the next request is issued, so a failure (or a crash)
part way through keeps everything distilled so far.

Items are never held across an LLM call: the worker keeps only the id and
re-fetches the item from the store once the call returns.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Optional

from . import events
from .errors import ErrorKind, classify_exception
from .events import Event
from .review import list_synthesis_sources, list_undistilled
from .schemas import DecodeResult
from .store import ItemStore
from .types import Seed

logger = logging.getLogger(__name__)

# Synthesis runs only when more than this many active seeds exist
SYNTHESIS_THRESHOLD = 2

Summarize = Callable[[str], DecodeResult[Seed]]
Synthesize = Callable[[list[str]], DecodeResult[list[str]]]


@dataclass(frozen=True)
class WorkItem:
    item_id: str
    raw: str


@dataclass
class ItemOutcome:
    """Result of distilling one item."""
    item_id: str
    ok: bool
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None


@dataclass
class SynthesisOutcome:
    ok: bool
    gaps: list[str] = field(default_factory=list)
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None


@dataclass
class PulseReport:
    """
    Summary of one pulse.

    ``rejected`` is set when another pulse was already running;
    ``skipped_reason`` when the pulse could not start (e.g. "no_provider").
    """
    outcomes: list[ItemOutcome] = field(default_factory=list)
    synthesis: Optional[SynthesisOutcome] = None
    rejected: bool = False
    skipped_reason: Optional[str] = None

    @property
    def processed(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    @property
    def completed(self) -> bool:
        """True when the pulse ran to the end (individual failures allowed)."""
        return not self.rejected and self.skipped_reason is None

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "completed": self.completed,
            "rejected": self.rejected,
            "skipped_reason": self.skipped_reason,
            "outcomes": [
                {
                    "id": o.item_id,
                    "ok": o.ok,
                    "error_kind": o.error_kind.value if o.error_kind else None,
                    "error": o.error,
                }
                for o in self.outcomes
            ],
            "synthesis": None if self.synthesis is None else {
                "ok": self.synthesis.ok,
                "gaps": self.synthesis.gaps,
                "error_kind": self.synthesis.error_kind.value if self.synthesis.error_kind else None,
                "error": self.synthesis.error,
            },
        }


def _noop(*_args) -> None:
    return None


class DistillationQueue:
    """
    Work queue of items awaiting distillation, drained by one worker.

    Args:
        store: Owner of the items
        summarize: Callable mapping raw text to a DecodeResult[Seed]
        on_change: Called after every applied change (persist + push)
        publish: Receives an Event per outcome
    """

    def __init__(
        self,
        store: ItemStore,
        summarize: Summarize,
        *,
        on_change: Optional[Callable[[], None]] = None,
        publish: Optional[Callable[[Event], None]] = None,
    ):
        self._store = store
        self._summarize = summarize
        self._on_change = on_change or _noop
        self._publish = publish or _noop
        self._queue: deque[WorkItem] = deque()

    def __len__(self) -> int:
        return len(self._queue)

    def fill(self) -> int:
        """Enqueue every un-distilled item in collection order."""
        for item in list_undistilled(self._store.items()):
            self._queue.append(WorkItem(item.id, item.raw))
        return len(self._queue)

    def drain(self) -> list[ItemOutcome]:
        outcomes = []
        while self._queue:
            outcomes.append(self._process(self._queue.popleft()))
        return outcomes

    def _process(self, work: WorkItem) -> ItemOutcome:
        with self._store.lock:
            item = self._store.get(work.item_id)
            if item is None or item.is_distilled:
                return self._gone(work.item_id)
            item.is_processing = True

        logger.info("Distilling %s", work.item_id)
        try:
            result = self._summarize(work.raw)
        except Exception as e:
            result = DecodeResult(error_kind=classify_exception(e), error=f"{type(e).__name__}: {e}")

        with self._store.lock:
            item = self._store.get(work.item_id)
            if item is not None:
                item.is_processing = False
            if item is None or item.is_distilled:
                return self._gone(work.item_id)
            if result.ok:
                item.seed = result.value

        if not result.ok:
            logger.warning("Failed to distill %s (%s): %s",
                           work.item_id, result.error_kind.value, result.error)
            self._publish(Event(
                events.DISTILL_FAILED,
                item_id=work.item_id,
                message=f"Distillation failed: {result.error}",
                level="error",
                data={"error_kind": result.error_kind.value},
            ))
            return ItemOutcome(work.item_id, ok=False,
                               error_kind=result.error_kind, error=result.error)

        self._on_change()
        logger.info("Distilled %s", work.item_id)
        self._publish(Event(events.DISTILLED, item_id=work.item_id))
        return ItemOutcome(work.item_id, ok=True)

    def _gone(self, item_id: str) -> ItemOutcome:
        logger.info("Discarding result for %s: item removed or already distilled", item_id)
        return ItemOutcome(item_id, ok=False, error_kind=ErrorKind.ITEM_GONE,
                           error="item removed or already distilled")


def run_synthesis(
    store: ItemStore,
    synthesize: Synthesize,
    *,
    on_change: Optional[Callable[[], None]] = None,
    publish: Optional[Callable[[Event], None]] = None,
) -> Optional[SynthesisOutcome]:
    """Replace gaps from the active seeds' essences, if there are enough of them."""
    on_change = on_change or _noop
    publish = publish or _noop

    essences = [item.seed.essence for item in list_synthesis_sources(store.items())]
    if len(essences) <= SYNTHESIS_THRESHOLD:
        return None

    logger.info("Synthesizing gaps from %d seeds", len(essences))
    try:
        result = synthesize(essences)
    except Exception as e:
        result = DecodeResult(error_kind=classify_exception(e), error=f"{type(e).__name__}: {e}")

    if not result.ok:
        logger.warning("Synthesis failed (%s): %s", result.error_kind.value, result.error)
        publish(Event(
            events.SYNTHESIS_FAILED,
            message=f"Synthesis failed: {result.error}",
            level="error",
            data={"error_kind": result.error_kind.value},
        ))
        return SynthesisOutcome(ok=False, error_kind=result.error_kind, error=result.error)

    store.set_gaps(result.value)
    on_change()
    publish(Event(events.SYNTHESIZED, data={"gaps": list(result.value)}))
    return SynthesisOutcome(ok=True, gaps=list(result.value))


def run_distillation(
    store: ItemStore,
    summarize: Summarize,
    synthesize: Synthesize,
    *,
    on_change: Optional[Callable[[], None]] = None,
    publish: Optional[Callable[[Event], None]] = None,
) -> PulseReport:
    """
    Run one pulse: distill every un-distilled item, then synthesize gaps.

    The caller is responsible for ensuring only one pulse runs at a time.
    Never raises for collaborator failures; they are reported per item.
    With nothing to distill the pulse ends at once, without synthesis.
    """
    publish = publish or _noop
    queue = DistillationQueue(store, summarize, on_change=on_change, publish=publish)
    if queue.fill() == 0:
        publish(Event(events.NOTICE, message="No new seeds"))
        return PulseReport()

    report = PulseReport(outcomes=queue.drain())
    report.synthesis = run_synthesis(
        store, synthesize, on_change=on_change, publish=publish
    )
    logger.info("Pulse: %d distilled, %d failed", report.processed, report.failed)
    publish(Event(
        events.NOTICE,
        message="Pulse complete",
        data={"processed": report.processed, "failed": report.failed},
    ))
    return report

"""
Session: the user-facing controller for one seedsoil store.

A Session owns the item store, the configuration, the LLM provider and the
sync coordinator. Every user operation goes through it, and every mutation
is followed by the same commit step: persist locally, publish an event,
push to the remote if sync is configured.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from . import events, lifecycle
from .config import (
    StoreConfig,
    get_default_store_path,
    load_or_create_config,
    resolve_sync_settings,
)
from .decay import DecayReport, apply_decay
from .document_store import DocumentStore
from .events import Event, EventBus, Subscriber
from .logging_config import configure_ops_log, remove_ops_log
from .processors import process_distill, process_synthesis
from .providers import get_registry
from .pulse import PulseReport, run_distillation
from .review import REVIEW_LIMIT, list_buried, select_for_review
from .store import ItemStore
from .sync import SyncCoordinator
from .types import Item

logger = logging.getLogger(__name__)


@dataclass
class IntakeResult:
    item: Optional[Item]
    report: Optional[PulseReport]


class Session:
    """
    One open seedsoil store.

    Args:
        store_path: Store directory (default: SEEDSOIL_STORE_PATH or ~/.seedsoil)
        config: Preloaded configuration (default: load or create in store_path)
        doc_store: Key/value persistence (default: SQLite in the store directory)
        provider: LLM provider (default: created from config on first pulse)
        remote: Remote document client (default: from sync config; None disables sync)
        extractor: File text extractor for intake (default: registry "file")
    """

    _NOT_SET: Any = object()

    def __init__(
        self,
        store_path: Optional[Path] = None,
        *,
        config: Optional[StoreConfig] = None,
        doc_store: Optional[DocumentStore] = None,
        provider=None,
        remote=_NOT_SET,
        extractor=None,
    ):
        if store_path is None:
            store_path = config.path if config is not None else get_default_store_path()
        self.store_path = Path(store_path).expanduser()
        self.config = config or load_or_create_config(self.store_path)

        owns_doc_store = doc_store is None
        if doc_store is None:
            doc_store = DocumentStore(self.config.database_path)
        try:
            self._store = ItemStore(doc_store)
        except ValueError:
            if owns_doc_store:
                doc_store.close()
            raise

        self._bus = EventBus()
        self._provider = provider
        self._extractor = extractor
        self._pulse_guard = threading.Lock()
        self._start_report: Optional[DecayReport] = None
        self._closed = False

        self._ops_handler = configure_ops_log(self.store_path)
        try:
            settings = resolve_sync_settings(self.config)
            self._sync_background = settings.background if settings else True
            if remote is Session._NOT_SET:
                remote = self._create_remote(settings)
        except Exception:
            remove_ops_log(self._ops_handler)
            self._store.close()
            raise
        self._sync = SyncCoordinator(remote, publish=self._publish) if remote is not None else None

    # -------------------------------------------------------------------------
    # Collaborators
    # -------------------------------------------------------------------------

    def _create_remote(self, settings):
        if settings is None:
            return None
        if not settings.token:
            logger.warning(
                "Sync is configured for gist %s but no token is set "
                "(SEEDSOIL_GIST_TOKEN or GITHUB_TOKEN); sync disabled", settings.gist_id
            )
            return None
        from .remote import GistRemote
        return GistRemote(
            settings.gist_id,
            settings.token,
            filename=settings.filename,
            api_url=settings.api_url,
        )

    def _get_provider(self):
        """The LLM provider, or None when it cannot be created (e.g. no API key)."""
        if self._provider is None:
            distill = self.config.distill
            try:
                self._provider = get_registry().create_llm(distill.name, distill.params)
            except (RuntimeError, ValueError) as e:
                logger.warning("No distillation provider available: %s", e)
                return None
        return self._provider

    def _get_extractor(self):
        if self._extractor is None:
            self._extractor = get_registry().create_extractor("file")
        return self._extractor

    @property
    def sync_enabled(self) -> bool:
        return self._sync is not None

    @property
    def pulse_in_progress(self) -> bool:
        return self._pulse_guard.locked()

    # -------------------------------------------------------------------------
    # Events and commit
    # -------------------------------------------------------------------------

    def subscribe(self, callback: Subscriber):
        """Receive every Event. Returns an unsubscribe function."""
        return self._bus.subscribe(callback)

    def _publish(self, event: Event) -> None:
        self._bus.publish(event)

    def _commit(self, event: Optional[Event] = None) -> None:
        """Persist, notify, then push."""
        self._store.save()
        if event is not None:
            self._publish(event)
        self._push()

    def _push(self) -> None:
        if self._sync is None:
            return
        snapshot = self._store.snapshot()
        if self._sync_background:
            self._sync.push_in_background(snapshot)
        else:
            self._sync.push(snapshot)

    # -------------------------------------------------------------------------
    # Session start
    # -------------------------------------------------------------------------

    def start(self, now: Optional[int] = None) -> DecayReport:
        """
        Pull from the remote (if configured), then decay once.

        Only the first call does any work; later calls return the same report.
        """
        if self._start_report is not None:
            return self._start_report

        if self._sync is not None:
            collection = self._sync.pull()
            if collection is not None:
                self._store.replace(collection)
                self._store.save()
                self._publish(Event(
                    events.PULLED, data={"items": len(collection.items)}
                ))

        with self._store.lock:
            report = apply_decay(self._store.items(), now)
        if report.changed:
            self._commit(Event(
                events.DECAYED,
                message=f"{report.items_decayed} decayed, {report.items_buried} buried",
                data={"decayed": report.items_decayed, "buried": report.items_buried},
            ))
        self._start_report = report
        return report

    # -------------------------------------------------------------------------
    # User operations
    # -------------------------------------------------------------------------

    def capture(self, text: str, now: Optional[int] = None) -> Optional[Item]:
        """Add a new item. Empty or whitespace-only text is ignored."""
        item = lifecycle.capture(text, now)
        if item is None:
            return None
        self._store.add(item)
        logger.info("Captured %s (%d chars)", item.id, len(item.raw))
        self._commit(Event(events.CAPTURED, item_id=item.id))
        return item

    def run_pulse(self) -> PulseReport:
        """
        Distill every un-distilled item, then synthesize gaps.

        Returns a rejected report if a pulse is already running, and a
        skipped one if no LLM provider can be created.
        """
        if not self._pulse_guard.acquire(blocking=False):
            logger.info("Pulse already in progress; request rejected")
            return PulseReport(rejected=True)
        try:
            provider = self._get_provider()
            if provider is None:
                self._publish(Event(
                    events.NOTICE,
                    message="API key required: set SEEDSOIL_API_KEY or configure [distill]",
                    level="error",
                ))
                return PulseReport(skipped_reason="no_provider")

            return run_distillation(
                self._store,
                lambda raw: process_distill(raw, provider),
                lambda essences: process_synthesis(essences, provider),
                on_change=self._commit,
                publish=self._publish,
            )
        finally:
            self._pulse_guard.release()

    def _transition(self, item_id: str, kind: str, apply) -> bool:
        with self._store.lock:
            item = self._store.get(item_id)
            if item is None:
                logger.debug("No item %s", item_id)
                return False
            changed = apply(item)
        if changed:
            self._commit(Event(kind, item_id=item_id))
        return changed

    def mark_reviewed(self, item_id: str, success: bool, now: Optional[int] = None) -> bool:
        """Success resets strength to 1.0; failure buries the item."""
        kind = events.REVIEWED if success else events.BURIED
        return self._transition(
            item_id, kind, lambda item: lifecycle.mark_reviewed(item, success, now)
        )

    def archive(self, item_id: str) -> bool:
        return self._transition(item_id, events.BURIED, lifecycle.bury)

    def resurrect(self, item_id: str, now: Optional[int] = None) -> bool:
        return self._transition(
            item_id, events.RESURRECTED, lambda item: lifecycle.resurrect(item, now)
        )

    def clear_all(self) -> int:
        """Remove every item and the gaps. Returns the number of items removed."""
        removed = self._store.clear()
        logger.info("Cleared %d items", removed)
        self._commit(Event(events.CLEARED, data={"removed": removed}))
        return removed

    def intake(self, path: Path) -> IntakeResult:
        """Capture the text of a file, then run a pulse.

        Raises:
            IOError: File missing or unreadable
            ValueError: Unsupported file type
        """
        text = self._get_extractor().extract(Path(path))
        item = self.capture(text)
        if item is None:
            logger.info("No text extracted from %s", path)
            return IntakeResult(item=None, report=None)
        return IntakeResult(item=item, report=self.run_pulse())

    # -------------------------------------------------------------------------
    # Read views
    # -------------------------------------------------------------------------

    def review_queue(self, limit: int = REVIEW_LIMIT) -> list[Item]:
        return select_for_review(self._store.items(), limit)

    def buried(self) -> list[Item]:
        return list_buried(self._store.items())

    def items(self) -> list[Item]:
        return self._store.items()

    def gaps(self) -> list[str]:
        return self._store.gaps()

    def get(self, item_id: str) -> Optional[Item]:
        return self._store.get(item_id)

    def export_data(self) -> dict[str, Any]:
        """The persisted collection document."""
        return self._store.snapshot()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._sync is not None:
            # Push again if a background push dropped a later change
            self._sync.flush(self._store.snapshot())
            self._sync.close()
        self._store.close()
        remove_ops_log(self._ops_handler)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

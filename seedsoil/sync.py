"""
Last-writer-wins sync of the whole collection with a remote document.

Pull replaces the local collection with the remote one when the remote
document exists. Push replaces the remote document with the local one.
There is no merging: a push from another device between our pull and our
push is overwritten.

One guard covers both directions. A pull or push that arrives while
another sync is in flight is dropped, not queued. A dropped push is made
good by the next push that runs, or by flush() when the session closes.
"""

import json
import logging
import threading
from typing import Any, Callable, Optional

from . import events
from .errors import ErrorKind, classify_exception
from .events import Event
from .types import Collection

logger = logging.getLogger(__name__)

# How long close() waits for a background push
JOIN_TIMEOUT = 10.0


def _noop(*_args) -> None:
    return None


class SyncCoordinator:
    """
    Pull/push against a remote with ``get() -> str | None`` and ``put(str)``.

    Args:
        remote: Remote document client (e.g. GistRemote)
        publish: Receives a ``sync_failed`` Event for each failure
    """

    def __init__(self, remote, *, publish: Optional[Callable[[Event], None]] = None):
        self._remote = remote
        self._publish = publish or _noop
        self._guard = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self.dropped = 0
        # Push generations: requested, last dropped, last actually written
        self._counter_lock = threading.Lock()
        self._requested = 0
        self._last_dropped = 0
        self._last_written = 0

    @property
    def in_progress(self) -> bool:
        return self._guard.locked()

    def _failed(self, kind: ErrorKind, action: str, error: str) -> None:
        logger.warning("Sync %s failed (%s): %s", action, kind.value, error)
        self._publish(Event(
            events.SYNC_FAILED,
            message=f"Sync {action} failed: {error}",
            level="error",
            data={"error_kind": kind.value, "action": action},
        ))

    def _drop(self, action: str) -> None:
        self.dropped += 1
        logger.debug("Sync %s dropped: another sync is in progress", action)

    # -------------------------------------------------------------------------
    # Pull
    # -------------------------------------------------------------------------

    def pull(self) -> Optional[Collection]:
        """
        Fetch the remote collection.

        Returns None when the remote is absent, blank, unreadable, or a sync
        is already in progress; the local collection should then be kept.
        """
        if not self._guard.acquire(blocking=False):
            self._drop("pull")
            return None
        try:
            return self._pull_locked()
        finally:
            self._guard.release()

    def _pull_locked(self) -> Optional[Collection]:
        try:
            content = self._remote.get()
        except Exception as e:
            self._failed(classify_exception(e), "pull", str(e))
            return None

        if content is None or not content.strip():
            logger.info("Remote collection is empty; keeping local")
            return None

        try:
            collection = Collection.from_data(json.loads(content))
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            self._failed(ErrorKind.MALFORMED_REMOTE, "pull", str(e))
            return None

        logger.info("Pulled %d items from remote", len(collection.items))
        return collection

    # -------------------------------------------------------------------------
    # Push
    # -------------------------------------------------------------------------

    @property
    def pending(self) -> bool:
        """True when a push was dropped and no later write has run."""
        with self._counter_lock:
            return self._last_dropped > self._last_written

    def _next_push(self) -> int:
        with self._counter_lock:
            self._requested += 1
            return self._requested

    def _drop_push(self, generation: int) -> None:
        with self._counter_lock:
            self._last_dropped = max(self._last_dropped, generation)
        self._drop("push")

    def push(self, snapshot: dict[str, Any]) -> bool:
        """Replace the remote document with ``snapshot``. False if dropped or failed."""
        generation = self._next_push()
        if not self._guard.acquire(blocking=False):
            self._drop_push(generation)
            return False
        try:
            return self._write(json.dumps(snapshot), generation)
        finally:
            self._guard.release()

    def push_in_background(self, snapshot: dict[str, Any]) -> bool:
        """
        Push on a daemon thread.

        The guard is taken here, before the thread starts, so a second push
        issued right after this one is dropped. Returns False if dropped.
        """
        generation = self._next_push()
        if not self._guard.acquire(blocking=False):
            self._drop_push(generation)
            return False
        content = json.dumps(snapshot)

        def run():
            try:
                self._write(content, generation)
            finally:
                self._guard.release()

        self._thread = threading.Thread(target=run, name="seedsoil-push", daemon=True)
        self._thread.start()
        return True

    def _write(self, content: str, generation: int) -> bool:
        # A failed write still supersedes earlier drops; failures are not retried
        with self._counter_lock:
            self._last_written = max(self._last_written, generation)
        try:
            self._remote.put(content)
        except Exception as e:
            self._failed(classify_exception(e), "push", str(e))
            return False
        logger.debug("Pushed collection (%d bytes)", len(content))
        return True

    def join(self, timeout: float = JOIN_TIMEOUT) -> None:
        """Wait for an outstanding background push."""
        thread = self._thread
        if thread is not None and thread.is_alive():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Background push still running after %.0fs", timeout)

    def flush(self, snapshot: dict[str, Any], timeout: float = JOIN_TIMEOUT) -> bool:
        """
        Wait for the background push, then push ``snapshot`` if an earlier
        push was dropped in the meantime.

        Returns False, after publishing ``sync_failed``, when the changes
        could not be written.
        """
        self.join(timeout)
        if not self.pending:
            return True
        logger.info("Pushing changes from %d dropped push(es)", self.dropped)
        if not self._guard.acquire(blocking=False):
            self._publish(Event(
                events.SYNC_FAILED,
                message="Sync push failed: a previous push is still running; latest changes not uploaded",
                level="error",
                data={"error_kind": None, "action": "push"},
            ))
            logger.warning("Could not flush: a push is still running")
            return False
        try:
            return self._write(json.dumps(snapshot), self._next_push())
        finally:
            self._guard.release()

    def close(self) -> None:
        self.join()
        close = getattr(self._remote, "close", None)
        if close is not None:
            close()

"""Background sync manager for automatic index updates.

Runs a daemon thread that periodically re-indexes the notes glob so edits,
new notes and deletions made while the server runs reach the vector index.
"""

import asyncio
import logging
import threading

from notes_mcp.indexer import Indexer

logger = logging.getLogger(__name__)


class SyncManager:
    """Manages periodic background sync of the index with the filesystem.

    The sync thread is a daemon, so it automatically terminates when the
    main process exits. Passes share one event loop owned by the thread.
    """

    def __init__(self, indexer: Indexer, pattern: str, interval: int):
        """Initialize the sync manager.

        Args:
            indexer: The indexer instance to sync.
            pattern: Glob of the notes to keep indexed.
            interval: Sync interval in seconds. Must be > 0.
        """
        if interval <= 0:
            raise ValueError(f"Sync interval must be positive, got {interval}")

        self._indexer = indexer
        self._pattern = pattern
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background sync thread."""
        if self.is_running:
            logger.warning("Sync thread already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._sync_loop,
            name="notes-sync",
            daemon=True,
        )
        self._thread.start()
        logger.info("Sync manager started (interval: %ds)", self._interval)

    def stop(self) -> None:
        """Stop the background sync thread.

        Blocks until the thread terminates (up to one interval).
        """
        if not self.is_running:
            return

        self._stop_event.set()
        self._thread.join(timeout=self._interval + 1)
        if self._thread.is_alive():
            logger.warning("Sync thread did not stop cleanly")
        else:
            logger.info("Sync manager stopped")
        self._thread = None

    def sync_once(self, runner: asyncio.Runner | None = None) -> None:
        """Run a single sync pass, logging instead of raising on failure.

        Args:
            runner: Event loop runner to reuse across passes. Without one the
                pass runs on a fresh loop.
        """
        try:
            if runner is None:
                stats = asyncio.run(self._indexer.sync(self._pattern))
            else:
                stats = runner.run(self._indexer.sync(self._pattern))
        except Exception:
            logger.exception("Error during auto-sync")
            return

        if stats.indexed or stats.removed:
            logger.info(
                "Auto-sync: %d indexed, %d unchanged, %d removed",
                stats.indexed,
                stats.skipped,
                stats.removed,
            )
        else:
            logger.debug("Auto-sync: no changes detected")

    def _sync_loop(self) -> None:
        """Main sync loop - runs in background thread."""
        logger.debug("Sync loop started")

        # One loop for the thread's lifetime keeps its worker threads, and the
        # database connections they open, from piling up pass after pass
        with asyncio.Runner() as runner:
            while not self._stop_event.is_set():
                # Sleep first, then sync (allows immediate shutdown on start)
                if self._stop_event.wait(timeout=self._interval):
                    break

                self.sync_once(runner)

        logger.debug("Sync loop stopped")

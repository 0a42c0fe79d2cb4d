"""
Session guard — only one workflow may touch the system at a time.

The upgrade and the sbotools bootstrap both mutate shared system state
(package database, /etc, the bootloader). The guard makes that
exclusion explicit: an engine acquires it in ``start()`` and releases
it when the run finishes, halts, or is reset.
"""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class SessionBusyError(RuntimeError):
    """Raised when a workflow starts while another one is active."""

    def __init__(self, requested: str, holder: str):
        super().__init__(
            f"Cannot start '{requested}': workflow '{holder}' is still active"
        )
        self.requested = requested
        self.holder = holder


class SessionGuard:
    """Process-wide mutual exclusion between workflow engines."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._holder: str | None = None

    @property
    def holder(self) -> str | None:
        with self._lock:
            return self._holder

    @property
    def busy(self) -> bool:
        return self.holder is not None

    def acquire(self, key: str) -> None:
        """Take the guard for workflow ``key``; re-entrant for the same key."""
        with self._lock:
            if self._holder is not None and self._holder != key:
                raise SessionBusyError(key, self._holder)
            self._holder = key
        logger.debug("Session guard acquired by %s", key)

    def release(self, key: str) -> None:
        """Give the guard back. No-op unless ``key`` holds it."""
        with self._lock:
            if self._holder != key:
                return
            self._holder = None
        logger.debug("Session guard released by %s", key)

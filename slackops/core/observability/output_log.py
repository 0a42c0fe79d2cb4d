"""
OutputLog — thread-safe, bounded, sequence-numbered line buffer.

Carries streamed command output and engine notes to whatever the host
uses for display. It is purely observational: nothing in the engine
reads it back, and risk detection always works on the executor's full
result instead of this bounded view.

Line model
──────────
- Each appended line gets a monotonic ``seq``.
- Multi-line text is split and every line is appended under one lock
  acquisition, so lines from two writers never interleave mid-line.
- Only the newest ``max_lines`` entries are kept.
- Listeners are called outside the lock, once per line, in order.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

Listener = Callable[["OutputLine"], None]


@dataclass(frozen=True)
class OutputLine:
    seq: int
    text: str
    source: str = "output"   # output | stderr | note


class OutputLog:
    """Bounded line buffer with listeners.

    Parameters
    ----------
    max_lines : int
        Number of lines kept for display. Older lines are discarded.
    """

    def __init__(self, *, max_lines: int = 1000) -> None:
        self._lock = threading.Lock()
        self._seq: int = 0
        self._lines: deque[OutputLine] = deque(maxlen=max_lines)
        self._listeners: list[Listener] = []

    # ── Properties ──────────────────────────────────────────────

    @property
    def seq(self) -> int:
        """Sequence number of the newest line (0 when empty)."""
        with self._lock:
            return self._seq

    @property
    def max_lines(self) -> int:
        return self._lines.maxlen or 0

    # ── Writing ─────────────────────────────────────────────────

    def append(self, text: str, *, source: str = "output") -> list[OutputLine]:
        """Append ``text``, one entry per line.

        Returns:
            The entries created, in order.
        """
        parts = text.splitlines() or [""]
        created: list[OutputLine] = []
        with self._lock:
            for part in parts:
                self._seq += 1
                line = OutputLine(seq=self._seq, text=part, source=source)
                self._lines.append(line)
                created.append(line)
            listeners = list(self._listeners)

        for line in created:
            for listener in listeners:
                try:
                    listener(line)
                except Exception as e:
                    logger.warning("Output listener failed: %s", e)
        return created

    def note(self, text: str) -> list[OutputLine]:
        """Append an engine note (warnings, informational messages)."""
        return self.append(text, source="note")

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()

    # ── Reading ─────────────────────────────────────────────────

    def lines(self) -> list[OutputLine]:
        with self._lock:
            return list(self._lines)

    # ── Listeners ───────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

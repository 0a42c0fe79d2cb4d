"""
Audit ledger — append-only record of workflow runs.

Every finished run (complete or halted) is appended to an NDJSON file
as one line: which workflow ran, how each step ended, whether the gate
was declined and whether a risk condition was seen. Operators read it
back with ``slackops audit``.

Entries are never modified or deleted.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_FILE = Path("/var/log/slackops/audit.ndjson")


class AuditEntry(BaseModel):
    """One finished workflow run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    workflow: str = ""
    environment: str = ""

    # Results
    status: str = ""               # complete, halted
    steps_total: int = 0
    steps_completed: int = 0
    steps_failed: int = 0
    duration_ms: int = 0

    # Gate / risk
    gate_declined: bool = False
    risk_flag: bool = False

    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


class AuditWriter:
    """Append-only audit ledger writer.

    Write failures are logged, never raised: the ledger must not turn a
    finished maintenance run into an error.
    """

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path) if path is not None else DEFAULT_AUDIT_FILE

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audit entry written: %s/%s", entry.workflow, entry.operation_id)
        except OSError as e:
            logger.error("Failed to write audit entry to %s: %s", self._path, e)

    def read_all(self) -> list[AuditEntry]:
        """All entries, oldest first. Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries: list[AuditEntry] = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except (json.JSONDecodeError, ValidationError) as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger: %s", e)
        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        if n <= 0:
            return []
        return self.read_all()[-n:]

    def entry_count(self) -> int:
        if not self._path.is_file():
            return 0
        try:
            with self._path.open("r", encoding="utf-8") as f:
                return sum(1 for line in f if line.strip())
        except OSError:
            return 0


def generate_operation_id() -> str:
    """``run-YYYYmmdd-HHMMSS-xxxxxx``."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    return f"run-{now}-{uuid.uuid4().hex[:6]}"

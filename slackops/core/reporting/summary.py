"""
Summary reporter — the end-of-run report shown to the operator.

Pure function of the step list, the run outcome and the engine notes.
Symbols per step:

    OK   complete
    X    failed
    !!   failed because the operator skipped it ("SKIPPED ...")
    ..   running
    ?    pending
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from slackops.core.models.workflow import RunOutcome, Step, StepStatus

DANGER_TITLE = " !! UPDATE COMPLETE - WARNING !! "
DANGER_LINES = (
    "!! WARNING !!",
    "Bootloader was NOT updated after kernel change!",
    "Run 'lilo' manually BEFORE rebooting!",
)
SKIPPED_NOTE = "Note: Bootloader was skipped."


@dataclass(frozen=True)
class SummaryRow:
    name: str
    symbol: str
    detail: str = ""


@dataclass
class RunSummary:
    """Rendered-independent summary of one run."""

    title: str
    rows: list[SummaryRow] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    banner: list[str] = field(default_factory=list)
    danger: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title.strip(),
            "danger": self.danger,
            "steps": [
                {"name": r.name, "symbol": r.symbol, "detail": r.detail}
                for r in self.rows
            ],
            "notes": list(self.notes),
            "banner": list(self.banner),
        }


def step_symbol(step: Step) -> str:
    if step.status is StepStatus.COMPLETE:
        return "OK"
    if step.status is StepStatus.FAILED:
        return "!!" if "SKIPPED" in step.reason else "X"
    if step.status is StepStatus.RUNNING:
        return ".."
    return "?"


def _detail(step: Step) -> str:
    if step.status is not StepStatus.FAILED:
        return ""
    # Multi-line stderr: keep the last non-blank line.
    lines = [line for line in step.reason.splitlines() if line.strip()]
    return lines[-1].strip() if lines else ""


def build_summary(
    steps: list[Step],
    outcome: RunOutcome,
    notes: list[str] | None = None,
    *,
    title: str = "Update Complete",
) -> RunSummary:
    """Build the report for a finished (or halted) run."""
    danger = outcome.must_warn_on_exit
    if danger:
        banner = list(DANGER_LINES)
    elif outcome.gate_declined:
        banner = [SKIPPED_NOTE]
    else:
        banner = []

    return RunSummary(
        title=DANGER_TITLE if danger else title,
        rows=[SummaryRow(s.name, step_symbol(s), _detail(s)) for s in steps],
        notes=list(notes or []),
        banner=banner,
        danger=danger,
    )

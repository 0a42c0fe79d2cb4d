"""
Workflow models — steps, workflow state, definitions and outcomes.

A workflow is an ordered, fixed list of steps. Each step maps to exactly
one external action. The engine's position in that list is captured by a
single tagged ``WorkflowState`` value instead of a handful of booleans:

    Idle → Running(i) → ... → AwaitingGate(g) → Running(g) → Complete
                    ↘ Halted(i)            ↘ Halted(g)

Definitions are pure configuration data: the same engine runs the
system upgrade and the sbotools bootstrap with different definitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Union

from pydantic import BaseModel, Field, model_validator

from slackops.core.models.action import Action


class WorkflowStateError(RuntimeError):
    """Raised when the engine contract is misused by the host.

    Examples: calling ``advance()`` while no action is outstanding, or
    re-marking a step that already finished. Workflow failures (failed
    commands, declined gates) are never reported this way.
    """


# ── Steps ────────────────────────────────────────────────────────────


class StepStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class Step:
    """One unit of a workflow. ``reason`` is only set on failure."""

    name: str
    status: StepStatus = StepStatus.PENDING
    reason: str = ""

    @property
    def finished(self) -> bool:
        return self.status in (StepStatus.COMPLETE, StepStatus.FAILED)

    def mark_running(self) -> None:
        self._check_mutable()
        self.status = StepStatus.RUNNING

    def mark_complete(self) -> None:
        self._check_mutable()
        self.status = StepStatus.COMPLETE

    def mark_failed(self, reason: str) -> None:
        self._check_mutable()
        self.status = StepStatus.FAILED
        self.reason = reason

    def _check_mutable(self) -> None:
        if self.finished:
            raise WorkflowStateError(
                f"Step '{self.name}' already finished ({self.status})"
            )

    def to_dict(self) -> dict:
        return {"name": self.name, "status": str(self.status), "reason": self.reason}


# ── Environment & gate ──────────────────────────────────────────────


class EnvironmentClass(StrEnum):
    """Detected bootloader family. Closed set."""

    LILO = "lilo"
    GRUB = "grub"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return {"lilo": "LILO", "grub": "GRUB"}.get(self.value, "Unknown")


class GateBehavior(StrEnum):
    """What the engine does when it reaches the gate step."""

    CONFIRM = "confirm"        # ask the operator
    AUTO_OK = "auto_ok"        # target manages itself; mark complete
    AUTO_WARN = "auto_warn"    # nothing to update; mark failed with a note


class GateMode(StrEnum):
    OPTIONAL = "optional"      # plain yes/no
    MANDATORY = "mandatory"    # yes, or type the bypass keyword


# ── Workflow state (tagged variant) ─────────────────────────────────


@dataclass(frozen=True)
class Idle:
    tag: ClassVar[str] = "idle"


@dataclass(frozen=True)
class Running:
    index: int
    tag: ClassVar[str] = "running"


@dataclass(frozen=True)
class AwaitingGate:
    index: int
    mode: GateMode
    buffer: str = ""
    tag: ClassVar[str] = "awaiting_gate"


@dataclass(frozen=True)
class Complete:
    tag: ClassVar[str] = "complete"


@dataclass(frozen=True)
class Halted:
    index: int
    tag: ClassVar[str] = "halted"


WorkflowState = Union[Idle, Running, AwaitingGate, Complete, Halted]


# ── Outcome ─────────────────────────────────────────────────────────


class RunOutcome(BaseModel):
    """Standing record of a run, consulted by the host at exit time."""

    gate_declined: bool = False
    risk_flag: bool = False

    @property
    def must_warn_on_exit(self) -> bool:
        return self.gate_declined and self.risk_flag


# ── Definitions ─────────────────────────────────────────────────────


class StepSpec(BaseModel):
    """Static description of one step: display name plus its action."""

    name: str
    action: Action


class WorkflowDefinition(BaseModel):
    """Configuration data for one workflow engine instance.

    ``gate_index`` designates the step that needs operator confirmation;
    ``risk_index`` designates the step whose output is scanned for the
    risk condition. Both are optional: a workflow without a gate simply
    runs straight through.
    """

    key: str
    title: str
    summary_title: str = ""
    steps: list[StepSpec]
    gate_index: int | None = None
    risk_index: int | None = None
    bypass_keyword: str = "SKIP"
    gate_behavior: dict[EnvironmentClass, GateBehavior] = Field(
        default_factory=lambda: {
            EnvironmentClass.LILO: GateBehavior.CONFIRM,
            EnvironmentClass.GRUB: GateBehavior.AUTO_OK,
            EnvironmentClass.UNKNOWN: GateBehavior.AUTO_WARN,
        }
    )
    gate_notes: dict[EnvironmentClass, str] = Field(default_factory=dict)
    risk_note: str = ""
    completion_note: str = ""

    @model_validator(mode="after")
    def _check_indices(self) -> WorkflowDefinition:
        if not self.steps:
            raise ValueError("A workflow needs at least one step")
        count = len(self.steps)
        if self.gate_index is not None and not 0 < self.gate_index < count:
            raise ValueError(
                f"gate_index {self.gate_index} out of range for {count} steps"
            )
        if self.risk_index is not None:
            if not 0 <= self.risk_index < count:
                raise ValueError(
                    f"risk_index {self.risk_index} out of range for {count} steps"
                )
            if self.gate_index is not None and self.risk_index >= self.gate_index:
                raise ValueError("risk_index must come before gate_index")
        if not self.bypass_keyword or not self.bypass_keyword.isalpha():
            raise ValueError("bypass_keyword must be a non-empty alphabetic word")
        self.bypass_keyword = self.bypass_keyword.upper()
        if "Y" in self.bypass_keyword:
            raise ValueError("bypass_keyword must not contain the affirm key 'Y'")
        return self

    def behavior_for(self, environment: EnvironmentClass) -> GateBehavior:
        return self.gate_behavior.get(environment, GateBehavior.AUTO_WARN)

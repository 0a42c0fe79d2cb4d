"""
Workflow engine — the guarded sequential step machine.

One engine class serves every workflow; what differs between the
system upgrade and the sbotools bootstrap is the ``WorkflowDefinition``
it is built from.

Flow:
    start() → current_action() → [host runs it] → advance(result) → ...

    - a failed result halts the run on that step;
    - the risk-evaluation step's full stdout is scanned before branching;
    - reaching the gate step consults the environment class and either
      auto-resolves the step or pauses for operator input
      (``handle_gate_input``);
    - declining the gate halts the run and is recorded in the outcome.

The engine performs no I/O of its own besides the environment probe in
``start()``. It never raises for workflow failures; ``WorkflowStateError``
only signals host misuse of the contract.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from slackops.core.detection.environment import classify_environment
from slackops.core.detection.risk import KERNEL_PACKAGE_PATTERNS, matched_risk_markers
from slackops.core.engine.gate import GateKey, GateVerdict, resolve_gate_key
from slackops.core.engine.guard import SessionGuard
from slackops.core.models.action import Action, ActionResult
from slackops.core.models.workflow import (
    AwaitingGate,
    Complete,
    EnvironmentClass,
    GateBehavior,
    GateMode,
    Halted,
    Idle,
    RunOutcome,
    Running,
    Step,
    WorkflowDefinition,
    WorkflowState,
    WorkflowStateError,
)
from slackops.core.observability.output_log import OutputLog

logger = logging.getLogger(__name__)

Classifier = Callable[[Path], EnvironmentClass]

NO_TARGET_REASON = "no known target detected"
OPERATOR_SKIP_REASON = "skipped by operator"
RISK_SKIP_REASON = "SKIPPED - RISK CONDITION PRESENT"


class WorkflowEngine:
    """Drive one workflow definition through its steps.

    Args:
        definition: Steps, gate and risk configuration.
        guard: Shared session guard; acquired on ``start()``.
        output: Optional output log for engine notes.
        system_root: Root passed to the environment classifier.
        classifier: Environment classifier (injectable for tests).
        risk_patterns: Fragments the risk detector looks for.
    """

    def __init__(
        self,
        definition: WorkflowDefinition,
        *,
        guard: SessionGuard | None = None,
        output: OutputLog | None = None,
        system_root: str | Path = "/",
        classifier: Classifier = classify_environment,
        risk_patterns: Iterable[str] = KERNEL_PACKAGE_PATTERNS,
    ) -> None:
        self._definition = definition
        self._guard = guard
        self._output = output
        self._system_root = Path(system_root)
        self._classifier = classifier
        self._risk_patterns = tuple(risk_patterns)

        self._steps: list[Step] = self._fresh_steps()
        self._state: WorkflowState = Idle()
        self._environment = EnvironmentClass.UNKNOWN
        self._risk_flag = False
        self._gate_declined = False
        self._notes: list[str] = []

    # ── Properties ──────────────────────────────────────────────

    @property
    def key(self) -> str:
        return self._definition.key

    @property
    def definition(self) -> WorkflowDefinition:
        return self._definition

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def steps(self) -> list[Step]:
        return list(self._steps)

    @property
    def current_index(self) -> int:
        """Index of the running / gated / failed step; length when complete."""
        state = self._state
        if isinstance(state, (Running, AwaitingGate, Halted)):
            return state.index
        if isinstance(state, Complete):
            return len(self._steps)
        return 0

    @property
    def environment(self) -> EnvironmentClass:
        return self._environment

    @property
    def risk_flag(self) -> bool:
        return self._risk_flag

    @property
    def notes(self) -> list[str]:
        return list(self._notes)

    @property
    def gate_mode(self) -> GateMode | None:
        state = self._state
        return state.mode if isinstance(state, AwaitingGate) else None

    @property
    def bypass_buffer(self) -> str:
        state = self._state
        return state.buffer if isinstance(state, AwaitingGate) else ""

    # ── Status queries ──────────────────────────────────────────

    def is_idle(self) -> bool:
        return isinstance(self._state, Idle)

    def is_running(self) -> bool:
        """An action is outstanding (or about to be)."""
        return isinstance(self._state, Running)

    def is_gated(self) -> bool:
        return isinstance(self._state, AwaitingGate)

    def is_active(self) -> bool:
        """Running or paused at the gate — the run still owns the system."""
        return isinstance(self._state, (Running, AwaitingGate))

    def is_complete(self) -> bool:
        return isinstance(self._state, Complete)

    def is_halted(self) -> bool:
        return isinstance(self._state, Halted)

    def is_finished(self) -> bool:
        return isinstance(self._state, (Complete, Halted))

    def run_outcome(self) -> RunOutcome:
        return RunOutcome(gate_declined=self._gate_declined, risk_flag=self._risk_flag)

    # ── Lifecycle ───────────────────────────────────────────────

    def start(self) -> None:
        """Begin a fresh run at step 0.

        Raises:
            WorkflowStateError: If this engine's run is still active.
            SessionBusyError: If another workflow holds the session guard.
        """
        if self.is_active():
            raise WorkflowStateError(f"Workflow '{self.key}' is already running")
        environment = self._classifier(self._system_root)
        if self._guard is not None:
            self._guard.acquire(self.key)

        self._steps = self._fresh_steps()
        self._risk_flag = False
        self._gate_declined = False
        self._notes = []
        self._environment = environment

        self._steps[0].mark_running()
        self._state = Running(0)
        logger.info(
            "Workflow %s started (%d steps, bootloader=%s)",
            self.key, len(self._steps), self._environment,
        )

    def reset(self) -> None:
        """Discard the last run's steps and return to idle.

        The run outcome stays readable until the next ``start()``.

        Raises:
            WorkflowStateError: While the run is active; a pending gate
                must be answered, not abandoned.
        """
        if self.is_active():
            raise WorkflowStateError(f"Cannot reset '{self.key}' while it is active")
        self._steps = self._fresh_steps()
        self._state = Idle()
        self._notes = []
        self._environment = self._classifier(self._system_root)
        self._release()

    def current_action(self) -> Action | None:
        """Action for the running step, or None when idle/gated/finished."""
        state = self._state
        if isinstance(state, Running):
            return self._definition.steps[state.index].action
        return None

    def advance(self, result: ActionResult) -> None:
        """Feed the result of the current action back into the engine.

        Raises:
            WorkflowStateError: If no action was outstanding.
        """
        state = self._state
        if not isinstance(state, Running):
            raise WorkflowStateError(
                f"advance() called on '{self.key}' with no outstanding action "
                f"(state={state.tag})"
            )
        index = state.index
        step = self._steps[index]

        if index == self._definition.risk_index:
            self._evaluate_risk(result.stdout)

        if not result.success:
            reason = result.stderr or _exit_reason(result)
            step.mark_failed(reason)
            logger.warning("Step %d (%s) failed: %s", index, step.name, reason.strip()[:200])
            self._halt(index)
            return

        step.mark_complete()
        logger.info("Step %d (%s) complete", index, step.name)
        self._enter(index + 1)

    def handle_gate_input(self, key: GateKey) -> GateVerdict:
        """Route one key press to the pending gate.

        Ignored (returns ``PENDING``) when no gate is pending.
        """
        state = self._state
        if not isinstance(state, AwaitingGate):
            logger.debug("Gate input ignored; %s is %s", self.key, state.tag)
            return GateVerdict.PENDING

        decision = resolve_gate_key(
            state.mode, state.buffer, key, self._definition.bypass_keyword,
        )
        index = state.index
        step = self._steps[index]

        if decision.verdict is GateVerdict.AFFIRM:
            step.mark_running()
            self._state = Running(index)
            logger.info("Gate %s affirmed (%s)", step.name, state.mode)
        elif decision.verdict is GateVerdict.DECLINE:
            if state.mode is GateMode.MANDATORY:
                step.mark_failed(RISK_SKIP_REASON)
                logger.warning("Gate %s bypassed with risk condition present", step.name)
            else:
                step.mark_failed(OPERATOR_SKIP_REASON)
                logger.info("Gate %s skipped by operator", step.name)
            self._gate_declined = True
            self._halt(index)
        else:
            self._state = AwaitingGate(index, state.mode, decision.buffer)
        return decision.verdict

    # ── Internals ───────────────────────────────────────────────

    def _fresh_steps(self) -> list[Step]:
        return [Step(spec.name) for spec in self._definition.steps]

    def _evaluate_risk(self, stdout: str) -> None:
        markers = matched_risk_markers(stdout, self._risk_patterns)
        if not markers or self._risk_flag:
            return
        self._risk_flag = True
        logger.warning("Risk condition detected: %s", ", ".join(markers))
        if self._definition.risk_note:
            self._note(self._definition.risk_note)

    def _enter(self, index: int) -> None:
        if index >= len(self._steps):
            self._finish()
            return
        if index == self._definition.gate_index:
            self._arrive_at_gate(index)
            return
        self._steps[index].mark_running()
        self._state = Running(index)

    def _arrive_at_gate(self, index: int) -> None:
        step = self._steps[index]
        behavior = self._definition.behavior_for(self._environment)
        note = self._definition.gate_notes.get(self._environment, "")

        if behavior is GateBehavior.AUTO_WARN:
            step.mark_failed(NO_TARGET_REASON)
            self._note(note or f"WARNING: {step.name} skipped - {NO_TARGET_REASON}.")
            self._enter(index + 1)
        elif behavior is GateBehavior.AUTO_OK:
            step.mark_complete()
            self._note(note or f"{step.name} handled by {self._environment.display_name}.")
            self._enter(index + 1)
        else:
            mode = GateMode.MANDATORY if self._risk_flag else GateMode.OPTIONAL
            self._state = AwaitingGate(index, mode)
            logger.info("Workflow %s waiting at gate %s (%s)", self.key, step.name, mode)

    def _halt(self, index: int) -> None:
        self._state = Halted(index)
        self._release()
        logger.info("Workflow %s halted at step %d", self.key, index)

    def _finish(self) -> None:
        self._state = Complete()
        if self._definition.completion_note:
            self._note(self._definition.completion_note)
        self._release()
        logger.info("Workflow %s complete", self.key)

    def _release(self) -> None:
        if self._guard is not None:
            self._guard.release(self.key)

    def _note(self, text: str) -> None:
        self._notes.append(text)
        if self._output is not None:
            self._output.note(text)

    def __repr__(self) -> str:
        return f"<WorkflowEngine key={self.key!r} state={self._state.tag}>"


def _exit_reason(result: ActionResult) -> str:
    if result.exit_code is not None:
        return f"exit code {result.exit_code}"
    return "failed"

"""
Workflow runner — connects an engine to an executor and the audit ledger.

``drive()`` is the cooperative loop: await the current action, feed the
result to ``advance()``, repeat until the engine pauses at its gate or
reaches a terminal state. The engine itself never awaits anything.

``WorkflowRunner`` wraps one engine for a host: it starts runs, resumes
them after gate input, and writes exactly one audit entry per finished
run.
"""

from __future__ import annotations

import asyncio
import logging
import time

from slackops.adapters.base import Executor
from slackops.core.engine.gate import GateKey, GateVerdict
from slackops.core.engine.workflow import WorkflowEngine
from slackops.core.models.action import ActionResult
from slackops.core.models.workflow import StepStatus, WorkflowState
from slackops.core.observability.logging_config import bind_run
from slackops.core.persistence.audit import AuditEntry, AuditWriter, generate_operation_id

logger = logging.getLogger(__name__)

INTERRUPTED_REASON = "interrupted"


async def drive(engine: WorkflowEngine, executor: Executor) -> WorkflowState:
    """Run actions until the engine is gated, halted or complete.

    If the awaiting task is cancelled, the running step is recorded as
    failed with reason ``"interrupted"`` and the cancellation propagates.
    """
    while (action := engine.current_action()) is not None:
        logger.debug("%s: executing %s", engine.key, action.describe())
        try:
            result = await executor.execute(action)
        except asyncio.CancelledError:
            engine.advance(ActionResult.failure(INTERRUPTED_REASON))
            raise
        engine.advance(result)
    return engine.state


class WorkflowRunner:
    """Host-facing handle for one workflow engine.

    Args:
        engine: The engine to drive.
        executor: Where actions run.
        audit: Optional ledger; one entry per finished run.
    """

    def __init__(
        self,
        engine: WorkflowEngine,
        executor: Executor,
        *,
        audit: AuditWriter | None = None,
    ) -> None:
        self._engine = engine
        self._executor = executor
        self._audit = audit
        self._operation_id = ""
        self._started_at = 0.0
        self._recorded = True

    @property
    def engine(self) -> WorkflowEngine:
        return self._engine

    @property
    def executor(self) -> Executor:
        return self._executor

    @property
    def operation_id(self) -> str:
        return self._operation_id

    def start(self) -> None:
        """Start a fresh run (see ``WorkflowEngine.start``)."""
        self._engine.start()
        self._operation_id = generate_operation_id()
        self._started_at = time.monotonic()
        self._recorded = False
        bind_run(self._operation_id)
        logger.info("Run %s started for %s", self._operation_id, self._engine.key)

    async def resume(self) -> WorkflowState:
        """Drive until the next pause; record the run if it finished."""
        try:
            state = await drive(self._engine, self._executor)
        finally:
            self._record_if_finished()
        return state

    async def run(self) -> WorkflowState:
        """``start()`` then ``resume()``."""
        self.start()
        return await self.resume()

    def answer_gate(self, key: GateKey) -> GateVerdict:
        """Pass one key to the gate. A decline finishes the run."""
        verdict = self._engine.handle_gate_input(key)
        self._record_if_finished()
        return verdict

    def reset(self) -> None:
        self._engine.reset()
        self._recorded = True

    # ── Audit ───────────────────────────────────────────────────

    def _record_if_finished(self) -> None:
        if self._recorded or not self._engine.is_finished():
            return
        self._recorded = True
        if self._audit is None:
            return
        self._audit.write(self.audit_entry())

    def audit_entry(self) -> AuditEntry:
        """Ledger entry describing the current (finished) run."""
        engine = self._engine
        steps = engine.steps
        outcome = engine.run_outcome()
        return AuditEntry(
            operation_id=self._operation_id,
            workflow=engine.key,
            environment=str(engine.environment),
            status=engine.state.tag,
            steps_total=len(steps),
            steps_completed=sum(1 for s in steps if s.status is StepStatus.COMPLETE),
            steps_failed=sum(1 for s in steps if s.status is StepStatus.FAILED),
            duration_ms=int((time.monotonic() - self._started_at) * 1000),
            gate_declined=outcome.gate_declined,
            risk_flag=outcome.risk_flag,
            errors=[f"{s.name}: {s.reason}" for s in steps if s.status is StepStatus.FAILED],
            context={"executor": self._executor.name},
        )

    def __repr__(self) -> str:
        return f"<WorkflowRunner {self._engine!r} executor={self._executor.name}>"

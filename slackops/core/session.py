"""
Console session — everything one operator session shares.

Owns the session guard, the output log, the executor and one runner per
workflow. Hosts (the CLI today) talk to this object rather than wiring
engines themselves.

Exit confirmation:
    If the upgrade ran a kernel update and the operator then bypassed
    the bootloader step, leaving the console must not be silent. The
    host asks ``must_warn_on_exit()`` and shows ``exit_warning_lines()``;
    ``[L]`` runs the skipped bootloader action right away.
"""

from __future__ import annotations

import logging

from slackops.adapters.base import Executor
from slackops.adapters.shell.command import ShellExecutor
from slackops.core.config.loader import ConsoleSettings
from slackops.core.engine.guard import SessionGuard
from slackops.core.engine.runner import WorkflowRunner
from slackops.core.engine.workflow import WorkflowEngine
from slackops.core.models.action import ActionResult
from slackops.core.observability.output_log import OutputLog
from slackops.core.persistence.audit import AuditWriter
from slackops.core.reporting.summary import RunSummary, build_summary
from slackops.core.workflows import WORKFLOWS

logger = logging.getLogger(__name__)

EXIT_WARNING_TITLE = "!! BOOTLOADER NOT UPDATED !!"


class ConsoleSession:
    """One operator session: guard, output, executor and workflow runners.

    Args:
        settings: Console settings.
        executor: Executor for all workflows (default: ``ShellExecutor``
            writing to this session's output log).
        output: Output log (default: bounded by ``settings.log_lines``).
        audit: Ledger writer (default: ``settings.audit_file`` when
            auditing is enabled).
    """

    def __init__(
        self,
        settings: ConsoleSettings | None = None,
        *,
        executor: Executor | None = None,
        output: OutputLog | None = None,
        audit: AuditWriter | None = None,
    ) -> None:
        self.settings = settings or ConsoleSettings()
        self.output = output or OutputLog(max_lines=self.settings.log_lines)
        self.guard = SessionGuard()

        if executor is None:
            executor = ShellExecutor(self.output)
        elif executor.output is None:
            executor.output = self.output
        self.executor = executor

        if audit is None and self.settings.audit_enabled:
            audit = AuditWriter(self.settings.audit_file)
        self.audit = audit

        self._runners: dict[str, WorkflowRunner] = {}
        for key, builder in WORKFLOWS.items():
            engine = WorkflowEngine(
                builder(self.settings),
                guard=self.guard,
                output=self.output,
                system_root=self.settings.system_root,
                risk_patterns=self.settings.kernel_patterns,
            )
            self._runners[key] = WorkflowRunner(engine, self.executor, audit=self.audit)

    # ── Lookup ──────────────────────────────────────────────────

    @property
    def workflow_keys(self) -> list[str]:
        return list(self._runners)

    def runner(self, key: str) -> WorkflowRunner:
        try:
            return self._runners[key]
        except KeyError:
            raise KeyError(f"Unknown workflow '{key}'") from None

    def engine(self, key: str) -> WorkflowEngine:
        return self.runner(key).engine

    @property
    def upgrade(self) -> WorkflowEngine:
        return self.engine("upgrade")

    @property
    def sbotools(self) -> WorkflowEngine:
        return self.engine("sbotools")

    @property
    def active_workflow(self) -> str | None:
        return self.guard.holder

    # ── Summary ─────────────────────────────────────────────────

    def summary(self, key: str) -> RunSummary:
        engine = self.engine(key)
        definition = engine.definition
        outcome = engine.run_outcome()
        if engine.is_halted() and not outcome.gate_declined:
            title = f"{definition.title} Failed"
        else:
            title = definition.summary_title or f"{definition.title} Complete"
        return build_summary(engine.steps, outcome, engine.notes, title=title)

    # ── Exit confirmation ───────────────────────────────────────

    def must_warn_on_exit(self) -> bool:
        """True when some workflow left a risk condition unresolved."""
        return any(
            r.engine.run_outcome().must_warn_on_exit for r in self._runners.values()
        )

    def exit_warning_lines(self, *, cancellable: bool = True) -> list[str]:
        """Exit dialog text; empty when quitting is safe.

        ``cancellable=False`` drops the ``[Esc]`` choice for hosts that
        have nothing to return to.
        """
        if not self.must_warn_on_exit():
            return []
        command = self._pending_gate_command()
        lines = [
            EXIT_WARNING_TITLE,
            "",
            "The kernel was updated but the bootloader",
            "was NOT updated. Your system may not boot!",
            "",
            "[Q] Quit anyway",
            f"[L] Run {command} now",
        ]
        if cancellable:
            lines.append("[Esc] Cancel")
        return lines

    async def run_skipped_gate_action(self) -> ActionResult | None:
        """Run the bypassed gate action of the first workflow that needs it.

        Returns None when nothing is pending. This bypasses the engine:
        the run stays halted and its outcome is unchanged.
        """
        for runner in self._runners.values():
            engine = runner.engine
            if not engine.run_outcome().must_warn_on_exit:
                continue
            gate_index = engine.definition.gate_index
            if gate_index is None:
                continue
            action = engine.definition.steps[gate_index].action
            logger.warning("Running skipped gate action for %s: %s", engine.key, action.describe())
            return await self.executor.execute(action)
        return None

    def _pending_gate_command(self) -> str:
        for runner in self._runners.values():
            engine = runner.engine
            gate_index = engine.definition.gate_index
            if engine.run_outcome().must_warn_on_exit and gate_index is not None:
                return engine.definition.steps[gate_index].action.describe()
        return "bootloader update"

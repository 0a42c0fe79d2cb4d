"""
Tests for the drive loop and WorkflowRunner (audit recording, cancellation).
"""

import asyncio
from pathlib import Path

from slackops.adapters.base import Executor
from slackops.adapters.mock import MockExecutor
from slackops.core.engine.gate import GateKey, GateVerdict
from slackops.core.engine.runner import WorkflowRunner, drive
from slackops.core.engine.workflow import WorkflowEngine
from slackops.core.models.action import ActionResult
from slackops.core.models.workflow import Complete, GateMode, Halted, StepStatus
from slackops.core.observability.logging_config import bind_run, current_run
from slackops.core.persistence.audit import AuditWriter
from slackops.core.workflows.sbotools import build_sbotools
from slackops.core.workflows.upgrade import build_upgrade


class _HangingExecutor(Executor):
    """Blocks forever on the first program; used to test cancellation."""

    @property
    def name(self) -> str:
        return "hanging"

    async def run_program(self, program, args=()):
        await asyncio.sleep(3600)
        return ActionResult.ok()

    async def run_program_with_stdin(self, program, payload, args=()):
        return ActionResult.ok()

    async def download(self, url, destination):
        return ActionResult.ok()


class TestDrive:
    def test_runs_until_gate(self, lilo_upgrade: WorkflowEngine, mock_executor: MockExecutor):
        lilo_upgrade.start()
        state = asyncio.run(drive(lilo_upgrade, mock_executor))
        assert lilo_upgrade.is_gated()
        assert state.mode is GateMode.OPTIONAL
        assert mock_executor.call_log == [
            "slackpkg update",
            "slackpkg install-new",
            "slackpkg upgrade-all",
            "slackpkg clean-system",
        ]

    def test_resume_after_gate(self, lilo_upgrade: WorkflowEngine, mock_executor: MockExecutor):
        lilo_upgrade.start()
        asyncio.run(drive(lilo_upgrade, mock_executor))
        lilo_upgrade.handle_gate_input(GateKey.char_key("y"))
        state = asyncio.run(drive(lilo_upgrade, mock_executor))
        assert state == Complete()
        assert mock_executor.call_log[-1] == "lilo"

    def test_stops_on_failure(self, lilo_upgrade: WorkflowEngine, mock_executor: MockExecutor):
        mock_executor.set_failure("slackpkg install-new", "No mirror selected")
        lilo_upgrade.start()
        state = asyncio.run(drive(lilo_upgrade, mock_executor))
        assert state == Halted(1)
        assert mock_executor.call_count == 2

    def test_risk_from_mock_output(self, lilo_upgrade, mock_executor, kernel_output):
        mock_executor.set_output("slackpkg upgrade-all", kernel_output)
        lilo_upgrade.start()
        state = asyncio.run(drive(lilo_upgrade, mock_executor))
        assert state.mode is GateMode.MANDATORY

    def test_idle_engine_is_a_no_op(self, lilo_upgrade: WorkflowEngine, mock_executor: MockExecutor):
        asyncio.run(drive(lilo_upgrade, mock_executor))
        assert mock_executor.call_count == 0
        assert lilo_upgrade.is_idle()

    def test_cancellation_marks_step_interrupted(self, lilo_root: Path):
        engine = WorkflowEngine(build_upgrade(), system_root=lilo_root)
        engine.start()

        async def scenario():
            task = asyncio.create_task(drive(engine, _HangingExecutor()))
            await asyncio.sleep(0.05)
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                return True
            return False

        assert asyncio.run(scenario())
        assert engine.state == Halted(0)
        assert engine.steps[0].status is StepStatus.FAILED
        assert engine.steps[0].reason == "interrupted"


class TestWorkflowRunner:
    def test_run_records_one_entry(self, tmp_path: Path, bare_root: Path):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        engine = WorkflowEngine(build_sbotools(), system_root=bare_root)
        runner = WorkflowRunner(engine, MockExecutor(), audit=writer)

        asyncio.run(runner.run())

        entries = writer.read_all()
        assert len(entries) == 1
        entry = entries[0]
        assert entry.workflow == "sbotools"
        assert entry.status == "complete"
        assert entry.steps_total == 6
        assert entry.steps_completed == 6
        assert entry.operation_id == runner.operation_id
        assert entry.operation_id.startswith("run-")
        assert entry.context == {"executor": "mock"}

    def test_no_entry_while_gated(self, tmp_path: Path, lilo_upgrade: WorkflowEngine):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        runner = WorkflowRunner(lilo_upgrade, MockExecutor(), audit=writer)
        asyncio.run(runner.run())
        assert lilo_upgrade.is_gated()
        assert writer.entry_count() == 0

    def test_decline_records_entry(self, tmp_path, lilo_upgrade, kernel_output):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        mock = MockExecutor()
        mock.set_output("slackpkg upgrade-all", kernel_output)
        runner = WorkflowRunner(lilo_upgrade, mock, audit=writer)
        asyncio.run(runner.run())

        verdicts = [runner.answer_gate(GateKey.char_key(c)) for c in "SKIP"]
        assert verdicts[-1] is GateVerdict.DECLINE

        (entry,) = writer.read_all()
        assert entry.status == "halted"
        assert entry.gate_declined and entry.risk_flag
        assert entry.environment == "lilo"
        assert entry.errors == ["Update bootloader (lilo): SKIPPED - RISK CONDITION PRESENT"]

    def test_failure_records_error(self, tmp_path: Path, lilo_upgrade: WorkflowEngine):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        mock = MockExecutor()
        mock.set_failure("slackpkg update", "Network unreachable")
        runner = WorkflowRunner(lilo_upgrade, mock, audit=writer)
        asyncio.run(runner.run())

        (entry,) = writer.read_all()
        assert entry.status == "halted"
        assert entry.steps_failed == 1
        assert entry.errors == ["Update package list: Network unreachable"]

    def test_resume_on_finished_run_does_not_duplicate(self, tmp_path, bare_root):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        engine = WorkflowEngine(build_sbotools(), system_root=bare_root)
        runner = WorkflowRunner(engine, MockExecutor(), audit=writer)
        asyncio.run(runner.run())
        asyncio.run(runner.resume())
        assert writer.entry_count() == 1

    def test_without_audit(self, bare_root: Path):
        engine = WorkflowEngine(build_sbotools(), system_root=bare_root)
        runner = WorkflowRunner(engine, MockExecutor())
        state = asyncio.run(runner.run())
        assert state == Complete()

    def test_start_binds_operation_id_to_logs(self, bare_root: Path):
        engine = WorkflowEngine(build_sbotools(), system_root=bare_root)
        runner = WorkflowRunner(engine, MockExecutor())
        try:
            runner.start()
            assert current_run() == runner.operation_id
        finally:
            bind_run(None)

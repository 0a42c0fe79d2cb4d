"""
Tests for ConsoleSession — shared guard, summaries and exit confirmation.
"""

import asyncio
from pathlib import Path

import pytest

from slackops.adapters.mock import MockExecutor
from slackops.core.config.loader import ConsoleSettings
from slackops.core.engine.gate import GateKey
from slackops.core.engine.guard import SessionBusyError
from slackops.core.session import EXIT_WARNING_TITLE, ConsoleSession


def _session(root: Path, tmp_path: Path, **settings) -> tuple[ConsoleSession, MockExecutor]:
    mock = MockExecutor()
    config = ConsoleSettings(
        system_root=str(root),
        audit_file=str(tmp_path / "audit.ndjson"),
        **settings,
    )
    return ConsoleSession(config, executor=mock), mock


def _decline_after_kernel(session: ConsoleSession, mock: MockExecutor, kernel_output: str) -> None:
    mock.set_output("slackpkg upgrade-all", kernel_output)
    runner = session.runner("upgrade")
    asyncio.run(runner.run())
    for c in "SKIP":
        runner.answer_gate(GateKey.char_key(c))


class TestConsoleSession:
    def test_builds_both_workflows(self, lilo_root, tmp_path):
        session, _ = _session(lilo_root, tmp_path)
        assert session.workflow_keys == ["upgrade", "sbotools"]
        assert session.upgrade.key == "upgrade"
        assert session.sbotools.key == "sbotools"

    def test_unknown_workflow(self, lilo_root, tmp_path):
        session, _ = _session(lilo_root, tmp_path)
        with pytest.raises(KeyError):
            session.runner("kernel")

    def test_executor_gets_session_output(self, lilo_root, tmp_path):
        session, mock = _session(lilo_root, tmp_path)
        assert mock.output is session.output

    def test_output_log_bounded_by_settings(self, lilo_root, tmp_path):
        session, _ = _session(lilo_root, tmp_path, log_lines=42)
        assert session.output.max_lines == 42

    def test_engines_share_guard(self, lilo_root, tmp_path):
        session, _ = _session(lilo_root, tmp_path)
        asyncio.run(session.runner("upgrade").run())
        assert session.active_workflow == "upgrade"
        with pytest.raises(SessionBusyError):
            session.runner("sbotools").start()

    def test_audit_disabled(self, lilo_root, tmp_path):
        session, _ = _session(lilo_root, tmp_path, audit_enabled=False)
        assert session.audit is None

    def test_kernel_patterns_from_settings(self, lilo_root, tmp_path):
        session, mock = _session(lilo_root, tmp_path, kernel_patterns=["vmlinuz"])
        mock.set_output("slackpkg upgrade-all", "installing vmlinuz-6.1")
        asyncio.run(session.runner("upgrade").run())
        assert session.upgrade.risk_flag


class TestExitConfirmation:
    def test_no_warning_by_default(self, lilo_root, tmp_path):
        session, _ = _session(lilo_root, tmp_path)
        assert not session.must_warn_on_exit()
        assert session.exit_warning_lines() == []

    def test_warning_after_risky_decline(self, lilo_root, tmp_path, kernel_output):
        session, mock = _session(lilo_root, tmp_path)
        _decline_after_kernel(session, mock, kernel_output)
        assert session.must_warn_on_exit()
        lines = session.exit_warning_lines()
        assert lines[0] == EXIT_WARNING_TITLE
        assert "[Q] Quit anyway" in lines
        assert "[L] Run lilo now" in lines
        assert "[Esc] Cancel" in lines

    def test_plain_decline_does_not_warn(self, lilo_root, tmp_path):
        session, _ = _session(lilo_root, tmp_path)
        runner = session.runner("upgrade")
        asyncio.run(runner.run())
        runner.answer_gate(GateKey.char_key("n"))
        assert session.upgrade.run_outcome().gate_declined
        assert not session.must_warn_on_exit()

    def test_run_skipped_gate_action(self, lilo_root, tmp_path, kernel_output):
        session, mock = _session(lilo_root, tmp_path)
        _decline_after_kernel(session, mock, kernel_output)
        result = asyncio.run(session.run_skipped_gate_action())
        assert result is not None and result.success
        assert mock.call_log[-1] == "lilo"
        # The run itself stays halted.
        assert session.upgrade.is_halted()

    def test_run_skipped_gate_action_nothing_pending(self, lilo_root, tmp_path):
        session, _ = _session(lilo_root, tmp_path)
        assert asyncio.run(session.run_skipped_gate_action()) is None

    def test_restart_clears_warning(self, lilo_root, tmp_path, kernel_output):
        session, mock = _session(lilo_root, tmp_path)
        _decline_after_kernel(session, mock, kernel_output)
        session.runner("upgrade").start()
        assert not session.must_warn_on_exit()

    def test_warning_survives_reset(self, lilo_root, tmp_path, kernel_output):
        session, mock = _session(lilo_root, tmp_path)
        _decline_after_kernel(session, mock, kernel_output)
        session.runner("upgrade").reset()
        assert session.upgrade.is_idle()
        assert session.must_warn_on_exit()
        assert session.exit_warning_lines()[0] == EXIT_WARNING_TITLE

    def test_warning_without_cancel_choice(self, lilo_root, tmp_path, kernel_output):
        session, mock = _session(lilo_root, tmp_path)
        _decline_after_kernel(session, mock, kernel_output)
        lines = session.exit_warning_lines(cancellable=False)
        assert lines[-1] == "[L] Run lilo now"
        assert "[Esc] Cancel" not in lines


class TestSessionSummary:
    def test_danger_summary(self, lilo_root, tmp_path, kernel_output):
        session, mock = _session(lilo_root, tmp_path)
        _decline_after_kernel(session, mock, kernel_output)
        summary = session.summary("upgrade")
        assert summary.danger
        assert summary.title == " !! UPDATE COMPLETE - WARNING !! "

    def test_failed_title(self, lilo_root, tmp_path):
        session, mock = _session(lilo_root, tmp_path)
        mock.set_failure("slackpkg update", "no mirror")
        asyncio.run(session.runner("upgrade").run())
        assert session.summary("upgrade").title == "System Update Failed"

    def test_complete_title(self, grub_root, tmp_path):
        session, _ = _session(grub_root, tmp_path)
        asyncio.run(session.runner("upgrade").run())
        summary = session.summary("upgrade")
        assert summary.title == "Update Complete"
        assert [r.symbol for r in summary.rows] == ["OK"] * 5

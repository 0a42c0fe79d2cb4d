"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from slackops.adapters.mock import MockExecutor
from slackops.core.engine.guard import SessionGuard
from slackops.core.engine.workflow import WorkflowEngine
from slackops.core.observability.output_log import OutputLog
from slackops.core.workflows.upgrade import build_upgrade


def make_root(base: Path, *markers: str) -> Path:
    """Create an empty system tree under ``base`` holding ``markers``."""
    for marker in markers:
        path = base / marker
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("")
    base.mkdir(parents=True, exist_ok=True)
    return base


@pytest.fixture
def system_tree(tmp_path: Path):
    """Factory: ``system_tree("etc/lilo.conf")`` builds a fresh root."""
    counter = iter(range(1000))

    def _make(*markers: str) -> Path:
        return make_root(tmp_path / f"root{next(counter)}", *markers)

    return _make


@pytest.fixture
def lilo_root(tmp_path: Path) -> Path:
    return make_root(tmp_path / "lilo", "etc/lilo.conf")


@pytest.fixture
def grub_root(tmp_path: Path) -> Path:
    return make_root(tmp_path / "grub", "boot/grub/grub.cfg")


@pytest.fixture
def bare_root(tmp_path: Path) -> Path:
    root = tmp_path / "bare"
    root.mkdir()
    return root


@pytest.fixture
def output_log() -> OutputLog:
    return OutputLog(max_lines=200)


@pytest.fixture
def mock_executor(output_log: OutputLog) -> MockExecutor:
    return MockExecutor(output_log)


@pytest.fixture
def guard() -> SessionGuard:
    return SessionGuard()


@pytest.fixture
def lilo_upgrade(lilo_root: Path, guard: SessionGuard, output_log: OutputLog) -> WorkflowEngine:
    """Upgrade engine on a LILO system."""
    return WorkflowEngine(build_upgrade(), guard=guard, output=output_log, system_root=lilo_root)


@pytest.fixture
def kernel_output() -> str:
    """Upgrade transcript that touches kernel packages."""
    return (
        "Upgrading bash-5.2.037-x86_64-1.txz...\n"
        "Upgrading kernel-generic-6.1.106-x86_64-1.txz...\n"
        "Upgrading kernel-modules-6.1.106-x86_64-1.txz...\n"
    )

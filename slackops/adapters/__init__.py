"""Adapters — executors that turn workflow actions into processes.

Public re-exports for convenient access.
"""

from slackops.adapters.base import Executor
from slackops.adapters.mock import MockExecutor
from slackops.adapters.shell.command import ShellExecutor

__all__ = [
    "Executor",
    "MockExecutor",
    "ShellExecutor",
]

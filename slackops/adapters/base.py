"""
Executor base — the contract between the workflow engine and the system.

The engine only ever hands out Action descriptions; something has to
turn them into processes. Every executor implements three primitives
and inherits ``execute()``, which dispatches on the action kind.

Executors NEVER raise for a failed or unstartable program: failures are
reported as ``ActionResult(success=False)`` so the engine halts the same
way whatever the failure origin was.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from slackops.core.models.action import (
    Action,
    ActionResult,
    DownloadAction,
    ProgramAction,
    StdinProgramAction,
)
from slackops.core.observability.output_log import OutputLog


class Executor(ABC):
    """Abstract base class for action executors.

    Args:
        output: Optional observational sink for streamed output lines.
    """

    def __init__(self, output: OutputLog | None = None) -> None:
        self.output = output

    @property
    @abstractmethod
    def name(self) -> str:
        """Executor identifier (e.g. 'shell', 'mock')."""

    @abstractmethod
    async def run_program(self, program: str, args: Sequence[str] = ()) -> ActionResult:
        """Run ``program`` with ``args``, capturing stdout/stderr in full."""

    @abstractmethod
    async def run_program_with_stdin(
        self,
        program: str,
        payload: str,
        args: Sequence[str] = (),
    ) -> ActionResult:
        """Run ``program`` feeding ``payload`` through stdin.

        The payload is secret: it must not appear in argv or in any log.
        """

    @abstractmethod
    async def download(self, url: str, destination: str) -> ActionResult:
        """Fetch ``url`` into the file ``destination``."""

    async def execute(self, action: Action) -> ActionResult:
        """Run one workflow action by dispatching on its kind."""
        if isinstance(action, ProgramAction):
            return await self.run_program(action.program, action.args)
        if isinstance(action, StdinProgramAction):
            return await self.run_program_with_stdin(
                action.program,
                action.payload.get_secret_value(),
                action.args,
            )
        if isinstance(action, DownloadAction):
            return await self.download(action.url, action.destination)
        return ActionResult.failure(f"Unsupported action: {type(action).__name__}")

    def _emit(self, text: str, *, source: str = "output") -> None:
        if self.output is not None:
            self.output.append(text, source=source)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"

"""
Mock executor — test double for every executor operation.

Used by tests and by ``slackops run --mock`` to walk a workflow without
touching the system. Returns success by default; responses can be
scripted per command line (``ProgramAction.describe()`` form, e.g.
``"slackpkg upgrade-all"``).
"""

from __future__ import annotations

from collections.abc import Sequence

from slackops.adapters.base import Executor
from slackops.core.models.action import ActionResult
from slackops.core.observability.output_log import OutputLog


class MockExecutor(Executor):
    """Universal mock executor.

    Every call is recorded in ``call_log`` as the command line it would
    have run. Secret stdin payloads are recorded separately in
    ``stdin_log`` so tests can assert on them.
    """

    def __init__(
        self,
        output: OutputLog | None = None,
        *,
        default_output: str = "[mock] executed",
    ) -> None:
        super().__init__(output)
        self._default_output = default_output
        self._responses: dict[str, ActionResult] = {}
        self._call_log: list[str] = []
        self._stdin_log: list[str] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def call_log(self) -> list[str]:
        """Command lines this mock has received, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def stdin_log(self) -> list[str]:
        return self._stdin_log

    def set_response(self, command: str, result: ActionResult) -> None:
        """Set a custom result for a command line."""
        self._responses[command] = result

    def set_output(self, command: str, stdout: str) -> None:
        """Make a command succeed with the given stdout."""
        self._responses[command] = ActionResult.ok(stdout)

    def set_failure(self, command: str, error: str = "Mock failure", exit_code: int = 1) -> None:
        """Configure a command line to fail."""
        self._responses[command] = ActionResult.failure(error, exit_code=exit_code)

    async def run_program(self, program: str, args: Sequence[str] = ()) -> ActionResult:
        return self._respond(" ".join([program, *args]))

    async def run_program_with_stdin(
        self,
        program: str,
        payload: str,
        args: Sequence[str] = (),
    ) -> ActionResult:
        self._stdin_log.append(payload)
        return self._respond(" ".join([program, *args]))

    async def download(self, url: str, destination: str) -> ActionResult:
        return self._respond(f"download {url} -> {destination}")

    def _respond(self, command: str) -> ActionResult:
        self._call_log.append(command)
        self._emit(f"[mock] {command}", source="note")
        result = self._responses.get(command)
        if result is None:
            result = ActionResult.ok(self._default_output)
        if result.stdout:
            self._emit(result.stdout)
        if result.stderr:
            self._emit(result.stderr, source="stderr")
        return result

    def reset(self) -> None:
        """Clear call log and scripted responses."""
        self._call_log.clear()
        self._stdin_log.clear()
        self._responses.clear()

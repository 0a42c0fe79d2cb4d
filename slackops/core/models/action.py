"""
Action and ActionResult models — the execution contract.

Actions describe what external program a workflow step needs. Results
describe what happened. This is the I/O contract between the workflow
engine and the executor: the engine hands out Actions, the executor
returns ActionResults. Never exceptions.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, SecretStr


class ProgramAction(BaseModel):
    """Run one program with an argument list."""

    kind: Literal["program"] = "program"
    program: str
    args: list[str] = Field(default_factory=list)

    def describe(self) -> str:
        return " ".join([self.program, *self.args])


class StdinProgramAction(BaseModel):
    """Run one program and feed a secret payload through stdin.

    The payload never appears in argv, in ``describe()`` or in ``repr``.
    """

    kind: Literal["program_stdin"] = "program_stdin"
    program: str
    args: list[str] = Field(default_factory=list)
    payload: SecretStr

    def describe(self) -> str:
        return " ".join([self.program, *self.args, "< [redacted]"])


class DownloadAction(BaseModel):
    """Fetch a URL into a local file."""

    kind: Literal["download"] = "download"
    url: str
    destination: str

    def describe(self) -> str:
        return f"download {self.url} -> {self.destination}"


Action = Annotated[
    Union[ProgramAction, StdinProgramAction, DownloadAction],
    Field(discriminator="kind"),
]
"""Discriminated union of everything a step can ask the executor to do."""


class ActionResult(BaseModel):
    """Outcome of one executed action.

    Produced by the executor and consumed exactly once by the engine.
    Spawn and I/O failures are represented here with ``success=False``.
    """

    success: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None

    @property
    def output(self) -> str:
        """stdout when present, otherwise stderr."""
        return self.stdout if self.stdout else self.stderr

    @classmethod
    def ok(cls, stdout: str = "", *, exit_code: int | None = 0, **kwargs: Any) -> ActionResult:
        """Create a success result."""
        return cls(success=True, stdout=stdout, exit_code=exit_code, **kwargs)

    @classmethod
    def failure(cls, stderr: str, **kwargs: Any) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, stderr=stderr, **kwargs)

"""
Shell executor — run external programs without blocking the event loop.

This is the SINGLE PLACE where processes are spawned for workflow
steps. All spawning, streaming, secret handling and error translation
is centralised here.

Invariants:
    - Programs are exec'd directly (no shell); arguments are never
      re-parsed.
    - Secret payloads go through stdin only; they never appear in argv,
      in the output log or in logging calls.
    - Output is read in chunks and forwarded to the output log one
      whole line at a time, while the full text is kept for the result.
    - Spawn errors (missing program, permission denied) become a failed
      ActionResult instead of an exception.
    - If the awaiting task is cancelled, the child gets SIGTERM, then
      SIGKILL after ``terminate_grace`` seconds, and the cancellation
      propagates.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence

from slackops.adapters.base import Executor
from slackops.core.models.action import ActionResult
from slackops.core.observability.output_log import OutputLog

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class ShellExecutor(Executor):
    """Run programs through ``asyncio.create_subprocess_exec``.

    Args:
        output: Optional output log for streamed lines.
        terminate_grace: Seconds between SIGTERM and SIGKILL on cancel.
        downloader: Program used for downloads (called as
            ``<downloader> -O <destination> <url>``).
    """

    def __init__(
        self,
        output: OutputLog | None = None,
        *,
        terminate_grace: float = 5.0,
        downloader: str = "wget",
    ) -> None:
        super().__init__(output)
        self._terminate_grace = terminate_grace
        self._downloader = downloader

    @property
    def name(self) -> str:
        return "shell"

    async def run_program(self, program: str, args: Sequence[str] = ()) -> ActionResult:
        cmd = [program, *args]
        self._emit(f"Running: {' '.join(cmd)}", source="note")
        return await self._spawn(cmd)

    async def run_program_with_stdin(
        self,
        program: str,
        payload: str,
        args: Sequence[str] = (),
    ) -> ActionResult:
        cmd = [program, *args]
        self._emit(f"Running: {' '.join(cmd)} (input via stdin)", source="note")
        return await self._spawn(cmd, stdin_data=payload.encode("utf-8"))

    async def download(self, url: str, destination: str) -> ActionResult:
        self._emit(f"Downloading: {url}", source="note")
        return await self._spawn([self._downloader, "-O", destination, url])

    # ── Internals ───────────────────────────────────────────────

    async def _spawn(
        self,
        cmd: list[str],
        *,
        stdin_data: bytes | None = None,
    ) -> ActionResult:
        logger.debug("Executing: %s", cmd[0] if stdin_data is not None else " ".join(cmd))
        start = time.monotonic()

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE if stdin_data is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            logger.warning("Failed to start %s: %s", cmd[0], e)
            self._emit(f"Failed to execute command: {e}", source="stderr")
            return ActionResult.failure(str(e))

        try:
            stdout, stderr, _ = await asyncio.gather(
                self._pump(proc.stdout, "output"),
                self._pump(proc.stderr, "stderr"),
                self._feed(proc, stdin_data),
            )
            returncode = await proc.wait()
        except asyncio.CancelledError:
            logger.warning("Cancelled while running %s — terminating", cmd[0])
            await self._terminate(proc)
            raise

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if returncode == 0:
            logger.info("✓ %s (%dms)", cmd[0], elapsed_ms)
            self._emit("Command completed successfully", source="note")
        else:
            logger.info("✗ %s exit %s (%dms)", cmd[0], returncode, elapsed_ms)
            self._emit(f"Command failed (exit {returncode})", source="note")

        return ActionResult(
            success=returncode == 0,
            stdout=stdout,
            stderr=stderr,
            exit_code=returncode,
        )

    async def _pump(self, stream: asyncio.StreamReader | None, source: str) -> str:
        """Read ``stream`` to EOF, forwarding complete lines as they arrive."""
        if stream is None:
            return ""
        chunks: list[bytes] = []
        pending = b""
        while True:
            chunk = await stream.read(_CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
            pending += chunk
            *complete, pending = pending.split(b"\n")
            for raw in complete:
                self._emit(raw.decode("utf-8", errors="replace").rstrip("\r"), source=source)
        if pending:
            self._emit(pending.decode("utf-8", errors="replace").rstrip("\r"), source=source)
        return b"".join(chunks).decode("utf-8", errors="replace")

    async def _feed(self, proc: asyncio.subprocess.Process, data: bytes | None) -> None:
        if data is None or proc.stdin is None:
            return
        try:
            proc.stdin.write(data)
            await proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            # Child exited before reading its input; its exit status tells the story.
            logger.debug("stdin closed early by child")
        finally:
            proc.stdin.close()

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            proc.terminate()
            try:
                await asyncio.wait_for(proc.wait(), timeout=self._terminate_grace)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.wait()
        except ProcessLookupError:
            pass

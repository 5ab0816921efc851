"""Process runner for one-shot container-runtime commands.

Launches an external command, drains stdout and stderr concurrently into a
single arrival-ordered capture buffer, waits for exit and classifies the
outcome. Everything above this module (volume operations, compose
dispatch, the signer provisioning sequence) issues commands through
``ProcessRunner.run`` or ``run_with_retry``.

Architecture::

    ProcessRunner.run(invocation, ctx)
        │
        ├─ create_subprocess_exec ──────────── OSError → LaunchError
        │
        ├─ StreamDrainer(stdout) ─┐
        ├─ StreamDrainer(stderr) ─┼─► asyncio.Queue ─► merge loop ─► CaptureBuffer
        ├─ cancel watcher ────────┘                      │  (live echo if
        │                                                │   verbose/log_command)
        │                               read error → StreamReadError (no wait)
        │
        └─ process.wait() ── 0 → InvocationResult
                          └─ ≠0 → CommandFailedError("<cmd> [<code>] <output>")

Key Concepts:
    Invocation: Immutable request: binary, argument tuple, working
        directory, optional timeout.
    CaptureBuffer: Merged record of both streams in arrival order; keeps
        the per-line stream label for logging.
    InvocationResult: Successful outcome (exit code 0). Failures are
        raised as ``InvocationError`` subclasses carrying the partial
        output.
    run_with_retry: Re-issues an invocation on retryable failures only
        (non-zero exit). The caller decides whether the command is safe to
        repeat.

Guardrails:
    - A process is never left running when ``run`` returns or raises:
      stream errors, timeouts, context cancellation and task cancellation
      all kill and reap the child. On POSIX the child leads its own session
      so the signal reaches every descendant in its process group.
    - Ordering between stdout and stderr lines is arrival order only; each
      stream is independently line-buffered by the child.

Tags:
    subprocess, asyncio, streams, retry, docker
"""

from __future__ import annotations

import asyncio
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from rich.console import Console

from devchain.core.errors import (
    CommandFailedError,
    InvocationCancelledError,
    InvocationError,
    InvocationTimeoutError,
    LaunchError,
    StreamReadError,
)
from devchain.core.logging import get_logger
from devchain.deploy.config import ExecutionContext
from devchain.deploy.streams import StreamDrainer, StreamEvent, StreamSource
from devchain.execution.retry import NoDelay, RetryStrategy

logger = get_logger(__name__)

# Read size bound per line (bytes); longer lines are delivered in pieces.
DEFAULT_STREAM_LIMIT = 1024 * 1024

_POSIX = os.name == "posix"
_SIGKILL = getattr(signal, "SIGKILL", signal.SIGTERM)


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Invocation:
    """One external command execution request."""

    binary: str
    args: tuple[str, ...] = ()
    working_dir: Path = Path(".")
    timeout: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(str(a) for a in self.args))
        object.__setattr__(self, "working_dir", Path(self.working_dir))

    @classmethod
    def of(
        cls,
        binary: str,
        *args: str,
        working_dir: str | Path = ".",
        timeout: float | None = None,
    ) -> Invocation:
        return cls(binary, tuple(args), Path(working_dir), timeout)

    @property
    def argv(self) -> list[str]:
        return [self.binary, *self.args]

    @property
    def command_line(self) -> str:
        """The literal command line, as shown in logs and error messages."""
        return " ".join(self.argv)


class CaptureBuffer:
    """Arrival-ordered record of every line read from both streams."""

    def __init__(self) -> None:
        self._chunks: list[tuple[StreamSource, str]] = []
        self.complete = False

    def append(self, source: StreamSource, text: str) -> None:
        self._chunks.append((source, text))

    def text(self) -> str:
        return "".join(text for _, text in self._chunks)

    def text_for(self, source: StreamSource) -> str:
        return "".join(text for src, text in self._chunks if src is source)

    def __len__(self) -> int:
        return len(self._chunks)


@dataclass(frozen=True)
class InvocationResult:
    """Outcome of an invocation that exited 0."""

    command: str
    output: str
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    duration_ms: float = 0.0


class CommandRunner(Protocol):
    """Anything that can execute an ``Invocation`` (real or fake)."""

    async def run(self, invocation: Invocation, ctx: ExecutionContext) -> InvocationResult: ...


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class ProcessRunner:
    """Runs one external command at a time and captures its output.

    Parameters
    ----------
    console
        Destination for the verbose command echo and the live output tail.
    stream_limit
        Maximum length of a single output line, in bytes.

    Example::

        runner = ProcessRunner()
        result = await runner.run(Invocation.of("docker", "volume", "ls"), ExecutionContext())
        print(result.output)
    """

    def __init__(
        self,
        console: Console | None = None,
        stream_limit: int = DEFAULT_STREAM_LIMIT,
    ) -> None:
        self._console = console or Console(highlight=False, soft_wrap=True)
        self._stream_limit = stream_limit

    async def run(self, invocation: Invocation, ctx: ExecutionContext) -> InvocationResult:
        """Execute ``invocation``; raise an ``InvocationError`` on failure."""
        command = invocation.command_line
        if ctx.verbose:
            self._console.out(command, highlight=False)
        if ctx.cancelled:
            raise InvocationCancelledError(command)

        logger.debug("process.exec", cmd=command, cwd=str(invocation.working_dir))
        started = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *invocation.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(invocation.working_dir),
                limit=self._stream_limit,
                start_new_session=_POSIX,
            )
        except OSError as exc:
            logger.error("process.launch_failed", cmd=command, error=str(exc))
            raise LaunchError(command, exc) from exc

        capture = CaptureBuffer()
        try:
            if invocation.timeout is None:
                exit_code = await self._capture(process, command, ctx, capture)
            else:
                exit_code = await asyncio.wait_for(
                    self._capture(process, command, ctx, capture),
                    timeout=invocation.timeout,
                )
        except TimeoutError:
            logger.error("process.timeout", cmd=command, timeout=invocation.timeout)
            raise InvocationTimeoutError(command, invocation.timeout or 0.0, capture.text()) from None
        finally:
            await self._reap(process, group=not capture.complete)

        duration_ms = (time.monotonic() - started) * 1000
        output = capture.text()

        if ctx.cancelled and (exit_code != 0 or not capture.complete):
            logger.warning("process.cancelled", cmd=command, exit_code=exit_code)
            raise InvocationCancelledError(command, output, exit_code)
        if exit_code != 0:
            logger.error("process.failed", cmd=command, exit_code=exit_code)
            raise CommandFailedError(command, exit_code, output)

        logger.debug("process.exit", cmd=command, exit_code=0, duration_ms=f"{duration_ms:.0f}")
        return InvocationResult(
            command=command,
            output=output,
            stdout=capture.text_for(StreamSource.STDOUT),
            stderr=capture.text_for(StreamSource.STDERR),
            exit_code=0,
            duration_ms=duration_ms,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _capture(
        self,
        process: asyncio.subprocess.Process,
        command: str,
        ctx: ExecutionContext,
        capture: CaptureBuffer,
    ) -> int:
        """Merge both streams into ``capture`` and return the exit code.

        ``capture.complete`` is set once both streams reached end-of-input.
        After a cancellation the loop stops as soon as the process group is
        gone, even if a detached descendant still holds a pipe open.
        """
        assert process.stdout is not None and process.stderr is not None
        queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue()
        drainers = [
            StreamDrainer(process.stdout, StreamSource.STDOUT),
            StreamDrainer(process.stderr, StreamSource.STDERR),
        ]
        tasks = [asyncio.create_task(d.drain(queue)) for d in drainers]
        if ctx.cancel_event is not None:
            tasks.append(asyncio.create_task(self._terminate_on_cancel(process, ctx, queue)))

        try:
            open_streams = len(drainers)
            while open_streams:
                event = await queue.get()
                if event is None:
                    logger.warning("process.drain_abandoned", cmd=command, open_streams=open_streams)
                    break
                if event.error is not None:
                    logger.error(
                        "process.stream_error",
                        cmd=command,
                        stream=event.source.value,
                        error=str(event.error),
                    )
                    raise StreamReadError(command, event.source.value, capture.text(), event.error)
                if event.closed:
                    open_streams -= 1
                    continue
                assert event.line is not None
                capture.append(event.source, event.line)
                if ctx.echo_output:
                    self._console.out(event.line, end="", highlight=False)
            else:
                capture.complete = True
            return await process.wait()
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _terminate_on_cancel(
        self,
        process: asyncio.subprocess.Process,
        ctx: ExecutionContext,
        sink: asyncio.Queue[StreamEvent | None],
    ) -> None:
        """On cancellation stop the whole process group, then wake the merge loop."""
        assert ctx.cancel_event is not None
        await ctx.cancel_event.wait()
        if process.returncode is None:
            logger.warning("process.terminating", pid=process.pid)
            _signal_group(process, signal.SIGTERM)
            try:
                await asyncio.wait_for(process.wait(), timeout=ctx.kill_timeout)
            except TimeoutError:
                _signal_group(process, _SIGKILL)
                await process.wait()
        # descendants that ignored SIGTERM but still hold a pipe
        _signal_group(process, _SIGKILL)
        sink.put_nowait(None)

    @staticmethod
    async def _reap(process: asyncio.subprocess.Process, group: bool) -> None:
        """Kill the child (and its group when ``group``) if still running, then collect it."""
        if group or process.returncode is None:
            _signal_group(process, _SIGKILL)
        await process.wait()


def _signal_group(process: asyncio.subprocess.Process, sig: int) -> None:
    """Deliver ``sig`` to the child's process group; off POSIX, to the child only."""
    try:
        if _POSIX:
            os.killpg(process.pid, sig)
        elif process.returncode is None:
            process.send_signal(sig)
    except (ProcessLookupError, PermissionError):
        pass


# ---------------------------------------------------------------------------
# Retrying invoker
# ---------------------------------------------------------------------------


async def run_with_retry(
    runner: CommandRunner,
    invocation: Invocation,
    ctx: ExecutionContext,
    max_retries: int,
    strategy: RetryStrategy | None = None,
) -> InvocationResult:
    """Run ``invocation``, re-issuing it up to ``max_retries`` extra times.

    Only retryable failures (non-zero exit) are repeated; launch, stream,
    timeout and cancellation failures surface on the first occurrence.
    Returns on the first success, otherwise raises the last failure.

    The caller must only wrap commands that are safe to repeat (volume
    creation, not key import).

    Args:
        runner: Executes a single attempt.
        invocation: The command to run.
        ctx: Execution context for every attempt.
        max_retries: Additional attempts after the first.
        strategy: Supplies the delay between attempts (default: none) and
            may stop earlier than ``max_retries``.
    """
    strategy = strategy or NoDelay(max_retries=max_retries)
    retries = 0
    while True:
        try:
            return await runner.run(invocation, ctx)
        except InvocationError as exc:
            if not exc.retryable or retries >= max_retries or not strategy.should_retry(retries, exc):
                raise
            delay = strategy.next_delay(retries)
            retries += 1
            logger.warning(
                "process.retry",
                cmd=invocation.command_line,
                attempt=retries + 1,
                max_attempts=max_retries + 1,
                exit_code=exc.exit_code,
                delay=delay,
            )
            if delay > 0:
                await asyncio.sleep(delay)


__all__ = [
    "CaptureBuffer",
    "CommandRunner",
    "Invocation",
    "InvocationResult",
    "ProcessRunner",
    "run_with_retry",
]

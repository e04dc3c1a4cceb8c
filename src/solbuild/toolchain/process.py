# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Run external compiler processes under a hard wall-clock timeout."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shlex
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from solbuild.errors import CompilationTimeoutError, StrategyError
from solbuild.toolchain.classify import classify_message

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


@dataclass(frozen=True)
class ProcessResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Stdout and stderr joined, for diagnostics."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


async def run_process(
    args: Sequence[str],
    *,
    strategy: str,
    timeout: float,
    cwd: Path | None = None,
    input: str | None = None,
) -> ProcessResult:
    """Run *args* and wait for it without blocking the event loop.

    The process is killed if it outlives *timeout* seconds, or if the waiting
    task is cancelled, so no child outlives this call.

    Raises:
        CompilationTimeoutError: The process exceeded *timeout* and was killed.
        StrategyError: The executable could not be started.
    """
    logger.debug("[%s] running %s", strategy, shlex.join(args))
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(cwd) if cwd is not None else None,
            stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise StrategyError(strategy, f"executable not found: {args[0]}") from exc
    except PermissionError as exc:
        raise StrategyError(strategy, f"executable not runnable: {args[0]}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(input.encode("utf-8") if input is not None else None),
            timeout=timeout,
        )
    except TimeoutError:
        await _kill(process)
        logger.warning("[%s] killed process after %gs timeout", strategy, timeout)
        raise CompilationTimeoutError(strategy, timeout) from None
    finally:
        if process.returncode is None:
            await _kill(process)

    assert process.returncode is not None
    return ProcessResult(
        args=tuple(args),
        returncode=process.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


def process_failure(strategy: str, output: str) -> StrategyError:
    """Build a classified StrategyError from process output, headed by its first non-blank line."""
    first_line = next((line for line in output.splitlines() if line.strip()), "compiler failed")
    return StrategyError(strategy, first_line.strip(), kind=classify_message(output), output=output)


def require_success(result: ProcessResult, strategy: str) -> None:
    """Raise a classified StrategyError when *result* has a non-zero exit status."""
    if not result.ok:
        raise process_failure(strategy, result.output or f"{result.args[0]} exited with status {result.returncode}")


# ################
# Implementation
# ################


async def _kill(process: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        process.kill()
    await process.wait()

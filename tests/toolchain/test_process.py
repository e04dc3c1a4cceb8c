# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for running external processes under a timeout."""

import sys
import time

import pytest

from solbuild.errors import CompilationTimeoutError, ErrorKind, StrategyError
from solbuild.toolchain.process import ProcessResult, process_failure, require_success, run_process

# ###############
# Public Interface
# ###############


@pytest.mark.asyncio
async def test_run_process_captures_output(tmp_path):
    """Stdout, stderr and the exit status are captured."""
    result = await run_process(
        [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr)"],
        strategy="test",
        timeout=30,
        cwd=tmp_path,
    )
    assert result.ok
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"
    assert result.output == "out\nerr"


@pytest.mark.asyncio
async def test_run_process_feeds_stdin():
    """Input is written to the process's stdin."""
    result = await run_process(
        [sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"],
        strategy="test",
        timeout=30,
        input="pragma solidity",
    )
    assert result.stdout == "PRAGMA SOLIDITY"


@pytest.mark.asyncio
async def test_run_process_reports_exit_status():
    """A non-zero exit status is returned, not raised."""
    result = await run_process([sys.executable, "-c", "raise SystemExit(3)"], strategy="test", timeout=30)
    assert result.returncode == 3
    assert not result.ok


@pytest.mark.asyncio
async def test_run_process_kills_on_timeout():
    """A process exceeding its timeout is killed and reported as a timeout."""
    started = time.monotonic()
    with pytest.raises(CompilationTimeoutError) as exc_info:
        await run_process([sys.executable, "-c", "import time; time.sleep(30)"], strategy="test", timeout=0.5)

    assert time.monotonic() - started < 10
    assert exc_info.value.kind is ErrorKind.TIMEOUT
    assert exc_info.value.retryable
    assert exc_info.value.strategy == "test"
    assert "timed out after 0.5s" in exc_info.value.message


@pytest.mark.asyncio
async def test_run_process_missing_executable():
    """A missing executable is a strategy failure."""
    with pytest.raises(StrategyError, match="executable not found"):
        await run_process(["solbuild-no-such-binary"], strategy="test", timeout=5)


def test_require_success_classifies_output():
    """A failed result raises a StrategyError classified from its output."""
    result = ProcessResult(args=("solc",), returncode=1, stdout="", stderr="\nParserError: Expected ';'\n")
    with pytest.raises(StrategyError) as exc_info:
        require_success(result, "cli")
    assert exc_info.value.strategy == "cli"
    assert exc_info.value.kind is ErrorKind.SYNTAX
    assert exc_info.value.message == "ParserError: Expected ';'"
    assert exc_info.value.output == "ParserError: Expected ';'"


def test_require_success_without_output():
    """A silent failure reports the exit status."""
    result = ProcessResult(args=("solc",), returncode=2, stdout="", stderr="")
    with pytest.raises(StrategyError, match="solc exited with status 2") as exc_info:
        require_success(result, "script")
    assert exc_info.value.kind is ErrorKind.UNKNOWN


def test_require_success_passes_on_zero_status():
    """A zero exit status raises nothing."""
    require_success(ProcessResult(args=("solc",), returncode=0, stdout="", stderr=""), "cli")


def test_process_failure_uses_first_non_blank_line():
    """The message is the first non-blank output line; the full output is kept."""
    error = process_failure("cli", "\n  Error: Source \"x.sol\" not found: File not found.\nmore\n")
    assert error.message == 'Error: Source "x.sol" not found: File not found.'
    assert error.kind is ErrorKind.DEPENDENCY
    assert error.output.endswith("more\n")

# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Error taxonomy shared by every SolBuild layer.

The hierarchy separates failures that are rejected before any external
process is spawned (:class:`RequestValidationError`), failures that are
tolerated while preparing a workspace (:class:`DependencyError`), and
failures of the external compiler itself (:class:`StrategyError` and the
aggregate :class:`CompilationError`).
"""

from __future__ import annotations

import enum
import traceback
from typing import Any

# ###############
# Public Interface
# ###############


class ErrorKind(enum.Enum):
    """Best-effort classification of a compiler failure."""

    SYNTAX = "syntax"
    VERSION = "version"
    DEPENDENCY = "dependency"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class SolbuildError(Exception):
    """Base class for all errors raised by SolBuild."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RequestValidationError(SolbuildError):
    """Raised when a compilation request is malformed.

    Covers missing fields, oversized sources, and bad version strings.
    Always raised before any process is spawned.
    """


class DependencyError(SolbuildError):
    """Raised when an import cannot be resolved or a dependency cannot be installed.

    Dependency errors are non-fatal: compilation proceeds with whatever
    remappings were generated successfully.
    """

    kind = ErrorKind.DEPENDENCY

    def __init__(self, message: str, *, import_path: str | None = None) -> None:
        super().__init__(message)
        self.import_path = import_path


class StrategyError(SolbuildError):
    """A single compilation strategy failed.

    Attributes:
        strategy: Registry name of the strategy that failed.
        kind: Classified failure kind.
        output: Raw process output captured for diagnostics, if any.
    """

    def __init__(
        self,
        strategy: str,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        output: str | None = None,
    ) -> None:
        super().__init__(message)
        self.strategy = strategy
        self.kind = kind
        self.output = output

    def __str__(self) -> str:
        return f"[{self.strategy}] {self.message}"


class CompilationTimeoutError(StrategyError):
    """The external compiler exceeded its wall-clock budget and was killed."""

    retryable = True

    def __init__(self, strategy: str, timeout: float, *, output: str | None = None) -> None:
        super().__init__(
            strategy,
            f"compiler process timed out after {timeout:g}s and was killed",
            kind=ErrorKind.TIMEOUT,
            output=output,
        )
        self.timeout = timeout


class CompilationError(SolbuildError):
    """Every strategy in the chain failed.

    Attributes:
        failures: The individual strategy failures, in the order they were tried.
        kind: Aggregate classification over all failures.
    """

    def __init__(self, failures: list[StrategyError], kind: ErrorKind) -> None:
        summary = "; ".join(str(f) for f in failures) or "no compilation strategy configured"
        super().__init__(f"All compilation strategies failed: {summary}")
        self.failures = list(failures)
        self.kind = kind

    @property
    def retryable(self) -> bool:
        return self.kind is ErrorKind.TIMEOUT


def error_payload(exc: BaseException, *, include_details: bool) -> dict[str, Any]:
    """Build the user-visible payload for a failed compilation.

    Args:
        exc: The exception raised by the orchestrator.
        include_details: When True (non-production), attach raw process
            output and the formatted traceback.

    Returns:
        A JSON-serializable mapping with ``message``, ``kind`` and
        optionally ``details``.
    """
    kind = exc.kind if isinstance(exc, SolbuildError) else ErrorKind.UNKNOWN
    payload: dict[str, Any] = {
        "message": str(exc),
        "kind": kind.value,
        "type": type(exc).__name__,
    }
    if not include_details:
        return payload

    details: dict[str, Any] = {
        "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    }
    if isinstance(exc, CompilationError):
        details["strategies"] = [
            {"strategy": f.strategy, "kind": f.kind.value, "message": f.message, "output": f.output}
            for f in exc.failures
        ]
    elif isinstance(exc, StrategyError) and exc.output is not None:
        details["output"] = exc.output
    payload["details"] = details
    return payload

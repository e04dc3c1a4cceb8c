# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Best-effort classification of compiler failures.

The compiler offers no structured error contract, so failures are sorted by
matching phrases in its diagnostic text. The result is a hint for callers,
not a reliable API; anything unrecognised is :attr:`ErrorKind.UNKNOWN`.
"""

from collections.abc import Iterable

from solbuild.errors import ErrorKind, StrategyError

# ###############
# Public Interface
# ###############

# Checked in order; the first group with a matching phrase decides.
_PHRASES: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (ErrorKind.TIMEOUT, ("timed out", "timeout expired")),
    (
        ErrorKind.VERSION,
        (
            "requires different compiler version",
            "no solc binary",
            "unsupported compiler version",
            "invalid evm version",
            "manifest unknown",
            "manifest for",
            "unable to find image",
        ),
    ),
    (
        ErrorKind.DEPENDENCY,
        (
            "file not found",
            "file outside of allowed directories",
            "file import callback not supported",
            "could not resolve import",
        ),
    ),
    (ErrorKind.SYNTAX, ("parsererror", "syntaxerror", "syntax error", "parse error", "expected ")),
    (ErrorKind.VERSION, ("version",)),
)

# Aggregate priority: the most actionable kind wins.
_AGGREGATE_ORDER = (ErrorKind.SYNTAX, ErrorKind.DEPENDENCY, ErrorKind.TIMEOUT, ErrorKind.VERSION)


def classify_message(text: str) -> ErrorKind:
    """Classify compiler diagnostic *text*, falling back to UNKNOWN."""
    lowered = text.lower()
    for kind, phrases in _PHRASES:
        if any(phrase in lowered for phrase in phrases):
            return kind
    return ErrorKind.UNKNOWN


def aggregate_kind(failures: Iterable[StrategyError]) -> ErrorKind:
    """Pick one kind for a set of strategy failures (syntax > dependency > timeout > version)."""
    kinds = {failure.kind for failure in failures}
    for kind in _AGGREGATE_ORDER:
        if kind in kinds:
            return kind
    return ErrorKind.UNKNOWN

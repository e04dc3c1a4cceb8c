# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Lightweight Solidity source scanning: imports, contract names and pragmas.

This is not a Solidity parser. Comments are removed with a small scanner that
understands string literals, after which plain regular expressions pick out
the few constructs SolBuild needs.
"""

from __future__ import annotations

import re

# ###############
# Public Interface
# ###############

DEFAULT_CONTRACT_NAME = "Contract"

# Covers: import "p"; import "p" as X; import * as X from "p"; import {A, B as C} from "p";
_IMPORT_RE = re.compile(r"""\bimport\s+(?:[^;"']*?\bfrom\s+)?(["'])(?P<path>[^"']+)\1[^;]*;""")
_CONTRACT_RE = re.compile(r"\b(?:abstract\s+)?contract\s+(?P<name>[A-Za-z_]\w*)\s*(?P<inherits>\bis\b[^{]*)?\{")
_PRAGMA_RE = re.compile(r"\bpragma\s+solidity\s+[\^~>=<\s]*(?P<version>\d+\.\d+(?:\.\d+)?)")


def strip_comments(source: str) -> str:
    """Remove ``//`` and ``/* */`` comments from *source*.

    String literals are left untouched, so ``"http://..."`` survives. Line
    breaks inside block comments are preserved to keep line numbers stable,
    and every removed comment leaves a space so adjacent tokens stay apart.
    """
    out: list[str] = []
    i = 0
    length = len(source)
    while i < length:
        ch = source[i]
        nxt = source[i + 1] if i + 1 < length else ""

        if ch in ("'", '"'):
            end = _string_end(source, i)
            out.append(source[i:end])
            i = end
        elif ch == "/" and nxt == "/":
            end = source.find("\n", i)
            out.append(" ")
            i = length if end == -1 else end
        elif ch == "/" and nxt == "*":
            end = source.find("*/", i + 2)
            stop = length if end == -1 else end + 2
            out.append(" " + "\n" * source.count("\n", i, stop))
            i = stop
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def extract_imports(source: str) -> tuple[str, ...]:
    """Return the raw import paths of *source* in source order.

    Commented-out imports are ignored. A source without imports yields an
    empty tuple; this function never raises.
    """
    return tuple(match.group("path") for match in _IMPORT_RE.finditer(strip_comments(source)))


def infer_contract_name(source: str) -> str:
    """Guess the main contract declared in *source*.

    A single contract that inherits from another wins; otherwise the last
    declared contract is used, and :data:`DEFAULT_CONTRACT_NAME` when there
    is none.
    """
    matches = list(_CONTRACT_RE.finditer(strip_comments(source)))
    if not matches:
        return DEFAULT_CONTRACT_NAME
    inheriting = [m for m in matches if m.group("inherits")]
    if len(inheriting) == 1:
        return inheriting[0].group("name")
    return matches[-1].group("name")


def extract_pragma_version(source: str) -> str | None:
    """Return the version named by the first ``pragma solidity`` directive.

    Range operators are dropped and a missing patch component becomes ``0``
    (``^0.8`` yields ``0.8.0``). Returns None when there is no pragma.
    """
    match = _PRAGMA_RE.search(strip_comments(source))
    if match is None:
        return None
    version = match.group("version")
    if version.count(".") == 1:
        version += ".0"
    return version


# ################
# Implementation
# ################


def _string_end(source: str, start: int) -> int:
    """Return the index just past the string literal opened at *start*."""
    quote = source[start]
    i = start + 1
    while i < len(source):
        ch = source[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote or ch == "\n":
            return i + 1
        i += 1
    return len(source)

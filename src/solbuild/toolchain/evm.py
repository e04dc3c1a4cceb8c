# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Static compiler-version to EVM-target table.

``solc`` changes its default EVM target between releases, and a target that
is newer than the compiler is rejected outright, so the target is always
chosen explicitly from this table instead of relying on compiler defaults.
"""

from __future__ import annotations

import re

# ###############
# Public Interface
# ###############

EVM_TARGET_NAMES: tuple[str, ...] = (
    "homestead",
    "tangerineWhistle",
    "spuriousDragon",
    "byzantium",
    "constantinople",
    "petersburg",
    "istanbul",
    "berlin",
    "london",
    "paris",
    "shanghai",
    "cancun",
    "prague",
)

# Newest first: the first row whose minimum version is <= the requested
# version wins.
EVM_TARGET_TABLE: tuple[tuple[tuple[int, int, int], str], ...] = (
    ((0, 8, 30), "prague"),
    ((0, 8, 25), "cancun"),
    ((0, 8, 20), "shanghai"),
    ((0, 8, 18), "paris"),
    ((0, 8, 7), "london"),
    ((0, 8, 5), "berlin"),
    ((0, 5, 14), "istanbul"),
    ((0, 5, 5), "petersburg"),
    ((0, 4, 21), "byzantium"),
)

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


def parse_version(version: str) -> tuple[int, int, int]:
    """Parse an ``X.Y.Z`` compiler version string.

    Raises:
        ValueError: If *version* is not of the form ``X.Y.Z``.
    """
    match = _VERSION_RE.match(version)
    if match is None:
        raise ValueError(f"Invalid compiler version '{version}': expected X.Y.Z")
    major, minor, patch = (int(part) for part in match.groups())
    return major, minor, patch


def evm_target_for(version: str, requested: str | None = None) -> str | None:
    """Return the EVM target to pass to the compiler for *version*.

    An explicitly *requested* target always wins. Compilers older than
    0.4.21 have no ``--evm-version`` flag, for which ``None`` is returned.
    """
    if requested is not None:
        return requested
    parsed = parse_version(version)
    for minimum, target in EVM_TARGET_TABLE:
        if parsed >= minimum:
            return target
    return None

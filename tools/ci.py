#!/usr/bin/env python3
# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Run the SolBuild CI checks locally.

Steps run in order; ``--only`` restricts the run to the named steps and
``--fail-fast`` stops at the first failing step.
"""

import argparse
import pathlib
import subprocess
import sys
import time

from yachalk import chalk

# ###############
# Public Interface
# ###############

STEPS: dict[str, list[str]] = {
    "format": ["ruff", "format", "--check", "src/", "tests/", "tools/"],
    "lint": ["ruff", "check", "src/", "tests/", "tools/"],
    "tests": ["pytest", "--cov=solbuild", "--cov-report=term-missing"],
    "build": ["hatch", "build"],
}


def main(argv: list[str] | None = None) -> int:
    """Run the selected CI steps and print a summary."""
    parser = argparse.ArgumentParser(prog="ci", description="Run SolBuild CI checks")
    parser.add_argument("--only", action="append", choices=sorted(STEPS), default=[], help="Run only this step")
    parser.add_argument("--fail-fast", action="store_true", help="Stop after the first failing step")
    args = parser.parse_args(argv)

    selected = [name for name in STEPS if not args.only or name in args.only]
    results: list[tuple[str, bool, float]] = []
    for name in selected:
        passed, elapsed = _run_step(name, STEPS[name])
        results.append((name, passed, elapsed))
        if not passed and args.fail_fast:
            break

    _print_summary(results, skipped=len(selected) - len(results))
    return 0 if all(passed for _, passed, _ in results) else 1


# ################
# Implementation
# ################

_REPO_ROOT = pathlib.Path(__file__).parent.parent


def _banner(title: str) -> None:
    sep = chalk.blue("=" * 60)
    print(f"\n{sep}")
    print(chalk.blue(title))
    print(sep)


def _run_step(name: str, cmd: list[str]) -> tuple[bool, float]:
    _banner(f"{name}: {' '.join(cmd)}")
    start = time.monotonic()
    try:
        proc = subprocess.run(cmd, cwd=_REPO_ROOT)
    except FileNotFoundError:
        print(chalk.red(f"'{cmd[0]}' is not installed"))
        return False, time.monotonic() - start
    return proc.returncode == 0, time.monotonic() - start


def _print_summary(results: list[tuple[str, bool, float]], *, skipped: int) -> None:
    _banner("  Summary")
    for name, passed, elapsed in results:
        if passed:
            print(chalk.green(f"  PASS  {name} ({elapsed:.1f}s)"))
        else:
            print(chalk.red(f"  FAIL  {name} ({elapsed:.1f}s)"))
    if skipped:
        print(chalk.yellow(f"  {skipped} step(s) skipped after a failure"))
    print()


if __name__ == "__main__":
    sys.exit(main())

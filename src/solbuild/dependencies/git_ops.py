# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Git operations for fetching dependency repositories."""

import logging
import re
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

_COMMIT_HASH_RE = re.compile(r"^[0-9a-f]{40}$")


class GitError(Exception):
    """Raised when a git operation fails."""


def repository_url(repository: str) -> str:
    """Return the clone URL of an ``owner/repo`` GitHub repository."""
    return f"https://github.com/{repository}.git"


def is_commit_hash(revision: str) -> bool:
    """Return True if *revision* is a full 40-character hexadecimal commit SHA."""
    return bool(_COMMIT_HASH_RE.match(revision))


def resolve_commit(url: str, revision: str) -> str:
    """Resolve a branch name, tag, or commit hash to a full commit SHA.

    A full commit SHA is returned as-is without network access; anything else
    is looked up with ``git ls-remote``. Annotated tags resolve to the commit
    they point at.

    Raises:
        GitError: If the revision cannot be resolved, git is not available,
            or a network or remote error occurs.
    """
    if is_commit_hash(revision):
        return revision

    result = _run_git_raw(
        ["ls-remote", url, f"refs/heads/{revision}", f"refs/tags/{revision}", f"refs/tags/{revision}^{{}}"],
        timeout=60,
    )
    if result.returncode != 0:
        raise GitError(f"Failed to query remote '{url}': {result.stderr.strip()}")

    refs: dict[str, str] = {}
    for line in result.stdout.strip().splitlines():
        parts = line.split()
        if len(parts) == 2:
            refs[parts[1]] = parts[0]
    if not refs:
        raise GitError(f"Revision '{revision}' not found in '{url}'")

    commit = (
        refs.get(f"refs/tags/{revision}^{{}}")
        or refs.get(f"refs/heads/{revision}")
        or refs.get(f"refs/tags/{revision}")
        or next(iter(refs.values()))
    )
    if not is_commit_hash(commit):
        raise GitError(f"Unexpected output from git ls-remote: {commit!r}")
    return commit


def clone_at_ref(url: str, ref: str, target_dir: Path, *, timeout: int = 120) -> None:
    """Shallow-clone *url* at the branch or tag *ref* into *target_dir*.

    Any existing content at *target_dir* is removed first; a partially
    created directory is removed on failure.

    Raises:
        GitError: If the clone fails.
    """
    _prepare_target(target_dir)
    try:
        _run_git(
            ["clone", "--quiet", "--depth", "1", "--branch", ref, url, str(target_dir)],
            timeout=timeout,
        )
    except GitError:
        if target_dir.exists():
            shutil.rmtree(target_dir)
        raise
    logger.debug("Cloned %s@%s into %s", url, ref, target_dir)


def clone_at_commit(url: str, commit: str, target_dir: Path, *, timeout: int = 120) -> None:
    """Clone *url* at an exact commit without history.

    Raises:
        GitError: If any git operation fails.
    """
    _prepare_target(target_dir)
    try:
        _run_git(["init", "--quiet", str(target_dir)])
        _run_git(["-C", str(target_dir), "remote", "add", "origin", url])
        _run_git(["-C", str(target_dir), "fetch", "--depth=1", "origin", commit], timeout=timeout)
        _run_git(["-C", str(target_dir), "checkout", "--quiet", "FETCH_HEAD"])
    except GitError:
        if target_dir.exists():
            shutil.rmtree(target_dir)
        raise


def get_current_commit(target_dir: Path) -> str | None:
    """Return the HEAD commit SHA of a cloned repository, or None if unavailable.

    Raises:
        GitError: If git is not available on the system.
    """
    result = _run_git_raw(["-C", str(target_dir), "rev-parse", "HEAD"], timeout=10)
    if result.returncode != 0:
        return None
    commit = result.stdout.strip()
    return commit if is_commit_hash(commit) else None


# ################
# Implementation
# ################


def _prepare_target(target_dir: Path) -> None:
    if target_dir.exists():
        shutil.rmtree(target_dir)
    target_dir.parent.mkdir(parents=True, exist_ok=True)


def _run_git_raw(args: list[str], *, timeout: int = 120) -> subprocess.CompletedProcess[str]:
    """Run a git command and return the raw CompletedProcess result.

    Raises:
        GitError: If git is not found on PATH or the command times out.
    """
    logger.debug("Running git %s", " ".join(args))
    try:
        return subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise GitError("git executable not found on PATH") from exc
    except subprocess.TimeoutExpired as exc:
        raise GitError(f"Git command timed out: git {' '.join(args)}") from exc


def _run_git(args: list[str], *, timeout: int = 120) -> str:
    """Run a git command and return stdout, raising GitError on non-zero exit."""
    result = _run_git_raw(args, timeout=timeout)
    if result.returncode != 0:
        raise GitError(f"git {' '.join(args)}: {result.stderr.strip()}")
    return result.stdout

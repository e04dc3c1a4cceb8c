# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Isolated per-job workspace directories."""

from __future__ import annotations

import contextlib
import logging
import shutil
from collections.abc import Iterator
from pathlib import Path

from solbuild.dependencies.remappings import write_remappings

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "compile-"
WORKSPACE_LAYOUT = ("src", "lib", "out")


class WorkspaceManager:
    """Creates one directory per job below *root* and guarantees its removal.

    A workspace holds ``src/``, ``lib/`` and ``out/`` plus an empty project
    config; it is owned by exactly one job and removed when that job settles,
    whatever the outcome.
    """

    def __init__(self, root: Path) -> None:
        self._root = root
        self._active: set[str] = set()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def active(self) -> frozenset[str]:
        return frozenset(self._active)

    def path_for(self, job_id: str) -> Path:
        return self._root / f"{WORKSPACE_PREFIX}{job_id}"

    @contextlib.contextmanager
    def allocate(self, job_id: str) -> Iterator[Path]:
        path = self.path_for(job_id)
        if job_id in self._active or path.exists():
            raise FileExistsError(f"Workspace for job {job_id} already exists: {path}")
        path.mkdir(parents=True)
        self._active.add(job_id)
        try:
            for name in WORKSPACE_LAYOUT:
                (path / name).mkdir()
            write_remappings(path, [])
            logger.debug("Allocated workspace %s", path)
            yield path
        finally:
            shutil.rmtree(path, ignore_errors=True)
            self._active.discard(job_id)
            logger.debug("Released workspace %s", path)

    def purge_all(self) -> int:
        """Remove leftover workspaces not owned by an active job; returns how many were removed."""
        if not self._root.is_dir():
            return 0
        removed = 0
        for entry in self._root.iterdir():
            if not entry.is_dir() or not entry.name.startswith(WORKSPACE_PREFIX):
                continue
            if entry.name[len(WORKSPACE_PREFIX) :] in self._active:
                continue
            shutil.rmtree(entry, ignore_errors=True)
            removed += 1
        if removed:
            logger.info("Removed %d stale workspace(s) from %s", removed, self._root)
        return removed

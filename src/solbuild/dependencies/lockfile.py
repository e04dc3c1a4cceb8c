# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Lockfile pinning pre-installed dependency folders to exact commits."""

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

# ###############
# Public Interface
# ###############

LOCKFILE_NAME = ".solbuild-lockfile.yaml"


class LockfileError(Exception):
    """Raised when the lockfile cannot be read, written, or is invalid."""


class LockedDependency(BaseModel):
    """A pre-installed dependency folder pinned to a commit."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    folder: str
    repository: str
    version: str
    commit: str


class Lockfile(BaseModel):
    """All pinned dependency folders of a library root."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    locked_dependencies: list[LockedDependency] = Field(alias="locked-dependencies", default_factory=list)

    def by_folder(self) -> dict[str, LockedDependency]:
        return {entry.folder: entry for entry in self.locked_dependencies}


def load_lockfile(path: Path) -> Lockfile:
    """Load and validate the lockfile from disk.

    An empty file is treated as an empty lockfile.

    Raises:
        LockfileError: If the file cannot be read, contains invalid YAML,
            or does not conform to the expected schema.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise LockfileError(f"Cannot read lockfile '{path}': {exc}") from exc

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise LockfileError(f"Invalid YAML in lockfile '{path}': {exc}") from exc

    if data is None:
        data = {}

    try:
        return Lockfile.model_validate(data)
    except ValidationError as exc:
        raise LockfileError(f"Invalid lockfile '{path}': {exc}") from exc


def save_lockfile(lockfile: Lockfile, path: Path) -> None:
    """Save the lockfile to disk, entries sorted by folder.

    Raises:
        LockfileError: If the file cannot be written.
    """
    data = lockfile.model_dump(by_alias=True)
    data["locked-dependencies"].sort(key=lambda x: x["folder"])
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=True), encoding="utf-8")
    except OSError as exc:
        raise LockfileError(f"Cannot write lockfile '{path}': {exc}") from exc

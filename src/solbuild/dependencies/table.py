# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Data model and YAML parser for the dependency table.

The table maps import prefixes to upstream repositories, their remapping
layout and the versions that can be requested in versioned imports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path

import yaml

from solbuild.model.dependency import RemappingLayout

# ###############
# Public Interface
# ###############

DEFAULT_TABLE_RESOURCE = "default_dependencies.yaml"


class DependencyTableError(Exception):
    """Raised when a dependency table is invalid or cannot be loaded."""


@dataclass(frozen=True)
class PackageMapping:
    """One row of the dependency table.

    Attributes:
        prefix: Unqualified import prefix, with trailing slash.
        repository: ``owner/repo`` of the upstream repository.
        layout: How the checkout is exposed to import paths.
        folder: Base name of the install folder below ``lib/``.
        default_version: Pinned tag or branch used for unqualified imports.
        source_dir: Directory inside the checkout holding the sources.
        versions: Import version -> tag or branch.
    """

    prefix: str
    repository: str
    layout: RemappingLayout
    folder: str
    default_version: str
    source_dir: str = ""
    versions: dict[str, str] = field(default_factory=dict)

    @property
    def package(self) -> str:
        return self.prefix.rstrip("/")


class DependencyTable:
    """Lookup structure over the rows of a dependency table."""

    def __init__(self, packages: list[PackageMapping]) -> None:
        self._packages = tuple(packages)
        self._by_package = {p.package: p for p in self._packages}
        # Longest prefix first so the first hit is the most specific one.
        self._by_prefix = sorted(self._packages, key=lambda p: (-len(p.prefix), p.prefix))

    @property
    def packages(self) -> tuple[PackageMapping, ...]:
        return self._packages

    def by_package(self, package: str) -> PackageMapping | None:
        return self._by_package.get(package)

    def match_prefix(self, import_path: str) -> PackageMapping | None:
        """Return the row with the longest prefix of *import_path*, or None."""
        for mapping in self._by_prefix:
            if import_path.startswith(mapping.prefix):
                return mapping
        return None

    def match_folder(self, folder_name: str) -> tuple[PackageMapping, str | None] | None:
        """Match an install folder name against the rows' base folders.

        Returns the matching row together with the version suffix that
        follows ``<folder>-`` (None for a bare folder), or None.
        """
        candidates = sorted(self._packages, key=lambda p: -len(p.folder))
        for mapping in candidates:
            if folder_name == mapping.folder:
                return mapping, None
            if folder_name.startswith(mapping.folder + "-"):
                return mapping, folder_name[len(mapping.folder) + 1 :]
        return None


def load_dependency_table(path: Path) -> DependencyTable:
    """Load and parse a dependency table file.

    Args:
        path: Path to the YAML table.

    Returns:
        The parsed DependencyTable.

    Raises:
        DependencyTableError: If the file cannot be read or the table is invalid.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise DependencyTableError(f"Dependency table not found: {path}") from None
    except OSError as exc:
        raise DependencyTableError(f"Cannot read dependency table: {exc}") from exc

    return _parse_dependency_table(text, source_label=str(path))


def default_dependency_table() -> DependencyTable:
    """Return the dependency table shipped with SolBuild."""
    text = resources.files("solbuild.dependencies").joinpath(DEFAULT_TABLE_RESOURCE).read_text(encoding="utf-8")
    return _parse_dependency_table(text, source_label=DEFAULT_TABLE_RESOURCE)


# ################
# Implementation
# ################


def _parse_dependency_table(text: str, source_label: str = "<string>") -> DependencyTable:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise DependencyTableError(f"Invalid YAML in {source_label}: {exc}") from exc

    if not isinstance(data, dict):
        raise DependencyTableError(f"{source_label}: dependency table must be a YAML mapping")

    raw_packages = data.get("packages", [])
    if not isinstance(raw_packages, list):
        raise DependencyTableError(f"{source_label}: 'packages' must be a list")

    packages = [_parse_package(entry, index, source_label) for index, entry in enumerate(raw_packages)]

    seen: set[str] = set()
    for mapping in packages:
        if mapping.prefix in seen:
            raise DependencyTableError(f"{source_label}: duplicate prefix '{mapping.prefix}'")
        seen.add(mapping.prefix)

    return DependencyTable(packages)


def _require_string(mapping: dict[str, object], key: str, source_label: str) -> str:
    """Extract a required string field from a mapping, raising DependencyTableError if missing."""
    if key not in mapping:
        raise DependencyTableError(f"{source_label}: missing required field '{key}'")
    value = mapping[key]
    if not isinstance(value, str):
        raise DependencyTableError(f"{source_label}: '{key}' must be a string")
    return value


def _parse_package(entry: object, index: int, source_label: str) -> PackageMapping:
    location = f"{source_label}: packages[{index}]"

    if not isinstance(entry, dict):
        raise DependencyTableError(f"{location} must be a YAML mapping")

    prefix = _require_string(entry, "prefix", location)
    if not prefix.endswith("/"):
        raise DependencyTableError(f"{location}: prefix '{prefix}' must end with '/'")

    repository = _require_string(entry, "repository", location)
    if repository.count("/") != 1:
        raise DependencyTableError(f"{location}: repository '{repository}' must be of the form owner/repo")

    layout_name = _require_string(entry, "layout", location)
    try:
        layout = RemappingLayout(layout_name)
    except ValueError:
        choices = ", ".join(layout.value for layout in RemappingLayout)
        raise DependencyTableError(f"{location}: unknown layout '{layout_name}' (expected one of {choices})") from None

    source_dir = ""
    if "source-dir" in entry:
        source_dir = _require_string(entry, "source-dir", location).strip("/")

    versions: dict[str, str] = {}
    if "versions" in entry:
        raw_versions = entry["versions"]
        if not isinstance(raw_versions, dict):
            raise DependencyTableError(f"{location}: 'versions' must be a mapping")
        for alias, tag in raw_versions.items():
            if not isinstance(tag, str):
                raise DependencyTableError(f"{location}: version '{alias}' must map to a string")
            versions[str(alias)] = tag

    return PackageMapping(
        prefix=prefix,
        repository=repository,
        layout=layout,
        folder=_require_string(entry, "folder", location),
        default_version=_require_string(entry, "default-version", location),
        source_dir=source_dir,
        versions=versions,
    )

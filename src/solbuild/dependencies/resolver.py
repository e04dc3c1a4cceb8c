# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Resolve raw import paths to versioned dependency coordinates."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from solbuild.dependencies.table import DependencyTable, PackageMapping
from solbuild.model.dependency import DependencyCoordinate, RemappingLayout

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

_VERSIONED_RE = re.compile(r"^(?P<package>@[^/@]+/[^/@]+)@(?P<version>[^/]+)/")
_OWNER_REPO_RE = re.compile(
    r"^(?P<prefix>(?:github\.com/|@)(?P<owner>[A-Za-z0-9_.-]+)/(?P<repo>[A-Za-z0-9_.-]+))(?:@(?P<version>[^/]+))?/"
)
_NUMERIC_VERSION_RE = re.compile(r"^\d+(?:\.\d+)*$")


def version_tag(version: str) -> str:
    """Turn a version written in an import into a git tag.

    Numeric versions get a ``v`` prefix (``4.9.3`` -> ``v4.9.3``); anything
    else (``v5.0.0``, ``main``) is used as written.
    """
    return f"v{version}" if _NUMERIC_VERSION_RE.match(version) else version


def folder_suffix(version: str) -> str:
    """Return the install-folder suffix for a tag or branch (``v4.9.5`` -> ``4.9.5``)."""
    if version.startswith("v") and _NUMERIC_VERSION_RE.match(version[1:]):
        return version[1:]
    return version


def coordinate_for(
    mapping: PackageMapping, version: str, *, import_version: str | None = None
) -> DependencyCoordinate:
    """Build the coordinate of *mapping* at the tag or branch *version*."""
    return DependencyCoordinate(
        package=mapping.package,
        repository=mapping.repository,
        version=version,
        folder=f"{mapping.folder}-{folder_suffix(version)}",
        is_default=version == mapping.default_version,
        prefix=mapping.prefix,
        layout=mapping.layout,
        source_dir=mapping.source_dir,
        import_version=import_version,
    )


class DependencyResolver:
    """Maps import paths to dependency coordinates using a :class:`DependencyTable`.

    Resolution order: versioned table entries, then the longest unqualified
    table prefix, then ``owner/repo``-shaped references on the fallback branch.
    """

    def __init__(self, table: DependencyTable, *, fallback_branch: str = "main") -> None:
        self._table = table
        self._fallback_branch = fallback_branch

    @property
    def table(self) -> DependencyTable:
        return self._table

    def resolve(self, import_path: str) -> DependencyCoordinate | None:
        """Resolve *import_path*, returning None when it is not a known dependency."""
        if import_path.startswith((".", "/")):
            logger.debug("Skipping relative import '%s'", import_path)
            return None

        versioned = _VERSIONED_RE.match(import_path)
        if versioned is not None:
            mapping = self._table.by_package(versioned.group("package"))
            if mapping is not None:
                requested = versioned.group("version")
                tag = mapping.versions.get(requested) or version_tag(requested)
                return coordinate_for(mapping, tag, import_version=requested)

        mapping = self._table.match_prefix(import_path)
        if mapping is not None:
            return coordinate_for(mapping, mapping.default_version)

        owner_repo = _OWNER_REPO_RE.match(import_path)
        if owner_repo is not None:
            return self._owner_repo_coordinate(owner_repo)

        logger.warning("Cannot resolve import '%s' to a known dependency", import_path)
        return None

    def resolve_all(self, import_paths: Iterable[str]) -> list[DependencyCoordinate]:
        """Resolve every path, dropping unresolved ones and duplicates (first occurrence wins)."""
        coordinates: list[DependencyCoordinate] = []
        seen: set[tuple[str, str, str | None]] = set()
        for path in import_paths:
            coordinate = self.resolve(path)
            if coordinate is None:
                continue
            identity = (coordinate.package, coordinate.version, coordinate.import_version)
            if identity not in seen:
                seen.add(identity)
                coordinates.append(coordinate)
        return coordinates

    # ################
    # Implementation
    # ################

    def _owner_repo_coordinate(self, match: re.Match[str]) -> DependencyCoordinate:
        owner, repo = match.group("owner"), match.group("repo")
        requested = match.group("version")
        version = version_tag(requested) if requested else self._fallback_branch
        prefix = match.group("prefix") + "/"
        return DependencyCoordinate(
            package=match.group("prefix"),
            repository=f"{owner}/{repo}",
            version=version,
            folder=f"{repo}-{folder_suffix(version)}",
            is_default=requested is None,
            prefix=prefix,
            layout=RemappingLayout.FLAT_NAMESPACE,
            import_version=requested,
        )

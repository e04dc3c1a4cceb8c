# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Dependency coordinates and remapping rules."""

from __future__ import annotations

import enum
from dataclasses import dataclass

# ###############
# Public Interface
# ###############


class RemappingLayout(enum.Enum):
    """How a package's source tree is exposed to import paths.

    ``SCOPED_PACKAGE``: ``@scope/pkg@<v>/`` prefixes pointing into a
    subdirectory of the checkout (OpenZeppelin style).
    ``FLAT_NAMESPACE``: ``<folder>/`` prefixes pointing at the checkout root.
    ``SRC_SUBDIRECTORY``: ``<folder>/`` prefixes pointing at ``src/``.
    """

    SCOPED_PACKAGE = "scoped-package"
    FLAT_NAMESPACE = "flat-namespace"
    SRC_SUBDIRECTORY = "src-subdirectory"


@dataclass(frozen=True)
class DependencyCoordinate:
    """A resolved dependency: which repository, at which version, installed where.

    Attributes:
        package: Namespace or package identifier (e.g. ``@openzeppelin/contracts``).
        repository: ``owner/repo`` of the upstream repository.
        version: Resolved tag or branch to fetch.
        folder: Name of the install folder below ``lib/``.
        is_default: True for the package's default version; emits unqualified rules.
        prefix: Unqualified import prefix of the package.
        layout: Remapping layout of the package.
        source_dir: Directory inside the checkout that holds the sources.
        import_version: The version literally written in a versioned import, if any.
    """

    package: str
    repository: str
    version: str
    folder: str
    is_default: bool
    prefix: str
    layout: RemappingLayout
    source_dir: str = ""
    import_version: str | None = None

    @property
    def repository_url(self) -> str:
        return f"https://github.com/{self.repository}.git"


@dataclass(frozen=True, order=True)
class RemappingRule:
    """A ``prefix=path`` rule consumed by the compiler toolchain."""

    prefix: str
    path: str

    def render(self) -> str:
        return f"{self.prefix}={self.path}"

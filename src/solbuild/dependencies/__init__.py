# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Dependency resolution, installation and remapping generation."""

from solbuild.dependencies.git_ops import (
    GitError,
    clone_at_commit,
    clone_at_ref,
    get_current_commit,
    is_commit_hash,
    repository_url,
    resolve_commit,
)
from solbuild.dependencies.installer import DependencyInstaller, InstallMethod, InstallOutcome
from solbuild.dependencies.lockfile import (
    LOCKFILE_NAME,
    LockedDependency,
    Lockfile,
    LockfileError,
    load_lockfile,
    save_lockfile,
)
from solbuild.dependencies.remappings import (
    generate_remappings,
    remappings_from_listing,
    render_project_config,
    render_remappings_txt,
    write_remappings,
)
from solbuild.dependencies.resolver import DependencyResolver
from solbuild.dependencies.table import (
    DependencyTable,
    DependencyTableError,
    PackageMapping,
    default_dependency_table,
    load_dependency_table,
)

__all__ = [
    "DependencyInstaller",
    "DependencyResolver",
    "DependencyTable",
    "DependencyTableError",
    "GitError",
    "InstallMethod",
    "InstallOutcome",
    "LOCKFILE_NAME",
    "LockedDependency",
    "Lockfile",
    "LockfileError",
    "PackageMapping",
    "clone_at_commit",
    "clone_at_ref",
    "default_dependency_table",
    "generate_remappings",
    "get_current_commit",
    "is_commit_hash",
    "load_dependency_table",
    "load_lockfile",
    "remappings_from_listing",
    "render_project_config",
    "render_remappings_txt",
    "repository_url",
    "resolve_commit",
    "save_lockfile",
    "write_remappings",
]

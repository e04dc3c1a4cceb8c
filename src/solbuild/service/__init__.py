# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Compilation service: scheduling, workspaces and orchestration."""

from solbuild.service.compiler import CompilationResult, CompilationService
from solbuild.service.scheduler import CompilationScheduler
from solbuild.service.workspace import WorkspaceManager

__all__ = [
    "CompilationResult",
    "CompilationScheduler",
    "CompilationService",
    "WorkspaceManager",
]

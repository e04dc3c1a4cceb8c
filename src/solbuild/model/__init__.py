# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Data model for SolBuild: requests, dependencies, jobs and artifacts."""

from solbuild.model.artifact import CompiledArtifact, ContractArtifact, Diagnostic, normalize_hex
from solbuild.model.dependency import DependencyCoordinate, RemappingLayout, RemappingRule
from solbuild.model.job import CompilationJob, JobRecord, JobState, new_job_id
from solbuild.model.request import CompilationRequest, CompilerSettings, OptimizerSettings, build_request

__all__ = [
    # Requests
    "OptimizerSettings",
    "CompilerSettings",
    "CompilationRequest",
    "build_request",
    # Dependencies
    "RemappingLayout",
    "DependencyCoordinate",
    "RemappingRule",
    # Jobs
    "JobState",
    "CompilationJob",
    "JobRecord",
    "new_job_id",
    # Artifacts
    "Diagnostic",
    "ContractArtifact",
    "CompiledArtifact",
    "normalize_hex",
]

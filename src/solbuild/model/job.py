# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Compilation job lifecycle and history records."""

from __future__ import annotations

import enum
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from solbuild.model.request import CompilationRequest

# ###############
# Public Interface
# ###############


class JobState(enum.Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def new_job_id() -> str:
    return uuid.uuid4().hex


@dataclass
class CompilationJob:
    """One admitted compilation.

    A job moves Queued -> Running -> {Succeeded, Failed}; settled states are final.
    """

    request: CompilationRequest
    job_id: str = field(default_factory=new_job_id)
    workspace: Path | None = None
    state: JobState = JobState.QUEUED
    started_at: float | None = None
    finished_at: float | None = None

    def mark_running(self) -> None:
        self.state = JobState.RUNNING
        self.started_at = time.time()

    def mark_settled(self, succeeded: bool) -> None:
        self.state = JobState.SUCCEEDED if succeeded else JobState.FAILED
        self.finished_at = time.time()

    @property
    def settled(self) -> bool:
        return self.state in (JobState.SUCCEEDED, JobState.FAILED)


class JobRecord(BaseModel):
    """History entry describing how a job settled."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    job_id: str = Field(alias="jobId")
    timestamp: float
    status: JobState
    cached: bool = False
    contract_name: str | None = Field(default=None, alias="contractName")
    version: str | None = None
    error: str | None = None
    error_type: str | None = Field(default=None, alias="errorType")

# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""The compilation orchestrator.

:class:`CompilationService` owns all mutable state of a running service: the
result cache and job history, the scheduler, and the workspace manager. A
compilation flows through these steps:

1. The request is looked up in the cache; a hit returns immediately without
   spawning any process.
2. The scheduler admits the job (at most ``max_concurrent`` at a time).
3. A workspace is allocated; imports are resolved, installed and turned
   into remappings.
4. The strategy chain compiles the source.
5. The artifact is cached and the job recorded; the workspace is removed on
   every exit path.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from solbuild.cache.artifact_store import ArtifactStore
from solbuild.cache.result_cache import ResultCache, compute_cache_key
from solbuild.cache.sweeper import CacheSweeper
from solbuild.config.settings import Settings
from solbuild.dependencies.installer import DependencyInstaller, InstallOutcome
from solbuild.dependencies.remappings import generate_remappings, write_remappings
from solbuild.dependencies.resolver import DependencyResolver
from solbuild.dependencies.table import DependencyTable, default_dependency_table, load_dependency_table
from solbuild.errors import SolbuildError, error_payload
from solbuild.model.artifact import CompiledArtifact, Diagnostic
from solbuild.model.dependency import RemappingRule
from solbuild.model.job import CompilationJob, JobRecord, JobState
from solbuild.model.request import CompilationRequest, build_request
from solbuild.parser.imports import extract_imports, infer_contract_name
from solbuild.service.scheduler import CompilationScheduler
from solbuild.service.workspace import WorkspaceManager
from solbuild.toolchain.chain import StrategyChain
from solbuild.toolchain.evm import evm_target_for
from solbuild.toolchain.strategies import CompileInput

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


@dataclass(frozen=True)
class CompilationResult:
    """Outcome of a successful :meth:`CompilationService.compile` call."""

    job_id: str
    artifact: CompiledArtifact
    cached: bool
    remappings: tuple[RemappingRule, ...] = ()
    install_outcomes: tuple[InstallOutcome, ...] = ()

    @property
    def diagnostics(self) -> tuple[Diagnostic, ...]:
        return self.artifact.diagnostics


def load_table(settings: Settings) -> DependencyTable:
    if settings.dependency_table is not None:
        return load_dependency_table(settings.dependency_table)
    return default_dependency_table()


class CompilationService:
    """Compiles Solidity sources with caching, admission control and isolated workspaces.

    Collaborators default to instances built from *settings*; tests and
    embedders may pass their own.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        table: DependencyTable | None = None,
        chain: StrategyChain | None = None,
        installer: DependencyInstaller | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.cache = cache or ResultCache(ttl=self.settings.cache_ttl, history_limit=self.settings.history_limit)
        self.scheduler = CompilationScheduler(self.settings.max_concurrent)
        self.workspaces = WorkspaceManager(self.settings.work_dir)
        self.resolver = DependencyResolver(
            table or load_table(self.settings), fallback_branch=self.settings.fallback_branch
        )
        self.installer = installer or DependencyInstaller(
            self.settings.lib_root,
            fetch=self.settings.fetch_dependencies,
            allow_stubs=self.settings.allow_stubs,
            timeout=self.settings.install_timeout,
        )
        self.chain = chain or StrategyChain.from_names(
            self.settings.strategy_names,
            solc_binary=self.settings.solc_binary,
            docker_binary=self.settings.docker_binary,
            docker_image=self.settings.docker_image,
        )
        self.store = ArtifactStore(self.settings.artifacts_dir) if self.settings.artifacts_dir is not None else None
        self.sweeper = CacheSweeper(self.cache, interval=self.settings.sweep_interval)

    async def __aenter__(self) -> CompilationService:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def start(self) -> None:
        """Remove stale workspaces and start the periodic cache sweep."""
        self.workspaces.purge_all()
        await self.sweeper.start()

    async def close(self) -> None:
        """Stop the cache sweep and wait for admitted jobs to settle."""
        await self.sweeper.stop()
        await self.scheduler.drain()

    async def compile_payload(self, payload: Mapping[str, Any]) -> CompilationResult:
        """Validate a raw request payload and compile it.

        Raises:
            RequestValidationError: Before anything is spawned, if the payload is invalid.
            CompilationError: If every compilation strategy failed.
        """
        return await self.compile(build_request(payload, max_source_bytes=self.settings.max_source_bytes))

    async def compile(self, request: CompilationRequest) -> CompilationResult:
        """Compile *request*, serving identical earlier results from the cache.

        Raises:
            CompilationError: If every compilation strategy failed.
        """
        job = CompilationJob(request=request)
        contract_name = request.contract_name or infer_contract_name(request.source)
        key = request.cache_key or compute_cache_key(request.source, request.version, request.settings)

        cached = self.cache.get_by_key(key)
        if cached is not None:
            logger.info("Cache hit for %s (job %s)", contract_name, job.job_id)
            job.mark_running()
            job.mark_settled(True)
            self._record_success(job, contract_name, cached, cached=True)
            return CompilationResult(job_id=job.job_id, artifact=cached, cached=True)

        logger.info("Queueing %s for solc %s (job %s)", contract_name, request.version, job.job_id)
        return await self.scheduler.submit(lambda: self._run_job(job, key, contract_name), job)

    def history(self) -> list[JobRecord]:
        return self.cache.history()

    def job_record(self, job_id: str) -> JobRecord | None:
        return self.cache.job(job_id)

    # ################
    # Implementation
    # ################

    async def _run_job(self, job: CompilationJob, key: str, contract_name: str) -> CompilationResult:
        request = job.request
        try:
            if self.store is not None:
                self.store.write_source(job.job_id, request.source)
            with self.workspaces.allocate(job.job_id) as workspace:
                job.workspace = workspace
                rules, outcomes = await self._prepare(workspace, request, contract_name)
                artifact = await self.chain.compile(
                    CompileInput(
                        source=request.source,
                        contract_name=contract_name,
                        version=request.version,
                        settings=request.settings,
                        workspace=workspace,
                        remappings=tuple(rules),
                        timeout=self.settings.compile_timeout,
                    )
                )
        except Exception as exc:
            self._record_failure(job, contract_name, exc)
            raise

        self.cache.put_by_key(key, artifact)
        self._record_success(job, contract_name, artifact, cached=False)
        return CompilationResult(
            job_id=job.job_id,
            artifact=artifact,
            cached=False,
            remappings=tuple(rules),
            install_outcomes=tuple(outcomes),
        )

    async def _prepare(
        self, workspace: Path, request: CompilationRequest, contract_name: str
    ) -> tuple[list[RemappingRule], list[InstallOutcome]]:
        """Write the source, install its dependencies and write the remappings."""
        (workspace / "src" / f"{contract_name}.sol").write_text(request.source, encoding="utf-8")

        coordinates = self.resolver.resolve_all(extract_imports(request.source))
        outcomes = await self.installer.install_all(coordinates, workspace / "lib")
        for outcome in outcomes:
            if outcome.error is not None:
                logger.warning("Continuing without %s: %s", outcome.coordinate.package, outcome.error.message)

        rules = generate_remappings(o.coordinate for o in outcomes if o.ok)
        write_remappings(workspace, rules, evm_version=evm_target_for(request.version, request.settings.evm_version))
        return rules, outcomes

    def _record_success(
        self, job: CompilationJob, contract_name: str, artifact: CompiledArtifact, *, cached: bool
    ) -> None:
        record = JobRecord(
            job_id=job.job_id,
            timestamp=time.time(),
            status=JobState.SUCCEEDED,
            cached=cached,
            contract_name=contract_name,
            version=job.request.version,
        )
        self.cache.record_job(record)
        if self.store is not None and not cached:
            self.store.write_result(record, artifact)

    def _record_failure(self, job: CompilationJob, contract_name: str, exc: Exception) -> None:
        kind = exc.kind.value if isinstance(exc, SolbuildError) else type(exc).__name__
        record = JobRecord(
            job_id=job.job_id,
            timestamp=time.time(),
            status=JobState.FAILED,
            contract_name=contract_name,
            version=job.request.version,
            error=str(exc),
            error_type=kind,
        )
        self.cache.record_job(record)
        if self.store is not None:
            self.store.write_error(record, error_payload(exc, include_details=not self.settings.is_production))
        logger.warning("Job %s failed: %s", job.job_id, exc)

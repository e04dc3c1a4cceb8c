# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Alternative ways of invoking the Solidity compiler.

Every strategy is stateless and idempotent: given the same
:class:`CompileInput` it produces the same artifact or fails the same way.
Each one selects the EVM target explicitly, runs the compiler under a hard
timeout, and removes every file it created, whether it succeeds or fails.
"""

from __future__ import annotations

import abc
import contextlib
import json
import logging
import os
import shlex
import shutil
import tempfile
import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

from solbuild.errors import CompilationTimeoutError, ErrorKind, StrategyError
from solbuild.model.artifact import CompiledArtifact
from solbuild.model.dependency import RemappingRule
from solbuild.model.request import CompilerSettings
from solbuild.toolchain.evm import evm_target_for, parse_version
from solbuild.toolchain.output import collect_output_files, parse_combined_json, parse_standard_output
from solbuild.toolchain.process import process_failure, require_success, run_process

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

OUTPUT_SELECTION = [
    "abi",
    "evm.bytecode.object",
    "evm.deployedBytecode.object",
    "evm.gasEstimates",
    "evm.methodIdentifiers",
    "metadata",
]


@dataclass(frozen=True)
class CompileInput:
    """Everything a strategy needs to compile one source.

    Attributes:
        source: Solidity source text.
        contract_name: Main contract; the source lives at ``src/<contract_name>.sol``.
        version: Exact compiler version.
        settings: Compiler settings.
        workspace: Job workspace holding ``src/`` and ``lib/``.
        remappings: Remapping rules, relative to *workspace*.
        timeout: Wall-clock budget per compiler process, in seconds.
    """

    source: str
    contract_name: str
    version: str
    settings: CompilerSettings
    workspace: Path
    remappings: tuple[RemappingRule, ...] = ()
    timeout: float = 60.0

    @property
    def source_file(self) -> str:
        return f"src/{self.contract_name}.sol"

    @property
    def evm_version(self) -> str | None:
        return evm_target_for(self.version, self.settings.evm_version)


def standard_json_input(compile_input: CompileInput) -> dict[str, Any]:
    """Build the standard-JSON document for *compile_input*."""
    settings = compile_input.settings
    json_settings: dict[str, Any] = {
        "optimizer": {"enabled": settings.optimizer.enabled, "runs": settings.optimizer.runs},
        "outputSelection": {"*": {"*": list(OUTPUT_SELECTION)}},
        "remappings": [rule.render() for rule in compile_input.remappings],
    }
    if compile_input.evm_version is not None:
        json_settings["evmVersion"] = compile_input.evm_version
    if settings.via_ir:
        json_settings["viaIR"] = True
    return {
        "language": "Solidity",
        "sources": {compile_input.source_file: {"content": compile_input.source}},
        "settings": json_settings,
    }


def path_flags(version: str, root: str) -> list[str]:
    """Import path flags; ``--base-path`` only exists from 0.6.9 on."""
    flags = ["--allow-paths", root]
    if parse_version(version) >= (0, 6, 9):
        flags += ["--base-path", root]
    return flags


def cli_flags(compile_input: CompileInput) -> list[str]:
    """Compiler flags equivalent to the request settings."""
    settings = compile_input.settings
    flags: list[str] = []
    if settings.optimizer.enabled:
        flags += ["--optimize", "--optimize-runs", str(settings.optimizer.runs)]
    if compile_input.evm_version is not None:
        flags += ["--evm-version", compile_input.evm_version]
    if settings.via_ir:
        flags.append("--via-ir")
    flags += path_flags(compile_input.version, ".")
    flags += [rule.render() for rule in compile_input.remappings]
    return flags


class SolcLocator:
    """Finds a local ``solc`` binary for an exact compiler version.

    Looks for ``solc-<version>`` on PATH, then in the solc-select and svm
    install directories, and finally accepts the configured default binary
    when its ``--version`` output matches. Results are memoized.
    """

    def __init__(self, solc_binary: str = "solc", *, home: Path | None = None, version_timeout: float = 10.0) -> None:
        self._solc_binary = solc_binary
        self._home = home
        self._version_timeout = version_timeout
        self._found: dict[str, str | None] = {}

    def candidates(self, version: str) -> list[Path]:
        home = self._home or Path.home()
        return [
            home / ".solc-select" / "artifacts" / f"solc-{version}" / f"solc-{version}",
            home / ".svm" / version / f"solc-{version}",
        ]

    async def locate(self, version: str) -> str | None:
        if version in self._found:
            return self._found[version]

        found = shutil.which(f"solc-{version}")
        if found is None:
            for candidate in self.candidates(version):
                if candidate.is_file() and os.access(candidate, os.X_OK):
                    found = str(candidate)
                    break
        if found is None and await self._default_matches(version):
            found = self._solc_binary

        self._found[version] = found
        logger.debug("solc %s located at %s", version, found)
        return found

    async def require(self, version: str, strategy: str) -> str:
        """Return the binary for *version*, raising a VERSION StrategyError when absent."""
        binary = await self.locate(version)
        if binary is None:
            raise StrategyError(strategy, f"no solc binary available for version {version}", kind=ErrorKind.VERSION)
        return binary

    async def _default_matches(self, version: str) -> bool:
        if shutil.which(self._solc_binary) is None:
            return False
        try:
            result = await run_process(
                [self._solc_binary, "--version"], strategy="locator", timeout=self._version_timeout
            )
        except StrategyError:
            return False
        return f"Version: {version}+" in result.stdout


class Strategy(abc.ABC):
    """One way of invoking the compiler."""

    name: ClassVar[str]

    async def compile(self, compile_input: CompileInput) -> CompiledArtifact:
        with _staged_source(compile_input):
            return await self._compile(compile_input)

    @abc.abstractmethod
    async def _compile(self, compile_input: CompileInput) -> CompiledArtifact: ...


class StandardJsonStrategy(Strategy):
    """Feed standard JSON to a local ``solc --standard-json`` on stdin."""

    name = "standard-json"

    def __init__(self, locator: SolcLocator) -> None:
        self._locator = locator

    async def _compile(self, compile_input: CompileInput) -> CompiledArtifact:
        binary = await self._locator.require(compile_input.version, self.name)
        result = await run_process(
            [binary, "--standard-json", *path_flags(compile_input.version, ".")],
            strategy=self.name,
            timeout=compile_input.timeout,
            cwd=compile_input.workspace,
            input=json.dumps(standard_json_input(compile_input)),
        )
        if not result.stdout.strip():
            raise process_failure(self.name, result.output or "compiler produced no output")
        return parse_standard_output(
            result.stdout,
            strategy=self.name,
            compiler_version=compile_input.version,
            evm_version=compile_input.evm_version,
        )


class CliStrategy(Strategy):
    """Invoke ``solc --combined-json`` with flag arguments on the source file."""

    name = "cli"

    def __init__(self, locator: SolcLocator) -> None:
        self._locator = locator

    async def _compile(self, compile_input: CompileInput) -> CompiledArtifact:
        binary = await self._locator.require(compile_input.version, self.name)
        result = await run_process(
            [
                binary,
                "--combined-json",
                "abi,bin,bin-runtime,hashes,metadata",
                *cli_flags(compile_input),
                compile_input.source_file,
            ],
            strategy=self.name,
            timeout=compile_input.timeout,
            cwd=compile_input.workspace,
        )
        require_success(result, self.name)
        return parse_combined_json(
            result.stdout,
            strategy=self.name,
            compiler_version=compile_input.version,
            evm_version=compile_input.evm_version,
            warnings=result.stderr,
        )


class ContainerStrategy(Strategy):
    """Run ``solc --standard-json`` inside a version-tagged container image.

    The image tag is tried as ``<version>`` first, then as ``v<version>``.
    """

    name = "container"

    def __init__(self, docker_binary: str = "docker", image: str = "ethereum/solc") -> None:
        self._docker = docker_binary
        self._image = image

    def tags(self, version: str) -> list[str]:
        return [version, f"v{version}"]

    async def _compile(self, compile_input: CompileInput) -> CompiledArtifact:
        last_error: StrategyError | None = None
        for tag in self.tags(compile_input.version):
            try:
                return await self._run(compile_input, tag)
            except CompilationTimeoutError:
                raise
            except StrategyError as exc:
                if exc.kind is not ErrorKind.VERSION:
                    raise
                logger.info("[%s] image %s:%s unavailable", self.name, self._image, tag)
                last_error = exc
        assert last_error is not None
        raise last_error

    async def _run(self, compile_input: CompileInput, tag: str) -> CompiledArtifact:
        container = f"solbuild-{uuid.uuid4().hex[:12]}"
        args = [
            self._docker,
            "run",
            "--rm",
            "-i",
            "--name",
            container,
            "--network",
            "none",
            "-v",
            f"{compile_input.workspace.resolve()}:/sources",
            "-w",
            "/sources",
            f"{self._image}:{tag}",
            "--standard-json",
            *path_flags(compile_input.version, "/sources"),
        ]
        try:
            result = await run_process(
                args,
                strategy=self.name,
                timeout=compile_input.timeout,
                input=json.dumps(standard_json_input(compile_input)),
            )
        except CompilationTimeoutError:
            await self._remove(container)
            raise
        if not result.stdout.strip():
            raise process_failure(self.name, result.output or f"{self._docker} produced no output")
        return parse_standard_output(
            result.stdout,
            strategy=self.name,
            compiler_version=compile_input.version,
            evm_version=compile_input.evm_version,
        )

    async def _remove(self, container: str) -> None:
        with contextlib.suppress(StrategyError):
            await run_process([self._docker, "rm", "-f", container], strategy=self.name, timeout=15)


class ScriptStrategy(Strategy):
    """Last resort: run a generated wrapper script and read the files it emits."""

    name = "script"

    def __init__(self, locator: SolcLocator, *, shell: str = "/bin/sh") -> None:
        self._locator = locator
        self._shell = shell

    def render_script(self, binary: str, compile_input: CompileInput, out_dir: Path) -> str:
        command = shlex.join(
            [
                binary,
                *cli_flags(compile_input),
                "--abi",
                "--bin",
                "--bin-runtime",
                "--overwrite",
                "-o",
                str(out_dir),
                compile_input.source_file,
            ]
        )
        return f"#!{self._shell}\nset -e\ncd {shlex.quote(str(compile_input.workspace))}\nexec {command}\n"

    async def _compile(self, compile_input: CompileInput) -> CompiledArtifact:
        binary = await self._locator.require(compile_input.version, self.name)
        with _scratch_dir(compile_input.workspace, self.name) as scratch:
            out_dir = scratch / "out"
            out_dir.mkdir()
            script = scratch / "compile.sh"
            script.write_text(self.render_script(binary, compile_input, out_dir), encoding="utf-8")
            result = await run_process(
                [self._shell, str(script)],
                strategy=self.name,
                timeout=compile_input.timeout,
                cwd=compile_input.workspace,
            )
            require_success(result, self.name)
            return collect_output_files(
                out_dir,
                source_file=compile_input.source_file,
                strategy=self.name,
                compiler_version=compile_input.version,
                evm_version=compile_input.evm_version,
            )


STRATEGY_NAMES: tuple[str, ...] = (
    StandardJsonStrategy.name,
    CliStrategy.name,
    ContainerStrategy.name,
    ScriptStrategy.name,
)


# ################
# Implementation
# ################


@contextlib.contextmanager
def _staged_source(compile_input: CompileInput) -> Iterator[Path]:
    """Make sure the source file exists in the workspace; remove it afterwards if it was written here."""
    path = compile_input.workspace / compile_input.source_file
    created = not path.exists()
    created_parent = not path.parent.exists()
    if created:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(compile_input.source, encoding="utf-8")
    try:
        yield path
    finally:
        if created:
            path.unlink(missing_ok=True)
        if created_parent:
            shutil.rmtree(path.parent, ignore_errors=True)


@contextlib.contextmanager
def _scratch_dir(workspace: Path, strategy: str) -> Iterator[Path]:
    scratch = Path(tempfile.mkdtemp(prefix=f".solbuild-{strategy}-", dir=workspace))
    try:
        yield scratch
    finally:
        shutil.rmtree(scratch, ignore_errors=True)

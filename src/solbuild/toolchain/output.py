# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Turn the compiler's various output formats into a :class:`CompiledArtifact`.

Three shapes are understood: standard-JSON output, ``--combined-json``
output, and the per-contract ``.abi``/``.bin``/``.bin-runtime`` files that
``solc -o`` writes.
"""

from __future__ import annotations

import contextlib
import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from solbuild.errors import ErrorKind, StrategyError
from solbuild.model.artifact import CompiledArtifact, ContractArtifact, Diagnostic
from solbuild.toolchain.classify import classify_message

# ###############
# Public Interface
# ###############


def parse_standard_output(
    raw: str,
    *,
    strategy: str,
    compiler_version: str,
    evm_version: str | None,
) -> CompiledArtifact:
    """Parse standard-JSON compiler output.

    Raises:
        StrategyError: If the output is not JSON, reports an error-severity
            diagnostic (classified), or contains no contracts.
    """
    data = _load_json(raw, strategy)

    with _unexpected_shape(strategy, raw):
        diagnostics = [_diagnostic_from_dict(entry) for entry in data.get("errors", [])]
    _raise_on_errors(diagnostics, strategy)

    contracts: dict[str, ContractArtifact] = {}
    with _unexpected_shape(strategy, raw):
        for source_file, by_name in sorted(data.get("contracts", {}).items()):
            for name, contract in sorted(by_name.items()):
                evm = contract.get("evm", {})
                contracts[f"{source_file}:{name}"] = ContractArtifact(
                    abi=contract.get("abi", []),
                    bytecode=evm.get("bytecode", {}).get("object"),
                    deployed_bytecode=evm.get("deployedBytecode", {}).get("object"),
                    gas_estimates=evm.get("gasEstimates"),
                    method_identifiers=evm.get("methodIdentifiers", {}),
                    metadata=contract.get("metadata"),
                )
    return _artifact(contracts, diagnostics, strategy, compiler_version, evm_version)


def parse_combined_json(
    raw: str,
    *,
    strategy: str,
    compiler_version: str,
    evm_version: str | None,
    warnings: str = "",
) -> CompiledArtifact:
    """Parse ``solc --combined-json abi,bin,bin-runtime,hashes,metadata`` output.

    Older compilers emit the ABI as a JSON string; both forms are accepted.
    Any *warnings* text captured from stderr becomes a single diagnostic.

    Raises:
        StrategyError: If the output is not JSON, has an unexpected shape,
            or contains no contracts.
    """
    data = _load_json(raw, strategy)

    contracts: dict[str, ContractArtifact] = {}
    with _unexpected_shape(strategy, raw):
        for key, contract in sorted(data.get("contracts", {}).items()):
            abi = contract.get("abi", [])
            if isinstance(abi, str):
                abi = json.loads(abi) if abi else []
            contracts[key] = ContractArtifact(
                abi=abi,
                bytecode=contract.get("bin"),
                deployed_bytecode=contract.get("bin-runtime"),
                method_identifiers=contract.get("hashes", {}),
                metadata=contract.get("metadata"),
            )

    diagnostics = [Diagnostic(severity="warning", message=warnings.strip())] if warnings.strip() else []
    return _artifact(contracts, diagnostics, strategy, compiler_version, evm_version)


def collect_output_files(
    out_dir: Path,
    *,
    source_file: str,
    strategy: str,
    compiler_version: str,
    evm_version: str | None,
) -> CompiledArtifact:
    """Read the ``<Name>.abi``, ``<Name>.bin`` and ``<Name>.bin-runtime`` files below *out_dir*."""
    contracts: dict[str, ContractArtifact] = {}
    for abi_file in sorted(out_dir.rglob("*.abi")):
        name = abi_file.stem
        bin_file = abi_file.with_suffix(".bin")
        runtime_file = abi_file.with_name(f"{name}.bin-runtime")
        with _unexpected_shape(strategy, str(abi_file)):
            text = abi_file.read_text(encoding="utf-8").strip()
            contracts[f"{source_file}:{name}"] = ContractArtifact(
                abi=json.loads(text) if text else [],
                bytecode=bin_file.read_text(encoding="utf-8").strip() if bin_file.exists() else None,
                deployed_bytecode=runtime_file.read_text(encoding="utf-8").strip() if runtime_file.exists() else None,
            )
    return _artifact(contracts, [], strategy, compiler_version, evm_version)


# ################
# Implementation
# ################


def _load_json(raw: str, strategy: str) -> dict[str, Any]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StrategyError(strategy, f"compiler produced invalid JSON output: {exc}", output=raw[:4000]) from exc
    if not isinstance(data, dict):
        raise StrategyError(strategy, "compiler output is not a JSON object", output=raw[:4000])
    return data


@contextlib.contextmanager
def _unexpected_shape(strategy: str, raw: str) -> Iterator[None]:
    """Turn parse failures on compiler-produced data into a StrategyError."""
    try:
        yield
    except (ValueError, TypeError, AttributeError, KeyError, OSError) as exc:
        raise StrategyError(
            strategy, f"compiler output has an unexpected shape: {exc}", output=raw[:4000]
        ) from exc


def _diagnostic_from_dict(entry: dict[str, Any]) -> Diagnostic:
    location = entry.get("sourceLocation") or {}
    return Diagnostic(
        severity=entry.get("severity", "error"),
        message=entry.get("message", ""),
        formatted_message=entry.get("formattedMessage"),
        type=entry.get("type"),
        source_file=location.get("file"),
    )


def _raise_on_errors(diagnostics: list[Diagnostic], strategy: str) -> None:
    errors = [d for d in diagnostics if d.is_error]
    if not errors:
        return
    text = "\n".join(f"{d.type}: {d.message}" if d.type else d.message for d in errors)
    full = "\n".join(d.formatted_message or d.message for d in errors)
    raise StrategyError(strategy, text, kind=classify_message(text), output=full)


def _artifact(
    contracts: dict[str, ContractArtifact],
    diagnostics: list[Diagnostic],
    strategy: str,
    compiler_version: str,
    evm_version: str | None,
) -> CompiledArtifact:
    if not contracts:
        raise StrategyError(strategy, "compiler produced no contracts", kind=ErrorKind.UNKNOWN)
    return CompiledArtifact(
        contracts=contracts,
        diagnostics=tuple(diagnostics),
        compiler_version=compiler_version,
        evm_version=evm_version,
        strategy=strategy,
    )

# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the compiled artifact and job models."""

import pytest

from solbuild.model import (
    CompilationJob,
    CompilationRequest,
    CompiledArtifact,
    ContractArtifact,
    Diagnostic,
    JobRecord,
    JobState,
    normalize_hex,
)

# ###############
# Public Interface
# ###############


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("", "0x"),
        (None, "0x"),
        ("6080", "0x6080"),
        ("0x6080", "0x6080"),
        ("0X6080", "0x6080"),
        ("  6080\n", "0x6080"),
    ],
)
def test_normalize_hex(raw, expected):
    """Bytecode strings are always 0x-prefixed."""
    assert normalize_hex(raw) == expected


def test_contract_artifact_normalizes_bytecode():
    """Bytecode fields are normalized on construction."""
    artifact = ContractArtifact(bytecode="6080", deployedBytecode="")
    assert artifact.bytecode == "0x6080"
    assert artifact.deployed_bytecode == "0x"


def test_compiled_artifact_contract_lookup():
    """contract() finds an artifact by contract name regardless of source file."""
    token = ContractArtifact(bytecode="01")
    artifact = CompiledArtifact(
        contracts={"src/Token.sol:Token": token, "src/Token.sol:Helper": ContractArtifact()},
        compiler_version="0.8.19",
        strategy="standard-json",
    )
    assert artifact.contract("Token") is token
    assert artifact.contract("Missing") is None


def test_compiled_artifact_contract_lookup_ignores_case():
    """A contract name differing only in case still selects the contract."""
    token = ContractArtifact(bytecode="01")
    artifact = CompiledArtifact(
        contracts={"src/Token.sol:Token": token, "src/Token.sol:Helper": ContractArtifact()},
        compiler_version="0.8.19",
        strategy="standard-json",
    )
    assert artifact.contract("token") is token
    assert artifact.contract("Tok") is None


def test_compiled_artifact_contract_lookup_prefers_exact_name():
    """An exact contract name wins over a case-insensitive match listed earlier."""
    exact = ContractArtifact(bytecode="02")
    artifact = CompiledArtifact(
        contracts={"src/vault.sol:Other": ContractArtifact(), "src/Other.sol:Vault": exact},
        compiler_version="0.8.19",
        strategy="standard-json",
    )
    assert artifact.contract("Vault") is exact


def test_compiled_artifact_contract_lookup_matches_path_segment():
    """A name matching a directory of the source path selects that contract."""
    pool = ContractArtifact(bytecode="03")
    artifact = CompiledArtifact(
        contracts={"src/pool/Main.sol:Main": pool, "src/Token.sol:Token": ContractArtifact()},
        compiler_version="0.8.19",
        strategy="standard-json",
    )
    assert artifact.contract("Pool") is pool


def test_compiled_artifact_contract_lookup_falls_back_to_sole_contract():
    """With a single contract any requested name selects it."""
    only = ContractArtifact(bytecode="04")
    artifact = CompiledArtifact(contracts={"src/Main.sol:Main": only}, compiler_version="0.8.19", strategy="cli")
    assert artifact.contract("Contract") is only
    empty = CompiledArtifact(contracts={}, compiler_version="0.8.19", strategy="cli")
    assert empty.contract("Contract") is None


def test_compiled_artifact_json_uses_aliases():
    """to_json_dict emits camel-case keys."""
    artifact = CompiledArtifact(
        contracts={"src/A.sol:A": ContractArtifact(methodIdentifiers={"f()": "26121ff0"})},
        diagnostics=(Diagnostic(severity="warning", message="unused"),),
        compiler_version="0.8.19",
        evm_version="paris",
        strategy="cli",
    )
    data = artifact.to_json_dict()
    assert data["compilerVersion"] == "0.8.19"
    assert data["evmVersion"] == "paris"
    assert data["contracts"]["src/A.sol:A"]["methodIdentifiers"] == {"f()": "26121ff0"}
    assert data["contracts"]["src/A.sol:A"]["deployedBytecode"] == "0x"
    assert data["diagnostics"][0]["severity"] == "warning"


def test_diagnostic_is_error():
    """Only error-severity diagnostics are errors."""
    assert Diagnostic(severity="error", message="x").is_error
    assert not Diagnostic(severity="warning", message="x").is_error


# -------- job tests --------


def test_job_lifecycle():
    """A job moves from queued to running to a settled state."""
    job = CompilationJob(request=CompilationRequest(source="contract A {}", version="0.8.19"))
    assert job.state is JobState.QUEUED
    assert not job.settled

    job.mark_running()
    assert job.state is JobState.RUNNING
    assert job.started_at is not None

    job.mark_settled(False)
    assert job.state is JobState.FAILED
    assert job.settled
    assert job.finished_at is not None


def test_job_ids_are_unique():
    """Each job gets its own identifier."""
    request = CompilationRequest(source="contract A {}", version="0.8.19")
    assert CompilationJob(request=request).job_id != CompilationJob(request=request).job_id


def test_job_record_round_trips_through_aliases():
    """Job records dump and load with camel-case keys."""
    record = JobRecord(job_id="abc", timestamp=1.0, status=JobState.FAILED, error="boom", error_type="syntax")
    data = record.model_dump(mode="json", by_alias=True)
    assert data["jobId"] == "abc"
    assert data["status"] == "failed"
    assert data["errorType"] == "syntax"
    assert JobRecord.model_validate(data) == record

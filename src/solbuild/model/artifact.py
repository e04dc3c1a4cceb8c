# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Compiled artifact model shared by every compilation strategy."""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ###############
# Public Interface
# ###############


def normalize_hex(value: str | None) -> str:
    """Return *value* as a ``0x``-prefixed hex string (``"0x"`` when empty)."""
    if not value:
        return "0x"
    value = value.strip()
    if value.startswith(("0x", "0X")):
        return "0x" + value[2:]
    return "0x" + value


class Diagnostic(BaseModel):
    """A compiler error or warning."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    severity: str
    message: str
    formatted_message: str | None = Field(default=None, alias="formattedMessage")
    type: str | None = None
    source_file: str | None = Field(default=None, alias="sourceFile")

    @property
    def is_error(self) -> bool:
        return self.severity == "error"


class ContractArtifact(BaseModel):
    """Compiled output of one contract."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    abi: list[dict[str, Any]] = Field(default_factory=list)
    bytecode: str = "0x"
    deployed_bytecode: str = Field(default="0x", alias="deployedBytecode")
    gas_estimates: dict[str, Any] | None = Field(default=None, alias="gasEstimates")
    method_identifiers: dict[str, str] = Field(default_factory=dict, alias="methodIdentifiers")
    metadata: str | None = None

    @field_validator("bytecode", "deployed_bytecode", mode="before")
    @classmethod
    def _prefix_hex(cls, value: Any) -> str:
        return normalize_hex(value)


class CompiledArtifact(BaseModel):
    """The result of one successful compilation.

    Attributes:
        contracts: Per-contract outputs keyed ``"<sourceFile>:<contractName>"``.
        diagnostics: Warnings (and any non-fatal messages) reported by the compiler.
        compiler_version: The compiler version that produced the artifact.
        evm_version: The EVM target the artifact was compiled for.
        strategy: Registry name of the strategy that produced the artifact.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    contracts: dict[str, ContractArtifact]
    diagnostics: tuple[Diagnostic, ...] = ()
    compiler_version: str = Field(alias="compilerVersion")
    evm_version: str | None = Field(default=None, alias="evmVersion")
    strategy: str

    def contract(self, name: str) -> ContractArtifact | None:
        """Return the artifact of the contract called *name*, whatever its source file.

        Falls back to a case-insensitive match against any path segment of the
        ``file:Contract`` key, then to the only contract when there is exactly one.
        """
        for key, artifact in self.contracts.items():
            if key.rsplit(":", 1)[-1] == name:
                return artifact
        folded = name.casefold()
        for key, artifact in self.contracts.items():
            if any(part.casefold() == folded for part in re.split(r"[:/]", key)):
                return artifact
        if len(self.contracts) == 1:
            return next(iter(self.contracts.values()))
        return None

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

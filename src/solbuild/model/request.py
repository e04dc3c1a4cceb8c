# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Compilation request model and request validation."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from solbuild.errors import RequestValidationError
from solbuild.toolchain.evm import EVM_TARGET_NAMES

# ###############
# Public Interface
# ###############

_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+$")
_CONTRACT_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class OptimizerSettings(BaseModel):
    """Optimizer configuration forwarded to the compiler."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    runs: int = Field(default=200, ge=1, le=1_000_000)


class CompilerSettings(BaseModel):
    """Compiler settings that participate in the cache key."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    optimizer: OptimizerSettings = Field(default_factory=OptimizerSettings)
    evm_version: str | None = Field(default=None, alias="evmVersion")
    via_ir: bool = Field(default=False, alias="viaIR")

    @field_validator("evm_version")
    @classmethod
    def _known_evm_target(cls, value: str | None) -> str | None:
        if value is not None and value not in EVM_TARGET_NAMES:
            raise ValueError(f"Unknown EVM target '{value}'")
        return value

    def canonical(self) -> dict[str, Any]:
        """Return the settings as a plain mapping suitable for hashing."""
        return self.model_dump(mode="json", by_alias=True)


class CompilationRequest(BaseModel):
    """An immutable request to compile one Solidity source.

    Attributes:
        source: Solidity source text.
        version: Exact compiler version (``X.Y.Z``).
        settings: Compiler settings.
        contract_name: Logical contract name; also names the source file.
            Inferred from the source when omitted.
        cache_key: Optional caller-supplied cache key overriding the
            content hash.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    source: str = Field(min_length=1)
    version: str
    settings: CompilerSettings = Field(default_factory=CompilerSettings)
    contract_name: str | None = Field(default=None, alias="contractName")
    cache_key: str | None = Field(default=None, alias="cacheKey")

    @field_validator("version")
    @classmethod
    def _version_format(cls, value: str) -> str:
        if not _VERSION_RE.match(value):
            raise ValueError("Invalid Solidity version format. Must be X.Y.Z (e.g. 0.8.19)")
        return value

    @field_validator("contract_name")
    @classmethod
    def _contract_name_format(cls, value: str | None) -> str | None:
        if value is not None and not _CONTRACT_NAME_RE.match(value):
            raise ValueError("Contract name may only contain letters, digits and underscores")
        return value


def build_request(payload: Mapping[str, Any], *, max_source_bytes: int) -> CompilationRequest:
    """Validate a raw request payload and build a :class:`CompilationRequest`.

    Args:
        payload: Mapping with ``source``, ``version`` and optional
            ``settings``, ``contractName`` and ``cacheKey`` entries.
        max_source_bytes: Maximum UTF-8 encoded size of the source.

    Returns:
        The validated, immutable request.

    Raises:
        RequestValidationError: If the payload is malformed, the source is
            too large, or the version string is invalid.
    """
    source = payload.get("source")
    if isinstance(source, str):
        try:
            size = len(source.encode("utf-8"))
        except UnicodeEncodeError as exc:
            raise RequestValidationError("source is not valid UTF-8") from exc
        if size > max_source_bytes:
            raise RequestValidationError(
                f"Contract size exceeds maximum allowed size of {max_source_bytes // 1024}KB"
            )
    try:
        return CompilationRequest.model_validate(dict(payload))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}" for err in exc.errors()
        )
        raise RequestValidationError(f"Invalid compilation request: {problems}") from exc

# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Solidity source scanning."""

from solbuild.parser.imports import (
    DEFAULT_CONTRACT_NAME,
    extract_imports,
    extract_pragma_version,
    infer_contract_name,
    strip_comments,
)

__all__ = [
    "DEFAULT_CONTRACT_NAME",
    "extract_imports",
    "extract_pragma_version",
    "infer_contract_name",
    "strip_comments",
]

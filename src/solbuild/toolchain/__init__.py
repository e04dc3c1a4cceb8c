# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Compiler toolchain invocation: EVM targets, strategies and the fallback chain.

Import from the submodules (``solbuild.toolchain.chain``,
``solbuild.toolchain.strategies``, ...); the request model depends on
``solbuild.toolchain.evm``, so this package does not import them eagerly.
"""

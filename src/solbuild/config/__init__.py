# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Runtime configuration for SolBuild."""

from solbuild.config.settings import Settings

__all__ = ["Settings"]

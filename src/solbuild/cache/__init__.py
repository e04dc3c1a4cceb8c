# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Result caching, cache sweeping and the on-disk job record store."""

from solbuild.cache.artifact_store import ArtifactStore
from solbuild.cache.result_cache import (
    CacheEntry,
    ResultCache,
    SweepReport,
    canonical_settings,
    compute_cache_key,
    normalize_source,
)
from solbuild.cache.sweeper import CacheSweeper

__all__ = [
    "ArtifactStore",
    "CacheEntry",
    "CacheSweeper",
    "ResultCache",
    "SweepReport",
    "canonical_settings",
    "compute_cache_key",
    "normalize_source",
]

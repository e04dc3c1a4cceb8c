# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Periodic background sweep of the result cache."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from solbuild.cache.result_cache import ResultCache

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "solbuild-cache-sweep"


class CacheSweeper:
    """Runs :meth:`ResultCache.sweep` every *interval* seconds on the running event loop."""

    def __init__(self, cache: ResultCache, *, interval: float = 60.0) -> None:
        self._cache = cache
        self._interval = interval
        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start sweeping. Idempotent; must be called from within the event loop."""
        if self._running:
            logger.debug("Cache sweeper already running")
            return
        self._scheduler.add_job(
            func=self._cache.sweep,
            trigger=IntervalTrigger(seconds=self._interval, timezone="UTC"),
            id=SWEEP_JOB_ID,
            name="Result cache sweep",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self._scheduler.start()
        self._running = True
        logger.info("Cache sweeper started (every %gs)", self._interval)

    async def stop(self) -> None:
        if not self._running:
            return
        self._scheduler.shutdown(wait=False)
        self._running = False
        logger.info("Cache sweeper stopped")

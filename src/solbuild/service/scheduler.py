# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Admission control for compilation jobs.

At most ``max_concurrent`` jobs run at once; further submissions wait in a
strict FIFO queue. Every settlement frees exactly one slot and starts the
queue head, and every returned future is eventually resolved or rejected.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from solbuild.model.job import CompilationJob

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


class CompilationScheduler:
    def __init__(self, max_concurrent: int) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._max_concurrent = max_concurrent
        self._queue: deque[_Pending] = deque()
        self._running = 0
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def running(self) -> int:
        return self._running

    @property
    def queued(self) -> int:
        return len(self._queue)

    def submit(
        self, compile_fn: Callable[[], Awaitable[Any]], job: CompilationJob | None = None
    ) -> asyncio.Future[Any]:
        """Queue *compile_fn* and return a future for its result.

        Must be called from within the running event loop. When *job* is
        given, its state follows the job through Queued, Running and the
        settled states.
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._queue.append(_Pending(compile_fn, future, job))
        self._pump()
        return future

    async def drain(self) -> None:
        """Wait until every admitted job has settled."""
        while self._tasks or self._queue:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(0)

    # ################
    # Implementation
    # ################

    def _pump(self) -> None:
        while self._running < self._max_concurrent and self._queue:
            pending = self._queue.popleft()
            self._running += 1
            if pending.job is not None:
                pending.job.mark_running()
                logger.debug("Job %s running (%d/%d)", pending.job.job_id, self._running, self._max_concurrent)
            task = asyncio.get_running_loop().create_task(self._run(pending))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, pending: _Pending) -> None:
        try:
            result = await pending.compile_fn()
        except asyncio.CancelledError:
            if pending.job is not None:
                pending.job.mark_settled(False)
            pending.future.cancel()
            raise
        except Exception as exc:
            if pending.job is not None:
                pending.job.mark_settled(False)
            if not pending.future.done():
                pending.future.set_exception(exc)
        else:
            if pending.job is not None:
                pending.job.mark_settled(True)
            if not pending.future.done():
                pending.future.set_result(result)
        finally:
            self._running -= 1
            self._pump()


@dataclass
class _Pending:
    compile_fn: Callable[[], Awaitable[Any]]
    future: asyncio.Future[Any]
    job: CompilationJob | None

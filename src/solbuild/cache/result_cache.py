# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Content-addressed, TTL-bounded cache of compiled artifacts and job history.

The key of a compilation is the SHA-256 over the normalized source, the
compiler version and the canonical JSON form of the settings, so identical
inputs always address the same entry regardless of line endings or the order
of settings keys.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from solbuild.model.artifact import CompiledArtifact
from solbuild.model.job import JobRecord
from solbuild.model.request import CompilerSettings

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


def normalize_source(source: str) -> str:
    """Strip a leading BOM and convert CRLF/CR line endings to LF."""
    if source.startswith("\ufeff"):
        source = source[1:]
    return source.replace("\r\n", "\n").replace("\r", "\n")


def canonical_settings(settings: CompilerSettings | Mapping[str, Any]) -> str:
    """Serialize settings independently of key order."""
    data = settings.canonical() if isinstance(settings, CompilerSettings) else dict(settings)
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def compute_cache_key(source: str, version: str, settings: CompilerSettings | Mapping[str, Any]) -> str:
    digest = hashlib.sha256()
    digest.update(normalize_source(source).encode("utf-8"))
    digest.update(b"\0")
    digest.update(version.encode("utf-8"))
    digest.update(b"\0")
    digest.update(canonical_settings(settings).encode("utf-8"))
    return digest.hexdigest()


@dataclass(frozen=True)
class CacheEntry:
    key: str
    artifact: CompiledArtifact
    inserted_at: float
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class SweepReport:
    expired_entries: int
    trimmed_records: int


class ResultCache:
    """Artifact cache plus a bounded job-history log.

    Args:
        ttl: Seconds an entry stays valid after insertion.
        history_limit: Maximum number of job records kept by :meth:`sweep`.
        clock: Time source, in seconds.
    """

    def __init__(
        self,
        *,
        ttl: float = 3600.0,
        history_limit: int = 100,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = ttl
        self._history_limit = history_limit
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._history: OrderedDict[str, JobRecord] = OrderedDict()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(
        self, source: str, version: str, settings: CompilerSettings | Mapping[str, Any]
    ) -> CompiledArtifact | None:
        return self.get_by_key(compute_cache_key(source, version, settings))

    def put(
        self,
        source: str,
        version: str,
        settings: CompilerSettings | Mapping[str, Any],
        artifact: CompiledArtifact,
    ) -> CacheEntry:
        return self.put_by_key(compute_cache_key(source, version, settings), artifact)

    def get_by_key(self, key: str) -> CompiledArtifact | None:
        """Return the live artifact for *key*; an expired entry is removed and reported as a miss."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(self._clock()):
                del self._entries[key]
                logger.debug("Cache entry %s expired", key[:12])
                return None
            return entry.artifact

    def put_by_key(self, key: str, artifact: CompiledArtifact) -> CacheEntry:
        with self._lock:
            now = self._clock()
            entry = CacheEntry(key=key, artifact=artifact, inserted_at=now, expires_at=now + self._ttl)
            self._entries[key] = entry
            return entry

    def record_job(self, record: JobRecord) -> None:
        """Append (or replace) the history record of a job."""
        with self._lock:
            self._history.pop(record.job_id, None)
            self._history[record.job_id] = record

    def job(self, job_id: str) -> JobRecord | None:
        with self._lock:
            return self._history.get(job_id)

    def history(self) -> list[JobRecord]:
        """Job records, oldest first."""
        with self._lock:
            return list(self._history.values())

    def sweep(self) -> SweepReport:
        """Purge expired entries and trim the history to its newest records."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.expired(now)]
            for key in expired:
                del self._entries[key]
            trimmed = 0
            while len(self._history) > self._history_limit:
                self._history.popitem(last=False)
                trimmed += 1
        if expired or trimmed:
            logger.info("Cache sweep removed %d expired entries and %d history records", len(expired), trimmed)
        return SweepReport(expired_entries=len(expired), trimmed_records=trimmed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._history.clear()

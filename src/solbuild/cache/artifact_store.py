# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""On-disk record of every compilation job.

Each job gets a directory ``<artifacts_dir>/<job_id>/`` holding the submitted
``source.sol`` and either ``result.json`` (with the compiled artifact) or
``error.json`` (with the user-visible error payload). The JSON documents are
versioned so future schema changes can be detected.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from solbuild.model.artifact import CompiledArtifact
from solbuild.model.job import JobRecord

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

RECORD_FORMAT_VERSION = "1"
SOURCE_FILE = "source.sol"
RESULT_FILE = "result.json"
ERROR_FILE = "error.json"


class ArtifactStore:
    """Writes and lists per-job records below *root*."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def job_dir(self, job_id: str) -> Path:
        return self._root / job_id

    def write_source(self, job_id: str, source: str) -> Path:
        path = self.job_dir(job_id) / SOURCE_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
        return path

    def write_result(self, record: JobRecord, artifact: CompiledArtifact) -> Path:
        return self._write(record, RESULT_FILE, {"artifact": artifact.to_json_dict()})

    def write_error(self, record: JobRecord, payload: dict[str, Any]) -> Path:
        return self._write(record, ERROR_FILE, {"error": payload})

    def read(self, job_id: str) -> dict[str, Any] | None:
        """Return the stored document of *job_id*, or None when there is none.

        Raises:
            ValueError: If the document has an unsupported format version.
        """
        for name in (RESULT_FILE, ERROR_FILE):
            path = self.job_dir(job_id) / name
            if path.exists():
                return _load(path)
        return None

    def list_records(self) -> list[JobRecord]:
        """All stored job records, newest first. Unreadable documents are skipped."""
        records: list[JobRecord] = []
        if not self._root.is_dir():
            return records
        for job_dir in self._root.iterdir():
            for name in (RESULT_FILE, ERROR_FILE):
                path = job_dir / name
                if not path.is_file():
                    continue
                try:
                    records.append(JobRecord.model_validate(_load(path)["record"]))
                except (OSError, ValueError, KeyError) as exc:
                    logger.warning("Skipping unreadable job record %s: %s", path, exc)
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records

    # ################
    # Implementation
    # ################

    def _write(self, record: JobRecord, name: str, body: dict[str, Any]) -> Path:
        path = self.job_dir(record.job_id) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        document = {"v": RECORD_FORMAT_VERSION, "record": record.model_dump(mode="json", by_alias=True), **body}
        path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        return path


def _load(path: Path) -> dict[str, Any]:
    obj = json.loads(path.read_text(encoding="utf-8"))
    version = obj.get("v")
    if version != RECORD_FORMAT_VERSION:
        raise ValueError(f"Unsupported job record format version: {version!r}")
    return obj

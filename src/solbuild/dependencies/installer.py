# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Install resolved dependencies into a workspace ``lib/`` directory.

Each coordinate is installed by the first method that works: copying a
pre-installed folder from the library root, a shallow git clone at the
resolved tag, a source archive download, and finally (when enabled) stub
sources. Installation failures never abort a compilation; they are reported
as :class:`InstallOutcome` entries carrying a :class:`DependencyError`.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import io
import logging
import shutil
import tempfile
import zipfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import httpx

from solbuild.dependencies.git_ops import GitError, clone_at_ref
from solbuild.dependencies.stubs import has_stubs, write_stubs
from solbuild.errors import DependencyError
from solbuild.model.dependency import DependencyCoordinate

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


class InstallMethod(enum.Enum):
    PRESENT = "present"
    CACHE = "cache"
    GIT = "git"
    ARCHIVE = "archive"
    STUB = "stub"
    FAILED = "failed"


@dataclass(frozen=True)
class InstallOutcome:
    coordinate: DependencyCoordinate
    method: InstallMethod
    path: Path | None = None
    error: DependencyError | None = None

    @property
    def ok(self) -> bool:
        return self.method is not InstallMethod.FAILED


def archive_url(coordinate: DependencyCoordinate) -> str:
    return f"https://github.com/{coordinate.repository}/archive/{coordinate.version}.zip"


class DependencyInstaller:
    """Installs dependency coordinates into per-job ``lib/`` directories.

    Args:
        lib_root: Directory of pre-installed dependency folders, or None.
        fetch: Whether network fetches (git, archive) are allowed.
        allow_stubs: Whether stub sources may stand in for unavailable packages.
        timeout: Per-fetch timeout in seconds.
        transport: Optional httpx transport, used to route archive downloads.
    """

    def __init__(
        self,
        lib_root: Path | None = None,
        *,
        fetch: bool = True,
        allow_stubs: bool = False,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._lib_root = lib_root
        self._fetch = fetch
        self._allow_stubs = allow_stubs
        self._timeout = timeout
        self._transport = transport

    async def install_all(self, coordinates: Iterable[DependencyCoordinate], lib_dir: Path) -> list[InstallOutcome]:
        """Install every coordinate concurrently; outcomes keep the input order.

        Each install folder is materialized once. Distinct coordinates sharing
        a folder (for example @4.9.3 and @v4.9.3 imports) each get an outcome,
        so every one of them contributes its remapping rules.
        """
        lib_dir.mkdir(parents=True, exist_ok=True)
        distinct = list(dict.fromkeys(coordinates))
        by_folder: dict[str, DependencyCoordinate] = {}
        for coordinate in distinct:
            by_folder.setdefault(coordinate.folder, coordinate)
        installed = await asyncio.gather(*(self.install(c, lib_dir) for c in by_folder.values()))
        outcomes = {outcome.coordinate.folder: outcome for outcome in installed}
        return [dataclasses.replace(outcomes[c.folder], coordinate=c) for c in distinct]

    async def install(self, coordinate: DependencyCoordinate, lib_dir: Path) -> InstallOutcome:
        """Install one coordinate below *lib_dir*; never raises for fetch failures."""
        target = lib_dir / coordinate.folder
        if target.is_dir():
            return InstallOutcome(coordinate, InstallMethod.PRESENT, target)

        problems: list[str] = []
        if self._lib_root is not None and (self._lib_root / coordinate.folder).is_dir():
            try:
                await asyncio.to_thread(shutil.copytree, self._lib_root / coordinate.folder, target)
                logger.debug("Copied pre-installed %s into %s", coordinate.folder, lib_dir)
                return InstallOutcome(coordinate, InstallMethod.CACHE, target)
            except OSError as exc:
                _discard(target)
                problems.append(f"library root: {exc}")
                logger.warning("Copying pre-installed %s failed: %s", coordinate.folder, exc)

        if self._fetch:
            try:
                await asyncio.to_thread(
                    clone_at_ref, coordinate.repository_url, coordinate.version, target, timeout=int(self._timeout)
                )
                logger.info("Cloned %s@%s", coordinate.repository, coordinate.version)
                return InstallOutcome(coordinate, InstallMethod.GIT, target)
            except GitError as exc:
                problems.append(f"git: {exc}")
                logger.warning("Git clone of %s@%s failed: %s", coordinate.repository, coordinate.version, exc)

            try:
                await self._download_archive(coordinate, target)
                logger.info("Downloaded archive of %s@%s", coordinate.repository, coordinate.version)
                return InstallOutcome(coordinate, InstallMethod.ARCHIVE, target)
            except (httpx.HTTPError, zipfile.BadZipFile, OSError) as exc:
                _discard(target)
                problems.append(f"archive: {exc}")
                logger.warning("Archive download of %s@%s failed: %s", coordinate.repository, coordinate.version, exc)
        else:
            problems.append("fetching is disabled")

        if self._allow_stubs and has_stubs(coordinate):
            write_stubs(coordinate, target)
            logger.warning("Installed stub sources for %s@%s", coordinate.repository, coordinate.version)
            return InstallOutcome(coordinate, InstallMethod.STUB, target)

        error = DependencyError(
            f"Cannot install {coordinate.repository}@{coordinate.version}: {'; '.join(problems)}",
            import_path=coordinate.prefix,
        )
        logger.warning("%s", error)
        return InstallOutcome(coordinate, InstallMethod.FAILED, None, error)

    # ################
    # Implementation
    # ################

    async def _download_archive(self, coordinate: DependencyCoordinate, target: Path) -> None:
        url = archive_url(coordinate)
        logger.debug("Downloading %s", url)
        async with httpx.AsyncClient(
            transport=self._transport, timeout=self._timeout, follow_redirects=True
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
        await asyncio.to_thread(_extract_archive, response.content, target)


def _discard(target: Path) -> None:
    """Remove a partially installed folder so it is not mistaken for a complete one."""
    shutil.rmtree(target, ignore_errors=True)


def _extract_archive(payload: bytes, target: Path) -> None:
    """Extract a GitHub source archive into *target*, dropping its single top-level directory."""
    with zipfile.ZipFile(io.BytesIO(payload)) as archive, tempfile.TemporaryDirectory() as scratch:
        scratch_dir = Path(scratch)
        for member in archive.namelist():
            resolved = (scratch_dir / member).resolve()
            if not resolved.is_relative_to(scratch_dir.resolve()):
                raise zipfile.BadZipFile(f"Archive member escapes extraction directory: {member}")
        archive.extractall(scratch_dir)
        entries = list(scratch_dir.iterdir())
        source = entries[0] if len(entries) == 1 and entries[0].is_dir() else scratch_dir
        target.parent.mkdir(parents=True, exist_ok=True)
        if source is scratch_dir:
            shutil.copytree(scratch_dir, target)
        else:
            shutil.move(str(source), str(target))

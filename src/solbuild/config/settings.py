# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Runtime settings for SolBuild.

Every field can be set through a ``SOLBUILD_``-prefixed environment variable
(``SOLBUILD_MAX_CONCURRENT=4``) or a ``.env`` file in the working directory.
"""

import tempfile
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from solbuild.dependencies.lockfile import LOCKFILE_NAME
from solbuild.toolchain.strategies import STRATEGY_NAMES

# ###############
# Public Interface
# ###############

SOLBUILD_HOME = Path("~/.solbuild")


class Settings(BaseSettings):
    """Configuration of the compilation service.

    Attributes:
        environment: ``production`` hides raw process output and tracebacks
            from error payloads.
        work_dir: Parent directory of the per-job workspaces.
        artifacts_dir: Where job records are stored; None disables the store.
        lib_root: Directory of pre-installed dependency folders.
        dependency_table: YAML table overriding the built-in one.
        strategies: Comma-separated strategy names, in priority order.
    """

    model_config = SettingsConfigDict(
        env_prefix="SOLBUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    environment: Literal["development", "production"] = "development"
    log_level: str = "INFO"

    work_dir: Path = Path(tempfile.gettempdir()) / "solbuild-work"
    artifacts_dir: Path | None = SOLBUILD_HOME / "artifacts"
    lib_root: Path | None = SOLBUILD_HOME / "lib"
    dependency_table: Path | None = None
    lockfile: Path | None = None

    max_concurrent: int = Field(default=10, ge=1)
    max_source_bytes: int = Field(default=1024 * 1024, ge=1)
    compile_timeout: float = Field(default=60.0, gt=0)
    install_timeout: float = Field(default=120.0, gt=0)

    cache_ttl: float = Field(default=3600.0, gt=0)
    history_limit: int = Field(default=100, ge=1)
    sweep_interval: float = Field(default=60.0, gt=0)

    strategies: str = ",".join(STRATEGY_NAMES)
    solc_binary: str = "solc"
    docker_binary: str = "docker"
    docker_image: str = "ethereum/solc"

    fetch_dependencies: bool = True
    allow_stubs: bool = False
    fallback_branch: str = "main"

    host: str = "127.0.0.1"
    port: int = 8050

    @field_validator("work_dir", "artifacts_dir", "lib_root", "dependency_table", "lockfile")
    @classmethod
    def expand_and_resolve_path(cls, v: Path | None) -> Path | None:
        """Expand ``~`` and resolve relative paths against the working directory."""
        return None if v is None else v.expanduser().resolve()

    @field_validator("strategies")
    @classmethod
    def known_strategies(cls, v: str) -> str:
        names = [name.strip() for name in v.split(",") if name.strip()]
        if not names:
            raise ValueError("at least one compilation strategy is required")
        unknown = [name for name in names if name not in STRATEGY_NAMES]
        if unknown:
            raise ValueError(f"unknown strategies {unknown}; expected names from {list(STRATEGY_NAMES)}")
        return ",".join(names)

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def strategy_names(self) -> list[str]:
        return self.strategies.split(",")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def lockfile_path(self) -> Path | None:
        if self.lockfile is not None:
            return self.lockfile
        return self.lib_root / LOCKFILE_NAME if self.lib_root is not None else None

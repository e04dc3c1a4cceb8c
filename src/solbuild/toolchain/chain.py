# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Ordered fallback chain over compilation strategies."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

from solbuild.errors import CompilationError, StrategyError
from solbuild.model.artifact import CompiledArtifact
from solbuild.toolchain.classify import aggregate_kind
from solbuild.toolchain.strategies import (
    STRATEGY_NAMES,
    CliStrategy,
    CompileInput,
    ContainerStrategy,
    ScriptStrategy,
    SolcLocator,
    StandardJsonStrategy,
    Strategy,
)

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


class StrategyChain:
    """Tries each strategy in order and returns the first artifact produced.

    When every strategy fails, a :class:`CompilationError` carrying each
    individual :class:`StrategyError` is raised. Any other exception a
    strategy raises is recorded as an UNKNOWN failure of that strategy.
    """

    def __init__(self, strategies: Sequence[Strategy]) -> None:
        self._strategies = tuple(strategies)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(strategy.name for strategy in self._strategies)

    @classmethod
    def from_names(
        cls,
        names: Sequence[str],
        *,
        solc_binary: str = "solc",
        docker_binary: str = "docker",
        docker_image: str = "ethereum/solc",
        locator: SolcLocator | None = None,
    ) -> StrategyChain:
        """Build a chain from registry names, in the given priority order.

        Raises:
            ValueError: If a name is not a known strategy.
        """
        locator = locator or SolcLocator(solc_binary)
        factories = {
            StandardJsonStrategy.name: lambda: StandardJsonStrategy(locator),
            CliStrategy.name: lambda: CliStrategy(locator),
            ContainerStrategy.name: lambda: ContainerStrategy(docker_binary, docker_image),
            ScriptStrategy.name: lambda: ScriptStrategy(locator),
        }
        strategies: list[Strategy] = []
        for name in names:
            if name not in factories:
                raise ValueError(f"Unknown compilation strategy '{name}' (expected one of {', '.join(STRATEGY_NAMES)})")
            strategies.append(factories[name]())
        return cls(strategies)

    async def compile(self, compile_input: CompileInput) -> CompiledArtifact:
        failures: list[StrategyError] = []
        for strategy in self._strategies:
            logger.info("Compiling %s with strategy '%s'", compile_input.contract_name, strategy.name)
            started = time.monotonic()
            try:
                artifact = await strategy.compile(compile_input)
            except StrategyError as exc:
                logger.info("Strategy '%s' failed (%s): %s", strategy.name, exc.kind.value, exc.message)
                failures.append(exc)
                continue
            except Exception as exc:
                logger.warning("Strategy '%s' raised %s: %s", strategy.name, type(exc).__name__, exc, exc_info=True)
                failure = StrategyError(strategy.name, f"unexpected {type(exc).__name__}: {exc}", output=repr(exc))
                failure.__cause__ = exc
                failures.append(failure)
                continue
            logger.info(
                "Strategy '%s' compiled %s in %.2fs",
                strategy.name,
                compile_input.contract_name,
                time.monotonic() - started,
            )
            return artifact

        kind = aggregate_kind(failures)
        logger.warning("All %d strategies failed for %s (%s)", len(failures), compile_input.contract_name, kind.value)
        raise CompilationError(failures, kind)

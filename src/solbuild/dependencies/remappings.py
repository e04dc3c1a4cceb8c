# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Remapping generation and serialization.

Generation is deterministic: coordinates are ordered by (package,
default-first, version), the first rule for a prefix wins, and the result is
sorted longest prefix first so versioned prefixes shadow generic ones.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from pathlib import Path

from solbuild.dependencies.resolver import coordinate_for, folder_suffix, version_tag
from solbuild.dependencies.table import DependencyTable
from solbuild.model.dependency import DependencyCoordinate, RemappingLayout, RemappingRule

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

REMAPPINGS_FILE = "remappings.txt"
PROJECT_CONFIG_FILE = "foundry.toml"


def rules_for(coordinate: DependencyCoordinate) -> list[RemappingRule]:
    """Return the remapping rules of a single coordinate, in template order."""
    root = f"lib/{coordinate.folder}/"
    source = _source_path(coordinate)
    rules: list[RemappingRule] = []

    if coordinate.layout is RemappingLayout.SCOPED_PACKAGE:
        label = coordinate.import_version or folder_suffix(coordinate.version)
        rules.append(RemappingRule(f"{coordinate.package}@{label}/", source))
    else:
        folder_target = root if coordinate.layout is RemappingLayout.FLAT_NAMESPACE else source
        rules.append(RemappingRule(f"{coordinate.folder}/", folder_target))
        if coordinate.import_version is not None:
            rules.append(RemappingRule(f"{coordinate.package}@{coordinate.import_version}/", source))

    if coordinate.is_default:
        rules.append(RemappingRule(coordinate.prefix, source))
    return rules


def generate_remappings(coordinates: Iterable[DependencyCoordinate]) -> list[RemappingRule]:
    """Generate the deduplicated, ordered remapping rules for *coordinates*.

    Identical input always produces identical output.
    """
    ordered = sorted(coordinates, key=_coordinate_order)
    return _finalize(rule for coordinate in ordered for rule in rules_for(coordinate))


def remappings_from_listing(lib_dir: Path, table: DependencyTable) -> list[RemappingRule]:
    """Generate remappings for every directory found below *lib_dir*.

    Directories named after a table folder (``<folder>`` or
    ``<folder>-<version>``) use the table's layout. Unknown directories map
    ``<dir>/`` to their ``src/`` subdirectory when it exists, else to the
    directory itself.
    """
    if not lib_dir.is_dir():
        return []

    coordinates: list[DependencyCoordinate] = []
    unknown: list[RemappingRule] = []
    for entry in sorted(lib_dir.iterdir(), key=lambda p: p.name):
        if not entry.is_dir() or entry.name.startswith("."):
            continue
        matched = table.match_folder(entry.name)
        if matched is None:
            target = f"lib/{entry.name}/src/" if (entry / "src").is_dir() else f"lib/{entry.name}/"
            unknown.append(RemappingRule(f"{entry.name}/", target))
            continue
        mapping, suffix = matched
        if suffix is None:
            version = mapping.default_version
        else:
            version = mapping.versions.get(suffix) or version_tag(suffix)
        coordinate = coordinate_for(mapping, version, import_version=suffix)
        if coordinate.folder != entry.name:
            # Bare or aliased folder names: remap the directory that actually exists.
            coordinate = dataclasses.replace(coordinate, folder=entry.name)
        coordinates.append(coordinate)

    ordered = sorted(coordinates, key=_coordinate_order)
    rules = [rule for coordinate in ordered for rule in rules_for(coordinate)]
    return _finalize([*rules, *unknown])


def render_remappings_txt(rules: Iterable[RemappingRule]) -> str:
    """Render rules as a newline-delimited ``remappings.txt`` document."""
    lines = [rule.render() for rule in rules]
    return "\n".join(lines) + "\n" if lines else ""


def render_project_config(rules: Iterable[RemappingRule], *, evm_version: str | None = None) -> str:
    """Render a ``foundry.toml`` whose default profile embeds the remapping array."""
    lines = [
        "[profile.default]",
        "src = 'src'",
        "out = 'out'",
        "libs = ['lib']",
    ]
    if evm_version is not None:
        lines.append(f"evm_version = '{evm_version}'")
    rendered = [f'  "{rule.render()}",' for rule in rules]
    if rendered:
        lines.append("remappings = [")
        lines.extend(rendered)
        lines.append("]")
    else:
        lines.append("remappings = []")
    return "\n".join(lines) + "\n"


def write_remappings(workspace: Path, rules: list[RemappingRule], *, evm_version: str | None = None) -> None:
    """Write ``remappings.txt`` and ``foundry.toml`` into *workspace*."""
    workspace.mkdir(parents=True, exist_ok=True)
    (workspace / REMAPPINGS_FILE).write_text(render_remappings_txt(rules), encoding="utf-8")
    (workspace / PROJECT_CONFIG_FILE).write_text(
        render_project_config(rules, evm_version=evm_version), encoding="utf-8"
    )
    logger.debug("Wrote %d remapping(s) to %s", len(rules), workspace)


# ################
# Implementation
# ################


def _source_path(coordinate: DependencyCoordinate) -> str:
    root = f"lib/{coordinate.folder}/"
    if coordinate.layout is RemappingLayout.SRC_SUBDIRECTORY:
        return root + "src/"
    if coordinate.source_dir:
        return f"{root}{coordinate.source_dir}/"
    return root


def _coordinate_order(coordinate: DependencyCoordinate) -> tuple[str, bool, str, str]:
    return (coordinate.package, not coordinate.is_default, coordinate.version, coordinate.import_version or "")


def _finalize(rules: Iterable[RemappingRule]) -> list[RemappingRule]:
    """Drop later rules that repeat a prefix, then sort longest prefix first."""
    unique: dict[str, RemappingRule] = {}
    for rule in rules:
        if rule.prefix in unique:
            if unique[rule.prefix].path != rule.path:
                logger.debug("Dropping remapping %s (prefix already mapped)", rule.render())
            continue
        unique[rule.prefix] = rule
    return sorted(unique.values(), key=lambda r: (-len(r.prefix), r.prefix))


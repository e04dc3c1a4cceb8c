# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Entry point for the SolBuild command-line interface."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from solbuild.config.settings import Settings
from solbuild.errors import SolbuildError, error_payload
from solbuild.parser.imports import extract_pragma_version

# ###############
# Public Interface
# ###############


def main(argv: list[str] | None = None) -> None:
    """Run the SolBuild CLI."""
    parser = argparse.ArgumentParser(
        prog="solbuild",
        description="SolBuild: Solidity compilation orchestrator",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # compile subcommand
    compile_parser = subparsers.add_parser(
        "compile",
        help="Compile a Solidity source file",
        description="Resolve the file's imports, compile it and print the artifact as JSON.",
    )
    compile_parser.add_argument("source", help="Path to the Solidity source file")
    compile_parser.add_argument(
        "--solc-version",
        help="Exact compiler version X.Y.Z (default: taken from the pragma)",
    )
    compile_parser.add_argument("--contract-name", help="Main contract (default: inferred from the source)")
    compile_parser.add_argument("--no-optimize", action="store_true", help="Disable the optimizer")
    compile_parser.add_argument("--optimize-runs", type=int, default=200, help="Optimizer runs (default: 200)")
    compile_parser.add_argument("--evm-version", help="EVM target (default: derived from the compiler version)")
    compile_parser.add_argument("--via-ir", action="store_true", help="Compile through the IR pipeline")
    compile_parser.add_argument("-o", "--output", help="Write the artifact JSON to this file instead of stdout")

    # remappings subcommand
    remappings_parser = subparsers.add_parser(
        "remappings",
        help="Print remappings for a library directory",
        description="Generate remappings for every dependency folder found in a lib directory.",
    )
    remappings_parser.add_argument(
        "lib_dir",
        nargs="?",
        help="Library directory to scan (default: the configured library root)",
    )
    remappings_parser.add_argument(
        "--write",
        metavar="DIRECTORY",
        help="Write remappings.txt and foundry.toml into DIRECTORY instead of printing",
    )

    # update-deps subcommand
    update_parser = subparsers.add_parser(
        "update-deps",
        help="Pin dependency versions to commits in the lockfile",
        description=(
            "Resolve the tags and branches of the dependency table to commit SHAs and "
            "write the results to the lockfile of the library root."
        ),
    )
    update_parser.add_argument(
        "--package",
        action="append",
        default=[],
        help="Only pin this package (e.g. @openzeppelin/contracts); may be repeated",
    )
    update_parser.add_argument(
        "--all-versions",
        action="store_true",
        help="Pin every version listed in the table, not only the default versions",
    )

    # sync-deps subcommand
    subparsers.add_parser(
        "sync-deps",
        help="Install locked dependencies into the library root",
        description="Clone every dependency folder listed in the lockfile at its pinned commit.",
    )

    # serve subcommand
    serve_parser = subparsers.add_parser(
        "serve",
        help="Launch the job history viewer",
        description="Launch a web-based UI listing recorded compilation jobs.",
    )
    serve_parser.add_argument("--port", type=int, help="Port to run the server on (default: 8050)")
    serve_parser.add_argument("--host", help="Host to bind the server to (default: 127.0.0.1)")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        settings = Settings()
    except ValidationError as exc:
        print(f"Error: invalid configuration: {exc}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(_dispatch(args, settings))


# ################
# Implementation
# ################


def _dispatch(args: argparse.Namespace, settings: Settings) -> int:
    """Dispatch to the appropriate subcommand handler."""
    if args.command == "compile":
        return _cmd_compile(args, settings)
    if args.command == "remappings":
        return _cmd_remappings(args, settings)
    if args.command == "update-deps":
        return _cmd_update_deps(args, settings)
    if args.command == "sync-deps":
        return _cmd_sync_deps(args, settings)
    if args.command == "serve":
        return _cmd_serve(args, settings)
    return 0


def _cmd_compile(args: argparse.Namespace, settings: Settings) -> int:
    """Handle the compile subcommand."""
    from solbuild.dependencies.table import DependencyTableError
    from solbuild.service.compiler import CompilationService

    source_path = Path(args.source)
    try:
        source = source_path.read_text(encoding="utf-8")
    except OSError as exc:
        print(f"Error: cannot read '{source_path}': {exc}", file=sys.stderr)
        return 1

    version = args.solc_version or extract_pragma_version(source)
    if version is None:
        print("Error: no pragma found; pass --solc-version.", file=sys.stderr)
        return 1

    payload: dict[str, object] = {
        "source": source,
        "version": version,
        "settings": {
            "optimizer": {"enabled": not args.no_optimize, "runs": args.optimize_runs},
            "evmVersion": args.evm_version,
            "viaIR": args.via_ir,
        },
    }
    if args.contract_name:
        payload["contractName"] = args.contract_name

    async def run() -> dict[str, object]:
        async with CompilationService(settings) as service:
            result = await service.compile_payload(payload)
        return {
            "jobId": result.job_id,
            "cached": result.cached,
            "remappings": [rule.render() for rule in result.remappings],
            "artifact": result.artifact.to_json_dict(),
        }

    try:
        document = asyncio.run(run())
    except DependencyTableError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except SolbuildError as exc:
        details = error_payload(exc, include_details=not settings.is_production)
        print(f"Error: {exc}", file=sys.stderr)
        print(json.dumps(details, indent=2), file=sys.stderr)
        return 1

    text = json.dumps(document, indent=2)
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
        print(f"Artifact written to {args.output}")
    else:
        print(text)
    return 0


def _cmd_remappings(args: argparse.Namespace, settings: Settings) -> int:
    """Handle the remappings subcommand."""
    from solbuild.dependencies.remappings import remappings_from_listing, render_remappings_txt, write_remappings
    from solbuild.dependencies.table import DependencyTableError
    from solbuild.service.compiler import load_table

    lib_dir = Path(args.lib_dir).resolve() if args.lib_dir else settings.lib_root
    if lib_dir is None or not lib_dir.is_dir():
        print(f"Error: library directory '{lib_dir}' does not exist.", file=sys.stderr)
        return 1

    try:
        table = load_table(settings)
    except DependencyTableError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    rules = remappings_from_listing(lib_dir, table)
    if args.write:
        target = Path(args.write).resolve()
        write_remappings(target, rules)
        print(f"Wrote {len(rules)} remapping(s) to {target}")
    else:
        print(render_remappings_txt(rules), end="")
    return 0


def _cmd_update_deps(args: argparse.Namespace, settings: Settings) -> int:
    """Handle the update-deps subcommand."""
    from solbuild.dependencies.git_ops import GitError, is_commit_hash, repository_url, resolve_commit
    from solbuild.dependencies.lockfile import LockedDependency, Lockfile, LockfileError, load_lockfile, save_lockfile
    from solbuild.dependencies.resolver import coordinate_for
    from solbuild.dependencies.table import DependencyTableError
    from solbuild.service.compiler import load_table

    lockfile_path = settings.lockfile_path
    if lockfile_path is None:
        print("Error: no library root configured (set SOLBUILD_LIB_ROOT).", file=sys.stderr)
        return 1

    try:
        table = load_table(settings)
    except DependencyTableError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    mappings = [m for m in table.packages if not args.package or m.package in args.package]
    if not mappings:
        print("No matching packages in the dependency table. Nothing to update.")
        return 0

    if lockfile_path.exists():
        try:
            lockfile = load_lockfile(lockfile_path)
        except LockfileError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
    else:
        lockfile = Lockfile()

    locked_by_folder = lockfile.by_folder()

    has_errors = False
    for mapping in mappings:
        versions = [mapping.default_version]
        if args.all_versions:
            versions += sorted(set(mapping.versions.values()) - {mapping.default_version})
        for version in versions:
            coordinate = coordinate_for(mapping, version)
            if is_commit_hash(version):
                commit = version
            else:
                print(f"  {coordinate.folder}: resolving '{version}'...")
                try:
                    commit = resolve_commit(repository_url(mapping.repository), version)
                except GitError as exc:
                    print(f"Error: failed to resolve '{coordinate.folder}': {exc}", file=sys.stderr)
                    has_errors = True
                    continue
            print(f"  {coordinate.folder}: pinned at {commit[:8]}")
            locked_by_folder[coordinate.folder] = LockedDependency(
                folder=coordinate.folder,
                repository=mapping.repository,
                version=version,
                commit=commit,
            )

    if has_errors:
        return 1

    lockfile.locked_dependencies = list(locked_by_folder.values())
    try:
        save_lockfile(lockfile, lockfile_path)
    except LockfileError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Lockfile updated: {lockfile_path}")
    return 0


def _cmd_sync_deps(args: argparse.Namespace, settings: Settings) -> int:
    """Handle the sync-deps subcommand."""
    from solbuild.dependencies.git_ops import GitError, clone_at_commit, get_current_commit, repository_url
    from solbuild.dependencies.lockfile import LockfileError, load_lockfile

    lockfile_path = settings.lockfile_path
    if settings.lib_root is None or lockfile_path is None:
        print("Error: no library root configured (set SOLBUILD_LIB_ROOT).", file=sys.stderr)
        return 1

    if not lockfile_path.exists():
        print(
            "Error: lockfile not found. Run 'solbuild update-deps' to create the lockfile.",
            file=sys.stderr,
        )
        return 1

    try:
        lockfile = load_lockfile(lockfile_path)
    except LockfileError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if not lockfile.locked_dependencies:
        print("Lockfile is empty. Nothing to sync.")
        return 0

    has_errors = False
    for entry in lockfile.locked_dependencies:
        target_dir = settings.lib_root / entry.folder
        try:
            current = get_current_commit(target_dir)
        except GitError as exc:
            print(f"Error: cannot check current state of '{entry.folder}': {exc}", file=sys.stderr)
            has_errors = True
            continue

        if current == entry.commit:
            print(f"  {entry.folder}: already at {entry.commit[:8]}")
            continue

        print(f"  {entry.folder}: syncing to {entry.commit[:8]}...")
        try:
            clone_at_commit(repository_url(entry.repository), entry.commit, target_dir)
            print(f"  {entry.folder}: done.")
        except GitError as exc:
            print(f"Error: failed to sync '{entry.folder}': {exc}", file=sys.stderr)
            has_errors = True

    return 1 if has_errors else 0


def _cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    """Handle the serve subcommand."""
    if settings.artifacts_dir is None:
        print("Error: no artifacts directory configured (set SOLBUILD_ARTIFACTS_DIR).", file=sys.stderr)
        return 1

    from solbuild.webui.app import create_app

    host = args.host or settings.host
    port = args.port or settings.port
    print(f"Serving job history at http://{host}:{port}/")
    app = create_app(artifacts_dir=settings.artifacts_dir)
    app.run(host=host, port=port, debug=False)
    return 0

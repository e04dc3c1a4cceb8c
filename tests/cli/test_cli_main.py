# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the SolBuild CLI entry point."""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml

from solbuild.cli.main import main
from solbuild.dependencies.git_ops import GitError
from solbuild.dependencies.lockfile import LOCKFILE_NAME
from solbuild.errors import ErrorKind, StrategyError
from solbuild.model.artifact import CompiledArtifact, ContractArtifact
from solbuild.toolchain.chain import StrategyChain
from solbuild.toolchain.strategies import Strategy

# ###############
# Public Interface
# ###############

_SOURCE = "// SPDX-License-Identifier: MIT\npragma solidity ^0.8.19;\n\ncontract Token {}\n"
_COMMIT_40 = "a" * 40


class _StaticStrategy(Strategy):
    """Returns a fixed artifact or raises a fixed error."""

    name = "static"

    def __init__(self, error=None):
        self.error = error
        self.inputs = []

    async def _compile(self, compile_input):
        self.inputs.append(compile_input)
        if self.error is not None:
            raise self.error
        return CompiledArtifact(
            contracts={
                f"{compile_input.source_file}:{compile_input.contract_name}": ContractArtifact(abi=[], bytecode="6080")
            },
            compiler_version=compile_input.version,
            evm_version=compile_input.evm_version,
            strategy=self.name,
        )


@pytest.fixture
def env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every configured directory into *tmp_path*."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SOLBUILD_WORK_DIR", str(tmp_path / "work"))
    monkeypatch.setenv("SOLBUILD_ARTIFACTS_DIR", str(tmp_path / "artifacts"))
    monkeypatch.setenv("SOLBUILD_LIB_ROOT", str(tmp_path / "lib"))
    monkeypatch.setenv("SOLBUILD_FETCH_DEPENDENCIES", "false")
    return tmp_path


def _run(monkeypatch: pytest.MonkeyPatch, *args: str) -> int:
    monkeypatch.setattr(sys, "argv", ["solbuild", *args])
    with pytest.raises(SystemExit) as exc_info:
        main()
    return exc_info.value.code


# -------- general tests --------


def test_no_command_prints_help(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """Running without a command prints help and exits with 0."""
    assert _run(monkeypatch) == 0
    assert "compile" in capsys.readouterr().out


def test_invalid_configuration_exits_with_error(
    env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """An invalid environment variable is reported before any command runs."""
    monkeypatch.setenv("SOLBUILD_MAX_CONCURRENT", "0")
    assert _run(monkeypatch, "sync-deps") == 1
    assert "invalid configuration" in capsys.readouterr().err


# -------- compile tests --------


def test_compile_prints_artifact(env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """compile prints the job id and the artifact as JSON."""
    (env / "Token.sol").write_text(_SOURCE)
    strategy = _StaticStrategy()
    with patch.object(StrategyChain, "from_names", return_value=StrategyChain([strategy])):
        code = _run(monkeypatch, "compile", "Token.sol")
    assert code == 0
    document = json.loads(capsys.readouterr().out)
    assert document["cached"] is False
    assert document["jobId"]
    assert document["artifact"]["contracts"]["src/Token.sol:Token"]["bytecode"] == "0x6080"
    assert strategy.inputs[0].version == "0.8.19"
    assert strategy.inputs[0].settings.optimizer.enabled is True


def test_compile_passes_options(env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Command-line options end up in the compilation request."""
    (env / "Token.sol").write_text(_SOURCE)
    strategy = _StaticStrategy()
    with patch.object(StrategyChain, "from_names", return_value=StrategyChain([strategy])):
        code = _run(
            monkeypatch,
            "compile",
            "Token.sol",
            "--solc-version",
            "0.8.20",
            "--contract-name",
            "Token",
            "--no-optimize",
            "--evm-version",
            "london",
        )
    assert code == 0
    compile_input = strategy.inputs[0]
    assert compile_input.version == "0.8.20"
    assert compile_input.contract_name == "Token"
    assert compile_input.settings.optimizer.enabled is False
    assert compile_input.evm_version == "london"


def test_compile_writes_output_file(env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """--output writes the artifact JSON to a file."""
    (env / "Token.sol").write_text(_SOURCE)
    with patch.object(StrategyChain, "from_names", return_value=StrategyChain([_StaticStrategy()])):
        code = _run(monkeypatch, "compile", "Token.sol", "-o", "token.json")
    assert code == 0
    assert "Artifact written to token.json" in capsys.readouterr().out
    document = json.loads((env / "token.json").read_text())
    assert "src/Token.sol:Token" in document["artifact"]["contracts"]


def test_compile_fails_without_pragma(
    env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """A source without pragma needs an explicit --solc-version."""
    (env / "Token.sol").write_text("contract Token {}\n")
    assert _run(monkeypatch, "compile", "Token.sol") == 1
    assert "no pragma found" in capsys.readouterr().err


def test_compile_fails_for_missing_file(env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """compile exits with 1 when the source file does not exist."""
    assert _run(monkeypatch, "compile", "Missing.sol") == 1


def test_compile_reports_failure(env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """A failed compilation prints the message and the error payload."""
    (env / "Token.sol").write_text(_SOURCE)
    error = StrategyError("static", "ParserError: Expected ';'", kind=ErrorKind.SYNTAX)
    with patch.object(StrategyChain, "from_names", return_value=StrategyChain([_StaticStrategy(error=error)])):
        code = _run(monkeypatch, "compile", "Token.sol")
    assert code == 1
    err = capsys.readouterr().err
    assert "Error: All compilation strategies failed" in err
    assert '"kind": "syntax"' in err


def test_compile_reports_missing_dependency_table(
    env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """A configured dependency table that does not exist is reported without a traceback."""
    (env / "Token.sol").write_text(_SOURCE)
    monkeypatch.setenv("SOLBUILD_DEPENDENCY_TABLE", str(env / "missing.yaml"))
    assert _run(monkeypatch, "compile", "Token.sol") == 1
    assert "Error: Dependency table not found" in capsys.readouterr().err


def test_compile_reports_invalid_dependency_table(
    env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """A malformed dependency table is reported without a traceback."""
    (env / "Token.sol").write_text(_SOURCE)
    (env / "table.yaml").write_text("packages: [\n")
    monkeypatch.setenv("SOLBUILD_DEPENDENCY_TABLE", str(env / "table.yaml"))
    assert _run(monkeypatch, "compile", "Token.sol") == 1
    assert capsys.readouterr().err.startswith("Error: ")


# -------- remappings tests --------


def test_remappings_prints_rules(env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """remappings prints one rule per line for the folders of the lib directory."""
    (env / "lib" / "solmate" / "src").mkdir(parents=True)
    (env / "lib" / "plain").mkdir()
    assert _run(monkeypatch, "remappings") == 0
    assert capsys.readouterr().out.splitlines() == ["solmate/=lib/solmate/src/", "plain/=lib/plain/"]


def test_remappings_writes_files(env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """--write stores remappings.txt and foundry.toml in the target directory."""
    (env / "deps" / "solmate" / "src").mkdir(parents=True)
    (env / "project").mkdir()
    assert _run(monkeypatch, "remappings", "deps", "--write", "project") == 0
    assert "Wrote 1 remapping(s)" in capsys.readouterr().out
    assert (env / "project" / "remappings.txt").read_text() == "solmate/=lib/solmate/src/\n"
    assert (env / "project" / "foundry.toml").exists()


def test_remappings_fails_for_missing_directory(env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """remappings exits with 1 when the lib directory does not exist."""
    assert _run(monkeypatch, "remappings", "nonexistent") == 1


# -------- update-deps tests --------


def test_update_deps_pins_selected_package(
    env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """update-deps resolves the default version and writes the lockfile."""
    with patch("solbuild.dependencies.git_ops.resolve_commit", return_value=_COMMIT_40) as mock_resolve:
        code = _run(monkeypatch, "update-deps", "--package", "solmate")
    assert code == 0
    mock_resolve.assert_called_once_with("https://github.com/transmissions11/solmate.git", "main")
    data = yaml.safe_load((env / "lib" / LOCKFILE_NAME).read_text())
    assert data["locked-dependencies"] == [
        {"folder": "solmate-main", "repository": "transmissions11/solmate", "version": "main", "commit": _COMMIT_40}
    ]
    assert "pinned at aaaaaaaa" in capsys.readouterr().out


def test_update_deps_all_versions(env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """--all-versions pins every tag listed for the package."""
    with patch("solbuild.dependencies.git_ops.resolve_commit", return_value=_COMMIT_40):
        code = _run(monkeypatch, "update-deps", "--package", "@openzeppelin/contracts", "--all-versions")
    assert code == 0
    data = yaml.safe_load((env / "lib" / LOCKFILE_NAME).read_text())
    folders = [entry["folder"] for entry in data["locked-dependencies"]]
    assert "openzeppelin-contracts-4.9.5" in folders
    assert "openzeppelin-contracts-4.9.3" in folders
    assert folders == sorted(folders)


def test_update_deps_keeps_existing_entries(env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Entries of other packages already in the lockfile are preserved."""
    (env / "lib").mkdir()
    (env / "lib" / LOCKFILE_NAME).write_text(
        "locked-dependencies:\n"
        "  - folder: solady-main\n"
        "    repository: Vectorized/solady\n"
        "    version: main\n"
        f"    commit: {'b' * 40}\n"
    )
    with patch("solbuild.dependencies.git_ops.resolve_commit", return_value=_COMMIT_40):
        code = _run(monkeypatch, "update-deps", "--package", "solmate")
    assert code == 0
    data = yaml.safe_load((env / "lib" / LOCKFILE_NAME).read_text())
    assert [entry["folder"] for entry in data["locked-dependencies"]] == ["solady-main", "solmate-main"]


def test_update_deps_unknown_package(env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """A package filter matching nothing is not an error."""
    assert _run(monkeypatch, "update-deps", "--package", "not-a-package") == 0
    assert "Nothing to update" in capsys.readouterr().out
    assert not (env / "lib" / LOCKFILE_NAME).exists()


def test_update_deps_reports_resolution_failure(
    env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """A failed resolution exits with 1 and leaves the lockfile untouched."""
    with patch("solbuild.dependencies.git_ops.resolve_commit", side_effect=GitError("network down")):
        code = _run(monkeypatch, "update-deps", "--package", "solmate")
    assert code == 1
    assert "failed to resolve 'solmate-main'" in capsys.readouterr().err
    assert not (env / "lib" / LOCKFILE_NAME).exists()


# -------- sync-deps tests --------


def _write_lockfile(lib_root: Path) -> None:
    lib_root.mkdir(parents=True, exist_ok=True)
    (lib_root / LOCKFILE_NAME).write_text(
        "locked-dependencies:\n"
        "  - folder: solmate-main\n"
        "    repository: transmissions11/solmate\n"
        "    version: main\n"
        f"    commit: {_COMMIT_40}\n"
    )


def test_sync_deps_fails_without_lockfile(
    env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """sync-deps exits with 1 when no lockfile exists."""
    assert _run(monkeypatch, "sync-deps") == 1
    assert "lockfile not found" in capsys.readouterr().err


def test_sync_deps_empty_lockfile(env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """An empty lockfile is a no-op."""
    (env / "lib").mkdir()
    (env / "lib" / LOCKFILE_NAME).write_text("")
    assert _run(monkeypatch, "sync-deps") == 0
    assert "Nothing to sync" in capsys.readouterr().out


def test_sync_deps_skips_folder_already_at_commit(
    env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """A folder already at the pinned commit is not cloned again."""
    _write_lockfile(env / "lib")
    with (
        patch("solbuild.dependencies.git_ops.get_current_commit", return_value=_COMMIT_40),
        patch("solbuild.dependencies.git_ops.clone_at_commit") as mock_clone,
    ):
        code = _run(monkeypatch, "sync-deps")
    assert code == 0
    mock_clone.assert_not_called()
    assert "already at" in capsys.readouterr().out


def test_sync_deps_clones_folder(env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A missing or outdated folder is cloned at the pinned commit."""
    _write_lockfile(env / "lib")
    with (
        patch("solbuild.dependencies.git_ops.get_current_commit", return_value=None),
        patch("solbuild.dependencies.git_ops.clone_at_commit") as mock_clone,
    ):
        code = _run(monkeypatch, "sync-deps")
    assert code == 0
    mock_clone.assert_called_once_with(
        "https://github.com/transmissions11/solmate.git",
        _COMMIT_40,
        (env / "lib" / "solmate-main").resolve(),
    )


def test_sync_deps_reports_clone_failure(
    env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """A failed clone exits with 1."""
    _write_lockfile(env / "lib")
    with (
        patch("solbuild.dependencies.git_ops.get_current_commit", return_value=None),
        patch("solbuild.dependencies.git_ops.clone_at_commit", side_effect=GitError("clone failed")),
    ):
        code = _run(monkeypatch, "sync-deps")
    assert code == 1
    assert "failed to sync 'solmate-main'" in capsys.readouterr().err


# -------- serve tests --------


def test_serve_launches_app(env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """serve creates and runs the history app with the configured defaults."""
    mock_app = MagicMock()
    with patch("solbuild.webui.app.create_app", return_value=mock_app) as mock_create:
        code = _run(monkeypatch, "serve")
    assert code == 0
    mock_create.assert_called_once_with(artifacts_dir=(env / "artifacts").resolve())
    mock_app.run.assert_called_once_with(host="127.0.0.1", port=8050, debug=False)


def test_serve_custom_host_and_port(env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """serve passes custom host and port to the app."""
    mock_app = MagicMock()
    with patch("solbuild.webui.app.create_app", return_value=mock_app):
        code = _run(monkeypatch, "serve", "--host", "0.0.0.0", "--port", "9000")
    assert code == 0
    mock_app.run.assert_called_once_with(host="0.0.0.0", port=9000, debug=False)

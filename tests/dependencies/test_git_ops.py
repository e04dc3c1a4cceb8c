# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the dependency git operations."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from solbuild.dependencies.git_ops import (
    GitError,
    clone_at_commit,
    clone_at_ref,
    get_current_commit,
    is_commit_hash,
    repository_url,
    resolve_commit,
)

# ###############
# Public Interface
# ###############

_COMMIT = "a1b2c3d4e5f6a1b2c3d4e5f6a1b2c3d4e5f6a1b2"
_TAG_OBJECT = "c" * 40
_COMMIT_B = "b" * 40
_REPO_URL = "https://github.com/OpenZeppelin/openzeppelin-contracts.git"


def _completed(returncode=0, stdout="", stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


def test_repository_url():
    """owner/repo becomes a GitHub clone URL."""
    assert repository_url("transmissions11/solmate") == "https://github.com/transmissions11/solmate.git"


@pytest.mark.parametrize(
    ("revision", "expected"),
    [("a" * 40, True), (_COMMIT, True), ("abc123", False), ("A" * 40, False), ("v4.9.5", False), ("", False)],
)
def test_is_commit_hash(revision, expected):
    """Only full lowercase 40-character SHAs are commit hashes."""
    assert is_commit_hash(revision) is expected


class TestResolveCommit:
    def test_returns_hash_directly_without_network(self):
        """A full commit hash is returned without calling git."""
        with patch("subprocess.run") as mock_run:
            assert resolve_commit(_REPO_URL, _COMMIT) == _COMMIT
        mock_run.assert_not_called()

    def test_resolves_branch(self):
        """A branch is resolved through git ls-remote."""
        with patch("subprocess.run", return_value=_completed(stdout=f"{_COMMIT}\trefs/heads/main\n")) as mock_run:
            assert resolve_commit(_REPO_URL, "main") == _COMMIT

        args = mock_run.call_args[0][0]
        assert args[:3] == ["git", "ls-remote", _REPO_URL]
        assert "refs/heads/main" in args
        assert "refs/tags/main^{}" in args

    def test_prefers_peeled_annotated_tag(self):
        """An annotated tag resolves to the commit it points at, not the tag object."""
        stdout = f"{_TAG_OBJECT}\trefs/tags/v4.9.5\n{_COMMIT}\trefs/tags/v4.9.5^{{}}\n"
        with patch("subprocess.run", return_value=_completed(stdout=stdout)):
            assert resolve_commit(_REPO_URL, "v4.9.5") == _COMMIT

    def test_prefers_branch_over_lightweight_tag(self):
        """A branch wins over a lightweight tag of the same name."""
        stdout = f"{_COMMIT_B}\trefs/tags/release\n{_COMMIT}\trefs/heads/release\n"
        with patch("subprocess.run", return_value=_completed(stdout=stdout)):
            assert resolve_commit(_REPO_URL, "release") == _COMMIT

    def test_raises_if_revision_not_found(self):
        """An empty ls-remote listing means the revision does not exist."""
        with patch("subprocess.run", return_value=_completed()):
            with pytest.raises(GitError, match="not found"):
                resolve_commit(_REPO_URL, "no-such-branch")

    def test_raises_if_ls_remote_fails(self):
        """A non-zero exit of ls-remote is reported."""
        with patch("subprocess.run", return_value=_completed(128, stderr="fatal: repository not found")):
            with pytest.raises(GitError, match="Failed to query remote"):
                resolve_commit(_REPO_URL, "main")

    def test_raises_if_git_not_found(self):
        """A missing git executable is reported as GitError."""
        with patch("subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(GitError, match="git executable not found"):
                resolve_commit(_REPO_URL, "main")

    def test_raises_on_timeout(self):
        """A timed out ls-remote is reported as GitError."""
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="git", timeout=60)):
            with pytest.raises(GitError, match="timed out"):
                resolve_commit(_REPO_URL, "main")

    def test_raises_if_output_is_malformed(self):
        """Output that is not a SHA is rejected."""
        with patch("subprocess.run", return_value=_completed(stdout="not-a-hash\trefs/heads/main\n")):
            with pytest.raises(GitError, match="Unexpected output"):
                resolve_commit(_REPO_URL, "main")


class TestCloneAtRef:
    def test_runs_shallow_clone_of_ref(self, tmp_path: Path):
        """clone_at_ref runs a depth-1 clone of the requested branch or tag."""
        target = tmp_path / "lib" / "openzeppelin-contracts-4.9.5"
        with patch("subprocess.run", return_value=_completed()) as mock_run:
            clone_at_ref(_REPO_URL, "v4.9.5", target)

        args = mock_run.call_args[0][0]
        assert args == ["git", "clone", "--quiet", "--depth", "1", "--branch", "v4.9.5", _REPO_URL, str(target)]
        assert target.parent.is_dir()

    def test_removes_partial_clone_on_failure(self, tmp_path: Path):
        """A failed clone leaves no target directory behind."""
        target = tmp_path / "repo"

        def side_effect(cmd, **kwargs):
            target.mkdir()
            return _completed(128, stderr="fatal: Remote branch v9.9.9 not found")

        with patch("subprocess.run", side_effect=side_effect):
            with pytest.raises(GitError, match="Remote branch"):
                clone_at_ref(_REPO_URL, "v9.9.9", target)

        assert not target.exists()

    def test_passes_timeout(self, tmp_path: Path):
        """The timeout is forwarded to the git process."""
        with patch("subprocess.run", return_value=_completed()) as mock_run:
            clone_at_ref(_REPO_URL, "main", tmp_path / "repo", timeout=7)
        assert mock_run.call_args.kwargs["timeout"] == 7


class TestCloneAtCommit:
    def test_runs_init_remote_fetch_checkout(self, tmp_path: Path):
        """clone_at_commit runs init, remote add, fetch and checkout in order."""
        target = tmp_path / "repo"
        with patch("subprocess.run", return_value=_completed()) as mock_run:
            clone_at_commit(_REPO_URL, _COMMIT, target)

        commands = [c[0][0] for c in mock_run.call_args_list]
        assert commands[0][:2] == ["git", "init"]
        assert "remote" in commands[1] and "add" in commands[1]
        assert "fetch" in commands[2] and _COMMIT in commands[2]
        assert commands[3][-2:] == ["--quiet", "FETCH_HEAD"]

    def test_removes_existing_directory_first(self, tmp_path: Path):
        """Stale content at the target is removed before cloning."""
        target = tmp_path / "repo"
        target.mkdir()
        (target / "stale.sol").write_text("old")

        with patch("subprocess.run", return_value=_completed()):
            clone_at_commit(_REPO_URL, _COMMIT, target)

        assert not (target / "stale.sol").exists()

    def test_cleans_up_on_failure(self, tmp_path: Path):
        """The target is removed when a step fails."""
        target = tmp_path / "repo"

        def side_effect(cmd, **kwargs):
            if "init" in cmd:
                target.mkdir(parents=True, exist_ok=True)
                return _completed()
            if "fetch" in cmd:
                return _completed(128, stderr="fatal: couldn't find remote ref")
            return _completed()

        with patch("subprocess.run", side_effect=side_effect):
            with pytest.raises(GitError, match="remote ref"):
                clone_at_commit(_REPO_URL, _COMMIT, target)

        assert not target.exists()


class TestGetCurrentCommit:
    def test_returns_head_commit(self, tmp_path: Path):
        """The HEAD SHA of a checkout is returned."""
        with patch("subprocess.run", return_value=_completed(stdout=f"{_COMMIT}\n")) as mock_run:
            assert get_current_commit(tmp_path) == _COMMIT

        args = mock_run.call_args[0][0]
        assert args[1:3] == ["-C", str(tmp_path)]

    def test_returns_none_outside_a_repository(self, tmp_path: Path):
        """A directory that is not a checkout yields None."""
        with patch("subprocess.run", return_value=_completed(128)):
            assert get_current_commit(tmp_path / "missing") is None

    def test_returns_none_for_malformed_output(self, tmp_path: Path):
        """Output that is not a SHA yields None."""
        with patch("subprocess.run", return_value=_completed(stdout="HEAD\n")):
            assert get_current_commit(tmp_path) is None

    def test_raises_if_git_not_found(self, tmp_path: Path):
        """A missing git executable is reported as GitError."""
        with patch("subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(GitError, match="git executable not found"):
                get_current_commit(tmp_path)

"""Tests for reposync.cli module."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from reposync.cli import build_parser, main
from reposync.config import SyncConfig
from reposync.synchronizer import extract_folder_name


@pytest.fixture
def base_path(tmp_path):
    """Project directory inside a temp parent for CLI testing."""
    path = tmp_path / "parent" / "project"
    path.mkdir(parents=True)
    return str(path)


def _fake_clone(args, cwd=None, timeout=None, executable="git"):
    (cwd / extract_folder_name(args[-1])).mkdir()
    return MagicMock(returncode=0, stdout="")


class TestBuildParser:
    def test_creates_parser(self):
        parser = build_parser()
        assert parser is not None

    def test_version_flag(self):
        parser = build_parser()
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_no_command_parses(self):
        parser = build_parser()
        args = parser.parse_args([])
        assert args.command is None

    def test_sync_command(self):
        parser = build_parser()
        args = parser.parse_args(["sync", "https://x/a.git", "-t", "/tmp", "-q", "--strict"])
        assert args.command == "sync"
        assert args.urls == ["https://x/a.git"]
        assert args.target == "/tmp"
        assert args.quiet is True
        assert args.strict is True

    def test_sync_defaults(self):
        parser = build_parser()
        args = parser.parse_args(["sync"])
        assert args.urls == []
        assert args.target is None
        assert args.json_output is False

    def test_add_repo_command(self):
        parser = build_parser()
        args = parser.parse_args(["add-repo", "https://github.com/org/repo.git"])
        assert args.command == "add-repo"
        assert args.url == "https://github.com/org/repo.git"

    def test_workspace_command(self):
        parser = build_parser()
        args = parser.parse_args(["workspace", "-o", "dev.code-workspace", "--merge"])
        assert args.command == "workspace"
        assert args.output == "dev.code-workspace"
        assert args.merge is True


class TestMainFunction:
    def test_no_args_returns_zero(self):
        result = main([])
        assert result == 0

    @patch("reposync.synchronizer.shutil.which", return_value="/usr/bin/git")
    @patch("reposync.synchronizer._run_git", side_effect=_fake_clone)
    def test_sync_clones(self, mock_git, mock_which, base_path, capsys):
        result = main(["--base-path", base_path, "sync", "https://github.com/org/alpha.git"])

        assert result == 0
        assert mock_git.call_count == 1
        assert "Cloned: 1" in capsys.readouterr().out

    @patch("reposync.synchronizer.shutil.which", return_value="/usr/bin/git")
    @patch("reposync.synchronizer._run_git")
    def test_sync_errors_are_not_fatal(self, mock_git, mock_which, base_path):
        mock_git.return_value = MagicMock(returncode=128, stdout="fatal: nope")
        result = main(["--base-path", base_path, "sync", "https://github.com/org/alpha.git"])
        assert result == 0

    @patch("reposync.synchronizer.shutil.which", return_value="/usr/bin/git")
    @patch("reposync.synchronizer._run_git")
    def test_sync_strict_fails_on_errors(self, mock_git, mock_which, base_path):
        mock_git.return_value = MagicMock(returncode=128, stdout="fatal: nope")
        result = main([
            "--base-path", base_path, "sync", "--strict", "https://github.com/org/alpha.git",
        ])
        assert result == 1

    @patch("reposync.synchronizer.shutil.which", return_value=None)
    def test_sync_without_git_fails(self, mock_which, base_path, capsys):
        result = main(["--base-path", base_path, "sync", "https://github.com/org/alpha.git"])
        assert result == 1
        assert "not found on PATH" in capsys.readouterr().out

    @patch("reposync.synchronizer.shutil.which", return_value="/usr/bin/git")
    def test_sync_missing_target_fails(self, mock_which, base_path, tmp_path):
        result = main([
            "--base-path", base_path, "sync", "-t", str(tmp_path / "missing"),
            "https://github.com/org/alpha.git",
        ])
        assert result == 1

    @patch("reposync.synchronizer.shutil.which", return_value="/usr/bin/git")
    @patch("reposync.synchronizer._run_git", side_effect=_fake_clone)
    def test_sync_json_output(self, mock_git, mock_which, base_path, capsys):
        result = main([
            "--base-path", base_path, "sync", "-j", "https://github.com/org/alpha.git",
        ])
        data = json.loads(capsys.readouterr().out)
        assert result == 0
        assert data["status"] == "success"
        assert data["cloned"] == 1

    @patch("reposync.synchronizer.shutil.which", return_value="/usr/bin/git")
    @patch("reposync.synchronizer._run_git", side_effect=_fake_clone)
    def test_sync_uses_repos_file(self, mock_git, mock_which, base_path):
        main(["--base-path", base_path, "add-repo", "https://github.com/org/listed.git"])

        result = main(["--base-path", base_path, "sync", "-q"])

        assert result == 0
        assert mock_git.call_args[0][0] == ["clone", "https://github.com/org/listed.git"]

    def test_add_repo(self, base_path):
        result = main(["--base-path", base_path, "add-repo", "https://github.com/org/repo.git"])
        assert result == 0

    def test_add_repo_invalid(self, base_path):
        result = main(["--base-path", base_path, "add-repo", "not-a-url"])
        assert result == 1

    def test_add_repo_duplicate(self, base_path):
        main(["--base-path", base_path, "add-repo", "https://github.com/org/repo.git"])
        result = main(["--base-path", base_path, "add-repo", "https://github.com/org/repo.git"])
        assert result == 1

    def test_workspace(self, base_path):
        main(["--base-path", base_path, "add-repo", "https://github.com/org/alpha.git"])

        result = main(["--base-path", base_path, "workspace"])

        path = f"{base_path}/project.code-workspace"
        with open(path) as f:
            doc = json.load(f)
        assert result == 0
        assert {"path": "../alpha"} in doc["folders"]

    def test_workspace_merge(self, base_path):
        path = f"{base_path}/dev.code-workspace"
        with open(path, "w") as f:
            json.dump({"folders": [{"path": "."}], "settings": {"x": 1}}, f)
        main(["--base-path", base_path, "add-repo", "https://github.com/org/alpha.git"])

        result = main(["--base-path", base_path, "workspace", "-o", path, "--merge"])

        with open(path) as f:
            doc = json.load(f)
        assert result == 0
        assert doc["settings"] == {"x": 1}
        assert doc["folders"] == [{"path": "."}, {"path": "../alpha"}]

    def test_status(self, base_path):
        result = main(["--base-path", base_path, "status"])
        assert result == 0

    def test_status_json(self, base_path, capsys):
        result = main(["--base-path", base_path, "status", "-j"])
        data = json.loads(capsys.readouterr().out)
        assert result == 0
        assert "config" in data
        assert len(data["sync"]["repositories"]) == 2

    @patch("reposync.synchronizer.shutil.which", return_value=None)
    def test_sync_json_fatal_is_json(self, mock_which, base_path, capsys):
        result = main([
            "--base-path", base_path, "sync", "-j", "https://github.com/org/alpha.git",
        ])
        data = json.loads(capsys.readouterr().out)
        assert result == 1
        assert data["status"] == "fatal"
        assert "not found on PATH" in data["error"]


class TestConfigCommand:
    def test_parser(self):
        parser = build_parser()
        args = parser.parse_args(["config", "set", "sync.clone_timeout", "30"])
        assert args.command == "config"
        assert args.config_command == "set"
        assert args.key == "sync.clone_timeout"
        assert args.value == "30"

    def test_no_subcommand(self, base_path):
        assert main(["--base-path", base_path, "config"]) == 1

    def test_show(self, base_path, capsys):
        result = main(["--base-path", base_path, "config", "show"])
        data = json.loads(capsys.readouterr().out)
        assert result == 0
        assert data["clone_timeout"] == 600

    def test_set_persists(self, base_path):
        result = main(["--base-path", base_path, "config", "set", "sync.clone_timeout", "30"])

        assert result == 0
        assert SyncConfig(base_path=Path(base_path)).clone_timeout == 30

    def test_get(self, base_path, capsys):
        result = main(["--base-path", base_path, "config", "get", "sync.git_executable"])
        assert result == 0
        assert capsys.readouterr().out.strip() == "git"

    def test_get_unset(self, base_path):
        assert main(["--base-path", base_path, "config", "get", "sync.target_dir"]) == 1

    def test_bad_key(self, base_path):
        assert main(["--base-path", base_path, "config", "set", "nodot", "x"]) == 1

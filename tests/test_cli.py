"""Tests for the command line interface."""

from pathlib import Path

import pytest

from src import cli


class TestParser:
    """Tests for argument parsing."""

    def test_serve_defaults(self):
        args = cli.build_parser().parse_args(["serve"])

        assert args.func is cli.cmd_serve
        assert args.host is None
        assert args.port is None
        assert args.dev is False
        assert args.watch is None
        assert args.poll_interval_ms == 300

    def test_watch_roots(self):
        args = cli.build_parser().parse_args(["watch", "src", "tests", "--follow-symlinks"])

        assert args.func is cli.cmd_watch
        assert args.roots == ["src", "tests"]
        assert args.follow_symlinks is True

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestServerConfigFromArgs:
    """Tests for merging environment and command line settings."""

    def test_env_used_without_flags(self, monkeypatch):
        monkeypatch.setenv("DEV_SERVER_PORT", "9100")
        monkeypatch.setenv("DEV_MODE", "1")
        monkeypatch.delenv("DEV_WATCH_PATHS", raising=False)
        args = cli.build_parser().parse_args(["serve"])

        cfg = cli.server_config_from_args(args)

        assert cfg.port == 9100
        assert cfg.dev_mode is True
        assert cfg.watch_paths == [Path("src")]

    def test_flags_override_env(self, monkeypatch):
        monkeypatch.setenv("DEV_SERVER_PORT", "9100")
        args = cli.build_parser().parse_args(
            ["serve", "--port", "9200", "--dev", "--watch", "app", "templates"]
        )

        cfg = cli.server_config_from_args(args)

        assert cfg.port == 9200
        assert cfg.dev_mode is True
        assert cfg.watch_paths == [Path("app"), Path("templates")]


class TestWatchCommand:
    """Tests for the watch command."""

    def test_missing_root(self, tmp_path):
        assert cli.main(["watch", str(tmp_path / "missing")]) == 1

    def test_file_root(self, tmp_path):
        f = tmp_path / "file.txt"
        f.write_text("x")

        assert cli.main(["watch", str(f)]) == 1

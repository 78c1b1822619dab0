"""Tests for cli/main.py driven through click's CliRunner."""
from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from pylogrotate.cli.main import cli
from pylogrotate.runner import ExitCode


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def log_setup(tmp_path: Path) -> tuple[Path, Path, Path]:
    log_file = tmp_path / "app.log"
    log_file.write_text("hello\n", encoding="utf-8")
    config = tmp_path / "logrotate.conf"
    config.write_text(f'"{log_file}" {{\nrotate 2\n}}\n', encoding="utf-8")
    return log_file, config, tmp_path / "logrotate.status"


# ---------------------------------------------------------------------------
# rotate
# ---------------------------------------------------------------------------


class TestRotateCommand:
    def test_no_configs_prints_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["rotate"])
        assert result.exit_code == 0
        assert "CONFIGS" in result.output

    def test_forced_rotation(self, runner: CliRunner, log_setup: tuple[Path, Path, Path]) -> None:
        log_file, config, state = log_setup
        result = runner.invoke(cli, ["rotate", "-f", "-s", str(state), str(config)])
        assert result.exit_code == 0
        assert log_file.with_name("app.log.1").exists()
        assert state.exists()

    def test_state_from_environment(
        self, runner: CliRunner, log_setup: tuple[Path, Path, Path], tmp_path: Path
    ) -> None:
        _, config, _ = log_setup
        state = tmp_path / "env.status"
        result = runner.invoke(cli, ["rotate", "-f", str(config)], env={"LOGROTATE_STATE": str(state)})
        assert result.exit_code == 0
        assert state.exists()

    def test_debug_is_dry_run(self, runner: CliRunner, log_setup: tuple[Path, Path, Path]) -> None:
        log_file, config, state = log_setup
        result = runner.invoke(cli, ["rotate", "-d", "-f", "-s", str(state), str(config)])
        assert result.exit_code == 0
        assert log_file.exists()
        assert not log_file.with_name("app.log.1").exists()
        assert not state.exists()

    def test_verbose_prints_summary(self, runner: CliRunner, log_setup: tuple[Path, Path, Path]) -> None:
        _, config, state = log_setup
        result = runner.invoke(cli, ["rotate", "-v", "-f", "-s", str(state), str(config)])
        assert result.exit_code == 0
        assert "Rotation summary" in result.output

    def test_config_error_exit_code(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "bad.conf"
        config.write_text('"/tmp/x.log" {\nfrobnicate\n}\n', encoding="utf-8")
        result = runner.invoke(cli, ["rotate", "-s", str(tmp_path / "s"), str(config)])
        assert result.exit_code == 3

    def test_missing_config_exit_code(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["rotate", "-s", str(tmp_path / "s"), str(tmp_path / "absent.conf")])
        assert result.exit_code == 3

    def test_no_sections_exit_code(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "globals.conf"
        config.write_text("compress\nrotate 4\n", encoding="utf-8")
        result = runner.invoke(cli, ["rotate", "-s", str(tmp_path / "s"), str(config)])
        assert result.exit_code == 4

    def test_failing_script_exit_code(self, runner: CliRunner, tmp_path: Path) -> None:
        log_file = tmp_path / "app.log"
        log_file.write_text("x\n", encoding="utf-8")
        config = tmp_path / "logrotate.conf"
        config.write_text(
            f'"{log_file}" {{\nrotate 1\npostrotate\nexit 2\nendscript\n}}\n', encoding="utf-8"
        )
        result = runner.invoke(cli, ["rotate", "-f", "-s", str(tmp_path / "s"), str(config)])
        assert result.exit_code == 1

    def test_mail_option_accepted(self, runner: CliRunner, log_setup: tuple[Path, Path, Path]) -> None:
        _, config, state = log_setup
        result = runner.invoke(cli, ["rotate", "-m", "/usr/bin/mail", "-s", str(state), str(config)])
        assert result.exit_code == 0

    def test_unknown_option_is_invalid_args(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["rotate", "--no-such-flag", str(tmp_path / "x.conf")])
        assert result.exit_code == ExitCode.INVALID_ARGS

    @pytest.mark.parametrize("flag", ["-h", "--help", "-?", "--usage"])
    def test_help_aliases(self, runner: CliRunner, flag: str) -> None:
        result = runner.invoke(cli, ["rotate", flag])
        assert result.exit_code == 0
        assert "--state" in result.output


# ---------------------------------------------------------------------------
# status and version
# ---------------------------------------------------------------------------


class TestStatusCommand:
    def test_missing_state_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["status", "-s", str(tmp_path / "absent")])
        assert result.exit_code == 1

    def test_lists_entries(self, runner: CliRunner, tmp_path: Path) -> None:
        state = tmp_path / "logrotate.status"
        state.write_text(
            '# logrotate state file created 2024-03-07 10:00:00\n'
            "logrotate state -- version 2\n"
            '"/var/log/app.log" 2024-3-7\n',
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["status", "-s", str(state)])
        assert result.exit_code == 0
        assert "/var/log/app.log" in result.output
        assert "2024-03-07" in result.output

    def test_empty_state(self, runner: CliRunner, tmp_path: Path) -> None:
        state = tmp_path / "logrotate.status"
        state.write_text("logrotate state -- version 2\n", encoding="utf-8")
        result = runner.invoke(cli, ["status", "-s", str(state)])
        assert result.exit_code == 0
        assert "No rotations recorded" in result.output


class TestVersionCommand:
    def test_version_panel(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "pylogrotate" in result.output


# ---------------------------------------------------------------------------
# service
# ---------------------------------------------------------------------------


class TestServiceCommand:
    def test_missing_settings_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["service", str(tmp_path / "absent.yaml")])
        assert result.exit_code == 3

    def test_single_pass(self, runner: CliRunner, log_setup: tuple[Path, Path, Path], tmp_path: Path) -> None:
        log_file, config, state = log_setup
        settings = tmp_path / "service.yaml"
        settings.write_text(
            f"config_paths:\n  - {config.name}\nstate_file: {state.name}\nforce: true\n",
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["service", str(settings), "--once"])
        assert result.exit_code == 0
        assert log_file.with_name("app.log.1").exists()

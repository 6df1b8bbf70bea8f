"""Tests for the autolock command-line interface"""

import importlib
import json
import os
import sys

import pytest

import autolock.core.locks.backends as backends_module
from autolock.cli.main import main, parse_arguments
from autolock.core.constants import EXIT_CONFIG_ERROR, EXIT_FAILURE, EXIT_LOCKED
from autolock.core.locks.manager import LockGuard, lock_path_for

cli_main = importlib.import_module("autolock.cli.main")

pytestmark = pytest.mark.skipif(backends_module.fcntl is None, reason="fcntl not available on this platform")


@pytest.fixture(autouse=True)
def no_root_logging_changes(monkeypatch):
    """Keep setup_logging from replacing pytest's handlers"""
    monkeypatch.setattr(cli_main, "setup_logging", lambda config: None)


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class TestParseArguments:
    """Argument parsing"""

    def test_run_strips_separator(self):
        args = parse_arguments(["run", "job", "nightly", "--", "echo", "-n", "hi"])
        assert args.command == "job"
        assert args.action == "nightly"
        assert args.program == ["echo", "-n", "hi"]

    def test_run_requires_program(self):
        with pytest.raises(SystemExit):
            parse_arguments(["run", "job", "nightly"])

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            parse_arguments([])

    def test_repeatable_include(self):
        args = parse_arguments(["run", "--include", "a,b", "--include", "c", "job", "a", "--", "true"])
        assert args.include == ["a,b", "c"]


class TestRun:
    """autolock run"""

    def test_returns_program_exit_code(self, runtime_dir):
        code = main(["run", "--runtime-dir", str(runtime_dir), "job", "nightly", "--", *_python("raise SystemExit(3)")])
        assert code == 3
        assert not lock_path_for("job", "nightly", runtime_dir).exists()

    def test_program_sees_lock_file_with_its_parent_pid(self, runtime_dir, tmp_path):
        out = tmp_path / "seen.txt"
        lock_path = lock_path_for("job", "nightly", runtime_dir)
        script = f"import pathlib; pathlib.Path({str(out)!r}).write_text(pathlib.Path({str(lock_path)!r}).read_text())"

        assert main(["run", "--runtime-dir", str(runtime_dir), "job", "nightly", "--", *_python(script)]) == 0
        assert out.read_text() == str(os.getpid())

    def test_locked_action_exits_tempfail_without_running(self, runtime_dir, tmp_path):
        marker = tmp_path / "ran.txt"
        script = f"open({str(marker)!r}, 'w').close()"

        with LockGuard().hold("job", "nightly", runtime_dir):
            code = main(["run", "--runtime-dir", str(runtime_dir), "job", "nightly", "--", *_python(script)])

        assert code == EXIT_LOCKED
        assert not marker.exists()

    def test_excluded_action_runs_even_when_locked(self, runtime_dir):
        with LockGuard().hold("job", "nightly", runtime_dir):
            code = main(
                [
                    "run",
                    "--runtime-dir",
                    str(runtime_dir),
                    "--exclude",
                    "NIGHTLY",
                    "job",
                    "nightly",
                    "--",
                    *_python("pass"),
                ]
            )
        assert code == 0

    def test_missing_program(self, runtime_dir):
        code = main(["run", "--runtime-dir", str(runtime_dir), "job", "nightly", "--", "/definitely/not/here"])
        assert code == cli_main.EXIT_COMMAND_NOT_FOUND
        assert not lock_path_for("job", "nightly", runtime_dir).exists()

    def test_mode_without_lock_type_fails_without_running(self, runtime_dir, tmp_path):
        marker = tmp_path / "ran.txt"
        script = f"open({str(marker)!r}, 'w').close()"
        code = main(["run", "--runtime-dir", str(runtime_dir), "--mode", "nb", "job", "nightly", "--", *_python(script)])

        assert code == EXIT_FAILURE
        assert not marker.exists()

    def test_invalid_mode(self, runtime_dir):
        code = main(["run", "--runtime-dir", str(runtime_dir), "--mode", "64", "job", "nightly", "--", "true"])
        assert code == EXIT_CONFIG_ERROR

    def test_invalid_mode_from_env_file(self, runtime_dir, tmp_path):
        env_file = tmp_path / "bad.env"
        env_file.write_text("AUTOLOCK_MODE=sideways\n", encoding="utf-8")
        code = main(["run", "--env-file", str(env_file), "--runtime-dir", str(runtime_dir), "job", "a", "--", "true"])
        assert code == EXIT_CONFIG_ERROR


class TestStatusAndClean:
    """autolock status / autolock clean"""

    def _write_stale(self, runtime_dir, action="old", pid="999999999"):
        lock_path = lock_path_for("job", action, runtime_dir)
        lock_path.parent.mkdir(exist_ok=True)
        lock_path.write_text(pid, encoding="ascii")
        return lock_path

    def test_status_json(self, runtime_dir, capsys):
        self._write_stale(runtime_dir)
        with LockGuard().hold("job", "live", runtime_dir):
            assert main(["status", "--runtime-dir", str(runtime_dir), "--json"]) == 0

        rows = {row["lock_path"].rsplit("/", 1)[-1]: row for row in json.loads(capsys.readouterr().out)}
        assert rows["job-live.lock"]["held"] is True
        assert rows["job-live.lock"]["holder_pid"] == os.getpid()
        assert rows["job-old.lock"]["stale"] is True

    def test_status_table(self, runtime_dir, capsys):
        self._write_stale(runtime_dir)
        assert main(["status", "--runtime-dir", str(runtime_dir)]) == 0
        out = capsys.readouterr().out
        assert "job-old.lock" in out
        assert "999999999" in out

    def test_status_without_locks(self, runtime_dir, capsys):
        assert main(["status", "--runtime-dir", str(runtime_dir)]) == 0
        assert "No lock files" in capsys.readouterr().out

    def test_clean_removes_only_stale_locks(self, runtime_dir, capsys):
        stale = self._write_stale(runtime_dir)
        with LockGuard().hold("job", "live", runtime_dir) as handle:
            assert main(["clean", "--runtime-dir", str(runtime_dir)]) == 0
            assert handle.lock_path.exists()

        assert not stale.exists()
        assert "1 stale lock file(s) removed" in capsys.readouterr().out

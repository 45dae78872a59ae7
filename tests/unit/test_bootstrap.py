"""Tests for bootstrap wiring and runs file loading."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from runsync.bootstrap import (
    BootstrapContext,
    RunsFileError,
    RunsFileSource,
    apply_cli_overrides,
    bootstrap,
    load_runs,
    parse_runs,
)
from runsync.cli import parse_args
from runsync.scheduler import PollingScheduler
from runsync.types import RunStatus
from tests.helpers import make_config, make_run, make_runs, run_payload, write_runs_file


def bump_mtime(path: Path, offset_ns: int = 1_000_000_000) -> None:
    """Move the file's modification time forward by ``offset_ns``."""
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + offset_ns))


class TestParseRuns:
    """Tests for parse_runs."""

    def test_list_payload(self) -> None:
        runs = parse_runs([run_payload(r) for r in make_runs(2)])

        assert [r.id for r in runs] == ["run-0001", "run-0002"]
        assert runs[0].flight_number == "AA101"

    def test_object_payload(self) -> None:
        runs = parse_runs({"runs": [run_payload(make_run())]})

        assert runs == [make_run()]

    def test_empty_list(self) -> None:
        assert parse_runs([]) == []

    @pytest.mark.parametrize("payload", [{"items": []}, "runs", 42, None])
    def test_rejects_wrong_shape(self, payload: object) -> None:
        with pytest.raises(RunsFileError, match="list of runs"):
            parse_runs(payload)

    def test_rejects_non_object_run(self) -> None:
        with pytest.raises(RunsFileError, match="Run at index 1 is not an object"):
            parse_runs([run_payload(make_run()), "run-2"])

    def test_reports_missing_field(self) -> None:
        payload = run_payload(make_run())
        del payload["flightNumber"]

        with pytest.raises(RunsFileError, match="Run at index 0 is missing field"):
            parse_runs([payload])

    def test_reports_invalid_status(self) -> None:
        payload = run_payload(make_run())
        payload["status"] = "boarding"

        with pytest.raises(RunsFileError, match="Run at index 0 is invalid"):
            parse_runs([payload])


class TestLoadRuns:
    """Tests for load_runs."""

    def test_reads_file(self, tmp_path: Path) -> None:
        path = write_runs_file(tmp_path / "runs.json", make_runs(3))

        assert len(load_runs(path)) == 3

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(RunsFileError, match="Cannot read runs file"):
            load_runs(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "runs.json"
        path.write_text("[{", encoding="utf-8")

        with pytest.raises(RunsFileError, match="is not valid JSON"):
            load_runs(path)


class TestRunsFileSource:
    """Tests for change-detecting reloads."""

    def test_unchanged_file_is_not_reloaded(self, tmp_path: Path) -> None:
        source = RunsFileSource(write_runs_file(tmp_path / "runs.json", make_runs(1)))
        source.load()

        assert source.reload_if_changed() is None

    def test_changed_file_is_reloaded(self, tmp_path: Path) -> None:
        path = write_runs_file(tmp_path / "runs.json", make_runs(1))
        source = RunsFileSource(path)
        source.load()

        write_runs_file(path, make_runs(2))
        bump_mtime(path)

        runs = source.reload_if_changed()
        assert runs is not None
        assert len(runs) == 2
        assert source.reload_if_changed() is None

    def test_invalid_change_is_reported_once(self, tmp_path: Path) -> None:
        path = write_runs_file(tmp_path / "runs.json", make_runs(1))
        source = RunsFileSource(path)
        source.load()

        path.write_text("not json", encoding="utf-8")
        bump_mtime(path)

        with pytest.raises(RunsFileError):
            source.reload_if_changed()
        assert source.reload_if_changed() is None

        write_runs_file(path, make_runs(3))
        bump_mtime(path, offset_ns=2_000_000_000)
        runs = source.reload_if_changed()
        assert runs is not None
        assert len(runs) == 3

    def test_removed_file_is_reported_once(self, tmp_path: Path) -> None:
        path = write_runs_file(tmp_path / "runs.json", make_runs(1))
        source = RunsFileSource(path)
        source.load()

        path.unlink()

        with pytest.raises(RunsFileError, match="was removed"):
            source.reload_if_changed()
        assert source.reload_if_changed() is None
        assert source.reload_if_changed() is None

    def test_recreated_file_is_reloaded(self, tmp_path: Path) -> None:
        path = write_runs_file(tmp_path / "runs.json", make_runs(1))
        source = RunsFileSource(path)
        source.load()
        path.unlink()
        with pytest.raises(RunsFileError):
            source.reload_if_changed()

        write_runs_file(path, make_runs(2))

        runs = source.reload_if_changed()
        assert runs is not None
        assert len(runs) == 2

    def test_reload_before_first_load(self, tmp_path: Path) -> None:
        source = RunsFileSource(write_runs_file(tmp_path / "runs.json", make_runs(1)))

        runs = source.reload_if_changed()

        assert runs is not None
        assert len(runs) == 1


class TestApplyCliOverrides:
    """Tests for apply_cli_overrides."""

    def test_no_overrides_returns_same_config(self) -> None:
        config = make_config()

        assert apply_cli_overrides(config, parse_args([])) is config

    def test_overrides_polling_debug_and_logging(self) -> None:
        config = make_config(interval_ms=300000, debug_override=None)
        parsed = parse_args(
            [
                "--runs-file",
                "/srv/runs.json",
                "--interval-ms",
                "30000",
                "--debug",
                "--log-level",
                "WARNING",
            ]
        )

        result = apply_cli_overrides(config, parsed)

        assert result.polling.runs_file == Path("/srv/runs.json")
        assert result.polling.interval_ms == 30000
        assert result.polling.run_delay_ms == config.polling.run_delay_ms
        assert result.debug.override is True
        assert result.logging_config.level == "WARNING"

    def test_no_debug_forces_live(self) -> None:
        result = apply_cli_overrides(make_config(debug_override=None), parse_args(["--no-debug"]))

        assert result.debug.override is False

    @pytest.mark.parametrize("interval_ms", [0, -1000])
    def test_non_positive_interval_keeps_configured_value(
        self, interval_ms: int, caplog: pytest.LogCaptureFixture
    ) -> None:
        config = make_config(interval_ms=300000)
        parsed = parse_args([])
        parsed.interval_ms = interval_ms

        with caplog.at_level(logging.WARNING):
            result = apply_cli_overrides(config, parsed)

        assert result.polling.interval_ms == 300000
        assert "Ignoring --interval-ms" in caplog.text


class TestBootstrap:
    """Tests for bootstrap."""

    @pytest.fixture(autouse=True)
    def keep_log_handlers(self):
        with patch("runsync.bootstrap.setup_logging") as mock_setup:
            yield mock_setup

    def test_missing_runs_file_setting(
        self, clean_env: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.ERROR):
            context = bootstrap(parse_args(["--env-file", str(clean_env)]))

        assert context is None
        assert "No runs file configured" in caplog.text

    def test_unreadable_runs_file(
        self, clean_env: Path, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        args = ["--env-file", str(clean_env), "--runs-file", str(tmp_path / "nope.json")]

        with caplog.at_level(logging.ERROR):
            context = bootstrap(parse_args(args))

        assert context is None
        assert "Failed to load runs" in caplog.text

    def test_builds_context(
        self,
        clean_env: Path,
        tmp_path: Path,
        keep_log_handlers,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        runs = [*make_runs(2), make_run(id="later", status=RunStatus.SCHEDULED)]
        path = write_runs_file(tmp_path / "runs.json", runs)
        args = ["--env-file", str(clean_env), "--runs-file", str(path), "--debug"]

        with caplog.at_level(logging.WARNING):
            context = bootstrap(parse_args(args))

        assert isinstance(context, BootstrapContext)
        assert len(context.runs) == 3
        assert context.runs_source.path == path
        assert isinstance(context.scheduler, PollingScheduler)
        assert context.scheduler is context.container.scheduler()
        assert context.scheduler.config.enable_debug_mode is True
        assert context.scheduler.get_debug_info().active_runs == 2
        assert "AVIATIONSTACK_API_KEY is not set" in caplog.text
        assert "TOMTOM_API_KEY is not set" in caplog.text
        keep_log_handlers.assert_called_once_with(
            "INFO", json_format=False, diagnostic_tags=""
        )

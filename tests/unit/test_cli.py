"""Unit tests for the maintenance CLI: parsing, output and exit codes."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tiko.cli.maintain import _build_parser, _exit_code, _print_result, _run, main
from tiko.models.maintenance import DataQualityReport, JobReport, VenueShapeAudit
from tiko.utils.errors import ConfigurationError, StorageError


class TestParser:
    def test_score_defaults(self) -> None:
        args = _build_parser().parse_args(["score"])
        assert args.command == "score"
        assert args.batch_size == 20
        assert args.limit is None
        assert not args.rescore and not args.dry_run and not args.json

    def test_flags(self) -> None:
        args = _build_parser().parse_args(["repair-venues", "--dry-run", "--limit", "10", "--json"])
        assert (args.dry_run, args.limit, args.json) == (True, 10, True)

    def test_report_sample_size(self) -> None:
        assert _build_parser().parse_args(["report", "--sample-size", "50"]).sample_size == 50

    def test_city_requests_defaults(self) -> None:
        args = _build_parser().parse_args(["process-city-requests", "--dry-run"])
        assert (args.command, args.limit, args.dry_run) == ("process-city-requests", None, True)

    def test_unknown_command(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["drop-everything"])


class TestOutput:
    def test_table(self, capsys) -> None:
        report = JobReport(job="populate_scores", processed=3, updated=2, failed=1, errors=["x: boom"])

        _print_result(report, as_json=False)

        out = capsys.readouterr().out
        assert "populate_scores" in out
        assert "updated" in out
        assert "Errors (1 shown)" in out
        assert "- x: boom" in out

    def test_nested_counts(self, capsys) -> None:
        _print_result(VenueShapeAudit(total=2, counts={"object": 1, "string": 1}), as_json=False)
        out = capsys.readouterr().out
        assert "VenueShapeAudit" in out
        assert "counts:" in out

    def test_json(self, capsys) -> None:
        _print_result(DataQualityReport(total_events=4, scored_events=1), as_json=True)
        assert json.loads(capsys.readouterr().out)["total_events"] == 4


class TestExitCode:
    def test_failed_without_updates(self) -> None:
        assert _exit_code(JobReport(job="j", failed=2)) == 1

    def test_partial_success(self) -> None:
        assert _exit_code(JobReport(job="j", failed=2, updated=1)) == 0

    def test_non_job_results(self) -> None:
        assert _exit_code(DataQualityReport()) == 0


class TestRun:
    @pytest.mark.asyncio
    async def test_missing_mongo_uri(self, capsys) -> None:
        args = _build_parser().parse_args(["report"])
        with patch(
            "tiko.cli.maintain.create_mongo_client",
            side_effect=ConfigurationError("MONGODB_URI is not set", provider_name="mongodb"),
        ):
            assert await _run(args) == 1
        assert "MONGODB_URI is not set" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_runs_handler_and_closes_client(self, capsys) -> None:
        args = _build_parser().parse_args(["score", "--dry-run", "--json"])
        client = MagicMock()
        service = MagicMock()
        service.populate_scores = AsyncMock(return_value=JobReport(job="populate_scores", processed=5, dry_run=True))

        with patch("tiko.cli.maintain.create_mongo_client", return_value=client), patch(
            "tiko.cli.maintain._build_service", return_value=service
        ):
            code = await _run(args)

        assert code == 0
        service.populate_scores.assert_awaited_once_with(batch_size=20, limit=1000, rescore=False, dry_run=True)
        client.close.assert_called_once()
        assert json.loads(capsys.readouterr().out)["processed"] == 5

    @pytest.mark.asyncio
    async def test_city_requests_handler(self, capsys) -> None:
        args = _build_parser().parse_args(["process-city-requests", "--limit", "3", "--json"])
        service = MagicMock()
        service.process_city_requests = AsyncMock(
            return_value=JobReport(job="process_city_requests", processed=3, updated=3)
        )

        with patch("tiko.cli.maintain.create_mongo_client", return_value=MagicMock()), patch(
            "tiko.cli.maintain._build_service", return_value=service
        ):
            assert await _run(args) == 0

        service.process_city_requests.assert_awaited_once_with(limit=3, dry_run=False)
        assert json.loads(capsys.readouterr().out)["updated"] == 3

    @pytest.mark.asyncio
    async def test_job_error_exits_nonzero(self, capsys) -> None:
        args = _build_parser().parse_args(["audit-venues"])
        client = MagicMock()
        service = MagicMock()
        service.audit_venue_shapes = AsyncMock(side_effect=StorageError("find failed", provider_name="mongodb"))

        with patch("tiko.cli.maintain.create_mongo_client", return_value=client), patch(
            "tiko.cli.maintain._build_service", return_value=service
        ):
            assert await _run(args) == 1

        client.close.assert_called_once()
        assert "[mongodb] find failed" in capsys.readouterr().err


class TestMain:
    def test_no_command_prints_help(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1
        assert "Batch maintenance jobs" in capsys.readouterr().out

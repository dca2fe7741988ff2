"""Tests for ``packverify test [DIRECTORY]``."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from packverify.cli.main import cli
from packverify.pipeline.engine import PipelineResult


def _patch_test(result: PipelineResult) -> Any:
    return patch(
        "packverify.cli.test_cmd.LocalTester.test",
        new_callable=AsyncMock,
        return_value=result,
    )


class TestLocalTestCommand:
    def test_pass_exits_0(
        self, runner: CliRunner, passed_result: PipelineResult, tmp_path: Path
    ) -> None:
        with _patch_test(passed_result) as mock_test:
            result = runner.invoke(cli, ["test", str(tmp_path)])
        assert result.exit_code == 0
        assert "PASSED" in result.output
        mock_test.assert_awaited_once_with(tmp_path)

    def test_fail_exits_1(
        self, runner: CliRunner, failed_result: PipelineResult, tmp_path: Path
    ) -> None:
        with _patch_test(failed_result):
            result = runner.invoke(cli, ["test", str(tmp_path)])
        assert result.exit_code == 1
        assert "FAILED" in result.output

    def test_defaults_to_current_directory(
        self, runner: CliRunner, passed_result: PipelineResult
    ) -> None:
        with runner.isolated_filesystem(), _patch_test(passed_result) as mock_test:
            runner.invoke(cli, ["test"])
        assert mock_test.await_args.args == (Path("."),)

    def test_json(
        self, runner: CliRunner, passed_result: PipelineResult, tmp_path: Path
    ) -> None:
        with _patch_test(passed_result):
            result = runner.invoke(cli, ["test", str(tmp_path), "--format", "json"])
        assert json.loads(result.stdout)["success"] is True

    def test_missing_directory(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["test", str(tmp_path / "absent")])
        assert result.exit_code == 2

    def test_file_is_rejected(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "package.json"
        path.write_text("{}")
        result = runner.invoke(cli, ["test", str(path)])
        assert result.exit_code == 2

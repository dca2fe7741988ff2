"""Shared fixtures for CLI tests.

The pipelines themselves are mocked out: these tests cover argument
handling, configuration, output modes and exit codes.
"""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from packverify.core.progress import Step, StepStatus
from packverify.pipeline.engine import PipelineResult


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def passed_result() -> PipelineResult:
    return PipelineResult(
        success=True,
        reason="example@1.0.0 matches code at https://example.com/example.git (0123456)",
        steps=(
            Step("registry", "Fetch package data from registry", StepStatus.PASS),
            Step("install", "Install npm packages", StepStatus.SKIPPED),
            Step("compare", "Compare package contents", StepStatus.PASS),
        ),
    )


@pytest.fixture
def failed_result() -> PipelineResult:
    reason = "1 files added, 0 files modified, and 0 files removed."
    return PipelineResult(
        success=False,
        reason=f"Compare package contents: {reason}",
        steps=(
            Step("registry", "Fetch package data from registry", StepStatus.PASS),
            Step("compare", "Compare package contents", StepStatus.FAIL, reason),
        ),
    )

"""Notification channel between a running pipeline and its observer.

The vocabulary is closed: four message severities (trace, notice,
warning, failure) plus full step-table snapshots. The orchestrator holds a
single observer handle and calls it synchronously, in issue order.
"""

from __future__ import annotations

import logging

from packverify.core.progress import Step, StepStatus

logger = logging.getLogger("packverify.events")


class PipelineObserver:
    """Base observer. Every hook is a no-op; subclasses override what they need."""

    def trace(self, message: str) -> None:
        """Low-level detail: commands, their output, web requests."""

    def notice(self, message: str) -> None:
        """Noteworthy progress for the operator."""

    def warning(self, message: str) -> None:
        """Non-fatal problem; the run continues."""

    def failure(self, message: str) -> None:
        """An operation failed; usually followed by a failed step."""

    def progress(self, steps: tuple[Step, ...]) -> None:
        """Full step-table snapshot after a transition."""


class LoggingObserver(PipelineObserver):
    """Route pipeline messages to the ``packverify.events`` logger.

    trace -> DEBUG, notice -> INFO, warning -> WARNING, failure -> ERROR.
    Step transitions are logged at DEBUG.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def trace(self, message: str) -> None:
        self._log.debug("%s", message)

    def notice(self, message: str) -> None:
        self._log.info("%s", message)

    def warning(self, message: str) -> None:
        self._log.warning("%s", message)

    def failure(self, message: str) -> None:
        self._log.error("%s", message)

    def progress(self, steps: tuple[Step, ...]) -> None:
        for step in steps:
            if step.status is not StepStatus.PENDING:
                self._log.debug("step %s: %s", step.name, step.status.value)

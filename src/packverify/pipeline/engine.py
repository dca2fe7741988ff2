"""Shared machinery for staged, fail-fast pipelines.

An ``Engine`` subclass declares its step table (``STEPS``) and implements
its stages as coroutines. Each stage:

- moves its step to ``working``;
- converts every error it can raise into a ``fail`` (or ``warn``) with a
  reason naming the sub-operation that broke;
- returns its result, or None after a failure.

The run loop checks the sticky failure flag after every stage and stops at
the first failure; later steps stay ``pending``. Temp directories are
removed in a ``finally`` on every exit path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Sequence

from packverify.build.npm_pack import BuildResult, PackageBuilder
from packverify.config import VerifierConfig
from packverify.core.deadline import Deadline
from packverify.core.events import LoggingObserver, PipelineObserver
from packverify.core.process import CommandResult, CommandRunner
from packverify.core.progress import Progress, Step, StepStatus
from packverify.exceptions import (
    BuildError,
    CommandError,
    DeadlineExceeded,
    PackVerifyError,
    ParseError,
)
from packverify.source.workspace import Workspace

logger = logging.getLogger(__name__)

_RULE = "=" * 20


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of one pipeline run.

    Attributes:
        success: True when no step failed.
        reason: Human-readable summary of the outcome.
        steps: Final snapshot of the step table (the audit trail).
    """

    success: bool
    reason: str
    steps: tuple[Step, ...]

    def step(self, name: str) -> Step:
        """Look up a step of the final snapshot by name."""
        for step in self.steps:
            if step.name == name:
                return step
        raise KeyError(name)

    def as_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "reason": self.reason,
            "steps": [step.as_dict() for step in self.steps],
        }


class Engine:
    """Base class for the verification and local-test pipelines.

    Args:
        config: Runtime settings.
        observer: Receives messages and step-table snapshots.
        runner: Executes external commands.

    An engine instance runs one pipeline at a time.
    """

    STEPS: ClassVar[tuple[tuple[str, str], ...]] = ()

    def __init__(
        self,
        config: VerifierConfig | None = None,
        *,
        observer: PipelineObserver | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.config = config or VerifierConfig()
        self.observer = observer or LoggingObserver()
        self.runner = runner or CommandRunner()
        self.progress = Progress(self.STEPS)
        self.deadline = Deadline.unbounded()
        self.workspace = Workspace(
            self.config.workdir_prefix, keep=self.config.keep_workdir
        )

    # -- run lifecycle ------------------------------------------------------

    def _start(self) -> None:
        self.progress = Progress(self.STEPS, observer=self.observer)
        self.deadline = Deadline(self.config.run_timeout)
        self.workspace = Workspace(
            self.config.workdir_prefix, keep=self.config.keep_workdir
        )
        self.observer.progress(self.progress.snapshot())

    @property
    def failed(self) -> bool:
        return self.progress.failed

    def update(self, step: str, status: StepStatus, reason: str | None = None) -> None:
        """Transition a step; failures are also emitted as failure events."""
        self.progress.transition(step, status, reason)
        if status is StepStatus.FAIL and reason:
            self.observer.failure(f"{self.progress[step].title}: {reason}")
        elif status is StepStatus.WARN and reason:
            self.observer.warning(reason)

    def _result(self, success_reason: str = "") -> PipelineResult:
        failure = self.progress.first_failure()
        if failure is not None:
            return PipelineResult(
                success=False,
                reason=f"{failure.title}: {failure.reason or 'failed'}",
                steps=self.progress.snapshot(),
            )
        return PipelineResult(
            success=True, reason=success_reason, steps=self.progress.snapshot()
        )

    def _cleanup(self) -> None:
        for directory in self.workspace.directories:
            self.observer.trace(f"{_RULE}\nRemoving working directory:\n{directory}\n")
        self.workspace.cleanup()

    # -- collaborator contracts -------------------------------------------

    async def exec(self, argv: Sequence[str], cwd: Path) -> CommandResult:
        """Run a command under the run's deadline, tracing argv and output."""
        self.observer.trace(f"{_RULE}\nRunning command:\n{' '.join(argv)}\n")
        try:
            result = await self.runner.run(argv, cwd, deadline=self.deadline)
        except CommandError as exc:
            if exc.stdout:
                self.observer.trace(exc.stdout)
            if exc.stderr:
                self.observer.failure(exc.stderr)
            raise
        if result.stderr:
            self.observer.trace(result.stderr)
        if result.stdout:
            self.observer.trace(result.stdout)
        return result

    def create_workdir(self) -> Path:
        """Create a run-owned temp directory (removed when the run ends)."""
        self.observer.trace(f"{_RULE}\nCreating temp folder:\n")
        path = self.workspace.create()
        self.observer.trace(str(path))
        return path

    def http_timeout(self) -> float | None:
        return self.deadline.timeout(self.config.http_timeout)

    # -- shared stages ----------------------------------------------------

    async def build_with_install(
        self,
        step: str,
        directory: Path,
        builder: PackageBuilder,
        *,
        origin: str,
    ) -> BuildResult | None:
        """Pack ``directory``; on failure install dependencies and retry once.

        The ``install`` step is ``skipped`` when the first attempt works.
        While installing, ``step`` waits in ``pending``.

        Args:
            step: Step that owns the pack.
            directory: Source tree to pack.
            builder: Configured npm builder.
            origin: Wording for failure reasons ("remote files", ...).
        """
        self.update(step, StepStatus.WORKING)

        try:
            result = await builder.pack(directory)
        except ParseError as exc:
            self.update(step, StepStatus.FAIL, str(exc))
            return None
        except DeadlineExceeded as exc:
            self.update(step, StepStatus.FAIL, str(exc))
            return None
        except CommandError as exc:
            self.observer.notice(
                f"Packing without dependencies failed ({exc}); installing dependencies"
            )
        else:
            self.update("install", StepStatus.SKIPPED)
            self.update(step, StepStatus.PASS)
            return result

        self.update(step, StepStatus.PENDING, "Waiting for dependencies")
        self.update("install", StepStatus.WORKING)
        try:
            await builder.install(directory)
        except (CommandError, DeadlineExceeded) as exc:
            self.update("install", StepStatus.FAIL, f"Error installing dependencies: {exc}")
            return None
        self.update("install", StepStatus.PASS)

        self.update(step, StepStatus.WORKING)
        try:
            result = await builder.repack(directory, origin=origin)
        except (BuildError, ParseError) as exc:
            self.update(step, StepStatus.FAIL, str(exc))
            return None
        except DeadlineExceeded as exc:
            self.update(step, StepStatus.FAIL, f"Error creating package from {origin}: {exc}")
            return None

        self.update(step, StepStatus.PASS)
        return result

    async def probe_toolchain(self, directory: Path, commands: Sequence[Sequence[str]]) -> None:
        """Trace tool versions; a missing tool is reported, not fatal."""
        for argv in commands:
            try:
                await self.exec(argv, directory)
            except PackVerifyError as exc:
                self.observer.warning(f"Unable to run '{' '.join(argv)}': {exc}")

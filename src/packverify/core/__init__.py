"""Pipeline building blocks: step model, events, deadlines, processes."""

from packverify.core.deadline import Deadline
from packverify.core.events import LoggingObserver, PipelineObserver
from packverify.core.process import CommandResult, CommandRunner
from packverify.core.progress import Progress, Step, StepStatus

__all__ = [
    "CommandResult",
    "CommandRunner",
    "Deadline",
    "LoggingObserver",
    "PipelineObserver",
    "Progress",
    "Step",
    "StepStatus",
]

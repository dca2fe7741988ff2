"""Rich output formatting helpers for the packverify CLI.

Provides the step table, the PASSED/FAILED verdict, and the two observers
the CLI chooses between:

- ``LiveStepObserver`` redraws the step table in place as steps move.
- ``ConsoleObserver`` streams every message (verbose mode).

Status Color Mapping:
    pass = green, fail = bold red, warn = yellow, skipped = cyan,
    working = white, pending = default
"""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text

from packverify.core.events import PipelineObserver
from packverify.core.progress import Step, StepStatus
from packverify.pipeline.engine import PipelineResult

_STATUS_MARKS: dict[StepStatus, str] = {
    StepStatus.PASS: "✓",
    StepStatus.FAIL: "✗",
    StepStatus.WARN: "-",
    StepStatus.SKIPPED: "-",
    StepStatus.WORKING: ">",
    StepStatus.PENDING: "-",
}

_STATUS_STYLES: dict[StepStatus, str] = {
    StepStatus.PASS: "green",
    StepStatus.FAIL: "bold red",
    StepStatus.WARN: "yellow",
    StepStatus.SKIPPED: "cyan",
    StepStatus.WORKING: "white",
    StepStatus.PENDING: "",
}

console = Console()
err_console = Console(stderr=True)


def status_style(status: StepStatus) -> str:
    """Return the Rich style string for a step status."""
    return _STATUS_STYLES.get(status, "")


def render_steps(steps: tuple[Step, ...], title: str | None = None) -> Table:
    """Build the step table: mark, title, status and (fail/warn) reason."""
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("", justify="center")
    table.add_column("Step")
    table.add_column("Status", justify="center")
    table.add_column("Reason", style="dim")

    for step in steps:
        style = status_style(step.status)
        reason = ""
        if step.status in (StepStatus.FAIL, StepStatus.WARN) and step.reason:
            reason = step.reason
        table.add_row(
            Text(_STATUS_MARKS[step.status], style=style),
            Text(step.title, style=style),
            Text(step.status.value.upper(), style=style),
            Text(reason),
        )
    return table


def print_steps(steps: tuple[Step, ...], title: str | None = None) -> None:
    """Print the step table once."""
    console.print(render_steps(steps, title))


def print_verdict(result: PipelineResult) -> None:
    """Print PASSED or FAILED followed by the run's reason."""
    console.print()
    if result.success:
        console.print(Text("PASSED", style="bold green"))
    else:
        console.print(Text("FAILED", style="bold red"))
    if result.reason:
        console.print(Text(result.reason), soft_wrap=True)
    console.print()


def print_json(data: Any) -> None:
    """Print data as indented JSON to stdout, without markup."""
    console.print(json.dumps(data, indent=2, default=str), markup=False, highlight=False, soft_wrap=True)


class ConsoleObserver(PipelineObserver):
    """Streams every pipeline message; warnings and failures go to stderr."""

    def trace(self, message: str) -> None:
        console.print(Text(message, style="dim"), soft_wrap=True)

    def notice(self, message: str) -> None:
        console.print(Text(message), soft_wrap=True)

    def warning(self, message: str) -> None:
        err_console.print(Text(message, style="yellow"), soft_wrap=True)

    def failure(self, message: str) -> None:
        err_console.print(Text(message, style="red"), soft_wrap=True)


class LiveStepObserver(PipelineObserver):
    """Redraws the step table in place on every transition.

    Usage::

        with LiveStepObserver("Verify left-pad") as observer:
            result = asyncio.run(Verifier(observer=observer).verify("left-pad"))
    """

    def __init__(self, title: str | None = None) -> None:
        self._title = title
        self._live = Live(console=console, auto_refresh=False, transient=False)

    def __enter__(self) -> LiveStepObserver:
        self._live.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._live.stop()

    def progress(self, steps: tuple[Step, ...]) -> None:
        self._live.update(render_steps(steps, self._title), refresh=True)

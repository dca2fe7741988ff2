"""Options and run/report plumbing shared by ``verify`` and ``test``."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Awaitable, Callable, TypeVar

import click

from packverify.config import VerifierConfig
from packverify.core.events import PipelineObserver
from packverify.pipeline.engine import Engine, PipelineResult

F = TypeVar("F", bound=Callable[..., object])
E = TypeVar("E", bound=Engine)


def pipeline_options(func: F) -> F:
    """Attach the options every pipeline command accepts."""
    options = [
        click.option(
            "--verbose", is_flag=True,
            help="Stream commands and their output instead of the step table.",
        ),
        click.option(
            "--format", "output_format",
            type=click.Choice(["text", "json"]),
            default="text",
            help="Output format (default: text).",
        ),
        click.option(
            "--keep-workdir", is_flag=True,
            help="Leave temporary checkouts on disk after the run.",
        ),
        click.option(
            "--timeout", type=float, default=None, envvar="PACKVERIFY_TIMEOUT",
            help="Deadline for the whole run in seconds (default 600).",
        ),
        click.option(
            "--npm", "npm_bin", default=None, envvar="PACKVERIFY_NPM",
            help="npm executable (default: npm).",
        ),
        click.option(
            "--git", "git_bin", default=None, envvar="PACKVERIFY_GIT",
            help="git executable (default: git).",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_config(
    *,
    registry: str | None = None,
    timeout: float | None = None,
    npm_bin: str | None = None,
    git_bin: str | None = None,
    keep_workdir: bool = False,
) -> VerifierConfig:
    """Apply command-line overrides on top of the defaults."""
    return VerifierConfig().with_overrides(
        registry_url=registry,
        run_timeout=timeout,
        npm=npm_bin,
        git=git_bin,
        keep_workdir=keep_workdir or None,
    )


def run_pipeline(
    make_engine: Callable[[PipelineObserver], E],
    run: Callable[[E], Awaitable[PipelineResult]],
    *,
    title: str,
    verbose: bool,
    output_format: str,
) -> None:
    """Run a pipeline with the observer the output mode calls for, report,
    and exit 0 on success or 1 on failure."""
    from packverify.cli.output import (
        ConsoleObserver,
        LiveStepObserver,
        print_json,
        print_steps,
        print_verdict,
    )

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )

    if output_format == "json":
        result = asyncio.run(run(make_engine(PipelineObserver())))
        print_json(result.as_dict())
    elif verbose:
        result = asyncio.run(run(make_engine(ConsoleObserver())))
        print_steps(result.steps, title)
        print_verdict(result)
    else:
        with LiveStepObserver(title) as observer:
            result = asyncio.run(run(make_engine(observer)))
        print_verdict(result)

    sys.exit(0 if result.success else 1)

"""``packverify test [DIRECTORY]``: Check a local package before publishing.

Packs the working tree, shallow-fetches the same commit from the
repository declared in ``package.json``, packs that, and compares the two
shasums.

Exit Codes:
    0: The remote reproduces the local package.
    1: A step failed.
"""

from __future__ import annotations

from pathlib import Path

import click

from packverify.cli.common import build_config, pipeline_options, run_pipeline
from packverify.core.events import PipelineObserver
from packverify.pipeline.tester import LocalTester


@click.command("test")
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@pipeline_options
def test_command(
    directory: Path,
    verbose: bool,
    output_format: str,
    keep_workdir: bool,
    timeout: float | None,
    npm_bin: str | None,
    git_bin: str | None,
) -> None:
    """Check that DIRECTORY packs the same as its remote at the same commit.

    DIRECTORY defaults to the current directory and must contain a
    package.json declaring a git repository.
    """
    config = build_config(
        timeout=timeout,
        npm_bin=npm_bin,
        git_bin=git_bin,
        keep_workdir=keep_workdir,
    )

    def make_engine(observer: PipelineObserver) -> LocalTester:
        return LocalTester(config, observer=observer)

    run_pipeline(
        make_engine,
        lambda tester: tester.test(directory),
        title=f"Test {directory.resolve().name}",
        verbose=verbose,
        output_format=output_format,
    )

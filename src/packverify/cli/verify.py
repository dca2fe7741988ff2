"""``packverify verify <package>[@<version>]``: Verify a published package.

Resolves the version in the registry, shallow-checks-out the commit (or
release tag) its metadata claims, packs it with npm, and compares the
per-file contents with the published tarball.

Exit Codes:
    0: The published package matches its source.
    1: A verification step failed.
    2: Usage error.
"""

from __future__ import annotations

import click

from packverify.cli.common import build_config, pipeline_options, run_pipeline
from packverify.core.events import PipelineObserver
from packverify.pipeline.verifier import Verifier
from packverify.registry.npm import split_package_spec


@click.command("verify")
@click.argument("package_spec", metavar="PACKAGE[@VERSION]")
@click.option(
    "--registry", default=None, envvar="PACKVERIFY_REGISTRY",
    help="Registry base URL (default: https://registry.npmjs.org).",
)
@pipeline_options
def verify_command(
    package_spec: str,
    registry: str | None,
    verbose: bool,
    output_format: str,
    keep_workdir: bool,
    timeout: float | None,
    npm_bin: str | None,
    git_bin: str | None,
) -> None:
    """Verify that a published npm package was built from its source.

    PACKAGE may be scoped (@scope/name); VERSION may be a version or a
    dist-tag and defaults to latest.

    Exit code 0 if the contents match, 1 if any step fails.
    """
    name, version = split_package_spec(package_spec)
    if not name:
        raise click.BadParameter("package name is required", param_hint="PACKAGE")

    config = build_config(
        registry=registry,
        timeout=timeout,
        npm_bin=npm_bin,
        git_bin=git_bin,
        keep_workdir=keep_workdir,
    )

    def make_engine(observer: PipelineObserver) -> Verifier:
        return Verifier(config, observer=observer)

    run_pipeline(
        make_engine,
        lambda verifier: verifier.verify(name, version),
        title=f"Verify {name}@{version or 'latest'}",
        verbose=verbose,
        output_format=output_format,
    )

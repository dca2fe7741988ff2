"""packverify CLI: Supply-chain verification for npm packages.

Entry point for the ``packverify`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    verify  Verify a published package against the source it claims.
    test    Check that a local package tree matches its remote.

Usage::

    packverify verify left-pad
    packverify verify @scope/pkg@1.2.0 --verbose
    packverify verify left-pad@latest --format json
    packverify test
    packverify test ./my-package --keep-workdir
"""

from __future__ import annotations

import click

from packverify import __version__
from packverify.cli.test_cmd import test_command
from packverify.cli.verify import verify_command


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """packverify: Supply-chain verification for npm packages.

    Confirms that a published tarball was built from the repository
    commit its registry metadata claims, or that a local package tree
    packs the same as a fresh checkout of its remote.
    """


# Register all subcommands
cli.add_command(verify_command)
cli.add_command(test_command)

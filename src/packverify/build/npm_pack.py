"""Package builder around ``npm pack``.

``npm pack`` reports the tarball's SHA-1 as a notice line
(``npm notice shasum: <40 hex>``) and prints the tarball file name as the
last line of stdout. The shasum is scraped with a single documented
pattern; output without it is a ``ParseError``, never a silent miss.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Sequence

from packverify.config import DEFAULT_NPM
from packverify.core.process import CommandResult
from packverify.exceptions import BuildError, CommandError, ParseError

logger = logging.getLogger(__name__)

Exec = Callable[[Sequence[str], Path], Awaitable[CommandResult]]

# 40-character lowercase hex digest following the literal "shasum:" marker.
SHASUM_PATTERN = re.compile(r"shasum:\s+([0-9a-f]{40})")


@dataclass(frozen=True)
class BuildResult:
    """Outcome of a successful pack.

    Attributes:
        digest: SHA-1 of the tarball as reported by npm.
        artifact_path: The tarball on disk; None for dry runs.
    """

    digest: str
    artifact_path: Path | None = None


def parse_shasum(output: str) -> str:
    """Extract the tarball shasum from ``npm pack`` output.

    Raises:
        ParseError: No ``shasum: <40 hex>`` marker in the output.
    """
    match = SHASUM_PATTERN.search(output)
    if match is None:
        raise ParseError("Error parsing shasum from pack output")
    return match.group(1)


def parse_artifact_name(stdout: str) -> str:
    """Return the last non-empty stdout line, the tarball file name.

    Raises:
        ParseError: stdout is empty.
    """
    lines = [line.strip() for line in stdout.strip().splitlines() if line.strip()]
    if not lines:
        raise ParseError("Error parsing package file name from pack output")
    return lines[-1]


class PackageBuilder:
    """Runs npm to install dependencies and produce package tarballs.

    Args:
        exec_command: Runs an argv in a directory.
        npm: npm executable.
        dry_run: Pass ``--dry-run`` to ``npm pack`` (no tarball written).
    """

    def __init__(
        self,
        exec_command: Exec,
        *,
        npm: str = DEFAULT_NPM,
        dry_run: bool = False,
    ) -> None:
        self._exec = exec_command
        self._npm = npm
        self._dry_run = dry_run

    def pack_command(self) -> list[str]:
        argv = [self._npm, "pack"]
        if self._dry_run:
            argv.append("--dry-run")
        return argv

    def install_command(self) -> list[str]:
        return [self._npm, "ci"]

    async def pack(self, directory: Path) -> BuildResult:
        """Run ``npm pack`` once in ``directory``.

        Raises:
            CommandError: npm exited non-zero.
            ParseError: The shasum (or the tarball name) is missing.
        """
        result = await self._exec(self.pack_command(), directory)
        digest = parse_shasum(result.output)
        artifact = None
        if not self._dry_run:
            artifact = directory / parse_artifact_name(result.stdout)
        logger.debug("Packed %s: shasum %s", directory, digest)
        return BuildResult(digest=digest, artifact_path=artifact)

    async def install(self, directory: Path) -> None:
        """Install dependencies from the lockfile (``npm ci``).

        Raises:
            CommandError: npm exited non-zero.
        """
        await self._exec(self.install_command(), directory)

    async def repack(self, directory: Path, *, origin: str) -> BuildResult:
        """Pack again after dependencies were installed.

        Args:
            directory: Source tree to pack.
            origin: Wording for the error message ("remote files", ...).

        Raises:
            BuildError: npm still exits non-zero.
            ParseError: The shasum (or the tarball name) is missing.
        """
        try:
            return await self.pack(directory)
        except CommandError as exc:
            raise BuildError(f"Error creating package from {origin}: {exc}") from exc

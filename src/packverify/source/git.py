"""Shallow git checkout at an exact commit or release tag.

Materializes a working copy without downloading history:

1. ``git init`` in an empty directory and add the remote as ``origin``.
2. ``git fetch --depth 1 origin <commit>`` when the commit is known.
3. If there is no commit, or it cannot be fetched, try the release tags
   ``tags/v<version>`` then ``tags/<version>``.
4. ``git checkout FETCH_HEAD``.

Every command receives the checkout directory explicitly. Each sub-step
fails with its own ``FetchError`` message so the operator can tell which
assumption about the remote broke.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Sequence

from packverify.config import DEFAULT_GIT
from packverify.core.events import PipelineObserver
from packverify.core.process import CommandResult
from packverify.exceptions import CommandError, FetchError

logger = logging.getLogger(__name__)

Exec = Callable[[Sequence[str], Path], Awaitable[CommandResult]]

REMOTE_NAME: str = "origin"
FETCH_HEAD: str = "FETCH_HEAD"


@dataclass(frozen=True)
class Checkout:
    """A working copy produced by a shallow fetch.

    Attributes:
        working_directory: Root of the working tree.
        resolved_ref: The ref that was fetched (commit hash or ``tags/...``).
    """

    working_directory: Path
    resolved_ref: str


def tag_refs(version: str) -> list[str]:
    """Candidate tag refs for a release version, in fallback order."""
    return [f"tags/v{version}", f"tags/{version}"]


class ShallowFetcher:
    """Fetches a single commit or tag of a remote into a directory.

    Args:
        exec_command: Runs an argv in a directory (see ``Engine.exec``).
        git: Git executable.
        observer: Receives a warning when the commit fallback kicks in.
    """

    def __init__(
        self,
        exec_command: Exec,
        *,
        git: str = DEFAULT_GIT,
        observer: PipelineObserver | None = None,
    ) -> None:
        self._exec = exec_command
        self._git = git
        self._observer = observer or PipelineObserver()

    async def checkout(
        self,
        repository_url: str,
        directory: Path,
        *,
        commit: str | None = None,
        version: str | None = None,
    ) -> Checkout:
        """Produce a working tree of ``repository_url`` in ``directory``.

        Args:
            repository_url: Git remote to fetch from.
            directory: Empty directory that becomes the working tree.
            commit: Exact commit to fetch, if known.
            version: Release version used for the tag fallback.

        Returns:
            Checkout naming the ref that was actually fetched.

        Raises:
            FetchError: A sub-step failed; the message names it.
        """
        try:
            await self._exec([self._git, "init"], directory)
        except CommandError as exc:
            raise FetchError("Error initializing git repo in temp directory") from exc

        try:
            await self._exec(
                [self._git, "remote", "add", REMOTE_NAME, repository_url], directory
            )
        except CommandError as exc:
            raise FetchError(f"Error adding remote {repository_url}") from exc

        ref = await self._fetch(directory, commit, version)

        try:
            await self._exec([self._git, "checkout", FETCH_HEAD], directory)
        except CommandError as exc:
            raise FetchError(f"Unable to checkout {FETCH_HEAD}") from exc

        logger.debug("Checked out %s at %s in %s", repository_url, ref, directory)
        return Checkout(working_directory=directory, resolved_ref=ref)

    async def _fetch(
        self, directory: Path, commit: str | None, version: str | None
    ) -> str:
        if commit:
            try:
                await self._fetch_ref(directory, commit)
                return commit
            except CommandError:
                if not version:
                    raise FetchError(
                        f"Unable to fetch commit from remote ({commit[:7]})"
                    ) from None
                self._observer.warning(
                    f"Commit {commit[:7]} could not be fetched; "
                    f"falling back to version tags"
                )

        if not version:
            raise FetchError("No commit or version to fetch from remote")

        for ref in tag_refs(version):
            try:
                await self._fetch_ref(directory, ref)
                return ref
            except CommandError:
                logger.debug("Tag %s not available", ref)

        tags = " or ".join(tag_refs(version))
        if commit:
            raise FetchError(
                f"Unable to fetch commit ({commit[:7]}) or tag ({tags}) from remote"
            )
        raise FetchError(f"Unable to fetch tag from remote ({tags})")

    async def _fetch_ref(self, directory: Path, ref: str) -> None:
        await self._exec(
            [self._git, "fetch", "--depth", "1", REMOTE_NAME, ref], directory
        )

    async def head_commit(self, directory: Path) -> str:
        """Return the commit checked out in an existing working tree.

        Raises:
            FetchError: The directory is not a git working tree.
        """
        try:
            result = await self._exec(
                [self._git, "log", "--format=%H", "-n", "1"], directory
            )
        except CommandError as exc:
            raise FetchError("Unable to determine current local commit") from exc
        commit = result.stdout.strip().strip('"')
        if not commit:
            raise FetchError("Unable to determine current local commit")
        return commit

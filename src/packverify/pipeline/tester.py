"""Local-test pipeline: would the remote produce what this tree packs?

Stages::

    read-local-repo-metadata -> build-local-package
        -> checkout-remote-at-local-commit -> build-remote-package
        -> shasum-compare

Meant to run before publishing: the working tree is packed with
``npm pack --dry-run``, the same commit is shallow-fetched from the
repository declared in ``package.json``, packed the same way, and the two
shasums must agree.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from packverify.build.npm_pack import PackageBuilder
from packverify.core.progress import StepStatus
from packverify.exceptions import (
    CommandError,
    DeadlineExceeded,
    FetchError,
    ParseError,
)
from packverify.pipeline.engine import Engine, PipelineResult
from packverify.registry.npm import SUPPORTED_REPOSITORY_TYPE, normalize_repository_url
from packverify.source.git import Checkout, ShallowFetcher

logger = logging.getLogger(__name__)

PACKAGE_JSON: str = "package.json"

TEST_STEPS: tuple[tuple[str, str], ...] = (
    ("repo", "Package includes repository"),
    ("pack_local", "Create package from local directory"),
    ("checkout", "Shallow checkout from repo"),
    ("install", "Install dependencies"),
    ("pack_remote", "Create package from remote repository"),
    ("compare", "Compare shasums"),
)


class LocalTester(Engine):
    """Checks that a local package tree matches its remote at HEAD."""

    STEPS = TEST_STEPS

    async def test(self, directory: Path | None = None) -> PipelineResult:
        """Run the local-test pipeline against ``directory`` (default: cwd)."""
        directory = (directory or Path.cwd()).resolve()
        self._start()
        try:
            repo_url = await self.read_repository(directory)
            if self.failed or repo_url is None:
                return self._result()

            local_shasum = await self.pack_local(directory)
            if self.failed or local_shasum is None:
                return self._result()

            checkout = await self.checkout(repo_url, directory)
            if self.failed or checkout is None:
                return self._result()

            remote_shasum = await self.pack_remote(checkout)
            if self.failed or remote_shasum is None:
                return self._result()

            self.compare(local_shasum, remote_shasum)
            if self.failed:
                return self._result()

            return self._result(
                f"Local package matches {repo_url} at {checkout.resolved_ref[:7]}"
            )
        finally:
            self._cleanup()

    # -- stages -------------------------------------------------------------

    async def read_repository(self, directory: Path) -> str | None:
        """read-local-repo-metadata: the git repository from package.json."""
        self.update("repo", StepStatus.WORKING)

        path = directory / PACKAGE_JSON
        self.observer.trace(f"{'=' * 20}\nReading file \"{path}\":\n")
        try:
            package_json = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            self.observer.failure(str(exc))
            self.update("repo", StepStatus.FAIL, f"Error reading {PACKAGE_JSON}")
            return None
        self.observer.trace(json.dumps(package_json, indent=2))

        repository = package_json.get("repository") if isinstance(package_json, dict) else None
        if not repository:
            self.update("repo", StepStatus.FAIL, f"Repository not defined in {PACKAGE_JSON}")
            return None
        if not isinstance(repository, dict) or repository.get("type") != SUPPORTED_REPOSITORY_TYPE:
            self.update("repo", StepStatus.FAIL, f"Non-git repository defined in {PACKAGE_JSON}")
            return None
        if not repository.get("url"):
            self.update("repo", StepStatus.FAIL, f"Repository URL not defined in {PACKAGE_JSON}")
            return None

        self.update("repo", StepStatus.PASS)
        return normalize_repository_url(str(repository["url"]))

    async def pack_local(self, directory: Path) -> str | None:
        """build-local-package: dry-run pack of the working tree, no install."""
        self.update("pack_local", StepStatus.WORKING)
        builder = PackageBuilder(self.exec, npm=self.config.npm, dry_run=True)
        try:
            result = await builder.pack(directory)
        except (CommandError, DeadlineExceeded):
            self.update("pack_local", StepStatus.FAIL, "Error creating package from local files")
            return None
        except ParseError as exc:
            self.update("pack_local", StepStatus.FAIL, str(exc))
            return None
        self.update("pack_local", StepStatus.PASS)
        return result.digest

    async def checkout(self, repo_url: str, directory: Path) -> Checkout | None:
        """checkout-remote-at-local-commit: fetch the local HEAD from the remote."""
        self.update("checkout", StepStatus.WORKING)
        try:
            workdir = self.create_workdir()
        except OSError as exc:
            self.observer.failure(str(exc))
            self.update("checkout", StepStatus.FAIL, "Error creating temp directory")
            return None

        fetcher = ShallowFetcher(self.exec, git=self.config.git, observer=self.observer)
        try:
            commit = await fetcher.head_commit(directory)
            checkout = await fetcher.checkout(repo_url, workdir, commit=commit)
        except (FetchError, DeadlineExceeded) as exc:
            self.update("checkout", StepStatus.FAIL, str(exc))
            return None

        self.observer.notice(f"Checked out {repo_url} at {checkout.resolved_ref}")
        self.update("checkout", StepStatus.PASS)
        return checkout

    async def pack_remote(self, checkout: Checkout) -> str | None:
        """build-remote-package: dry-run pack of the checkout, install if needed."""
        builder = PackageBuilder(self.exec, npm=self.config.npm, dry_run=True)
        result = await self.build_with_install(
            "pack_remote", checkout.working_directory, builder, origin="remote files"
        )
        return result.digest if result is not None else None

    def compare(self, local_shasum: str, remote_shasum: str) -> None:
        """shasum-compare: the two dry-run shasums must be equal."""
        self.update("compare", StepStatus.WORKING)
        self.observer.notice(
            f"local shasum => {local_shasum}\nremote shasum => {remote_shasum}"
        )
        if local_shasum == remote_shasum:
            self.update("compare", StepStatus.PASS)
        else:
            self.update(
                "compare",
                StepStatus.FAIL,
                f"Shasums do not match (local {local_shasum[:7]}, remote {remote_shasum[:7]})",
            )

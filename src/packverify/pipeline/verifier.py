"""Verification pipeline: does a published package match its source?

Stages::

    registry-resolve -> source-checkout -> build-and-pack -> manifest-compare

The registry's version metadata names a repository and commit; the commit
is shallow-checked-out, packed with npm, and the resulting tarball's
per-file manifest is diffed against the published tarball's.

Usage::

    verifier = Verifier()
    result = asyncio.run(verifier.verify("left-pad", "1.3.0"))
    print(result.success, result.reason)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from packverify.build.npm_pack import BuildResult, PackageBuilder
from packverify.core.progress import StepStatus
from packverify.exceptions import (
    CompareError,
    DeadlineExceeded,
    FetchError,
    HttpError,
    PackVerifyError,
    RepositoryError,
    ResolutionError,
)
from packverify.manifest.archive import build_manifests
from packverify.manifest.models import compare_manifests, ensure_identical
from packverify.pipeline.engine import Engine, PipelineResult
from packverify.registry.models import PackageRecord
from packverify.registry.npm import fetch_package_metadata, package_url, resolve_package
from packverify.source.git import Checkout, ShallowFetcher

logger = logging.getLogger(__name__)

VERIFY_STEPS: tuple[tuple[str, str], ...] = (
    ("registry", "Fetch package data from registry"),
    ("repo", "Version contains repository URL"),
    ("git_head", "Version contains gitHead"),
    ("checkout", "Shallow checkout"),
    ("install", "Install npm packages"),
    ("pack", "Create package"),
    ("compare", "Compare package contents"),
)


class Verifier(Engine):
    """Verifies a registry package against the source it claims."""

    STEPS = VERIFY_STEPS

    async def verify(
        self,
        package_name: str,
        version: str | None = None,
        *,
        directory: Path | None = None,
    ) -> PipelineResult:
        """Run the verification pipeline.

        Args:
            package_name: Registry package name (scoped names allowed).
            version: Version or dist-tag; None means ``latest``.
            directory: Where the toolchain probe runs (default: cwd).

        Returns:
            PipelineResult; ``success`` is False if any step failed.
        """
        self._start()
        try:
            await self.probe_toolchain(
                directory or Path.cwd(),
                [["node", "--version"], [self.config.npm, "--version"]],
            )

            record = await self.resolve(package_name, version)
            if self.failed or record is None:
                return self._result()

            checkout = await self.checkout(record)
            if self.failed or checkout is None:
                return self._result()

            build = await self.pack(checkout)
            if self.failed or build is None:
                return self._result()

            await self.compare(record, build)
            if self.failed:
                return self._result()

            ref = checkout.resolved_ref
            return self._result(
                f"{record.package_name}@{record.resolved_version} matches code at "
                f"{record.repository_url} ({ref[:7] if ref == record.commit_hash else ref})"
            )
        finally:
            self._cleanup()

    # -- stages -------------------------------------------------------------

    async def resolve(self, package_name: str, version: str | None) -> PackageRecord | None:
        """registry-resolve: covers the ``registry``, ``repo`` and ``git_head`` steps."""
        self.update("registry", StepStatus.WORKING)

        url = package_url(package_name, self.config.registry_url)
        self.observer.trace(f"{'=' * 20}\nWeb request:\n{url}\n")
        try:
            metadata = await fetch_package_metadata(
                package_name,
                registry_url=self.config.registry_url,
                timeout=self.http_timeout(),
            )
        except (HttpError, ResolutionError, DeadlineExceeded) as exc:
            self.observer.failure(str(exc))
            self.update("registry", StepStatus.FAIL, "Error fetching package data from registry")
            return None

        try:
            record = resolve_package(metadata, package_name, version)
        except ResolutionError as exc:
            self.update("registry", StepStatus.FAIL, str(exc))
            return None
        except RepositoryError as exc:
            self.update("registry", StepStatus.PASS)
            self.update("repo", StepStatus.FAIL, str(exc))
            return None
        self.update("registry", StepStatus.PASS)
        self.update("repo", StepStatus.PASS)

        if record.commit_hash:
            self.update("git_head", StepStatus.PASS)
        else:
            self.update(
                "git_head",
                StepStatus.WARN,
                f"GitHead is not specified for version {record.resolved_version}",
            )
        return record

    async def checkout(self, record: PackageRecord) -> Checkout | None:
        """source-checkout: shallow fetch of the commit, or the release tag."""
        self.update("checkout", StepStatus.WORKING)
        try:
            directory = self.create_workdir()
        except OSError as exc:
            self.observer.failure(str(exc))
            self.update("checkout", StepStatus.FAIL, "Error creating temp directory")
            return None

        fetcher = ShallowFetcher(self.exec, git=self.config.git, observer=self.observer)
        try:
            checkout = await fetcher.checkout(
                record.repository_url,
                directory,
                commit=record.commit_hash,
                version=record.resolved_version,
            )
        except (FetchError, DeadlineExceeded) as exc:
            self.update("checkout", StepStatus.FAIL, str(exc))
            return None

        self.observer.notice(f"Checked out {record.repository_url} at {checkout.resolved_ref}")
        self.update("checkout", StepStatus.PASS)
        return checkout

    async def pack(self, checkout: Checkout) -> BuildResult | None:
        """build-and-pack: ``npm pack``, with one install-and-retry."""
        builder = PackageBuilder(self.exec, npm=self.config.npm)
        return await self.build_with_install(
            "pack", checkout.working_directory, builder, origin="remote files"
        )

    async def compare(self, record: PackageRecord, build: BuildResult) -> None:
        """manifest-compare: per-file diff of built vs. published tarball."""
        self.update("compare", StepStatus.WORKING)

        if record.declared_digest:
            self.observer.notice(
                f"expected shasum => {record.declared_digest}\n"
                f"  actual shasum => {build.digest}"
            )

        try:
            generated, published = await build_manifests(
                build.artifact_path or "",
                record.tarball_location,
                timeout=self.http_timeout(),
                deadline=self.deadline,
            )
        except (PackVerifyError, OSError) as exc:
            self.update("compare", StepStatus.FAIL, f"Error reading package contents: {exc}")
            return

        diff = compare_manifests(generated, published)
        self.observer.trace(json.dumps(diff.as_dict(), indent=2))

        try:
            ensure_identical(diff)
        except CompareError as exc:
            self.update("compare", StepStatus.FAIL, str(exc))
            return

        if record.declared_digest and record.declared_digest != build.digest:
            self.observer.warning(
                "Package contents match but the tarball shasum differs "
                f"({build.digest[:7]} built, {record.declared_digest[:7]} published)"
            )
        self.update("compare", StepStatus.PASS)

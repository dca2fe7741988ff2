"""Registry data models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PackageRecord:
    """What the registry claims about one published package version.

    Attributes:
        package_name: Package name as queried (scoped names included).
        resolved_version: Concrete version after dist-tag resolution.
        repository_url: Git remote URL with any ``git+`` prefix removed.
        commit_hash: ``gitHead`` from the version metadata. None triggers
            tag-based checkout.
        declared_digest: The registry's ``dist.shasum`` (40-char hex),
            or None when the registry omits it.
        tarball_location: URI of the published tarball.
    """

    package_name: str
    resolved_version: str
    repository_url: str
    commit_hash: str | None
    declared_digest: str | None
    tarball_location: str

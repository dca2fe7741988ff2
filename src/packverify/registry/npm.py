"""npm registry resolver.

Turns a package name and optional version into a ``PackageRecord``: the
repository, commit, expected shasum and tarball URI the registry claims
for that version.

The network read (``fetch_package_metadata``) is kept apart from the
resolution helpers, which are pure functions of the registry document::

    metadata = await fetch_package_metadata("left-pad")
    record = resolve_package(metadata, "left-pad", "1.3.0")

Each helper raises the error class that identifies the step it belongs to:
``ResolutionError`` for the registry lookup, ``RepositoryError`` for the
repository reference.
"""

from __future__ import annotations

import logging
from typing import Any

from packverify.config import DEFAULT_REGISTRY_URL
from packverify.exceptions import RepositoryError, ResolutionError
from packverify.registry.http_client import DEFAULT_TIMEOUT, fetch_json
from packverify.registry.models import PackageRecord

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_DIST_TAG: str = "latest"

SUPPORTED_REPOSITORY_TYPE: str = "git"

_GIT_PLUS_PREFIX: str = "git+"


# ---------------------------------------------------------------------------
# Package specs and URLs
# ---------------------------------------------------------------------------


def split_package_spec(spec: str) -> tuple[str, str | None]:
    """Split ``name[@version]`` into name and optional version.

    Scoped names keep their leading ``@``::

        >>> split_package_spec("@scope/pkg@1.2.0")
        ('@scope/pkg', '1.2.0')
        >>> split_package_spec("pkg")
        ('pkg', None)
    """
    spec = spec.strip()
    at = spec.rfind("@")
    if at <= 0:
        return spec, None
    name, version = spec[:at], spec[at + 1:]
    return name, (version or None)


def package_url(name: str, registry_url: str = DEFAULT_REGISTRY_URL) -> str:
    """Metadata URL for a package; the scope separator is escaped."""
    return f"{registry_url.rstrip('/')}/{name.replace('/', '%2F')}"


def normalize_repository_url(url: str) -> str:
    """Strip the ``git+`` transport prefix npm allows in repository URLs."""
    if url.startswith(_GIT_PLUS_PREFIX):
        return url[len(_GIT_PLUS_PREFIX):]
    return url


# ---------------------------------------------------------------------------
# Network read
# ---------------------------------------------------------------------------


async def fetch_package_metadata(
    name: str,
    *,
    registry_url: str = DEFAULT_REGISTRY_URL,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """Fetch the full registry document for a package.

    Raises:
        HttpError: The request failed.
        ResolutionError: The response is not a package document.
    """
    data = await fetch_json(package_url(name, registry_url), timeout=timeout)
    if not isinstance(data, dict):
        raise ResolutionError(f"Unexpected registry response for {name}")
    return data


# ---------------------------------------------------------------------------
# Resolution helpers
# ---------------------------------------------------------------------------


def resolve_version(metadata: dict[str, Any], version: str | None = None) -> str:
    """Resolve a requested version (or dist-tag) to a concrete version.

    With no version, the ``latest`` dist-tag is used. A version that names
    a dist-tag resolves through it; anything else is taken literally.

    Raises:
        ResolutionError: Nothing to resolve to.
    """
    dist_tags = metadata.get("dist-tags")
    if not isinstance(dist_tags, dict):
        dist_tags = {}
    resolved = dist_tags.get(version or DEFAULT_DIST_TAG) or version
    if not resolved:
        raise ResolutionError(f"Cannot resolve version {version or DEFAULT_DIST_TAG}")
    return str(resolved)


def version_metadata(metadata: dict[str, Any], resolved_version: str) -> dict[str, Any]:
    """Return the per-version document.

    Raises:
        ResolutionError: The registry has no entry for the version.
    """
    versions = metadata.get("versions")
    info = versions.get(resolved_version) if isinstance(versions, dict) else None
    if not isinstance(info, dict):
        raise ResolutionError(f"Cannot find info for version {resolved_version}")
    return info


def repository_url(version_info: dict[str, Any], resolved_version: str) -> str:
    """Extract the git remote URL from a version document.

    Raises:
        RepositoryError: Missing repository, non-git type, or missing URL.
    """
    repository = version_info.get("repository")
    if not repository:
        raise RepositoryError(
            f"Repository is not specified for version {resolved_version}"
        )
    if not isinstance(repository, dict):
        repository = {"url": str(repository)}
    repo_type = repository.get("type")
    if repo_type != SUPPORTED_REPOSITORY_TYPE:
        raise RepositoryError(
            f"Non-git ({repo_type or 'unknown'}) repository specified "
            f"for version {resolved_version}"
        )
    url = repository.get("url")
    if not url:
        raise RepositoryError(
            f"Repository URL is not specified for version {resolved_version}"
        )
    return normalize_repository_url(str(url))


def declared_shasum(version_info: dict[str, Any]) -> str | None:
    """The published shasum, preferring the legacy ``_shasum`` field."""
    dist = version_info.get("dist")
    dist = dist if isinstance(dist, dict) else {}
    shasum = version_info.get("_shasum") or dist.get("shasum")
    return str(shasum) if shasum else None


def tarball_location(version_info: dict[str, Any], resolved_version: str) -> str:
    """Return ``dist.tarball``.

    Raises:
        ResolutionError: The version has no tarball URI.
    """
    dist = version_info.get("dist")
    tarball = dist.get("tarball") if isinstance(dist, dict) else None
    if not tarball:
        raise ResolutionError(
            f"Tarball location is not specified for version {resolved_version}"
        )
    return str(tarball)


def resolve_package(
    metadata: dict[str, Any],
    name: str,
    version: str | None = None,
) -> PackageRecord:
    """Resolve a registry document into a ``PackageRecord``.

    A missing ``gitHead`` is not an error here; the record simply has no
    commit hash and checkout falls back to version tags.

    Raises:
        ResolutionError: Version or version metadata cannot be found.
        RepositoryError: The repository reference is unusable.
    """
    resolved = resolve_version(metadata, version)
    info = version_metadata(metadata, resolved)
    tarball = tarball_location(info, resolved)
    url = repository_url(info, resolved)
    record = PackageRecord(
        package_name=name,
        resolved_version=resolved,
        repository_url=url,
        commit_hash=info.get("gitHead") or None,
        declared_digest=declared_shasum(info),
        tarball_location=tarball,
    )
    logger.debug("Resolved %s@%s -> %s", name, version or DEFAULT_DIST_TAG, record)
    return record

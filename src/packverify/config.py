"""Runtime configuration for verification runs.

Defaults live here as typed module constants; the CLI overrides them from
command-line options and ``PACKVERIFY_*`` environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

# Registry metadata endpoint (npm package document API).
DEFAULT_REGISTRY_URL: str = "https://registry.npmjs.org"

# Per-request HTTP timeout (seconds).
DEFAULT_HTTP_TIMEOUT: float = 30.0

# Deadline for an entire run (seconds). Any blocking call past it fails.
DEFAULT_RUN_TIMEOUT: float = 600.0

DEFAULT_GIT: str = "git"
DEFAULT_NPM: str = "npm"

# Prefix for temporary checkout directories.
WORKDIR_PREFIX: str = "tbv-"


@dataclass(frozen=True)
class VerifierConfig:
    """Settings shared by the verification and local-test pipelines.

    Attributes:
        registry_url: Base URL of the package metadata API.
        http_timeout: Per-request HTTP timeout in seconds.
        run_timeout: Overall deadline in seconds, or None for no deadline.
        git: Git executable.
        npm: npm executable.
        keep_workdir: Leave temporary checkouts on disk after the run.
        workdir_prefix: Name prefix for temporary checkouts.
    """

    registry_url: str = DEFAULT_REGISTRY_URL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    run_timeout: float | None = DEFAULT_RUN_TIMEOUT
    git: str = DEFAULT_GIT
    npm: str = DEFAULT_NPM
    keep_workdir: bool = False
    workdir_prefix: str = WORKDIR_PREFIX

    def with_overrides(self, **changes: object) -> VerifierConfig:
        """Return a copy with every non-None keyword applied."""
        applied = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **applied)  # type: ignore[arg-type]

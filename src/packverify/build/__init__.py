"""Package building via npm."""

from __future__ import annotations

from packverify.build.npm_pack import BuildResult, PackageBuilder, parse_shasum

__all__ = [
    "BuildResult",
    "PackageBuilder",
    "parse_shasum",
]

"""Per-file content manifests of package archives and their diffs.

The package is split into focused submodules:

- ``models``: ``Manifest``, ``ManifestDiff``, ``compare_manifests``.
- ``archive``: streaming manifest construction from local files and
  remote URIs, and the concurrent two-archive join.
"""

from packverify.manifest.archive import (
    build_manifests,
    manifest_from_chunks,
    manifest_from_file,
    manifest_from_location,
)
from packverify.manifest.models import (
    Manifest,
    ManifestDiff,
    compare_manifests,
    ensure_identical,
)

__all__ = [
    "Manifest",
    "ManifestDiff",
    "build_manifests",
    "compare_manifests",
    "ensure_identical",
    "manifest_from_chunks",
    "manifest_from_file",
    "manifest_from_location",
]

"""Manifest and diff models.

A manifest maps archive-relative paths to content digests. Two manifests
are compared by path only: entry order inside the archives never matters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping

from packverify.exceptions import CompareError

# path -> 40-char SHA-1 hex digest
Manifest = Dict[str, str]


@dataclass(frozen=True)
class ManifestDiff:
    """File-level differences between manifest A and manifest B.

    Attributes:
        added: Paths present only in B.
        modified: Paths present in both with different digests.
        removed: Paths present only in A.
    """

    added: frozenset[str] = field(default_factory=frozenset)
    modified: frozenset[str] = field(default_factory=frozenset)
    removed: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        """True when the two archives are content-identical."""
        return not (self.added or self.modified or self.removed)

    def summary(self) -> str:
        """One-line count of each kind of change."""
        return (
            f"{len(self.added)} files added, "
            f"{len(self.modified)} files modified, "
            f"and {len(self.removed)} files removed."
        )

    def as_dict(self) -> dict[str, list[str]]:
        """JSON-serializable form with sorted path lists."""
        return {
            "added": sorted(self.added),
            "modified": sorted(self.modified),
            "removed": sorted(self.removed),
        }


def compare_manifests(a: Mapping[str, str], b: Mapping[str, str]) -> ManifestDiff:
    """Diff two manifests by path.

    ``removed`` is in A but not B, ``added`` is in B but not A, and
    ``modified`` is in both with different digests.
    """
    a_paths = set(a)
    b_paths = set(b)
    return ManifestDiff(
        added=frozenset(b_paths - a_paths),
        modified=frozenset(p for p in a_paths & b_paths if a[p] != b[p]),
        removed=frozenset(a_paths - b_paths),
    )


def ensure_identical(diff: ManifestDiff) -> None:
    """Raise ``CompareError`` carrying the summary unless the diff is empty."""
    if not diff.is_empty:
        raise CompareError(diff.summary())

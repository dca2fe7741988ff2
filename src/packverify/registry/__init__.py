"""npm registry access: metadata fetch and package resolution.

Public API::

    from packverify.registry import PackageRecord, resolve_package
    from packverify.registry.npm import fetch_package_metadata
"""

from __future__ import annotations

from packverify.registry.models import PackageRecord
from packverify.registry.npm import resolve_package, split_package_spec

__all__ = [
    "PackageRecord",
    "resolve_package",
    "split_package_spec",
]

"""Source checkout: shallow git fetches into run-owned temp directories."""

from __future__ import annotations

from packverify.source.git import Checkout, ShallowFetcher
from packverify.source.workspace import Workspace

__all__ = [
    "Checkout",
    "ShallowFetcher",
    "Workspace",
]

"""packverify: Supply-chain verification for published npm packages."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

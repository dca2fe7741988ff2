"""Fixtures for pipeline tests: a scripted runner and a recording observer."""

from __future__ import annotations

import pytest

from fakes import FakeRunner, RecordingObserver, pack_reply


@pytest.fixture
def runner() -> FakeRunner:
    """Runner where git succeeds and ``npm pack`` produces the package."""
    return FakeRunner().on(["npm", "pack"], pack_reply())


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()

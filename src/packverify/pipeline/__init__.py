"""Staged verification pipelines.

- ``Verifier``: published registry package vs. the source it claims.
- ``LocalTester``: local working tree vs. a fresh checkout of the same commit.
"""

from packverify.pipeline.engine import Engine, PipelineResult
from packverify.pipeline.tester import TEST_STEPS, LocalTester
from packverify.pipeline.verifier import VERIFY_STEPS, Verifier

__all__ = [
    "Engine",
    "PipelineResult",
    "TEST_STEPS",
    "LocalTester",
    "VERIFY_STEPS",
    "Verifier",
]

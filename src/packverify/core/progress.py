"""Step and progress model for staged pipelines.

A ``Progress`` is an ordered table of ``Step`` records with a fixed shape
per pipeline variant. Every transition notifies the observer with a full
snapshot of the table, so an observer that joins mid-run always sees a
consistent picture.

Failure is sticky: once any step moves to ``FAIL`` the run is failed for
good, even if a later transition moves that step elsewhere.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Iterator

if TYPE_CHECKING:
    from packverify.core.events import PipelineObserver


class StepStatus(str, Enum):
    """Lifecycle states of a pipeline step.

    The orchestrator issues ``PENDING -> WORKING -> {PASS|FAIL|WARN|SKIPPED}``
    transitions; the model itself does not enforce an order.
    """

    PENDING = "pending"
    WORKING = "working"
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"
    SKIPPED = "skipped"


@dataclass
class Step:
    """A single named step in a pipeline run.

    Attributes:
        name: Stable key within the pipeline's step set.
        title: Human-readable description shown in the step table.
        status: Current lifecycle state.
        reason: Why the step is in its state (set for fail and warn).
    """

    name: str
    title: str
    status: StepStatus = StepStatus.PENDING
    reason: str | None = None

    def as_dict(self) -> dict[str, str | None]:
        """Return a JSON-serializable representation."""
        return {
            "name": self.name,
            "title": self.title,
            "status": self.status.value,
            "reason": self.reason,
        }


class Progress:
    """Ordered step table with a sticky failure flag.

    Args:
        steps: ``(name, title)`` pairs in display order.
        observer: Receives a snapshot after every transition.
    """

    def __init__(
        self,
        steps: Iterable[tuple[str, str]],
        observer: PipelineObserver | None = None,
    ) -> None:
        self._steps: dict[str, Step] = {}
        for name, title in steps:
            if name in self._steps:
                raise ValueError(f"Duplicate step name: {name}")
            self._steps[name] = Step(name=name, title=title)
        self._observer = observer
        self._failed = False

    @property
    def failed(self) -> bool:
        """True once any step has been transitioned to ``FAIL``."""
        return self._failed

    def __getitem__(self, name: str) -> Step:
        return self._steps[name]

    def __iter__(self) -> Iterator[Step]:
        return iter(self._steps.values())

    def __len__(self) -> int:
        return len(self._steps)

    def transition(
        self,
        name: str,
        status: StepStatus,
        reason: str | None = None,
    ) -> None:
        """Move a step to ``status`` and notify the observer.

        The reason is replaced on every transition, so a stale reason
        never outlives the state it described.

        Raises:
            KeyError: If ``name`` is not a step of this pipeline.
        """
        status = StepStatus(status)
        step = self._steps[name]
        step.status = status
        step.reason = reason
        if status is StepStatus.FAIL:
            self._failed = True
        if self._observer is not None:
            self._observer.progress(self.snapshot())

    def snapshot(self) -> tuple[Step, ...]:
        """Return detached copies of every step, in order."""
        return tuple(replace(step) for step in self._steps.values())

    def first_failure(self) -> Step | None:
        """Return the first failed step, if any."""
        for step in self._steps.values():
            if step.status is StepStatus.FAIL:
                return step
        return None

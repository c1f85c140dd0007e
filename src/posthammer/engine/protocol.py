"""Result types exchanged between worker tasks and the dispatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class OutcomeStatus(Enum):
    """How a worker task ended."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    FAULTED = "faulted"


@dataclass(frozen=True)
class WorkerOutcome:
    """Result produced exactly once per worker when its task ends.

    Attributes:
        worker_index: Index of the worker, 0-based in spawn order.
        status: SUCCEEDED after all requests were sent, FAILED on a
            transport error, FAULTED on any other exception.
        requests_completed: Requests sent without transport error.
        error_message: Error description, None on success.
    """

    worker_index: int
    status: OutcomeStatus
    requests_completed: int
    error_message: str | None = None

    @property
    def success(self) -> bool:
        """Return True if every request was sent."""
        return self.status is OutcomeStatus.SUCCEEDED


@dataclass
class DispatchResult:
    """Everything a completed run reports.

    Attributes:
        outcomes: One outcome per worker, ordered by worker index.
        duration_seconds: Wall-clock time from first spawn to last outcome.
    """

    outcomes: list[WorkerOutcome] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def requests_completed(self) -> int:
        """Total requests sent without transport error across all workers."""
        return sum(o.requests_completed for o in self.outcomes)

    @property
    def succeeded(self) -> int:
        return self._count(OutcomeStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def faulted(self) -> int:
        return self._count(OutcomeStatus.FAULTED)

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

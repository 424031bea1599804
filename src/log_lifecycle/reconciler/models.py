"""Outcome and report models for reconciliation runs."""

import threading
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from log_lifecycle.inventory.models import ResourceDescriptor
from log_lifecycle.policy.desired_state import Action
from log_lifecycle.utils.errors import LifecycleError


class OutcomeKind(Enum):
    """What happened to one log group."""
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


# Skip reasons
FILTER_MISMATCH = "filter-mismatch"
ALREADY_DESIRED = "already-desired"
NO_OP = "no-op"
DELETION_PROTECTED = "deletion-protected"


class RunStatus(Enum):
    """Overall status of a run."""
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    PARTIAL_FAILURE = "partial_failure"
    ABORTED = "aborted"
    CONFIGURATION_ERROR = "configuration_error"


@dataclass(frozen=True)
class ResourceOutcome:
    """Result of reconciling a single log group."""

    resource: ResourceDescriptor
    kind: OutcomeKind
    reason: Optional[str] = None
    error: Optional[LifecycleError] = None
    duration: float = 0.0  # seconds

    @classmethod
    def applied(cls, resource: ResourceDescriptor, duration: float = 0.0) -> "ResourceOutcome":
        return cls(resource, OutcomeKind.APPLIED, duration=duration)

    @classmethod
    def skipped(cls, resource: ResourceDescriptor, reason: str) -> "ResourceOutcome":
        return cls(resource, OutcomeKind.SKIPPED, reason=reason)

    @classmethod
    def failed(
        cls,
        resource: ResourceDescriptor,
        error: LifecycleError,
        duration: float = 0.0
    ) -> "ResourceOutcome":
        return cls(resource, OutcomeKind.FAILED, error=error, duration=duration)

    @property
    def resource_id(self) -> str:
        return self.resource.resource_id

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'resource_id': self.resource_id,
            'outcome': self.kind.value,
        }
        if self.reason:
            data['reason'] = self.reason
        if self.error is not None:
            data['error'] = _failure_details(self.error)
        return data


def _failure_details(error: LifecycleError) -> Dict[str, Any]:
    return {
        'kind': error.kind,
        'category': error.category.value,
        'code': error.context.error_code,
        'message': error.message,
    }


@dataclass
class RunReport:
    """Aggregated outcome of one run.

    Outcomes are recorded under a lock so the report can be read from
    another thread (e.g. on forced termination) while the run is in flight;
    use :meth:`snapshot` for a consistent copy.
    """

    filter_text: Optional[str]
    desired_state: Optional[str]
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    action: Optional[Action] = None
    regions: List[str] = field(default_factory=list)
    status: RunStatus = RunStatus.RUNNING
    outcomes: List[ResourceOutcome] = field(default_factory=list)
    pages: int = 0
    error: Optional[LifecycleError] = None
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: Optional[datetime] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, outcome: ResourceOutcome) -> None:
        with self._lock:
            self.outcomes.append(outcome)

    def record_page(self) -> None:
        with self._lock:
            self.pages += 1

    def finish(self, status: RunStatus, error: Optional[LifecycleError] = None) -> None:
        with self._lock:
            self.status = status
            if error is not None:
                self.error = error
            self.end_time = datetime.now(timezone.utc)

    def snapshot(self) -> "RunReport":
        """Consistent copy of the report as it stands now."""
        with self._lock:
            return RunReport(
                filter_text=self.filter_text,
                desired_state=self.desired_state,
                run_id=self.run_id,
                action=self.action,
                regions=list(self.regions),
                status=self.status,
                outcomes=list(self.outcomes),
                pages=self.pages,
                error=self.error,
                start_time=self.start_time,
                end_time=self.end_time,
            )

    def _count(self, kind: OutcomeKind) -> int:
        return sum(1 for o in self.outcomes if o.kind == kind)

    @property
    def applied(self) -> int:
        return self._count(OutcomeKind.APPLIED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeKind.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeKind.FAILED)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def skipped_by_reason(self) -> Dict[str, int]:
        return dict(Counter(o.reason for o in self.outcomes if o.kind == OutcomeKind.SKIPPED))

    @property
    def failures(self) -> List[ResourceOutcome]:
        return [o for o in self.outcomes if o.kind == OutcomeKind.FAILED]

    @property
    def duration(self) -> float:
        end = self.end_time or datetime.now(timezone.utc)
        return (end - self.start_time).total_seconds()

    def is_success(self) -> bool:
        """Check if the run converged every matching log group."""
        return self.status == RunStatus.SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to a JSON-serialisable dictionary."""
        report = self.snapshot()
        return {
            'run_id': report.run_id,
            'status': report.status.value,
            'filter': report.filter_text,
            'desired_state': report.desired_state,
            'action': report.action.to_dict() if report.action else None,
            'regions': report.regions,
            'pages': report.pages,
            'total': report.total,
            'applied': report.applied,
            'skipped': report.skipped,
            'failed': report.failed,
            'skipped_by_reason': report.skipped_by_reason,
            'failures': [
                {'resource_id': o.resource_id, **_failure_details(o.error)}
                for o in report.failures
            ],
            'error': report.error.to_dict() if report.error else None,
            'start_time': report.start_time.isoformat(),
            'end_time': report.end_time.isoformat() if report.end_time else None,
            'duration': round(report.duration, 3),
        }

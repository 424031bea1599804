"""Reconciliation runs and read-only previews."""

from .models import (
    OutcomeKind,
    ResourceOutcome,
    RunReport,
    RunStatus,
    FILTER_MISMATCH,
    ALREADY_DESIRED,
    NO_OP,
    DELETION_PROTECTED,
)
from .reconciler import Reconciler, ReconcilerState, ReconcilerStateError
from .preview import (
    ListResult,
    PreviewEntry,
    PreviewResult,
    list_log_groups,
    preview,
)
from .sinks import LoggingReportSink, WebhookReportSink, build_sinks

__all__ = [
    "OutcomeKind",
    "ResourceOutcome",
    "RunReport",
    "RunStatus",
    "FILTER_MISMATCH",
    "ALREADY_DESIRED",
    "NO_OP",
    "DELETION_PROTECTED",
    "Reconciler",
    "ReconcilerState",
    "ReconcilerStateError",
    "ListResult",
    "PreviewEntry",
    "PreviewResult",
    "list_log_groups",
    "preview",
    "LoggingReportSink",
    "WebhookReportSink",
    "build_sinks",
]

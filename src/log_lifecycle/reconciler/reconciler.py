"""Reconciler converging matching log groups to a desired retention."""

import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from log_lifecycle.config.models import RunConfig
from log_lifecycle.inventory.base import LogGroupInventory
from log_lifecycle.inventory.models import Page, ResourceDescriptor
from log_lifecycle.inventory.walker import InventoryWalker
from log_lifecycle.policy import evaluator
from log_lifecycle.policy.desired_state import Action, DeleteGroup, NoOp, resolve
from log_lifecycle.policy.expression import FilterExpression, parse
from log_lifecycle.reconciler.models import (
    ALREADY_DESIRED,
    DELETION_PROTECTED,
    FILTER_MISMATCH,
    NO_OP,
    OutcomeKind,
    ResourceOutcome,
    RunReport,
    RunStatus,
)
from log_lifecycle.reconciler.paging import resilient_pages
from log_lifecycle.reconciler.sinks import ReportSink
from log_lifecycle.utils.errors import (
    ConfigurationError,
    ErrorContext,
    InventoryError,
    MutationError,
    ParseError,
    error_handler,
)
from log_lifecycle.utils.logging import get_logger
from log_lifecycle.utils.retry import RetryStrategy

logger = get_logger(__name__)


class ReconcilerState(Enum):
    """Lifecycle of a single run."""
    INIT = "init"
    RESOLVING = "resolving"
    WALKING = "walking"
    REPORTING = "reporting"
    DONE = "done"


class ReconcilerStateError(RuntimeError):
    """Reconciler used outside its single-run lifecycle."""


OutcomeCallback = Callable[[ResourceOutcome], None]


class Reconciler:
    """Walks the inventory once and converges matching log groups.

    A reconciler performs exactly one run. Configuration is validated
    before the inventory is touched; mutation failures are isolated per
    log group; inventory failures stop the walk but keep what was
    reconciled so far.
    """

    def __init__(
        self,
        config: RunConfig,
        inventory: LogGroupInventory,
        retry_strategy: Optional[RetryStrategy] = None,
        sinks: Optional[Iterable[ReportSink]] = None,
        progress_callback: Optional[OutcomeCallback] = None
    ):
        """Initialize reconciler.

        Args:
            config: Validated run configuration
            inventory: Collaborator listing and mutating log groups
            retry_strategy: Backoff for transient page fetch and mutation
                failures (defaults to ``config.max_page_retries`` retries)
            sinks: Callables receiving the final report
            progress_callback: Called with each outcome as it is recorded
        """
        self.config = config
        self.inventory = inventory
        self.walker = InventoryWalker(inventory)
        self.retry_strategy = retry_strategy or RetryStrategy(max_retries=config.max_page_retries)
        self.sinks: List[ReportSink] = list(sinks or [])
        self.progress_callback = progress_callback
        self.state = ReconcilerState.INIT
        self._report = RunReport(
            filter_text=config.filter,
            desired_state=config.desired_state,
            regions=list(config.regions),
        )

    @property
    def report(self) -> RunReport:
        """Copy of the report as accumulated so far; safe while running."""
        return self._report.snapshot()

    def run(self) -> RunReport:
        """Execute the run.

        Returns:
            RunReport with one outcome per log group walked

        Raises:
            ReconcilerStateError: if this reconciler already ran
        """
        if self.state != ReconcilerState.INIT:
            raise ReconcilerStateError(
                f"Reconciler already used (state: {self.state.value}); create a new one per run"
            )
        logger.info(
            f"Starting run: filter={self.config.filter!r} desired_state={self.config.desired_state!r}",
            extra={'run_id': self._report.run_id},
        )

        try:
            expression, action = self._prepare()
        except ConfigurationError as e:
            error_handler.log_error(e)
            self._report.finish(RunStatus.CONFIGURATION_ERROR, e)
            return self._emit()

        error = self._walk(expression, action)
        if error is not None:
            status = RunStatus.ABORTED
        elif self._report.failed:
            status = RunStatus.PARTIAL_FAILURE
        else:
            status = RunStatus.SUCCEEDED
        self._report.finish(status, error)
        return self._emit()

    def _transition(self, state: ReconcilerState) -> None:
        logger.debug(f"Reconciler {self.state.value} -> {state.value}",
                     extra={'run_id': self._report.run_id})
        self.state = state

    def _prepare(self) -> Tuple[FilterExpression, Action]:
        """Parse and validate the filter, then resolve the desired state."""
        if self.config.filter is None:
            raise ParseError("A filter expression is required to apply changes")
        expression = parse(self.config.filter)
        evaluator.validate(expression)

        self._transition(ReconcilerState.RESOLVING)
        action = resolve(self.config.desired_state)
        self._report.action = action
        logger.info(f"Resolved desired state {self.config.desired_state!r} to {action}",
                    extra={'run_id': self._report.run_id, 'action': action.name})
        return expression, action

    def _walk(self, expression: FilterExpression, action: Action) -> Optional[InventoryError]:
        self._transition(ReconcilerState.WALKING)
        workers = self.config.max_workers
        pool = ThreadPoolExecutor(max_workers=workers) if workers > 1 else nullcontext()
        try:
            with pool as executor:
                for page in resilient_pages(self.walker, self.retry_strategy):
                    self._report.record_page()
                    self._reconcile_page(page, expression, action, executor)
        except InventoryError as e:
            error_handler.log_error(e)
            logger.error(
                f"Inventory walk aborted at page {e.page_number}; "
                f"{self._report.total} log groups reconciled before the failure",
                extra={'run_id': self._report.run_id, 'page': e.page_number},
            )
            return e
        return None

    def _reconcile_page(
        self,
        page: Page,
        expression: FilterExpression,
        action: Action,
        executor: Optional[ThreadPoolExecutor]
    ) -> None:
        logger.debug(f"Reconciling page {page.number} ({len(page)} log groups)",
                     extra={'run_id': self._report.run_id, 'page': page.number})

        def reconcile(resource: ResourceDescriptor) -> ResourceOutcome:
            return self._reconcile(resource, expression, action)

        if executor is not None and len(page) > 1:
            outcomes = executor.map(reconcile, page.resources)
        else:
            outcomes = (reconcile(resource) for resource in page.resources)

        # map() yields in submission order, so the report keeps page order
        for outcome in outcomes:
            self._record(outcome)

    def _reconcile(
        self,
        resource: ResourceDescriptor,
        expression: FilterExpression,
        action: Action
    ) -> ResourceOutcome:
        # Converged groups report already-desired even when the filter no longer matches
        if action.is_satisfied_by(resource):
            return ResourceOutcome.skipped(resource, ALREADY_DESIRED)
        if not evaluator.matches(expression, resource):
            return ResourceOutcome.skipped(resource, FILTER_MISMATCH)
        if isinstance(action, NoOp):
            return ResourceOutcome.skipped(resource, NO_OP)
        if isinstance(action, DeleteGroup) and resource.deletion_protected:
            return ResourceOutcome.skipped(resource, DELETION_PROTECTED)
        return self._apply(resource, action)

    def _apply(self, resource: ResourceDescriptor, action: Action) -> ResourceOutcome:
        started = time.monotonic()
        try:
            self.retry_strategy.execute_with_retry(self.inventory.set_retention, resource, action)
        except Exception as e:
            return ResourceOutcome.failed(
                resource, self._mutation_error(e, resource, action), time.monotonic() - started
            )
        return ResourceOutcome.applied(resource, time.monotonic() - started)

    def _mutation_error(
        self,
        error: Exception,
        resource: ResourceDescriptor,
        action: Action
    ) -> MutationError:
        if isinstance(error, MutationError):
            return error
        wrapped = error_handler.handle_exception(
            error,
            ErrorContext(resource_id=resource.name, region=resource.region, operation=action.name),
        )
        return MutationError(
            f"Failed to apply {action} to {resource.name}: {wrapped.message}",
            context=wrapped.context,
            cause=error,
            suggestions=wrapped.suggestions,
        )

    def _record(self, outcome: ResourceOutcome) -> None:
        self._report.record(outcome)
        extra = {
            'run_id': self._report.run_id,
            'resource_id': outcome.resource_id,
            'region': outcome.resource.region,
            'outcome': outcome.kind.value,
        }
        if outcome.kind == OutcomeKind.APPLIED:
            logger.info(f"Applied {self._report.action} to {outcome.resource.name}",
                        extra={**extra, 'action': self._report.action.name,
                               'duration': round(outcome.duration, 3)})
        elif outcome.kind == OutcomeKind.FAILED:
            logger.error(outcome.error.message, extra=extra)
        else:
            logger.debug(f"Skipped {outcome.resource.name}: {outcome.reason}",
                         extra={**extra, 'reason': outcome.reason})

        if self.progress_callback:
            try:
                self.progress_callback(outcome)
            except Exception as e:
                logger.error(f"Progress callback failed for {outcome.resource.name}: {e}",
                             extra={'run_id': self._report.run_id})

    def _emit(self) -> RunReport:
        self._transition(ReconcilerState.REPORTING)
        report = self._report
        logger.info(
            f"Run {report.status.value}: {report.total} log groups, {report.applied} applied, "
            f"{report.skipped} skipped, {report.failed} failed in {report.duration:.1f}s",
            extra={'run_id': report.run_id, 'outcome': report.status.value},
        )
        for sink in self.sinks:
            try:
                sink(report)
            except Exception as e:
                logger.error(f"Report sink {sink!r} failed: {e}", extra={'run_id': report.run_id})
        self._transition(ReconcilerState.DONE)
        return report

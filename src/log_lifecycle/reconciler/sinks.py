"""Destinations for finished run reports."""

from datetime import datetime
from typing import Callable, Dict

import requests

from log_lifecycle.reconciler.models import RunReport, RunStatus
from log_lifecycle.utils.logging import get_logger

logger = get_logger(__name__)

ReportSink = Callable[[RunReport], None]

# Failures listed in one webhook message before truncating
MAX_LISTED_FAILURES = 10


class LoggingReportSink:
    """Writes the report to the log: a summary line and one line per failure."""

    def __init__(self, logger_name: str = "log_lifecycle.report"):
        self.logger = get_logger(logger_name)

    def __call__(self, report: RunReport) -> None:
        summary = (
            f"Run {report.run_id} {report.status.value}: "
            f"total={report.total} applied={report.applied} "
            f"skipped={report.skipped} failed={report.failed} pages={report.pages}"
        )
        extra = {'run_id': report.run_id, 'outcome': report.status.value}
        if report.status == RunStatus.SUCCEEDED:
            self.logger.info(summary, extra=extra)
        else:
            self.logger.warning(summary, extra=extra)

        if report.error is not None:
            self.logger.error(f"Run stopped: {report.error.message}",
                              extra={**extra, 'reason': report.error.kind})

        for outcome in report.failures:
            self.logger.error(
                f"{outcome.resource_id}: {outcome.error.kind} "
                f"({outcome.error.context.error_code or outcome.error.category.value}): "
                f"{outcome.error.message}",
                extra={
                    'run_id': report.run_id,
                    'resource_id': outcome.resource_id,
                    'region': outcome.resource.region,
                    'outcome': outcome.kind.value,
                },
            )


class WebhookReportSink:
    """Posts a Slack-compatible attachment to an incoming webhook."""

    COLORS = {
        RunStatus.SUCCEEDED: '#4CAF50',
        RunStatus.PARTIAL_FAILURE: '#FF9800',
        RunStatus.ABORTED: '#F44336',
        RunStatus.CONFIGURATION_ERROR: '#F44336',
        RunStatus.RUNNING: '#9E9E9E',
    }

    EMOJI = {
        RunStatus.SUCCEEDED: ':white_check_mark:',
        RunStatus.PARTIAL_FAILURE: ':warning:',
        RunStatus.ABORTED: ':x:',
        RunStatus.CONFIGURATION_ERROR: ':x:',
        RunStatus.RUNNING: ':hourglass:',
    }

    def __init__(self, webhook_url: str, only_on_failure: bool = False, timeout: float = 10):
        """Initialize webhook sink.

        Args:
            webhook_url: Incoming webhook URL
            only_on_failure: Skip reports whose status is ``succeeded``
            timeout: Request timeout in seconds
        """
        self.webhook_url = webhook_url
        self.only_on_failure = only_on_failure
        self.timeout = timeout

    def __call__(self, report: RunReport) -> None:
        if self.only_on_failure and report.is_success():
            logger.debug("Run succeeded; webhook notification skipped")
            return

        response = requests.post(self.webhook_url, json=self.payload(report), timeout=self.timeout)
        response.raise_for_status()
        logger.info(f"Sent run report to webhook ({response.status_code})",
                    extra={'run_id': report.run_id})

    def payload(self, report: RunReport) -> Dict:
        """Build the webhook message body."""
        title = report.status.value.replace('_', ' ').title()
        data = {
            'run_id': report.run_id,
            'filter': report.filter_text,
            'desired_state': report.desired_state,
            'total': report.total,
            'applied': report.applied,
            'skipped': report.skipped,
            'failed': report.failed,
        }
        fields = [
            {'title': key.replace('_', ' ').title(), 'value': str(value), 'short': True}
            for key, value in data.items()
        ]
        if report.error is not None:
            fields.append({'title': 'Error', 'value': report.error.message, 'short': False})

        failures = report.failures
        if failures:
            lines = [f"{o.resource_id}: {o.error.message}" for o in failures[:MAX_LISTED_FAILURES]]
            if len(failures) > MAX_LISTED_FAILURES:
                lines.append(f"... and {len(failures) - MAX_LISTED_FAILURES} more")
            fields.append({'title': 'Failures', 'value': "\n".join(lines), 'short': False})

        return {
            'attachments': [{
                'color': self.COLORS[report.status],
                'title': f"{self.EMOJI[report.status]} Log retention run {title}",
                'fields': fields,
                'footer': 'log-lifecycle',
                'ts': int(datetime.now().timestamp())
            }]
        }


def build_sinks(config) -> list:
    """Sinks for a run: always the log, plus a webhook when configured."""
    sinks: list = [LoggingReportSink()]
    if config.webhook_url:
        sinks.append(WebhookReportSink(
            config.webhook_url,
            only_on_failure=config.notify_on == 'failure',
        ))
    return sinks

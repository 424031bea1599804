"""AWS Lambda entry point for scheduled retention runs.

The function is configured through environment variables (``FILTER``,
``DESIRED_STATE``, ``REGIONS``, ...). An invocation event may carry
``filter`` and ``desired_state`` keys that take precedence, which allows
one function to serve several scheduled rules.
"""

import os
from typing import Any, Dict, Optional

from log_lifecycle.config.models import RunConfig
from log_lifecycle.config.parser import ConfigValidationError
from log_lifecycle.inventory.base import LogGroupInventory
from log_lifecycle.inventory.cloudwatch import build_inventory
from log_lifecycle.reconciler.models import RunStatus
from log_lifecycle.reconciler.reconciler import Reconciler
from log_lifecycle.reconciler.sinks import build_sinks
from log_lifecycle.utils.aws_client import AWSClientManager
from log_lifecycle.utils.errors import error_handler
from log_lifecycle.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def _config_from(event: Optional[Dict[str, Any]], environ) -> RunConfig:
    config = RunConfig.from_env(environ)
    if isinstance(event, dict):
        config = config.override(
            filter=event.get('filter'),
            desired_state=event.get('desired_state'),
        )
    return config


def run(
    event: Optional[Dict[str, Any]] = None,
    environ=None,
    inventory: Optional[LogGroupInventory] = None
) -> Dict[str, Any]:
    """Execute one run and return its report as a dictionary.

    Args:
        event: Invocation event
        environ: Environment mapping (defaults to ``os.environ``)
        inventory: Inventory to use instead of CloudWatch Logs

    Raises:
        ConfigurationError: after the report has been emitted, so the
            invocation is marked failed
    """
    environ = os.environ if environ is None else environ
    try:
        config = _config_from(event, environ)
    except ConfigValidationError as e:
        error_handler.log_error(e)
        raise

    if inventory is None:
        inventory = build_inventory(config, AWSClientManager(region=environ.get('AWS_REGION')))

    report = Reconciler(config, inventory, sinks=build_sinks(config)).run()
    if report.status == RunStatus.CONFIGURATION_ERROR:
        raise report.error
    return report.to_dict()


def lambda_handler(event, context):
    """Lambda handler."""
    setup_logging(os.environ.get('LOG_LEVEL', 'info'), json_output=True)
    if context is not None:
        logger.info(f"Invocation {getattr(context, 'aws_request_id', '-')}")
    return run(event)

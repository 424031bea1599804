"""Main CLI entry point."""

import sys
from typing import Optional, Sequence

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from log_lifecycle import __version__
from log_lifecycle.cli.output import OUTPUT_FORMATS, render_list, render_preview, render_report
from log_lifecycle.config.models import RunConfig
from log_lifecycle.config.parser import ConfigValidationError, load_config
from log_lifecycle.inventory.cloudwatch import RegionalInventory, build_inventory
from log_lifecycle.policy.desired_state import known_tokens
from log_lifecycle.reconciler.models import OutcomeKind, ResourceOutcome, RunStatus
from log_lifecycle.reconciler.preview import list_log_groups, preview
from log_lifecycle.reconciler.reconciler import Reconciler
from log_lifecycle.reconciler.sinks import build_sinks
from log_lifecycle.utils.aws_client import AWSClientManager
from log_lifecycle.utils.errors import ConfigurationError, InventoryError, LifecycleError
from log_lifecycle.utils.logging import get_logger, setup_logging

console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)

EXIT_CODES = {
    RunStatus.SUCCEEDED: 0,
    RunStatus.PARTIAL_FAILURE: 1,
    RunStatus.ABORTED: 1,
    RunStatus.RUNNING: 1,
    RunStatus.CONFIGURATION_ERROR: 2,
}

EXIT_INTERRUPTED = 130


def region_option(f):
    return click.option(
        '--region', 'regions', multiple=True,
        help='Region to walk (repeatable; default: all default-enabled regions)'
    )(f)


def filter_option(f):
    return click.option(
        '--filter', 'filter_text',
        help="Filter expression, e.g. 'retention == infinite && bytes > 0'"
    )(f)


def config_option(f):
    return click.option(
        '--config', 'config_path', type=click.Path(dir_okay=False),
        help='YAML file with run settings; command line options take precedence'
    )(f)


@click.group()
@click.version_option(__version__, prog_name='log-lifecycle')
@click.option('--profile', help='AWS profile to use')
@click.option('--log-level', default='info', type=click.Choice(['debug', 'info', 'warning', 'error']))
@click.option('--json-logs', is_flag=True, help='Emit log lines as JSON')
@click.pass_context
def cli(ctx, profile, log_level, json_logs):
    """Enforce retention policies across CloudWatch log groups."""
    ctx.ensure_object(dict)
    ctx.obj['profile'] = profile
    ctx.obj['log_level'] = log_level

    setup_logging(log_level, json_output=json_logs)


def build_run_config(
    config_path: Optional[str] = None,
    regions: Sequence[str] = (),
    **overrides
) -> RunConfig:
    """Load the optional config file and apply command line overrides.

    Exits with status 2 when the configuration is invalid.
    """
    try:
        config = load_config(config_path) if config_path else RunConfig()
        return config.override(regions=list(regions) or None, **overrides)
    except FileNotFoundError:
        console.print(f"[red]Error:[/red] Configuration file not found: {config_path}")
        sys.exit(2)
    except ConfigValidationError as e:
        console.print("[red]Configuration validation failed:[/red]\n")
        console.print(str(e), markup=False)
        sys.exit(2)


def create_inventory(config: RunConfig, profile: Optional[str] = None) -> RegionalInventory:
    """Create the CloudWatch Logs inventory for the configured regions."""
    client_manager = AWSClientManager(
        profile=profile,
        region=config.regions[0],
        max_pool_connections=max(config.max_workers, 10),
    )
    return build_inventory(config, client_manager)


def _fail(error: LifecycleError, code: int):
    if isinstance(error, ConfigurationError):
        console.print("[red]Configuration error[/red]")
    console.print(error.to_user_message(), markup=False)
    sys.exit(code)


@cli.command(name='list')
@region_option
@filter_option
@config_option
@click.option('--output', 'output_format', type=click.Choice(OUTPUT_FORMATS), default='table',
              help='Output format')
@click.pass_context
def list_command(ctx, regions, filter_text, config_path, output_format):
    """List log groups matching a filter (all log groups without one)."""
    config = build_run_config(config_path, regions, filter=filter_text)
    inventory = create_inventory(config, ctx.obj['profile'])

    try:
        with err_console.status("Listing log groups..."):
            result = list_log_groups(config, inventory)
    except ConfigurationError as e:
        _fail(e, 2)
    except InventoryError as e:
        _fail(e, 1)

    render_list(result, output_format, console)


@cli.command(name='preview')
@click.option('--desired', 'desired_state',
              help=f"Desired state: {', '.join(known_tokens())}")
@region_option
@filter_option
@config_option
@click.option('--output', 'output_format', type=click.Choice(OUTPUT_FORMATS), default='table',
              help='Output format')
@click.pass_context
def preview_command(ctx, desired_state, regions, filter_text, config_path, output_format):
    """Estimate how much stored data a desired state would remove. Changes nothing."""
    config = build_run_config(config_path, regions, filter=filter_text, desired_state=desired_state)
    inventory = create_inventory(config, ctx.obj['profile'])

    try:
        with err_console.status("Simulating..."):
            result = preview(config, inventory)
    except ConfigurationError as e:
        _fail(e, 2)
    except InventoryError as e:
        _fail(e, 1)

    render_preview(result, output_format, console)


class RichProgressCallback:
    """Outcome callback that displays run progress using Rich."""

    def __init__(self, progress: Progress, task_id):
        self.progress = progress
        self.task_id = task_id
        self.counts = {kind: 0 for kind in OutcomeKind}

    def __call__(self, outcome: ResourceOutcome):
        self.counts[outcome.kind] += 1
        self.progress.update(
            self.task_id,
            advance=1,
            description=(
                f"[green]{self.counts[OutcomeKind.APPLIED]} applied[/green] "
                f"{self.counts[OutcomeKind.SKIPPED]} skipped "
                f"[red]{self.counts[OutcomeKind.FAILED]} failed[/red]"
            ),
        )


@cli.command()
@click.option('--desired', 'desired_state',
              help=f"Desired state: {', '.join(known_tokens())}")
@filter_option
@region_option
@config_option
@click.option('--max-workers', type=int, help='Log groups changed in parallel per page')
@click.option('--webhook-url', help='Incoming webhook receiving the run report')
@click.option('--output', 'output_format', type=click.Choice(['table', 'json', 'prettyjson']),
              default='table', help='Report format')
@click.pass_context
def apply(ctx, desired_state, filter_text, regions, config_path, max_workers, webhook_url, output_format):
    """Converge matching log groups to the desired state.

    Exit status is 0 when every matching log group converged, 1 when some
    failed or the walk was aborted, and 2 for configuration errors.
    """
    config = build_run_config(
        config_path, regions,
        filter=filter_text,
        desired_state=desired_state,
        max_workers=max_workers,
        webhook_url=webhook_url,
    )

    if output_format == 'table':
        console.print(Panel.fit(
            f"[bold]Filter:[/bold] {escape(str(config.filter))}\n"
            f"[bold]Desired state:[/bold] {escape(str(config.desired_state))}\n"
            f"[bold]Regions:[/bold] {', '.join(config.regions)}\n"
            f"[bold]Workers:[/bold] {config.max_workers}",
            title="Log Retention Run",
            border_style="cyan"
        ))

    inventory = create_inventory(config, ctx.obj['profile'])

    with Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        TextColumn("[dim]{task.completed} log groups[/dim]"),
        console=err_console,
        transient=True,
    ) as progress:
        task_id = progress.add_task("Reconciling...", total=None)
        reconciler = Reconciler(
            config,
            inventory,
            sinks=build_sinks(config),
            progress_callback=RichProgressCallback(progress, task_id),
        )
        try:
            report = reconciler.run()
        except KeyboardInterrupt:
            report = reconciler.report
            progress.stop()
            console.print("[yellow]Interrupted; report of the work done so far:[/yellow]")
            render_report(report, output_format, console)
            sys.exit(EXIT_INTERRUPTED)

    render_report(report, output_format, console)
    sys.exit(EXIT_CODES[report.status])


def main():
    cli(obj={})


if __name__ == '__main__':
    main()

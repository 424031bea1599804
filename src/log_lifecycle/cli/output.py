"""Renderers for list, preview and run report output."""

import json
from typing import Any, Dict, List, Optional, Sequence

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from log_lifecycle.inventory.models import ResourceDescriptor
from log_lifecycle.policy.retention import to_api
from log_lifecycle.reconciler.models import RunReport, RunStatus
from log_lifecycle.reconciler.preview import ListResult, PreviewResult

OUTPUT_FORMATS = ['table', 'json', 'prettyjson', 'markdown', 'tsv']

LIST_HEADER = [
    "Name",
    "Region",
    "Source",
    "Class",
    "CreatedAt",
    "ElapsedDays",
    "RetentionInDays",
    "StoredBytes",
]

PREVIEW_HEADER = LIST_HEADER + [
    "BytesPerDay",
    "DesiredState",
    "ReductionInDays",
    "ReducibleBytes",
    "RemainingBytes",
]

STATUS_STYLES = {
    RunStatus.SUCCEEDED: "green",
    RunStatus.PARTIAL_FAILURE: "yellow",
    RunStatus.ABORTED: "red",
    RunStatus.CONFIGURATION_ERROR: "red",
    RunStatus.RUNNING: "dim",
}


def _retention(resource: ResourceDescriptor) -> str:
    days = to_api(resource.retention)
    return "infinite" if days is None else str(days)


def _resource_cells(resource: ResourceDescriptor) -> List[Any]:
    return [
        resource.name,
        resource.region,
        resource.source,
        resource.log_group_class,
        resource.created_at.strftime("%Y-%m-%dT%H:%M:%SZ") if resource.created_at else "",
        resource.elapsed_days,
        _retention(resource),
        resource.stored_bytes,
    ]


def list_rows(result: ListResult) -> List[List[Any]]:
    return [_resource_cells(r) for r in result.entries]


def list_total(result: ListResult) -> List[Any]:
    return ["Total", "", "", "", "", "", "", result.total_stored_bytes]


def preview_rows(result: PreviewResult) -> List[List[Any]]:
    return [
        _resource_cells(e.resource) + [
            e.bytes_per_day,
            result.desired_state,
            e.reduction_in_days,
            e.reducible_bytes,
            e.remaining_bytes,
        ]
        for e in result.entries
    ]


def preview_total(result: PreviewResult) -> List[Any]:
    return (
        ["Total", "", "", "", "", "", "", result.total_stored_bytes, "", "", ""]
        + [result.total_reducible_bytes, result.total_remaining_bytes]
    )


def to_json(data: Dict[str, Any], pretty: bool = False) -> str:
    return json.dumps(data, indent=2 if pretty else None, ensure_ascii=False, default=str)


def to_tsv(header: Sequence[str], rows: Sequence[Sequence[Any]], total: Optional[Sequence[Any]] = None) -> str:
    """Tab separated values with a header line."""
    lines = ["\t".join(header)]
    for row in list(rows) + ([total] if total else []):
        lines.append("\t".join(str(cell) for cell in row))
    return "\n".join(lines)


def _escape_markdown(cell: Any) -> str:
    return str(cell).replace("|", "\\|")


def to_markdown(header: Sequence[str], rows: Sequence[Sequence[Any]], total: Optional[Sequence[Any]] = None) -> str:
    """GitHub flavoured markdown table."""
    lines = [
        "| " + " | ".join(header) + " |",
        "|" + "|".join("---" for _ in header) + "|",
    ]
    for row in list(rows) + ([total] if total else []):
        lines.append("| " + " | ".join(_escape_markdown(cell) for cell in row) + " |")
    return "\n".join(lines)


def _table_cell(cell: Any) -> str:
    if isinstance(cell, int) and not isinstance(cell, bool):
        return f"{cell:,}"
    return escape(str(cell))


def to_rich_table(
    title: str,
    header: Sequence[str],
    rows: Sequence[Sequence[Any]],
    total: Optional[Sequence[Any]] = None
) -> Table:
    table = Table(title=title, show_header=True, header_style="bold", show_footer=total is not None)
    for index, name in enumerate(header):
        footer = _table_cell(total[index]) if total is not None else ""
        numeric = name.endswith(("Bytes", "Days", "Day"))
        table.add_column(
            name,
            footer=footer,
            style="cyan" if index == 0 else None,
            justify="right" if numeric else "left",
        )
    for row in rows:
        table.add_row(*(_table_cell(cell) for cell in row))
    return table


def _render_rows(
    console: Console,
    output_format: str,
    title: str,
    data: Dict[str, Any],
    header: Sequence[str],
    rows: Sequence[Sequence[Any]],
    total: Sequence[Any]
) -> None:
    if output_format == 'json':
        click.echo(to_json(data))
    elif output_format == 'prettyjson':
        click.echo(to_json(data, pretty=True))
    elif output_format == 'markdown':
        click.echo(to_markdown(header, rows, total))
    elif output_format == 'tsv':
        click.echo(to_tsv(header, rows, total))
    else:
        if not rows:
            console.print("[dim]No matching log groups[/dim]")
            return
        console.print(to_rich_table(title, header, rows, total))


def render_list(result: ListResult, output_format: str, console: Console) -> None:
    """Output the result of ``list``."""
    _render_rows(
        console, output_format, f"Log groups ({len(result.entries)})",
        result.to_dict(), LIST_HEADER, list_rows(result), list_total(result),
    )


def render_preview(result: PreviewResult, output_format: str, console: Console) -> None:
    """Output the result of ``preview``."""
    _render_rows(
        console, output_format, f"Preview: {result.desired_state} ({len(result.entries)} log groups)",
        result.to_dict(), PREVIEW_HEADER, preview_rows(result), preview_total(result),
    )


def render_report(report: RunReport, output_format: str, console: Console) -> None:
    """Output a run report as a summary panel and failure table, or JSON."""
    if output_format in ('json', 'prettyjson'):
        click.echo(to_json(report.to_dict(), pretty=output_format == 'prettyjson'))
        return

    style = STATUS_STYLES[report.status]
    lines = [
        f"[bold]Status:[/bold] [{style}]{report.status.value}[/{style}]",
        f"[bold]Filter:[/bold] {escape(str(report.filter_text))}",
        f"[bold]Desired state:[/bold] {escape(str(report.desired_state))}",
        f"[bold]Pages:[/bold] {report.pages}",
        f"[bold]Log groups:[/bold] {report.total} "
        f"([green]{report.applied} applied[/green], {report.skipped} skipped, "
        f"[red]{report.failed} failed[/red])",
    ]
    for reason, count in sorted(report.skipped_by_reason.items()):
        lines.append(f"   skipped {reason}: {count}")
    lines.append(f"[bold]Duration:[/bold] {report.duration:.1f}s")
    console.print(Panel("\n".join(lines), title=f"Run {report.run_id}", style=style))

    if report.error is not None:
        console.print(report.error.to_user_message(), style="red", markup=False)

    if report.failures:
        table = Table(title="Failures", show_header=True, header_style="bold")
        table.add_column("Log group", style="cyan")
        table.add_column("Error")
        table.add_column("Code")
        table.add_column("Message")
        for outcome in report.failures:
            table.add_row(
                escape(outcome.resource_id),
                outcome.error.kind,
                outcome.error.context.error_code or outcome.error.category.value,
                escape(outcome.error.message),
            )
        console.print(table)

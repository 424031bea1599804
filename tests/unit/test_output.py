"""Unit tests for output renderers."""

import io
import json
from datetime import datetime, timezone

from rich.console import Console

from conftest import make_group
from log_lifecycle.cli.output import (
    LIST_HEADER,
    PREVIEW_HEADER,
    list_rows,
    list_total,
    preview_rows,
    preview_total,
    render_report,
    to_json,
    to_markdown,
    to_rich_table,
    to_tsv,
)
from log_lifecycle.policy.desired_state import SetDays
from log_lifecycle.policy.retention import Days
from log_lifecycle.reconciler.models import ResourceOutcome, RunReport, RunStatus
from log_lifecycle.reconciler.preview import ListResult, PreviewEntry, PreviewResult
from log_lifecycle.utils.errors import MutationError

CREATED = datetime(2024, 1, 1, tzinfo=timezone.utc)


def listing():
    return ListResult(entries=[
        make_group("/aws/lambda/a", stored_bytes=2048, created_at=CREATED, elapsed_days=10),
        make_group("/ecs/b", Days(30), stored_bytes=10),
    ])


def recording_console():
    return Console(file=io.StringIO(), width=200, color_system=None)


def test_list_rows():
    rows = list_rows(listing())

    assert len(rows[0]) == len(LIST_HEADER)
    assert rows[0] == [
        "/aws/lambda/a", "us-east-1", "", "STANDARD", "2024-01-01T00:00:00Z", 10, "infinite", 2048,
    ]
    assert rows[1][6] == "30"
    assert list_total(listing())[-1] == 2058


def test_preview_rows_line_up_with_header():
    group = make_group("a", stored_bytes=900, elapsed_days=300)
    result = PreviewResult("3months", SetDays(90), [PreviewEntry.simulate(group, SetDays(90))])

    row = preview_rows(result)[0]

    assert len(row) == len(PREVIEW_HEADER)
    assert dict(zip(PREVIEW_HEADER, row))["ReducibleBytes"] == 630
    assert dict(zip(PREVIEW_HEADER, row))["DesiredState"] == "3months"
    total = preview_total(result)
    assert len(total) == len(PREVIEW_HEADER)
    assert total[-2:] == [630, 270]


def test_tsv():
    text = to_tsv(["Name", "StoredBytes"], [["a", 1], ["b", 2]], ["Total", 3])

    assert text.splitlines() == ["Name\tStoredBytes", "a\t1", "b\t2", "Total\t3"]


def test_markdown_escapes_pipes():
    text = to_markdown(["Name"], [["a|b"]])

    assert text.splitlines() == ["| Name |", "|---|", "| a\\|b |"]


def test_json():
    assert json.loads(to_json({"when": CREATED})) == {"when": "2024-01-01 00:00:00+00:00"}
    assert "\n" in to_json({"a": 1}, pretty=True)


def test_rich_table_formats_numbers_and_escapes_text():
    console = recording_console()

    console.print(to_rich_table("Groups", ["Name", "StoredBytes"], [["[bold]x", 1234567]], ["Total", 1234567]))

    output = console.file.getvalue()
    assert "1,234,567" in output
    assert "[bold]x" in output


def test_report_table_lists_failures():
    report = RunReport(filter_text="retention == infinite", desired_state="3months")
    report.record(ResourceOutcome.applied(make_group("a")))
    report.record(ResourceOutcome.failed(make_group("[b]"), MutationError("denied")))
    report.finish(RunStatus.PARTIAL_FAILURE)
    console = recording_console()

    render_report(report, "table", console)

    output = console.file.getvalue()
    assert "partial_failure" in output
    assert "1 applied" in output
    assert "Failures" in output
    assert "us-east-1:[b]" in output
    assert "MutationError" in output

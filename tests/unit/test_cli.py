"""Unit tests for the command line interface."""

import io
import json

import pytest
from click.testing import CliRunner
from rich.console import Console

from conftest import FakeInventory, client_error, make_group
from log_lifecycle import __version__
from log_lifecycle.cli.main import cli
from log_lifecycle.policy.desired_state import SetDays
from log_lifecycle.policy.retention import Days


@pytest.fixture
def inventory():
    return FakeInventory([
        [make_group("/aws/lambda/a", stored_bytes=900, elapsed_days=300)],
        [make_group("/ecs/b", Days(30), stored_bytes=10)],
    ])


@pytest.fixture
def configs(monkeypatch, inventory):
    """Route the CLI to the fake inventory and record the configs it builds."""
    seen = []

    def create_inventory(config, profile=None):
        seen.append(config)
        return inventory

    monkeypatch.setattr("log_lifecycle.cli.main.create_inventory", create_inventory)
    monkeypatch.setattr("log_lifecycle.cli.main.err_console", Console(file=io.StringIO()))
    return seen


def invoke(*args):
    return CliRunner().invoke(cli, ["--log-level", "error", *args], obj={})


def test_version():
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


class TestList:
    def test_json(self, configs):
        result = invoke("list", "--filter", "retention == infinite", "--region", "us-east-1", "--output", "json")

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [e["name"] for e in data["entries"]] == ["/aws/lambda/a"]
        assert configs[0].regions == ["us-east-1"]

    def test_without_filter_lists_everything(self, configs):
        result = invoke("list", "--region", "us-east-1", "--output", "tsv")

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0].startswith("Name\tRegion")
        assert len(lines) == 4

    def test_bad_filter_exits_2(self, configs, inventory):
        result = invoke("list", "--filter", "retention ==", "--region", "us-east-1")

        assert result.exit_code == 2
        assert "Configuration error" in result.output
        assert inventory.list_calls == []

    def test_regions_are_repeatable(self, configs):
        invoke("list", "--region", "us-east-1", "--region", "eu-west-1", "--output", "json")

        assert configs[0].regions == ["us-east-1", "eu-west-1"]


class TestPreview:
    def test_json_totals(self, configs, inventory):
        result = invoke("preview", "--desired", "3months", "--filter", "retention == infinite",
                        "--region", "us-east-1", "--output", "json")

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["total"]["reducible_bytes"] == 630
        assert inventory.set_calls == []

    def test_unknown_desired_state_exits_2(self, configs):
        result = invoke("preview", "--desired", "forever", "--region", "us-east-1")

        assert result.exit_code == 2


class TestApply:
    def test_success(self, configs, inventory):
        result = invoke("apply", "--desired", "3months", "--filter", "retention == infinite",
                        "--region", "us-east-1", "--max-workers", "2", "--output", "json")

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["status"] == "succeeded"
        assert data["applied"] == 1
        assert inventory.set_calls == [("/aws/lambda/a", SetDays(90))]
        assert configs[0].max_workers == 2

    def test_table_output(self, configs):
        result = invoke("apply", "--desired", "3months", "--filter", "retention == infinite",
                        "--region", "us-east-1")

        assert result.exit_code == 0, result.output
        assert "Log Retention Run" in result.output
        assert "succeeded" in result.output

    def test_partial_failure_exits_1(self, configs, inventory):
        inventory.mutation_errors["/aws/lambda/a"] = client_error("AccessDeniedException")

        result = invoke("apply", "--desired", "3months", "--filter", "retention == infinite",
                        "--region", "us-east-1")

        assert result.exit_code == 1

    def test_missing_filter_exits_2(self, configs, inventory):
        result = invoke("apply", "--desired", "3months", "--region", "us-east-1", "--output", "json")

        assert result.exit_code == 2
        assert inventory.list_calls == []

    def test_invalid_setting_exits_2(self, configs):
        result = invoke("apply", "--desired", "3months", "--filter", "retention == infinite",
                        "--max-workers", "0")

        assert result.exit_code == 2
        assert "max_workers" in result.output
        assert configs == []

    def test_config_file_with_overrides(self, configs, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text("filter: retention == infinite\ndesired_state: 1week\nregions: [eu-west-1]\n")

        result = invoke("apply", "--config", str(path), "--desired", "3months", "--output", "json")

        assert result.exit_code == 0, result.output
        assert configs[0].desired_state == "3months"
        assert configs[0].filter == "retention == infinite"
        assert configs[0].regions == ["eu-west-1"]

    def test_missing_config_file_exits_2(self, configs, tmp_path):
        result = invoke("apply", "--config", str(tmp_path / "missing.yaml"))

        assert result.exit_code == 2
        assert "not found" in result.output

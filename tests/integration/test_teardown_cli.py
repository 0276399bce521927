"""Integration tests for the teardown CLI commands."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from awsnuke.aws.client import CredentialValidationError
from awsnuke.cli.main import app
from tests.fixtures.drivers import StubDriver


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def audit_dir(tmp_path: Path) -> Path:
    return tmp_path / "audit-logs"


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, audit_dir: Path, monkeypatch):
    """Point the CLI at a temp config file and keep logging setup out of the way."""
    for name in ("AWSNUKE_ACCOUNT_ID", "AWS_PROFILE", "AWSNUKE_DRY_RUN", "AWSNUKE_REGIONS", "AWSNUKE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    config_path = tmp_path / "config.yaml"
    with open(config_path, "w") as f:
        yaml.dump({"audit_dir": str(audit_dir), "timeout": 30, "poll_interval": 10}, f)
    monkeypatch.setenv("AWSNUKE_CONFIG", str(config_path))

    with patch("awsnuke.cli.main.setup_logging"):
        yield


@pytest.fixture
def aws():
    """Patch account and region discovery."""
    with patch("awsnuke.cli.main.get_account_id", return_value="123456789012") as mock_account, patch(
        "awsnuke.cli.main.get_enabled_regions", return_value=["us-east-1"]
    ) as mock_regions:
        yield mock_account, mock_regions


def patch_drivers(*drivers: StubDriver):
    return patch("awsnuke.cli.main.default_drivers", return_value=list(drivers))


class TestRunCommand:
    """Tests for the run command."""

    def test_run_deletes_everything(self, runner: CliRunner, aws, audit_dir: Path) -> None:
        """Test a confirmed run deletes every type and writes an audit log."""
        buckets = StubDriver("Buckets", ["b-1", "b-2"])
        queues = StubDriver("Queues", ["q-1"])

        with patch_drivers(buckets, queues):
            result = runner.invoke(app, ["run", "--yes"])

        assert result.exit_code == 0, result.output
        assert "Authenticated for account: 123456789012" in result.output
        assert "Deletion complete for account 123456789012 (dry-run: False)" in result.output
        assert buckets.remote == {}
        assert queues.remote == {}
        assert len(list(audit_dir.glob("*/*/run-*.yaml"))) == 1

    def test_dry_run_deletes_nothing(self, runner: CliRunner, aws) -> None:
        instances = StubDriver("Instances", ["i-1"])
        groups = StubDriver("Groups", ["sg-1"], dependencies=["Instances"])

        with patch_drivers(instances, groups), patch("awsnuke.teardown.scheduler.time.sleep") as mock_sleep:
            result = runner.invoke(app, ["run", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "(dry-run: True)" in result.output
        assert instances.remote == {"i-1": {}}
        assert groups.remote == {"sg-1": {}}
        mock_sleep.assert_not_called()

    def test_failure_exits_with_code_1(self, runner: CliRunner, aws) -> None:
        """Test a failed resource type reports the first error and exits 1."""
        failing = StubDriver("Buckets", ["b-1"], remove_errors=[RuntimeError("AccessDenied")])

        with patch_drivers(failing):
            result = runner.invoke(app, ["run", "--yes"])

        assert result.exit_code == 1
        assert "Resource: Buckets" in result.output

    def test_confirmation_declined(self, runner: CliRunner, aws) -> None:
        buckets = StubDriver("Buckets", ["b-1"])

        with patch_drivers(buckets):
            result = runner.invoke(app, ["run"], input="n\n")

        assert result.exit_code == 0
        assert "Cancelled" in result.output
        assert buckets.remote == {"b-1": {}}
        assert buckets.fetch_calls == 0

    def test_account_mismatch_aborts(self, runner: CliRunner, aws) -> None:
        """Test the account guard stops a run against the wrong account."""
        buckets = StubDriver("Buckets", ["b-1"])

        with patch_drivers(buckets):
            result = runner.invoke(app, ["run", "--yes", "--account-id", "999999999999"])

        assert result.exit_code == 2
        assert "Account ID mismatch" in result.output
        assert buckets.remote == {"b-1": {}}

    def test_invalid_credentials(self, runner: CliRunner) -> None:
        with patch(
            "awsnuke.cli.main.get_account_id",
            side_effect=CredentialValidationError("Unable to validate AWS credentials: expired"),
        ):
            result = runner.invoke(app, ["run", "--yes"])

        assert result.exit_code == 2
        assert "Unable to validate AWS credentials" in result.output

    def test_explicit_regions_skip_discovery(self, runner: CliRunner, aws) -> None:
        _, mock_regions = aws

        with patch_drivers(StubDriver("Buckets")):
            result = runner.invoke(app, ["run", "--yes", "--regions", "eu-west-1,eu-central-1"])

        assert result.exit_code == 0, result.output
        mock_regions.assert_not_called()
        assert "Regions: eu-west-1, eu-central-1" in result.output

    def test_include_pulls_in_dependencies(self, runner: CliRunner, aws) -> None:
        instances = StubDriver("Instances")
        groups = StubDriver("Groups", ["sg-1"], dependencies=["Instances"])
        buckets = StubDriver("Buckets", ["b-1"])

        with patch_drivers(instances, groups, buckets):
            result = runner.invoke(app, ["run", "--yes", "--include", "Groups"])

        assert result.exit_code == 0, result.output
        assert groups.remote == {}
        assert buckets.remote == {"b-1": {}}
        assert instances.fetch_calls >= 1

    def test_unknown_type_rejected(self, runner: CliRunner, aws) -> None:
        with patch_drivers(StubDriver("Buckets")):
            result = runner.invoke(app, ["run", "--yes", "--include", "Nope"])

        assert result.exit_code == 2
        assert "Unknown resource types: Nope" in result.output

    def test_invalid_timeout_rejected(self, runner: CliRunner, aws) -> None:
        result = runner.invoke(app, ["run", "--yes", "--timeout", "0"])

        assert result.exit_code == 2
        assert "timeout must be positive" in result.output

    def test_no_audit_skips_log(self, runner: CliRunner, aws, audit_dir: Path) -> None:
        with patch_drivers(StubDriver("Buckets", ["b-1"])):
            result = runner.invoke(app, ["run", "--yes", "--no-audit"])

        assert result.exit_code == 0, result.output
        assert list(audit_dir.glob("*/*/run-*.yaml")) == []


class TestHistoryCommand:
    """Tests for the history command."""

    def test_history_empty(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["history"])

        assert result.exit_code == 0
        assert "No teardown runs found" in result.output

    def test_history_lists_runs(self, runner: CliRunner, aws) -> None:
        with patch_drivers(StubDriver("Buckets", ["b-1"])):
            runner.invoke(app, ["run", "--yes"])

        result = runner.invoke(app, ["history"])

        assert result.exit_code == 0
        assert "Total Runs: 1" in result.output

    def test_history_invalid_date(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["history", "--since", "yesterday"])

        assert result.exit_code == 2
        assert "Invalid date" in result.output


class TestTypesCommand:
    """Tests for the types command."""

    def test_lists_default_types(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["types"])

        assert result.exit_code == 0
        for name in ("EC2Instances", "RDSInstances", "SecurityGroups", "S3Buckets", "LogGroups", "SQSQueues"):
            assert name in result.output


class TestVersionCommand:
    """Tests for the version command."""

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "awsnuke version 0.1.0" in result.output


class TestGlobalOptions:
    """Tests for callback options."""

    def test_invalid_config_file(self, runner: CliRunner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("unknown_key: 1\n")

        result = runner.invoke(app, ["--config", str(bad), "version"])

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_mistyped_config_value(self, runner: CliRunner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("timeout: soon\n")

        result = runner.invoke(app, ["--config", str(bad), "version"])

        assert result.exit_code == 2
        assert "timeout must be an integer" in result.output

"""Main CLI entry point using Typer."""

from __future__ import annotations

import dataclasses
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..aws.client import CredentialValidationError, get_account_id, get_enabled_regions
from ..config import Config
from ..drivers import default_drivers
from ..models.teardown_run import TeardownRun
from ..models.teardown_task import TaskState
from ..teardown.audit import AuditStorage
from ..teardown.orchestrator import Orchestrator
from ..teardown.registry import ResourceRegistry, select_drivers
from ..utils.logging import setup_logging

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="awsnuke",
    help="AWS account teardown - delete every supported resource, dependencies first",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None

_STATE_STYLES = {
    TaskState.DONE: "green",
    TaskState.FAILED: "bold red",
    TaskState.TIMED_OUT: "bold yellow",
}


def _split_csv(value: Optional[str]) -> Optional[list[str]]:
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def _get_config() -> Config:
    return config if config is not None else Config.load()


@app.callback()
def main(
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    config_file: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to config file (default: $AWSNUKE_CONFIG or ~/.awsnuke/config.yaml)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """AWS account teardown tool."""
    global config

    # Load configuration
    try:
        config = Config.load(config_file)
    except (OSError, ValueError) as e:
        console.print(f"✗ Invalid configuration: {escape(str(e))}", style="bold red")
        raise typer.Exit(code=2)

    # Override with CLI options
    if profile:
        config.aws_profile = profile

    # Setup logging
    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose)

    # Disable colors if requested
    if no_color:
        console.no_color = True


@app.command()
def version():
    """Show version information."""
    import boto3

    from .. import __version__

    console.print(f"awsnuke version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    console.print(f"boto3 {boto3.__version__}")


@app.command()
def run(
    dry_run: Optional[bool] = typer.Option(
        None, "--dry-run/--execute", help="List and wait on dependencies without deleting anything"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    account_id: Optional[str] = typer.Option(
        None, "--account-id", help="Expected account ID; abort if the credentials resolve to another account"
    ),
    regions: Optional[str] = typer.Option(
        None, "--regions", help="Comma-separated regions (default: all enabled regions)"
    ),
    include: Optional[str] = typer.Option(None, "--include", help="Comma-separated resource types to delete"),
    exclude: Optional[str] = typer.Option(None, "--exclude", help="Comma-separated resource types to skip"),
    timeout: Optional[int] = typer.Option(None, "--timeout", help="Seconds allowed for each wait loop"),
    poll_interval: Optional[int] = typer.Option(None, "--poll-interval", help="Seconds between polls"),
    no_audit: bool = typer.Option(False, "--no-audit", help="Do not write an audit log for this run"),
):
    """Delete every resource of the supported types in the account."""
    try:
        run_config = dataclasses.replace(_get_config())
        run_config.apply(
            {
                "dry_run": dry_run,
                "account_id": account_id,
                "regions": _split_csv(regions),
                "include_types": _split_csv(include),
                "exclude_types": _split_csv(exclude),
                "timeout": timeout,
                "poll_interval": poll_interval,
            }
        )
        run_config.validate()
    except ValueError as e:
        console.print(f"✗ Invalid options: {escape(str(e))}", style="bold red")
        raise typer.Exit(code=2)

    try:
        console.print("🔐 Validating AWS credentials...")
        resolved_account = get_account_id(run_config.aws_profile)
        if run_config.account_id and run_config.account_id != resolved_account:
            console.print(
                f"✗ Account ID mismatch: expected {run_config.account_id}, "
                f"current credentials have {resolved_account}",
                style="bold red",
            )
            raise typer.Exit(code=2)
        run_config.account_id = resolved_account
        console.print(f"✓ Authenticated for account: {resolved_account}\n", style="green")

        if not run_config.regions:
            run_config.regions = get_enabled_regions(run_config.aws_profile)
    except CredentialValidationError as e:
        console.print(f"✗ {escape(str(e))}", style="bold red")
        raise typer.Exit(code=2)

    try:
        drivers = select_drivers(default_drivers(), run_config.include_types, run_config.exclude_types)
        orchestrator = Orchestrator(run_config, drivers)
    except ValueError as e:
        console.print(f"✗ Error: {escape(str(e))}", style="bold red")
        raise typer.Exit(code=2)

    console.print(f"Account: [bold]{run_config.account_id}[/bold]")
    console.print(f"Regions: {', '.join(run_config.regions)}")
    console.print(f"Resource types: {', '.join(orchestrator.registry.names())}")
    console.print(f"Dry run: {run_config.dry_run}\n")

    if not run_config.dry_run and not yes:
        console.print("⚠️  Deletion is irreversible.", style="bold yellow")
        confirm = typer.confirm(f"Delete all listed resource types in account {run_config.account_id}?", default=False)
        if not confirm:
            console.print("Cancelled.")
            raise typer.Exit(code=0)

    try:
        teardown_run = orchestrator.run()
    except KeyboardInterrupt:
        console.print("\nOperation cancelled by user", style="yellow")
        raise typer.Exit(code=130)

    if not no_audit:
        try:
            audit_file = AuditStorage(run_config.audit_dir).log_run(teardown_run)
            logger.debug(f"Wrote audit log {audit_file}")
        except OSError as e:
            console.print(f"⚠️  Could not write audit log: {e}", style="yellow")

    _print_summary(teardown_run)

    if not teardown_run.succeeded:
        console.print(f"\n✗ {escape(str(teardown_run.first_error))}", style="bold red")
        raise typer.Exit(code=1)

    console.print(
        f"\n-- Deletion complete for account {teardown_run.account_id} (dry-run: {teardown_run.dry_run}) --",
        style="green",
    )


def _print_summary(teardown_run: TeardownRun) -> None:
    table = Table(
        title=f"Teardown of Account {teardown_run.account_id}",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Resource Type", style="cyan")
    table.add_column("State")
    table.add_column("Found", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_column("Attempts", justify="right")
    table.add_column("Waited (s)", justify="right")

    for result in sorted(teardown_run.results, key=lambda r: r.resource_type):
        style = _STATE_STYLES.get(result.state, "")
        table.add_row(
            result.resource_type,
            f"[{style}]{result.state.value}[/{style}]" if style else result.state.value,
            str(len(result.initial_inventory)),
            str(len(result.remaining)),
            str(result.remove_attempts),
            str(result.elapsed_seconds),
        )

    console.print()
    console.print(table)


@app.command("types")
def list_types():
    """Show supported resource types, their dependencies and deletion tier."""
    registry = ResourceRegistry()
    try:
        registry.register_all(default_drivers())
        tiers = registry.deletion_tiers()
    except ValueError as e:
        console.print(f"✗ Error: {escape(str(e))}", style="bold red")
        raise typer.Exit(code=2)

    table = Table(title="Resource Types", show_header=True, header_style="bold magenta")
    table.add_column("Tier", justify="center")
    table.add_column("Resource Type", style="cyan")
    table.add_column("Depends On")

    for tier, names in tiers.items():
        for name in names:
            dependencies = registry.get(name).dependencies
            table.add_row(str(tier), name, ", ".join(dependencies) or "-")

    console.print(table)


@app.command()
def history(
    since: Optional[str] = typer.Option(None, "--since", help="Only show runs on or after this date (YYYY-MM-DD)"),
):
    """List past teardown runs from the audit log."""
    since_date = None
    if since:
        try:
            since_date = datetime.strptime(since, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        except ValueError:
            console.print(f"✗ Invalid date '{since}'. Use YYYY-MM-DD", style="bold red")
            raise typer.Exit(code=2)

    storage = AuditStorage(_get_config().audit_dir)
    runs = storage.query_runs(since=since_date)

    if not runs:
        console.print("No teardown runs found", style="yellow")
        return

    table = Table(title="Teardown Runs", show_header=True, header_style="bold magenta")
    table.add_column("Run ID", style="cyan")
    table.add_column("Account")
    table.add_column("Started")
    table.add_column("Dry Run", justify="center")
    table.add_column("Status")
    table.add_column("Failed Types")

    for data in runs:
        run_info = data["run"]
        failed = [
            entry["resource_type"]
            for entry in data.get("resource_types", [])
            if entry["state"] in (TaskState.FAILED.value, TaskState.TIMED_OUT.value)
        ]
        table.add_row(
            run_info["run_id"],
            run_info["account_id"],
            run_info["timestamp"],
            "yes" if run_info["dry_run"] else "no",
            run_info["status"],
            ", ".join(failed) or "-",
        )

    console.print(table)
    console.print(f"\nTotal Runs: {len(runs)}")


def cli_main() -> None:
    app()


if __name__ == "__main__":
    cli_main()

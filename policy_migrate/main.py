#!/usr/bin/env python3
"""CLI entry point for the policy migration tool."""

import argparse
import sys
from pathlib import Path

import yaml
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from .core.client import GraphClient
from .core.errors import TransportError, ValidationError
from .core.pipeline import PipelineDriver, RunSummary, describe_error
from .models.config import SUPPORTED_PLATFORMS, MigrationConfig

console = Console()

DEFAULT_CONFIG = "migration.yaml"


def read_config(path: str) -> MigrationConfig:
    """Read a config file. Only the default config file may be absent."""
    config_path = Path(path)
    if config_path.exists():
        return MigrationConfig.load(config_path)
    if path != DEFAULT_CONFIG:
        raise FileNotFoundError(f"Config not found: {config_path}")
    return MigrationConfig.from_dict({})


def load_config(args: argparse.Namespace) -> MigrationConfig:
    """Load the config file (if present) and apply command line overrides."""
    config = read_config(args.config)

    if args.export_root:
        config.export_root = args.export_root
    if args.create_if_missing:
        config.create_if_missing = True
    if args.platform:
        config.platform = args.platform
    if args.fail_fast:
        config.continue_on_error = False

    if not config.export_root:
        config.export_root = Prompt.ask("Path to the export folder", console=console)

    return config


def print_summary(summary: RunSummary) -> None:
    """Render per-kind success and failure counts."""
    table = Table(title="\nMigration Summary")
    table.add_column("Operation")
    table.add_column("Policy Kind")
    table.add_column("Succeeded", justify="right")
    table.add_column("Failed", justify="right")

    for (operation, kind), (ok, failed) in summary.counts().items():
        failed_cell = f"[red]{failed}" if failed else "0"
        table.add_row(operation, kind.value, f"[green]{ok}", failed_cell)

    console.print(table)

    failures = [r for r in summary.results if not r.success]
    for r in failures:
        console.print(f"  [red]{r.operation} {r.kind.value}[/red] {r.name}: {r.message}")

    console.print(f"\n[bold]Summary:[/bold] {summary.succeeded} successful, {summary.failed} failed")


def _run_phase(args: argparse.Namespace, phase: str) -> int:
    try:
        config = load_config(args)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Configuration error: {e}")
        return 1

    driver = PipelineDriver(config)

    try:
        if phase == "run":
            summary = driver.run()
        elif phase == "export":
            summary = driver.export()
        elif args.dry_run:
            summary = driver.validate_staged()
        else:
            summary = driver.import_()
    except (TransportError, ValidationError, OSError) as e:
        console.print(f"[red]Migration stopped: {describe_error(e)}")
        print_summary(driver.summary)
        return 1
    except ValueError as e:
        console.print(f"[red]Configuration error: {e}")
        return 1

    print_summary(summary)
    return 0 if summary.ok else 1


def cmd_run(args: argparse.Namespace) -> int:
    """Export from the source tenant and import into the destination."""
    return _run_phase(args, "run")


def cmd_export(args: argparse.Namespace) -> int:
    """Export policies from the source tenant only."""
    return _run_phase(args, "export")


def cmd_import(args: argparse.Namespace) -> int:
    """Import staged policies into the destination tenant only."""
    return _run_phase(args, "import")


def cmd_verify_auth(args: argparse.Namespace) -> int:
    """Verify API authentication against a tenant."""
    try:
        config = read_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Configuration error: {e}")
        return 1

    tenant = config.source if args.tenant == "source" else config.destination
    console.print(f"Verifying Graph API credentials for {tenant.label} tenant...", style="blue")

    client = GraphClient(config)
    try:
        client.connect(tenant.tenant_id)
        if client.verify_connection():
            console.print("[green]Authentication successful!")
            return 0
        console.print("[red]API returned unexpected response")
    except TransportError as e:
        console.print(f"[red]Authentication failed: {describe_error(e)}")
    except ValueError as e:
        console.print(f"[red]Configuration error: {e}")
    finally:
        client.disconnect()

    return 1


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Path to config file")
    parser.add_argument("--export-root", help="Folder staged policies are written to")
    parser.add_argument(
        "--create-if-missing", action="store_true", help="Create the export folder if needed"
    )
    parser.add_argument(
        "--platform", choices=SUPPORTED_PLATFORMS, help="Only export settings catalog policies for a platform"
    )
    parser.add_argument("--fail-fast", action="store_true", help="Stop at the first failed policy")


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="policy-migrate",
        description="Copy settings catalog and device configuration policies between tenants",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Export from source, then import into destination")
    _add_common_arguments(run_parser)

    export_parser = subparsers.add_parser("export", help="Export policies from the source tenant")
    _add_common_arguments(export_parser)

    import_parser = subparsers.add_parser("import", help="Import staged policies into the destination tenant")
    _add_common_arguments(import_parser)
    import_parser.add_argument(
        "--dry-run", action="store_true", help="Validate staged files without creating anything"
    )

    verify_parser = subparsers.add_parser("verify-auth", help="Verify API authentication")
    verify_parser.add_argument("--config", default=DEFAULT_CONFIG, help="Path to config file")
    verify_parser.add_argument(
        "--tenant", choices=("source", "destination"), default="source", help="Tenant to check"
    )

    args = parser.parse_args()

    if args.command == "run":
        return cmd_run(args)
    elif args.command == "export":
        return cmd_export(args)
    elif args.command == "import":
        return cmd_import(args)
    elif args.command == "verify-auth":
        return cmd_verify_auth(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""Command-line interface for PayBack Transfer."""

import asyncio
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.panel import Panel

from .config import TransferConfig, load_config
from .core.engine import TransferEngine
from .models.results import IncompatibleFormat, NeedsResolution
from .observability import TransferReporter, configure_logging
from .persistence import (
    load_or_create_snapshot,
    load_resolutions,
    load_snapshot,
    save_snapshot,
    write_resolution_template,
)
from .remote.submitter import BulkImportSubmitter, HttpBulkImportSubmitter, NoopBulkImportSubmitter
from .utils.exceptions import InvalidFormatError

app = typer.Typer(
    name="payback-transfer",
    help="PayBack Transfer - export, import and reconcile PayBack data",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger(__name__)


def _load_config(config_file: Path | None, log_level: str | None = None) -> TransferConfig:
    """Load configuration and set up logging, exiting with code 1 on errors."""
    try:
        config = load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]ERROR:[/red] {e}")
        raise typer.Exit(code=1) from e

    configure_logging(
        level=log_level or config.logging.level,
        json_logs=config.logging.format == "json",
        log_file=config.logging.file,
    )
    return config


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]ERROR:[/red] Cannot read {path}: {e}")
        raise typer.Exit(code=1) from e


@app.command()
def validate(
    export_file: Path = typer.Argument(..., help="Export file to validate", exists=True),
    strict: bool = typer.Option(False, "--strict", help="Fail on malformed rows"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
) -> None:
    """
    Validate an export file without importing it.

    Checks the export envelope, then parses every section and reports rows
    that would be dropped.

    Examples:
        payback-transfer validate PayBack_Export_2024-03-01_183000.csv
        payback-transfer validate export.csv --strict
    """
    config = _load_config(config_file, log_level="WARNING")
    console.print(f"\n[bold blue]Validating export:[/bold blue] {export_file}\n")

    engine = TransferEngine(config)
    text = _read_text(export_file)

    if not engine.validate_format(text):
        console.print("[red]ERROR: The data format is not compatible with PayBack[/red]")
        raise typer.Exit(code=1)

    snapshot = engine.parse_export(text)
    errors = engine.last_parser.errors if engine.last_parser else []
    TransferReporter(console).print_parse_summary(snapshot, errors)

    if errors and strict:
        console.print("\n[red]ERROR: Validation failed (strict mode)[/red]")
        raise typer.Exit(code=1)
    if not errors:
        console.print("\n[green]PASS: Validation successful![/green]")


@app.command()
def conflicts(
    export_file: Path = typer.Argument(..., help="Export file to check", exists=True),
    snapshot_file: Path = typer.Option(..., "--snapshot", "-s", help="Local snapshot (JSON)"),
    write_template: Path | None = typer.Option(
        None, "--write-template", help="Write a resolution file linking every conflict"
    ),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
) -> None:
    """
    List identity conflicts between an export and the local snapshot.

    Examples:
        payback-transfer conflicts export.csv --snapshot me.json
        payback-transfer conflicts export.csv -s me.json --write-template resolutions.yaml
    """
    config = _load_config(config_file, log_level="WARNING")
    engine = TransferEngine(config)

    try:
        local = load_snapshot(snapshot_file)
        parsed = engine.parse_export(_read_text(export_file))
    except (FileNotFoundError, ValueError, InvalidFormatError) as e:
        console.print(f"[red]ERROR:[/red] {e}")
        raise typer.Exit(code=1) from e

    found = engine.detect_conflicts(parsed, local)
    TransferReporter(console).print_conflicts(found)

    if write_template and found:
        write_resolution_template(found, write_template)
        console.print(f"\n[green]OK:[/green] Resolution template written to {write_template}")


@app.command(name="import")
def import_command(
    export_file: Path = typer.Argument(..., help="Export file to import", exists=True),
    snapshot_file: Path = typer.Option(..., "--snapshot", "-s", help="Local snapshot (JSON)"),
    user_name: str | None = typer.Option(
        None, "--user-name", help="Current-user name when creating a new snapshot"
    ),
    resolutions_file: Path | None = typer.Option(
        None, "--resolutions", "-r", help="Conflict resolution file (YAML)"
    ),
    offline: bool = typer.Option(False, "--offline", help="Skip remote submission"),
    report_file: Path | None = typer.Option(None, "--report", help="Write a JSON report"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    log_level: str | None = typer.Option(
        None, "--log-level", help="TRACE, DEBUG, VERBOSE, INFO, WARNING or ERROR"
    ),
) -> None:
    """
    Import an export file into the local snapshot and the remote store.

    Without --resolutions the import stops when identity conflicts are found.

    Examples:
        payback-transfer import export.csv --snapshot me.json --user-name Me
        payback-transfer import export.csv -s me.json -r resolutions.yaml
        payback-transfer import export.csv -s me.json --offline
    """
    config = _load_config(config_file, log_level)

    try:
        local = load_or_create_snapshot(snapshot_file, user_name)
        resolutions = load_resolutions(resolutions_file) if resolutions_file else None
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]ERROR:[/red] {e}")
        raise typer.Exit(code=1) from e

    text = _read_text(export_file)

    async def run_import():
        submitter: BulkImportSubmitter
        if config.remote is None or offline:
            submitter = NoopBulkImportSubmitter()
            engine = TransferEngine(config, submitter)
            return await engine.import_data(text, local, resolutions)

        async with HttpBulkImportSubmitter(config.remote) as submitter:
            engine = TransferEngine(config, submitter)
            return await engine.import_data(text, local, resolutions)

    result = asyncio.run(run_import())

    reporter = TransferReporter(console)
    reporter.print_import_result(result)
    if report_file:
        reporter.write_json_report(result, report_file)

    if isinstance(result, NeedsResolution):
        console.print(
            "\n[dim]Write a resolution file with: payback-transfer conflicts "
            f"{export_file} -s {snapshot_file} --write-template resolutions.yaml[/dim]"
        )
        raise typer.Exit(code=2)
    if isinstance(result, IncompatibleFormat):
        raise typer.Exit(code=1)

    save_snapshot(local, snapshot_file)
    console.print(f"\n[green]OK:[/green] Snapshot saved to {snapshot_file}")


@app.command()
def export(
    snapshot_file: Path = typer.Option(..., "--snapshot", "-s", help="Local snapshot (JSON)"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Output file (default: timestamped name)"
    ),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
) -> None:
    """
    Export the local snapshot as a PayBack export file.

    Examples:
        payback-transfer export --snapshot me.json
        payback-transfer export -s me.json -o backup.csv
    """
    config = _load_config(config_file, log_level="WARNING")
    engine = TransferEngine(config)

    try:
        local = load_snapshot(snapshot_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]ERROR:[/red] {e}")
        raise typer.Exit(code=1) from e

    target = output or Path(engine.serializer.suggested_filename())
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(engine.export_all(local), encoding="utf-8")

    console.print(
        f"[green]OK:[/green] Exported {len(local.friends)} friends, {len(local.groups)} groups "
        f"and {len(local.expenses)} expenses to {target}"
    )


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(
        Panel.fit(
            "[bold]PayBack Transfer[/bold]\n\n"
            f"Version: [cyan]{__version__}[/cyan]\n"
            "Python: 3.11+\n\n"
            "[bold]Features:[/bold]\n"
            "- Export file validation and parsing\n"
            "- Identity conflict detection and resolution files\n"
            "- Group and expense deduplication\n"
            "- Chunked remote bulk import",
            title="About",
            border_style="blue",
        )
    )


if __name__ == "__main__":
    app()

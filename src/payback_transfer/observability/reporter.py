"""Console and JSON reporting for import and export runs."""

import json
from pathlib import Path
from typing import Any

import structlog
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.parsed import ParsedExportSnapshot
from ..models.resolution import Conflict
from ..models.results import (
    ImportResult,
    ImportSummary,
    IncompatibleFormat,
    NeedsResolution,
    PartialSuccess,
    Success,
)
from ..utils.exceptions import MalformedRowError

logger = structlog.get_logger(__name__)


def result_to_dict(result: ImportResult) -> dict[str, Any]:
    """
    Convert an import result into a JSON-ready dictionary.

    Returns:
        Dictionary with a ``status`` key and status-specific fields
    """
    if isinstance(result, (Success, PartialSuccess)):
        data: dict[str, Any] = {
            "status": "success" if isinstance(result, Success) else "partial_success",
            "summary": _summary_to_dict(result.summary),
        }
        if isinstance(result, PartialSuccess):
            data["warnings"] = list(result.warnings)
        return data

    if isinstance(result, NeedsResolution):
        return {
            "status": "needs_resolution",
            "conflicts": [
                {
                    "imported_member_id": str(c.imported_member_id),
                    "imported_name": c.imported_name,
                    "existing_member_id": str(c.existing_friend.member_id),
                    "existing_name": c.existing_friend.name,
                }
                for c in result.conflicts
            ],
        }

    return {"status": "incompatible_format", "reason": result.reason}


def _summary_to_dict(summary: ImportSummary) -> dict[str, Any]:
    data: dict[str, Any] = {
        "friends_added": summary.friends_added,
        "groups_added": summary.groups_added,
        "expenses_added": summary.expenses_added,
        "description": summary.description,
    }
    if summary.remote_created is not None:
        data["remote_created"] = {
            "friends": summary.remote_created.friends,
            "groups": summary.remote_created.groups,
            "expenses": summary.remote_created.expenses,
        }
    return data


class TransferReporter:
    """
    Render transfer results with rich.

    Usage:
        reporter = TransferReporter(console)
        reporter.print_import_result(result)
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def print_parse_summary(
        self,
        snapshot: ParsedExportSnapshot,
        errors: list[MalformedRowError] | None = None,
    ) -> None:
        """Show header metadata, per-section row counts and dropped rows."""
        table = Table(title="Export contents", show_header=True, header_style="bold cyan")
        table.add_column("Section")
        table.add_column("Rows", justify="right")
        for section, count in snapshot.record_counts().items():
            table.add_row(section, str(count))
        self.console.print(table)

        if snapshot.exported_at or snapshot.account_email or snapshot.current_user_name:
            self.console.print(
                f"Exported at: {snapshot.exported_at.isoformat() if snapshot.exported_at else 'unknown'}\n"
                f"Account: {snapshot.account_email or 'unknown'}\n"
                f"Exported by: {snapshot.current_user_name or 'unknown'}"
            )

        if errors:
            self.console.print(f"\n[yellow]WARNING: Dropped {len(errors)} malformed rows:[/yellow]")
            for error in errors[:10]:
                self.console.print(f"  - {error}")
            if len(errors) > 10:
                self.console.print(f"  ... and {len(errors) - 10} more")

    def print_conflicts(self, conflicts: list[Conflict]) -> None:
        if not conflicts:
            self.console.print("[green]OK:[/green] No identity conflicts")
            return

        table = Table(
            title=f"{len(conflicts)} identity conflicts",
            show_header=True,
            header_style="bold yellow",
        )
        table.add_column("Imported ID", style="cyan")
        table.add_column("Imported name")
        table.add_column("Existing ID", style="cyan")
        table.add_column("Existing name")
        table.add_column("Status")
        for conflict in conflicts:
            existing = conflict.existing_friend
            table.add_row(
                str(conflict.imported_member_id),
                conflict.imported_name,
                str(existing.member_id),
                existing.name,
                existing.status or "friend",
            )
        self.console.print(table)

    def print_import_result(self, result: ImportResult) -> None:
        """Render any of the four import outcomes."""
        if isinstance(result, IncompatibleFormat):
            self.console.print(
                Panel.fit(f"[bold red]Import failed[/bold red]\n\n{result.reason}", border_style="red")
            )
            return

        if isinstance(result, NeedsResolution):
            self.console.print("[yellow]Import needs conflict resolution[/yellow]\n")
            self.print_conflicts(result.conflicts)
            return

        summary = result.summary
        style = "green" if isinstance(result, Success) else "yellow"
        title = "Import complete" if isinstance(result, Success) else "Import completed with warnings"
        lines = [
            f"[bold {style}]{title}[/bold {style}]",
            "",
            summary.description,
            f"Friends added: [cyan]{summary.friends_added}[/cyan]",
            f"Groups added: [cyan]{summary.groups_added}[/cyan]",
            f"Expenses added: [cyan]{summary.expenses_added}[/cyan]",
        ]
        if summary.remote_created is not None:
            created = summary.remote_created
            lines.append(
                f"Remote created: {created.friends} friends, "
                f"{created.groups} groups, {created.expenses} expenses"
            )
        self.console.print(Panel.fit("\n".join(lines), border_style=style))

        if isinstance(result, PartialSuccess):
            for warning in result.warnings:
                self.console.print(f"  [yellow]-[/yellow] {warning}")

    def write_json_report(self, result: ImportResult, output_path: Path) -> None:
        """Write the import result as a JSON report."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(result_to_dict(result), f, indent=2)
        logger.info("JSON report written", path=str(output_path))

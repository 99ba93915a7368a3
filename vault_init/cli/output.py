"""Output formatting for the vault-init CLI.

Run reports and seal status print as compact JSON (default, for piping),
indented JSON, or a rich table. Errors always print as JSON on stderr.
"""

import json
import sys
from enum import Enum
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from vault_init.bootstrap import BootstrapReport
from vault_init.models.vault import SealStatus


class OutputFormat(str, Enum):
    """Output format options."""

    json = "json"
    pretty = "pretty"
    table = "table"


def output_json(data: dict[str, Any], pretty: bool = False) -> None:
    """Print ``data`` as JSON to stdout."""
    print(json.dumps(data, indent=2 if pretty else None, default=str))


def _flag(value: bool, good: bool) -> str:
    """Render a boolean, green when it matches ``good``."""
    colour = "green" if value == good else "red"
    return f"[{colour}]{'yes' if value else 'no'}[/{colour}]"


def _print_table(title: str, rows: list[tuple[str, str]]) -> None:
    table = Table(title=title, show_header=False)
    table.add_column(style="bold")
    table.add_column()
    for label, value in rows:
        table.add_row(label, value)
    Console().print(table)


def output_report(report: BootstrapReport, format: OutputFormat = OutputFormat.json) -> None:
    """Print what a bootstrap run did."""
    if format != OutputFormat.table:
        output_json(
            {
                "initialized": report.initialized,
                "unsealed": report.unsealed,
                "rotated_root": report.rotated_root,
                "saved_to": report.saved_to,
                "keys_submitted": report.keys_submitted,
            },
            pretty=format == OutputFormat.pretty,
        )
        return

    rows = [
        ("Initialized", _flag(report.initialized, True)),
        ("Unsealed", _flag(report.unsealed, True)),
        ("Rotated root", _flag(report.rotated_root, True)),
        ("Saved to", "\n".join(report.saved_to) or "-"),
    ]
    for phase, count in report.keys_submitted.items():
        rows.append((f"Keys submitted ({phase})", str(count)))
    _print_table("vault-init run", rows)


def output_seal_status(status: SealStatus, format: OutputFormat = OutputFormat.json) -> None:
    """Print a seal-status snapshot. JSON keeps Vault's field names."""
    if format != OutputFormat.table:
        output_json(status.model_dump(by_alias=True), pretty=format == OutputFormat.pretty)
        return

    rows = [
        ("Seal type", status.seal_type or "-"),
        ("Initialized", _flag(status.initialized, True)),
        ("Sealed", _flag(status.sealed, False)),
        ("Total shares", str(status.n)),
        ("Threshold", str(status.t)),
        ("Unseal progress", f"{status.progress}/{status.t}"),
        ("Version", status.version or "-"),
        ("Storage type", status.storage_type or "-"),
    ]
    if status.recovery_seal:
        rows.append(("Recovery seal", _flag(True, True)))
    if status.migration:
        rows.append(("Seal migration", _flag(True, False)))
    if status.cluster_name:
        rows.append(("Cluster", f"{status.cluster_name} ({status.cluster_id})"))
    _print_table("Vault seal status", rows)


def output_error(
    code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
    exit_code: int = 1,
) -> None:
    """Print an error as JSON to stderr and exit.

    Args:
        code: Error code (PHASE_FAILED, VAULT_ERROR, CONFIG_ERROR)
        message: Error message
        details: Optional error details, e.g. the failing phase and operation
        exit_code: Process exit code
    """
    error_data: dict[str, Any] = {
        "error": True,
        "code": code,
        "message": message,
    }
    if details:
        error_data["details"] = details

    print(json.dumps(error_data), file=sys.stderr)
    raise typer.Exit(exit_code)

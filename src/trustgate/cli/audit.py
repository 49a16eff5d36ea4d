"""CLI command: trustgate audit — show recent decisions from the audit trail."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console
from rich.table import Table

from trustgate.audit.record import AuditRecord, format_timestamp
from trustgate.config import TrustGateConfig
from trustgate.policy.models import Reason
from trustgate.storage.db import get_db
from trustgate.storage.repos import AuditRepo

console = Console(stderr=True)


@click.command()
@click.option("--limit", "-n", type=int, default=20, help="Number of records to show.")
@click.option(
    "--reason",
    type=click.Choice([r.value for r in Reason]),
    default=None,
    help="Only show decisions with this reason.",
)
@click.option("--lines", is_flag=True, help="Print raw audit lines instead of a table.")
def audit(limit: int, reason: str | None, lines: bool) -> None:
    """List the most recent recorded decisions, newest first."""
    config = TrustGateConfig.load()
    if not config.db_path.exists():
        console.print(f"[yellow]No audit database at {config.db_path}[/yellow]")
        return

    rows = asyncio.run(_fetch(config, limit, reason))
    if not rows:
        console.print("No decisions recorded.")
        return

    if lines:
        for row in rows:
            click.echo(_to_record(row).to_line())
        return

    table = Table(box=None, padding=(0, 2))
    table.add_column("Time (UTC)", style="dim")
    table.add_column("Source")
    table.add_column("Outcome")
    table.add_column("Reason", style="dim")
    table.add_column("Rule", style="cyan")
    table.add_column("User")
    for row in rows:
        color = "yellow" if row["outcome"] == "required" else "green"
        table.add_row(
            format_timestamp(row["timestamp"]),
            row["source"],
            f"[{color}]{row['outcome']}[/{color}]",
            row["reason"],
            row["rule_label"],
            row["user"],
        )
    console.print(table)


async def _fetch(config: TrustGateConfig, limit: int, reason: str | None) -> list[dict]:
    db = await get_db(config.db_path)
    try:
        return await AuditRepo(db).list_recent(limit=limit, reason=reason)
    finally:
        await db.close()


def _to_record(row: dict) -> AuditRecord:
    return AuditRecord(
        timestamp=row["timestamp"],
        source=row["source"],
        outcome=row["outcome"],
        reason=row["reason"],
        rule_label=row["rule_label"],
        user=row["user"],
        service=row["service"],
        id=row["id"],
    )

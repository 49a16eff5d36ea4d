"""CLI command: trustgate validate [PATH] — load a policy and show its rules."""

from __future__ import annotations

import sys

import click
from rich.console import Console
from rich.table import Table

from trustgate.config import TrustGateConfig
from trustgate.errors import ConfigError
from trustgate.policy.loader import load_policy_file, resolve_policy

console = Console(stderr=True)


@click.command()
@click.argument("path", required=False, type=click.Path(exists=True))
@click.pass_context
def validate(ctx: click.Context, path: str | None) -> None:
    """Check that a policy loads, and list its trusted networks in match order."""
    try:
        if path:
            policy = load_policy_file(path)
        else:
            policy = resolve_policy(TrustGateConfig.load(), ctx.obj.get("policy_path"))
    except ConfigError as exc:
        console.print(f"[red]Invalid policy:[/red] {exc}")
        sys.exit(1)

    console.print(f"[bold]Policy[/bold] [cyan]{policy.name}[/cyan] is valid")
    if policy.description:
        console.print(f"  [dim]{policy.description}[/dim]")

    if not policy.rules:
        console.print("  No trusted networks: every connection requires a second factor.")
        return

    table = Table(box=None, padding=(0, 2))
    table.add_column("#", style="dim")
    table.add_column("Network")
    table.add_column("Label", style="cyan")
    for index, rule in enumerate(policy.rules, start=1):
        table.add_row(str(index), str(rule.network), rule.label)
    console.print(table)
    console.print("  Anything else: [yellow]second factor required[/yellow]")

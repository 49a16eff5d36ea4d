"""CLI command: trustgate check <ADDRESS> — show the decision for one address."""

from __future__ import annotations

import json
import sys

import click
from rich.console import Console

from trustgate.cli.common import open_audit_sink
from trustgate.config import TrustGateConfig
from trustgate.errors import ConfigError
from trustgate.policy.evaluator import PolicyEvaluator
from trustgate.policy.loader import resolve_policy
from trustgate.policy.models import ConnectionContext

console = Console(stderr=True)


@click.command()
@click.argument("address")
@click.option("--user", default="", help="User name to show in the audit line.")
@click.option("--json", "as_json", is_flag=True, help="Print the decision as JSON.")
@click.option(
    "--record/--no-record",
    default=False,
    help="Also write this check to the audit database.",
)
@click.pass_context
def check(
    ctx: click.Context,
    address: str,
    user: str,
    as_json: bool,
    record: bool,
) -> None:
    """Evaluate ADDRESS against the active policy."""
    try:
        config = TrustGateConfig.load()
        policy = resolve_policy(config, ctx.obj.get("policy_path"))
    except ConfigError as exc:
        console.print(f"[red]Policy error:[/red] {exc}")
        sys.exit(1)

    context = ConnectionContext(source_address=address, user=user, service="check")
    with open_audit_sink(config, to_db=record) as sink:
        decision = PolicyEvaluator(policy, sink=sink).evaluate(context)

    rule = decision.matched_rule
    if as_json:
        click.echo(
            json.dumps(
                {
                    "source_address": address,
                    "second_factor_required": decision.second_factor_required,
                    "reason": decision.reason.value,
                    "matched_rule": rule.label if rule else None,
                    "matched_network": str(rule.network) if rule else None,
                    "policy": policy.name,
                }
            )
        )
        return

    if decision.second_factor_required:
        console.print(
            f"[yellow]second factor REQUIRED[/yellow] for {address} "
            f"([dim]{decision.reason.value}[/dim])"
        )
    else:
        console.print(
            f"[green]second factor not required[/green] for {address} — "
            f"trusted by [cyan]{rule.label}[/cyan] ({rule.network})"
        )

"""CLI command: trustgate server."""

from __future__ import annotations

import click
from rich.console import Console

from trustgate.config import TrustGateConfig
from trustgate.errors import ConfigError

console = Console(stderr=True)


@click.command()
@click.option("--port", type=int, default=None, help="Port to listen on (default: 8471).")
@click.pass_context
def server(ctx: click.Context, port: int | None) -> None:
    """Serve the stored audit trail over a read-only HTTP API on localhost."""
    try:
        import uvicorn
    except ImportError:
        console.print("[red]The web extra is not installed:[/red] pip install trustgate[web]")
        raise SystemExit(1)

    from trustgate.web.app import create_app

    config = TrustGateConfig.load()
    if port is not None:
        config.web_port = port

    try:
        app = create_app(config, policy_path=ctx.obj.get("policy_path"))
    except ConfigError as exc:
        console.print(f"[red]Policy error:[/red] {exc}")
        raise SystemExit(1)

    policy = app.state.policy
    console.print(
        f"Policy [bold]{policy.name}[/bold] ({len(policy.rules)} rules), "
        f"audit trail at [dim]{config.db_path}[/dim]"
    )
    console.print(f"Listening on [cyan]http://{config.web_host}:{config.web_port}/api[/cyan]")

    uvicorn.run(app, host=config.web_host, port=config.web_port, log_level="info")

"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging

import click

from trustgate import __version__


@click.group()
@click.version_option(version=__version__, prog_name="trustgate")
@click.option(
    "--policy",
    "-p",
    type=click.Path(exists=True),
    help="Path to a YAML policy file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, policy: str | None, verbose: bool) -> None:
    """TrustGate — decide when a login needs a second factor, by network origin."""
    ctx.ensure_object(dict)
    ctx.obj["policy_path"] = policy
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    # Decision lines are always emitted
    logging.getLogger("trustgate.audit").setLevel(logging.INFO)


def _register_commands() -> None:
    from trustgate.cli.audit import audit  # noqa: F811
    from trustgate.cli.check import check  # noqa: F811
    from trustgate.cli.pam import pam  # noqa: F811
    from trustgate.cli.server import server  # noqa: F811
    from trustgate.cli.validate import validate  # noqa: F811

    main.add_command(check)
    main.add_command(pam)
    main.add_command(validate)
    main.add_command(audit)
    main.add_command(server)


_register_commands()

"""CLI command: trustgate pam — hook for pam_exec.

Exit status 0 means the connection came from a trusted network and the
second-factor module may be skipped; anything else means it must run.
Example ``/etc/pam.d/sshd`` line, placed just above the authenticator::

    auth [success=1 default=ignore] pam_exec.so quiet /usr/local/bin/trustgate pam
"""

from __future__ import annotations

import logging
import os
import sys

import click

from trustgate.cli.common import open_audit_sink
from trustgate.config import TrustGateConfig
from trustgate.errors import ConfigError
from trustgate.policy.evaluator import PolicyEvaluator
from trustgate.policy.loader import resolve_policy
from trustgate.policy.models import ConnectionContext

logger = logging.getLogger(__name__)

EXIT_TRUSTED = 0
EXIT_SECOND_FACTOR = 1


@click.command()
@click.pass_context
def pam(ctx: click.Context) -> None:
    """Decide for the connection described by PAM_RHOST (for pam_exec)."""
    sys.exit(_run(ctx.obj.get("policy_path")))


def _run(policy_path: str | None) -> int:
    try:
        config = TrustGateConfig.load()
        policy = resolve_policy(config, policy_path)
    except ConfigError as exc:
        logger.error("Refusing to skip second factor, policy unusable: %s", exc)
        return EXIT_SECOND_FACTOR

    context = ConnectionContext(
        source_address=os.environ.get("PAM_RHOST"),
        user=os.environ.get("PAM_USER", ""),
        service=os.environ.get("PAM_SERVICE", ""),
    )

    try:
        with open_audit_sink(config) as sink:
            decision = PolicyEvaluator(policy, sink=sink).evaluate(context)
    except Exception:
        logger.exception("Unexpected error evaluating %r", context.source_address)
        return EXIT_SECOND_FACTOR

    if decision.second_factor_required:
        return EXIT_SECOND_FACTOR
    return EXIT_TRUSTED

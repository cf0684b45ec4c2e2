"""
dcaudit/probes/network.py — Reachability and name-resolution checks.

is_reachable() is the precondition every other probe runs before it issues
a remote query.
"""

from __future__ import annotations

import logging
import sys

from dcaudit.probes import FAIL, ProbeContext, ProbeResult
from dcaudit.probes.shell import CommandFailed, parse_key_values, ps_quote, run_command, run_powershell

LOGGER = logging.getLogger(__name__)


def _ping_args(ctx: ProbeContext) -> list[str]:
    timeout = ctx.cfg.PING_TIMEOUT_SECONDS
    if sys.platform == "win32":
        return [ctx.cfg.PING_EXE, "-n", "1", "-w", str(timeout * 1000), ctx.target]
    return [ctx.cfg.PING_EXE, "-c", "1", "-W", str(timeout), ctx.target]


def is_reachable(ctx: ProbeContext) -> bool:
    try:
        run_command(_ping_args(ctx), ctx.cfg.PING_TIMEOUT_SECONDS + 1)
    except CommandFailed as exc:
        LOGGER.warning("%s is not reachable: %s", ctx.target, exc)
        return False
    return True


def probe_dns(ctx: ProbeContext) -> ProbeResult:
    """Ask the target's own DNS server to resolve the target's name."""
    if not is_reachable(ctx):
        return ProbeResult.unreachable(FAIL)

    name = ps_quote(ctx.target)
    script = (
        f"$answers = @(Resolve-DnsName -Name {name} -Server {name} -DnsOnly -ErrorAction Stop)\n"
        '"DNS_ANSWERS=" + $answers.Count'
    )
    try:
        values = parse_key_values(run_powershell(ctx.cfg, script))
    except CommandFailed as exc:
        LOGGER.warning("DNS lookup against %s failed: %s", ctx.target, exc)
        return ProbeResult.ok(FAIL)

    answers = values.get("DNS_ANSWERS", "0")
    if not (answers.isascii() and answers.isdigit()) or int(answers) == 0:
        return ProbeResult.ok(FAIL)
    return ProbeResult.ok("Passed")

"""
dcaudit/probes/dcdiag.py — Runs the dcdiag test batch against the target.

dcdiag exits 0 even when individual tests fail, so the verdicts come from
its text output (see dcaudit.diag_parser), not from the exit code. Output
with no verdicts at all (dcdiag could not bind, empty stdout) reports
DCDIAG_FAILURE for every test.
"""

from __future__ import annotations

import logging

from dcaudit.diag_parser import DiagOutcome, parse_diag_text
from dcaudit.probes import DCDIAG_FAILURE, ProbeContext, ProbeResult
from dcaudit.probes.network import is_reachable
from dcaudit.probes.shell import CommandFailed, run_command

LOGGER = logging.getLogger(__name__)

DCDIAG_TESTS = ("NetLogons", "Replications", "Services", "Advertising", "FSMOCheck")


def dcdiag_args(ctx: ProbeContext) -> list[str]:
    return [ctx.cfg.DCDIAG_EXE, f"/s:{ctx.target}"] + [f"/test:{name}" for name in DCDIAG_TESTS]


def probe_dcdiag(ctx: ProbeContext) -> ProbeResult:
    if not is_reachable(ctx):
        return ProbeResult.unreachable(DiagOutcome.all_failed(DCDIAG_TESTS))

    try:
        output = run_command(dcdiag_args(ctx), ctx.cfg.DCDIAG_TIMEOUT_SECONDS, check=False)
    except CommandFailed as exc:
        LOGGER.warning("dcdiag against %s failed: %s", ctx.target, exc)
        return ProbeResult.ok(DiagOutcome.query_failed(DCDIAG_FAILURE))

    outcome = parse_diag_text(output)
    if not outcome.results:
        LOGGER.warning("dcdiag against %s produced no test verdicts: %.500s", ctx.target, output.strip())
        return ProbeResult.ok(DiagOutcome.query_failed(DCDIAG_FAILURE))
    missing = [name for name in DCDIAG_TESTS if name not in outcome.results]
    if missing:
        LOGGER.warning("dcdiag reported no verdict for: %s", ", ".join(missing))
    return ProbeResult.ok(outcome)

#!/usr/bin/env python3
"""
dcaudit/audit.py — Runs one health audit of a domain controller.

Steps:
  1. Resolve the target   (--target, TARGET setting, or the local FQDN)
  2. Precondition         (target must be a domain controller)
  3. Probes               (every probe once; optional thread pool)
  4. Record + report      (classify, render, tally alerts)
  5. Sinks                (log, optional report file, optional email)

Exit codes: 0 no alerts, 1 alerts or ineligible target, 2 invalid settings.

Usage:
    dc-health-audit --target dc01.corp.example
    python -m dcaudit.audit --env-file env/dc01.env --json

Importable (used by tests):
    from dcaudit.audit import run_audit
    run = run_audit(cfg)
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import orjson
from pydantic import ValidationError

from config.settings import Settings, load_settings
from dcaudit.diag_parser import DiagOutcome
from dcaudit.notify import deliver
from dcaudit.probes import FAIL, ZERO, ProbeContext, ProbeDefinition, ProbeResult
from dcaudit.probes import dcdiag as probe_dcdiag
from dcaudit.probes import directory as probe_directory
from dcaudit.probes import host as probe_host
from dcaudit.probes import network as probe_network
from dcaudit.probes import services as probe_services
from dcaudit.record import ResultRecord, assemble
from dcaudit.report import Report, build_report

LOGGER = logging.getLogger(__name__)

PROBES: tuple[ProbeDefinition, ...] = (
    ProbeDefinition(
        "identity",
        probe_directory.probe_identity,
        probe_directory.DomainControllerInfo.uniform(FAIL),
    ),
    ProbeDefinition("dns", probe_network.probe_dns, FAIL),
    ProbeDefinition("uptime", probe_host.probe_uptime, FAIL),
    ProbeDefinition("os_free_space", probe_host.probe_os_free_space, ZERO),
    ProbeDefinition("ntds_free_space", probe_host.probe_ntds_free_space, ZERO),
    ProbeDefinition(
        "services",
        probe_services.probe_services,
        probe_services.ServiceStatuses.uniform(FAIL),
    ),
    ProbeDefinition(
        "dcdiag",
        probe_dcdiag.probe_dcdiag,
        DiagOutcome.all_failed(probe_dcdiag.DCDIAG_TESTS),
    ),
    ProbeDefinition("replication_errors", probe_directory.probe_replication_errors, FAIL),
    ProbeDefinition("last_replication", probe_directory.probe_last_replication, FAIL),
    ProbeDefinition("dc_count", probe_directory.probe_dc_count, FAIL),
    ProbeDefinition("domain_level", probe_directory.probe_domain_level, FAIL),
    ProbeDefinition("forest_level", probe_directory.probe_forest_level, FAIL),
)


class TargetNotEligible(Exception):
    """The target answered, and it is not a domain controller."""


@dataclass(frozen=True)
class AuditRun:
    record: ResultRecord
    report: Report


def run_probes(
    ctx: ProbeContext,
    probes: tuple[ProbeDefinition, ...] = PROBES,
    parallel: bool = False,
    workers: int = 4,
) -> dict[str, ProbeResult]:
    """Execute every probe once. Parallel runs are joined before returning."""
    if not parallel:
        return {probe.name: probe.execute(ctx) for probe in probes}

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="probe") as pool:
        futures = {probe.name: pool.submit(probe.execute, ctx) for probe in probes}
        return {name: future.result() for name, future in futures.items()}


def run_audit(cfg: Settings | None = None, probes: tuple[ProbeDefinition, ...] = PROBES) -> AuditRun:
    """Audit the configured target and return its record and report.

    Raises:
        TargetNotEligible: if the target is reachable but not a DC.
    """
    if cfg is None:
        cfg = load_settings()

    ctx = ProbeContext(target=cfg.target_host, cfg=cfg)
    LOGGER.info("Auditing %s", ctx.target)

    eligible = probe_directory.check_eligibility(ctx)
    if eligible is False:
        raise TargetNotEligible(f"{ctx.target} is not a domain controller")
    if eligible is None:
        LOGGER.warning("Could not confirm %s is a domain controller; auditing anyway", ctx.target)

    started = time.perf_counter()
    results = run_probes(ctx, probes, parallel=cfg.PARALLEL_PROBES, workers=cfg.PROBE_WORKERS)
    unreachable = [name for name, result in results.items() if not result.reachable]
    if unreachable:
        LOGGER.warning(
            "%d probe(s) could not reach %s: %s", len(unreachable), ctx.target, ", ".join(unreachable)
        )

    record = assemble(ctx.target, results, time.perf_counter() - started)
    report = build_report(record)
    LOGGER.info("%s: %d alert(s)", ctx.target, report.alert_count)
    return AuditRun(record=record, report=report)


def to_json(run: AuditRun) -> bytes:
    payload = {
        **run.record.model_dump(),
        "alert_count": run.report.alert_count,
        "subject": run.report.subject,
    }
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Point-in-time health audit of a domain controller")
    parser.add_argument("--target", help="host to audit (default: TARGET setting or local FQDN)")
    parser.add_argument("--env-file", default=".env", help="settings file (default: .env)")
    parser.add_argument("--parallel", action="store_true", help="run probes in a thread pool")
    parser.add_argument("--no-notify", action="store_true", help="skip the report file and email sinks")
    parser.add_argument("--json", action="store_true", help="print the record as JSON instead of the report")
    return parser.parse_args(argv)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        cfg = load_settings(args.env_file)
        overrides = {}
        if args.target:
            overrides["TARGET"] = args.target
        if args.parallel:
            overrides["PARALLEL_PROBES"] = True
        if args.no_notify:
            overrides.update(SMTP_HOST=None, REPORT_PATH=None)
        if overrides:
            cfg = Settings(**{**cfg.model_dump(), **overrides})
    except (ValidationError, ValueError) as exc:
        print(f"ERROR: invalid settings: {exc}", file=sys.stderr)
        return 2

    _configure_logging(cfg.LOG_LEVEL)

    try:
        run = run_audit(cfg)
    except TargetNotEligible as exc:
        LOGGER.error("%s; nothing audited", exc)
        return 1

    if args.json:
        sys.stdout.write(to_json(run).decode("utf-8") + "\n")
    else:
        print(run.report.body)
        print(run.report.subject)

    deliver(cfg, run.report)
    return run.report.exit_code


if __name__ == "__main__":
    sys.exit(main())

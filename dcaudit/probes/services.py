"""
dcaudit/probes/services.py — Status of the services a DC cannot run without.

One remote query returns all three statuses; the result is a fixed record
so the report always has exactly one line per monitored service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from dcaudit.probes import FAIL, WMI_FAILURE, ProbeContext, ProbeResult
from dcaudit.probes.network import is_reachable
from dcaudit.probes.shell import CommandFailed, parse_key_values, ps_quote, run_powershell

LOGGER = logging.getLogger(__name__)

MONITORED_SERVICES = ("DNS", "NTDS", "Netlogon")


@dataclass(frozen=True)
class ServiceStatuses:
    dns: str
    ntds: str
    netlogon: str

    @classmethod
    def uniform(cls, status: str) -> ServiceStatuses:
        return cls(dns=status, ntds=status, netlogon=status)


def _status(values: dict[str, str], service: str) -> str:
    return "Passed" if values.get(service.upper()) == "Running" else "Failed"


def probe_services(ctx: ProbeContext) -> ProbeResult:
    if not is_reachable(ctx):
        return ProbeResult.unreachable(ServiceStatuses.uniform(FAIL))

    names = ",".join(MONITORED_SERVICES)
    script = (
        f"Get-Service -ComputerName {ps_quote(ctx.target)} -Name {names} -ErrorAction Stop | "
        'ForEach-Object { "$($_.Name.ToUpper())=$($_.Status)" }'
    )
    try:
        values = parse_key_values(run_powershell(ctx.cfg, script))
    except CommandFailed as exc:
        LOGGER.warning("Service query against %s failed: %s", ctx.target, exc)
        return ProbeResult.ok(ServiceStatuses.uniform(WMI_FAILURE))

    statuses = ServiceStatuses(
        dns=_status(values, "DNS"),
        ntds=_status(values, "NTDS"),
        netlogon=_status(values, "Netlogon"),
    )
    for service, status in zip(MONITORED_SERVICES, (statuses.dns, statuses.ntds, statuses.netlogon)):
        if status != "Passed":
            LOGGER.warning("%s service on %s is %s", service, ctx.target, values.get(service.upper(), "missing"))
    return ProbeResult.ok(statuses)

"""
dcaudit/probes/directory.py — Active Directory queries about the target DC.

Every comparative probe here computes its own verdict and returns a value
string ending in "Passed" or "Failure"; the classifier only has to look for
the failing keyword. The verdict rules are pure functions so they can be
tested without a domain.

Thresholds are fixed constants:
  LAST_REPLICATION_MAX_AGE   newest inbound replication must be younger
  MIN_DOMAIN_CONTROLLERS     a domain with fewer DCs has no redundancy
  EXEMPT_LEVEL_RELEASE       functional level never flagged as outdated
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from dcaudit.probes import AD_QUERY_FAILURE, FAIL, ProbeContext, ProbeResult
from dcaudit.probes.network import is_reachable
from dcaudit.probes.shell import CommandFailed, parse_key_values, ps_quote, run_powershell

LOGGER = logging.getLogger(__name__)

LAST_REPLICATION_MAX_AGE = timedelta(hours=24)
MIN_DOMAIN_CONTROLLERS = 2
# Server 2019 and 2022 cannot raise past the 2016 functional level.
EXEMPT_LEVEL_RELEASE = (2016, False)
# Win32_ComputerSystem.DomainRole: 4 = backup DC, 5 = primary DC.
DC_DOMAIN_ROLES = {4, 5}

_RELEASE_RE = re.compile(r"(?P<year>20\d\d)\s*(?P<r2>R2)?", re.IGNORECASE)
_AD_PREAMBLE = "Import-Module ActiveDirectory -ErrorAction Stop\n"


@dataclass(frozen=True)
class DomainControllerInfo:
    site: str
    os_version: str
    roles: str

    @classmethod
    def uniform(cls, value: str) -> DomainControllerInfo:
        return cls(site=value, os_version=value, roles=value)


# ---------------------------------------------------------------------------
# Verdict rules
# ---------------------------------------------------------------------------


def format_replication_errors(count: int) -> str:
    return f"{count} Passed" if count == 0 else f"{count} Failure"


def format_last_replication(last_success: datetime | None, now: datetime) -> str:
    if last_success is None:
        return "Never Failure"
    stamp = last_success.astimezone(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
    fresh = now - last_success <= LAST_REPLICATION_MAX_AGE
    return f"{stamp} {'Passed' if fresh else 'Failure'}"


def format_dc_count(count: int) -> str:
    return f"{count} {'Passed' if count >= MIN_DOMAIN_CONTROLLERS else 'Failure'}"


def release_key(text: str) -> tuple[int, bool] | None:
    """(year, is_r2) from "Windows Server 2012 R2 ..." or "Windows2012R2Domain"."""
    match = _RELEASE_RE.search(text)
    if not match:
        return None
    return int(match.group("year")), match.group("r2") is not None


def compare_functional_level(level: str, os_version: str) -> str:
    """Fail a functional level that lags behind the DC's own OS release."""
    level_release = release_key(level)
    os_release = release_key(os_version)
    if level_release is None or os_release is None:
        return f"{level} Passed"
    if level_release == EXEMPT_LEVEL_RELEASE:
        return f"{level} Passed"
    return f"{level} {'Failure' if os_release > level_release else 'Passed'}"


def _parse_timestamp(value: str) -> datetime | None:
    """Parse ISO timestamps with either '+00:00' or trailing 'Z' UTC designator."""
    raw = value.strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = f"{raw[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


# ---------------------------------------------------------------------------
# Remote queries
# ---------------------------------------------------------------------------


def _query(ctx: ProbeContext, script: str) -> dict[str, str] | None:
    try:
        return parse_key_values(run_powershell(ctx.cfg, _AD_PREAMBLE + script))
    except CommandFailed as exc:
        LOGGER.warning("Directory query against %s failed: %s", ctx.target, exc)
        return None


def _count(values: dict[str, str] | None, key: str) -> int | None:
    raw = (values or {}).get(key, "")
    return int(raw) if raw.isascii() and raw.isdigit() else None


def probe_identity(ctx: ProbeContext) -> ProbeResult:
    """Site, operating system and FSMO roles of the target DC."""
    if not is_reachable(ctx):
        return ProbeResult.unreachable(DomainControllerInfo.uniform(FAIL))

    target = ps_quote(ctx.target)
    values = _query(
        ctx,
        f"$dc = Get-ADDomainController -Identity {target} -Server {target} -ErrorAction Stop\n"
        '"SITE=" + $dc.Site\n'
        '"OS=" + $dc.OperatingSystem\n'
        '"ROLES=" + (($dc.OperationMasterRoles | ForEach-Object { $_.ToString() }) -join \', \')',
    )
    if values is None or "SITE" not in values:
        return ProbeResult.ok(DomainControllerInfo.uniform(AD_QUERY_FAILURE))
    return ProbeResult.ok(
        DomainControllerInfo(
            site=values["SITE"],
            os_version=values.get("OS", ""),
            roles=values.get("ROLES") or "None",
        )
    )


def probe_replication_errors(ctx: ProbeContext) -> ProbeResult:
    if not is_reachable(ctx):
        return ProbeResult.unreachable(FAIL)

    values = _query(
        ctx,
        f"$failures = @(Get-ADReplicationFailure -Target {ps_quote(ctx.target)} -ErrorAction Stop "
        "| Where-Object { $_.FailureCount -gt 0 })\n"
        '"FAILURES=" + $failures.Count',
    )
    count = _count(values, "FAILURES")
    if count is None:
        return ProbeResult.ok(AD_QUERY_FAILURE)
    return ProbeResult.ok(format_replication_errors(count))


def probe_last_replication(ctx: ProbeContext) -> ProbeResult:
    if not is_reachable(ctx):
        return ProbeResult.unreachable(FAIL)

    values = _query(
        ctx,
        f"$meta = @(Get-ADReplicationPartnerMetadata -Target {ps_quote(ctx.target)} -ErrorAction Stop)\n"
        "$last = ($meta | Measure-Object -Property LastReplicationSuccess -Maximum).Maximum\n"
        "if ($last) { \"LAST_SUCCESS=\" + $last.ToUniversalTime().ToString('yyyy-MM-ddTHH:mm:ssZ') } "
        'else { "LAST_SUCCESS=" }',
    )
    if values is None or "LAST_SUCCESS" not in values:
        return ProbeResult.ok(AD_QUERY_FAILURE)
    last_success = _parse_timestamp(values["LAST_SUCCESS"])
    return ProbeResult.ok(format_last_replication(last_success, datetime.now(tz=UTC)))


def probe_dc_count(ctx: ProbeContext) -> ProbeResult:
    if not is_reachable(ctx):
        return ProbeResult.unreachable(FAIL)

    values = _query(
        ctx,
        f"$dcs = @(Get-ADDomainController -Filter * -Server {ps_quote(ctx.target)} -ErrorAction Stop)\n"
        '"DC_COUNT=" + $dcs.Count',
    )
    count = _count(values, "DC_COUNT")
    if count is None:
        return ProbeResult.ok(AD_QUERY_FAILURE)
    return ProbeResult.ok(format_dc_count(count))


def _functional_level(ctx: ProbeContext, key: str) -> ProbeResult:
    if not is_reachable(ctx):
        return ProbeResult.unreachable(FAIL)

    target = ps_quote(ctx.target)
    values = _query(
        ctx,
        f"$dc = Get-ADDomainController -Identity {target} -Server {target} -ErrorAction Stop\n"
        '"OS=" + $dc.OperatingSystem\n'
        f'"DOMAIN_MODE=" + (Get-ADDomain -Server {target} -ErrorAction Stop).DomainMode\n'
        f'"FOREST_MODE=" + (Get-ADForest -Server {target} -ErrorAction Stop).ForestMode',
    )
    if values is None or not values.get(key):
        return ProbeResult.ok(AD_QUERY_FAILURE)
    return ProbeResult.ok(compare_functional_level(values[key], values.get("OS", "")))


def probe_domain_level(ctx: ProbeContext) -> ProbeResult:
    return _functional_level(ctx, "DOMAIN_MODE")


def probe_forest_level(ctx: ProbeContext) -> ProbeResult:
    return _functional_level(ctx, "FOREST_MODE")


# ---------------------------------------------------------------------------
# Precondition
# ---------------------------------------------------------------------------


def check_eligibility(ctx: ProbeContext) -> bool | None:
    """True for a domain controller, False for any other host, None if unknown."""
    if not is_reachable(ctx):
        return None

    script = (
        f"$cs = Get-CimInstance -ClassName Win32_ComputerSystem -ComputerName {ps_quote(ctx.target)} "
        "-ErrorAction Stop\n"
        '"DOMAIN_ROLE=" + $cs.DomainRole'
    )
    try:
        values = parse_key_values(run_powershell(ctx.cfg, script))
    except CommandFailed as exc:
        LOGGER.warning("Could not determine the domain role of %s: %s", ctx.target, exc)
        return None

    role = _count(values, "DOMAIN_ROLE")
    if role is None:
        return None
    return role in DC_DOMAIN_ROLES

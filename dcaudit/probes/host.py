"""
dcaudit/probes/host.py — Operating-system level readings over CIM/WMI.

Uptime and the free space of the system drive and of the drive holding the
NTDS database. Free space is reported as a whole percentage; the threshold
is applied later by dcaudit.classify.
"""

from __future__ import annotations

import logging

from dcaudit.probes import FAIL, WMI_FAILURE, ZERO, ProbeContext, ProbeResult
from dcaudit.probes.network import is_reachable
from dcaudit.probes.shell import CommandFailed, parse_key_values, ps_quote, run_powershell

LOGGER = logging.getLogger(__name__)

NTDS_PARAMETERS_KEY = r"SYSTEM\CurrentControlSet\Services\NTDS\Parameters"
NTDS_DATABASE_VALUE = "DSA Database file"

_FREE_PERCENT_SCRIPT = """
$disk = Get-CimInstance -ClassName Win32_LogicalDisk -ComputerName {target} -Filter "DeviceID='$drive'" -ErrorAction Stop
"FREE_PERCENT=" + [math]::Round(($disk.FreeSpace / $disk.Size) * 100)
"""


def _query(ctx: ProbeContext, script: str, key: str) -> str | None:
    try:
        values = parse_key_values(run_powershell(ctx.cfg, script))
    except CommandFailed as exc:
        LOGGER.warning("CIM query against %s failed: %s", ctx.target, exc)
        return None
    value = values.get(key, "")
    if not (value.isascii() and value.isdigit()):
        LOGGER.warning("CIM query against %s returned no usable %s", ctx.target, key)
        return None
    return value


def probe_uptime(ctx: ProbeContext) -> ProbeResult:
    """Whole hours since the target last booted."""
    if not is_reachable(ctx):
        return ProbeResult.unreachable(FAIL)

    script = (
        f"$os = Get-CimInstance -ClassName Win32_OperatingSystem -ComputerName {ps_quote(ctx.target)} "
        "-ErrorAction Stop\n"
        '"UPTIME_HOURS=" + [math]::Floor(((Get-Date) - $os.LastBootUpTime).TotalHours)'
    )
    hours = _query(ctx, script, "UPTIME_HOURS")
    return ProbeResult.ok(hours if hours is not None else WMI_FAILURE)


def probe_os_free_space(ctx: ProbeContext) -> ProbeResult:
    if not is_reachable(ctx):
        return ProbeResult.unreachable(ZERO)

    target = ps_quote(ctx.target)
    script = (
        f"$drive = (Get-CimInstance -ClassName Win32_OperatingSystem -ComputerName {target} "
        "-ErrorAction Stop).SystemDrive"
        + _FREE_PERCENT_SCRIPT.format(target=target)
    )
    percent = _query(ctx, script, "FREE_PERCENT")
    return ProbeResult.ok(percent if percent is not None else WMI_FAILURE)


def probe_ntds_free_space(ctx: ProbeContext) -> ProbeResult:
    """Free space of the drive the NTDS database lives on (remote registry)."""
    if not is_reachable(ctx):
        return ProbeResult.unreachable(ZERO)

    target = ps_quote(ctx.target)
    script = (
        f"$reg = [Microsoft.Win32.RegistryKey]::OpenRemoteBaseKey('LocalMachine', {target})\n"
        f"$path = $reg.OpenSubKey({ps_quote(NTDS_PARAMETERS_KEY)}).GetValue({ps_quote(NTDS_DATABASE_VALUE)})\n"
        "$drive = $path.Substring(0, 2)"
        + _FREE_PERCENT_SCRIPT.format(target=target)
    )
    percent = _query(ctx, script, "FREE_PERCENT")
    return ProbeResult.ok(percent if percent is not None else WMI_FAILURE)

"""
dcaudit/record.py — The fixed-shape result of one audit run.

ResultRecord declares one field per reported value, in report order.
assemble() is the only place probe results are mapped onto fields.
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict

from dcaudit.probes import ProbeResult

PROBE_NAMES = (
    "identity",
    "dns",
    "uptime",
    "os_free_space",
    "ntds_free_space",
    "services",
    "dcdiag",
    "replication_errors",
    "last_replication",
    "dc_count",
    "domain_level",
    "forest_level",
)


class ResultRecord(BaseModel):
    """Every value reported for one domain controller, as raw strings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    server: str
    site: str
    os_version: str
    roles: str
    dns: str
    uptime: str
    os_free_space: str
    ntds_free_space: str
    dns_service: str
    ntds_service: str
    netlogon_service: str
    dcdiag_netlogons: str
    dcdiag_replications: str
    dcdiag_services: str
    dcdiag_advertising: str
    dcdiag_fsmocheck: str
    replication_errors: str
    last_replication: str
    dc_count: str
    domain_level: str
    forest_level: str
    processing_time: str


def assemble(target: str, results: Mapping[str, ProbeResult], elapsed_seconds: float) -> ResultRecord:
    """Build the record from one ProbeResult per name in PROBE_NAMES.

    Raises:
        KeyError: if a probe slot has no result.
    """
    identity = results["identity"].value
    services = results["services"].value
    dcdiag = results["dcdiag"].value
    return ResultRecord(
        server=target,
        site=identity.site,
        os_version=identity.os_version,
        roles=identity.roles,
        dns=results["dns"].value,
        uptime=results["uptime"].value,
        os_free_space=results["os_free_space"].value,
        ntds_free_space=results["ntds_free_space"].value,
        dns_service=services.dns,
        ntds_service=services.ntds,
        netlogon_service=services.netlogon,
        dcdiag_netlogons=dcdiag.status("NetLogons"),
        dcdiag_replications=dcdiag.status("Replications"),
        dcdiag_services=dcdiag.status("Services"),
        dcdiag_advertising=dcdiag.status("Advertising"),
        dcdiag_fsmocheck=dcdiag.status("FSMOCheck"),
        replication_errors=results["replication_errors"].value,
        last_replication=results["last_replication"].value,
        dc_count=results["dc_count"].value,
        domain_level=results["domain_level"].value,
        forest_level=results["forest_level"].value,
        processing_time=f"{elapsed_seconds:.2f} seconds",
    )

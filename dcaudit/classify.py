"""
dcaudit/classify.py — Maps raw record values to display strings and alerts.

Three rules, chosen per field by FIELD_LAYOUT:
  PLAIN       passthrough, never an alert
  STATUS      alert when the value contains "fail" (any case)
  FREE_SPACE  "<value>%", alert below FREE_SPACE_ALERT_PERCENT

Comparative probes (replication, DC count, functional levels) already end
their values in "Passed"/"Failure", so they share the STATUS rule.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from dcaudit.record import ResultRecord

ALERT_MARKER = "<-------------------- ALERT"
FAIL_KEYWORD = "fail"
FREE_SPACE_ALERT_PERCENT = 5

_BARE_FAILURES = {"fail", "failed"}


@dataclass(frozen=True)
class ClassifiedField:
    raw: str
    display: str
    is_alert: bool

    @property
    def rendered(self) -> str:
        return f"{self.display} {ALERT_MARKER}" if self.is_alert else self.display


class FieldKind(str, Enum):
    PLAIN = "plain"
    STATUS = "status"
    FREE_SPACE = "free_space"


def passthrough(raw: str) -> ClassifiedField:
    return ClassifiedField(raw, raw, False)


def classify_status(raw: str) -> ClassifiedField:
    if FAIL_KEYWORD not in raw.lower():
        return ClassifiedField(raw, raw, False)
    # Bare sentinels collapse to "Failed"; tagged values keep their reading.
    display = "Failed" if raw.strip().lower() in _BARE_FAILURES else raw
    return ClassifiedField(raw, display, True)


def classify_free_space(raw: str) -> ClassifiedField:
    try:
        percent = float(raw)
    except ValueError:
        return ClassifiedField(raw, raw, True)
    if not math.isfinite(percent):
        return ClassifiedField(raw, raw, True)
    return ClassifiedField(raw, f"{percent:g}%", percent < FREE_SPACE_ALERT_PERCENT)


RULES = {
    FieldKind.PLAIN: passthrough,
    FieldKind.STATUS: classify_status,
    FieldKind.FREE_SPACE: classify_free_space,
}

# Record field -> (report label, rule).
FIELD_LAYOUT: dict[str, tuple[str, FieldKind]] = {
    "server": ("Server", FieldKind.PLAIN),
    "site": ("Site", FieldKind.PLAIN),
    "os_version": ("OS Version", FieldKind.PLAIN),
    "roles": ("FSMO Roles", FieldKind.PLAIN),
    "dns": ("DNS Check", FieldKind.STATUS),
    "uptime": ("Uptime (hours)", FieldKind.PLAIN),
    "os_free_space": ("OS Drive Free Space", FieldKind.FREE_SPACE),
    "ntds_free_space": ("NTDS Drive Free Space", FieldKind.FREE_SPACE),
    "dns_service": ("DNS Service", FieldKind.STATUS),
    "ntds_service": ("NTDS Service", FieldKind.STATUS),
    "netlogon_service": ("Netlogon Service", FieldKind.STATUS),
    "dcdiag_netlogons": ("DCDIAG NetLogons", FieldKind.STATUS),
    "dcdiag_replications": ("DCDIAG Replications", FieldKind.STATUS),
    "dcdiag_services": ("DCDIAG Services", FieldKind.STATUS),
    "dcdiag_advertising": ("DCDIAG Advertising", FieldKind.STATUS),
    "dcdiag_fsmocheck": ("DCDIAG FSMOCheck", FieldKind.STATUS),
    "replication_errors": ("Replication Errors", FieldKind.STATUS),
    "last_replication": ("Last Replication", FieldKind.STATUS),
    "dc_count": ("DC Count", FieldKind.STATUS),
    "domain_level": ("Domain Functional Level", FieldKind.STATUS),
    "forest_level": ("Forest Functional Level", FieldKind.STATUS),
    "processing_time": ("Processing Time", FieldKind.PLAIN),
}


def classify(raw: str, kind: FieldKind) -> ClassifiedField:
    return RULES[kind](raw)


def classify_record(record: ResultRecord) -> list[tuple[str, ClassifiedField]]:
    """(label, ClassifiedField) for every record field, in declaration order.

    Raises:
        KeyError: if a record field has no entry in FIELD_LAYOUT.
    """
    classified = []
    for name in ResultRecord.model_fields:
        label, kind = FIELD_LAYOUT[name]
        classified.append((label, classify(getattr(record, name), kind)))
    return classified

"""
dcaudit/report.py — Fixed-column report rendering and the alert tally.

The alert count is read back from the rendered text, so the exit status
always agrees with what the report shows.
"""

from __future__ import annotations

from dataclasses import dataclass

from dcaudit.classify import ALERT_MARKER, ClassifiedField, classify_record
from dcaudit.record import ResultRecord

LABEL_WIDTH = 26
RULE = "=" * 60


@dataclass(frozen=True)
class Report:
    body: str
    alert_count: int

    @property
    def passed(self) -> bool:
        return self.alert_count == 0

    @property
    def subject(self) -> str:
        return summary_subject(self.alert_count)

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1


def render_report(server: str, classified: list[tuple[str, ClassifiedField]]) -> str:
    lines = [f"Domain Controller Health Check: {server}", RULE]
    for label, field in classified:
        lines.append(f"{label.ljust(LABEL_WIDTH)}: {field.rendered}")
    lines.append(RULE)
    return "\n".join(lines)


def tally_alerts(body: str) -> int:
    return sum(1 for line in body.splitlines() if ALERT_MARKER in line)


def summary_subject(alert_count: int) -> str:
    if alert_count == 0:
        return "Summary: No Errors Detected"
    return f"Summary: {alert_count} Error(s) Detected"


def build_report(record: ResultRecord) -> Report:
    body = render_report(record.server, classify_record(record))
    return Report(body=body, alert_count=tally_alerts(body))

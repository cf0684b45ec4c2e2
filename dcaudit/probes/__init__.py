"""
dcaudit/probes — Failure-isolated probes against one domain controller.

Each probe is a plain function taking a ProbeContext and returning a
ProbeResult. A probe checks reachability first and, when the target cannot
be contacted, returns its sentinel value instead of raising. dcaudit.audit
wraps every probe in a ProbeDefinition whose execute() also turns anything
unexpected into the sentinel, so a run always ends with one value per slot.

Usage:
    from dcaudit.probes import ProbeContext, ProbeResult
    from dcaudit.probes.network import probe_dns
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from config.settings import Settings

LOGGER = logging.getLogger(__name__)

# Sentinel values. Every one of them is classified as failing downstream.
FAIL = "Fail"
ZERO = "0"
WMI_FAILURE = "WMI Failure"
AD_QUERY_FAILURE = "AD Query Failure"
DCDIAG_FAILURE = "DCDIAG Failure"


@dataclass(frozen=True)
class ProbeContext:
    target: str
    cfg: Settings


@dataclass(frozen=True)
class ProbeResult:
    value: Any
    reachable: bool = True

    @classmethod
    def ok(cls, value: Any) -> ProbeResult:
        return cls(value, True)

    @classmethod
    def unreachable(cls, sentinel: Any) -> ProbeResult:
        return cls(sentinel, False)


@dataclass(frozen=True)
class ProbeDefinition:
    name: str
    run: Callable[[ProbeContext], ProbeResult]
    sentinel: Any

    def execute(self, ctx: ProbeContext) -> ProbeResult:
        try:
            return self.run(ctx)
        except Exception:  # noqa: BLE001 - a probe must always resolve to a value
            LOGGER.exception("Probe %s raised; substituting %r", self.name, self.sentinel)
            return ProbeResult.unreachable(self.sentinel)

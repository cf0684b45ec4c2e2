"""
dcaudit/probes/shell.py — Subprocess plumbing shared by the remote probes.

Remote queries run as small PowerShell scripts that print `KEY=value` lines;
parse_key_values() is the only place that format is read.
"""

from __future__ import annotations

import logging
import re
import subprocess
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from config.settings import Settings

LOGGER = logging.getLogger(__name__)

_KEY_VALUE_RE = re.compile(r"^([A-Z_]+)=(.*)$", re.MULTILINE)


class CommandFailed(Exception):
    """An external command timed out, could not start, or exited non-zero."""


def run_command(args: list[str], timeout_seconds: int, check: bool = True) -> str:
    LOGGER.debug("Running %s (timeout %ss)", args[0], timeout_seconds)
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
        )
    except subprocess.TimeoutExpired as exc:
        raise CommandFailed(f"{args[0]} timed out ({timeout_seconds}s)") from exc
    except OSError as exc:
        raise CommandFailed(f"{args[0]} could not be started: {exc}") from exc

    if check and result.returncode != 0:
        output = (result.stderr or result.stdout or "").strip()[:500]
        raise CommandFailed(f"{args[0]} exited with {result.returncode}: {output}")
    return result.stdout or ""


def run_powershell(cfg: Settings, script: str) -> str:
    return run_command(
        [cfg.POWERSHELL_EXE, "-NoProfile", "-NonInteractive", "-Command", script],
        cfg.PROBE_TIMEOUT_SECONDS,
    )


def parse_key_values(output: str) -> dict[str, str]:
    return {m.group(1): m.group(2).strip() for m in _KEY_VALUE_RE.finditer(output)}


def ps_quote(value: str) -> str:
    """Quote a value as a single-quoted PowerShell literal."""
    return "'" + value.replace("'", "''") + "'"

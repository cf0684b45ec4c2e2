"""
tests/conftest.py — Shared fixtures and path setup for all tests.

Adds the project root to sys.path so unit tests can import:
    from config.settings import Settings
    from dcaudit.probes import ProbeContext
    from dcaudit.audit import run_audit

`fake_commands` stands in for ping, powershell.exe and dcdiag.exe by
patching subprocess.run; `healthy_dc` preloads it with the answers of a
domain controller that passes every check.
"""
import pathlib
import subprocess
import sys
from datetime import UTC, datetime, timedelta

import pytest

# Make project root importable without installing as a package
PROJECT_ROOT = pathlib.Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import Settings  # noqa: E402
from dcaudit.probes import ProbeContext  # noqa: E402

TARGET = "dc01.corp.example"

HEALTHY_DCDIAG = """
Directory Server Diagnosis

Performing initial setup:
   Home Server = dc01
   * Identified AD Forest.
   Done gathering initial info.

Doing primary tests

   Testing server: Default-First-Site-Name\\DC01
      Starting test: NetLogons
         ......................... DC01 passed test NetLogons
      Starting test: Replications
         ......................... DC01 passed test Replications
      Starting test: Services
         ......................... DC01 passed test Services
      Starting test: Advertising
         ......................... DC01 passed test Advertising
      Starting test: FSMOCheck
         ......................... DC01 passed test FSMOCheck
"""


class FakeCommands:
    """Callable replacement for subprocess.run keyed on the executable."""

    def __init__(self) -> None:
        self.reachable = True
        self.dcdiag_output = ""
        self.calls: list[list[str]] = []
        self._responses: list[tuple[str, str]] = []
        self._failures: list[str] = []

    def respond(self, needle: str, stdout: str) -> None:
        """Answer any PowerShell script containing `needle` with `stdout`."""
        self._responses.insert(0, (needle, stdout))

    def fail(self, needle: str) -> None:
        """Make any PowerShell script containing `needle` exit non-zero."""
        self._failures.append(needle)

    def scripts(self) -> list[str]:
        return [call[-1] for call in self.calls if call[0] == "powershell.exe"]

    def __call__(self, args, **kwargs):  # noqa: ANN001, ANN003
        args = list(args)
        self.calls.append(args)
        exe = args[0]
        if exe == "ping":
            return subprocess.CompletedProcess(args, 0 if self.reachable else 1, "", "")
        if exe == "dcdiag.exe":
            return subprocess.CompletedProcess(args, 0, self.dcdiag_output, "")
        if exe == "powershell.exe":
            script = args[-1]
            if any(needle in script for needle in self._failures):
                return subprocess.CompletedProcess(args, 1, "", "Access is denied.")
            for needle, stdout in self._responses:
                if needle in script:
                    return subprocess.CompletedProcess(args, 0, stdout, "")
            return subprocess.CompletedProcess(args, 1, "", "The RPC server is unavailable.")
        raise FileNotFoundError(exe)


@pytest.fixture
def cfg() -> Settings:
    return Settings(TARGET=TARGET)


@pytest.fixture
def ctx(cfg: Settings) -> ProbeContext:
    return ProbeContext(target=TARGET, cfg=cfg)


@pytest.fixture
def fake_commands(monkeypatch) -> FakeCommands:
    fake = FakeCommands()
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


@pytest.fixture
def healthy_dc(fake_commands: FakeCommands) -> FakeCommands:
    last_success = (datetime.now(tz=UTC) - timedelta(minutes=15)).strftime("%Y-%m-%dT%H:%M:%SZ")
    fake_commands.respond("Win32_ComputerSystem", "DOMAIN_ROLE=5\r\n")
    fake_commands.respond("Resolve-DnsName", "DNS_ANSWERS=1\r\n")
    fake_commands.respond("LastBootUpTime", "UPTIME_HOURS=240\r\n")
    fake_commands.respond("SystemDrive", "FREE_PERCENT=50\r\n")
    fake_commands.respond("DSA Database file", "FREE_PERCENT=60\r\n")
    fake_commands.respond("Get-Service", "DNS=Running\r\nNTDS=Running\r\nNETLOGON=Running\r\n")
    fake_commands.respond("Get-ADReplicationFailure", "FAILURES=0\r\n")
    fake_commands.respond("Get-ADReplicationPartnerMetadata", f"LAST_SUCCESS={last_success}\r\n")
    fake_commands.respond("-Filter *", "DC_COUNT=2\r\n")
    fake_commands.respond(
        "DomainMode",
        "OS=Windows Server 2022 Datacenter\r\n"
        "DOMAIN_MODE=Windows2016Domain\r\n"
        "FOREST_MODE=Windows2016Forest\r\n",
    )
    fake_commands.respond(
        "OperationMasterRoles",
        "SITE=Default-First-Site-Name\r\n"
        "OS=Windows Server 2022 Datacenter\r\n"
        "ROLES=PDCEmulator, RIDMaster, InfrastructureMaster\r\n",
    )
    fake_commands.dcdiag_output = HEALTHY_DCDIAG
    return fake_commands

"""
config/settings.py — Canonical configuration contract for dc_health_audit.

Uses pydantic-settings to load, validate, and type-check every knob the
auditor reads: which host to audit, where the external tools live, how long
a probe may block, and where the finished report goes.

Two usage modes:
  Production / CLI:
      cfg = load_settings()              # reads from .env + os.environ
      cfg = load_settings("env/dc01.env") # override env file path

  Tests (isolated — no env file, no os.environ bleed):
      cfg = Settings(TARGET="dc01.corp.example", PARALLEL_PROBES=True)
      # All values come exclusively from kwargs → clean, reproducible.

Alert thresholds (free space, replication age, DC count) are deliberately
not settings; they live as constants next to the code that applies them.
"""
from __future__ import annotations

import os
import re
import socket
from typing import Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class Settings(BaseSettings):
    # Settings() reads purely from kwargs; load_settings() is the explicit
    # production entry point that merges the env file and os.environ.
    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings,)

    # -------------------------------------------------------------------------
    # Target
    # -------------------------------------------------------------------------
    TARGET: Optional[str] = None

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # -------------------------------------------------------------------------
    # External tools
    # -------------------------------------------------------------------------
    POWERSHELL_EXE: str = "powershell.exe"
    DCDIAG_EXE: str = "dcdiag.exe"
    PING_EXE: str = "ping"

    # -------------------------------------------------------------------------
    # Probe execution
    # -------------------------------------------------------------------------
    PING_TIMEOUT_SECONDS: int = 2
    PROBE_TIMEOUT_SECONDS: int = 60
    DCDIAG_TIMEOUT_SECONDS: int = 300
    PARALLEL_PROBES: bool = False
    PROBE_WORKERS: int = 4

    # -------------------------------------------------------------------------
    # Report sinks
    # -------------------------------------------------------------------------
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 25
    SMTP_STARTTLS: bool = False
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_TIMEOUT_SECONDS: int = 30
    MAIL_FROM: Optional[str] = None
    MAIL_TO: str = ""
    REPORT_PATH: Optional[str] = None

    # -------------------------------------------------------------------------
    # Convenience properties
    # -------------------------------------------------------------------------

    @property
    def target_host(self) -> str:
        """Host to audit: TARGET when set, otherwise this machine's FQDN."""
        return self.TARGET or socket.getfqdn()

    @property
    def mail_recipients(self) -> list[str]:
        return [addr.strip() for addr in self.MAIL_TO.split(",") if addr.strip()]

    @property
    def email_enabled(self) -> bool:
        return bool(self.SMTP_HOST)

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("TARGET", "SMTP_HOST", "MAIL_FROM", "REPORT_PATH", mode="before")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat `TARGET=` (empty after include .env) as unset."""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator(
        "PING_TIMEOUT_SECONDS",
        "PROBE_TIMEOUT_SECONDS",
        "DCDIAG_TIMEOUT_SECONDS",
        "SMTP_TIMEOUT_SECONDS",
        "PROBE_WORKERS",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_mail_combo(self) -> Settings:
        """Enforce that an enabled email sink is fully addressed."""
        if self.SMTP_HOST:
            if not self.MAIL_FROM:
                raise ValueError("SMTP_HOST is set but MAIL_FROM is missing")
            if not self.mail_recipients:
                raise ValueError("SMTP_HOST is set but MAIL_TO has no recipients")
        if self.SMTP_USERNAME and not self.SMTP_PASSWORD:
            raise ValueError("SMTP_USERNAME requires SMTP_PASSWORD")
        return self


def load_settings(env_file: str = ".env") -> Settings:
    """Load and validate settings from an env file + os.environ.

    Manually parses the env file and merges with os.environ (os.environ wins),
    then passes only known Settings fields as explicit kwargs. A missing env
    file is not an error; every field has a usable default.

    Raises:
        ValidationError: if a value has the wrong type or is out of range.
        ValueError: if the mail sink is only partially configured.
    """
    file_vals: dict[str, str] = {}
    try:
        with open(env_file, encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                k, _, v = line.partition("=")
                k = k.strip()
                # Strip inline comments: "dc01   # primary site" → "dc01"
                v = re.sub(r"\s+#.*$", "", v.strip())
                if k:
                    file_vals[k] = v
    except FileNotFoundError:
        pass
    merged = {**file_vals, **os.environ}
    known = {k: v for k, v in merged.items() if k in Settings.model_fields}
    return Settings(**known)

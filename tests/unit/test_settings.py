"""
tests/unit/test_settings.py — Unit tests for config/settings.py.

These tests validate the Pydantic Settings schema with no network or
subprocess dependencies.

Run: pytest tests/unit/test_settings.py -v
"""

import pytest

# conftest.py adds project root to sys.path
from config.settings import Settings, load_settings


def _mail_kwargs(**overrides):
    base = dict(
        TARGET="dc01.corp.example",
        SMTP_HOST="smtp.corp.example",
        MAIL_FROM="dc-audit@corp.example",
        MAIL_TO="ops@corp.example, ad-team@corp.example",
    )
    base.update(overrides)
    return base


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_probe_defaults(self):
        s = Settings()
        assert s.PROBE_TIMEOUT_SECONDS == 60
        assert s.DCDIAG_TIMEOUT_SECONDS == 300
        assert s.PING_TIMEOUT_SECONDS == 2
        assert s.PARALLEL_PROBES is False
        assert s.PROBE_WORKERS == 4

    def test_tool_defaults(self):
        s = Settings()
        assert s.POWERSHELL_EXE == "powershell.exe"
        assert s.DCDIAG_EXE == "dcdiag.exe"

    def test_email_disabled_by_default(self):
        s = Settings()
        assert s.email_enabled is False
        assert s.mail_recipients == []

    def test_parallel_parses_true_string(self):
        s = Settings(PARALLEL_PROBES="true")
        assert s.PARALLEL_PROBES is True


# ---------------------------------------------------------------------------
# Target resolution
# ---------------------------------------------------------------------------


class TestTarget:
    def test_explicit_target(self):
        assert Settings(TARGET="dc02.corp.example").target_host == "dc02.corp.example"

    def test_blank_target_falls_back_to_local_fqdn(self, monkeypatch):
        monkeypatch.setattr("config.settings.socket.getfqdn", lambda: "mgmt01.corp.example")
        s = Settings(TARGET="   ")
        assert s.TARGET is None
        assert s.target_host == "mgmt01.corp.example"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    def test_log_level_is_case_insensitive(self):
        assert Settings(LOG_LEVEL=" debug ").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level_raises(self):
        with pytest.raises(Exception):  # pydantic ValidationError
            Settings(LOG_LEVEL="verbose")

    def test_timeouts_must_be_positive(self):
        with pytest.raises(ValueError, match="must be >= 1"):
            Settings(PROBE_TIMEOUT_SECONDS=0)

    def test_workers_must_be_positive(self):
        with pytest.raises(ValueError, match="must be >= 1"):
            Settings(PROBE_WORKERS=0)

    def test_smtp_requires_mail_from(self):
        kwargs = _mail_kwargs()
        del kwargs["MAIL_FROM"]
        with pytest.raises(ValueError, match="MAIL_FROM"):
            Settings(**kwargs)

    def test_smtp_requires_recipients(self):
        with pytest.raises(ValueError, match="MAIL_TO"):
            Settings(**_mail_kwargs(MAIL_TO=" , "))

    def test_username_requires_password(self):
        with pytest.raises(ValueError, match="SMTP_PASSWORD"):
            Settings(**_mail_kwargs(SMTP_USERNAME="svc-audit"))

    def test_recipients_are_split_and_trimmed(self):
        s = Settings(**_mail_kwargs())
        assert s.email_enabled is True
        assert s.mail_recipients == ["ops@corp.example", "ad-team@corp.example"]


# ---------------------------------------------------------------------------
# load_settings
# ---------------------------------------------------------------------------


class TestLoadSettings:
    def test_reads_env_file_and_strips_inline_comments(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TARGET", raising=False)
        monkeypatch.delenv("PROBE_WORKERS", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# audit profile\nTARGET=dc03.corp.example   # branch office\nPROBE_WORKERS=8\nUNRELATED=1\n",
            encoding="utf-8",
        )
        s = load_settings(str(env_file))
        assert s.TARGET == "dc03.corp.example"
        assert s.PROBE_WORKERS == 8

    def test_environment_wins_over_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("TARGET=dc03.corp.example\n", encoding="utf-8")
        monkeypatch.setenv("TARGET", "dc04.corp.example")
        assert load_settings(str(env_file)).TARGET == "dc04.corp.example"

    def test_missing_file_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PROBE_TIMEOUT_SECONDS", raising=False)
        s = load_settings(str(tmp_path / "absent.env"))
        assert s.PROBE_TIMEOUT_SECONDS == 60

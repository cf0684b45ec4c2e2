"""
dcaudit/notify.py — Delivers the rendered report to its sinks.

The log always receives the subject line. The report file and email sinks
are used when REPORT_PATH / SMTP_HOST are configured. A failing sink is
logged and reported through deliver()'s return value; it never changes the
audit's exit code.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from config.settings import Settings
    from dcaudit.report import Report

LOGGER = logging.getLogger(__name__)


def build_message(cfg: Settings, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = cfg.MAIL_FROM
    message["To"] = ", ".join(cfg.mail_recipients)
    message.set_content(body)
    return message


def send_email(cfg: Settings, subject: str, body: str) -> None:
    with smtplib.SMTP(cfg.SMTP_HOST, cfg.SMTP_PORT, timeout=cfg.SMTP_TIMEOUT_SECONDS) as smtp:
        if cfg.SMTP_STARTTLS:
            smtp.starttls()
        if cfg.SMTP_USERNAME:
            smtp.login(cfg.SMTP_USERNAME, cfg.SMTP_PASSWORD)
        smtp.send_message(build_message(cfg, subject, body))


def write_report_file(path: str, subject: str, body: str) -> None:
    Path(path).write_text(f"{subject}\n\n{body}\n", encoding="utf-8")


def deliver(cfg: Settings, report: Report) -> bool:
    """Hand subject and body to every configured sink. True if all succeeded."""
    log = LOGGER.warning if report.alert_count else LOGGER.info
    log(report.subject)

    delivered = True
    if cfg.REPORT_PATH:
        try:
            write_report_file(cfg.REPORT_PATH, report.subject, report.body)
        except OSError as exc:
            LOGGER.error("Could not write report to %s: %s", cfg.REPORT_PATH, exc)
            delivered = False

    if cfg.email_enabled:
        try:
            send_email(cfg, report.subject, report.body)
            LOGGER.info("Report mailed to %s", ", ".join(cfg.mail_recipients))
        except (smtplib.SMTPException, OSError) as exc:
            LOGGER.error("Could not mail report via %s:%s: %s", cfg.SMTP_HOST, cfg.SMTP_PORT, exc)
            delivered = False

    return delivered

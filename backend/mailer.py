"""Plain-text e-mail delivery of an analysis report."""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr

from config import (
    SMTP_FROM_EMAIL,
    SMTP_FROM_NAME,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_SECURITY,
    SMTP_TIMEOUT_SECONDS,
    SMTP_USERNAME,
)
from models import AnalysisRun

logger = logging.getLogger(__name__)


def build_subject(url: str) -> str:
    return f"SEO-Analyse für {url}"


def build_report_body(run: AnalysisRun) -> str:
    lines = [
        "Hallo,",
        "",
        f"hier ist die Auswertung deines SEO-Checks für {run.url}:",
        "",
    ]
    for item in run.items:
        lines.append(f"- {item.label}: {item.value} (Status: {item.status.label})")
        if item.hint:
            lines.append(f"  Hinweis: {item.hint}")

    if run.metadata:
        lines.extend(["", "Gefundene Inhalte:"])
        for found in run.metadata:
            lines.append(f"- {found.label}: {found.value}")

    if run.tips:
        lines.extend(["", "Verbesserungstipps:"])
        for tip in run.tips:
            lines.append(f"- {tip.text}")

    if run.primary is not None:
        lines.extend(["", f"Wichtigste Empfehlung: {run.primary.text}"])

    lines.extend(["", "Viele Grüße", "Dein bunter SEO-Checker"])
    return "\n".join(lines)


def _open_smtp() -> smtplib.SMTP:
    if SMTP_SECURITY == "ssl":
        context = ssl.create_default_context()
        return smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, context=context, timeout=SMTP_TIMEOUT_SECONDS)
    smtp = smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=SMTP_TIMEOUT_SECONDS)
    if SMTP_SECURITY == "starttls":
        smtp.starttls(context=ssl.create_default_context())
    return smtp


def send_report_email(*, recipient_email: str, run: AnalysisRun) -> bool:
    """Send the report to `recipient_email`. Returns False instead of raising on failure."""
    if SMTP_SECURITY != "none":
        missing_keys = [
            key
            for key, value in (("SMTP_USERNAME", SMTP_USERNAME), ("SMTP_PASSWORD", SMTP_PASSWORD))
            if not value
        ]
        if missing_keys:
            logger.warning("Email skipped, missing SMTP credentials: %s", ", ".join(missing_keys))
            return False

    message = EmailMessage()
    message["Subject"] = build_subject(run.url)
    message["From"] = formataddr((SMTP_FROM_NAME, SMTP_FROM_EMAIL))
    message["To"] = recipient_email
    message.set_content(build_report_body(run))

    try:
        with _open_smtp() as smtp:
            if SMTP_USERNAME and SMTP_PASSWORD:
                smtp.login(SMTP_USERNAME, SMTP_PASSWORD)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Email to %s failed: %s", recipient_email, exc)
        return False

    logger.info("Email sent to %s for %s", recipient_email, run.url)
    return True

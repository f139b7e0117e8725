"""
Runtime settings, read from the environment.

Values can be placed in a .env file in the backend root; python-dotenv loads
it on import:

SESSION_SECRET=change-me
SMTP_HOST=smtp.example.com
SMTP_USERNAME=checker@example.com
SMTP_PASSWORD=secret
"""

import logging
import os
import secrets
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env")

logger = logging.getLogger(__name__)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no", "off"}


def load_session_secret(environ: Mapping[str, str] = os.environ) -> str:
    """SESSION_SECRET from the environment, or a random per-process key."""
    secret = environ.get("SESSION_SECRET", "").strip()
    if secret:
        return secret
    logger.warning(
        "SESSION_SECRET is not set; using a random key. Sessions and captcha "
        "answers will not survive a restart or work across several workers."
    )
    return secrets.token_hex(32)


SESSION_SECRET = load_session_secret()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

CAPTCHA_MAX_AGE_SECONDS = int(os.getenv("CAPTCHA_MAX_AGE_SECONDS", "1800"))

FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "15"))
FETCH_MAX_REDIRECTS = int(os.getenv("FETCH_MAX_REDIRECTS", "10"))
FETCH_USER_AGENT = os.getenv("FETCH_USER_AGENT", "SEO-Checker/1.0 (+https://example.com)")
FETCH_VERIFY_TLS = _flag("FETCH_VERIFY_TLS", "1")

EXCERPT_MAX_CHARS = int(os.getenv("EXCERPT_MAX_CHARS", "90"))

SMTP_HOST = os.getenv("SMTP_HOST", "localhost").strip()
SMTP_PORT = int(os.getenv("SMTP_PORT", "465"))
# ssl | starttls | none
SMTP_SECURITY = os.getenv("SMTP_SECURITY", "ssl").strip().lower()
SMTP_USERNAME = os.getenv("SMTP_USERNAME", "").strip()
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "").strip()
SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL", SMTP_USERNAME or "no-reply@example.com").strip()
SMTP_FROM_NAME = os.getenv("SMTP_FROM_NAME", "SEO Checker").strip() or "SEO Checker"
SMTP_TIMEOUT_SECONDS = float(os.getenv("SMTP_TIMEOUT_SECONDS", "30"))

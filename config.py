"""Configuration for the invoice dashboard, read from the environment / .env."""
import logging
import os
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def clean_env_value(value):
    """Strip whitespace, BOMs and surrounding quotes from an env value."""
    if not value:
        return ""
    value = value.strip().replace("\ufeff", "")
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]
    return value.strip()


def env(name, default=""):
    return clean_env_value(os.getenv(name)) or default


# Hosted record store (PostgREST-compatible, e.g. Supabase)
SUPABASE_URL = env("SUPABASE_URL").rstrip("/")
SUPABASE_KEY = env("SUPABASE_KEY")
INVOICE_TABLE = env("INVOICE_TABLE", "invoices")

# Extraction webhook receiving uploaded files
WEBHOOK_URL = env("WEBHOOK_URL")

# Owner whose invoices the dashboard shows
DASHBOARD_OWNER_ID = env("DASHBOARD_OWNER_ID")

# Seconds between change checks against the hosted store
POLL_INTERVAL = float(env("POLL_INTERVAL", "5"))

LOG_LEVEL = env("LOG_LEVEL", "INFO").upper()


def get_timezone() -> Optional[ZoneInfo]:
    """Zone used for calendar bucketing; None means the process local zone.

    Read on every call so tests can monkeypatch DASHBOARD_TIMEZONE.
    """
    name = env("DASHBOARD_TIMEZONE")
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        logger.warning("Unknown DASHBOARD_TIMEZONE %r, using local time", name)
        return None


def setup_logging(level=None):
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    for logger_name in ["httpx", "httpcore", "urllib3"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

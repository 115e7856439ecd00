from __future__ import annotations

import logging
import os
import sqlite3
from datetime import datetime
from pathlib import Path

from models import DEFAULT_SCHEDULE, Credentials, MailConfig, TimeSpan, WorkSchedule

logger = logging.getLogger(__name__)


def _get_config_dir() -> Path:
    """Get config directory from environment variable or default location."""
    if env_path := os.environ.get("CLOCKER_HOME"):
        return Path(env_path)
    return Path.home() / ".config" / "clocker"


def _get_db_path() -> Path:
    """Get database path from environment variable or the config directory."""
    if env_path := os.environ.get("CLOCKER_DB"):
        return Path(env_path)
    return CONFIG_DIR / "clocker.db"


CONFIG_DIR = _get_config_dir()
DB_PATH = _get_db_path()

SCHEDULE_KEYS = {
    "morning_start": ("morning", "start"),
    "morning_end": ("morning", "end"),
    "afternoon_start": ("afternoon", "start"),
    "afternoon_end": ("afternoon", "end"),
}


def get_connection() -> sqlite3.Connection:
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_db():
    """Create tables if they don't exist."""
    conn = get_connection()
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS config (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS sent_reminders (
            month TEXT PRIMARY KEY,
            sent_at TEXT NOT NULL
        );
    """)
    conn.commit()
    conn.close()


def _get_values(keys: list[str]) -> dict[str, str]:
    conn = get_connection()
    placeholders = ",".join("?" for _ in keys)
    rows = conn.execute(
        f"SELECT key, value FROM config WHERE key IN ({placeholders})", keys
    ).fetchall()
    conn.close()
    return {row["key"]: row["value"] for row in rows}


def _set_values(values: dict[str, str]):
    conn = get_connection()
    for key, value in values.items():
        conn.execute("INSERT OR REPLACE INTO config (key, value) VALUES (?, ?)", (key, value))
    conn.commit()
    conn.close()


def load_settings() -> WorkSchedule:
    """Load the work schedule; missing keys fall back to the default schedule."""
    values = _get_values(list(SCHEDULE_KEYS))

    def pick(key: str) -> str:
        half, end = SCHEDULE_KEYS[key]
        return values.get(key) or getattr(getattr(DEFAULT_SCHEDULE, half), end)

    return WorkSchedule(
        morning=TimeSpan(pick("morning_start"), pick("morning_end")),
        afternoon=TimeSpan(pick("afternoon_start"), pick("afternoon_end")),
    )


def save_settings(schedule: WorkSchedule):
    """Save the work schedule."""
    _set_values({
        "morning_start": schedule.morning.start,
        "morning_end": schedule.morning.end,
        "afternoon_start": schedule.afternoon.start,
        "afternoon_end": schedule.afternoon.end,
    })
    logger.info("Saved work schedule")


def load_credentials() -> Credentials | None:
    """Environment credentials take priority over stored ones."""
    domain = os.environ.get("BAMBOOHR_COMPANY_DOMAIN")
    api_key = os.environ.get("BAMBOOHR_API_KEY")
    if domain and api_key:
        return Credentials(company_domain=domain, api_key=api_key)

    values = _get_values(["bamboohr_domain", "bamboohr_api_key"])
    if values.get("bamboohr_domain") and values.get("bamboohr_api_key"):
        return Credentials(
            company_domain=values["bamboohr_domain"],
            api_key=values["bamboohr_api_key"],
        )
    return None


def save_credentials(credentials: Credentials):
    _set_values({
        "bamboohr_domain": credentials.company_domain,
        "bamboohr_api_key": credentials.api_key,
    })
    logger.info("Saved BambooHR credentials for %s", credentials.company_domain)


def load_mail_config() -> MailConfig | None:
    values = _get_values(["mail_email", "mail_app_password"])
    if values.get("mail_email") and values.get("mail_app_password"):
        return MailConfig(email=values["mail_email"], app_password=values["mail_app_password"])
    return None


def save_mail_config(config: MailConfig):
    _set_values({
        "mail_email": config.email,
        "mail_app_password": config.app_password,
    })
    logger.info("Saved mail config for %s", config.email)


def _month_key(year: int, month: int) -> str:
    return f"{year}-{month:02d}"


def was_reminder_sent(year: int, month: int) -> bool:
    conn = get_connection()
    row = conn.execute(
        "SELECT 1 FROM sent_reminders WHERE month = ?", (_month_key(year, month),)
    ).fetchone()
    conn.close()
    return row is not None


def mark_reminder_sent(year: int, month: int):
    conn = get_connection()
    conn.execute(
        "INSERT OR REPLACE INTO sent_reminders (month, sent_at) VALUES (?, ?)",
        (_month_key(year, month), datetime.now().isoformat(timespec="seconds")),
    )
    conn.commit()
    conn.close()

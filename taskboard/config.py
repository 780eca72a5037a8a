# taskboard/config.py
"""Settings for the taskboard service, read from environment variables."""

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

DEFAULT_DB_PATH = Path(__file__).parent / "data.db"


def _env(name: str, default: str = "") -> str:
    value = os.getenv(name)
    return default if value is None else value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str
    cors_origins: list[str]
    log_level: str

    # Reminder scheduler
    reminders_enabled: bool
    poll_interval: float
    max_attempts: int

    # Mail transport
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_starttls: bool
    smtp_timeout: float
    mail_from: str

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host)


def load_settings() -> Settings:
    """Build a Settings object from the current environment."""
    smtp_user = _env("SMTP_USER")
    return Settings(
        database_url=_env("TASKBOARD_DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}"),
        cors_origins=[
            origin.strip()
            for origin in _env(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173",
            ).split(",")
            if origin.strip()
        ],
        log_level=_env("LOG_LEVEL", "INFO").upper(),
        reminders_enabled=_env_bool("REMINDERS_ENABLED", True),
        poll_interval=max(0.5, _env_float("REMINDER_POLL_INTERVAL", 10.0)),
        max_attempts=max(1, _env_int("REMINDER_MAX_ATTEMPTS", 5)),
        smtp_host=_env("SMTP_HOST"),
        smtp_port=_env_int("SMTP_PORT", 587),
        smtp_user=smtp_user,
        smtp_password=_env("SMTP_PASSWORD"),
        smtp_starttls=_env_bool("SMTP_STARTTLS", True),
        smtp_timeout=_env_float("SMTP_TIMEOUT", 30.0),
        mail_from=_env("MAIL_FROM", f'"Todo App" <{smtp_user}>' if smtp_user else "todo-app@localhost"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loaded on first use."""
    return load_settings()

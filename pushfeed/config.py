"""Settings, read once from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _app_url(raw: str) -> str:
    return raw if raw.endswith("/") else raw + "/"


def _sub_url(raw: str) -> str:
    raw = raw.strip().rstrip("/")
    if raw and not raw.startswith("/"):
        raw = "/" + raw
    return raw


@dataclass(frozen=True)
class Settings:
    """App Settings"""

    db_url: str = os.getenv("DB_URL", "sqlite:///./pushfeed.sqlite3")
    app_url: str = _app_url(os.getenv("APP_URL", "http://localhost:3000/"))
    app_sub_url: str = _sub_url(os.getenv("APP_SUB_URL", ""))
    feed_max_commit_num: int = int(os.getenv("FEED_MAX_COMMIT_NUM", "5"))
    timezone: str = os.getenv("TIMEZONE", "UTC")
    internal_token: str = os.getenv("INTERNAL_TOKEN", "")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    gravatar_source: str = os.getenv(
        "GRAVATAR_SOURCE", "https://secure.gravatar.com/avatar/"
    )


settings = Settings()

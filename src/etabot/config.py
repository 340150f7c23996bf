from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class Settings:
    """Process bootstrap settings.

    Everything an operator may change at runtime lives in the persisted
    config document instead (see ``moderation.config_schema``).
    """

    sqlite_path: str
    log_level: str
    web_host: str
    # Overrides the stored credential for login without being persisted.
    token: Optional[str] = None
    # Overrides the stored ``web_port``.
    web_port: Optional[int] = None
    # Prefix commands need the message content intent in the Developer Portal.
    message_content_intent: bool = True


def load_settings() -> Settings:
    return Settings(
        sqlite_path=(os.getenv("SQLITE_PATH", "eta.sqlite3").strip() or "eta.sqlite3"),
        log_level=(os.getenv("LOG_LEVEL", "INFO").strip() or "INFO"),
        web_host=(os.getenv("WEB_HOST", "0.0.0.0").strip() or "0.0.0.0"),
        token=(os.getenv("DISCORD_TOKEN", "").strip() or None),
        web_port=_get_optional_int("WEB_PORT"),
        message_content_intent=_get_bool("MESSAGE_CONTENT_INTENT", True),
    )

# src/onfire_hud/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Without an access token the app runs against the offline demo adapter.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "ONFIRE"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_opt(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Remote API ----
    api_base_url: str
    http_timeout_seconds: float
    offline: bool

    # ---- Session (obtained elsewhere: login / QR pairing) ----
    access_token: str | None
    refresh_token: str | None
    user_id: str
    user_first_name: str | None
    username: str | None
    user_avatar_url: str | None

    # ---- HUD ----
    currency_code: str
    conversation_type: str
    default_conversation_id: str | None

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_token) and bool(self.user_id)

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "onfire-hud") or "onfire-hud"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/onfire"))

        api_base_url = _env(_k("API_BASE_URL"), "https://api2.onfire.so").rstrip("/")
        http_timeout_seconds = max(1.0, _env_float(_k("HTTP_TIMEOUT_SECONDS"), 15.0))
        offline = _env_bool(_k("OFFLINE"), False)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            api_base_url=api_base_url,
            http_timeout_seconds=http_timeout_seconds,
            offline=offline,
            access_token=_env_opt(_k("ACCESS_TOKEN")),
            refresh_token=_env_opt(_k("REFRESH_TOKEN")),
            user_id=(_env_opt(_k("USER_ID")) or ""),
            user_first_name=_env_opt(_k("USER_FIRST_NAME")),
            username=_env_opt(_k("USERNAME")),
            user_avatar_url=_env_opt(_k("USER_AVATAR_URL")),
            currency_code=(_env(_k("CURRENCY_CODE"), "COIN").strip() or "COIN"),
            conversation_type=(_env(_k("CONVERSATION_TYPE"), "group").strip() or "group"),
            default_conversation_id=_env_opt(_k("DEFAULT_CONVERSATION_ID")),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS

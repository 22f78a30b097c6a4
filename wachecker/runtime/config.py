"""Configuration model and loader for wachecker.

Defines the `AppConfig` dataclass-like container that reads environment
variables and provides typed access across the application.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _get_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    v = os.getenv(name)
    try:
        return int(v) if v is not None else default
    except ValueError:
        return default


@dataclass
class AppConfig:
    """Application configuration resolved from environment variables."""

    # Telegram
    telegram_bot_token: str
    telegram_mode: str  # polling | webhook
    webhook_url: Optional[str]
    webhook_port: int

    # Number parsing & request limits
    country_code: str
    min_digits: int
    max_numbers: int

    # Batch checking
    check_batch_size: int
    batch_pace_ms: int
    report_signature: str

    # WhatsApp Web session
    chromium_path: Optional[str]
    wa_profile_dir: str
    wa_headless: bool
    wa_check_timeout_seconds: int
    session_retry_seconds: int
    reconnect_delay_seconds: int
    session_poll_seconds: int

    # Logging & Health
    log_level: str
    logs_dir: str
    log_rotate_max_bytes: int
    log_rotate_backup_count: int
    health_port: int
    bind_health_localhost_only: bool

    @property
    def batch_pace_seconds(self) -> float:
        return self.batch_pace_ms / 1000.0

    @staticmethod
    def from_env() -> "AppConfig":
        token = os.getenv("BOT_TOKEN") or os.getenv("TELEGRAM_BOT_TOKEN", "")
        return AppConfig(
            telegram_bot_token=token.strip(),
            telegram_mode=os.getenv("TELEGRAM_MODE", "polling"),
            webhook_url=os.getenv("WEBHOOK_URL"),
            webhook_port=_get_int("WEBHOOK_PORT", 8080),
            country_code=os.getenv("COUNTRY_CODE", "62").strip() or "62",
            min_digits=max(1, _get_int("MIN_DIGITS", 9)),
            max_numbers=max(1, _get_int("MAX_NUMBERS", 50)),
            check_batch_size=max(1, min(_get_int("CHECK_BATCH_SIZE", 5), 20)),
            batch_pace_ms=max(0, _get_int("BATCH_PACE_MS", 800)),
            report_signature=os.getenv("REPORT_SIGNATURE", "_by drixalexa_"),
            chromium_path=os.getenv("CHROMIUM_PATH"),
            wa_profile_dir=os.getenv("WA_PROFILE_DIR", ".wwebjs_auth"),
            wa_headless=_get_bool("WA_HEADLESS", True),
            wa_check_timeout_seconds=_get_int("WA_CHECK_TIMEOUT_SECONDS", 20),
            session_retry_seconds=_get_int("SESSION_RETRY_SECONDS", 10),
            reconnect_delay_seconds=_get_int("RECONNECT_DELAY_SECONDS", 3),
            session_poll_seconds=max(1, _get_int("SESSION_POLL_SECONDS", 2)),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            logs_dir=os.getenv("LOGS_DIR", "./logs"),
            log_rotate_max_bytes=_get_int("LOG_ROTATE_MAX_BYTES", 5 * 1024 * 1024),
            log_rotate_backup_count=_get_int("LOG_ROTATE_BACKUP_COUNT", 10),
            health_port=_get_int("HEALTH_PORT", 8081),
            bind_health_localhost_only=_get_bool("BIND_HEALTH_LOCALHOST_ONLY", True),
        )

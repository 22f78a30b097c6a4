"""Chromium discovery and launch options for the WhatsApp Web driver."""

from __future__ import annotations

import logging
import os
import shutil
from typing import Iterable, Optional

from selenium import webdriver

from ..runtime.config import AppConfig


logger = logging.getLogger("wachecker.browser")

COMMON_BROWSER_PATHS = (
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
)

BROWSER_NAMES = ("chromium-browser", "chromium", "google-chrome")

PROFILE_LOCK_FILES = ("SingletonLock", "SingletonSocket", "SingletonCookie")

CHROMIUM_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--disable-gpu",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
)


def _is_replit() -> bool:
    return bool(os.getenv("REPL_ID") or os.getenv("REPLIT_DB_URL"))


def find_chromium_path(
    configured: Optional[str] = None,
    candidates: Iterable[str] = COMMON_BROWSER_PATHS,
) -> Optional[str]:
    """Locate a Chromium/Chrome binary.

    Order: explicit configuration, ``chromium`` on PATH when running on Replit,
    well-known install locations, then any browser name on PATH. Returns None
    when nothing is found so Selenium Manager can pick a browser itself.
    """
    if configured:
        return configured

    if _is_replit():
        found = shutil.which("chromium")
        if found:
            logger.info("chromium found", extra={"path": found})
            return found
        logger.warning("chromium not found on Replit")

    for path in candidates:
        if os.path.exists(path):
            logger.info("browser found", extra={"path": path})
            return path

    for name in BROWSER_NAMES:
        found = shutil.which(name)
        if found:
            logger.info("browser found", extra={"path": found})
            return found

    logger.warning("no browser found, deferring to selenium manager")
    return None


def cleanup_profile_locks(profile_dir: str) -> None:
    """Remove stale Chromium singleton files left by a crashed browser."""
    for name in PROFILE_LOCK_FILES:
        path = os.path.join(profile_dir, name)
        if os.path.lexists(path):
            try:
                os.unlink(path)
                logger.info("removed stale profile lock", extra={"path": path})
            except OSError as e:
                logger.warning("profile lock cleanup failed", extra={"path": path, "error": str(e)})


def build_options(cfg: AppConfig) -> webdriver.ChromeOptions:
    """Chromium options for an unattended WhatsApp Web session."""
    options = webdriver.ChromeOptions()
    if cfg.wa_headless:
        options.add_argument("--headless=new")
    for arg in CHROMIUM_ARGS:
        options.add_argument(arg)
    options.add_argument("--window-size=1280,900")
    # Popup texts are matched in English
    options.add_argument("--lang=en-US")
    options.add_experimental_option("prefs", {"intl.accept_languages": "en-US,en"})
    profile_dir = os.path.abspath(cfg.wa_profile_dir)
    options.add_argument(f"--user-data-dir={profile_dir}")

    binary = find_chromium_path(cfg.chromium_path)
    if binary:
        options.binary_location = binary
    return options

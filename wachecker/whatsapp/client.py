"""WhatsApp Web client driven by Selenium.

Responsibilities:
- Launch a Chromium session on WhatsApp Web with a persistent profile
- Report whether the page is waiting for a QR scan or logged in
- Capture the pairing QR code as PNG bytes
- Check whether a phone number has a WhatsApp account

Selenium is blocking; every public coroutine runs the driver call in a worker
thread, and a lock keeps a single driver from being used by two threads at once.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import os
import threading
from typing import Optional

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.support.ui import WebDriverWait

from ..runtime.config import AppConfig
from .browser import build_options, cleanup_profile_locks


logger = logging.getLogger("wachecker.whatsapp")

WHATSAPP_WEB_URL = "https://web.whatsapp.com/"
SEND_URL = "https://web.whatsapp.com/send?phone={phone}&type=phone_number&app_absent=0"


class WhatsAppError(Exception):
    """Base exception for WhatsApp client errors."""


class WhatsAppDisconnected(WhatsAppError):
    """Raised when the browser session is gone or unusable."""


class WhatsAppCheckError(WhatsAppError):
    """Raised when a registration check could not reach a verdict."""


class PageState(str, enum.Enum):
    LOADING = "loading"
    PAIRING = "pairing"
    READY = "ready"


class WhatsAppWebClient:
    """Selenium-based WhatsApp Web client."""

    SELECTORS = {
        "qr_canvas": "div[data-ref] canvas",
        "qr_canvas_alt": 'canvas[aria-label*="QR"]',
        "chat_list": "div#pane-side",
        "search_box": 'div[contenteditable="true"][data-tab="3"]',
        "message_input": 'footer div[contenteditable="true"]',
        "modal_popup": 'div[data-animate-modal-popup="true"]',
        "popup_button": 'button, div[role="button"]',
    }

    INVALID_NUMBER_MARKERS = (
        "phone number shared via url is invalid",
        "nomor telepon yang dibagikan melalui url tidak valid",
    )

    def __init__(self, config: AppConfig) -> None:
        self._cfg = config
        self._driver: Optional[WebDriver] = None
        self._lock = threading.Lock()
        self._closed = False

    async def launch(self) -> None:
        """Start Chromium and open WhatsApp Web."""
        await asyncio.to_thread(self._launch_sync)

    async def close(self) -> None:
        await asyncio.to_thread(self._close_sync)

    async def page_state(self) -> PageState:
        return await asyncio.to_thread(self._page_state_sync)

    async def pairing_image(self) -> Optional[bytes]:
        """PNG screenshot of the QR code, or None when no QR is shown."""
        return await asyncio.to_thread(self._pairing_image_sync)

    async def is_registered(self, identifier: str) -> bool:
        return await asyncio.to_thread(self._is_registered_sync, identifier)

    # -- blocking implementation -------------------------------------------

    def _launch_sync(self) -> None:
        profile_dir = os.path.abspath(self._cfg.wa_profile_dir)
        os.makedirs(profile_dir, exist_ok=True)
        cleanup_profile_locks(profile_dir)
        options = build_options(self._cfg)
        with self._lock:
            if self._closed:
                raise WhatsAppDisconnected("client closed before the browser started")
            self._driver = webdriver.Chrome(options=options)
            self._driver.get(WHATSAPP_WEB_URL)
        logger.info("WhatsApp Web opened", extra={"profile_dir": profile_dir})

    def _close_sync(self) -> None:
        with self._lock:
            self._closed = True
            driver, self._driver = self._driver, None
            if driver is None:
                return
            try:
                driver.quit()
                logger.info("browser closed")
            except WebDriverException as e:
                logger.warning("browser quit failed", extra={"error": str(e)})

    def _require_driver(self) -> WebDriver:
        if self._driver is None:
            raise WhatsAppDisconnected("browser not running")
        return self._driver

    def _exists(self, driver: WebDriver, key: str) -> bool:
        return bool(driver.find_elements(By.CSS_SELECTOR, self.SELECTORS[key]))

    def _find_qr(self, driver: WebDriver):
        for key in ("qr_canvas", "qr_canvas_alt"):
            found = driver.find_elements(By.CSS_SELECTOR, self.SELECTORS[key])
            if found:
                return found[0]
        return None

    def _page_state_sync(self) -> PageState:
        with self._lock:
            driver = self._require_driver()
            try:
                if self._exists(driver, "chat_list") or self._exists(driver, "search_box"):
                    return PageState.READY
                if self._find_qr(driver) is not None:
                    return PageState.PAIRING
                return PageState.LOADING
            except WebDriverException as e:
                raise WhatsAppDisconnected(str(e)) from e

    def _pairing_image_sync(self) -> Optional[bytes]:
        with self._lock:
            driver = self._require_driver()
            try:
                canvas = self._find_qr(driver)
                if canvas is None:
                    return None
                return canvas.screenshot_as_png
            except WebDriverException as e:
                raise WhatsAppDisconnected(str(e)) from e

    def _chat_verdict(self, driver: WebDriver):
        """WebDriverWait condition: a verdict string once the page decided, else None.

        The invalid-number popup is recognised by its text, or failing that by
        its shape: a modal with a message and a single dismiss button. The
        "starting chat" modal shown while loading has no button.
        """
        if self._exists(driver, "message_input"):
            return "registered"
        for popup in driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["modal_popup"]):
            text = (popup.text or "").strip().lower()
            if any(marker in text for marker in self.INVALID_NUMBER_MARKERS):
                return "unregistered"
            buttons = popup.find_elements(By.CSS_SELECTOR, self.SELECTORS["popup_button"])
            if text and len(buttons) == 1:
                return "unregistered"
        return None

    def _is_registered_sync(self, identifier: str) -> bool:
        with self._lock:
            driver = self._require_driver()
            try:
                driver.get(SEND_URL.format(phone=identifier))
                verdict = WebDriverWait(
                    driver, self._cfg.wa_check_timeout_seconds, poll_frequency=0.25
                ).until(self._chat_verdict)
            except TimeoutException as e:
                raise WhatsAppCheckError(f"no verdict for {identifier}") from e
            except WebDriverException as e:
                raise WhatsAppDisconnected(str(e)) from e
        return verdict == "registered"

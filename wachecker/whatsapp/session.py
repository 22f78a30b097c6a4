"""WhatsApp session manager.

Owns the WhatsApp Web client for the life of the process. A supervisor task
keeps it connected: initialization failures are retried at a fixed interval,
a lost browser triggers a teardown and fresh start, and the page is polled for
pairing state so the bot can hand out the current QR code. Reconnects are
serialized by a lock; a reconnect requested while one is running is dropped.

The chat side only sees `current_session()`, which is None until the session
is logged in.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Awaitable, Callable, Optional, Protocol

from ..metrics.registry import SESSION_FAILURES, SESSION_READY, SESSION_RECONNECTS
from ..runtime.config import AppConfig
from .client import PageState, WhatsAppDisconnected, WhatsAppWebClient


logger = logging.getLogger("wachecker.session")


class SessionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    PAIRING = "pairing"
    READY = "ready"
    RECONNECTING = "reconnecting"


class SessionClient(Protocol):
    async def launch(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def page_state(self) -> PageState:
        ...

    async def pairing_image(self) -> Optional[bytes]:
        ...

    async def is_registered(self, identifier: str) -> bool:
        ...


ClientFactory = Callable[[AppConfig], SessionClient]


def _browser_hint(error: BaseException) -> bool:
    text = str(error).lower()
    return "chrom" in text or "browser" in text or "failed to launch" in text


class SessionManager:
    """Supervises one WhatsApp Web client.

    Attributes:
    - state: SessionState - current lifecycle state
    - last_error: str | None - message of the most recent failure
    """

    def __init__(
        self,
        config: AppConfig,
        client_factory: ClientFactory = WhatsAppWebClient,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        self._cfg = config
        self._factory = client_factory
        self._sleep = sleep or asyncio.sleep
        self._client: Optional[SessionClient] = None
        self._qr_image: Optional[bytes] = None
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self.state = SessionState.DISCONNECTED
        self.last_error: Optional[str] = None
        SESSION_READY.set(0)

    # -- public surface ----------------------------------------------------

    def current_session(self) -> Optional[SessionClient]:
        """Client usable for checks, or None when not logged in."""
        if self.state is SessionState.READY:
            return self._client
        return None

    def pairing_material(self) -> Optional[bytes]:
        """Latest QR code PNG while waiting for a scan."""
        if self.state is SessionState.PAIRING:
            return self._qr_image
        return None

    @property
    def is_paired(self) -> bool:
        return self.state is SessionState.READY

    def start(self) -> None:
        """Launch the supervisor in the background; never raises."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._supervise())

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        async with self._lock:
            await self._teardown()
        self._set_state(SessionState.DISCONNECTED)

    async def ensure_connected(self) -> bool:
        """Start a client if none is running. Returns True when one is up."""
        if self._client is not None:
            return True
        if self._lock.locked():
            return False
        async with self._lock:
            return await self._connect()

    async def reconnect(self, reason: str) -> bool:
        """Tear down the current client and start a new one.

        Returns False without doing anything when another connect or reconnect
        holds the lock.
        """
        if self._lock.locked():
            logger.info("reconnect already in progress, skipping", extra={"reason": reason})
            return False
        async with self._lock:
            logger.warning("WhatsApp disconnected, reconnecting", extra={"reason": reason})
            SESSION_RECONNECTS.inc()
            self._set_state(SessionState.RECONNECTING)
            await self._teardown()
            await self._sleep(self._cfg.reconnect_delay_seconds)
            return await self._connect()

    async def poll_once(self) -> None:
        """Refresh pairing state; a dead browser triggers a reconnect."""
        if self._client is None or self._lock.locked():
            return
        try:
            await self._refresh()
        except WhatsAppDisconnected as e:
            self.last_error = str(e)
            await self.reconnect(str(e))

    # -- internals ---------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        if state is not self.state:
            logger.info("session state", extra={"from": self.state.value, "to": state.value})
        self.state = state
        SESSION_READY.set(1 if state is SessionState.READY else 0)

    async def _supervise(self) -> None:
        logger.info("session supervisor started")
        try:
            while True:
                try:
                    if self._client is None:
                        if not await self.ensure_connected():
                            logger.info(
                                "retrying WhatsApp start",
                                extra={"delay_seconds": self._cfg.session_retry_seconds},
                            )
                            await self._sleep(self._cfg.session_retry_seconds)
                            continue
                    else:
                        await self.poll_once()
                except Exception:
                    logger.exception("session supervisor iteration failed")
                await self._sleep(self._cfg.session_poll_seconds)
        except asyncio.CancelledError:
            logger.info("session supervisor stopped")
            raise

    async def _connect(self) -> bool:
        """Create and launch a client. Caller holds the lock."""
        self._set_state(SessionState.CONNECTING)
        client = self._factory(self._cfg)
        # Owned before launch so a cancelled start is still torn down by stop()
        self._client = client
        try:
            await client.launch()
        except Exception as e:
            self._client = None
            SESSION_FAILURES.inc()
            self.last_error = str(e)
            logger.error("WhatsApp initialization failed", extra={"error": str(e)})
            if _browser_hint(e):
                logger.error(
                    "browser could not be started; install Chromium or set CHROMIUM_PATH",
                    extra={"chromium_path": self._cfg.chromium_path},
                )
            try:
                await client.close()
            except Exception as close_err:
                logger.warning("cleanup after failed start failed", extra={"error": str(close_err)})
            self._set_state(SessionState.DISCONNECTED)
            return False

        try:
            await self._refresh()
        except WhatsAppDisconnected as e:
            self.last_error = str(e)
            logger.warning("WhatsApp lost right after start", extra={"error": str(e)})
        return True

    async def _teardown(self) -> None:
        client, self._client = self._client, None
        self._qr_image = None
        if client is None:
            return
        logger.info("closing old WhatsApp client")
        try:
            await client.close()
        except Exception as e:
            logger.warning("closing WhatsApp client failed", extra={"error": str(e)})

    async def _refresh(self) -> None:
        assert self._client is not None
        page = await self._client.page_state()
        if page is PageState.READY:
            self._qr_image = None
            if self.state is not SessionState.READY:
                logger.info("WhatsApp ready")
                self.last_error = None
            self._set_state(SessionState.READY)
        elif page is PageState.PAIRING:
            if self.state is SessionState.READY:
                logger.warning("WhatsApp authentication lost, new QR required")
            image = await self._client.pairing_image()
            if image and image != self._qr_image:
                logger.info("new QR issued")
            self._qr_image = image
            self._set_state(SessionState.PAIRING)

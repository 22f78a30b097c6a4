"""Shared fixtures and fakes for the wachecker test suite."""

from __future__ import annotations

import asyncio
import dataclasses
from typing import Dict, List, Optional, Set, Tuple

import pytest

from wachecker.runtime.config import AppConfig
from wachecker.whatsapp.client import PageState, WhatsAppDisconnected


@pytest.fixture
def config(monkeypatch, tmp_path) -> AppConfig:
    for name in ("BOT_TOKEN", "TELEGRAM_BOT_TOKEN", "COUNTRY_CODE", "MAX_NUMBERS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BOT_TOKEN", "123:test")
    cfg = AppConfig.from_env()
    return dataclasses.replace(
        cfg,
        batch_pace_ms=0,
        logs_dir=str(tmp_path / "logs"),
        wa_profile_dir=str(tmp_path / "profile"),
    )


class FakeVerifier:
    """Registration checker with scripted answers and concurrency tracking."""

    def __init__(
        self,
        registered: Optional[Set[str]] = None,
        failing: Optional[Set[str]] = None,
        gates: Optional[Dict[str, asyncio.Event]] = None,
    ) -> None:
        self.registered = registered or set()
        self.failing = failing or set()
        self.gates = gates or {}
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def is_registered(self, identifier: str) -> bool:
        self.calls.append(identifier)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if identifier in self.gates:
                await self.gates[identifier].wait()
            if identifier in self.failing:
                raise RuntimeError(f"evaluation failed for {identifier}")
            return identifier in self.registered
        finally:
            self.in_flight -= 1


class RecordingSink:
    def __init__(self) -> None:
        self.reports: List[Tuple[int, int, bool]] = []

    async def report(self, processed: int, total: int, *, from_cache: bool = False) -> None:
        self.reports.append((processed, total, from_cache))


class FakeWhatsAppClient:
    """Stand-in for `WhatsAppWebClient` driven by the test."""

    def __init__(
        self,
        page: PageState = PageState.READY,
        launch_error: Optional[Exception] = None,
        qr: bytes = b"\x89PNG-qr",
        launch_gate: Optional[asyncio.Event] = None,
    ) -> None:
        self.page = page
        self.launch_error = launch_error
        self.launch_gate = launch_gate
        self.qr = qr
        self.launched = False
        self.closed = False
        self.disconnected = False

    async def launch(self) -> None:
        if self.launch_gate is not None:
            await self.launch_gate.wait()
        if self.launch_error is not None:
            raise self.launch_error
        self.launched = True

    async def close(self) -> None:
        self.closed = True

    async def page_state(self) -> PageState:
        if self.disconnected:
            raise WhatsAppDisconnected("browser crashed")
        return self.page

    async def pairing_image(self) -> Optional[bytes]:
        if self.disconnected:
            raise WhatsAppDisconnected("browser crashed")
        return self.qr if self.page is PageState.PAIRING else None

    async def is_registered(self, identifier: str) -> bool:
        return False


class ClientFactory:
    """Hands out scripted fake clients in order, recording each one."""

    def __init__(self, *clients: FakeWhatsAppClient) -> None:
        self._queue = list(clients)
        self.created: List[FakeWhatsAppClient] = []

    def __call__(self, cfg: AppConfig) -> FakeWhatsAppClient:
        client = self._queue.pop(0) if self._queue else FakeWhatsAppClient()
        self.created.append(client)
        return client


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


def numbers(count: int, prefix: str = "62812") -> List[str]:
    return [f"{prefix}{n:08d}" for n in range(count)]


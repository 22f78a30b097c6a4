"""Tests for the WhatsApp session supervisor."""

import asyncio

import pytest

from conftest import ClientFactory, FakeWhatsAppClient
from wachecker.whatsapp.client import PageState
from wachecker.whatsapp.session import SessionManager, SessionState


@pytest.mark.asyncio
async def test_ready_session_is_served(config, sleep):
    factory = ClientFactory(FakeWhatsAppClient(page=PageState.READY))
    manager = SessionManager(config, client_factory=factory, sleep=sleep)

    assert manager.current_session() is None
    assert await manager.ensure_connected()

    assert manager.state is SessionState.READY
    assert manager.current_session() is factory.created[0]
    assert manager.pairing_material() is None
    assert manager.is_paired


@pytest.mark.asyncio
async def test_pairing_session_exposes_qr_but_no_client(config, sleep):
    factory = ClientFactory(FakeWhatsAppClient(page=PageState.PAIRING, qr=b"qr-png"))
    manager = SessionManager(config, client_factory=factory, sleep=sleep)

    await manager.ensure_connected()

    assert manager.state is SessionState.PAIRING
    assert manager.current_session() is None
    assert manager.pairing_material() == b"qr-png"


@pytest.mark.asyncio
async def test_scan_completes_pairing(config, sleep):
    client = FakeWhatsAppClient(page=PageState.PAIRING)
    manager = SessionManager(config, client_factory=ClientFactory(client), sleep=sleep)
    await manager.ensure_connected()

    client.page = PageState.READY
    await manager.poll_once()

    assert manager.current_session() is client
    assert manager.pairing_material() is None


@pytest.mark.asyncio
async def test_launch_failure_is_contained(config, sleep):
    broken = FakeWhatsAppClient(launch_error=RuntimeError("Failed to launch the browser process"))
    manager = SessionManager(config, client_factory=ClientFactory(broken), sleep=sleep)

    assert not await manager.ensure_connected()

    assert manager.state is SessionState.DISCONNECTED
    assert manager.current_session() is None
    assert "Failed to launch" in manager.last_error
    assert broken.closed


@pytest.mark.asyncio
async def test_disconnect_triggers_reconnect(config, sleep):
    first = FakeWhatsAppClient()
    second = FakeWhatsAppClient()
    factory = ClientFactory(first, second)
    manager = SessionManager(config, client_factory=factory, sleep=sleep)
    await manager.ensure_connected()

    first.disconnected = True
    await manager.poll_once()

    assert first.closed
    assert manager.current_session() is second
    assert sleep.delays == [config.reconnect_delay_seconds]


@pytest.mark.asyncio
async def test_overlapping_reconnects_collapse_into_one(config):
    gate = asyncio.Event()

    async def gated_sleep(seconds):
        await gate.wait()

    factory = ClientFactory()
    manager = SessionManager(config, client_factory=factory, sleep=gated_sleep)
    await manager.ensure_connected()

    first = asyncio.create_task(manager.reconnect("disconnected"))
    for _ in range(5):
        await asyncio.sleep(0)
    assert manager.state is SessionState.RECONNECTING

    assert await manager.reconnect("disconnected again") is False
    assert await manager.ensure_connected() is False

    gate.set()
    assert await first is True
    assert len(factory.created) == 2
    assert manager.state is SessionState.READY


@pytest.mark.asyncio
async def test_logout_returns_to_pairing(config, sleep):
    client = FakeWhatsAppClient(page=PageState.READY)
    manager = SessionManager(config, client_factory=ClientFactory(client), sleep=sleep)
    await manager.ensure_connected()

    client.page = PageState.PAIRING
    await manager.poll_once()

    assert manager.state is SessionState.PAIRING
    assert manager.current_session() is None
    assert manager.pairing_material() == client.qr


@pytest.mark.asyncio
async def test_supervisor_retries_failed_start(config, sleep):
    factory = ClientFactory(
        FakeWhatsAppClient(launch_error=RuntimeError("boom")),
        FakeWhatsAppClient(page=PageState.READY),
    )
    manager = SessionManager(config, client_factory=factory, sleep=sleep)

    manager.start()
    for _ in range(50):
        await asyncio.sleep(0)
        if manager.state is SessionState.READY:
            break
    await manager.stop()

    assert len(factory.created) == 2
    assert config.session_retry_seconds in sleep.delays
    assert factory.created[1].closed
    assert manager.state is SessionState.DISCONNECTED


@pytest.mark.asyncio
async def test_stop_during_launch_closes_the_browser(config, sleep):
    client = FakeWhatsAppClient(launch_gate=asyncio.Event())
    factory = ClientFactory(client)
    manager = SessionManager(config, client_factory=factory, sleep=sleep)

    manager.start()
    for _ in range(10):
        await asyncio.sleep(0)
    assert manager.state is SessionState.CONNECTING
    assert manager.current_session() is None

    await manager.stop()

    assert not client.launched
    assert client.closed
    assert manager.state is SessionState.DISCONNECTED


@pytest.mark.asyncio
async def test_failed_launch_leaves_no_client_behind(config, sleep):
    client = FakeWhatsAppClient(launch_error=RuntimeError("chrome not found"))
    manager = SessionManager(config, client_factory=ClientFactory(client), sleep=sleep)

    assert not await manager.ensure_connected()

    assert client.closed
    assert manager._client is None
    assert manager.state is SessionState.DISCONNECTED

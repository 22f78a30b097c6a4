"""
Entry point module for wachecker.

Wires up configuration, logging, the health/metrics server, the WhatsApp
session supervisor and the Telegram bot. The bot starts even when WhatsApp
cannot; number checks are simply ignored until the session is ready.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import uvicorn


async def _async_main() -> None:
    """Async entry point that sets up services and starts the bot."""
    from .bot.service import CheckerBotService
    from .runtime.config import AppConfig
    from .runtime.logging_setup import setup_logging
    from .verify.cache import MemoryVerificationCache
    from .web.health import app as health_app, bind_runtime
    from .whatsapp.session import SessionManager

    config = AppConfig.from_env()
    setup_logging(config)

    logger = logging.getLogger("wachecker")
    if not config.telegram_bot_token:
        logger.error("BOT_TOKEN not set; export BOT_TOKEN or TELEGRAM_BOT_TOKEN")
        sys.exit(1)

    logger.info("starting wachecker", extra={"mode": config.telegram_mode})

    cache = MemoryVerificationCache()
    session = SessionManager(config)
    bind_runtime(config, session, cache)

    health_server = uvicorn.Server(
        config=uvicorn.Config(
            app=health_app,
            host="127.0.0.1" if config.bind_health_localhost_only else "0.0.0.0",
            port=config.health_port,
            log_level="info",
            access_log=False,
        )
    )
    health_task = asyncio.create_task(health_server.serve())
    logger.info("health monitoring server started", extra={"port": config.health_port})

    session.start()

    bot = CheckerBotService(config, session, cache)
    await bot.start()

    stop_event = asyncio.Event()

    def _handle_signal(signame: str) -> None:
        logger.warning("received signal, stopping", extra={"signal": signame})
        stop_event.set()

    loop = asyncio.get_running_loop()
    for signame in ("SIGINT", "SIGTERM"):
        if hasattr(signal, signame):
            loop.add_signal_handler(getattr(signal, signame), _handle_signal, signame)

    try:
        await stop_event.wait()
    finally:
        logger.info("shutting down services")
        await bot.stop()
        await session.stop()
        health_server.should_exit = True
        try:
            await health_task
        except asyncio.CancelledError:
            pass
        logger.info("shutdown complete")


def _loop_runner(platform: str = sys.platform):
    """uvloop where it is installed (everywhere but Windows), else asyncio."""
    if platform == "win32":
        return asyncio.run
    import uvloop

    return uvloop.run


def main() -> None:
    try:
        _loop_runner()(_async_main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()

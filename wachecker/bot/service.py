"""Telegram bot service for wachecker.

Handles /start, /status, the ``qr`` keyword that returns the WhatsApp pairing
code, and plain text messages carrying one phone number per line, which are
run through the batch verification pipeline.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from telegram import Bot, Update
from telegram.constants import ChatAction, ParseMode
from telegram.error import BadRequest, TelegramError
from telegram.ext import (
    AIORateLimiter,
    Application,
    ApplicationBuilder,
    CallbackContext,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ..metrics.registry import REQUESTS_IGNORED, REQUESTS_RECEIVED, REQUESTS_REJECTED
from ..runtime.config import AppConfig
from ..utils.report_formatter import ReportFormatter
from ..verify.cache import VerificationCache
from ..verify.pipeline import BatchPipeline
from ..verify.request import EmptyRequest, TooManyNumbers, build_request
from ..whatsapp.session import SessionManager


logger = logging.getLogger("wachecker.bot")

QR_KEYWORD = re.compile(r"^\s*qr\s*$", re.IGNORECASE)

# New messages only: edits and channel posts must not re-run a batch
QR_FILTER = filters.UpdateType.MESSAGE & filters.TEXT & filters.Regex(QR_KEYWORD)
NUMBERS_FILTER = filters.UpdateType.MESSAGE & filters.TEXT


class TelegramProgressSink:
    """Edits one progress message in place as batches complete."""

    def __init__(self, bot: Bot, chat_id: int, message_id: int) -> None:
        self._bot = bot
        self._chat_id = chat_id
        self._message_id = message_id

    async def report(self, processed: int, total: int, *, from_cache: bool = False) -> None:
        text = ReportFormatter.format_progress(processed, total, from_cache=from_cache)
        try:
            await self._bot.edit_message_text(
                text, chat_id=self._chat_id, message_id=self._message_id
            )
        except BadRequest as e:
            # "Message is not modified" and friends; progress is best effort
            logger.debug("progress edit rejected", extra={"error": str(e)})
        except TelegramError as e:
            logger.warning(
                "progress edit failed",
                extra={"chat_id": self._chat_id, "error": str(e)},
            )


class CheckerBotService:
    def __init__(
        self,
        config: AppConfig,
        session: SessionManager,
        cache: VerificationCache,
    ) -> None:
        self._config = config
        self._session = session
        self._cache = cache
        self._app: Optional[Application] = None

    async def start(self) -> None:
        builder = (
            ApplicationBuilder()
            .token(self._config.telegram_bot_token)
            .rate_limiter(AIORateLimiter())
            .concurrent_updates(True)
        )
        self._app = builder.build()

        # Commands and the qr keyword must be added BEFORE the catch-all handler
        self._app.add_handler(CommandHandler("start", self._cmd_start))
        self._app.add_handler(CommandHandler("status", self._cmd_status))
        self._app.add_handler(
            MessageHandler(QR_FILTER, self._on_qr)
        )
        self._app.add_handler(MessageHandler(NUMBERS_FILTER, self._on_message))

        await self._app.initialize()
        await self._app.start()
        if self._config.telegram_mode == "webhook":
            await self._app.updater.start_webhook(
                listen="0.0.0.0",
                port=self._config.webhook_port,
                webhook_url=self._config.webhook_url,
            )
        else:
            await self._app.updater.start_polling(drop_pending_updates=True)

        logger.info("bot started", extra={"mode": self._config.telegram_mode})

    async def stop(self) -> None:
        if not self._app:
            return
        for step in (self._app.updater.stop, self._app.stop, self._app.shutdown):
            try:
                await step()
            except Exception as e:
                logger.warning("bot shutdown step failed", extra={"error": str(e)})

    async def _cmd_start(self, update: Update, context: CallbackContext) -> None:
        text = ReportFormatter.format_start(self._config.max_numbers)
        await update.effective_message.reply_text(text)

    async def _cmd_status(self, update: Update, context: CallbackContext) -> None:
        text = ReportFormatter.format_status(
            session_state=self._session.state.value,
            cache_entries=len(self._cache),
            max_numbers=self._config.max_numbers,
            batch_size=self._config.check_batch_size,
            last_error=self._session.last_error,
        )
        await update.effective_message.reply_text(text, parse_mode=ParseMode.MARKDOWN)

    async def _on_qr(self, update: Update, context: CallbackContext) -> None:
        message = update.effective_message
        image = self._session.pairing_material()
        if image:
            logger.info("sending pairing QR", extra={"chat_id": message.chat_id})
            await message.reply_photo(
                photo=image,
                caption=ReportFormatter.format_qr_caption(),
                filename="qr-code.png",
            )
        else:
            await message.reply_text(ReportFormatter.format_qr_unavailable())

    async def _on_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        text = (message.text or "").strip() if message else ""
        if not text:
            return

        REQUESTS_RECEIVED.inc()
        try:
            request = build_request(
                text,
                country_code=self._config.country_code,
                min_digits=self._config.min_digits,
                max_numbers=self._config.max_numbers,
            )
        except EmptyRequest as e:
            REQUESTS_REJECTED.labels(reason=e.reason).inc()
            await message.reply_text(ReportFormatter.format_empty_request())
            return
        except TooManyNumbers as e:
            REQUESTS_REJECTED.labels(reason=e.reason).inc()
            await message.reply_text(ReportFormatter.format_too_many(e.count, e.limit))
            return

        # Until WhatsApp is logged in, number lists get no reply at all
        client = self._session.current_session()
        if client is None:
            REQUESTS_IGNORED.inc()
            logger.info(
                "WhatsApp not ready, ignoring request",
                extra={"chat_id": message.chat_id, "state": self._session.state.value},
            )
            return

        logger.info(
            "processing batch",
            extra={
                "chat_id": message.chat_id,
                "total": request.total,
                "submitted": request.submitted,
            },
        )
        await context.bot.send_chat_action(chat_id=message.chat_id, action=ChatAction.TYPING)
        progress = await message.reply_text(
            ReportFormatter.format_progress(0, request.total)
        )
        sink = TelegramProgressSink(context.bot, progress.chat_id, progress.message_id)
        pipeline = BatchPipeline(
            client,
            self._cache,
            batch_size=self._config.check_batch_size,
            pace_seconds=self._config.batch_pace_seconds,
        )
        try:
            outcome = await pipeline.run(request.identifiers, sink)
        except Exception:
            logger.exception("batch failed", extra={"chat_id": message.chat_id})
            await message.reply_text(ReportFormatter.format_check_failed())
            return

        report = ReportFormatter.format_report(outcome, self._config.report_signature)
        await message.reply_text(report, parse_mode=ParseMode.MARKDOWN)

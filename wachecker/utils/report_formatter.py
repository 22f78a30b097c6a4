"""Chat text formatter for wachecker.

Renders progress updates, the final categorized report and the fixed bot
replies. Output uses Telegram's legacy Markdown dialect (`*bold*`, `_italic_`).
"""

from __future__ import annotations

from typing import List, Optional

from telegram.helpers import escape_markdown

from ..verify.pipeline import BatchOutcome, ItemOutcome, ItemStatus


class ReportFormatter:
    """Formats pipeline state into user-facing Telegram messages."""

    EMOJIS = {
        "registered": "✅",
        "unregistered": "❌",
        "error": "⚠️",
        "search": "🔍",
        "phone": "📱",
        "info": "ℹ️",
        "bot": "🤖",
        "cache": "🗄️",
    }

    LABELS = {
        ItemStatus.REGISTERED: "Terdaftar",
        ItemStatus.UNREGISTERED: "Tidak Terdaftar",
        ItemStatus.ERROR: "Error",
    }
    CACHE_LABEL = "TerHIT"

    @classmethod
    def format_progress(cls, processed: int, total: int, from_cache: bool = False) -> str:
        suffix = " (dari cache)" if from_cache else ""
        return (
            f"{cls.EMOJIS['search']} Mengecek {total} nomor...\n"
            f"Progres: {processed}/{total}{suffix}"
        )

    @classmethod
    def format_item(cls, item: ItemOutcome) -> str:
        """Render one outcome as ``+<id> --> <glyph> <label>``."""
        glyph = cls.EMOJIS[item.status.value]
        label = cls.CACHE_LABEL if item.from_cache else cls.LABELS[item.status]
        return f"+{item.identifier} --> {glyph} {label}"

    @classmethod
    def format_report(cls, outcome: BatchOutcome, signature: str = "_by drixalexa_") -> str:
        """Final report: registered and not-registered sections, then signature.

        A section with no items is left out entirely.
        """
        parts: List[str] = []
        if outcome.registered:
            lines = "\n".join(cls.format_item(i) for i in outcome.registered)
            parts.append(f"{cls.EMOJIS['registered']} *Nomor Terdaftar:*\n{lines}\n\n")
        if outcome.unregistered:
            lines = "\n".join(cls.format_item(i) for i in outcome.unregistered)
            parts.append(f"{cls.EMOJIS['unregistered']} *Nomor Tidak Terdaftar:*\n{lines}\n\n")
        parts.append(signature)
        return "".join(parts)

    @classmethod
    def format_start(cls, max_numbers: int = 50) -> str:
        return (
            "Selamat Datang kaum Rebahan - Send Nomor Lu Bot Akan Memproses "
            f"max{max_numbers}"
        )

    @classmethod
    def format_empty_request(cls) -> str:
        return f"{cls.EMOJIS['error']} Kirim daftar nomor, satu per baris."

    @classmethod
    def format_too_many(cls, count: int, limit: int) -> str:
        return (
            f"{cls.EMOJIS['error']} Maksimal {limit} nomor per request! "
            f"Anda mengirim {count} nomor."
        )

    @classmethod
    def format_qr_caption(cls) -> str:
        return f"{cls.EMOJIS['phone']} Scan QR untuk login WhatsApp."

    @classmethod
    def format_qr_unavailable(cls) -> str:
        return f"{cls.EMOJIS['registered']} WhatsApp sudah terhubung / QR belum tersedia."

    @classmethod
    def format_check_failed(cls) -> str:
        return f"{cls.EMOJIS['unregistered']} Pengecekan gagal, silakan coba lagi."

    @classmethod
    def format_status(
        cls,
        session_state: str,
        cache_entries: int,
        max_numbers: int,
        batch_size: int,
        last_error: Optional[str] = None,
    ) -> str:
        """Format /status reply with session state and limits."""
        ready = session_state == "ready"
        state_emoji = cls.EMOJIS["registered"] if ready else cls.EMOJIS["error"]
        lines = [
            f"{cls.EMOJIS['bot']} *Status Bot*",
            "",
            f"{state_emoji} WhatsApp: {session_state}",
            f"{cls.EMOJIS['cache']} Cache: {cache_entries} nomor",
            f"{cls.EMOJIS['info']} Maks per request: {max_numbers}",
            f"{cls.EMOJIS['info']} Ukuran batch: {batch_size}",
        ]
        if last_error and not ready:
            lines.append(f"{cls.EMOJIS['error']} Error terakhir: {escape_markdown(last_error)}")
        return "\n".join(lines)

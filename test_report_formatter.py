"""Tests for the chat report formatter."""

from wachecker.utils.report_formatter import ReportFormatter
from wachecker.verify.pipeline import BatchOutcome, ItemOutcome, ItemStatus


def test_progress_text():
    assert ReportFormatter.format_progress(5, 12) == "🔍 Mengecek 12 nomor...\nProgres: 5/12"
    assert ReportFormatter.format_progress(2, 12, from_cache=True).endswith(
        "Progres: 2/12 (dari cache)"
    )


def test_item_lines():
    assert (
        ReportFormatter.format_item(ItemOutcome("6281234567890", ItemStatus.REGISTERED))
        == "+6281234567890 --> ✅ Terdaftar"
    )
    assert (
        ReportFormatter.format_item(ItemOutcome("6281234567890", ItemStatus.UNREGISTERED))
        == "+6281234567890 --> ❌ Tidak Terdaftar"
    )
    assert (
        ReportFormatter.format_item(ItemOutcome("6281234567890", ItemStatus.ERROR))
        == "+6281234567890 --> ⚠️ Error"
    )
    assert (
        ReportFormatter.format_item(
            ItemOutcome("6281234567890", ItemStatus.REGISTERED, from_cache=True)
        )
        == "+6281234567890 --> ✅ TerHIT"
    )


def test_report_with_only_unregistered_numbers_omits_registered_section():
    outcome = BatchOutcome(total=2)
    outcome.add(ItemOutcome("6281234567890", ItemStatus.UNREGISTERED))
    outcome.add(ItemOutcome("6281234567891", ItemStatus.UNREGISTERED))

    report = ReportFormatter.format_report(outcome)

    assert report == (
        "❌ *Nomor Tidak Terdaftar:*\n"
        "+6281234567890 --> ❌ Tidak Terdaftar\n"
        "+6281234567891 --> ❌ Tidak Terdaftar\n\n"
        "_by drixalexa_"
    )


def test_report_with_both_sections_and_error_line():
    outcome = BatchOutcome(total=3)
    outcome.add(ItemOutcome("6281111111111", ItemStatus.REGISTERED))
    outcome.add(ItemOutcome("6282222222222", ItemStatus.ERROR))
    outcome.add(ItemOutcome("6283333333333", ItemStatus.UNREGISTERED, from_cache=True))

    report = ReportFormatter.format_report(outcome, signature="_sig_")

    assert report == (
        "✅ *Nomor Terdaftar:*\n"
        "+6281111111111 --> ✅ Terdaftar\n\n"
        "❌ *Nomor Tidak Terdaftar:*\n"
        "+6282222222222 --> ⚠️ Error\n"
        "+6283333333333 --> ❌ TerHIT\n\n"
        "_sig_"
    )


def test_empty_outcome_is_only_signature():
    assert ReportFormatter.format_report(BatchOutcome(total=0)) == "_by drixalexa_"


def test_rejection_texts():
    assert "satu per baris" in ReportFormatter.format_empty_request()
    too_many = ReportFormatter.format_too_many(51, 50)
    assert "Maksimal 50 nomor" in too_many
    assert "Anda mengirim 51 nomor" in too_many


def test_status_escapes_error_markdown():
    text = ReportFormatter.format_status(
        session_state="disconnected",
        cache_entries=3,
        max_numbers=50,
        batch_size=5,
        last_error="chrome_not_found",
    )
    assert "WhatsApp: disconnected" in text
    assert "Cache: 3 nomor" in text
    assert "chrome\\_not\\_found" in text


def test_status_hides_error_when_ready():
    text = ReportFormatter.format_status("ready", 0, 50, 5, last_error="old")
    assert "old" not in text

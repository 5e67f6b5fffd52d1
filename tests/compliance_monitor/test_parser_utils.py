"""Tests for timestamp and HTML helpers."""

from datetime import date, datetime, timedelta, timezone

from src.compliance_monitor.parser_utils import (
    ensure_utc,
    html_to_text,
    parse_timestamp,
    to_epoch_ms,
    to_iso,
)
from src.compliance_monitor.sections import extract_sections


def test_to_iso_uses_microseconds_and_z_suffix():
    value = datetime(2025, 1, 2, 3, 4, 5, 6000, tzinfo=timezone.utc)
    assert to_iso(value) == "2025-01-02T03:04:05.006000Z"
    assert to_iso(None) is None


def test_to_iso_converts_offsets_to_utc():
    value = datetime(2025, 1, 1, 9, 0, tzinfo=timezone(timedelta(hours=8)))
    assert to_iso(value) == "2025-01-01T01:00:00.000000Z"


def test_parse_timestamp_round_trips_stored_values():
    value = datetime(2025, 6, 30, 23, 59, 59, 123456, tzinfo=timezone.utc)
    assert parse_timestamp(to_iso(value)) == value


def test_parse_timestamp_accepts_dates_and_blank_values():
    assert parse_timestamp(date(2025, 1, 1)) == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp("March 5, 2025") == datetime(2025, 3, 5, tzinfo=timezone.utc)


def test_ensure_utc_treats_naive_values_as_utc():
    assert ensure_utc(datetime(2025, 1, 1)).tzinfo == timezone.utc


def test_to_epoch_ms():
    assert to_epoch_ms(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000


def test_html_to_text_puts_headings_on_their_own_lines():
    """Direct page fetches become text the section extractor can split."""
    html = """
    <html><body>
      <nav>Home | About</nav>
      <h2>Overview</h2>
      <p>Employers must pay <b>$16.00</b> per hour.</p>
      <h2>Penalties</h2>
      <ul><li>Fines of $500</li></ul>
      <script>var tracking = true;</script>
      <footer>Copyright</footer>
    </body></html>
    """
    text = html_to_text(html)
    lines = text.splitlines()

    assert "Overview" in lines
    assert "Penalties" in lines
    assert "Employers must pay $16.00 per hour." in lines
    assert "Home | About" not in text
    assert "tracking" not in text
    assert "Copyright" not in text
    assert extract_sections(text) == {
        "overview": "Employers must pay $16.00 per hour.",
        "penalties": "Fines of $500",
    }


def test_html_to_text_empty():
    assert html_to_text(None) == ""
    assert html_to_text("") == ""

"""Tests for content hashing and ParsedContent assembly."""

from datetime import datetime, timezone

from src.compliance_monitor.parser import content_hash, parse_content

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_content_hash_is_sha256_hex():
    assert content_hash("") == EMPTY_SHA256
    assert len(content_hash("Overview\nText")) == 64


def test_content_hash_is_deterministic_and_sensitive():
    """Identical text hashes identically; any byte difference changes the digest."""
    assert content_hash("Minimum wage $15.00") == content_hash("Minimum wage $15.00")
    assert content_hash("Minimum wage $15.00") != content_hash("Minimum wage $15.00 ")


def test_parse_content_assembles_all_parts():
    now = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    text = "Overview\nEmployers with 15 or more employees are covered.\nPenalties\nFines of $500."
    parsed = parse_content(text, now=now)

    assert parsed.raw_content == text
    assert parsed.parsed_at == now
    assert parsed.content_hash == content_hash(text)
    assert parsed.sections == {
        "overview": "Employers with 15 or more employees are covered.",
        "penalties": "Fines of $500.",
    }
    assert parsed.fields["employee_thresholds"] == ["15 or more employees"]
    assert "$500" in parsed.fields["penalty_amounts"]


def test_parse_content_handles_missing_content():
    parsed = parse_content(None)
    assert parsed.raw_content == ""
    assert parsed.sections == {}
    assert parsed.content_hash == EMPTY_SHA256
    assert parsed.parsed_at.tzinfo is not None

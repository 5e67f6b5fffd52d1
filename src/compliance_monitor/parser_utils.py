"""Parsing and timestamp utilities for the compliance monitor."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Optional, Sequence, Union

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

ISO_TIMESTAMP_SUFFIX = "Z"

BLOCK_TAGS: Sequence[str] = (
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "p",
    "li",
    "dt",
    "dd",
    "tr",
    "blockquote",
    "pre",
    "div",
    "section",
    "article",
)

REMOVED_TAGS: Sequence[str] = ("script", "style", "noscript", "nav", "footer", "header", "form")

_BLANK_LINES = re.compile(r"\n{3,}")
_INLINE_SPACE = re.compile(r"[ \t\r\f\v]+")


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialise a datetime as sortable ISO-8601 UTC with microseconds and Z suffix."""
    if value is None:
        return None
    dt = ensure_utc(value).replace(tzinfo=None)
    return dt.isoformat(timespec="microseconds") + ISO_TIMESTAMP_SUFFIX


def parse_timestamp(value: Optional[Union[str, date, datetime]]) -> Optional[datetime]:
    """Parse stored or user supplied timestamps into aware UTC datetimes."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = value.strip()
    if not text:
        return None
    return ensure_utc(date_parser.isoparse(text) if text[:4].isdigit() else date_parser.parse(text))


def to_epoch_ms(value: datetime) -> int:
    """Milliseconds since the epoch, used in composite identifiers."""
    return int(ensure_utc(value).timestamp() * 1000)


def html_to_text(html: Optional[str]) -> str:
    """Flatten an HTML page into one block per line.

    Headings end up on their own line so the section extractor can match
    them as template headers.
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "lxml")

    for tag in soup(list(REMOVED_TAGS)):
        tag.decompose()

    root = soup.find("main") or soup.body or soup
    for br in root.find_all("br"):
        br.replace_with("\n")
    for tag in root.find_all(list(BLOCK_TAGS)):
        tag.insert_before("\n")
        tag.insert_after("\n")

    lines = []
    for raw_line in root.get_text().split("\n"):
        line = _INLINE_SPACE.sub(" ", raw_line).strip()
        lines.append(line)
    text = "\n".join(lines)
    return _BLANK_LINES.sub("\n\n", text).strip()

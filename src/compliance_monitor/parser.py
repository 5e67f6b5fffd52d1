"""Turn crawled text into ParsedContent: sections, facts and a content digest."""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Optional, Sequence

from .fields import extract_fields
from .models import ParsedContent
from .parser_utils import utc_now
from .sections import TEMPLATE_SECTIONS, SectionSpec, extract_sections


def content_hash(value: str) -> str:
    """SHA-256 hex digest of the UTF-8 encoded content."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def parse_content(
    content: Optional[str],
    *,
    now: Optional[datetime] = None,
    sections: Sequence[SectionSpec] = TEMPLATE_SECTIONS,
) -> ParsedContent:
    text = content or ""
    return ParsedContent(
        raw_content=text,
        sections=extract_sections(text, sections),
        fields=extract_fields(text),
        content_hash=content_hash(text),
        parsed_at=now or utc_now(),
    )

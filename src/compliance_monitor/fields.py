"""Structured fact extraction from compliance text.

Every fact category is declared once in ``FIELD_PATTERNS`` as an ordered list
of regex + normalizer pairs. ``extract_fields`` runs the whole table; the
deadline tracker reuses the shared date patterns defined here.

Extraction is heuristic: misses and loose captures are expected, and no input
makes it raise.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Pattern

MONTH_NAMES = (
    "January|February|March|April|May|June|July|August|September|October|November|December"
)
MONTH_DATE_PATTERN = re.compile(
    rf"\b(?:{MONTH_NAMES})\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}\b",
    re.IGNORECASE,
)
NUMERIC_DATE_PATTERN = re.compile(r"\b\d{1,2}/\d{1,2}/\d{4}\b")
ISO_DATE_PATTERN = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")

_DOLLARS = r"\$\d[\d,]*(?:\.\d{2})?"
_WHITESPACE = re.compile(r"\s+")


def clean_match(value: str) -> Optional[str]:
    """Collapse whitespace and trim trailing punctuation."""
    cleaned = _WHITESPACE.sub(" ", value).strip().rstrip(".,;:")
    return cleaned or None


def clean_requirement(value: str) -> Optional[str]:
    cleaned = clean_match(value)
    if cleaned is None or len(cleaned) <= 10:
        return None
    return cleaned


@dataclass(frozen=True)
class FieldPattern:
    pattern: Pattern[str]
    normalizer: Callable[[str], Optional[str]] = clean_match


def _p(regex: str, flags: int = re.IGNORECASE) -> Pattern[str]:
    return re.compile(regex, flags)


EFFECTIVE_DATES = "effective_dates"
PENALTY_AMOUNTS = "penalty_amounts"
DEADLINES = "deadlines"
EMPLOYEE_THRESHOLDS = "employee_thresholds"
WAGE_RATES = "wage_rates"
TRAINING_HOURS = "training_hours"
STATUTE_CITATIONS = "statute_citations"
REQUIREMENTS = "requirements"

FIELD_PATTERNS: Dict[str, List[FieldPattern]] = {
    EFFECTIVE_DATES: [
        FieldPattern(NUMERIC_DATE_PATTERN),
        FieldPattern(ISO_DATE_PATTERN),
        FieldPattern(MONTH_DATE_PATTERN),
        FieldPattern(_p(r"\beffective\s+(?:date|on|as\s+of)\s*:?\s*[^.\n]+")),
    ],
    PENALTY_AMOUNTS: [
        FieldPattern(_p(_DOLLARS)),
        FieldPattern(_p(rf"\bfine[sd]?\s+(?:of\s+)?(?:up\s+to\s+)?{_DOLLARS}")),
        FieldPattern(_p(rf"\bpenalt(?:y|ies)\s+(?:of\s+)?(?:up\s+to\s+)?{_DOLLARS}")),
        FieldPattern(
            _p(
                r"\bviolations?\s+(?:may\s+)?(?:result\s+in\s+)?(?:fines?\s+of\s+)?"
                rf"(?:up\s+to\s+)?{_DOLLARS}"
            )
        ),
    ],
    DEADLINES: [
        FieldPattern(_p(r"\bdeadlines?\s+(?:is|are|of)\s+[^.\n]+")),
        FieldPattern(_p(r"\bdue\s+(?:by|on|before)\s+[^.\n]+")),
        FieldPattern(
            _p(
                r"\bmust\s+be\s+(?:completed|submitted|filed|posted|provided)\s+"
                r"(?:by|on|before|within)\s+[^.\n]+"
            )
        ),
        FieldPattern(_p(r"\bwithin\s+\d+\s+(?:calendar\s+|business\s+)?(?:days|months|years)\b")),
        FieldPattern(_p(r"\b(?:annual|quarterly|monthly)\s+(?:filing|submission|renewal|report)s?\b")),
    ],
    EMPLOYEE_THRESHOLDS: [
        FieldPattern(
            _p(r"\b\d[\d,]*\s+or\s+(?:more|fewer)\s+(?:(?:full|part)[- ]time\s+)?employees\b")
        ),
        FieldPattern(_p(r"\b(?:fewer|less|more)\s+than\s+\d[\d,]*\s+(?:(?:full|part)[- ]time\s+)?employees\b")),
        FieldPattern(_p(r"\bat\s+least\s+\d[\d,]*\s+employees\b")),
    ],
    WAGE_RATES: [
        FieldPattern(_p(rf"{_DOLLARS}\s*(?:per\s+hour|an\s+hour|/\s*(?:hour|hr))\b")),
        FieldPattern(_p(rf"{_DOLLARS}\s+per\s+(?:week|month|year)\b")),
    ],
    TRAINING_HOURS: [
        FieldPattern(
            _p(
                r"\b(?:\d+(?:\.\d+)?|one|two|three|four|five|six|eight)\s+(?:\(\d+\)\s+)?"
                r"hours?\s+of\s+(?:[\w-]+\s+){0,3}?training\b"
            )
        ),
        FieldPattern(_p(r"\b(?:\d+|one|two)[- ]hour\s+(?:[\w-]+\s+){0,3}?training\b")),
    ],
    STATUTE_CITATIONS: [
        FieldPattern(_p(r"\b\d+\s+U\.S\.C\.\s*§+\s*\d+[\w()-]*(?:\.\d+)*")),
        FieldPattern(_p(r"\b\d+\s+C\.F\.R\.\s*(?:§+\s*|part\s+)?\d+(?:\.\d+)*")),
        FieldPattern(_p(r"\b(?:[A-Z][a-z]+\.?\s+){1,3}Code\s+(?:§+|Section|Sec\.)\s*\d+(?:\.\d+)*", 0)),
        FieldPattern(_p(r"§+\s*\d+(?:[.-]\d+)*(?:\([a-z0-9]+\))*")),
    ],
    REQUIREMENTS: [
        FieldPattern(_p(r"\b(?:must|shall|(?:is\s+)?required\s+to)\s+[^.\n]+"), clean_requirement),
        FieldPattern(_p(r"\bit\s+is\s+(?:required|mandatory)\s+[^.\n]+"), clean_requirement),
    ],
}

MAX_RESULTS: Dict[str, int] = {REQUIREMENTS: 10}


def extract_category(text: Optional[str], category: str) -> List[str]:
    """Return deduplicated matches for one category in first-seen order."""
    if not text or category not in FIELD_PATTERNS:
        return []

    found: Dict[str, None] = {}
    for field_pattern in FIELD_PATTERNS[category]:
        for match in field_pattern.pattern.finditer(text):
            value = field_pattern.normalizer(match.group(0))
            if value is not None:
                found.setdefault(value, None)

    values = list(found)
    limit = MAX_RESULTS.get(category)
    return values[:limit] if limit else values


def extract_fields(
    text: Optional[str],
    categories: Optional[Iterable[str]] = None,
) -> Dict[str, List[str]]:
    """Run every category of the pattern table against ``text``."""
    selected = list(categories) if categories is not None else list(FIELD_PATTERNS)
    return {category: extract_category(text, category) for category in selected}

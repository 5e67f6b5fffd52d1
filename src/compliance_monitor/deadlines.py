"""Deadline extraction from stored reports and the regulatory calendar."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Pattern

from dateutil import parser as date_parser

from .database import ComplianceDatabase
from .fields import MONTH_DATE_PATTERN
from .logging_config import get_logger
from .models import Deadline
from .parser import content_hash
from .parser_utils import ensure_utc, utc_now

logger = get_logger("deadlines")

DEADLINE_TRAINING = "training_deadline"
DEADLINE_POSTING = "posting_deadline"
DEADLINE_COMPLIANCE = "compliance_deadline"
DEADLINE_RENEWAL = "renewal_deadline"

STATUS_UPCOMING = "upcoming"
STATUS_OVERDUE = "overdue"

DEFAULT_DEADLINE_LIMIT = 5
DEFAULT_OFFSET_DAYS = 90
ANNUAL_OFFSET_DAYS = 365

_ORDINAL_SUFFIX = re.compile(r"(\d)(?:st|nd|rd|th)\b", re.IGNORECASE)
_WITHIN_DAYS = re.compile(r"within\s+(\d+)\s+days", re.IGNORECASE)


@dataclass(frozen=True)
class DeadlinePattern:
    pattern: Pattern[str]
    deadline_type: str
    recurring: Optional[str] = None


DEADLINE_PATTERNS: List[DeadlinePattern] = [
    DeadlinePattern(
        re.compile(r"annual(?:ly)?\s+(?:training|filing|renewal|update)", re.IGNORECASE),
        DEADLINE_RENEWAL,
        "annual",
    ),
    DeadlinePattern(
        re.compile(r"(?:within|by)\s+\d+\s+days?\s+of\s+(?:hire|employment|start)", re.IGNORECASE),
        DEADLINE_TRAINING,
    ),
    DeadlinePattern(MONTH_DATE_PATTERN, DEADLINE_COMPLIANCE),
    DeadlinePattern(
        re.compile(r"posting\s+(?:must\s+be\s+)?(?:displayed|updated|renewed)", re.IGNORECASE),
        DEADLINE_POSTING,
        "annual",
    ),
]


@dataclass
class ExtractedDeadline:
    title: str
    deadline_type: str
    deadline_date: datetime
    recurring: Optional[str]
    fingerprint: str
    description: str = "Deadline extracted from compliance content"


@dataclass
class DeadlineTrackingResult:
    created: int = 0
    updated: int = 0
    rules_processed: int = 0
    errors: int = 0


def estimate_deadline_date(text: str, now: Optional[datetime] = None) -> datetime:
    """Best-effort calendar date for a deadline phrase."""
    now = ensure_utc(now or utc_now())

    explicit = MONTH_DATE_PATTERN.search(text)
    if explicit:
        try:
            parsed = date_parser.parse(_ORDINAL_SUFFIX.sub(r"\1", explicit.group(0)))
            return parsed.replace(tzinfo=timezone.utc)
        except (ValueError, OverflowError):
            logger.debug(f"Could not parse deadline date from {explicit.group(0)!r}")

    relative = _WITHIN_DAYS.search(text)
    if relative:
        return now + timedelta(days=int(relative.group(1)))

    if "annual" in text.lower():
        return now + timedelta(days=ANNUAL_OFFSET_DAYS)

    return now + timedelta(days=DEFAULT_OFFSET_DAYS)


def extract_deadlines(
    content: Optional[str],
    now: Optional[datetime] = None,
    limit: int = DEFAULT_DEADLINE_LIMIT,
) -> List[ExtractedDeadline]:
    if not content:
        return []

    found: List[ExtractedDeadline] = []
    for deadline_pattern in DEADLINE_PATTERNS:
        for index, match in enumerate(deadline_pattern.pattern.finditer(content)):
            phrase = match.group(0).strip()
            found.append(
                ExtractedDeadline(
                    title=phrase,
                    deadline_type=deadline_pattern.deadline_type,
                    deadline_date=estimate_deadline_date(phrase, now),
                    recurring=deadline_pattern.recurring,
                    fingerprint=content_hash(f"{phrase}{deadline_pattern.deadline_type}{index}")[:12],
                )
            )
    return found[:limit]


class DeadlineTracker:
    """Keeps ``compliance_deadlines`` in step with the latest report of each rule."""

    def __init__(self, db: ComplianceDatabase) -> None:
        self.db = db

    def track(
        self,
        rule_ids: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> DeadlineTrackingResult:
        now = ensure_utc(now or utc_now())
        if rule_ids is None:
            rules = self.db.list_rules()
        else:
            rules = [rule for rule in (self.db.get_rule(rule_id) for rule_id in rule_ids) if rule]

        result = DeadlineTrackingResult(rules_processed=len(rules))
        for rule in rules:
            try:
                report = self.db.get_latest_report(rule.rule_id)
                if report is None:
                    continue
                for extracted in extract_deadlines(report.report_content, now):
                    outcome = self._store(rule.rule_id, extracted, now)
                    if outcome == "created":
                        result.created += 1
                    elif outcome == "updated":
                        result.updated += 1
            except Exception:
                result.errors += 1
                logger.exception(f"Deadline tracking failed for {rule.rule_id}")

        logger.info(
            f"Deadline tracking complete: {result.created} created, "
            f"{result.updated} updated across {result.rules_processed} rules"
        )
        return result

    def _store(self, rule_id: str, extracted: ExtractedDeadline, now: datetime) -> Optional[str]:
        deadline = Deadline(
            deadline_id=f"{rule_id}_{extracted.deadline_type}_{extracted.fingerprint}",
            rule_id=rule_id,
            title=extracted.title,
            description=extracted.description,
            deadline_date=extracted.deadline_date,
            deadline_type=extracted.deadline_type,
            recurring_pattern=extracted.recurring,
            status=STATUS_UPCOMING if extracted.deadline_date > now else STATUS_OVERDUE,
        )
        existing = self.db.get_deadline(deadline.deadline_id)
        if existing and existing.deadline_date == deadline.deadline_date and existing.title == deadline.title:
            return None
        return self.db.upsert_deadline(deadline)

"""Data models for the compliance monitor pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from .parser_utils import to_iso, utc_now

PRIORITY_CRITICAL = "critical"
PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"
PRIORITY_LOW = "low"
PRIORITIES = (PRIORITY_CRITICAL, PRIORITY_HIGH, PRIORITY_MEDIUM, PRIORITY_LOW)

SEVERITY_NONE = "none"
SEVERITIES = PRIORITIES + (SEVERITY_NONE,)

STATUS_ACTIVE = "active"
STATUS_PAUSED = "paused"

CHANGE_ADDED = "added"
CHANGE_REMOVED = "removed"
CHANGE_MODIFIED = "modified"

ALERT_CHANGE_TYPES = (
    "new_law",
    "amendment",
    "deadline_change",
    "penalty_change",
    "coverage_change",
    "procedural_change",
)


@dataclass
class MonitoredRule:
    """One jurisdiction + topic legal requirement under watch."""

    rule_id: str
    jurisdiction: str
    topic_key: str
    topic_label: str
    source_url: str
    priority: str = PRIORITY_MEDIUM
    monitoring_status: str = STATUS_ACTIVE
    created_at: datetime = field(default_factory=utc_now)
    last_significant_change: Optional[datetime] = None
    last_checked_at: Optional[datetime] = None
    last_crawl_success: Optional[bool] = None
    last_content_length: Optional[int] = None
    last_response_time_ms: Optional[int] = None

    @property
    def last_checked(self) -> datetime:
        """Reference instant for the due-check."""
        return self.last_significant_change or self.created_at

    @property
    def is_active(self) -> bool:
        return self.monitoring_status == STATUS_ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "jurisdiction": self.jurisdiction,
            "topic_key": self.topic_key,
            "topic_label": self.topic_label,
            "source_url": self.source_url,
            "priority": self.priority,
            "monitoring_status": self.monitoring_status,
            "created_at": to_iso(self.created_at),
            "last_significant_change": to_iso(self.last_significant_change),
            "last_checked_at": to_iso(self.last_checked_at),
        }


@dataclass
class CrawlResult:
    """Raw outcome of one scrape attempt. Never persisted verbatim."""

    success: bool
    content: str = ""
    response_time_ms: int = 0
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ScrapeResponse:
    """Response shape returned by scraper backends."""

    success: bool
    markdown: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class ParsedContent:
    """Structured view of a crawl's content."""

    raw_content: str
    sections: Dict[str, str]
    fields: Dict[str, List[str]]
    content_hash: str
    parsed_at: datetime


@dataclass
class ComplianceReport:
    """Persisted, versioned snapshot of a rule's content."""

    report_id: str
    rule_id: str
    report_content: str
    content_hash: str
    content_length: int
    extracted_sections: Dict[str, str] = field(default_factory=dict)
    processing_method: str = "scheduled_crawl"
    generated_at: datetime = field(default_factory=utc_now)


@dataclass
class ChangeEvent:
    """One detected difference for a template section."""

    section: str
    kind: str
    description: str
    old_content: Optional[str] = None
    new_content: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "section": self.section,
            "kind": self.kind,
            "description": self.description,
        }
        if self.old_content is not None:
            data["old_content"] = self.old_content
        if self.new_content is not None:
            data["new_content"] = self.new_content
        return data


@dataclass
class ChangeVerdict:
    """Classifier verdict for a crawl compared with the previous report."""

    has_significant_changes: bool
    severity: str
    change_type: str
    confidence: Optional[float]
    changes: List[ChangeEvent] = field(default_factory=list)
    impact_areas: List[str] = field(default_factory=list)

    @property
    def is_new_content(self) -> bool:
        return self.change_type == "new_content"


@dataclass
class ComplianceAlert:
    """A significant-change notification record."""

    change_id: str
    rule_id: str
    change_type: str
    severity: str
    detected_at: datetime
    affected_sections: List[str] = field(default_factory=list)
    change_description: str = ""
    ai_confidence: float = 0.8
    human_verified: bool = False
    notifications_sent: List[str] = field(default_factory=list)


@dataclass
class Deadline:
    """A compliance deadline extracted from report content."""

    deadline_id: str
    rule_id: str
    title: str
    description: str
    deadline_date: datetime
    deadline_type: str
    recurring_pattern: Optional[str] = None
    status: str = "upcoming"
    reminders_sent: List[str] = field(default_factory=list)


@dataclass
class StepOutcome:
    """Tagged outcome of a best-effort side effect."""

    status: str
    value: Any = None
    error: Optional[str] = None

    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"

    @classmethod
    def ok(cls, value: Any = None) -> "StepOutcome":
        return cls(status=cls.OK, value=value)

    @classmethod
    def failed(cls, error: str) -> "StepOutcome":
        return cls(status=cls.FAILED, error=error)

    @classmethod
    def skipped(cls, reason: Optional[str] = None) -> "StepOutcome":
        return cls(status=cls.SKIPPED, error=reason)

    @property
    def succeeded(self) -> bool:
        return self.status == self.OK


@dataclass
class HttpClientConfig:
    """Timeout and retry settings for outbound HTTP calls."""

    name: str = "default"
    timeout_seconds: float = 60.0
    max_retries: int = 0
    retry_base_delay: float = 1.0
    retry_exponential_base: float = 2.0
    retry_max_delay: float = 30.0
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class RequestStats:
    """Counters updated by the HTTP client."""

    http_requests: int = 0
    retry_attempts: int = 0


@dataclass
class CrawlOutcome:
    """Result returned by a single-rule crawl."""

    rule_id: str
    success: bool = False
    changes_detected: bool = False
    severity: str = SEVERITY_NONE
    next_crawl_scheduled: Optional[datetime] = None
    content_length: int = 0
    skipped: bool = False
    reason: Optional[str] = None
    change_type: Optional[str] = None
    report_id: Optional[str] = None
    alert_id: Optional[str] = None
    summary_status: str = StepOutcome.SKIPPED
    degraded: bool = False
    conflict: bool = False
    crawl_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert outcome to dictionary for JSON serialization."""
        return {
            "rule_id": self.rule_id,
            "success": self.success,
            "changes_detected": self.changes_detected,
            "severity": self.severity,
            "next_crawl_scheduled": to_iso(self.next_crawl_scheduled),
            "content_length": self.content_length,
            "skipped": self.skipped,
            "reason": self.reason,
            "change_type": self.change_type,
            "report_id": self.report_id,
            "alert_id": self.alert_id,
            "summary_status": self.summary_status,
            "degraded": self.degraded,
            "conflict": self.conflict,
            "crawl_error": self.crawl_error,
        }


@dataclass
class BatchSummary:
    """Aggregate counters of a batch crawl."""

    total: int = 0
    crawled: int = 0
    failed: int = 0
    skipped: int = 0
    changes_detected: int = 0
    errors: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return True

    @property
    def duration(self) -> Optional[timedelta]:
        if self.started_at and self.completed_at:
            return self.completed_at - self.started_at
        return None

    def exit_code(self) -> int:
        """Return appropriate exit code based on batch status."""
        return 2 if self.failed else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "total": self.total,
            "crawled": self.crawled,
            "failed": self.failed,
            "skipped": self.skipped,
            "changes_detected": self.changes_detected,
            "errors": self.errors,
            "started_at": to_iso(self.started_at),
            "completed_at": to_iso(self.completed_at),
        }

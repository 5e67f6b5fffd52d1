"""Exception hierarchy for the compliance monitor."""

from __future__ import annotations

from typing import Optional


class ComplianceMonitorError(Exception):
    """Base class for all compliance monitor errors."""


class RuleNotFoundError(ComplianceMonitorError, LookupError):
    """Raised when a monitored rule id does not exist."""

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Rule {rule_id} not found")
        self.rule_id = rule_id


class ExternalServiceError(ComplianceMonitorError):
    """An external collaborator (scraper, LLM) failed or returned no usable data."""

    service = "external"

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ScraperError(ExternalServiceError):
    service = "scraper"


class SummarizerError(ExternalServiceError):
    service = "summarizer"


class PersistenceError(ComplianceMonitorError):
    """A database write could not be applied."""


class StaleReportError(PersistenceError):
    """Another run stored a newer report for the rule since it was read."""

    def __init__(self, rule_id: str, expected: Optional[str], actual: Optional[str]) -> None:
        super().__init__(
            f"Latest report for {rule_id} changed during crawl "
            f"(expected {expected or 'none'}, found {actual or 'none'})"
        )
        self.rule_id = rule_id
        self.expected = expected
        self.actual = actual

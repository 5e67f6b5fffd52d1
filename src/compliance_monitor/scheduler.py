"""Recrawl scheduling for monitored rules.

Each rule gets a strategy from its jurisdiction bucket (federal, state labor
department, municipal) scaled by the priority of its topic. Scheduling
decisions are pure functions of the rule's stored timestamps.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from .models import (
    PRIORITY_CRITICAL,
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    MonitoredRule,
)
from .parser_utils import ensure_utc

BUCKET_FEDERAL = "federal"
BUCKET_STATE = "state_labor_dept"
BUCKET_MUNICIPAL = "municipal"

DEFAULT_STRATEGIES: Dict[str, Dict[str, Any]] = {
    BUCKET_FEDERAL: {
        "frequency": "weekly",
        "depth": 3,
        "domains": ["dol.gov", "eeoc.gov", "nlrb.gov", "osha.gov"],
        "check_interval_minutes": 10080,
        "selectors": [".content-main", ".law-text", ".regulation", ".guidance"],
    },
    BUCKET_STATE: {
        "frequency": "bi-weekly",
        "depth": 2,
        "domains": [],
        "check_interval_minutes": 20160,
        "selectors": [".content-main", ".law-text", ".regulation", ".statute"],
    },
    BUCKET_MUNICIPAL: {
        "frequency": "monthly",
        "depth": 1,
        "domains": [],
        "check_interval_minutes": 43200,
        "selectors": [".ordinance", ".municipal-code", ".city-law"],
    },
}

DEFAULT_TOPIC_PRIORITIES: Dict[str, str] = {
    "minimum_wage": PRIORITY_CRITICAL,
    "overtime": PRIORITY_HIGH,
    "paid_sick_leave": PRIORITY_HIGH,
    "harassment_training": PRIORITY_HIGH,
    "workers_comp": PRIORITY_MEDIUM,
    "posting_requirements": PRIORITY_MEDIUM,
    "background_checks": PRIORITY_MEDIUM,
    "meal_rest_breaks": PRIORITY_MEDIUM,
    "family_leave": PRIORITY_LOW,
    "youth_employment": PRIORITY_LOW,
}

PRIORITY_SCALE: Dict[str, float] = {
    PRIORITY_CRITICAL: 0.5,
    PRIORITY_HIGH: 0.75,
    PRIORITY_MEDIUM: 1.0,
    PRIORITY_LOW: 1.5,
}

PRIORITY_ORDER: Dict[str, int] = {
    PRIORITY_CRITICAL: 4,
    PRIORITY_HIGH: 3,
    PRIORITY_MEDIUM: 2,
    PRIORITY_LOW: 1,
}

DEFAULT_DUE_LIMIT = 100


@dataclass(frozen=True)
class CrawlStrategy:
    """Recrawl policy derived from a rule's jurisdiction and topic."""

    bucket: str
    frequency: str
    depth: int
    priority: str
    base_interval_minutes: int
    check_interval_minutes: int
    jurisdiction: str
    topic_key: str
    domains: Tuple[str, ...] = field(default_factory=tuple)
    selectors: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def interval(self) -> timedelta:
        return timedelta(minutes=self.check_interval_minutes)


def _host(url: Optional[str]) -> str:
    if not url:
        return ""
    return (urlparse(url).hostname or "").lower()


class CrawlScheduler:
    """Decides when monitored rules are due for a recrawl."""

    def __init__(
        self,
        strategies: Optional[Mapping[str, Mapping[str, Any]]] = None,
        topic_priorities: Optional[Mapping[str, str]] = None,
        default_priority: str = PRIORITY_MEDIUM,
    ) -> None:
        merged = {bucket: dict(values) for bucket, values in DEFAULT_STRATEGIES.items()}
        for bucket, overrides in (strategies or {}).items():
            merged.setdefault(bucket, {}).update(overrides)
        self.strategies = merged
        self.topic_priorities = dict(DEFAULT_TOPIC_PRIORITIES)
        self.topic_priorities.update(topic_priorities or {})
        self.default_priority = default_priority

    # ------------------------------------------------------------------
    # Strategy derivation
    # ------------------------------------------------------------------
    def classify_jurisdiction(self, jurisdiction: str, source_url: Optional[str] = None) -> str:
        host = _host(source_url)
        federal_domains = self.strategies[BUCKET_FEDERAL].get("domains", [])
        if jurisdiction == "Federal" or any(
            host == domain or host.endswith("." + domain) for domain in federal_domains
        ):
            return BUCKET_FEDERAL
        if "City" in jurisdiction or "County" in jurisdiction:
            return BUCKET_MUNICIPAL
        return BUCKET_STATE

    def topic_priority(self, topic_key: str) -> str:
        return self.topic_priorities.get(topic_key, self.default_priority)

    def get_strategy(
        self,
        jurisdiction: str,
        topic_key: str,
        source_url: Optional[str] = None,
    ) -> CrawlStrategy:
        bucket = self.classify_jurisdiction(jurisdiction, source_url)
        base = self.strategies[bucket]
        priority = self.topic_priority(topic_key)
        base_minutes = int(base["check_interval_minutes"])
        scaled = int(math.floor(base_minutes * PRIORITY_SCALE.get(priority, 1.0)))

        return CrawlStrategy(
            bucket=bucket,
            frequency=base.get("frequency", ""),
            depth=int(base.get("depth", 1)),
            priority=priority,
            base_interval_minutes=base_minutes,
            check_interval_minutes=scaled,
            jurisdiction=jurisdiction,
            topic_key=topic_key,
            domains=tuple(base.get("domains", ())),
            selectors=tuple(base.get("selectors", ())),
        )

    def strategy_for(self, rule: MonitoredRule) -> CrawlStrategy:
        return self.get_strategy(rule.jurisdiction, rule.topic_key, rule.source_url)

    # ------------------------------------------------------------------
    # Due checks
    # ------------------------------------------------------------------
    def should_crawl_now(
        self,
        rule: MonitoredRule,
        now: datetime,
        strategy: Optional[CrawlStrategy] = None,
    ) -> bool:
        strategy = strategy or self.strategy_for(rule)
        return ensure_utc(now) - ensure_utc(rule.last_checked) >= strategy.interval

    def next_crawl_time(
        self,
        rule: MonitoredRule,
        strategy: Optional[CrawlStrategy] = None,
    ) -> datetime:
        strategy = strategy or self.strategy_for(rule)
        return ensure_utc(rule.last_checked) + strategy.interval

    def select_due_rules(
        self,
        rules: Iterable[MonitoredRule],
        now: datetime,
        *,
        limit: Optional[int] = None,
        priority_filter: Optional[str] = None,
        jurisdiction_filter: Optional[str] = None,
    ) -> List[MonitoredRule]:
        """Active due rules, highest priority first, then least recently checked."""
        due = [
            rule
            for rule in rules
            if rule.is_active
            and (priority_filter is None or rule.priority == priority_filter)
            and (jurisdiction_filter is None or rule.jurisdiction == jurisdiction_filter)
            and self.should_crawl_now(rule, now)
        ]
        due.sort(key=lambda rule: (-PRIORITY_ORDER.get(rule.priority, 0), ensure_utc(rule.last_checked)))
        return due[: limit or DEFAULT_DUE_LIMIT]

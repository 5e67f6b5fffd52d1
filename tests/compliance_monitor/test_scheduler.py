"""Tests for crawl strategy derivation and due-rule selection."""

from datetime import datetime, timedelta, timezone

import pytest

from src.compliance_monitor.models import MonitoredRule
from src.compliance_monitor.scheduler import CrawlScheduler

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_rule(rule_id, jurisdiction="Federal", topic_key="minimum_wage", **kwargs):
    kwargs.setdefault("created_at", T0)
    kwargs.setdefault("source_url", "https://example.gov/rule")
    return MonitoredRule(
        rule_id=rule_id,
        jurisdiction=jurisdiction,
        topic_key=topic_key,
        topic_label=topic_key.replace("_", " ").title(),
        **kwargs,
    )


@pytest.fixture
def scheduler():
    return CrawlScheduler()


def test_federal_minimum_wage_interval(scheduler):
    strategy = scheduler.get_strategy("Federal", "minimum_wage")
    assert strategy.bucket == "federal"
    assert strategy.priority == "critical"
    assert strategy.base_interval_minutes == 10080
    assert strategy.check_interval_minutes == 5040
    assert strategy.interval == timedelta(minutes=5040)


@pytest.mark.parametrize(
    "jurisdiction, topic, bucket, minutes",
    [
        ("California", "paid_sick_leave", "state_labor_dept", 15120),
        ("Texas", "workers_comp", "state_labor_dept", 20160),
        ("San Francisco City", "family_leave", "municipal", 64800),
        ("Cook County", "overtime", "municipal", 32400),
        ("Federal", "unknown_topic", "federal", 10080),
    ],
)
def test_strategy_buckets_and_priority_scaling(scheduler, jurisdiction, topic, bucket, minutes):
    strategy = scheduler.get_strategy(jurisdiction, topic)
    assert strategy.bucket == bucket
    assert strategy.check_interval_minutes == minutes


def test_federal_domain_source_is_federal(scheduler):
    assert scheduler.classify_jurisdiction("Oregon", "https://www.dol.gov/agencies/whd") == "federal"
    assert scheduler.classify_jurisdiction("Oregon", "https://www.oregon.gov/boli") == "state_labor_dept"


def test_scaled_interval_is_floored():
    scheduler = CrawlScheduler(strategies={"federal": {"check_interval_minutes": 10081}})
    assert scheduler.get_strategy("Federal", "minimum_wage").check_interval_minutes == 5040
    assert scheduler.get_strategy("Federal", "overtime").check_interval_minutes == 7560


def test_topic_priority_overrides():
    scheduler = CrawlScheduler(topic_priorities={"workers_comp": "critical"})
    assert scheduler.get_strategy("Texas", "workers_comp").check_interval_minutes == 10080


def test_due_check_boundary(scheduler):
    """Exactly one interval after the reference instant the rule becomes due."""
    rule = make_rule("federal_min_wage")
    interval = timedelta(minutes=5040)

    assert scheduler.should_crawl_now(rule, T0 + interval - timedelta(milliseconds=1)) is False
    assert scheduler.should_crawl_now(rule, T0 + interval) is True
    assert scheduler.next_crawl_time(rule) == T0 + interval


def test_last_significant_change_is_the_reference(scheduler):
    changed = T0 + timedelta(days=10)
    rule = make_rule("federal_min_wage", last_significant_change=changed)

    assert scheduler.should_crawl_now(rule, T0 + timedelta(days=12)) is False
    assert scheduler.next_crawl_time(rule) == changed + timedelta(minutes=5040)


def test_select_due_rules_orders_by_priority_then_age(scheduler):
    now = T0 + timedelta(days=30)
    rules = [
        make_rule("tx_comp", "Texas", "workers_comp", priority="medium", created_at=T0 - timedelta(days=5)),
        make_rule("ca_ot", "California", "overtime", priority="high"),
        make_rule("ca_ot_old", "California", "overtime", priority="high", created_at=T0 - timedelta(days=1)),
        make_rule("fed_mw", priority="critical"),
        make_rule("paused", priority="critical", monitoring_status="paused"),
        make_rule("not_due", "Cook County", "family_leave", priority="low"),
    ]

    due = scheduler.select_due_rules(rules, now)

    assert [rule.rule_id for rule in due] == ["fed_mw", "ca_ot_old", "ca_ot", "tx_comp"]


def test_select_due_rules_filters_and_limit(scheduler):
    now = T0 + timedelta(days=30)
    rules = [
        make_rule("fed_mw", priority="critical"),
        make_rule("ca_ot", "California", "overtime", priority="high"),
        make_rule("tx_comp", "Texas", "workers_comp", priority="medium"),
    ]

    assert [r.rule_id for r in scheduler.select_due_rules(rules, now, priority_filter="high")] == ["ca_ot"]
    assert [r.rule_id for r in scheduler.select_due_rules(rules, now, jurisdiction_filter="Texas")] == [
        "tx_comp"
    ]
    assert [r.rule_id for r in scheduler.select_due_rules(rules, now, limit=2)] == ["fed_mw", "ca_ot"]

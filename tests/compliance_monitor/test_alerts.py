"""Tests for alert records and template rendering."""

from datetime import datetime, timezone

import pytest

from src.compliance_monitor.alerts import AlertRenderer, build_alert, organize_changes
from src.compliance_monitor.models import ChangeEvent, ChangeVerdict, MonitoredRule

NOW = datetime(2025, 4, 1, 8, 30, tzinfo=timezone.utc)


@pytest.fixture
def rule():
    return MonitoredRule(
        rule_id="federal_minimum_wage",
        jurisdiction="Federal",
        topic_key="minimum_wage",
        topic_label="Minimum Wage",
        source_url="https://www.dol.gov/agencies/whd/minimum-wage",
        priority="critical",
    )


@pytest.fixture
def verdict():
    return ChangeVerdict(
        has_significant_changes=True,
        severity="critical",
        change_type="content_update",
        confidence=0.9,
        changes=[
            ChangeEvent(section="overview", kind="modified", description="overview section modified"),
            ChangeEvent(section="penalties", kind="added", description="New penalties section added"),
        ],
    )


def test_build_alert(rule, verdict):
    alert = build_alert(rule, verdict, NOW)

    assert alert.change_id == f"federal_minimum_wage_{int(NOW.timestamp() * 1000)}"
    assert alert.change_type == "amendment"
    assert alert.severity == "critical"
    assert alert.affected_sections == ["overview", "penalties"]
    assert alert.change_description == "Changes detected in: overview, penalties"
    assert alert.ai_confidence == 0.9
    assert alert.human_verified is False
    assert alert.notifications_sent == []


def test_build_alert_defaults_missing_confidence(rule, verdict):
    verdict.confidence = None
    assert build_alert(rule, verdict, NOW).ai_confidence == 0.8


def test_build_alert_keeps_zero_confidence(rule, verdict):
    verdict.confidence = 0.0
    assert build_alert(rule, verdict, NOW).ai_confidence == 0.0


def test_render_immediate_alert(rule, verdict):
    alert = build_alert(rule, verdict, NOW)
    rendered = AlertRenderer().render_immediate_alert(rule, alert)

    assert rendered.subject == "[CRITICAL] Federal Minimum Wage compliance change"
    assert "Changes detected in: overview, penalties" in rendered.text
    assert "2025-04-01 08:30:00 UTC" in rendered.text
    assert "  - penalties" in rendered.text
    assert "<li>overview</li>" in rendered.html
    assert rule.source_url in rendered.html


def test_render_placeholder(rule):
    markdown = AlertRenderer().render_placeholder(rule, False, NOW)

    assert markdown.startswith("# Federal - Minimum Wage")
    assert "**Status:** No changes detected" in markdown
    assert "content could not be extracted" in markdown
    assert "**Rule ID:** federal_minimum_wage" in markdown
    assert "**Priority:** critical" in markdown


def test_custom_template_dir(tmp_path, rule):
    (tmp_path / "placeholder.md").write_text("Placeholder for {{ rule.rule_id }}", encoding="utf-8")
    renderer = AlertRenderer(template_dir=tmp_path)
    assert renderer.render_placeholder(rule, True, NOW) == "Placeholder for federal_minimum_wage"


def make_change_row(change_id, severity, jurisdiction, topic_label, detected_at=NOW):
    return {
        "change_id": change_id,
        "rule_id": change_id,
        "change_type": "amendment",
        "severity": severity,
        "detected_at": detected_at.isoformat(),
        "affected_sections": ["overview"],
        "change_description": f"{topic_label} updated",
        "jurisdiction": jurisdiction,
        "topic_label": topic_label,
        "source_url": "https://example.gov/rule",
    }


def test_organize_changes_groups_by_severity_then_jurisdiction():
    rows = [
        make_change_row("tx_1", "low", "Texas", "Overtime"),
        make_change_row("ca_1", "critical", "California", "Minimum Wage"),
        make_change_row("wa_1", "critical", "Washington", "Paid Sick Leave"),
        make_change_row("az_1", "critical", "Arizona", "Heat Safety"),
        make_change_row("ca_1", "critical", "California", "Minimum Wage"),
    ]

    sections = organize_changes(rows)

    assert list(sections) == ["critical", "low"]
    critical = sections["critical"]
    assert critical["display_name"] == "Critical"
    assert critical["count"] == 3
    assert list(critical["changes_by_jurisdiction"]) == ["Arizona", "California", "Washington"]
    assert critical["changes_by_jurisdiction"]["California"][0]["detected_at"] == "2025-04-01 08:30:00 UTC"


def test_render_digest():
    rows = [
        make_change_row("ca_1", "critical", "California", "Minimum Wage"),
        make_change_row("wa_1", "medium", "Washington", "Paid Sick Leave"),
    ]
    rendered = AlertRenderer().render_digest(rows, NOW, period_days=7)

    assert rendered.subject == "Compliance change digest: 2 changes in the last 7 days"
    assert rendered.text.index("CRITICAL (1)") < rendered.text.index("MEDIUM (1)")
    assert "Minimum Wage: Minimum Wage updated" in rendered.text
    assert "Period: last 7 days" in rendered.text
    assert '<h2 class="critical">Critical (1)</h2>' in rendered.html
    assert "<h3>Washington</h3>" in rendered.html
    assert "No significant compliance changes" not in rendered.text


def test_render_digest_without_changes():
    rendered = AlertRenderer().render_digest([], NOW)

    assert rendered.subject == "Compliance change digest: no significant changes"
    assert "No significant compliance changes detected in the specified period." in rendered.text
    assert "All monitored compliance rules remain stable." in rendered.text
    assert "All monitored compliance rules remain stable." in rendered.html
    assert "Period: last 30 days" in rendered.text

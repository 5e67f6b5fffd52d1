"""Alert records, change digests and Jinja2 rendering for compliance changes.

Rendering stays independent of delivery: the crawler enqueues an
``immediate_alert`` job carrying the rendered subject and bodies, and an
external worker sends it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .changes import describe_changes, map_change_type
from .models import PRIORITIES, ChangeVerdict, ComplianceAlert, MonitoredRule
from .parser_utils import ensure_utc, parse_timestamp, to_epoch_ms

DEFAULT_AI_CONFIDENCE = 0.8

SEVERITY_DISPLAY_NAMES = {
    "critical": "Critical",
    "high": "High",
    "medium": "Medium",
    "low": "Low",
}


def build_alert(rule: MonitoredRule, verdict: ChangeVerdict, now: datetime) -> ComplianceAlert:
    return ComplianceAlert(
        change_id=f"{rule.rule_id}_{to_epoch_ms(now)}",
        rule_id=rule.rule_id,
        change_type=map_change_type(verdict.change_type),
        severity=verdict.severity,
        detected_at=now,
        affected_sections=[change.section for change in verdict.changes],
        change_description=describe_changes(verdict.changes),
        ai_confidence=DEFAULT_AI_CONFIDENCE if verdict.confidence is None else verdict.confidence,
    )


def organize_changes(changes: Sequence[Mapping[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Group change rows by severity, then jurisdiction.

    Severities follow critical, high, medium, low; anything else is appended
    alphabetically. Rows sharing a ``change_id`` are counted once.
    """
    grouped: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}
    seen: set = set()

    for change in changes:
        change_id = change.get("change_id")
        if change_id in seen:
            continue
        seen.add(change_id)

        severity = change.get("severity") or "unknown"
        jurisdiction = change.get("jurisdiction") or "Unknown"
        grouped.setdefault(severity, {}).setdefault(jurisdiction, []).append(_format_change(change))

    order = [severity for severity in PRIORITIES if severity in grouped]
    order += sorted(severity for severity in grouped if severity not in PRIORITIES)

    result: Dict[str, Dict[str, Any]] = {}
    for severity in order:
        by_jurisdiction = grouped[severity]
        result[severity] = {
            "display_name": SEVERITY_DISPLAY_NAMES.get(severity, severity.title()),
            "count": sum(len(items) for items in by_jurisdiction.values()),
            "changes_by_jurisdiction": {name: by_jurisdiction[name] for name in sorted(by_jurisdiction)},
        }
    return result


def _format_change(change: Mapping[str, Any]) -> Dict[str, Any]:
    detected_at = parse_timestamp(change.get("detected_at"))
    return {
        "change_id": change.get("change_id"),
        "rule_id": change.get("rule_id"),
        "topic_label": change.get("topic_label") or change.get("topic_key") or "",
        "change_type": change.get("change_type"),
        "description": change.get("change_description") or "",
        "affected_sections": list(change.get("affected_sections") or []),
        "detected_at": _display_time(detected_at) if detected_at else "",
        "source_url": change.get("source_url") or "",
    }


@dataclass
class RenderedAlert:
    subject: str
    text: str
    html: str

    def to_dict(self) -> Dict[str, Any]:
        return {"subject": self.subject, "text": self.text, "html": self.html}


def _display_time(value: datetime) -> str:
    return ensure_utc(value).strftime("%Y-%m-%d %H:%M:%S UTC")


class AlertRenderer:
    """Renders alert emails, change digests and change-log placeholders from templates."""

    SUBJECT_FORMAT = "[{severity}] {jurisdiction} {topic_label} compliance change"
    DIGEST_SUBJECT_FORMAT = "Compliance change digest: {count} {noun} in the last {days} days"
    DIGEST_EMPTY_SUBJECT = "Compliance change digest: no significant changes"

    def __init__(self, template_dir: Optional[Union[str, Path]] = None) -> None:
        if template_dir is None:
            project_root = Path(__file__).parent.parent.parent
            template_dir = project_root / "templates" / "compliance"
        else:
            template_dir = Path(template_dir)

        self.template_dir = template_dir
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def render_immediate_alert(self, rule: MonitoredRule, alert: ComplianceAlert) -> RenderedAlert:
        subject = self.SUBJECT_FORMAT.format(
            severity=alert.severity.upper(),
            jurisdiction=rule.jurisdiction,
            topic_label=rule.topic_label,
        )
        context = {
            "rule": rule,
            "alert": alert,
            "subject": subject,
            "detected_at": _display_time(alert.detected_at),
        }
        return RenderedAlert(
            subject=subject,
            text=self.jinja_env.get_template("alert.txt").render(**context),
            html=self.jinja_env.get_template("alert.html").render(**context),
        )

    def render_placeholder(self, rule: MonitoredRule, changes_detected: bool, checked_at: datetime) -> str:
        """Markdown stand-in for the change log when no content was extracted."""
        template = self.jinja_env.get_template("placeholder.md")
        return template.render(
            rule=rule,
            changes_detected=changes_detected,
            checked_at=_display_time(checked_at),
        )

    def render_digest(
        self,
        changes: Sequence[Mapping[str, Any]],
        generated_at: datetime,
        period_days: int = 30,
    ) -> RenderedAlert:
        """Render a severity-grouped summary of recent changes.

        ``changes`` are rows as returned by ``get_recent_changes``.
        """
        sections = organize_changes(changes)
        change_count = sum(section["count"] for section in sections.values())
        if change_count:
            noun = "change" if change_count == 1 else "changes"
            subject = self.DIGEST_SUBJECT_FORMAT.format(count=change_count, noun=noun, days=period_days)
        else:
            subject = self.DIGEST_EMPTY_SUBJECT
        context = {
            "subject": subject,
            "sections": sections,
            "change_count": change_count,
            "period_days": period_days,
            "generated_at": _display_time(generated_at),
        }
        return RenderedAlert(
            subject=subject,
            text=self.jinja_env.get_template("digest.txt").render(**context),
            html=self.jinja_env.get_template("digest.html").render(**context),
        )

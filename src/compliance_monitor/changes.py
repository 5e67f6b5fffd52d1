"""Change detection and classification between consecutive reports.

The comparator is a shallow per-section exact string diff. The classifier
turns its events into a verdict; deeper scoring can be plugged in through
``ai_scorer``, which is the only way a verdict reaches ``critical``.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

from .logging_config import get_logger
from .models import (
    CHANGE_ADDED,
    CHANGE_MODIFIED,
    CHANGE_REMOVED,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    SEVERITIES,
    SEVERITY_NONE,
    ChangeEvent,
    ChangeVerdict,
    ComplianceReport,
    ParsedContent,
)

logger = get_logger("changes")

DEFAULT_SNIPPET_CHARS = 200

CHANGE_TYPE_NEW_CONTENT = "new_content"
CHANGE_TYPE_NO_CHANGE = "no_change"
CHANGE_TYPE_CONTENT_UPDATE = "content_update"

DEFAULT_ALERT_CHANGE_TYPE = "procedural_change"

CHANGE_TYPE_MAPPING: Dict[str, str] = {
    CHANGE_TYPE_CONTENT_UPDATE: "amendment",
    CHANGE_TYPE_NEW_CONTENT: "new_law",
    "penalty_change": "penalty_change",
    "deadline_update": "deadline_change",
    "coverage_update": "coverage_change",
}

AIScorer = Callable[[List[ChangeEvent], ParsedContent, ComplianceReport], Optional[Mapping[str, Any]]]


def compare_sections(
    current: Mapping[str, Optional[str]],
    previous: Mapping[str, Optional[str]],
    *,
    snippet_chars: int = DEFAULT_SNIPPET_CHARS,
) -> List[ChangeEvent]:
    """Diff two section mappings.

    Keys of ``current`` are visited first in their order, followed by keys
    only present in ``previous``. Empty values count as absent.
    """
    keys = list(current)
    keys.extend(key for key in previous if key not in current)

    events: List[ChangeEvent] = []
    for key in keys:
        new_content = current.get(key) or None
        old_content = previous.get(key) or None

        if old_content is None and new_content is None:
            continue
        if old_content is None:
            events.append(
                ChangeEvent(section=key, kind=CHANGE_ADDED, description=f"New {key} section added")
            )
        elif new_content is None:
            events.append(
                ChangeEvent(section=key, kind=CHANGE_REMOVED, description=f"{key} section removed")
            )
        elif old_content != new_content:
            events.append(
                ChangeEvent(
                    section=key,
                    kind=CHANGE_MODIFIED,
                    description=f"{key} section modified",
                    old_content=old_content[:snippet_chars],
                    new_content=new_content[:snippet_chars],
                )
            )
    return events


def map_change_type(change_type: Optional[str]) -> str:
    """Map an internal change type onto the alert vocabulary."""
    if not change_type:
        return DEFAULT_ALERT_CHANGE_TYPE
    return CHANGE_TYPE_MAPPING.get(change_type, DEFAULT_ALERT_CHANGE_TYPE)


def describe_changes(changes: List[ChangeEvent]) -> str:
    if not changes:
        return "No significant changes detected"
    sections = [change.section for change in changes if change.section and change.section != "undefined"]
    if not sections:
        return "Content changes detected"
    return f"Changes detected in: {', '.join(sections)}"


class ChangeClassifier:
    """Assigns severity and change type to a crawl's diff."""

    NEW_CONTENT_CONFIDENCE = 1.0
    NO_CHANGE_CONFIDENCE = 1.0
    CONTENT_UPDATE_CONFIDENCE = 0.8

    def __init__(
        self,
        ai_scorer: Optional[AIScorer] = None,
        *,
        snippet_chars: int = DEFAULT_SNIPPET_CHARS,
    ) -> None:
        self.ai_scorer = ai_scorer
        self.snippet_chars = snippet_chars

    def classify(
        self,
        parsed: ParsedContent,
        previous: Optional[ComplianceReport],
    ) -> ChangeVerdict:
        if previous is None:
            return ChangeVerdict(
                has_significant_changes=True,
                severity=PRIORITY_MEDIUM,
                change_type=CHANGE_TYPE_NEW_CONTENT,
                confidence=self.NEW_CONTENT_CONFIDENCE,
                changes=compare_sections(parsed.sections, {}, snippet_chars=self.snippet_chars),
                impact_areas=list(parsed.sections),
            )

        if parsed.content_hash == previous.content_hash:
            return ChangeVerdict(
                has_significant_changes=False,
                severity=SEVERITY_NONE,
                change_type=CHANGE_TYPE_NO_CHANGE,
                confidence=self.NO_CHANGE_CONFIDENCE,
            )

        changes = compare_sections(
            parsed.sections,
            previous.extracted_sections,
            snippet_chars=self.snippet_chars,
        )
        if not changes:
            return ChangeVerdict(
                has_significant_changes=False,
                severity=PRIORITY_LOW,
                change_type=CHANGE_TYPE_NO_CHANGE,
                confidence=self.CONTENT_UPDATE_CONFIDENCE,
            )

        verdict = ChangeVerdict(
            has_significant_changes=True,
            severity=PRIORITY_MEDIUM,
            change_type=CHANGE_TYPE_CONTENT_UPDATE,
            confidence=self.CONTENT_UPDATE_CONFIDENCE,
            changes=changes,
            impact_areas=[change.section for change in changes],
        )
        if self.ai_scorer is not None:
            self._apply_ai_score(verdict, parsed, previous)
        return verdict

    def _apply_ai_score(
        self,
        verdict: ChangeVerdict,
        parsed: ParsedContent,
        previous: ComplianceReport,
    ) -> None:
        try:
            score = self.ai_scorer(verdict.changes, parsed, previous)
        except Exception as exc:
            logger.warning(f"AI change scoring failed, keeping heuristic verdict: {exc}")
            return
        if not score:
            return

        severity = score.get("severity")
        if severity in SEVERITIES and severity != SEVERITY_NONE:
            verdict.severity = severity
        change_type = score.get("change_type")
        if isinstance(change_type, str) and change_type:
            verdict.change_type = change_type
        confidence = score.get("confidence")
        if isinstance(confidence, (int, float)) and 0.0 <= confidence <= 1.0:
            verdict.confidence = float(confidence)
        impact_areas = score.get("impact_areas")
        if impact_areas:
            verdict.impact_areas = [str(area) for area in impact_areas]

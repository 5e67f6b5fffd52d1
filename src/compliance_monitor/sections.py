"""Template section extraction for crawled compliance content.

Splits raw text into the sections of the fixed legal template using
whole-line header matching. A header only counts when the entire trimmed
line equals a known section name; the same words inside body text never
open or close a section.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_MARKDOWN_HEADING = re.compile(r"^#{1,6}\s+")


def slugify(name: str) -> str:
    """Lowercase a header and collapse non-alphanumeric runs to underscores."""
    return _NON_ALNUM.sub("_", name.lower()).strip("_")


@dataclass(frozen=True)
class TemplateSection:
    """A named subdivision of the compliance template."""

    title: str
    key: str
    aliases: Tuple[str, ...] = ()

    @property
    def headers(self) -> Tuple[str, ...]:
        return (self.title,) + self.aliases


TEMPLATE_SECTIONS: Tuple[TemplateSection, ...] = (
    TemplateSection("Overview", "overview"),
    TemplateSection("Covered Employers", "covered_employers"),
    TemplateSection("Covered Employees", "covered_employees"),
    TemplateSection("What Should Employers Do?", "employer_responsibilities"),
    TemplateSection("Training Requirements", "training_requirements"),
    TemplateSection("Training Deadlines", "training_deadlines"),
    TemplateSection("Qualified Trainers", "qualified_trainers"),
    TemplateSection("Special Requirements", "special_requirements"),
    TemplateSection("Coverage Election", "coverage_election"),
    TemplateSection("Reciprocity/Extraterritorial Coverage", "reciprocity", ("Reciprocity",)),
    TemplateSection("Employer Responsibilities & Deadlines", "employer_deadlines"),
    TemplateSection(
        "Employer Notification Requirements",
        "notification_requirements",
        ("Notification Requirements",),
    ),
    TemplateSection("Posting Requirements", "posting_requirements"),
    TemplateSection("Recordkeeping Requirements", "recordkeeping_requirements"),
    TemplateSection("Penalties for Non-Compliance", "penalties", ("Penalties",)),
    TemplateSection("Sources", "sources"),
)

SECTION_KEYS: Tuple[str, ...] = tuple(section.key for section in TEMPLATE_SECTIONS)

SectionSpec = Union[str, TemplateSection]


def _normalise_specs(sections: Iterable[SectionSpec]) -> List[TemplateSection]:
    specs: List[TemplateSection] = []
    for section in sections:
        if isinstance(section, TemplateSection):
            specs.append(section)
        else:
            specs.append(TemplateSection(section, slugify(section)))
    return specs


def _header_line(line: str) -> str:
    return _MARKDOWN_HEADING.sub("", line.strip()).strip()


def extract_sections(
    text: Optional[str],
    sections: Sequence[SectionSpec] = TEMPLATE_SECTIONS,
) -> Dict[str, str]:
    """Map section keys to trimmed section bodies.

    Only the first occurrence of a header opens its section. A repeated
    header while that section is still open is skipped and the body keeps
    accumulating; a header seen again after its section closed is ignored
    (it still closes whatever section is open).
    """
    if not text:
        return {}

    header_map: Dict[str, str] = {}
    order: List[str] = []
    for spec in _normalise_specs(sections):
        if spec.key not in order:
            order.append(spec.key)
        for header in spec.headers:
            header_map.setdefault(header, spec.key)

    bodies: Dict[str, List[str]] = {}
    current: Optional[str] = None

    for line in text.splitlines():
        key = header_map.get(_header_line(line))
        if key is not None:
            if key == current:
                continue
            current = None if key in bodies else key
            if current is not None:
                bodies[current] = []
            continue
        if current is not None:
            bodies[current].append(line)

    extracted: Dict[str, str] = {}
    for key in order:
        if key not in bodies:
            continue
        body = "\n".join(bodies[key]).strip()
        if body:
            extracted[key] = body
    return extracted

"""Tests for template section extraction."""

from src.compliance_monitor.sections import (
    SECTION_KEYS,
    TEMPLATE_SECTIONS,
    TemplateSection,
    extract_sections,
    slugify,
)


def test_template_has_sixteen_ordered_sections():
    """The template vocabulary is fixed and ordered."""
    assert len(TEMPLATE_SECTIONS) == 16
    assert SECTION_KEYS[0] == "overview"
    assert SECTION_KEYS[-1] == "sources"
    assert len(set(SECTION_KEYS)) == 16


def test_extract_sections_basic_example():
    """Whole-line headers open sections and bodies are trimmed."""
    text = "Overview\nFoo bar.\n\nPenalties\n$500 fine.\n"
    assert extract_sections(text) == {"overview": "Foo bar.", "penalties": "$500 fine."}


def test_full_template_title_and_alias_map_to_same_key():
    """Short aliases and full titles resolve to the same section key."""
    full = extract_sections("Penalties for Non-Compliance\nUp to $1,000.")
    short = extract_sections("Penalties\nUp to $1,000.")
    assert full == short == {"penalties": "Up to $1,000."}


def test_header_words_inside_body_do_not_open_sections():
    """A header name inside a longer line is plain body text."""
    text = "Overview\nThe Penalties section below explains fines.\nSee Sources for details."
    assert extract_sections(text) == {
        "overview": "The Penalties section below explains fines.\nSee Sources for details."
    }


def test_markdown_heading_markers_are_ignored():
    """Scraped markdown headings still match template headers."""
    text = "# Overview\nIntro text\n## Covered Employers\nAll employers with 5 or more employees."
    sections = extract_sections(text)
    assert sections["overview"] == "Intro text"
    assert sections["covered_employers"] == "All employers with 5 or more employees."


def test_sections_follow_template_order():
    """Output order follows the template, not the document."""
    text = "Sources\nhttps://dol.gov\nOverview\nSummary"
    assert list(extract_sections(text)) == ["overview", "sources"]


def test_empty_sections_are_omitted():
    """Headers with blank bodies produce no key."""
    text = "Overview\n\n   \nSources\nhttps://example.gov"
    assert extract_sections(text) == {"sources": "https://example.gov"}


def test_repeated_header_while_open_keeps_accumulating():
    """A duplicate header inside its own section is skipped."""
    text = "Overview\nFirst part.\nOverview\nSecond part."
    assert extract_sections(text) == {"overview": "First part.\nSecond part."}


def test_header_after_section_closed_is_not_reopened():
    """A header seen again later closes the current section but does not reopen."""
    text = "Overview\nOriginal.\nSources\nLink.\nOverview\nLate addition."
    assert extract_sections(text) == {"overview": "Original.", "sources": "Link."}


def test_plain_string_section_names():
    """Callers may pass header strings instead of template entries."""
    text = "Intro\nhello\nOther Stuff\nworld"
    assert extract_sections(text, ["Intro", "Other Stuff"]) == {"intro": "hello", "other_stuff": "world"}


def test_custom_template_section():
    sections = [TemplateSection("Wage Table", "wages", ("Wages",))]
    assert extract_sections("Wages\n$16.50", sections) == {"wages": "$16.50"}


def test_empty_input_returns_empty_mapping():
    assert extract_sections(None) == {}
    assert extract_sections("") == {}
    assert extract_sections("no headers at all") == {}


def test_slugify():
    assert slugify("What Should Employers Do?") == "what_should_employers_do"
    assert slugify("Employer Responsibilities & Deadlines") == "employer_responsibilities_deadlines"
    assert slugify("  --Overview--  ") == "overview"


def test_template_keys_that_differ_from_slugified_titles():
    """Five template keys are short names; the rest are slugified titles."""
    renamed = {
        section.title: section.key for section in TEMPLATE_SECTIONS if section.key != slugify(section.title)
    }
    assert renamed == {
        "What Should Employers Do?": "employer_responsibilities",
        "Reciprocity/Extraterritorial Coverage": "reciprocity",
        "Employer Responsibilities & Deadlines": "employer_deadlines",
        "Employer Notification Requirements": "notification_requirements",
        "Penalties for Non-Compliance": "penalties",
    }


def test_plain_header_strings_use_slugified_keys():
    text = "Penalties for Non-Compliance\nUp to $1,000."
    assert extract_sections(text, ["Penalties for Non-Compliance"]) == {
        "penalties_for_non_compliance": "Up to $1,000."
    }

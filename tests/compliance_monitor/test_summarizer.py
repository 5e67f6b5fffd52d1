"""Tests for the Gemini summarizer client."""

import json

import httpx
import pytest

from src.compliance_monitor.config import ServiceSettings
from src.compliance_monitor.errors import SummarizerError
from src.compliance_monitor.summarizer import (
    NOT_SPECIFIED,
    GeminiSummarizer,
    build_prompt,
    build_summarizer,
    parse_summary,
)


class FakeHTTPClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def post_async(self, url, *, json=None, headers=None, params=None):
        self.calls.append({"url": url, "json": json, "params": params})
        if self.error:
            raise self.error
        return self.response


def gemini_response(body):
    request = httpx.Request("POST", "https://generativelanguage.googleapis.com")
    return httpx.Response(200, json=body, request=request)


@pytest.mark.asyncio
async def test_summarize_posts_prompt_and_returns_text():
    client = FakeHTTPClient(
        gemini_response({"candidates": [{"content": {"parts": [{"text": '{"overview": "Summary"}'}]}}]})
    )
    summarizer = GeminiSummarizer("gm-key", model="gemini-test", http_client=client)

    text = await summarizer.summarize("Overview\nBody", "https://dol.gov", "Federal", "minimum_wage")

    assert text == '{"overview": "Summary"}'
    call = client.calls[0]
    assert call["url"].endswith("/models/gemini-test:generateContent")
    assert call["params"] == {"key": "gm-key"}
    assert call["json"]["generationConfig"]["temperature"] == 0.1
    prompt = call["json"]["contents"][0]["parts"][0]["text"]
    assert "Overview\nBody" in prompt
    assert "JURISDICTION: Federal" in prompt


@pytest.mark.asyncio
async def test_summarize_without_candidates_raises():
    client = FakeHTTPClient(gemini_response({"candidates": []}))
    with pytest.raises(SummarizerError):
        await GeminiSummarizer("gm-key", http_client=client).summarize("x", "u", "Federal", "overtime")


@pytest.mark.asyncio
async def test_summarize_wraps_transport_errors():
    client = FakeHTTPClient(error=httpx.ReadTimeout("timed out"))
    with pytest.raises(SummarizerError):
        await GeminiSummarizer("gm-key", http_client=client).summarize("x", "u", "Federal", "overtime")


def test_prompt_truncates_content_and_lists_template():
    prompt = build_prompt("z" * 20000, "https://dol.gov", "Federal", "overtime")
    assert "z" * 10000 in prompt
    assert "z" * 10001 not in prompt
    assert "1. OVERVIEW" in prompt
    assert "16. SOURCES" in prompt


def test_parse_summary_reads_embedded_json():
    text = "Here you go:\n" + json.dumps({"overview": "Federal minimum wage", "penalties": "$1,000"})
    summary = parse_summary(text)
    assert summary["overview"] == "Federal minimum wage"
    assert summary["penalties"] == "$1,000"
    assert summary["sources"] == NOT_SPECIFIED


def test_parse_summary_falls_back_to_overview():
    summary = parse_summary("The model answered in prose.")
    assert summary["overview"] == "The model answered in prose."
    assert summary["covered_employers"] == NOT_SPECIFIED


def test_build_summarizer_requires_key():
    assert build_summarizer(ServiceSettings()) is None
    assert isinstance(build_summarizer(ServiceSettings(gemini_api_key="gm-key")), GeminiSummarizer)

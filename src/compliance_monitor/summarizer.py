"""LLM summarization of crawled compliance content via the Gemini REST API."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

import httpx

from .config import ServiceSettings
from .errors import SummarizerError
from .http_client import HTTPClient
from .logging_config import get_logger
from .sections import TEMPLATE_SECTIONS

logger = get_logger("summarizer")

MAX_PROMPT_CONTENT_CHARS = 10000
NOT_SPECIFIED = "Not specified in available documentation"

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def build_prompt(content: str, source_url: str, jurisdiction: str, topic_key: str) -> str:
    """Template-structured extraction prompt for one crawled page."""
    numbered = "\n".join(
        f"{index}. {section.title.upper()}" for index, section in enumerate(TEMPLATE_SECTIONS, start=1)
    )
    keys = ", ".join(f'"{section.key}"' for section in TEMPLATE_SECTIONS)
    return (
        "Analyze this compliance content and extract information according to the "
        "compliance template structure.\n\n"
        f"JURISDICTION: {jurisdiction}\n"
        f"TOPIC: {topic_key}\n"
        f"SOURCE: {source_url}\n\n"
        "CONTENT TO ANALYZE:\n"
        f"{content[:MAX_PROMPT_CONTENT_CHARS]}\n\n"
        "EXTRACTION TEMPLATE:\n"
        "Please extract and structure the following sections based on the content above:\n\n"
        f"{numbered}\n\n"
        f"Respond with a single JSON object using the keys {keys}. "
        f'Use "{NOT_SPECIFIED}" for sections the content does not cover.'
    )


def parse_summary(text: str) -> Dict[str, str]:
    """Read the JSON object out of a model response.

    Falls back to an overview-only mapping when the response holds no JSON.
    """
    match = _JSON_OBJECT.search(text or "")
    if match:
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            return {section.key: str(data.get(section.key) or NOT_SPECIFIED) for section in TEMPLATE_SECTIONS}

    logger.warning("Summary response contained no JSON object, keeping raw text as overview")
    fallback = {section.key: NOT_SPECIFIED for section in TEMPLATE_SECTIONS}
    fallback["overview"] = (text or "")[:500]
    return fallback


class GeminiSummarizer:
    """Calls ``models/{model}:generateContent`` and returns the response text."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        http_client: Optional[HTTPClient] = None,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        temperature: float = 0.1,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.http_client = http_client or HTTPClient()
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": self.temperature},
        }

    async def summarize(self, content: str, source_url: str, jurisdiction: str, topic_key: str) -> str:
        prompt = build_prompt(content, source_url, jurisdiction, topic_key)
        url = f"{self.base_url}/models/{self.model}:generateContent"
        try:
            response = await self.http_client.post_async(
                url,
                json=self.build_payload(prompt),
                params={"key": self.api_key},
            )
        except httpx.HTTPStatusError as exc:
            raise SummarizerError(
                f"Gemini returned {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise SummarizerError(f"Gemini request failed: {exc}") from exc

        try:
            body = response.json()
            return body["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise SummarizerError("Gemini response had no candidate text") from exc


def build_summarizer(settings: ServiceSettings) -> Optional[GeminiSummarizer]:
    if not settings.gemini_api_key:
        logger.info("GEMINI_API_KEY not set, AI summarization disabled")
        return None
    return GeminiSummarizer(
        settings.gemini_api_key,
        model=settings.gemini_model,
        http_client=HTTPClient(settings.http_config("summarizer")),
        base_url=settings.gemini_base_url,
    )

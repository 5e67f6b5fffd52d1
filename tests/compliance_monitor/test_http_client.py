"""Tests for the HTTP client utilities."""

import httpx
import pytest

from src.compliance_monitor.http_client import HTTPClient
from src.compliance_monitor.models import HttpClientConfig


def make_dummy_client(responses, calls):
    class DummyAsyncClient:
        def __init__(self, *args, **kwargs):
            self._attempt = 0

        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

        async def request(self, method, url, **kwargs):
            calls.append((method, url, kwargs))
            status = responses[min(self._attempt, len(responses) - 1)]
            self._attempt += 1
            request = httpx.Request(method, url)
            response = httpx.Response(status, request=request, text="ok" if status == 200 else "error")
            if status >= 400:
                raise httpx.HTTPStatusError("error", request=request, response=response)
            return response

    return DummyAsyncClient


@pytest.mark.asyncio
async def test_http_client_retries_on_server_error(monkeypatch):
    """HTTP client should retry on retryable server errors when configured."""
    calls = []
    delays = []

    async def record_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(
        "src.compliance_monitor.http_client.httpx.AsyncClient",
        make_dummy_client([500, 503, 200], calls),
    )
    monkeypatch.setattr("src.compliance_monitor.http_client.asyncio.sleep", record_sleep)

    client = HTTPClient(HttpClientConfig(name="test", max_retries=2, retry_base_delay=0.5))
    response = await client.get_async("https://example.gov")

    assert response.status_code == 200
    assert len(calls) == 3
    assert delays == [0.5, 1.0]
    assert client.stats.http_requests == 3
    assert client.stats.retry_attempts == 2


@pytest.mark.asyncio
async def test_http_client_does_not_retry_by_default(monkeypatch):
    """Without configured retries a server error propagates after one attempt."""
    calls = []
    monkeypatch.setattr(
        "src.compliance_monitor.http_client.httpx.AsyncClient",
        make_dummy_client([500, 200], calls),
    )

    client = HTTPClient()
    with pytest.raises(httpx.HTTPStatusError):
        await client.get_async("https://example.gov")

    assert len(calls) == 1
    assert client.stats.retry_attempts == 0


@pytest.mark.asyncio
async def test_http_client_does_not_retry_client_errors(monkeypatch):
    calls = []
    monkeypatch.setattr(
        "src.compliance_monitor.http_client.httpx.AsyncClient",
        make_dummy_client([404, 200], calls),
    )

    client = HTTPClient(HttpClientConfig(max_retries=3))
    with pytest.raises(httpx.HTTPStatusError):
        await client.get_async("https://example.gov/missing")

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_post_async_sends_json_and_merged_headers(monkeypatch):
    calls = []
    monkeypatch.setattr(
        "src.compliance_monitor.http_client.httpx.AsyncClient",
        make_dummy_client([200], calls),
    )

    client = HTTPClient(HttpClientConfig(headers={"X-Team": "compliance"}))
    await client.post_async(
        "https://api.example.com/scrape",
        json={"url": "https://example.gov"},
        headers={"Authorization": "Bearer token"},
    )

    method, url, kwargs = calls[0]
    assert method == "POST"
    assert kwargs["json"] == {"url": "https://example.gov"}
    assert kwargs["headers"]["Authorization"] == "Bearer token"
    assert kwargs["headers"]["X-Team"] == "compliance"
    assert "User-Agent" in kwargs["headers"]


def test_retry_delay_is_capped():
    client = HTTPClient(HttpClientConfig(retry_base_delay=10, retry_exponential_base=3, retry_max_delay=30))
    assert client._calculate_retry_delay(1) == 10
    assert client._calculate_retry_delay(3) == 30

"""Tests for fetcher.py: HTTP retrieval with mocked transport."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from rssfeed_reader.fetcher import ACCEPT_HEADER, FeedFetcher

URL = "https://example.com/rss.xml"


@pytest.fixture
def fetcher():
    return FeedFetcher(timeout=5.0)


def _response(text="", status_code=200):
    response = MagicMock()
    response.text = text
    response.status_code = status_code
    response.raise_for_status = MagicMock()
    return response


@pytest.mark.asyncio
async def test_fetch_returns_body(fetcher, sample_rss_xml):
    with patch.object(
        fetcher._client, "get", new_callable=AsyncMock, return_value=_response(sample_rss_xml)
    ) as mock_get:
        text = await fetcher.fetch(URL)

    assert text == sample_rss_xml
    mock_get.assert_awaited_once_with(URL)


@pytest.mark.asyncio
async def test_fetch_http_error_status_returns_none(fetcher):
    response = _response("Not Found", status_code=404)
    response.raise_for_status = MagicMock(
        side_effect=httpx.HTTPStatusError("Not Found", request=MagicMock(), response=response)
    )

    with patch.object(fetcher._client, "get", new_callable=AsyncMock, return_value=response):
        assert await fetcher.fetch(URL) is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("timed out"),
        httpx.UnsupportedProtocol("no scheme"),
        httpx.InvalidURL("bad url"),
    ],
)
async def test_fetch_transport_failures_return_none(fetcher, error):
    with patch.object(fetcher._client, "get", new_callable=AsyncMock, side_effect=error):
        assert await fetcher.fetch(URL) is None


@pytest.mark.asyncio
async def test_fetch_empty_body_returns_none(fetcher):
    with patch.object(
        fetcher._client, "get", new_callable=AsyncMock, return_value=_response("  \n")
    ):
        assert await fetcher.fetch(URL) is None


@pytest.mark.asyncio
async def test_fetch_logs_failure(fetcher, caplog):
    with patch.object(
        fetcher._client, "get", new_callable=AsyncMock, side_effect=httpx.ConnectError("refused")
    ):
        await fetcher.fetch(URL)

    assert URL in caplog.text


@pytest.mark.asyncio
async def test_context_manager_closes_client():
    async with FeedFetcher(timeout=1.0) as fetcher:
        client = fetcher._client
    assert client.is_closed


def test_requests_xml_content_types(fetcher):
    assert fetcher._client.headers["Accept"] == ACCEPT_HEADER


def test_timeout_from_environment(monkeypatch):
    monkeypatch.setenv("RSS_FETCH_TIMEOUT", "7")
    fetcher = FeedFetcher()
    assert fetcher._client.timeout.read == 7.0

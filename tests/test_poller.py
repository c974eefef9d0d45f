"""Tests for poller.py: the background refresh loop."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from conftest import RSS_URL, SAMPLE_RSS_XML_UPDATED

from rssfeed_reader.poller import poll_feeds_once, start_polling


@pytest.mark.asyncio
async def test_poll_feeds_once_returns_new_item_count(repository, fetcher):
    await repository.add_feed(RSS_URL)
    fetcher.documents[RSS_URL] = SAMPLE_RSS_XML_UPDATED

    assert await poll_feeds_once(repository) == 1
    assert await poll_feeds_once(repository) == 0


@pytest.mark.asyncio
async def test_start_polling_survives_failed_cycle(monkeypatch, caplog):
    monkeypatch.setenv("RSS_POLL_INTERVAL", "60")
    repository = MagicMock()
    repository.refresh_all_feeds = AsyncMock(side_effect=[RuntimeError("boom"), 3])
    sleep = AsyncMock(side_effect=[None, asyncio.CancelledError()])

    with patch("rssfeed_reader.poller.asyncio.sleep", sleep), pytest.raises(asyncio.CancelledError):
        await start_polling(repository)

    assert repository.refresh_all_feeds.await_count == 2
    sleep.assert_awaited_with(60)
    assert "Poll cycle failed: boom" in caplog.text

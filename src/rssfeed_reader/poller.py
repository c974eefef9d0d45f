"""Background polling loop for RSS Feed Reader."""

import asyncio
import logging
import os

from rssfeed_reader.repository import FeedRepository

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 900  # 15 minutes


async def poll_feeds_once(repository: FeedRepository) -> int:
    """Refresh all active feeds once. Returns count of new items found."""
    return await repository.refresh_all_feeds()


async def start_polling(repository: FeedRepository) -> None:
    """Run the polling loop indefinitely."""
    interval = int(os.environ.get("RSS_POLL_INTERVAL", DEFAULT_POLL_INTERVAL))
    logger.info("Poller started (interval: %ds)", interval)

    while True:
        try:
            new_count = await poll_feeds_once(repository)
            if new_count > 0:
                logger.info("Poll cycle complete: %d new items", new_count)
        except Exception as e:
            logger.error("Poll cycle failed: %s", e)

        await asyncio.sleep(interval)

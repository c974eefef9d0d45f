"""Agent tool implementations for RSS Feed Reader."""

import asyncio
import json

from langchain_core.tools import tool

from rssfeed_reader.models import Feed, ViewPreferences
from rssfeed_reader.projection import project_items, unread_counts
from rssfeed_reader.repository import FeedRepository

# Module-level references, set during agent initialization. Tools run in
# the agent's worker thread; coroutines are handed to the application loop.
_repository: FeedRepository | None = None
_loop: asyncio.AbstractEventLoop | None = None


def set_repository(repository: FeedRepository, loop: asyncio.AbstractEventLoop) -> None:
    """Set the repository and the event loop used by all tools."""
    global _repository, _loop
    _repository = repository
    _loop = loop


def _get_repository() -> FeedRepository:
    """Get the repository instance, raising if not set."""
    if _repository is None:
        raise RuntimeError("Repository not initialized. Call set_repository() first.")
    return _repository


def _run(coro):
    """Run a repository coroutine on the application loop and wait for it."""
    if _loop is None:
        coro.close()
        raise RuntimeError("Event loop not initialized. Call set_repository() first.")
    return asyncio.run_coroutine_threadsafe(coro, _loop).result()


def _resolve_feed(repository: FeedRepository, identifier: str) -> tuple[Feed | None, str | None]:
    """Resolve a title or URL to exactly one feed, or an error payload."""
    matches = repository.find_feeds(identifier)
    if not matches:
        return None, json.dumps({
            "status": "error",
            "message": f"No feed found matching '{identifier}'",
        })
    if len(matches) > 1:
        exact = [f for f in matches if f.url == identifier]
        if len(exact) != 1:
            return None, json.dumps({
                "status": "error",
                "message": "Multiple feeds match. Please be more specific.",
                "matches": [f.title for f in matches],
            })
        matches = exact
    return matches[0], None


@tool
def subscribe_to_feed(url: str, title: str = "") -> str:
    """Subscribe to an RSS or Atom feed by URL.

    Args:
        url: The URL of the RSS or Atom feed to subscribe to.
        title: Optional display title; defaults to the feed's own title.
    """
    repository = _get_repository()

    if any(f.url == url for f in repository.feeds.value):
        return json.dumps({
            "status": "error",
            "message": "Already subscribed to this feed",
        })

    added = _run(repository.add_feed(url, title or None))
    if not added:
        return json.dumps({
            "status": "error",
            "message": "Could not fetch the feed. Check that the URL is reachable.",
        })

    feed = next(f for f in reversed(repository.feeds.value) if f.url == url)
    item_count = sum(1 for i in repository.items.value if i.feed_id == feed.id)
    return json.dumps({
        "status": "subscribed",
        "feed": {
            "id": feed.id,
            "title": feed.title,
            "description": feed.description,
            "url": feed.url,
            "item_count": item_count,
        },
    })


@tool
def get_items(
    feed_identifier: str = "",
    unread_only: bool = False,
    limit: int = 20,
) -> str:
    """Get feed items, newest first, optionally filtered by feed or read status.

    Args:
        feed_identifier: Optional filter by feed title or URL.
        unread_only: If true, only return unread items.
        limit: Maximum number of items to return (default 20).
    """
    repository = _get_repository()

    selected: tuple[str, ...] = ()
    if feed_identifier:
        feed, error = _resolve_feed(repository, feed_identifier)
        if error:
            return error
        selected = (feed.id,)

    items = project_items(
        repository.items.value,
        ViewPreferences(selected_feeds=selected, show_only_unread=unread_only),
    )

    return json.dumps({
        "items": [
            {
                "id": item.id,
                "feed_title": item.feed_title,
                "title": item.title,
                "link": item.link,
                "summary": (item.description or "")[:200],
                "published_at": item.pub_date.isoformat(),
                "is_read": item.is_read,
            }
            for item in items[:limit]
        ],
        "total": len(items),
        "has_more": len(items) > limit,
    })


@tool
def list_feeds() -> str:
    """List all subscribed feeds with their current status.

    Returns each feed's id, title, url, status (active or inactive),
    last_fetched, and unread item count.
    """
    repository = _get_repository()
    feeds = repository.feeds.value
    unread = unread_counts(repository.items.value)

    return json.dumps({
        "feeds": [
            {
                "id": feed.id,
                "title": feed.title,
                "url": feed.url,
                "status": "active" if feed.is_active else "inactive",
                "last_fetched": feed.last_fetched.isoformat() if feed.last_fetched else None,
                "unread_count": unread.get(feed.id, 0),
            }
            for feed in feeds
        ],
        "total": len(feeds),
    })


@tool
def unsubscribe_from_feed(feed_identifier: str) -> str:
    """Unsubscribe from a feed by its title or URL.

    Args:
        feed_identifier: The title or URL of the feed to unsubscribe from.
    """
    repository = _get_repository()

    feed, error = _resolve_feed(repository, feed_identifier)
    if error:
        return error

    repository.remove_feed(feed.id)

    return json.dumps({
        "status": "unsubscribed",
        "feed_title": feed.title,
    })


@tool
def refresh_feeds(feed_identifier: str = "") -> str:
    """Check feeds for new items now.

    Args:
        feed_identifier: Optional feed title or URL; refreshes all active feeds when empty.
    """
    repository = _get_repository()

    if feed_identifier:
        feed, error = _resolve_feed(repository, feed_identifier)
        if error:
            return error
        new_items = _run(repository.refresh_feed(feed.id))
    else:
        new_items = _run(repository.refresh_all_feeds())

    return json.dumps({
        "status": "success",
        "new_items": new_items,
    })


@tool
def set_feed_active(feed_identifier: str, active: bool) -> str:
    """Pause or resume a feed. Paused feeds are skipped when refreshing all feeds.

    Args:
        feed_identifier: The title or URL of the feed.
        active: True to resume the feed, false to pause it.
    """
    repository = _get_repository()

    feed, error = _resolve_feed(repository, feed_identifier)
    if error:
        return error

    repository.set_feed_active(feed.id, active)

    return json.dumps({
        "status": "success",
        "feed_title": feed.title,
        "active": active,
    })


@tool
def mark_as_read(
    item_ids: list[str] | None = None,
    feed_identifier: str = "",
) -> str:
    """Mark one or more items as read, or mark all items in a feed as read.

    Args:
        item_ids: Optional list of specific item IDs to mark as read.
        feed_identifier: Optional feed title or URL; marks all items from this feed as read.
    """
    repository = _get_repository()

    if not item_ids and not feed_identifier:
        return json.dumps({
            "status": "error",
            "message": "Provide item_ids and/or feed_identifier",
        })

    feed_id = None
    if feed_identifier:
        feed, error = _resolve_feed(repository, feed_identifier)
        if error:
            return error
        feed_id = feed.id

    ids = set(item_ids or [])
    total_marked = sum(
        1 for i in repository.items.value
        if not i.is_read and (i.id in ids or i.feed_id == feed_id)
    )

    if feed_id:
        repository.mark_all_as_read(feed_id)
    for item_id in ids:
        repository.mark_as_read(item_id)

    return json.dumps({
        "status": "success",
        "items_marked": total_marked,
    })


@tool
def mark_as_unread(item_ids: list[str]) -> str:
    """Mark one or more items as unread.

    Args:
        item_ids: List of specific item IDs to mark as unread.
    """
    repository = _get_repository()

    ids = set(item_ids)
    marked = sum(1 for i in repository.items.value if i.is_read and i.id in ids)
    for item_id in ids:
        repository.mark_as_unread(item_id)

    return json.dumps({
        "status": "success",
        "items_marked": marked,
    })

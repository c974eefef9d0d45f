"""Authoritative feed and item state for RSS Feed Reader."""

import asyncio
import logging
import threading
import uuid
from dataclasses import fields, replace

from rssfeed_reader.events import SnapshotStream
from rssfeed_reader.feed_parser import UNTITLED_FEED, parse_feed
from rssfeed_reader.fetcher import FeedFetcher
from rssfeed_reader.models import Feed, Item, ViewPreferences, utcnow
from rssfeed_reader.projection import project_items
from rssfeed_reader.storage import KeyValueStore

logger = logging.getLogger(__name__)

FEEDS_KEY = "rss_feeds"
ITEMS_KEY = "rss_items"
PREFERENCES_KEY = "feed_preferences"

IMMUTABLE_FEED_FIELDS = frozenset({"id", "url", "added_date"})
FEED_FIELDS = frozenset(f.name for f in fields(Feed))
PREFERENCE_FIELDS = frozenset(f.name for f in fields(ViewPreferences))


class FeedRepository:
    """Owns the feed, item and preference collections.

    Every mutation runs its read-modify-write under one lock, persists the
    result, then publishes the new snapshot. Network fetches run outside the
    lock, so refreshes of different feeds overlap while their merges never
    interleave. Operations on unknown ids do nothing.
    """

    def __init__(self, store: KeyValueStore, fetcher: FeedFetcher):
        self._store = store
        self._fetcher = fetcher
        self._lock = threading.RLock()

        self.feeds: SnapshotStream[tuple[Feed, ...]] = SnapshotStream((), name="feeds")
        self.items: SnapshotStream[tuple[Item, ...]] = SnapshotStream((), name="items")
        self.preferences: SnapshotStream[ViewPreferences] = SnapshotStream(
            ViewPreferences(), name="preferences"
        )
        self.projection: SnapshotStream[tuple[Item, ...]] = SnapshotStream((), name="projection")

        self.load()

    # --- Loading ---

    def load(self) -> None:
        """Restore feeds, items and preferences from the store."""
        with self._lock:
            feeds = self._restore(FEEDS_KEY, Feed.from_dict)
            items = self._restore(ITEMS_KEY, Item.from_dict)
            preferences = ViewPreferences()
            prefs_data = self._store.load(PREFERENCES_KEY)
            if prefs_data:
                try:
                    preferences = ViewPreferences.from_dict(prefs_data)
                except (AttributeError, TypeError, ValueError) as e:
                    logger.warning("Ignoring unreadable preferences: %s", e)
            self.feeds.publish(feeds)
            self.items.publish(items)
            self.preferences.publish(preferences)
            self._publish_projection()
        logger.info("Loaded %d feeds and %d items", len(feeds), len(items))

    def _restore(self, key: str, from_dict) -> tuple:
        """Rebuild stored records, skipping any that cannot be read."""
        records = self._store.load(key) or []
        if not isinstance(records, list):
            logger.warning("Ignoring unreadable '%s' collection", key)
            return ()

        restored = []
        for record in records:
            try:
                restored.append(from_dict(record))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable '%s' record: %s", key, e)
        return tuple(restored)

    # --- Feed operations ---

    def get_feed(self, feed_id: str) -> Feed | None:
        """Look up a feed by its id."""
        return next((f for f in self.feeds.value if f.id == feed_id), None)

    def find_feeds(self, identifier: str) -> list[Feed]:
        """Find feeds by exact URL or case-insensitive title substring."""
        needle = identifier.lower()
        return [
            f for f in self.feeds.value
            if f.url == identifier or needle in f.title.lower()
        ]

    async def add_feed(self, url: str, title: str | None = None) -> bool:
        """Subscribe to the feed at url.

        Nothing is stored when the document cannot be fetched.

        Args:
            url: The feed URL.
            title: Optional title; defaults to the document's own title.

        Returns:
            True if the feed was added.
        """
        feed_id = uuid.uuid4().hex
        document = await self._fetcher.fetch(url)
        if document is None:
            logger.warning("Could not add feed %s: fetch failed", url)
            return False

        parsed = parse_feed(document, feed_id, title)
        now = utcnow()
        feed = Feed(
            id=feed_id,
            url=url,
            title=title or parsed.title or UNTITLED_FEED,
            description=parsed.description,
            is_active=True,
            last_fetched=now,
            added_date=now,
        )

        with self._lock:
            self._save_feeds(self.feeds.value + (feed,))
            added = self._merge_items(parsed.items)
        logger.info("Added feed '%s' with %d items", feed.title, added)
        return True

    def remove_feed(self, feed_id: str) -> None:
        """Delete a feed together with all of its items."""
        with self._lock:
            feeds = self.feeds.value
            if not any(f.id == feed_id for f in feeds):
                return
            self._save_feeds(tuple(f for f in feeds if f.id != feed_id))
            self._save_items(tuple(i for i in self.items.value if i.feed_id != feed_id))
        logger.info("Removed feed %s", feed_id)

    def update_feed(self, feed_id: str, **changes) -> None:
        """Merge changes into a feed's record; unspecified fields are kept.

        Raises:
            ValueError: If changes name an unknown or immutable field.
        """
        unknown = set(changes) - FEED_FIELDS
        if unknown:
            raise ValueError(f"Unknown feed fields: {', '.join(sorted(unknown))}")
        immutable = set(changes) & IMMUTABLE_FEED_FIELDS
        if immutable:
            raise ValueError(f"Feed fields cannot change: {', '.join(sorted(immutable))}")

        with self._lock:
            feeds = self.feeds.value
            if not any(f.id == feed_id for f in feeds):
                return
            self._save_feeds(
                tuple(replace(f, **changes) if f.id == feed_id else f for f in feeds)
            )

    def set_feed_active(self, feed_id: str, is_active: bool) -> None:
        """Activate or deactivate a feed."""
        self.update_feed(feed_id, is_active=is_active)

    async def refresh_feed(self, feed_id: str) -> int:
        """Re-fetch a feed and append entries not seen before.

        Returns:
            The number of new items, 0 if the feed is unknown or the fetch failed.
        """
        feed = self.get_feed(feed_id)
        if feed is None:
            return 0

        document = await self._fetcher.fetch(feed.url)
        if document is None:
            logger.warning("Refresh of '%s' failed", feed.title)
            return 0
        parsed = parse_feed(document, feed.id, feed.title)

        with self._lock:
            # The feed may have been removed while fetching.
            if self.get_feed(feed_id) is None:
                return 0
            added = self._merge_items(parsed.items)
            self.update_feed(feed_id, last_fetched=utcnow())

        if added:
            logger.info("Feed '%s': %d new items", feed.title, added)
        return added

    async def refresh_all_feeds(self) -> int:
        """Refresh every active feed concurrently.

        A failing feed does not affect the others.

        Returns:
            Total number of new items across all active feeds.
        """
        active = [f for f in self.feeds.value if f.is_active]
        if not active:
            return 0

        results = await asyncio.gather(
            *(self.refresh_feed(f.id) for f in active),
            return_exceptions=True,
        )

        total = 0
        for feed, result in zip(active, results):
            if isinstance(result, BaseException):
                logger.warning("Feed '%s' unexpected error: %s", feed.title, result)
                continue
            total += result
        return total

    # --- Item operations ---

    def mark_as_read(self, item_id: str) -> None:
        self._set_read(lambda item: item.id == item_id, True)

    def mark_as_unread(self, item_id: str) -> None:
        self._set_read(lambda item: item.id == item_id, False)

    def mark_all_as_read(self, feed_id: str | None = None) -> None:
        """Mark every item read, or only the items of feed_id when given."""
        self._set_read(lambda item: feed_id is None or item.feed_id == feed_id, True)

    # --- Preferences ---

    def update_preferences(self, **changes) -> None:
        """Merge changes into the view preferences.

        Raises:
            ValueError: If changes name an unknown preference, or selected_feeds
                is a single string rather than a collection of feed ids.
        """
        unknown = set(changes) - PREFERENCE_FIELDS
        if unknown:
            raise ValueError(f"Unknown preferences: {', '.join(sorted(unknown))}")
        if "selected_feeds" in changes:
            if isinstance(changes["selected_feeds"], str):
                raise ValueError("selected_feeds must be a collection of feed ids")
            changes["selected_feeds"] = tuple(changes["selected_feeds"])

        with self._lock:
            preferences = replace(self.preferences.value, **changes)
            self._store.save(PREFERENCES_KEY, preferences.to_dict())
            self.preferences.publish(preferences)
            self._publish_projection()

    # --- Internals ---

    def _merge_items(self, parsed_items: list[Item]) -> int:
        """Append parsed items whose id is not already stored. Caller holds the lock."""
        seen = {item.id for item in self.items.value}
        new_items = []
        for item in parsed_items:
            if item.id in seen:
                continue
            seen.add(item.id)
            new_items.append(item)

        if new_items:
            self._save_items(self.items.value + tuple(new_items))
        return len(new_items)

    def _set_read(self, matches, is_read: bool) -> None:
        with self._lock:
            items = self.items.value
            if not any(matches(i) and i.is_read != is_read for i in items):
                return
            self._save_items(
                tuple(
                    replace(i, is_read=is_read) if matches(i) and i.is_read != is_read else i
                    for i in items
                )
            )

    def _save_feeds(self, feeds: tuple[Feed, ...]) -> None:
        self._store.save(FEEDS_KEY, [f.to_dict() for f in feeds])
        self.feeds.publish(feeds)

    def _save_items(self, items: tuple[Item, ...]) -> None:
        self._store.save(ITEMS_KEY, [i.to_dict() for i in items])
        self.items.publish(items)
        self._publish_projection()

    def _publish_projection(self) -> None:
        self.projection.publish(
            tuple(project_items(self.items.value, self.preferences.value))
        )

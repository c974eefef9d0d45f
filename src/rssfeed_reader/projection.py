"""Derived, read-only views over feeds and items."""

from dataclasses import dataclass
from typing import Iterable

from rssfeed_reader.models import Feed, Item, ViewPreferences

GRID_ITEMS_PER_FEED = 10


@dataclass(frozen=True)
class FeedWidget:
    """One feed's card in the grid view."""

    feed: Feed
    items: tuple[Item, ...]
    unread_count: int


def project_items(items: Iterable[Item], preferences: ViewPreferences) -> list[Item]:
    """Filter and order items for the list view.

    Keeps only the selected feeds (all when none are selected), drops read
    items when show_only_unread is set, then sorts newest first. The sort is
    stable, so items with equal dates keep their collection order.
    """
    filtered = list(items)
    if preferences.selected_feeds:
        selected = set(preferences.selected_feeds)
        filtered = [i for i in filtered if i.feed_id in selected]
    if preferences.show_only_unread:
        filtered = [i for i in filtered if not i.is_read]
    return sorted(filtered, key=lambda i: i.pub_date, reverse=True)


def feed_widgets(
    feeds: Iterable[Feed], items: Iterable[Item], limit: int = GRID_ITEMS_PER_FEED
) -> list[FeedWidget]:
    """Group the newest items of each active feed, in feed order."""
    by_feed: dict[str, list[Item]] = {}
    for item in items:
        by_feed.setdefault(item.feed_id, []).append(item)

    widgets = []
    for feed in feeds:
        if not feed.is_active:
            continue
        newest = sorted(by_feed.get(feed.id, []), key=lambda i: i.pub_date, reverse=True)[:limit]
        widgets.append(
            FeedWidget(
                feed=feed,
                items=tuple(newest),
                unread_count=sum(1 for i in newest if not i.is_read),
            )
        )
    return widgets


def unread_counts(items: Iterable[Item]) -> dict[str, int]:
    """Number of unread items per feed id."""
    counts: dict[str, int] = {}
    for item in items:
        if not item.is_read:
            counts[item.feed_id] = counts.get(item.feed_id, 0) + 1
    return counts

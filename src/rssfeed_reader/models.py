"""Data models for RSS Feed Reader."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

ViewType = Literal["list", "grid"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Feed:
    """Represents a subscribed RSS/Atom source."""

    id: str
    url: str
    title: str
    description: str | None = None
    is_active: bool = True
    last_fetched: datetime | None = None
    added_date: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "is_active": self.is_active,
            "last_fetched": _dt_to_str(self.last_fetched),
            "added_date": _dt_to_str(self.added_date),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Feed":
        return cls(
            id=data["id"],
            url=data["url"],
            title=data["title"],
            description=data.get("description"),
            is_active=bool(data.get("is_active", True)),
            last_fetched=_str_to_dt(data.get("last_fetched")),
            added_date=_str_to_dt(data.get("added_date")) or utcnow(),
        )


@dataclass(frozen=True)
class Item:
    """Represents a single entry from a feed."""

    id: str
    feed_id: str
    feed_title: str
    title: str
    link: str
    description: str
    pub_date: datetime
    is_read: bool = False
    content: str | None = None
    author: str | None = None
    categories: tuple[str, ...] | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "feed_id": self.feed_id,
            "feed_title": self.feed_title,
            "title": self.title,
            "link": self.link,
            "description": self.description,
            "pub_date": _dt_to_str(self.pub_date),
            "is_read": self.is_read,
            "content": self.content,
            "author": self.author,
            "categories": list(self.categories) if self.categories else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Item":
        categories = data.get("categories")
        return cls(
            id=data["id"],
            feed_id=data["feed_id"],
            feed_title=data.get("feed_title", ""),
            title=data.get("title", ""),
            link=data.get("link", ""),
            description=data.get("description", ""),
            pub_date=_str_to_dt(data.get("pub_date")) or utcnow(),
            is_read=bool(data.get("is_read", False)),
            content=data.get("content"),
            author=data.get("author"),
            categories=tuple(categories) if categories else None,
        )


@dataclass(frozen=True)
class ViewPreferences:
    """Filter state of the item views. An empty selection means all feeds."""

    view_type: ViewType = "list"
    selected_feeds: tuple[str, ...] = ()
    show_only_unread: bool = False

    def to_dict(self) -> dict:
        return {
            "view_type": self.view_type,
            "selected_feeds": list(self.selected_feeds),
            "show_only_unread": self.show_only_unread,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ViewPreferences":
        view_type = data.get("view_type", "list")
        return cls(
            view_type=view_type if view_type in ("list", "grid") else "list",
            selected_feeds=tuple(data.get("selected_feeds") or ()),
            show_only_unread=bool(data.get("show_only_unread", False)),
        )


# --- Helper functions ---


def _dt_to_str(dt: datetime | None) -> str | None:
    """Convert datetime to ISO string for storage."""
    return dt.isoformat() if dt else None


def _str_to_dt(s: str | None) -> datetime | None:
    """Convert stored ISO string back to an aware datetime."""
    if not s:
        return None
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

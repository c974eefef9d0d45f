"""RSS/Atom feed parsing using feedparser.

Entries are normalized through one extraction table per dialect. Each table
maps a canonical item field to an ordered tuple of selectors; the first
selector yielding a non-empty value wins.
"""

import logging
import xml.sax
from dataclasses import dataclass
from datetime import datetime, timezone
from time import struct_time
from typing import Any, Callable

import feedparser

from rssfeed_reader.identity import derive_item_id
from rssfeed_reader.models import Item, utcnow

logger = logging.getLogger(__name__)

UNTITLED_FEED = "Untitled Feed"
UNTITLED_ITEM = "No Title"

# Text handed to feedparser is already decoded, so it is declared UTF-8
# regardless of the encoding named in its XML declaration.
_RESPONSE_HEADERS = {"content-type": "application/xml; charset=utf-8"}

Selector = Callable[[dict], Any]


@dataclass
class ParsedFeed:
    """Result of parsing an RSS/Atom document."""

    title: str | None
    description: str | None
    dialect: str | None
    items: list[Item]


# --- Selectors ---


def _text(key: str) -> Selector:
    def select(entry: dict) -> str | None:
        value = entry.get(key)
        return value.strip() if isinstance(value, str) else None

    return select


def _detail_name(key: str) -> Selector:
    def select(entry: dict) -> str | None:
        detail = entry.get(key) or {}
        name = detail.get("name")
        return name.strip() if isinstance(name, str) else None

    return select


def _date(key: str) -> Selector:
    def select(entry: dict) -> datetime | None:
        time_struct = entry.get(key)
        if not isinstance(time_struct, struct_time):
            return None
        try:
            return datetime(*time_struct[:6], tzinfo=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            return None

    return select


def _summary(entry: dict) -> str | None:
    """The entry's own summary or description element.

    feedparser copies text and html content into ``summary`` when the entry
    has no summary element. Only elements it actually read carry a
    ``summary_detail``.
    """
    if "summary_detail" not in entry:
        return None
    return _text("summary")(entry)


def _item_link(entry: dict) -> str | None:
    """The item's own link element.

    feedparser fills ``link`` from a permalink guid when the item has no
    link element, and flags that with ``guidislink``. A real link element
    is always listed under ``links`` as well.
    """
    link = _text("link")(entry)
    if link and entry.get("guidislink"):
        hrefs = {
            (other.get("href") or "").strip()
            for other in entry.get("links") or []
            if other.get("rel") != "enclosure"
        }
        if link not in hrefs:
            return None
    return link


def _content(entry: dict) -> str | None:
    """Value of the first non-empty content block (content:encoded or atom:content)."""
    for block in entry.get("content") or []:
        value = block.get("value")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _alternate_link(entry: dict) -> str | None:
    # feedparser reads a link without a rel attribute as rel="alternate",
    # which is how RFC 4287 defines it.
    for link in entry.get("links") or []:
        if link.get("rel") == "alternate" and link.get("href"):
            return link["href"].strip()
    return None


def _first_link(entry: dict) -> str | None:
    for link in entry.get("links") or []:
        if link.get("href"):
            return link["href"].strip()
    return None


def _categories(entry: dict) -> tuple[str, ...] | None:
    terms = []
    for tag in entry.get("tags") or []:
        term = tag.get("term")
        if isinstance(term, str) and term.strip():
            terms.append(term.strip())
    return tuple(terms) or None


RSS_FIELDS: dict[str, tuple[Selector, ...]] = {
    "title": (_text("title"),),
    "link": (_item_link,),
    "description": (_summary,),
    "content": (_content, _summary),
    # dc:creator is folded into author by feedparser; author_detail keeps
    # the name when the author element only carried an email address.
    "author": (_text("author"), _detail_name("author_detail")),
    "pub_date": (_date("published_parsed"),),
    "categories": (_categories,),
}

ATOM_FIELDS: dict[str, tuple[Selector, ...]] = {
    "title": (_text("title"),),
    "link": (_alternate_link, _first_link),
    "description": (_summary,),
    "content": (_content, _summary),
    "author": (_detail_name("author_detail"),),
    "pub_date": (_date("published_parsed"), _date("updated_parsed")),
}

DIALECTS = {"rss": RSS_FIELDS, "atom": ATOM_FIELDS}


def extract_field(entry: dict, selectors: tuple[Selector, ...]) -> Any:
    """Evaluate selectors in order and return the first non-empty result."""
    for select in selectors:
        value = select(entry)
        if value:
            return value
    return None


def parse_feed(
    document_text: str, feed_id: str, feed_title: str | None = None
) -> ParsedFeed:
    """Parse a feed document into feed metadata and normalized items.

    Never raises. A document with a structural XML error, or with no
    entries at all, yields no items.

    Args:
        document_text: Raw feed document.
        feed_id: Id of the feed the items belong to.
        feed_title: Title stamped on every item. Defaults to the document's
            own channel/feed title.
    """
    parsed = _parse(document_text, feed_id)
    if parsed is None:
        return ParsedFeed(title=None, description=None, dialect=None, items=[])

    title = _text("title")(parsed.feed) or None
    description = _text("subtitle")(parsed.feed) or _text("description")(parsed.feed)
    dialect = detect_dialect(parsed)
    if dialect is None:
        return ParsedFeed(title=title, description=description, dialect=None, items=[])

    items = _extract_items(
        parsed.entries,
        DIALECTS[dialect],
        feed_id,
        feed_title or title or UNTITLED_FEED,
    )
    return ParsedFeed(title=title, description=description, dialect=dialect, items=items)


def parse_feed_document(document_text: str, feed_id: str, feed_title: str) -> list[Item]:
    """Parse a feed document into items owned by feed_id. Never raises."""
    return parse_feed(document_text, feed_id, feed_title).items


def detect_dialect(parsed: dict) -> str | None:
    """Return "rss" or "atom" for a parsed document, None when it has no entries.

    RSS-style items win: any document with entries that is not recognized
    as Atom is read with the RSS table.
    """
    if not parsed.get("entries"):
        return None
    if (parsed.get("version") or "").startswith("atom"):
        return "atom"
    return "rss"


def _parse(document_text: str, feed_id: str):
    """Run feedparser over already-decoded text; None on structural errors."""
    if not document_text or not document_text.strip():
        logger.warning("Feed %s: empty document", feed_id)
        return None
    try:
        parsed = feedparser.parse(
            document_text.encode("utf-8"),
            response_headers=_RESPONSE_HEADERS,
        )
    except Exception as e:
        logger.warning("Feed %s: document could not be parsed: %s", feed_id, e)
        return None

    if parsed.get("bozo") and isinstance(parsed.get("bozo_exception"), xml.sax.SAXException):
        logger.warning(
            "Feed %s: document is not well-formed XML: %s", feed_id, parsed.bozo_exception
        )
        return None
    return parsed


def _extract_items(
    entries: list,
    fields: dict[str, tuple[Selector, ...]],
    feed_id: str,
    feed_title: str,
) -> list[Item]:
    """Build normalized items from feedparser entries, in document order."""
    now = utcnow()
    items = []
    for entry in entries:
        try:
            values = {name: extract_field(entry, selectors) for name, selectors in fields.items()}
        except Exception as e:
            logger.debug("Skipping malformed entry in feed %s: %s", feed_id, e)
            continue

        link = values["link"] or ""
        description = values["description"] or ""
        items.append(
            Item(
                id=derive_item_id(feed_id, link),
                feed_id=feed_id,
                feed_title=feed_title,
                title=values["title"] or UNTITLED_ITEM,
                link=link,
                description=description,
                pub_date=values["pub_date"] or now,
                is_read=False,
                content=values["content"] or None,
                author=values["author"] or None,
                categories=values.get("categories"),
            )
        )
    return items

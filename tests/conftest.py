"""Shared test fixtures for RSS Feed Reader tests."""

import asyncio
import os
import tempfile

import pytest

from rssfeed_reader.repository import FeedRepository
from rssfeed_reader.storage import MemoryStore

RSS_URL = "https://example.com/rss.xml"
ATOM_URL = "https://example.com/atom.xml"


SAMPLE_RSS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:dc="http://purl.org/dc/elements/1.1/"
     xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>Test Feed</title>
    <link>https://example.com</link>
    <description>A test RSS feed</description>
    <item>
      <title>Article A</title>
      <link>http://a</link>
      <description>Description of A</description>
      <pubDate>Mon, 01 Jan 2024 10:00:00 GMT</pubDate>
      <dc:creator>Jane Doe</dc:creator>
      <content:encoded><![CDATA[<p>Full content of A</p>]]></content:encoded>
      <category> Tech </category>
      <category>News</category>
    </item>
    <item>
      <title>Article B</title>
      <link>http://b</link>
      <description>Description of B</description>
      <pubDate>Tue, 02 Jan 2024 10:00:00 GMT</pubDate>
      <author>john@example.com (John Smith)</author>
    </item>
  </channel>
</rss>"""

SAMPLE_RSS_XML_UPDATED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Test Feed</title>
    <link>https://example.com</link>
    <item>
      <title>Article C</title>
      <link>http://c</link>
      <description>Description of C</description>
      <pubDate>Wed, 03 Jan 2024 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Article A</title>
      <link>http://a</link>
      <description>Description of A</description>
      <pubDate>Mon, 01 Jan 2024 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Article B</title>
      <link>http://b</link>
      <description>Description of B</description>
      <pubDate>Tue, 02 Jan 2024 10:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>"""

SAMPLE_ATOM_XML = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Test Atom Feed</title>
  <link href="https://example.com"/>
  <subtitle>A test Atom feed</subtitle>
  <id>urn:uuid:feed</id>
  <updated>2024-01-05T00:00:00Z</updated>
  <entry>
    <title>Atom Entry 1</title>
    <link rel="self" href="https://example.com/entry-1.json"/>
    <link rel="alternate" href="https://example.com/entry-1"/>
    <id>urn:uuid:entry-1</id>
    <summary>Summary of entry 1</summary>
    <content type="text">Full text of entry 1</content>
    <published>2024-01-03T08:00:00Z</published>
    <updated>2024-01-04T08:00:00Z</updated>
    <author>
      <name>Ada Lovelace</name>
      <email>ada@example.com</email>
    </author>
  </entry>
  <entry>
    <title>Atom Entry 2</title>
    <link rel="enclosure" href="https://example.com/entry-2.mp3"/>
    <id>urn:uuid:entry-2</id>
    <summary>Summary of entry 2</summary>
    <updated>2024-01-02T08:00:00Z</updated>
  </entry>
</feed>"""

SAMPLE_MALFORMED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Malformed Feed</title>
    <link>https://example.com</link>
    <item>
      <title>Good Item</title>
      <link>https://example.com/good</link>
    </item>
    <item>
      <title>Bad Item</title>
      <!-- Missing closing tags intentionally -->
"""

SAMPLE_NOT_A_FEED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<html>
  <body>This is not a feed</body>
</html>"""

SAMPLE_EMPTY_CHANNEL_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Quiet Feed</title>
    <link>https://example.com</link>
  </channel>
</rss>"""


def rss_document(title: str, links: list[str]) -> str:
    """Build a minimal RSS document with one item per link."""
    items = "".join(
        f"<item><title>{link}</title><link>{link}</link>"
        f"<pubDate>Mon, 01 Jan 2024 10:00:00 GMT</pubDate></item>"
        for link in links
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0"><channel><title>{title}</title>{items}</channel></rss>'
    )


class FakeFetcher:
    """Serves canned documents by URL; unknown URLs fail like a dead host."""

    def __init__(self, documents: dict[str, str] | None = None):
        self.documents = dict(documents or {})
        self.errors: set[str] = set()
        self.calls: list[str] = []

    async def fetch(self, url: str) -> str | None:
        self.calls.append(url)
        await asyncio.sleep(0)
        if url in self.errors:
            raise RuntimeError(f"transport blew up for {url}")
        return self.documents.get(url)


@pytest.fixture
def tmp_db_path():
    """Provide a temporary SQLite database path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = f.name
    yield path
    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(path + suffix)
        except OSError:
            pass


@pytest.fixture
def sample_rss_xml():
    """Sample valid RSS 2.0 XML."""
    return SAMPLE_RSS_XML


@pytest.fixture
def sample_atom_xml():
    """Sample valid Atom XML."""
    return SAMPLE_ATOM_XML


@pytest.fixture
def sample_malformed_xml():
    """Sample malformed RSS XML."""
    return SAMPLE_MALFORMED_XML


@pytest.fixture
def sample_not_a_feed_xml():
    """Sample XML that is not a feed."""
    return SAMPLE_NOT_A_FEED_XML


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def fetcher():
    return FakeFetcher({RSS_URL: SAMPLE_RSS_XML, ATOM_URL: SAMPLE_ATOM_XML})


@pytest.fixture
def repository(store, fetcher):
    return FeedRepository(store, fetcher)

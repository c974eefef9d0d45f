"""HTTP retrieval of raw feed documents."""

import logging
import os

import httpx

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 30.0
ACCEPT_HEADER = "application/rss+xml, application/xml, text/xml, application/atom+xml"


class FeedFetcher:
    """Async fetcher returning feed document text, or None on any failure.

    Callers cannot tell a timeout from a 404 or a dead host: every failure
    means "no content". No retries happen here.
    """

    def __init__(self, timeout: float | None = None):
        if timeout is None:
            timeout = float(os.environ.get("RSS_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT))
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"Accept": ACCEPT_HEADER},
        )

    async def __aenter__(self) -> "FeedFetcher":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def fetch(self, url: str) -> str | None:
        """Fetch the document at url.

        Args:
            url: The feed URL.

        Returns:
            The response body as text, or None if the fetch failed.
        """
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            text = response.text
        except httpx.HTTPStatusError as e:
            logger.warning("Fetch of %s failed: HTTP %d", url, e.response.status_code)
            return None
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Fetch of %s failed: %s", url, e)
            return None
        except (UnicodeDecodeError, LookupError) as e:
            logger.warning("Fetch of %s returned an undecodable body: %s", url, e)
            return None

        if not text.strip():
            logger.warning("Fetch of %s returned an empty body", url)
            return None
        return text

"""
Page Verifier

Fetches the page a comment was submitted from and reads the content id the
page declares in its metadata:

    <meta name="soudan-content-id" content="...">

Redirects are followed one hop at a time. Each target is checked against the
caller's scope before it is requested, so a redirect never leads the fetch
out of the tenant's domain.

A page that answers with a non-success status, a redirect out of scope and a
page without the marker produce the same result (None); callers treat them all
as an invalid URL.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup

from soudan.exceptions import PageFetchError

logger = logging.getLogger(__name__)

CONTENT_ID_META = "soudan-content-id"
MAX_REDIRECTS = 10


@dataclass
class PageData:
    """
    Page details stored in meta tags.

    Only the content id exists today; further tags (such as a flag locking
    comments) belong here.
    """

    content_id: str


def parse_page_data(html: str) -> PageData | None:
    """Extract PageData from an HTML document, or None if the marker is missing."""
    soup = BeautifulSoup(html, "html.parser")
    meta = soup.find("meta", attrs={"name": CONTENT_ID_META})
    if meta is None:
        return None

    content_id = meta.get("content")
    if content_id is None:
        return None
    return PageData(content_id=content_id)


class PageVerifier:
    """Fetches pages with a shared httpx client."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout_seconds: float = 10.0):
        self._client = client
        self._owns_client = client is None
        self.timeout_seconds = timeout_seconds

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds, follow_redirects=False)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str, scope: Callable[[str], bool] | None = None) -> PageData | None:
        """
        GET a page and read its content id.

        Args:
            url: page to fetch
            scope: predicate every redirect target must satisfy; without one,
                redirects may only stay on the requested URL's host

        Returns:
            PageData, or None for a non-success status, a redirect out of
            scope, or a page without the marker

        Raises:
            PageFetchError: on network failures (connect errors, timeouts, bad responses)
        """
        try:
            request = self.client.build_request("GET", url, timeout=self.timeout_seconds)
        except httpx.InvalidURL:
            logger.info(f"Page URL cannot be parsed: {url}")
            return None

        if scope is None:
            scope = same_host(request.url)

        response = await self._get(request)
        for _ in range(MAX_REDIRECTS):
            if response.next_request is None:
                break
            target = str(response.next_request.url)
            if not scope(target):
                logger.warning(f"Page {url} redirects out of scope to {target}")
                return None
            response = await self._get(response.next_request)

        if not response.is_success:
            logger.info(f"Page fetch returned {response.status_code}: {url}")
            return None

        page_data = parse_page_data(response.text)
        if page_data is None:
            logger.info(f"Page has no {CONTENT_ID_META} meta tag: {url}")
        return page_data

    async def _get(self, request: httpx.Request) -> httpx.Response:
        try:
            return await self.client.send(request, follow_redirects=False)
        except httpx.TimeoutException as e:
            logger.error(f"Page fetch timed out: {request.url}")
            raise PageFetchError() from e
        except httpx.HTTPError as e:
            logger.error(f"Page fetch failed: {request.url}: {e}")
            raise PageFetchError() from e


def same_host(origin: httpx.URL) -> Callable[[str], bool]:
    def check(target: str) -> bool:
        return httpx.URL(target).host == origin.host

    return check

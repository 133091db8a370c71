"""Async HTTP client for the reader API, riding on an existing session."""
from __future__ import annotations

import json
import logging
import os

import httpx

from .config import BASE_URL, COOKIES_FILE, HEADERS, REQUEST_TIMEOUT

log = logging.getLogger("safari-epub.client")


class FetchError(Exception):
    pass


class EmptyLocator(FetchError):
    pass


def load_cookies(path: str = COOKIES_FILE) -> dict[str, str]:
    """Load ``{name: value}`` session cookies saved from a logged-in browser.

    A missing file yields an empty jar; public resources still work.
    """
    if not os.path.exists(path):
        log.warning("cookie file %s not found, continuing without a session", path)
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class SafariClient:
    """Async client performing one GET per call, no retries.

    Relative locators are resolved against ``base_url``; absolute ones
    (chapter content, asset URLs) are fetched as given.
    """

    def __init__(
        self,
        cookies: dict[str, str] | None = None,
        base_url: str = BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            headers=HEADERS,
            cookies=cookies or {},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    def resolve(self, url: str) -> str:
        if url.startswith("http://") or url.startswith("https://"):
            return url
        return f"{self.base_url}/{url.lstrip('/')}"

    async def fetch(self, url: str, json: bool = True):
        """Fetch *url* and return decoded JSON, or the response when ``json`` is false."""
        if not url:
            raise EmptyLocator("url was not specified")

        uri = self.resolve(url)
        log.debug("fetching %s", uri)
        try:
            r = await self._client.get(uri)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error("unexpected status fetching %s: %s", uri, e.response.status_code)
            raise FetchError(f"HTTP {e.response.status_code}: {uri}") from e
        except httpx.HTTPError as e:
            log.error("transport error fetching %s: %s", uri, e)
            raise FetchError(f"Transport error: {uri}: {e}") from e

        if not json:
            return r
        try:
            return r.json()
        except ValueError as e:
            log.error("invalid JSON from %s: %s", uri, e)
            raise FetchError(f"Invalid JSON: {uri}") from e

    async def get_json(self, url: str):
        return await self.fetch(url)

    async def get_text(self, url: str) -> str:
        return (await self.fetch(url, json=False)).text

    async def get_bytes(self, url: str) -> bytes:
        return (await self.fetch(url, json=False)).content

"""In-memory stand-in for the reader API, served through httpx.MockTransport."""
from __future__ import annotations

import asyncio

import httpx

from safari_epub.client import SafariClient

BASE = "https://reader.test"


class FakeAPI:
    """Route table of absolute URL -> body.

    dict/list bodies are served as JSON, str as text, bytes as raw content,
    int as an empty response with that status.  Unknown URLs get a 404.
    """

    def __init__(self, routes: dict, delays: dict[str, float] | None = None):
        self.routes = routes
        self.delays = delays or {}
        self.requests: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(url, 0))
        finally:
            self.in_flight -= 1

        body = self.routes.get(url)
        if body is None:
            return httpx.Response(404)
        if isinstance(body, int):
            return httpx.Response(body)
        if isinstance(body, bytes):
            return httpx.Response(200, content=body)
        if isinstance(body, str):
            return httpx.Response(200, text=body)
        return httpx.Response(200, json=body)

    def client(self, **kwargs) -> SafariClient:
        return SafariClient(base_url=BASE, transport=httpx.MockTransport(self.handler), **kwargs)


def book_routes(book_id: str = "9781234567890") -> dict:
    """Routes for a two-chapter book; the first chapter is the TOC page."""
    api = f"{BASE}/api/v1/book/{book_id}"
    assets = f"{BASE}/library/view/a-book/{book_id}/"
    return {
        f"{api}/": {
            "title": "A Book: Second Edition",
            "identifier": book_id,
            "language": "en",
            "authors": [{"name": "Ada Writer"}],
            "publishers": [{"name": "Example Press"}],
            "cover": f"{BASE}/covers/{book_id}.jpg",
            "description": "<p>About the book.</p>",
            "chapters": [f"{api}/chapter/toc.html", f"{api}/chapter/ch01.html"],
        },
        f"{api}/flat-toc/": [
            {"url": f"{api}/chapter/ch01.html", "order": 1, "id": "ch01", "label": "Chapter 1"},
        ],
        f"{api}/chapter/toc.html": {
            "url": f"{api}/chapter/toc.html",
            "title": "Table of Contents",
            "filename": "toc.xhtml",
            "asset_base_url": assets,
            "content": f"{api}/chapter-content/toc.html",
            "images": [],
            "stylesheets": [{"url": f"{BASE}/css/book.css"}],
        },
        f"{api}/chapter/ch01.html": {
            "url": f"{api}/chapter/ch01.html",
            "title": "Chapter 1",
            "filename": "ch01.xhtml",
            "asset_base_url": assets,
            "content": f"{api}/chapter-content/ch01.html",
            "images": ["assets/fig1.png"],
            "stylesheets": [{"url": f"{BASE}/css/book.css"}],
        },
        f"{api}/chapter-content/toc.html": '<div><a href="ch01.xhtml">Chapter 1</a></div>',
        f"{api}/chapter-content/ch01.html": (
            f'<div><p>Intro<br>text</p><img src="/library/view/a-book/{book_id}/assets/fig1.png"><hr></div>'
        ),
        f"{BASE}/css/book.css": "p { margin: 0; }",
        f"{BASE}/covers/{book_id}.jpg": b"cover-bytes",
        f"{assets}assets/fig1.png": b"png-bytes",
    }

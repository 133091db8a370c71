"""Concurrent chapter retrieval joined with the book's TOC."""
from __future__ import annotations

import logging

from .client import SafariClient
from .config import MAX_CONCURRENT, TOC_SENTINEL_ID, TOC_SENTINEL_ORDER
from .models import ChapterRecord, TocEntry
from .throttle import Throttle

log = logging.getLogger("safari-epub.chapters")

TOC_SENTINEL = TocEntry(order=TOC_SENTINEL_ORDER, id=TOC_SENTINEL_ID)


class MissingContentReference(Exception):
    pass


async def fetch_chapter(
    client: SafariClient,
    chapter_url: str,
    toc: dict[str, TocEntry],
) -> ChapterRecord:
    """Fetch one chapter's metadata and content, then attach its TOC position.

    Chapters the TOC does not list (the book's own TOC page) get the
    sentinel order/id.
    """
    meta = await client.get_json(chapter_url)
    if not meta.get("content"):
        raise MissingContentReference(
            f"the chapter 'content' key is missing from the response: {chapter_url}"
        )

    content = await client.get_text(meta["content"])

    url = meta.get("url") or chapter_url
    entry = toc.get(url)
    if entry is None:
        log.debug("chapter %s not in TOC, treating it as the TOC page", url)
        entry = TOC_SENTINEL
    return ChapterRecord.from_api(url, meta, content, entry)


async def fetch_chapters(
    client: SafariClient,
    chapter_urls: list[str],
    toc: dict[str, TocEntry],
    max_concurrent: int = MAX_CONCURRENT,
) -> list[ChapterRecord]:
    """Fetch every chapter with at most *max_concurrent* in flight.

    Results follow *chapter_urls* order whatever order the responses
    arrive in.  Every fetch runs to completion; if any failed, the first
    failure in input order is raised and nothing is returned.
    """
    throttle = Throttle(max_concurrent)
    results = await throttle.map(
        [lambda url=url: fetch_chapter(client, url, toc) for url in chapter_urls],
        return_exceptions=True,
    )

    for url, result in zip(chapter_urls, results):
        if isinstance(result, BaseException):
            log.error("chapter %s failed: %s", url, result)
            raise result

    log.info("fetched %d chapters", len(results))
    return results

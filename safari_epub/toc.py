"""Flat table-of-contents lookup for a book."""
from __future__ import annotations

import logging

from .client import SafariClient
from .config import API_TOC_PATH
from .models import TocEntry

log = logging.getLogger("safari-epub.toc")


async def fetch_toc(client: SafariClient, book_id: str) -> dict[str, TocEntry]:
    """Fetch the flat TOC and map each chapter URL to its order and id.

    The listing is a JSON array of ``{"url", "order", "id", ...}`` records.
    Later duplicates of a URL replace earlier ones.
    """
    body = await client.get_json(API_TOC_PATH.format(book_id=book_id))
    toc: dict[str, TocEntry] = {}
    for entry in body:
        toc[entry["url"]] = TocEntry(order=int(entry["order"]), id=str(entry["id"]))
    log.debug("book %s: %d TOC entries", book_id, len(toc))
    return toc

"""Assemble one book from the reader API into a packaging-ready :class:`Book`.

Stages run in order and every failure propagates; nothing is packaged
unless all of them succeed::

    metadata -> TOC -> chapters (throttled) -> rewrite -> stylesheet
             -> cover -> image manifest
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field

from .chapters import fetch_chapters
from .client import SafariClient
from .config import API_BOOK_PATH, MAX_CONCURRENT
from .models import Book, ChapterRecord, ImageEntry, Metadata, TocEntry
from .rewrite import rewrite_chapter
from .toc import fetch_toc
from .utils import local_image_path

log = logging.getLogger("safari-epub.assembler")


@dataclass
class RunContext:
    """State owned by a single book run."""

    book_id: str
    client: SafariClient
    max_concurrent: int = MAX_CONCURRENT
    _toc: dict[str, TocEntry] | None = field(default=None, repr=False)

    async def toc(self) -> dict[str, TocEntry]:
        if self._toc is None:
            self._toc = await fetch_toc(self.client, self.book_id)
        return self._toc


async def resolve_stylesheet(client: SafariClient, chapters: list[ChapterRecord]) -> str | None:
    """Fetch the one stylesheet shared by the chapters.

    When chapters disagree the first URL encountered (in chapter order)
    wins and a warning is logged.  Returns ``None`` if no chapter has one.
    """
    urls = list(dict.fromkeys(url for ch in chapters for url in ch.stylesheets))
    if not urls:
        return None
    if len(urls) > 1:
        log.warning(
            "there are %d different stylesheets, taking the first one: %s",
            len(urls),
            urls[0],
        )
    stylesheet = await client.get_text(urls[0])
    log.info("stylesheet retrieved: %s", urls[0])
    return stylesheet


def collect_images(chapters: list[ChapterRecord]) -> list[ImageEntry]:
    """Flatten every chapter's images, each tagged with its chapter's asset base."""
    images: list[ImageEntry] = []
    seen: dict[str, str] = {}
    for ch in chapters:
        for image in ch.images:
            entry = ImageEntry(base_url=ch.asset_base_url, file=image, path=local_image_path(image))
            previous = seen.get(entry.path)
            if previous is not None and previous != entry.url:
                log.warning("image %s collides with %s as images/%s", entry.url, previous, entry.path)
            seen[entry.path] = entry.url
            images.append(entry)
    return images


class BookAssembler:
    def __init__(self, context: RunContext):
        self.context = context
        self.title = context.book_id

    async def fetch_metadata(self) -> Metadata:
        data = await self.context.client.get_json(API_BOOK_PATH.format(book_id=self.context.book_id))
        return Metadata.from_api(data)

    async def assemble(self) -> Book:
        client = self.context.client
        log.info("assembling book %s", self.context.book_id)

        meta = await self.fetch_metadata()
        if meta.title:
            self.title = meta.title
        log.info("%s: %d chapters", self.title, len(meta.chapters))

        toc = await self.context.toc()
        chapters = await fetch_chapters(client, meta.chapters, toc, self.context.max_concurrent)
        chapters = [
            dataclasses.replace(ch, content=rewrite_chapter(ch.content, ch.images))
            for ch in chapters
        ]

        stylesheet = await resolve_stylesheet(client, chapters)

        # an absent cover locator raises EmptyLocator like any other fetch
        cover_image = await client.get_bytes(meta.cover)

        return Book(
            title=self.title,
            uuid=meta.identifier,
            language=meta.language,
            authors=meta.authors,
            publishers=meta.publishers,
            cover=meta.cover,
            description=meta.description,
            stylesheet=stylesheet,
            chapters=chapters,
            images=collect_images(chapters),
            cover_image=cover_image,
        )

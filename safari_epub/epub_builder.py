"""
EPUB packaging for an assembled :class:`~safari_epub.models.Book`.

Downloads the manifest images, renders chapters and the stylesheet, and
writes the container with ebooklib (which produces the OPF manifest, NCX
and nav documents).
"""

from __future__ import annotations

import html
import io
import logging
from pathlib import Path

from ebooklib import epub
from PIL import Image

from .client import SafariClient
from .config import MAX_CONCURRENT, TOC_SENTINEL_ID
from .models import Book, ImageEntry
from .rewrite import IMAGES_DIR
from .throttle import Throttle
from .utils import epub_filename, image_media_type

log = logging.getLogger("safari-epub.epub")

# ── Constants ────────────────────────────────────────────────────────────────

BOOK_CSS = """\
@charset "UTF-8";
.cover-page {
    text-align: center;
    padding: 0;
    margin: 0;
}
.cover-page img {
    max-width: 100%;
    max-height: 100%;
}
"""

STYLESHEET_FILE = "core.css"
COVER_FILE = "cover.jpg"


# ── Templates ────────────────────────────────────────────────────────────────


def render_chapter(title: str, contents: str, has_stylesheet: bool = False) -> str:
    """Wrap rewritten chapter markup in an XHTML document.

    ebooklib rebuilds <head> from ``EpubHtml.title`` and the items linked with
    ``add_item`` when it writes the archive, keeping only this body.  The
    head here makes the document complete on its own.
    """
    link = f'<link type="text/css" rel="stylesheet" href="{STYLESHEET_FILE}"/>' if has_stylesheet else ""
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<!DOCTYPE html>\n'
        '<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops">\n'
        f"<head><title>{html.escape(title, quote=False)}</title>{link}</head>\n"
        f"<body>\n{contents}\n</body>\n"
        "</html>\n"
    )


def render_stylesheet(book: Book) -> str:
    """Base rules for generated pages followed by the book's own stylesheet."""
    if not book.stylesheet:
        return BOOK_CSS
    own = book.stylesheet
    # only one @charset rule is allowed, and it must come first
    if own.lstrip().lower().startswith("@charset"):
        own = own.lstrip().split(";", 1)[1] if ";" in own else ""
    return f"{BOOK_CSS}\n{own.lstrip()}"


# ── Image download ───────────────────────────────────────────────────────────


async def download_images(
    client: SafariClient,
    images: list[ImageEntry],
    max_concurrent: int = MAX_CONCURRENT,
) -> dict[str, bytes]:
    """Fetch every manifest image, keyed by its path inside ``images/``.

    Images sharing a local path are fetched once, from the last manifest
    entry.  Any failed download fails the whole batch.
    """
    unique: dict[str, ImageEntry] = {}
    for entry in images:
        unique[entry.path] = entry

    throttle = Throttle(max_concurrent)
    entries = list(unique.values())
    blobs = await throttle.map([lambda e=e: client.get_bytes(e.url) for e in entries])
    log.info("downloaded %d images", len(blobs))
    return {e.path: blob for e, blob in zip(entries, blobs)}


# ── Cover helpers ────────────────────────────────────────────────────────────


def validate_cover(data: bytes | None) -> bool:
    """Check the cover bytes decode as an image."""
    if not data:
        return False
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
        return True
    except Exception:
        return False


# ── EPUB builder ─────────────────────────────────────────────────────────────


def build_epub(book: Book, images: dict[str, bytes], output_path: Path) -> Path:
    """Write *book* and its downloaded *images* to *output_path*.

    The spine follows chapter order as fetched; the navigation lists the
    chapters by TOC order, leaving out the book's own TOC page.
    """
    eb = epub.EpubBook()
    eb.set_identifier(book.uuid or epub_filename(book.title)[: -len(".epub")])
    eb.set_title(book.title)
    eb.set_language(book.language or "en")

    for author in book.authors:
        eb.add_author(author)
    for publisher in book.publishers:
        eb.add_metadata("DC", "publisher", publisher)
    if book.description:
        eb.add_metadata("DC", "description", book.description)

    style = epub.EpubItem(
        uid="core_css",
        file_name=STYLESHEET_FILE,
        media_type="text/css",
        content=render_stylesheet(book).encode("utf-8"),
    )
    eb.add_item(style)

    has_cover = validate_cover(book.cover_image)
    if has_cover:
        eb.set_cover(COVER_FILE, book.cover_image, create_page=True)
    elif book.cover_image:
        log.warning("cover for %s is not a readable image, skipping it", book.title)

    for i, (path, data) in enumerate(sorted(images.items())):
        eb.add_item(
            epub.EpubImage(
                uid=f"image_{i:04d}",
                file_name=f"{IMAGES_DIR}/{path}",
                media_type=image_media_type(path),
                content=data,
            )
        )

    spine_items: list = ["nav"]
    nav_entries: list[tuple[int, epub.EpubHtml]] = []

    for i, chapter in enumerate(book.chapters):
        epub_ch = epub.EpubHtml(
            uid=f"chapter_{i:04d}",
            title=chapter.title or f"Chapter {i + 1}",
            file_name=chapter.filename or f"chapter_{i:04d}.xhtml",
            lang=book.language or "en",
        )
        epub_ch.content = render_chapter(epub_ch.title, chapter.content, has_stylesheet=True).encode("utf-8")
        epub_ch.add_item(style)

        eb.add_item(epub_ch)
        spine_items.append(epub_ch)
        if chapter.id != TOC_SENTINEL_ID:
            nav_entries.append((chapter.order, epub_ch))

    # sorted() is stable, so equal orders keep fetch order
    eb.toc = [ch for _, ch in sorted(nav_entries, key=lambda item: item[0])]

    eb.add_item(epub.EpubNcx())
    eb.add_item(epub.EpubNav())

    if has_cover:
        spine_items.insert(0, "cover")
    eb.spine = spine_items

    output_path.parent.mkdir(parents=True, exist_ok=True)
    epub.write_epub(str(output_path), eb, {})
    log.info("wrote %s", output_path)
    return output_path


async def package_book(
    client: SafariClient,
    book: Book,
    output_dir: Path,
    max_concurrent: int = MAX_CONCURRENT,
) -> Path:
    """Download images and save the archive as ``<output_dir>/<safe title>.epub``."""
    images = await download_images(client, book.images, max_concurrent)
    return build_epub(book, images, output_dir / epub_filename(book.title))

"""Shared helpers for safari-epub."""
from __future__ import annotations

import mimetypes
import re

_BOOK_URL_RE = re.compile(r"/library/view/[^/]+/(\w+)/")


class MissingIdentifier(ValueError):
    pass


def extract_book_id(url: str) -> str:
    """Extract the book id from a reader URL.

    https://learning.oreilly.com/library/view/some-title/1234567890/ -> 1234567890
    """
    m = _BOOK_URL_RE.search(url or "")
    if not m:
        raise MissingIdentifier(f"could not extract book id from url: {url!r}")
    return m.group(1)


def epub_filename(title: str) -> str:
    """Return a filesystem-safe archive name for a book title."""
    safe = re.sub(r"[^a-z0-9]", "_", title, flags=re.IGNORECASE).lower()
    return f"{safe or 'book'}.epub"


def local_image_path(image: str) -> str:
    """Final path segment of an image reference (its name inside ``images/``)."""
    return image.rstrip("/").split("/")[-1] or image


def image_media_type(path: str) -> str:
    return mimetypes.guess_type(path)[0] or "image/jpeg"

"""Chapter markup rewriting: image relinking and XHTML-safe void elements.

Chapters arrive as HTML fragments.  The archive needs them as well-formed
XHTML with image references pointing inside the archive, so every chapter
is parsed into a tree, relinked, and serialised back.  BeautifulSoup
serialises void elements (``img``, ``br``, ``hr``, ...) as ``<br/>``.
"""
from __future__ import annotations

from bs4 import BeautifulSoup

from .utils import local_image_path

IMAGES_DIR = "images"


def _parse(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def _serialize(soup: BeautifulSoup) -> str:
    # lxml wraps fragments in <html><body>; hand back only the fragment
    if soup.body is not None:
        return soup.body.decode_contents()
    return soup.decode()


def _references(value: str, image: str) -> bool:
    """True when *value* ends with *image* on a path-segment boundary."""
    return value == image or value.endswith("/" + image)


def rewrite_images(soup: BeautifulSoup, images: list[str]) -> int:
    """Point every attribute ending with an image's path at ``images/<name>``.

    Only whole path segments match: ``11.png`` is not a reference to ``1.png``.

    Returns the number of attributes rewritten.
    """
    if not images:
        return 0
    # longest first, so "a/11.png" is tried before "1.png"
    targets = [
        (image, f"{IMAGES_DIR}/{local_image_path(image)}")
        for image in sorted({i for i in images if i}, key=len, reverse=True)
    ]
    count = 0
    for tag in soup.find_all(True):
        for attr, value in list(tag.attrs.items()):
            if not isinstance(value, str):
                continue
            for image, local in targets:
                if _references(value, image):
                    tag[attr] = local
                    count += 1
                    break
    return count


def normalize_markup(html: str) -> str:
    """Re-serialise *html* so void elements are self-closing."""
    return _serialize(_parse(html))


def rewrite_chapter(html: str, images: list[str]) -> str:
    """Relink *images* inside *html* and return XHTML-safe markup."""
    soup = _parse(html)
    rewrite_images(soup, images)
    return _serialize(soup)

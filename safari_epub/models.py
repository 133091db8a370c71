"""Records passed between the fetch, rewrite and packaging stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple
from urllib.parse import urljoin

from .utils import image_media_type


class TocEntry(NamedTuple):
    """Position of one chapter in the book's flat TOC."""

    order: int
    id: str


@dataclass(frozen=True)
class Metadata:
    title: str
    identifier: str
    language: str
    authors: list[str] = field(default_factory=list)
    publishers: list[str] = field(default_factory=list)
    cover: str = ""
    description: str = ""
    chapters: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> Metadata:
        """Build from the ``api/v1/book/<id>/`` response.

        ``authors`` and ``publishers`` arrive as lists of ``{"name": ...}``
        objects; only the names are kept.
        """
        return cls(
            title=data.get("title") or "",
            identifier=data.get("identifier") or "",
            language=data.get("language") or "en",
            authors=[a["name"] for a in data.get("authors") or []],
            publishers=[p["name"] for p in data.get("publishers") or []],
            cover=data.get("cover") or "",
            description=data.get("description") or "",
            chapters=list(data.get("chapters") or []),
        )


@dataclass(frozen=True)
class ChapterRecord:
    """A chapter's API metadata joined with its content and TOC position."""

    url: str
    filename: str
    title: str
    asset_base_url: str
    content_url: str
    images: list[str] = field(default_factory=list)
    stylesheets: list[str] = field(default_factory=list)
    content: str = ""
    order: int = 0
    id: str = ""

    @classmethod
    def from_api(cls, url: str, data: dict, content: str, entry: TocEntry) -> ChapterRecord:
        return cls(
            url=url,
            filename=data.get("filename") or "",
            title=data.get("title") or "",
            asset_base_url=data.get("asset_base_url") or "",
            content_url=data["content"],
            images=list(data.get("images") or []),
            stylesheets=[s["url"] for s in data.get("stylesheets") or [] if s.get("url")],
            content=content,
            order=entry.order,
            id=entry.id,
        )


@dataclass(frozen=True)
class ImageEntry:
    """One image to fetch and store under ``images/<path>`` in the archive."""

    base_url: str
    file: str
    path: str

    @property
    def url(self) -> str:
        return urljoin(self.base_url, self.file)

    @property
    def media_type(self) -> str:
        return image_media_type(self.path)


@dataclass
class Book:
    title: str
    uuid: str
    language: str
    authors: list[str]
    publishers: list[str]
    cover: str
    description: str
    stylesheet: str | None = None
    chapters: list[ChapterRecord] = field(default_factory=list)
    images: list[ImageEntry] = field(default_factory=list)
    cover_image: bytes | None = None

    def template_context(self) -> dict:
        """Field names consumed by the manifest/navigation templates."""
        return {
            "title": self.title,
            "authors": list(self.authors),
            "publishers": list(self.publishers),
            "uuid": self.uuid,
            "language": self.language,
            "cover": self.cover,
            "description": self.description,
            "stylesheet": self.stylesheet,
            "chapters": [
                {
                    "filename": ch.filename,
                    "asset_base": ch.asset_base_url,
                    "images": list(ch.images),
                    "title": ch.title,
                    "content": ch.content,
                    "id": ch.id,
                    "order": ch.order,
                }
                for ch in self.chapters
            ],
            "imagesToFetch": [
                {
                    "baseUrl": img.base_url,
                    "file": img.file,
                    "media": img.media_type,
                    "path": img.path,
                }
                for img in self.images
            ],
        }

"""Core Note and Metadata dataclasses."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date
from pathlib import PurePosixPath
from typing import Any


class Layout(str, enum.Enum):
    """Page layout declared in a note's frontmatter."""

    INDEX = "Index"
    ARTICLE = "Article"


@dataclass(frozen=True)
class Metadata:
    """Decoded frontmatter of a note; every field has a default."""

    date: date | None = None
    tags: tuple[str, ...] = ()
    aliases: tuple[str, ...] = ()
    layout: Layout | None = None
    permalink: str | None = None
    #: Private notes are never published
    private: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat() if self.date else None,
            "tags": list(self.tags),
            "aliases": list(self.aliases),
            "layout": self.layout.value if self.layout else None,
            "permalink": self.permalink,
            "private": self.private,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Metadata":
        raw_date = data.get("date")
        raw_layout = data.get("layout")
        return cls(
            date=date.fromisoformat(raw_date) if raw_date else None,
            tags=tuple(data.get("tags", ())),
            aliases=tuple(data.get("aliases", ())),
            layout=Layout(raw_layout) if raw_layout else None,
            permalink=data.get("permalink"),
            private=bool(data.get("private", False)),
        )


@dataclass(frozen=True)
class Note:
    """A single markdown note in the vault."""

    #: Base name of the file without extension; unique within a vault
    slug: str
    #: Location relative to the vault root, extension included
    path: PurePosixPath
    title: str
    #: Body text with the frontmatter block stripped
    content: str
    metadata: Metadata = Metadata()

    @property
    def folder(self) -> PurePosixPath:
        return self.path.parent

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "path": self.path.as_posix(),
            "title": self.title,
            "content": self.content,
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Note":
        return cls(
            slug=data["slug"],
            path=PurePosixPath(data["path"]),
            title=data["title"],
            content=data["content"],
            metadata=Metadata.from_dict(data.get("metadata", {})),
        )

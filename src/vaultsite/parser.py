"""Frontmatter splitter, metadata decoder, and note loader."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from pathlib import Path, PurePosixPath
from typing import Any

import yaml

from vaultsite.errors import LoadError, MetadataError
from vaultsite.note import Layout, Metadata, Note

log = logging.getLogger(__name__)

FRONTMATTER_DELIMITER = "---"

# Level-1 ATX heading: "# Title"
_H1_RE = re.compile(r"^#[ \t]+(.*)$")
# Code fences toggle heading detection off
_FENCE_RE = re.compile(r"^\s*(```|~~~)")


# ---------------------------------------------------------------------------
# Frontmatter splitter
# ---------------------------------------------------------------------------


def _is_delimiter(line: str) -> bool:
    return line.rstrip("\r") == FRONTMATTER_DELIMITER


def split_frontmatter(text: str) -> tuple[str, str]:
    """Split a raw note into ``(metadata_text, body_text)``.

    The metadata block is only recognised when the very first line is the
    ``---`` delimiter.  Without a closing delimiter the whole remainder is
    metadata and the body is empty.  Without an opening delimiter the input is
    returned untouched as the body.
    """
    lines = text.split("\n")
    if not _is_delimiter(lines[0]):
        return "", text
    for i in range(1, len(lines)):
        if _is_delimiter(lines[i]):
            return "\n".join(lines[1:i]), "\n".join(lines[i + 1 :])
    return "\n".join(lines[1:]), ""


# ---------------------------------------------------------------------------
# Metadata decoder
# ---------------------------------------------------------------------------


def _decode_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise MetadataError(f"expected a YYYY-MM-DD date, got {value!r}", key="date")


def _decode_string_list(value: Any, key: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = []
        for item in value:
            if isinstance(item, (list, dict)):
                raise MetadataError(f"expected a list of strings, got nested {type(item).__name__}", key=key)
            if item is not None:
                items.append(str(item))
    else:
        raise MetadataError(f"expected a list of strings, got {type(value).__name__}", key=key)

    cleaned = (item.strip() for item in items)
    if key == "tags":
        cleaned = (item.lstrip("#") for item in cleaned)
    return tuple(dict.fromkeys(item for item in cleaned if item))


def _decode_layout(value: Any) -> Layout | None:
    if value is None:
        return None
    if isinstance(value, str):
        for layout in Layout:
            if layout.value.lower() == value.strip().lower():
                return layout
    raise MetadataError(f"expected one of Index, Article, got {value!r}", key="layout")


def _decode_permalink(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise MetadataError(f"expected a string, got {type(value).__name__}", key="permalink")


def _decode_private(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    raise MetadataError(f"expected true or false, got {value!r}", key="private")


def decode_metadata(metadata_text: str) -> Metadata:
    """Decode a YAML frontmatter block into :class:`Metadata`.

    Unknown keys are ignored and absent keys take their defaults.  A present
    key holding a value of the wrong shape raises :class:`MetadataError`.
    """
    if not metadata_text.strip():
        return Metadata()
    try:
        raw = yaml.safe_load(metadata_text)
    except yaml.YAMLError as exc:
        raise MetadataError(f"invalid YAML: {exc}") from exc
    except ValueError as exc:
        # date-shaped scalars that are not real dates (2024-02-30)
        raise MetadataError(f"invalid scalar: {exc}") from exc
    if raw is None:
        return Metadata()
    if not isinstance(raw, dict):
        raise MetadataError(f"expected a mapping, got {type(raw).__name__}")

    return Metadata(
        date=_decode_date(raw.get("date")),
        tags=_decode_string_list(raw.get("tags"), "tags"),
        aliases=_decode_string_list(raw.get("aliases"), "aliases"),
        layout=_decode_layout(raw.get("layout")),
        permalink=_decode_permalink(raw.get("permalink")),
        private=_decode_private(raw.get("private")),
    )


# ---------------------------------------------------------------------------
# Note loader
# ---------------------------------------------------------------------------


def derive_slug(path: Path | PurePosixPath) -> str:
    """Filesystem-stable identifier: the base name without its extension."""
    return path.stem


def derive_title(body: str, path: Path | PurePosixPath) -> str:
    """Return the first level-1 heading in *body*, else the humanized file name."""
    in_code_block = False
    for line in body.splitlines():
        if _FENCE_RE.match(line):
            in_code_block = not in_code_block
            continue
        if in_code_block:
            continue
        m = _H1_RE.match(line)
        if m and m.group(1).strip():
            return m.group(1).strip()
    return path.stem.replace("_", " ")


def load_note(path: Path | str, content: str, root: Path | str | None = None) -> Note:
    """Build a :class:`Note` from a file *path* and its raw *content*.

    When *root* is given the stored path is made relative to it.  Metadata
    failures are re-raised as :class:`LoadError` tagged with *path*.
    """
    path = Path(path)
    metadata_text, body = split_frontmatter(content)
    try:
        metadata = decode_metadata(metadata_text)
    except MetadataError as exc:
        raise LoadError(path, exc) from exc

    rel = path.relative_to(root) if root is not None else path
    return Note(
        slug=derive_slug(path),
        path=PurePosixPath(rel.as_posix()),
        title=derive_title(body, path),
        content=body,
        metadata=metadata,
    )


def read_note(path: Path | str, root: Path | str | None = None) -> Note:
    """Read a ``.md`` file as UTF-8 (BOM tolerated) and return a fully-populated :class:`Note`."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise LoadError(path, exc) from exc
    log.debug("Loaded %s", path)
    return load_note(path, content, root)

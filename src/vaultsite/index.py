"""VaultIndex: immutable in-memory index of every note and its identifiers."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Literal

from vaultsite.errors import AmbiguousIdentifierError, LoadError, SlugCollisionError, TraversalError
from vaultsite.note import Note
from vaultsite.parser import read_note

log = logging.getLogger(__name__)

OnError = Literal["fail", "skip"]

MARKDOWN_SUFFIXES = frozenset({".md"})


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def is_hidden(name: str) -> bool:
    """Names starting with ``.`` or ``_`` are private/system entries."""
    return name.startswith((".", "_"))


def is_markdown(path: Path) -> bool:
    return path.suffix.lower() in MARKDOWN_SUFFIXES and path.is_file()


def walk_markdown(root: Path) -> Iterator[Path]:
    """Yield every visible markdown file under *root*, depth-first, sorted by name.

    Hidden entries are pruned together with their descendants.  Directory
    symlinks are followed; a directory that resolves to one already on the
    current descent path raises :class:`TraversalError`.  A directory or file
    reached a second time through another symlink is yielded only once.
    """
    root = Path(root)
    if not root.is_dir():
        raise TraversalError(root, "vault root is not a directory")
    yield from _walk(root, ancestors=(), visited=set())


def _walk(directory: Path, ancestors: tuple[Path, ...], visited: set[Path]) -> Iterator[Path]:
    real = Path(os.path.realpath(directory))
    if real in ancestors:
        raise TraversalError(directory, f"symlink cycle back to {real}")
    if real in visited:
        log.debug("Skipping %s: already visited as %s", directory, real)
        return
    visited.add(real)
    ancestors = (*ancestors, real)

    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise TraversalError(directory, f"cannot list directory: {exc.strerror or exc}") from exc

    for entry in entries:
        if is_hidden(entry.name):
            continue
        if entry.is_dir():
            yield from _walk(entry, ancestors, visited)
        elif is_markdown(entry):
            target = Path(os.path.realpath(entry))
            if target in visited:
                log.debug("Skipping %s: already visited as %s", entry, target)
                continue
            visited.add(target)
            yield entry


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


class VaultIndex:
    """The notes of one vault plus an identifier -> slug lookup table.

    Construction validates that slugs are unique and that no alias is claimed
    by two notes; the index is read-only afterwards.
    """

    def __init__(self, root: Path | str, notes: Iterable[Note], skipped: Iterable[LoadError] = ()) -> None:
        self.root = Path(root)
        self.skipped: tuple[LoadError, ...] = tuple(skipped)

        by_slug: dict[str, Note] = {}
        for note in notes:
            if note.slug in by_slug:
                raise SlugCollisionError(note.slug, [Path(by_slug[note.slug].path), Path(note.path)])
            by_slug[note.slug] = note
        self._notes = by_slug
        self._lookup = self._build_lookup(by_slug)

    @classmethod
    def from_directory(cls, root: Path | str, on_error: OnError = "fail") -> "VaultIndex":
        """Scan *root* recursively and load every visible markdown file."""
        if on_error not in ("fail", "skip"):
            raise ValueError(f"on_error must be 'fail' or 'skip', not {on_error!r}")
        root = Path(os.path.realpath(root))

        notes: list[Note] = []
        skipped: list[LoadError] = []
        for path in walk_markdown(root):
            try:
                notes.append(read_note(path, root))
            except LoadError as exc:
                if on_error == "fail":
                    raise
                log.warning("Skipping %s: %s", exc.path, exc.cause)
                skipped.append(exc)

        log.info("Loaded %d notes from %s (%d skipped)", len(notes), root, len(skipped))
        return cls(root, notes, skipped)

    @staticmethod
    def _build_lookup(notes: Mapping[str, Note]) -> dict[str, str]:
        lookup = {slug: slug for slug in notes}
        alias_owner: dict[str, str] = {}
        for slug, note in notes.items():
            for alias in note.metadata.aliases:
                owner = alias_owner.get(alias)
                if owner is not None and owner != slug:
                    raise AmbiguousIdentifierError(alias, [owner, slug])
                alias_owner[alias] = slug

        for alias, slug in alias_owner.items():
            if alias in notes and alias != slug:
                log.warning("Alias '%s' of '%s' is shadowed by the note with that slug", alias, slug)
                continue
            lookup[alias] = slug
        return lookup

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    @property
    def notes(self) -> Mapping[str, Note]:
        return MappingProxyType(self._notes)

    def find(self, identifier: str) -> Note | None:
        """Resolve a slug, else an alias, to its note (exact, case-sensitive)."""
        slug = self._lookup.get(identifier)
        return self._notes[slug] if slug is not None else None

    def get(self, slug: str) -> Note | None:
        return self._notes.get(slug)

    def notes_under(self, folder: str | PurePosixPath) -> list[Note]:
        """Return notes whose path lies under *folder* (inclusive, recursive)."""
        target = PurePosixPath(str(folder).strip("/") or ".")
        if target == PurePosixPath("."):
            return list(self._notes.values())
        return [n for n in self._notes.values() if n.folder == target or target in n.folder.parents]

    def __len__(self) -> int:
        return len(self._notes)

    def __iter__(self) -> Iterator[Note]:
        return iter(self._notes.values())

    def __contains__(self, slug: object) -> bool:
        return slug in self._notes

"""Wikilink / embed scanner and resolver.

Two marker forms are recognised in note bodies::

    [[Target]]   [[Target|Display]]     link  -> rendered as a hyperlink
    ![[Target]]  ![[Target|Display]]    embed -> replaced by the target's body

``Target`` is looked up through :meth:`VaultIndex.find`.  Every marker is
keyed by its exact source text so a renderer can substitute it verbatim.
Markers that do not resolve are *dangling*: they never enter the link/embed
maps but are recorded (and logged) so broken content stays visible.
"""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from vaultsite.errors import ReferenceConflictError
from vaultsite.note import Note

if TYPE_CHECKING:
    from vaultsite.index import VaultIndex

log = logging.getLogger(__name__)

# Optional "!" then [[Target]] or [[Target|Display]], confined to one line.
# Matching the "!" as part of the marker keeps embeds out of the link set.
MARKER_RE = re.compile(r"(?P<bang>!?)\[\[(?P<target>[^\[\]|\n]+)(?:\|(?P<display>[^\[\]\n]*))?\]\]")


class ReferenceKind(str, enum.Enum):
    LINK = "link"
    EMBED = "embed"


@dataclass(frozen=True)
class Reference:
    """One marker occurrence in a note body."""

    marker: str
    kind: ReferenceKind
    target: str
    display: str | None = None


@dataclass(frozen=True)
class ResolvedReference:
    source: str  # slug of the note containing the marker
    reference: Reference
    target: str | None  # resolved slug, None when dangling
    reason: str | None = None  # why it is dangling: "missing" or "private"

    @property
    def dangling(self) -> bool:
        return self.target is None


@dataclass(frozen=True)
class DanglingReference:
    source: str
    marker: str
    target: str
    kind: ReferenceKind
    reason: str = "missing"


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------


def scan_references(body: str) -> list[Reference]:
    """Return every link and embed marker in *body*, in document order."""
    result: list[Reference] = []
    for m in MARKER_RE.finditer(body):
        target = m.group("target").strip()
        if not target:
            continue
        display = (m.group("display") or "").strip() or None
        kind = ReferenceKind.EMBED if m.group("bang") else ReferenceKind.LINK
        result.append(Reference(marker=m.group(0), kind=kind, target=target, display=display))
    return result


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


@dataclass
class Resolution:
    """Aggregate reference maps for a set of notes."""

    linked_notes: dict[str, Note] = field(default_factory=dict)
    embedded_notes: dict[str, Note] = field(default_factory=dict)
    references: list[ResolvedReference] = field(default_factory=list)

    @property
    def dangling(self) -> tuple[DanglingReference, ...]:
        return dangling_of(self.references)

    @property
    def dangling_count(self) -> int:
        return sum(1 for r in self.references if r.dangling)


def dangling_of(references: Iterable[ResolvedReference]) -> tuple[DanglingReference, ...]:
    return tuple(
        DanglingReference(
            source=r.source,
            marker=r.reference.marker,
            target=r.reference.target,
            kind=r.reference.kind,
            reason=r.reason or "missing",
        )
        for r in references
        if r.dangling
    )


def _merge(mapping: dict[str, Note], marker: str, note: Note) -> None:
    """Keep-first merge; a marker may never map to two different notes."""
    existing = mapping.get(marker)
    if existing is None:
        mapping[marker] = note
    elif existing.slug != note.slug:
        raise ReferenceConflictError(marker, [existing.slug, note.slug])


class ReferenceResolver:
    """Resolves markers against a read-only :class:`VaultIndex`.

    *accept* filters resolved notes: a target it rejects is reported as a
    dangling reference with reason ``"private"``.
    """

    def __init__(self, index: "VaultIndex", accept: Callable[[Note], bool] | None = None) -> None:
        self.index = index
        self.accept = accept

    def resolve_note(self, note: Note) -> list[ResolvedReference]:
        resolved: list[ResolvedReference] = []
        for ref in scan_references(note.content):
            target = self.index.find(ref.target)
            if target is None:
                log.debug("Dangling %s in '%s': no note '%s'", ref.marker, note.slug, ref.target)
                resolved.append(ResolvedReference(note.slug, ref, None, "missing"))
            elif self.accept is not None and not self.accept(target):
                log.debug("Dangling %s in '%s': '%s' is private", ref.marker, note.slug, target.slug)
                resolved.append(ResolvedReference(note.slug, ref, None, "private"))
            else:
                resolved.append(ResolvedReference(note.slug, ref, target.slug))
        return resolved

    def resolve(self, notes: Iterable[Note]) -> Resolution:
        """Scan *notes* in order and build the aggregate link/embed maps."""
        result = Resolution()
        for note in notes:
            for item in self.resolve_note(note):
                result.references.append(item)
                if item.target is None:
                    continue
                target = self.index.notes[item.target]
                if item.reference.kind is ReferenceKind.EMBED:
                    _merge(result.embedded_notes, item.reference.marker, target)
                else:
                    _merge(result.linked_notes, item.reference.marker, target)

        if result.dangling_count:
            log.info("%d dangling reference(s) across %d marker(s)", result.dangling_count, len(result.references))
        return result

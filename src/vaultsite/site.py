"""Site assembly: the publishable subset of a vault plus its resolved references.

A site is described by a small TOML file::

    [site]
    title   = "My Wiki"
    folder  = "Notes"          # subtree of the vault to publish ("" = all)
    css     = "theme.css"      # optional stylesheet override
    index   = "index"          # slug listed first in the navigation
    include_private = false
    on_error = "fail"          # or "skip": malformed notes are logged and left out

:func:`build_site` loads the vault, selects the folder, resolves every marker
against the *whole* vault and returns an immutable :class:`Site` that can be
written to / read from a JSON snapshot.  Renderers and servers only ever talk
to the :class:`Site`; they never touch the filesystem.
"""

from __future__ import annotations

import json
import logging
import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Any

from vaultsite.errors import ConfigError
from vaultsite.index import OnError, VaultIndex, is_hidden
from vaultsite.note import Note
from vaultsite.references import (
    MARKER_RE,
    DanglingReference,
    Reference,
    ReferenceKind,
    ReferenceResolver,
    ResolvedReference,
    dangling_of,
)

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SiteConfig:
    title: str
    folder: str = ""
    css: str | None = None
    index: str = "index"
    include_private: bool = False
    on_error: OnError = "fail"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SiteConfig":
        site = data.get("site", data)
        if not site.get("title"):
            raise ConfigError("site configuration requires a 'title'")
        on_error = site.get("on_error", "fail")
        if on_error not in ("fail", "skip"):
            raise ConfigError(f"on_error must be 'fail' or 'skip', not {on_error!r}")
        return cls(
            title=str(site["title"]),
            folder=str(site.get("folder", "")),
            css=site.get("css"),
            index=str(site.get("index", "index")),
            include_private=bool(site.get("include_private", False)),
            on_error=on_error,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "folder": self.folder,
            "css": self.css,
            "index": self.index,
            "include_private": self.include_private,
            "on_error": self.on_error,
        }


def load_config(path: Path | str) -> SiteConfig:
    """Load a :class:`SiteConfig` from a ``.toml`` file."""
    try:
        with open(path, "rb") as fh:
            data = tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
    return SiteConfig.from_dict(data)


# ---------------------------------------------------------------------------
# Site snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Site:
    config: SiteConfig
    notes: tuple[Note, ...]
    linked_notes: Mapping[str, Note] = field(default_factory=dict, hash=False)
    embedded_notes: Mapping[str, Note] = field(default_factory=dict, hash=False)
    references: tuple[ResolvedReference, ...] = ()
    #: Vault-relative paths of files left out under the "skip" load policy
    skipped: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "linked_notes", MappingProxyType(dict(self.linked_notes)))
        object.__setattr__(self, "embedded_notes", MappingProxyType(dict(self.embedded_notes)))

    # ------------------------------------------------------------------
    # Server contract
    # ------------------------------------------------------------------

    def get(self, slug: str) -> Note | None:
        """Route *slug* to its published note, or ``None`` (not found)."""
        for note in self.notes:
            if note.slug == slug:
                return note
        return None

    # ------------------------------------------------------------------
    # Renderer contract
    # ------------------------------------------------------------------

    def nav(self) -> list[tuple[str, str]]:
        """``(slug, title)`` pairs: the index note first, then by title (case-insensitive)."""
        entries = sorted(((n.slug, n.title) for n in self.notes), key=lambda e: (e[1].lower(), e[0]))
        for i, (slug, _) in enumerate(entries):
            if slug == self.config.index:
                entries.insert(0, entries.pop(i))
                break
        return entries

    def markdown(self, note: Note) -> str:
        """Return *note*'s body with every marker substituted.

        Embeds are replaced by the embedded note's raw content and links by
        ``[Display](slug)``.  Substitution is a single pass over the original
        text, so embedded content is never re-scanned.  Unresolved markers
        fall back to plain text naming the missing target, after the
        display text when there is one: ``[[Missing|Shown]]`` becomes
        ``Shown (Missing)``.
        """

        def substitute(m: re.Match[str]) -> str:
            marker = m.group(0)
            embedded = self.embedded_notes.get(marker)
            if embedded is not None:
                return embedded.content
            linked = self.linked_notes.get(marker)
            display = (m.group("display") or "").strip()
            if linked is not None:
                return f"[{display or linked.title}]({linked.slug})"
            target = m.group("target").strip()
            return f"{display} ({target})" if display else target

        return MARKER_RE.sub(substitute, note.content)

    @property
    def dangling(self) -> tuple[DanglingReference, ...]:
        return dangling_of(self.references)

    @property
    def dangling_count(self) -> int:
        return sum(1 for r in self.references if r.dangling)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        # Every note a marker points at travels with the snapshot, even when
        # it lives outside the published folder.
        catalog: dict[str, Note] = {n.slug: n for n in self.notes}
        for target in (*self.linked_notes.values(), *self.embedded_notes.values()):
            catalog.setdefault(target.slug, target)

        return {
            "version": SNAPSHOT_VERSION,
            "config": self.config.to_dict(),
            "notes": [n.to_dict() for n in catalog.values()],
            "selected": [n.slug for n in self.notes],
            "linked_notes": {marker: n.slug for marker, n in self.linked_notes.items()},
            "embedded_notes": {marker: n.slug for marker, n in self.embedded_notes.items()},
            "references": [
                {
                    "source": r.source,
                    "marker": r.reference.marker,
                    "kind": r.reference.kind.value,
                    "target": r.reference.target,
                    "display": r.reference.display,
                    "resolved": r.target,
                    "reason": r.reason,
                }
                for r in self.references
            ],
            "skipped": list(self.skipped),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Site":
        version = data.get("version")
        if version != SNAPSHOT_VERSION:
            raise ValueError(f"unsupported snapshot version: {version!r}")
        catalog = {n["slug"]: Note.from_dict(n) for n in data["notes"]}
        return cls(
            config=SiteConfig.from_dict(data["config"]),
            notes=tuple(catalog[slug] for slug in data["selected"]),
            linked_notes={marker: catalog[slug] for marker, slug in data["linked_notes"].items()},
            embedded_notes={marker: catalog[slug] for marker, slug in data["embedded_notes"].items()},
            references=tuple(
                ResolvedReference(
                    source=r["source"],
                    reference=Reference(
                        marker=r["marker"],
                        kind=ReferenceKind(r["kind"]),
                        target=r["target"],
                        display=r.get("display"),
                    ),
                    target=r.get("resolved"),
                    reason=r.get("reason"),
                )
                for r in data.get("references", [])
            ),
            skipped=tuple(data.get("skipped", [])),
        )

    def save(self, path: Path | str) -> None:
        Path(path).write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")

    @classmethod
    def load(cls, path: Path | str) -> "Site":
        return cls.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def _is_public(note: Note) -> bool:
    return not note.metadata.private


def assemble_site(index: VaultIndex, config: SiteConfig) -> Site:
    """Select the notes under ``config.folder`` and resolve their references."""
    selected = index.notes_under(config.folder)
    accept = None
    if not config.include_private:
        selected = [n for n in selected if _is_public(n)]
        accept = _is_public

    resolution = ReferenceResolver(index, accept=accept).resolve(selected)
    log.info(
        "Assembled site '%s': %d notes, %d links, %d embeds",
        config.title,
        len(selected),
        len(resolution.linked_notes),
        len(resolution.embedded_notes),
    )
    return Site(
        config=config,
        notes=tuple(selected),
        linked_notes=resolution.linked_notes,
        embedded_notes=resolution.embedded_notes,
        references=tuple(resolution.references),
        skipped=tuple(err.path.relative_to(index.root).as_posix() for err in index.skipped),
    )


def _check_folder(root: Path, folder: str) -> None:
    """Reject a published folder the traversal can never reach."""
    rel = PurePosixPath(folder.strip("/") or ".")
    if rel == PurePosixPath("."):
        return
    if any(is_hidden(part) for part in rel.parts):
        raise ConfigError(f"folder {folder!r} is hidden and never traversed")
    if not (root / rel).is_dir():
        raise ConfigError(f"folder {folder!r} does not exist under {root}")


def build_site(vault_dir: Path | str, config: SiteConfig) -> Site:
    """Load the vault at *vault_dir* and assemble the site described by *config*.

    Raises :class:`ConfigError` when ``config.folder`` is missing or hidden.
    """
    index = VaultIndex.from_directory(vault_dir, on_error=config.on_error)
    _check_folder(index.root, config.folder)
    return assemble_site(index, config)

"""Exception taxonomy for vault loading and site assembly.

Every error raised by :mod:`vaultsite` derives from :class:`VaultError`, so
callers can fail a whole run with a single ``except``.  File-level errors
carry the originating path; identity errors carry the clashing identifiers.
"""

from __future__ import annotations

from pathlib import Path


class VaultError(Exception):
    """Base class for every vaultsite failure."""


class ConfigError(VaultError):
    """A site configuration is missing a required key or has a bad value."""


class MetadataError(VaultError):
    """A frontmatter block could not be decoded into :class:`Metadata`."""

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(f"{key}: {message}" if key else message)


class LoadError(VaultError):
    """A single note file could not be read or decoded."""

    def __init__(self, path: Path | str, cause: Exception) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"{self.path}: {cause}")


class TraversalError(VaultError):
    """The vault tree could not be walked (cycle, unreadable directory)."""

    def __init__(self, path: Path | str, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"{self.path}: {message}")


class SlugCollisionError(VaultError):
    """Two files share a base name and therefore a slug."""

    def __init__(self, slug: str, paths: list[Path]) -> None:
        self.slug = slug
        self.paths = paths
        joined = ", ".join(str(p) for p in paths)
        super().__init__(f"slug '{slug}' is claimed by more than one file: {joined}")


class AmbiguousIdentifierError(VaultError):
    """An alias is declared by more than one note."""

    def __init__(self, identifier: str, slugs: list[str]) -> None:
        self.identifier = identifier
        self.slugs = slugs
        super().__init__(f"identifier '{identifier}' matches several notes: {', '.join(slugs)}")


class ReferenceConflictError(VaultError):
    """The same marker text resolved to two different notes while merging."""

    def __init__(self, marker: str, slugs: list[str]) -> None:
        self.marker = marker
        self.slugs = slugs
        super().__init__(f"marker {marker} resolved to conflicting notes: {', '.join(slugs)}")

"""vaultsite: turn an Obsidian-style vault into a resolved, publishable site."""

from vaultsite._logging import configure_logging
from vaultsite.errors import (
    AmbiguousIdentifierError,
    ConfigError,
    LoadError,
    MetadataError,
    ReferenceConflictError,
    SlugCollisionError,
    TraversalError,
    VaultError,
)
from vaultsite.index import VaultIndex
from vaultsite.note import Layout, Metadata, Note
from vaultsite.parser import decode_metadata, load_note, read_note, split_frontmatter
from vaultsite.references import (
    DanglingReference,
    Reference,
    ReferenceKind,
    ReferenceResolver,
    Resolution,
    scan_references,
)
from vaultsite.site import Site, SiteConfig, assemble_site, build_site, load_config

__all__ = [
    "AmbiguousIdentifierError",
    "ConfigError",
    "DanglingReference",
    "Layout",
    "LoadError",
    "Metadata",
    "MetadataError",
    "Note",
    "Reference",
    "ReferenceConflictError",
    "ReferenceKind",
    "ReferenceResolver",
    "Resolution",
    "Site",
    "SiteConfig",
    "SlugCollisionError",
    "TraversalError",
    "VaultError",
    "VaultIndex",
    "assemble_site",
    "build_site",
    "configure_logging",
    "decode_metadata",
    "load_config",
    "load_note",
    "read_note",
    "scan_references",
    "split_frontmatter",
]

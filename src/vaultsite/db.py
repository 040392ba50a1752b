"""SiteDB: SQL audit views over an assembled site snapshot.

Uses DuckDB (in-memory) as the query engine over the site's notes and the
references found in them, and returns :mod:`polars` DataFrames.

Usage::

    with SiteDB(site) as db:
        db.dangling_report()            # broken markers, grouped per source
        db.table_view(filter_tag="python")
        db.query("SELECT slug FROM notes WHERE private")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import duckdb
import polars as pl

if TYPE_CHECKING:
    from vaultsite.site import Site


class SiteDB:
    """In-memory DuckDB database over a :class:`Site` snapshot."""

    def __init__(self, site: "Site") -> None:
        self.conn: duckdb.DuckDBPyConnection = duckdb.connect(":memory:")
        self.site = site
        self._create_schema()
        self._load()

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def _create_schema(self) -> None:
        self.conn.execute("""
            CREATE OR REPLACE TABLE notes (
                slug      VARCHAR PRIMARY KEY,
                title     VARCHAR,
                path      VARCHAR,
                published DATE,
                tags      VARCHAR[],
                aliases   VARCHAR[],
                layout    VARCHAR,
                permalink VARCHAR,
                private   BOOLEAN,
                selected  BOOLEAN
            )
        """)
        self.conn.execute("""
            CREATE OR REPLACE TABLE refs (
                source  VARCHAR,
                marker  VARCHAR,
                kind    VARCHAR,
                target  VARCHAR,
                resolved VARCHAR,
                reason  VARCHAR
            )
        """)

    def _load(self) -> None:
        selected = {n.slug for n in self.site.notes}
        catalog = {n.slug: n for n in self.site.notes}
        for note in (*self.site.linked_notes.values(), *self.site.embedded_notes.values()):
            catalog.setdefault(note.slug, note)

        note_rows = [
            (
                note.slug,
                note.title,
                note.path.as_posix(),
                note.metadata.date,
                list(note.metadata.tags),
                list(note.metadata.aliases),
                note.metadata.layout.value if note.metadata.layout else None,
                note.metadata.permalink,
                note.metadata.private,
                note.slug in selected,
            )
            for note in catalog.values()
        ]
        if note_rows:
            self.conn.executemany("INSERT INTO notes VALUES (?,?,?,?,?,?,?,?,?,?)", note_rows)

        ref_rows = [
            (r.source, r.reference.marker, r.reference.kind.value, r.reference.target, r.target, r.reason)
            for r in self.site.references
        ]
        if ref_rows:
            self.conn.executemany("INSERT INTO refs VALUES (?,?,?,?,?,?)", ref_rows)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def query(self, sql: str) -> pl.DataFrame:
        """Run a raw SQL query and return a Polars DataFrame."""
        return self.conn.execute(sql).pl()

    def table_view(self, *, filter_tag: str | None = None, order_by: str = "title") -> pl.DataFrame:
        """Published notes, optionally restricted to those carrying *filter_tag*."""
        params: list[str] = []
        where = "WHERE selected"
        if filter_tag:
            where += " AND list_contains(tags, ?)"
            params.append(filter_tag)
        safe_order = order_by.replace(";", "").replace("'", "")
        sql = f"SELECT slug, title, path, tags FROM notes {where} ORDER BY {safe_order}, slug"
        return self.conn.execute(sql, params).pl()

    def dangling_report(self) -> pl.DataFrame:
        """One row per broken (source, target, kind, reason) with its occurrence count."""
        return self.conn.execute(
            """
            SELECT source, target, kind, reason, COUNT(*) AS occurrences
            FROM refs
            WHERE resolved IS NULL
            GROUP BY source, target, kind, reason
            ORDER BY source, target, kind
            """
        ).pl()

    def tag_counts(self) -> pl.DataFrame:
        """Return a tag -> count table over published notes, sorted by frequency."""
        return self.conn.execute(
            """
            SELECT tag, COUNT(*) AS note_count
            FROM (SELECT unnest(tags) AS tag FROM notes WHERE selected)
            GROUP BY tag
            ORDER BY note_count DESC, tag
            """
        ).pl()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "SiteDB":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

"""Resolved link graph of a site.

Uses :mod:`networkx` to model which published note references which other
note, so backlinks and orphaned pages can be listed next to a page.
"""

from __future__ import annotations

import networkx as nx

from vaultsite.site import Site


def build_link_graph(site: Site) -> nx.DiGraph:
    """Return a directed graph of every resolved reference in *site*.

    Nodes are the selected notes plus any note outside the folder that a
    marker resolves to.  Each node carries ``title`` and ``selected``; each
    edge carries ``kinds``, the set of reference kinds (``link``/``embed``)
    seen between the two notes.
    """
    G: nx.DiGraph = nx.DiGraph()
    for note in site.notes:
        G.add_node(note.slug, title=note.title, selected=True)
    for note in (*site.linked_notes.values(), *site.embedded_notes.values()):
        if note.slug not in G:
            G.add_node(note.slug, title=note.title, selected=False)

    for ref in site.references:
        if ref.target is None:
            continue
        if G.has_edge(ref.source, ref.target):
            G.edges[ref.source, ref.target]["kinds"].add(ref.reference.kind.value)
        else:
            G.add_edge(ref.source, ref.target, kinds={ref.reference.kind.value})
    return G


def backlinks(site: Site, slug: str) -> list[tuple[str, str]]:
    """Return ``(slug, title)`` of selected notes that reference *slug*."""
    G = build_link_graph(site)
    if slug not in G:
        return []
    return [
        (src, G.nodes[src]["title"])
        for src in sorted(G.predecessors(slug))
        if src != slug and G.nodes[src]["selected"]
    ]


def orphans(site: Site) -> list[str]:
    """Slugs of selected notes nothing else references (the index note excluded)."""
    G = build_link_graph(site)
    return sorted(
        slug
        for slug, data in G.nodes(data=True)
        if data["selected"]
        and slug != site.config.index
        and not any(src != slug for src in G.predecessors(slug))
    )

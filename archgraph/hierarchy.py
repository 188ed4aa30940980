"""Rebuild directory structure for flat graph data.

Backends sometimes send only file and symbol nodes. Directory clustering
and the containment layouts need the directory nodes too, so they are
synthesised here from file paths together with ``contains`` edges.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Sequence, Set, Tuple

from .models import Edge, Node
from .paths import normalize_path


def reconstruct_hierarchy(nodes: Sequence[Node], edges: Sequence[Edge]) -> Tuple[List[Node], List[Edge]]:
    """Return copies of ``nodes``/``edges`` extended with missing directories.

    File nodes get their depth (when unset), ``file_path`` and ``parent_id``
    filled in on the returned copies; the caller's objects are not touched.
    """
    by_id: Dict[str, Node] = {n.id: n for n in nodes}
    new_nodes: List[Node] = []
    new_edges: List[Edge] = list(edges)
    edge_pairs: Set[Tuple[str, str]] = {(e.source, e.target) for e in edges}
    created: List[Node] = []

    def add_contains(parent: str, child: str) -> None:
        if (parent, child) in edge_pairs:
            return
        edge_pairs.add((parent, child))
        new_edges.append(Edge(id=f"e-{parent}-{child}", source=parent, target=child, type="contains"))

    def ensure_directory(path: str) -> str:
        if not path or path in (".", "/"):
            return ""
        normalized = normalize_path(path)
        if normalized in by_id:
            return normalized
        parts = normalized.split("/")
        parent = ensure_directory("/".join(parts[:-1])) if len(parts) > 1 else ""
        directory = Node(
            id=normalized,
            type="directory",
            label=parts[-1],
            depth=len(parts) - 1,
            file_path=normalized,
            parent_id=parent or None,
        )
        by_id[normalized] = directory
        created.append(directory)
        if parent:
            add_contains(parent, normalized)
        return normalized

    for node in nodes:
        if node.type != "file":
            new_nodes.append(node)
            continue
        path = normalize_path(node.file_path or node.id)
        parts = path.split("/")
        patched = replace(
            node,
            depth=node.depth or len(parts),
            file_path=node.file_path or path,
        )
        if len(parts) > 1:
            parent = ensure_directory("/".join(parts[:-1]))
            if parent and not node.parent_id:
                patched = replace(patched, parent_id=parent)
                add_contains(parent, node.id)
        new_nodes.append(patched)

    return new_nodes + created, new_edges

"""JSON graph input and layout output helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

from .models import Cluster, Edge, Node, Position

logger = logging.getLogger(__name__)


def parse_graph(payload: Dict[str, Any]) -> Tuple[List[Node], List[Edge]]:
    """Build nodes and edges from a ``{"nodes": [...], "edges": [...]}`` mapping.

    Raises:
        ValueError: the payload is not a graph mapping or an entry lacks
            a required key.
    """
    if not isinstance(payload, dict):
        raise ValueError("Graph payload must be a JSON object")
    try:
        nodes = [Node.from_dict(item) for item in payload.get("nodes", [])]
        edges = [Edge.from_dict(item) for item in payload.get("edges", [])]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed graph entry: {exc}") from exc
    return nodes, edges


def load_graph(path: Path) -> Tuple[List[Node], List[Edge]]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path} is not valid JSON: {exc}") from exc
    nodes, edges = parse_graph(payload)
    logger.debug("Loaded %d nodes and %d edges from %s", len(nodes), len(edges), path)
    return nodes, edges


def dedupe_edges(edges: Sequence[Edge]) -> Tuple[List[Edge], int]:
    """Keep the first edge per (source, target, type); return it with the drop count."""
    seen: set[Tuple[str, str, str]] = set()
    unique: List[Edge] = []
    for edge in edges:
        key = (edge.source, edge.target, edge.type)
        if key in seen:
            continue
        seen.add(key)
        unique.append(edge)
    return unique, len(edges) - len(unique)


def positions_payload(positions: Dict[str, Position]) -> Dict[str, Dict[str, float]]:
    return {node_id: pos.to_dict() for node_id, pos in positions.items()}


def write_positions(positions: Dict[str, Position], output_file: Path) -> None:
    output_file.write_text(json.dumps(positions_payload(positions), indent=2), encoding="utf-8")


def clusters_payload(clusters: Sequence[Cluster]) -> List[Dict[str, Any]]:
    return [cluster.to_dict() for cluster in clusters]

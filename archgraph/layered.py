"""Layered (Sugiyama-style) directed graph layout on top of networkx.

Phases:
  1. Cycle handling   (strongly connected components share a rank)
  2. Rank assignment  (longest path over the condensation)
  3. Ordering         (barycenter sweeps within each rank)
  4. Coordinates      (node sizes, node/rank separation, margins)

``run_layered_engine`` works on a ``networkx.DiGraph`` whose nodes carry
``width``/``height`` attributes and writes center-anchored ``x``/``y``
attributes back, the same contract dagre-style engines expose.
``layered_layout`` adapts that to the library's node/edge shapes and
top-left anchored positions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Literal, Optional, Sequence

import networkx as nx

from .models import LayoutEdge, LayoutNode, Position

logger = logging.getLogger(__name__)

Direction = Literal["TB", "LR"]

MAX_ORDERING_PASSES = 8


@dataclass
class LayeredOptions:
    direction: Direction = "TB"
    node_separation: float = 50.0
    rank_separation: float = 80.0
    margin_x: float = 20.0
    margin_y: float = 20.0
    node_width: float = 180.0
    node_height: float = 40.0

    def __post_init__(self) -> None:
        if self.direction not in ("TB", "LR"):
            raise ValueError(f"Unsupported direction: {self.direction!r}")


def assign_ranks(graph: nx.DiGraph) -> Dict[str, int]:
    """Longest-path ranks; every node of a cycle lands on the same rank."""
    condensed = nx.condensation(graph)
    members = condensed.graph["mapping"]
    component_rank: Dict[int, int] = {}
    for component in nx.topological_sort(condensed):
        preds = [component_rank[p] + 1 for p in condensed.predecessors(component)]
        component_rank[component] = max(preds, default=0)
    return {node: component_rank[members[node]] for node in graph.nodes}


def _barycenter(neighbours: List[str], index: Dict[str, float], fallback: float) -> float:
    positions = [index[n] for n in neighbours if n in index]
    if not positions:
        return fallback
    return sum(positions) / len(positions)


def order_ranks(graph: nx.DiGraph, ranks: Dict[str, int]) -> List[List[str]]:
    """Order nodes inside each rank to reduce crossings.

    Starts from insertion order and alternates downward (predecessor) and
    upward (successor) barycenter sweeps. Sorting is stable, so ties keep
    their previous order and the result is deterministic.
    """
    rank_count = max(ranks.values(), default=-1) + 1
    layers: List[List[str]] = [[] for _ in range(rank_count)]
    for node in graph.nodes:
        layers[ranks[node]].append(node)

    for _ in range(MAX_ORDERING_PASSES):
        before = [list(layer) for layer in layers]
        for i in range(1, rank_count):
            index = {n: float(pos) for pos, n in enumerate(layers[i - 1])}
            current = {n: float(pos) for pos, n in enumerate(layers[i])}
            layers[i].sort(
                key=lambda n, idx=index, cur=current: _barycenter(list(graph.predecessors(n)), idx, cur[n])
            )
        for i in range(rank_count - 2, -1, -1):
            index = {n: float(pos) for pos, n in enumerate(layers[i + 1])}
            current = {n: float(pos) for pos, n in enumerate(layers[i])}
            layers[i].sort(
                key=lambda n, idx=index, cur=current: _barycenter(list(graph.successors(n)), idx, cur[n])
            )
        if layers == before:
            break
    return layers


def run_layered_engine(graph: nx.DiGraph, options: LayeredOptions) -> None:
    """Compute center-anchored ``x``/``y`` for every node of ``graph`` in place."""
    if graph.number_of_nodes() == 0:
        return

    for node, data in graph.nodes(data=True):
        data.setdefault("width", options.node_width)
        data.setdefault("height", options.node_height)

    horizontal = options.direction == "LR"
    # Along-rank extent is the dimension nodes are packed in; cross-rank
    # extent decides how thick each rank is.
    along = "height" if horizontal else "width"
    across = "width" if horizontal else "height"

    layers = order_ranks(graph, assign_ranks(graph))

    extents = [
        sum(graph.nodes[n][along] for n in layer) + options.node_separation * (len(layer) - 1)
        for layer in layers
    ]
    widest = max(extents)

    rank_offset = 0.0
    for layer, extent in zip(layers, extents):
        thickness = max(graph.nodes[n][across] for n in layer)
        cursor = (widest - extent) / 2
        for node in layer:
            data = graph.nodes[node]
            along_center = cursor + data[along] / 2
            across_center = rank_offset + thickness / 2
            if horizontal:
                data["x"] = options.margin_x + across_center
                data["y"] = options.margin_y + along_center
            else:
                data["x"] = options.margin_x + along_center
                data["y"] = options.margin_y + across_center
            cursor += data[along] + options.node_separation
        rank_offset += thickness + options.rank_separation

    logger.debug(
        "Layered engine placed %d nodes on %d ranks (%s)",
        graph.number_of_nodes(), len(layers), options.direction,
    )


def build_digraph(
    nodes: Sequence[LayoutNode],
    edges: Sequence[LayoutEdge],
    default_width: float = 180.0,
    default_height: float = 40.0,
) -> nx.DiGraph:
    """Build a DiGraph with sized nodes; edges to unknown ids and self-loops are skipped."""
    graph = nx.DiGraph()
    for node in nodes:
        graph.add_node(
            node.id,
            width=node.width or default_width,
            height=node.height or default_height,
        )
    skipped = 0
    for edge in edges:
        if edge.source not in graph or edge.target not in graph or edge.source == edge.target:
            skipped += 1
            continue
        graph.add_edge(edge.source, edge.target, id=edge.id)
    if skipped:
        logger.debug("Skipped %d edges with unknown endpoints or self-loops", skipped)
    return graph


def layered_layout(
    nodes: Sequence[LayoutNode],
    edges: Sequence[LayoutEdge],
    direction: Direction = "TB",
    options: Optional[LayeredOptions] = None,
) -> Dict[str, Position]:
    """Layered directed layout returning top-left anchored positions."""
    opts = replace(options or LayeredOptions(), direction=direction)

    graph = build_digraph(nodes, edges, opts.node_width, opts.node_height)
    run_layered_engine(graph, opts)

    positions: Dict[str, Position] = {}
    for node_id, data in graph.nodes(data=True):
        positions[node_id] = Position(
            x=data["x"] - data["width"] / 2,
            y=data["y"] - data["height"] / 2,
        )
    return positions

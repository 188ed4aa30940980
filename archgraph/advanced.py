"""Advanced graph layout engine (layered or force) run off the event loop.

The engine computation happens in a worker thread via
``asyncio.to_thread``, so awaiting :func:`advanced_layout` suspends the
caller. Any failure, including a malformed graph, is raised from the
awaited call as :class:`LayoutEngineError`; nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Dict, Literal, Optional, Sequence

import networkx as nx

from .layered import LayeredOptions, run_layered_engine
from .models import LayoutEdge, LayoutNode, Position

logger = logging.getLogger(__name__)

Algorithm = Literal["layered", "force"]


class LayoutEngineError(RuntimeError):
    """Raised when the advanced engine rejects a graph or fails mid-layout."""


@dataclass
class AdvancedOptions:
    node_spacing: float = 60.0
    layer_spacing: float = 80.0
    force_iterations: int = 300
    padding: float = 12.0
    node_width: float = 180.0
    node_height: float = 40.0
    seed: Optional[int] = None


def _build_graph(
    nodes: Sequence[LayoutNode],
    edges: Sequence[LayoutEdge],
    options: AdvancedOptions,
) -> nx.DiGraph:
    graph = nx.DiGraph()
    for node in nodes:
        if node.id in graph:
            raise LayoutEngineError(f"Duplicate node id '{node.id}'")
        graph.add_node(
            node.id,
            width=node.width or options.node_width,
            height=node.height or options.node_height,
        )
    for edge in edges:
        missing = [end for end in (edge.source, edge.target) if end not in graph]
        if missing:
            raise LayoutEngineError(
                f"Edge '{edge.id}' references unknown node(s): {', '.join(missing)}"
            )
        if edge.source != edge.target:
            graph.add_edge(edge.source, edge.target, id=edge.id)
    return graph


def _layered(graph: nx.DiGraph, options: AdvancedOptions) -> Dict[str, Position]:
    run_layered_engine(
        graph,
        LayeredOptions(
            direction="TB",
            node_separation=options.node_spacing,
            rank_separation=options.layer_spacing,
            margin_x=options.padding,
            margin_y=options.padding,
            node_width=options.node_width,
            node_height=options.node_height,
        ),
    )
    return {
        node: Position(x=data["x"] - data["width"] / 2, y=data["y"] - data["height"] / 2)
        for node, data in graph.nodes(data=True)
    }


def _force(graph: nx.DiGraph, options: AdvancedOptions) -> Dict[str, Position]:
    if graph.number_of_nodes() == 0:
        return {}
    largest = max(max(d["width"], d["height"]) for _, d in graph.nodes(data=True))
    scale = (largest + options.node_spacing) * math.sqrt(graph.number_of_nodes())
    raw = nx.spring_layout(
        graph.to_undirected(as_view=True),
        iterations=options.force_iterations,
        seed=options.seed,
        scale=scale,
    )
    min_x = min(float(p[0]) for p in raw.values())
    min_y = min(float(p[1]) for p in raw.values())
    return {
        node: Position(
            x=float(raw[node][0]) - min_x + options.padding,
            y=float(raw[node][1]) - min_y + options.padding,
        )
        for node in graph.nodes
    }


def run_advanced_engine(
    nodes: Sequence[LayoutNode],
    edges: Sequence[LayoutEdge],
    algorithm: Algorithm = "layered",
    options: Optional[AdvancedOptions] = None,
) -> Dict[str, Position]:
    """Blocking engine entry point. Positions are top-left anchored."""
    opts = options or AdvancedOptions()
    graph = _build_graph(nodes, edges, opts)
    if algorithm == "layered":
        return _layered(graph, opts)
    if algorithm == "force":
        return _force(graph, opts)
    raise LayoutEngineError(f"Unknown layout algorithm '{algorithm}'")


async def advanced_layout(
    nodes: Sequence[LayoutNode],
    edges: Sequence[LayoutEdge],
    algorithm: Algorithm = "layered",
    options: Optional[AdvancedOptions] = None,
) -> Dict[str, Position]:
    """Run the advanced engine in a worker thread and await the positions."""
    try:
        positions = await asyncio.to_thread(run_advanced_engine, nodes, edges, algorithm, options)
    except LayoutEngineError:
        raise
    except Exception as exc:
        raise LayoutEngineError(f"Advanced '{algorithm}' layout failed: {exc}") from exc
    logger.debug("Advanced %s layout placed %d nodes", algorithm, len(positions))
    return positions

"""Layout strategies and the dispatcher that selects between them.

Every strategy is exposed through the same coroutine,
:func:`compute_layout`, so callers never branch on whether a given
strategy is synchronous or not.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Set

from .advanced import AdvancedOptions, advanced_layout
from .config_manager import LayoutSettings
from .force import adaptive_iterations, force_layout_async
from .layered import LayeredOptions, layered_layout
from .models import Edge, LayoutEdge, LayoutNode, Node, Position
from .paths import directory_path, normalize_path

logger = logging.getLogger(__name__)

DEPENDENCY_EDGE_TYPES = {"calls", "imports"}


class UnsupportedLayoutModeError(ValueError):
    """Raised for layout mode identifiers the dispatcher does not know."""


class LayoutMode(str, Enum):
    HIERARCHICAL = "hierarchical"
    BY_FILE = "by-file"
    BY_MODULE = "by-module"
    DEPENDENCY_ONLY = "dependency-only"
    LAYERED_TB = "layered-tb"
    LAYERED_LR = "layered-lr"
    ADVANCED_LAYERED = "advanced-layered"
    ADVANCED_FORCE = "advanced-force"
    FORCE = "force"

    @classmethod
    def parse(cls, value: "str | LayoutMode") -> "LayoutMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise UnsupportedLayoutModeError(
                f"Unsupported layout mode '{value}'. Choose one of: {choices}"
            ) from None


# ------------------------------------------------------------------
# Shape adapters
# ------------------------------------------------------------------

def to_layout_nodes(nodes: Sequence[Node], width: float = 180.0, height: float = 40.0) -> List[LayoutNode]:
    return [LayoutNode(id=n.id, width=width, height=height, depth=n.depth) for n in nodes]


def to_layout_edges(edges: Sequence[Edge]) -> List[LayoutEdge]:
    return [LayoutEdge(id=e.id, source=e.source, target=e.target) for e in edges]


# ------------------------------------------------------------------
# Hierarchical and grouped layouts
# ------------------------------------------------------------------

def hierarchical_layout(
    nodes: Sequence[LayoutNode],
    spacing: float = 220.0,
    level_height: float = 80.0,
) -> Dict[str, Position]:
    """Place nodes in rows by depth, each row centred on x = 0."""
    buckets: "OrderedDict[int, List[LayoutNode]]" = OrderedDict()
    for node in nodes:
        buckets.setdefault(node.depth, []).append(node)

    positions: Dict[str, Position] = {}
    for depth, bucket in buckets.items():
        start_x = -(len(bucket) * spacing) / 2
        for i, node in enumerate(bucket):
            positions[node.id] = Position(
                x=start_x + i * spacing + spacing / 2,
                y=depth * level_height,
            )
    return positions


def file_group_key(node: Node) -> str:
    """Owning file of a node: the file itself, or the file part of a symbol."""
    if node.type == "file":
        return normalize_path(node.file_path or node.id)
    if node.type == "directory":
        return normalize_path(node.id)
    if "::" in node.id:
        return normalize_path(node.id.split("::")[0])
    return normalize_path(node.parent_id or node.file_path or node.id)


def grouped_layout(
    nodes: Sequence[Node],
    group_key: Callable[[Node], str],
    column_spacing: float = 260.0,
    row_spacing: float = 60.0,
) -> Dict[str, Position]:
    """One column per group, in first-seen order, members stacked downward."""
    groups: "OrderedDict[str, List[Node]]" = OrderedDict()
    for node in nodes:
        groups.setdefault(group_key(node), []).append(node)

    positions: Dict[str, Position] = {}
    for column, members in enumerate(groups.values()):
        for row, node in enumerate(members):
            positions[node.id] = Position(x=column * column_spacing, y=row * row_spacing)
    return positions


# ------------------------------------------------------------------
# Dispatcher
# ------------------------------------------------------------------

def _layered_options(settings: LayoutSettings) -> LayeredOptions:
    return LayeredOptions(
        node_separation=settings.node_separation,
        rank_separation=settings.rank_separation,
        margin_x=settings.margin,
        margin_y=settings.margin,
        node_width=settings.node_width,
        node_height=settings.node_height,
    )


def _advanced_options(settings: LayoutSettings) -> AdvancedOptions:
    return AdvancedOptions(
        node_spacing=settings.advanced_node_spacing,
        layer_spacing=settings.advanced_layer_spacing,
        force_iterations=settings.advanced_force_iterations,
        node_width=settings.node_width,
        node_height=settings.node_height,
        seed=settings.force_seed,
    )


async def compute_layout(
    mode: "str | LayoutMode",
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    settings: Optional[LayoutSettings] = None,
    rng: Optional[random.Random] = None,
) -> Dict[str, Position]:
    """Compute positions for ``nodes`` with the strategy named by ``mode``.

    Raises:
        UnsupportedLayoutModeError: ``mode`` is not a known identifier.
        LayoutEngineError: the advanced engine failed.
    """
    layout_mode = LayoutMode.parse(mode)
    settings = settings or LayoutSettings()
    layout_nodes = to_layout_nodes(nodes, settings.node_width, settings.node_height)
    started = time.perf_counter()

    if layout_mode is LayoutMode.HIERARCHICAL:
        positions = hierarchical_layout(layout_nodes, settings.hierarchical_spacing, settings.level_height)
    elif layout_mode is LayoutMode.BY_FILE:
        positions = grouped_layout(nodes, file_group_key, settings.group_column_spacing, settings.group_row_spacing)
    elif layout_mode is LayoutMode.BY_MODULE:
        positions = grouped_layout(nodes, directory_path, settings.group_column_spacing, settings.group_row_spacing)
    elif layout_mode is LayoutMode.DEPENDENCY_ONLY:
        dependency_edges = [e for e in edges if e.type in DEPENDENCY_EDGE_TYPES]
        positions = layered_layout(layout_nodes, to_layout_edges(dependency_edges), "TB", _layered_options(settings))
    elif layout_mode is LayoutMode.LAYERED_TB:
        positions = layered_layout(layout_nodes, to_layout_edges(edges), "TB", _layered_options(settings))
    elif layout_mode is LayoutMode.LAYERED_LR:
        positions = layered_layout(layout_nodes, to_layout_edges(edges), "LR", _layered_options(settings))
    elif layout_mode is LayoutMode.ADVANCED_LAYERED:
        positions = await advanced_layout(layout_nodes, to_layout_edges(edges), "layered", _advanced_options(settings))
    elif layout_mode is LayoutMode.ADVANCED_FORCE:
        positions = await advanced_layout(layout_nodes, to_layout_edges(edges), "force", _advanced_options(settings))
    elif layout_mode is LayoutMode.FORCE:
        if rng is None and settings.force_seed is not None:
            rng = random.Random(settings.force_seed)
        iterations = adaptive_iterations(len(layout_nodes), settings.force_iterations)
        positions = await force_layout_async(layout_nodes, to_layout_edges(edges), iterations, rng=rng)
    else:
        raise UnsupportedLayoutModeError(f"No strategy registered for '{layout_mode.value}'")

    logger.debug(
        "Layout '%s' placed %d nodes in %.1f ms",
        layout_mode.value, len(positions), (time.perf_counter() - started) * 1000,
    )
    return positions


def _cancelling_current_task() -> bool:
    """Whether the running task itself has a pending cancellation request."""
    current = asyncio.current_task()
    return current is not None and current.cancelling() > 0


@dataclass
class LayoutResult:
    request_id: int
    mode: LayoutMode
    positions: Dict[str, Position]


class LayoutSession:
    """Serialises overlapping layout requests for one view.

    Each request gets a monotonically increasing id; a result is applied
    only if no newer request was issued while it was being computed.
    Superseded results are dropped and reported as ``None``.
    """

    def __init__(
        self,
        settings: Optional[LayoutSettings] = None,
        cancel_previous: bool = True,
    ) -> None:
        self.settings = settings or LayoutSettings()
        self.cancel_previous = cancel_previous
        self.latest_request_id = 0
        self.current: Optional[LayoutResult] = None
        self._inflight: Optional[asyncio.Task] = None
        self._superseded: Set[asyncio.Future] = set()

    def is_current(self, request_id: int) -> bool:
        return request_id == self.latest_request_id

    async def request(
        self,
        mode: "str | LayoutMode",
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        rng: Optional[random.Random] = None,
    ) -> Optional[LayoutResult]:
        layout_mode = LayoutMode.parse(mode)
        self.latest_request_id += 1
        request_id = self.latest_request_id

        if self.cancel_previous and self._inflight is not None and not self._inflight.done():
            self._superseded.add(self._inflight)
            self._inflight.cancel()

        task = asyncio.ensure_future(compute_layout(layout_mode, nodes, edges, self.settings, rng))
        self._inflight = task
        try:
            positions = await task
        except asyncio.CancelledError:
            # Only a cancellation issued by a newer request is absorbed; one
            # aimed at the caller's own task propagates.
            if task not in self._superseded or _cancelling_current_task():
                raise
            logger.debug("Layout request %d cancelled by a newer request", request_id)
            return None
        finally:
            self._superseded.discard(task)

        if not self.is_current(request_id):
            logger.debug("Discarding stale layout result %d (latest is %d)", request_id, self.latest_request_id)
            return None

        self.current = LayoutResult(request_id=request_id, mode=layout_mode, positions=positions)
        return self.current

"""Core data models shared by clustering, filtering, and layout."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Set, Tuple

NodeType = Literal["file", "directory", "function", "class", "module"]
EdgeType = Literal["contains", "imports", "calls", "inherits"]

NODE_TYPES = ("file", "directory", "function", "class", "module")
EDGE_TYPES = ("contains", "imports", "calls", "inherits")

# true = expanded, false = collapsed, missing = expanded
ClusterState = Dict[str, bool]


def _checked_type(value: Any, allowed: Tuple[str, ...], kind: str) -> Any:
    if value not in allowed:
        raise ValueError(f"Unknown {kind} type {value!r}; expected one of: {', '.join(allowed)}")
    return value


@dataclass
class Node:
    id: str
    type: NodeType
    label: str
    depth: int = 0
    file_path: Optional[str] = None
    parent_id: Optional[str] = None
    language: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Node":
        """Build a node from the camelCase JSON shape used by graph files.

        Raises:
            ValueError: ``type`` is not one of :data:`NODE_TYPES`.
        """
        node_id = str(payload["id"])
        return cls(
            id=node_id,
            type=_checked_type(payload.get("type", "file"), NODE_TYPES, "node"),
            label=payload.get("label") or node_id,
            depth=int(payload.get("depth", 0) or 0),
            file_path=payload.get("filePath"),
            parent_id=payload.get("parentId"),
            language=payload.get("language"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "depth": self.depth,
        }
        if self.file_path is not None:
            data["filePath"] = self.file_path
        if self.parent_id is not None:
            data["parentId"] = self.parent_id
        if self.language is not None:
            data["language"] = self.language
        return data


@dataclass
class Edge:
    id: str
    source: str
    target: str
    type: EdgeType = "contains"

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Edge":
        source = str(payload["source"])
        target = str(payload["target"])
        return cls(
            id=payload.get("id") or f"e-{source}-{target}",
            source=source,
            target=target,
            type=_checked_type(payload.get("type", "contains"), EDGE_TYPES, "edge"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "source": self.source, "target": self.target, "type": self.type}


@dataclass
class LayoutNode:
    """Reduced node shape consumed by the layout algorithms."""
    id: str
    width: float = 180.0
    height: float = 40.0
    depth: int = 0


@dataclass
class LayoutEdge:
    id: str
    source: str
    target: str


@dataclass
class Position:
    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass
class ClusterMetrics:
    node_count: int = 0
    file_count: int = 0
    function_count: int = 0
    class_count: int = 0


@dataclass
class Cluster:
    """A group of nodes sharing one resolved directory path."""
    id: str
    label: str
    path: str
    node_ids: List[str]
    metrics: ClusterMetrics
    depth: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "path": self.path,
            "nodeIds": list(self.node_ids),
            "metrics": {
                "nodeCount": self.metrics.node_count,
                "fileCount": self.metrics.file_count,
                "functionCount": self.metrics.function_count,
                "classCount": self.metrics.class_count,
            },
            "depth": self.depth,
        }


@dataclass
class ClusterView:
    """Visible slice of the graph for a given cluster state.

    ``cluster_nodes`` lists collapsed clusters, to be drawn as single
    summary nodes in place of their hidden members.
    """
    nodes: List[Node]
    edges: List[Edge]
    cluster_nodes: List[Cluster]


@dataclass
class FilterCriteria:
    search_term: str = ""
    node_types: Set[str] = field(default_factory=set)
    languages: Set[str] = field(default_factory=set)
    path_pattern: str = ""
    show_neighbors: bool = False

    @property
    def is_active(self) -> bool:
        """Whether any predicate would actually narrow the node set."""
        return bool(
            self.search_term.strip()
            or self.node_types
            or self.languages
            or self.path_pattern.strip()
        )

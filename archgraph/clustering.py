"""Directory-based clustering for large graphs.

Nodes that share a resolved directory path are grouped into a cluster which
the renderer can collapse into a single summary node. Expansion state lives
in a plain ``{cluster_id: bool}`` mapping owned by the caller; every
function here returns a new mapping instead of mutating the one passed in.
"""

from __future__ import annotations

import json
import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence

from .config import CLUSTER_STATE_NAMESPACE
from .models import Cluster, ClusterMetrics, ClusterState, ClusterView, Edge, Node
from .paths import directory_path, path_depth, path_label
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

CLUSTER_ID_PREFIX = "cluster-"


def cluster_id_for_path(path: str) -> str:
    return f"{CLUSTER_ID_PREFIX}{path}"


def _metrics(nodes: Sequence[Node]) -> ClusterMetrics:
    return ClusterMetrics(
        node_count=len(nodes),
        file_count=sum(1 for n in nodes if n.type == "file"),
        function_count=sum(1 for n in nodes if n.type == "function"),
        class_count=sum(1 for n in nodes if n.type == "class"),
    )


def cluster_nodes_by_directory(
    nodes: Iterable[Node],
    min_cluster_size: int = 5,
    max_depth: int = 3,
) -> List[Cluster]:
    """Group nodes into clusters by directory path.

    Args:
        nodes: All nodes in the graph.
        min_cluster_size: Minimum members required to form a cluster.
        max_depth: Nodes whose directory is nested deeper than this are
            left unclustered.

    Returns:
        Clusters sorted by depth (shallow first), then by path.
    """
    groups: "OrderedDict[str, List[Node]]" = OrderedDict()
    for node in nodes:
        path = directory_path(node)
        if path_depth(path) > max_depth:
            continue
        groups.setdefault(path, []).append(node)

    clusters = [
        Cluster(
            id=cluster_id_for_path(path),
            label=path_label(path),
            path=path,
            node_ids=[n.id for n in members],
            metrics=_metrics(members),
            depth=path_depth(path),
        )
        for path, members in groups.items()
        if len(members) >= min_cluster_size
    ]
    clusters.sort(key=lambda c: (c.depth, c.path))

    logger.debug(
        "Clustered %d directory groups into %d clusters (min_size=%d, max_depth=%d)",
        len(groups), len(clusters), min_cluster_size, max_depth,
    )
    return clusters


def cluster_for_node(node: Node, clusters: Iterable[Cluster]) -> Optional[Cluster]:
    """Return the cluster owning ``node``, if any."""
    wanted = cluster_id_for_path(directory_path(node))
    for cluster in clusters:
        if cluster.id == wanted:
            return cluster
    return None


def filter_by_cluster_state(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    clusters: Sequence[Cluster],
    state: ClusterState,
) -> ClusterView:
    """Return the nodes and edges visible under ``state``.

    Members of a collapsed cluster are hidden and the cluster itself is
    reported once in ``cluster_nodes``. Edges survive only when both
    endpoints are visible, which also drops edges to unknown ids.
    """
    by_id: Dict[str, Cluster] = {c.id: c for c in clusters}
    visible: set[str] = set()
    collapsed: "OrderedDict[str, Cluster]" = OrderedDict()

    for node in nodes:
        cluster = by_id.get(cluster_id_for_path(directory_path(node)))
        if cluster is None or state.get(cluster.id) is not False:
            visible.add(node.id)
        elif cluster.id not in collapsed:
            collapsed[cluster.id] = cluster

    visible_edges = [e for e in edges if e.source in visible and e.target in visible]
    dropped = len(edges) - len(visible_edges)
    if dropped:
        logger.debug("Hid %d edges with a hidden or unknown endpoint", dropped)

    return ClusterView(
        nodes=[n for n in nodes if n.id in visible],
        edges=visible_edges,
        cluster_nodes=list(collapsed.values()),
    )


def toggle_cluster(cluster_id: str, state: ClusterState) -> ClusterState:
    """Flip one cluster. A collapsed cluster expands; anything else collapses."""
    new_state = dict(state)
    new_state[cluster_id] = state.get(cluster_id) is False
    return new_state


def expand_all_clusters(clusters: Iterable[Cluster]) -> ClusterState:
    return {cluster.id: True for cluster in clusters}


def collapse_all_clusters(clusters: Iterable[Cluster]) -> ClusterState:
    return {cluster.id: False for cluster in clusters}


class ClusterStateStore:
    """Load and save cluster state through an injected key-value store.

    Keys look like ``archmind-cluster-state-<repo_id>``.
    """

    def __init__(self, store: KeyValueStore, namespace: str = CLUSTER_STATE_NAMESPACE) -> None:
        self.store = store
        self.namespace = namespace

    def key_for(self, repo_id: str) -> str:
        return f"{self.namespace}-cluster-state-{repo_id}"

    def load(self, repo_id: str) -> ClusterState:
        raw = self.store.get(self.key_for(repo_id))
        if not raw:
            return {}
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse cluster state for '%s': %s", repo_id, exc)
            return {}
        if not isinstance(payload, dict):
            logger.error("Cluster state for '%s' is not a mapping", repo_id)
            return {}
        return {str(k): bool(v) for k, v in payload.items() if isinstance(v, bool)}

    def save(self, repo_id: str, state: ClusterState) -> None:
        self.store.set(self.key_for(repo_id), json.dumps(state, sort_keys=True))

    def reset(self, repo_id: str) -> None:
        self.save(repo_id, {})

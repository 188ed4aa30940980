"""Node filter predicates and matching-set expansion.

The matching set only drives visual emphasis; nothing is removed from the
graph here.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Pattern, Sequence, Set

from .models import Edge, FilterCriteria, Node
from .paths import normalize_path

logger = logging.getLogger(__name__)


def glob_to_regex(pattern: str) -> Pattern[str]:
    """Translate a glob-like pattern into an unanchored, case-insensitive regex.

    ``*`` becomes ``.*`` and therefore crosses ``/`` boundaries:
    ``src/*.ts`` matches ``src/sub/a.ts``.
    """
    escaped = re.escape(normalize_path(pattern))
    translated = escaped.replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(translated, re.IGNORECASE)


def _matches_type(node: Node, criteria: FilterCriteria) -> bool:
    return not criteria.node_types or node.type in criteria.node_types


def _matches_language(node: Node, criteria: FilterCriteria) -> bool:
    if not criteria.languages:
        return True
    # Directories carry no language and drop out under any language filter.
    # TODO: decide whether directories should stay visible here instead.
    if node.type == "directory":
        return False
    return bool(node.language) and node.language in criteria.languages


def _matches_path(node: Node, criteria: FilterCriteria) -> bool:
    pattern = criteria.path_pattern.strip()
    if not pattern:
        return True
    path = normalize_path(node.file_path or node.id)
    return glob_to_regex(pattern).search(path) is not None


def _matches_search(node: Node, criteria: FilterCriteria) -> bool:
    term = criteria.search_term.strip().lower()
    if not term:
        return True
    return term in node.label.lower() or term in node.id.lower()


def matches_filters(node: Node, criteria: FilterCriteria) -> bool:
    """Check a node against every active predicate in ``criteria``."""
    return (
        _matches_type(node, criteria)
        and _matches_language(node, criteria)
        and _matches_path(node, criteria)
        and _matches_search(node, criteria)
    )


def neighbor_ids(seed: Set[str], edges: Iterable[Edge], known: Set[str]) -> Set[str]:
    """Ids one undirected hop away from ``seed``, limited to ``known`` nodes."""
    found: Set[str] = set()
    for edge in edges:
        if edge.source not in known or edge.target not in known:
            continue
        if edge.source in seed:
            found.add(edge.target)
        if edge.target in seed:
            found.add(edge.source)
    return found


def calculate_matching_node_ids(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    criteria: FilterCriteria,
) -> Set[str]:
    """Return ids of nodes matching ``criteria``.

    An empty set with no active filter means "everything matches"; callers
    must check ``criteria.is_active`` to tell that apart from no matches.
    """
    if not criteria.is_active:
        return set()

    matches = {node.id for node in nodes if matches_filters(node, criteria)}
    direct = len(matches)
    if criteria.show_neighbors and matches:
        matches |= neighbor_ids(matches, edges, {node.id for node in nodes})

    logger.debug("Filter matched %d nodes directly, %d with neighbours", direct, len(matches))
    return matches

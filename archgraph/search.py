"""Ranked fuzzy search over graph nodes with match highlighting."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import Node

Span = Tuple[int, int]


@dataclass
class SearchOptions:
    case_sensitive: bool = False
    fuzzy_match: bool = True
    fuzzy_threshold: float = 0.6  # 0-1, lower is more permissive
    search_fields: Tuple[str, ...] = ("label", "file_path", "type", "language")
    max_results: int = 100


@dataclass
class SearchHighlight:
    field: str
    text: str
    indices: List[Span]


@dataclass
class SearchResult:
    node: Node
    score: float
    matched_fields: List[str] = field(default_factory=list)
    highlights: List[SearchHighlight] = field(default_factory=list)


def levenshtein_distance(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def fuzzy_score(query: str, target: str, options: SearchOptions) -> float:
    """Similarity in [0, 1]; plain containment when fuzzy matching is off."""
    if not options.fuzzy_match:
        return 1.0 if query in target else 0.0
    longest = max(len(query), len(target))
    if longest == 0:
        return 1.0
    return 1 - levenshtein_distance(query, target) / longest


def find_match_indices(query: str, text: str, case_sensitive: bool = False) -> List[Span]:
    """All (start, end) spans of ``query`` in ``text``, overlaps included."""
    if not query:
        return []
    haystack = text if case_sensitive else text.lower()
    needle = query if case_sensitive else query.lower()
    spans: List[Span] = []
    pos = haystack.find(needle)
    while pos != -1:
        spans.append((pos, pos + len(needle)))
        pos = haystack.find(needle, pos + 1)
    return spans


def _fold(text: str, options: SearchOptions) -> str:
    return text if options.case_sensitive else text.lower()


def search_nodes(
    nodes: Iterable[Node],
    query: str,
    options: Optional[SearchOptions] = None,
) -> List[SearchResult]:
    """Score every node against ``query`` and return the best matches.

    Label matches weigh double. Type and language are plain substring
    checks worth 1.0 and 0.5. A node's score is the average over the fields
    that matched.
    """
    if not query.strip():
        return []
    opts = options or SearchOptions()
    needle = _fold(query, opts)
    results: List[SearchResult] = []

    for node in nodes:
        matched: List[str] = []
        highlights: List[SearchHighlight] = []
        total = 0.0

        if "label" in opts.search_fields:
            score = fuzzy_score(needle, _fold(node.label, opts), opts)
            if score >= opts.fuzzy_threshold:
                matched.append("label")
                total += score * 2
                spans = find_match_indices(query, node.label, opts.case_sensitive)
                if spans:
                    highlights.append(SearchHighlight("label", node.label, spans))

        if "file_path" in opts.search_fields and node.file_path:
            score = fuzzy_score(needle, _fold(node.file_path, opts), opts)
            if score >= opts.fuzzy_threshold:
                matched.append("file_path")
                total += score
                spans = find_match_indices(query, node.file_path, opts.case_sensitive)
                if spans:
                    highlights.append(SearchHighlight("file_path", node.file_path, spans))

        if "type" in opts.search_fields and needle in _fold(node.type, opts):
            matched.append("type")
            total += 1.0

        if "language" in opts.search_fields and node.language and needle in _fold(node.language, opts):
            matched.append("language")
            total += 0.5

        if matched:
            results.append(SearchResult(node, total / len(matched), matched, highlights))

    results.sort(key=lambda r: r.score, reverse=True)
    return results[: opts.max_results]


def highlight_text(text: str, indices: Sequence[Span]) -> List[Tuple[str, bool]]:
    """Split ``text`` into ``(segment, highlighted)`` parts."""
    if not indices:
        return [(text, False)]
    parts: List[Tuple[str, bool]] = []
    last = 0
    for start, end in sorted(indices):
        if start < last:
            # overlapping span, keep only the part not already emitted
            start = last
        if start > last:
            parts.append((text[last:start], False))
        if end > start:
            parts.append((text[start:end], True))
        last = max(last, end)
    if last < len(text):
        parts.append((text[last:], False))
    return parts


def filter_search_results(
    results: Sequence[SearchResult],
    types: Optional[Iterable[str]] = None,
    min_score: Optional[float] = None,
    max_results: Optional[int] = None,
) -> List[SearchResult]:
    filtered = list(results)
    wanted = set(types or ())
    if wanted:
        filtered = [r for r in filtered if r.node.type in wanted]
    if min_score is not None:
        filtered = [r for r in filtered if r.score >= min_score]
    if max_results is not None:
        filtered = filtered[:max_results]
    return filtered

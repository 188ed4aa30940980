"""Tests for the layered directed layout."""

import networkx as nx
import pytest

from archgraph.layered import (
    LayeredOptions,
    assign_ranks,
    build_digraph,
    layered_layout,
    order_ranks,
    run_layered_engine,
)
from archgraph.models import LayoutEdge, LayoutNode, Position


def _nodes(*ids, **sizes):
    return [LayoutNode(id=i, **sizes) for i in ids]


def _edges(*pairs):
    return [LayoutEdge(id=f"{s}->{t}", source=s, target=t) for s, t in pairs]


class TestRanks:
    """Tests for rank assignment and ordering."""

    def test_longest_path_ranks(self):
        graph = build_digraph(_nodes("a", "b", "c", "d"), _edges(("a", "b"), ("b", "c"), ("a", "c")))
        assert assign_ranks(graph) == {"a": 0, "b": 1, "c": 2, "d": 0}

    def test_cycle_members_share_a_rank(self):
        graph = build_digraph(_nodes("a", "b", "c"), _edges(("a", "b"), ("b", "a"), ("b", "c")))
        ranks = assign_ranks(graph)
        assert ranks["a"] == ranks["b"] == 0
        assert ranks["c"] == 1

    def test_barycenter_ordering_removes_crossing(self):
        graph = build_digraph(_nodes("a", "b", "d", "c"), _edges(("a", "c"), ("b", "d")))
        layers = order_ranks(graph, assign_ranks(graph))
        assert layers == [["a", "b"], ["c", "d"]]


class TestLayeredLayout:
    """Tests for layered_layout positions."""

    def test_chain_top_to_bottom(self):
        positions = layered_layout(_nodes("a", "b", "c"), _edges(("a", "b"), ("b", "c")))
        assert positions == {
            "a": Position(20, 20),
            "b": Position(20, 140),
            "c": Position(20, 260),
        }

    def test_chain_left_to_right(self):
        positions = layered_layout(_nodes("a", "b"), _edges(("a", "b")), direction="LR")
        assert positions["a"] == Position(20, 20)
        assert positions["b"] == Position(280, 20)

    def test_same_rank_separation(self):
        positions = layered_layout(_nodes("a", "b"), [])
        assert positions["a"] == Position(20, 20)
        assert positions["b"] == Position(250, 20)

    def test_narrow_rank_is_centred_under_wide_one(self):
        positions = layered_layout(_nodes("a", "b", "c"), _edges(("a", "b"), ("a", "c")))
        parent_center = positions["a"].x + 90
        children_center = (positions["b"].x + positions["c"].x) / 2 + 90
        assert parent_center == pytest.approx(children_center)

    def test_node_sizes_respected(self):
        nodes = [LayoutNode(id="a", width=100, height=40), LayoutNode(id="b", width=200, height=40)]
        positions = layered_layout(nodes, [])
        assert positions["b"].x == 170

    def test_options_are_honoured(self):
        options = LayeredOptions(node_separation=10, rank_separation=30, margin_x=0, margin_y=5)
        positions = layered_layout(_nodes("a", "b"), _edges(("a", "b")), options=options)
        assert positions["a"] == Position(0, 5)
        assert positions["b"] == Position(0, 75)

    def test_unknown_endpoints_and_self_loops_are_ignored(self):
        edges = _edges(("a", "ghost"), ("a", "a"), ("a", "b"))
        positions = layered_layout(_nodes("a", "b"), edges)
        assert set(positions) == {"a", "b"}
        assert positions["b"].y > positions["a"].y

    def test_empty_graph(self):
        assert layered_layout([], []) == {}

    def test_invalid_direction(self):
        with pytest.raises(ValueError):
            layered_layout(_nodes("a"), [], direction="BT")


def test_engine_writes_center_anchored_attributes():
    """run_layered_engine annotates the graph in place."""
    graph = nx.DiGraph()
    graph.add_node("a", width=100, height=20)
    graph.add_node("b")
    graph.add_edge("a", "b")
    run_layered_engine(graph, LayeredOptions())

    assert graph.nodes["a"]["x"] == 20 + 90
    assert graph.nodes["a"]["y"] == 20 + 10
    assert graph.nodes["b"]["width"] == 180
    assert graph.nodes["b"]["y"] == 20 + 20 + 80 + 20

"""Tests for directory hierarchy reconstruction."""

from archgraph.clustering import cluster_nodes_by_directory
from archgraph.hierarchy import reconstruct_hierarchy
from archgraph.models import Edge, Node


def _flat_graph():
    nodes = [
        Node(id="pkg/sub/a.py", type="file", label="a.py"),
        Node(id="pkg/b.py", type="file", label="b.py", file_path="pkg/b.py"),
        Node(id="pkg/b.py::run", type="function", label="run", depth=3),
        Node(id="setup.py", type="file", label="setup.py"),
    ]
    edges = [Edge(id="c1", source="pkg/b.py", target="pkg/b.py::run", type="contains")]
    return nodes, edges


class TestReconstructHierarchy:
    """Tests for reconstruct_hierarchy."""

    def test_creates_missing_directories(self):
        nodes, edges = _flat_graph()
        new_nodes, _ = reconstruct_hierarchy(nodes, edges)
        directories = {n.id: n for n in new_nodes if n.type == "directory"}

        assert set(directories) == {"pkg", "pkg/sub"}
        assert directories["pkg"].depth == 0
        assert directories["pkg"].parent_id is None
        assert directories["pkg/sub"].depth == 1
        assert directories["pkg/sub"].parent_id == "pkg"
        assert directories["pkg/sub"].label == "sub"

    def test_adds_contains_edges(self):
        nodes, edges = _flat_graph()
        _, new_edges = reconstruct_hierarchy(nodes, edges)
        pairs = {(e.source, e.target) for e in new_edges}

        assert ("pkg", "pkg/sub") in pairs
        assert ("pkg/sub", "pkg/sub/a.py") in pairs
        assert ("pkg", "pkg/b.py") in pairs
        assert all(e.type == "contains" for e in new_edges)
        assert any(e.id == "e-pkg-pkg/sub" for e in new_edges)

    def test_patches_file_copies_only(self):
        nodes, edges = _flat_graph()
        new_nodes, _ = reconstruct_hierarchy(nodes, edges)
        by_id = {n.id: n for n in new_nodes}

        patched = by_id["pkg/sub/a.py"]
        assert patched.file_path == "pkg/sub/a.py"
        assert patched.parent_id == "pkg/sub"
        assert patched.depth == 3
        assert by_id["setup.py"].depth == 1
        assert by_id["setup.py"].parent_id is None

        assert nodes[0].file_path is None
        assert nodes[0].parent_id is None

    def test_existing_directories_and_edges_are_reused(self):
        nodes = [
            Node(id="pkg", type="directory", label="pkg"),
            Node(id="pkg/a.py", type="file", label="a.py", parent_id="pkg"),
        ]
        edges = [Edge(id="c", source="pkg", target="pkg/a.py", type="contains")]
        new_nodes, new_edges = reconstruct_hierarchy(nodes, edges)

        assert [n.id for n in new_nodes] == ["pkg", "pkg/a.py"]
        assert [e.id for e in new_edges] == ["c"]

    def test_reconstructed_graph_clusters(self):
        nodes = [Node(id=f"lib/f{i}.py", type="file", label=f"f{i}.py") for i in range(5)]
        new_nodes, _ = reconstruct_hierarchy(nodes, [])
        clusters = cluster_nodes_by_directory(new_nodes)
        assert [c.id for c in clusters] == ["cluster-lib"]
        # the synthesised directory node clusters with its files
        assert "lib" in clusters[0].node_ids

"""Tests for directory path resolution."""

import pytest

from archgraph.models import Node
from archgraph.paths import directory_path, normalize_path, path_depth, path_label


def test_directory_node_uses_own_id():
    node = Node(id="src/utils", type="directory", label="utils", file_path="elsewhere/x")
    assert directory_path(node) == "src/utils"


def test_file_path_takes_priority_over_id():
    node = Node(id="weird-id", type="file", label="a.ts", file_path="src/lib/a.ts")
    assert directory_path(node) == "src/lib"


def test_symbol_id_strips_file_segment():
    node = Node(id="src/lib/a.ts::helper", type="function", label="helper")
    assert directory_path(node) == "src/lib"


def test_fallback_to_id():
    node = Node(id="pkg/mod/thing", type="module", label="thing")
    assert directory_path(node) == "pkg/mod"


def test_backslashes_are_normalized():
    node = Node(id="x", type="file", label="a.ts", file_path="src\\win\\a.ts")
    assert directory_path(node) == "src/win"
    assert normalize_path("a\\b") == "a/b"


@pytest.mark.parametrize(
    "node",
    [
        Node(id="README.md", type="file", label="README.md"),
        Node(id="main.ts::run", type="function", label="run"),
        Node(id="x", type="file", label="x", file_path="setup.py"),
    ],
)
def test_top_level_items_resolve_to_root(node):
    assert directory_path(node) == "/"


def test_path_depth_and_label():
    assert path_depth("/") == 0
    assert path_depth("") == 0
    assert path_depth("src") == 1
    assert path_depth("src/utils/deep") == 3
    assert path_label("src/utils") == "utils"
    assert path_label("/") == "root"

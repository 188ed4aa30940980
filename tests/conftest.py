"""Pytest configuration and fixtures for archgraph tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator, List, Tuple

import pytest

from archgraph.graph_io import load_graph
from archgraph.models import Edge, Node


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolated_home(temp_dir: Path, monkeypatch) -> Path:
    """Point config and state files at a temporary directory.

    Patch both config AND storage modules (storage imports STATE_FILE at
    module load).
    """
    home = temp_dir / "home"
    monkeypatch.setattr("archgraph.config.BASE_DIR", home)
    monkeypatch.setattr("archgraph.config.STATE_FILE", home / "state.json")
    monkeypatch.setattr("archgraph.config.CONFIG_FILE", home / "config.toml")
    monkeypatch.setattr("archgraph.storage.STATE_FILE", home / "state.json")
    return home


@pytest.fixture
def sample_graph_path() -> Path:
    """Path to the sample architecture graph."""
    return Path(__file__).parent / "fixtures" / "sample_graph.json"


@pytest.fixture
def sample_graph(sample_graph_path: Path) -> Tuple[List[Node], List[Edge]]:
    return load_graph(sample_graph_path)


@pytest.fixture
def sample_nodes(sample_graph) -> List[Node]:
    return sample_graph[0]


@pytest.fixture
def sample_edges(sample_graph) -> List[Edge]:
    return sample_graph[1]


@pytest.fixture
def valid_edges(sample_nodes, sample_edges) -> List[Edge]:
    """Sample edges without the one pointing at a missing node."""
    ids = {n.id for n in sample_nodes}
    return [e for e in sample_edges if e.source in ids and e.target in ids]

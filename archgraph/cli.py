"""Typer-based CLI for archgraph layout and clustering."""

from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .advanced import LayoutEngineError
from .clustering import (
    ClusterStateStore,
    cluster_nodes_by_directory,
    collapse_all_clusters,
    expand_all_clusters,
    filter_by_cluster_state,
    toggle_cluster,
)
from .config_manager import LayoutSettings, load_layout_settings
from .filters import calculate_matching_node_ids
from .graph_io import clusters_payload, dedupe_edges, load_graph, positions_payload, write_positions
from .hierarchy import reconstruct_hierarchy
from .layout import LayoutMode, UnsupportedLayoutModeError, compute_layout
from .models import Cluster, Edge, FilterCriteria, Node
from .search import search_nodes
from .storage import JsonFileKeyValueStore

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(
    help="🗺️  archgraph — layout and clustering for large code-architecture graphs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

cluster_app = typer.Typer(
    help="📦 Cluster state — expand, collapse, and reset persisted clusters.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(cluster_app, name="cluster")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"archgraph v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """archgraph: deterministic layouts and directory clustering for code graphs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s %(levelname)s %(message)s",
    )


def _load(graph_file: Path, reconstruct: bool = False) -> Tuple[List[Node], List[Edge]]:
    try:
        nodes, edges = load_graph(graph_file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if reconstruct:
        nodes, edges = reconstruct_hierarchy(nodes, edges)
    edges, dropped = dedupe_edges(edges)
    if dropped:
        logger.info("Dropped %d duplicate edges", dropped)
    return nodes, edges


def _clusters(nodes: List[Node], settings: LayoutSettings, min_size: Optional[int], max_depth: Optional[int]) -> List[Cluster]:
    return cluster_nodes_by_directory(
        nodes,
        min_cluster_size=settings.min_cluster_size if min_size is None else min_size,
        max_depth=settings.max_cluster_depth if max_depth is None else max_depth,
    )


def _state_store(settings: LayoutSettings) -> ClusterStateStore:
    return ClusterStateStore(JsonFileKeyValueStore(), namespace=settings.cluster_state_namespace)


@app.command("layout")
def layout(
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Graph JSON file with 'nodes' and 'edges'."),
    mode: str = typer.Option("hierarchical", "--mode", "-m", help="Layout mode, e.g. hierarchical, layered-tb, force."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write positions JSON here instead of stdout."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the force simulations."),
    reconstruct: bool = typer.Option(False, "--reconstruct", help="Synthesise missing directory nodes from file paths."),
):
    """Compute node positions with the chosen layout strategy."""
    try:
        layout_mode = LayoutMode.parse(mode)
    except UnsupportedLayoutModeError as exc:
        raise typer.BadParameter(str(exc), param_hint="--mode") from exc

    settings = load_layout_settings()
    if seed is not None:
        settings.force_seed = seed
    nodes, edges = _load(graph_file, reconstruct)
    rng = random.Random(seed) if seed is not None else None

    try:
        positions = asyncio.run(compute_layout(layout_mode, nodes, edges, settings, rng))
    except LayoutEngineError as exc:
        typer.echo(f"❌ Layout failed: {exc}", err=True)
        raise typer.Exit(code=1)

    if output is None:
        typer.echo(json.dumps(positions_payload(positions), indent=2))
    else:
        write_positions(positions, output)
        typer.echo(f"Wrote {len(positions)} positions to {output}")


@app.command("clusters")
def clusters(
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Graph JSON file with 'nodes' and 'edges'."),
    min_size: Optional[int] = typer.Option(None, "--min-size", min=1, help="Minimum nodes per cluster."),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", min=0, help="Deepest directory level to cluster."),
    reconstruct: bool = typer.Option(False, "--reconstruct", help="Synthesise missing directory nodes from file paths."),
    as_json: bool = typer.Option(False, "--json", help="Print clusters as JSON instead of a table."),
):
    """List directory clusters for a graph."""
    settings = load_layout_settings()
    nodes, _ = _load(graph_file, reconstruct)
    found = _clusters(nodes, settings, min_size, max_depth)

    if as_json:
        typer.echo(json.dumps(clusters_payload(found), indent=2))
        return

    if not found:
        typer.echo("No clusters formed.")
        raise typer.Exit(code=0)

    table = Table(title=f"Clusters ({len(found)})")
    table.add_column("Cluster", style="cyan")
    table.add_column("Depth", justify="right")
    table.add_column("Nodes", justify="right")
    table.add_column("Files", justify="right")
    table.add_column("Functions", justify="right")
    table.add_column("Classes", justify="right")
    for cluster in found:
        m = cluster.metrics
        table.add_row(
            cluster.id, str(cluster.depth), str(m.node_count),
            str(m.file_count), str(m.function_count), str(m.class_count),
        )
    console.print(table)


@app.command("view")
def view(
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Graph JSON file with 'nodes' and 'edges'."),
    repo: str = typer.Option(..., "--repo", "-r", help="Repository id the cluster state is stored under."),
    reconstruct: bool = typer.Option(False, "--reconstruct", help="Synthesise missing directory nodes from file paths."),
):
    """Show what is visible under the persisted cluster state."""
    settings = load_layout_settings()
    nodes, edges = _load(graph_file, reconstruct)
    found = _clusters(nodes, settings, None, None)
    state = _state_store(settings).load(repo)
    result = filter_by_cluster_state(nodes, edges, found, state)

    typer.echo(f"Visible nodes: {len(result.nodes)}/{len(nodes)} | Visible edges: {len(result.edges)}/{len(edges)}")
    if result.cluster_nodes:
        typer.echo("Collapsed clusters:")
        for cluster in result.cluster_nodes:
            typer.echo(f"- {cluster.id} ({cluster.metrics.node_count} nodes)")


@app.command("match")
def match(
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Graph JSON file with 'nodes' and 'edges'."),
    search: str = typer.Option("", "--search", "-s", help="Case-insensitive substring of label or id."),
    node_types: Optional[List[str]] = typer.Option(None, "--type", "-t", help="Node type to keep (repeatable)."),
    languages: Optional[List[str]] = typer.Option(None, "--language", "-l", help="Language to keep (repeatable)."),
    path_pattern: str = typer.Option("", "--path", "-p", help="Glob-like path pattern, e.g. 'src/*.ts'."),
    neighbors: bool = typer.Option(False, "--neighbors", help="Include direct neighbours of matches."),
    reconstruct: bool = typer.Option(False, "--reconstruct", help="Synthesise missing directory nodes from file paths."),
):
    """Print ids of nodes matching the given filters."""
    nodes, edges = _load(graph_file, reconstruct)
    criteria = FilterCriteria(
        search_term=search,
        node_types=set(node_types or []),
        languages=set(languages or []),
        path_pattern=path_pattern,
        show_neighbors=neighbors,
    )
    if not criteria.is_active:
        typer.echo(f"No filter active: all {len(nodes)} nodes match.")
        raise typer.Exit(code=0)

    matches = calculate_matching_node_ids(nodes, edges, criteria)
    if not matches:
        typer.echo("No matching nodes.")
        raise typer.Exit(code=0)
    for node in nodes:
        if node.id in matches:
            typer.echo(node.id)


@app.command("search")
def search(
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Graph JSON file with 'nodes' and 'edges'."),
    query: str = typer.Argument(..., help="Fuzzy query."),
    limit: int = typer.Option(10, "--limit", "-k", min=1, max=100, help="Maximum results."),
):
    """Fuzzy-search nodes by label, path, type and language."""
    nodes, _ = _load(graph_file)
    results = search_nodes(nodes, query)[:limit]
    if not results:
        typer.echo("No matches found.")
        raise typer.Exit(code=0)
    for result in results:
        typer.echo(f"[{result.node.type}] {result.node.id}  score={result.score:.3f}  ({', '.join(result.matched_fields)})")


@app.command("show-config")
def show_config():
    """Print the effective layout settings."""
    settings = load_layout_settings()
    table = Table(title="Layout settings")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in asdict(settings).items():
        table.add_row(key, str(value))
    console.print(table)


# ------------------------------------------------------------------
# cluster state commands
# ------------------------------------------------------------------

@cluster_app.command("toggle")
def cluster_toggle(
    repo: str = typer.Argument(..., help="Repository id."),
    cluster_id: str = typer.Argument(..., help="Cluster id, e.g. 'cluster-src/utils'."),
):
    """Flip one cluster between expanded and collapsed."""
    settings = load_layout_settings()
    store = _state_store(settings)
    state = toggle_cluster(cluster_id, store.load(repo))
    store.save(repo, state)
    typer.echo(f"{cluster_id}: {'expanded' if state[cluster_id] else 'collapsed'}")


@cluster_app.command("expand-all")
def cluster_expand_all(
    repo: str = typer.Argument(..., help="Repository id."),
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Graph JSON file with 'nodes' and 'edges'."),
):
    """Expand every cluster of the graph."""
    settings = load_layout_settings()
    nodes, _ = _load(graph_file)
    state = expand_all_clusters(_clusters(nodes, settings, None, None))
    _state_store(settings).save(repo, state)
    typer.echo(f"Expanded {len(state)} clusters.")


@cluster_app.command("collapse-all")
def cluster_collapse_all(
    repo: str = typer.Argument(..., help="Repository id."),
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Graph JSON file with 'nodes' and 'edges'."),
):
    """Collapse every cluster of the graph."""
    settings = load_layout_settings()
    nodes, _ = _load(graph_file)
    state = collapse_all_clusters(_clusters(nodes, settings, None, None))
    _state_store(settings).save(repo, state)
    typer.echo(f"Collapsed {len(state)} clusters.")


@cluster_app.command("reset")
def cluster_reset(repo: str = typer.Argument(..., help="Repository id.")):
    """Forget the stored cluster state (everything expanded)."""
    settings = load_layout_settings()
    _state_store(settings).reset(repo)
    typer.echo(f"Reset cluster state for '{repo}'.")


@cluster_app.command("show")
def cluster_show(repo: str = typer.Argument(..., help="Repository id.")):
    """Print the stored cluster state."""
    settings = load_layout_settings()
    state = _state_store(settings).load(repo)
    if not state:
        typer.echo("No cluster state stored (all clusters expanded).")
        raise typer.Exit(code=0)
    for cluster_id in sorted(state):
        typer.echo(f"{'+' if state[cluster_id] else '-'} {cluster_id}")


if __name__ == "__main__":
    app()

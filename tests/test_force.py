"""Tests for the custom force-directed simulation."""

import asyncio
import math
import random
import time

import pytest

from archgraph.force import (
    INITIAL_AREA,
    ForceSimulation,
    adaptive_iterations,
    force_layout,
    force_layout_async,
)
from archgraph.models import LayoutEdge, LayoutNode


def _nodes(count):
    return [LayoutNode(id=f"n{i}") for i in range(count)]


def _ring(count):
    return [
        LayoutEdge(id=f"e{i}", source=f"n{i}", target=f"n{(i + 1) % count}")
        for i in range(count)
    ]


class TestForceLayout:
    """Tests for force_layout."""

    def test_same_seed_same_positions(self):
        first = force_layout(_nodes(8), _ring(8), 60, rng=random.Random(42))
        second = force_layout(_nodes(8), _ring(8), 60, rng=random.Random(42))
        assert first == second

    def test_different_seeds_differ(self):
        first = force_layout(_nodes(8), _ring(8), 10, rng=random.Random(1))
        second = force_layout(_nodes(8), _ring(8), 10, rng=random.Random(2))
        assert first != second

    def test_positions_complete_and_finite(self):
        positions = force_layout(_nodes(25), _ring(25), rng=random.Random(3))
        assert set(positions) == {f"n{i}" for i in range(25)}
        for pos in positions.values():
            assert math.isfinite(pos.x)
            assert math.isfinite(pos.y)

    def test_zero_iterations_returns_initial_placement(self):
        positions = force_layout(_nodes(5), [], 0, rng=random.Random(0))
        for pos in positions.values():
            assert 0 <= pos.x < INITIAL_AREA
            assert 0 <= pos.y < INITIAL_AREA

    def test_negative_iterations_rejected(self):
        with pytest.raises(ValueError):
            force_layout(_nodes(2), [], -1)

    def test_empty_graph(self):
        assert force_layout([], [], 10) == {}


class TestForceSimulation:
    """Tests for the individual forces."""

    def test_close_nodes_repel(self):
        sim = ForceSimulation(_nodes(2), [], rng=random.Random(0))
        sim.bodies[0].x, sim.bodies[0].y = 0.0, 0.0
        sim.bodies[1].x, sim.bodies[1].y = 10.0, 0.0
        sim.step()
        assert sim.bodies[1].x - sim.bodies[0].x > 10

    def test_distant_nodes_do_not_repel(self):
        sim = ForceSimulation(_nodes(2), [], rng=random.Random(0))
        sim.bodies[0].x, sim.bodies[0].y = 0.0, 0.0
        sim.bodies[1].x, sim.bodies[1].y = 500.0, 0.0
        sim.step()
        assert sim.bodies[1].x - sim.bodies[0].x == 500

    def test_springs_pull_connected_nodes_together(self):
        edges = [LayoutEdge(id="e", source="n0", target="n1")]
        sim = ForceSimulation(_nodes(2), edges, rng=random.Random(0))
        sim.bodies[0].x, sim.bodies[0].y = 0.0, 0.0
        sim.bodies[1].x, sim.bodies[1].y = 1000.0, 0.0
        sim.step()
        # 0.01 * 1000 applied to each end
        assert sim.bodies[0].x == pytest.approx(10)
        assert sim.bodies[1].x == pytest.approx(990)

    def test_coincident_nodes_stay_finite(self):
        sim = ForceSimulation(_nodes(2), [], rng=random.Random(0))
        for body in sim.bodies:
            body.x, body.y = 5.0, 5.0
        sim.run(3)
        assert all(math.isfinite(b.x) for b in sim.bodies)

    def test_invalid_edges_and_duplicates_ignored(self):
        nodes = _nodes(2) + [LayoutNode(id="n0")]
        edges = [
            LayoutEdge(id="self", source="n0", target="n0"),
            LayoutEdge(id="dangling", source="n0", target="ghost"),
            LayoutEdge(id="ok", source="n0", target="n1"),
        ]
        sim = ForceSimulation(nodes, edges, rng=random.Random(0))
        assert sim.ids == ["n0", "n1"]
        assert sim.springs == [(0, 1)]

    def test_iterations_counted(self):
        sim = ForceSimulation(_nodes(3), [], rng=random.Random(0))
        sim.run(7)
        assert sim.iterations_run == 7


class TestAsyncSimulation:
    """Tests for the cooperative variant."""

    @pytest.mark.asyncio
    async def test_async_matches_sync(self):
        sync = force_layout(_nodes(6), _ring(6), 40, rng=random.Random(5))
        cooperative = await force_layout_async(_nodes(6), _ring(6), 40, rng=random.Random(5), yield_every=3)
        assert sync == cooperative

    @pytest.mark.asyncio
    async def test_cancellation_stops_simulation(self):
        task = asyncio.ensure_future(
            force_layout_async(_nodes(4), [], 100_000, rng=random.Random(0), yield_every=1)
        )
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_chunked_repulsion_matches_sync(self):
        sync = force_layout(_nodes(12), _ring(12), 15, rng=random.Random(8))
        chunked = await force_layout_async(_nodes(12), _ring(12), 15, rng=random.Random(8), work_budget=7)
        assert sync == chunked

    @pytest.mark.asyncio
    async def test_large_step_is_split_across_yields(self):
        """One step over 400 nodes hands control back once per work chunk."""
        task = asyncio.ensure_future(
            force_layout_async(_nodes(400), [], 1, rng=random.Random(0), yield_every=1000, work_budget=4000)
        )
        ticks = 0

        async def ticker():
            nonlocal ticks
            while not task.done():
                ticks += 1
                await asyncio.sleep(0)

        await asyncio.gather(task, ticker())
        # 400 * 400 pair evaluations in chunks of 4000
        assert ticks >= 40

    @pytest.mark.asyncio
    async def test_event_loop_stall_is_bounded(self):
        """Other coroutines keep running while a large graph is simulated."""
        task = asyncio.ensure_future(force_layout_async(_nodes(800), [], 2, rng=random.Random(0)))
        longest = 0.0

        async def ticker():
            nonlocal longest
            last = time.perf_counter()
            while not task.done():
                await asyncio.sleep(0)
                now = time.perf_counter()
                longest = max(longest, now - last)
                last = now

        await asyncio.gather(task, ticker())
        assert longest < 0.5

    @pytest.mark.asyncio
    async def test_invalid_yield_interval(self):
        with pytest.raises(ValueError):
            await force_layout_async(_nodes(2), [], 10, yield_every=0)
        with pytest.raises(ValueError):
            await force_layout_async(_nodes(2), [], 10, work_budget=0)


@pytest.mark.parametrize(
    "count,expected",
    [(0, 300), (200, 300), (400, 150), (1000, 60), (10_000, 50)],
)
def test_adaptive_iterations(count, expected):
    assert adaptive_iterations(count) == expected


def test_adaptive_iterations_custom_budget():
    assert adaptive_iterations(800, budget=1000, floor=10) == 250

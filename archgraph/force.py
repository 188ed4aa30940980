"""Custom force-directed N-body simulation.

Nodes start at random positions, repel each other with an inverse-square
force inside a cutoff radius, and are pulled together along edges by a
spring force. Velocities are damped every step. There is no convergence
check: the simulation always runs its full iteration budget.

Pass a seeded ``random.Random`` to get reproducible output.
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .models import LayoutEdge, LayoutNode, Position

logger = logging.getLogger(__name__)

REPULSION_STRENGTH = 10000.0
ATTRACTION_STRENGTH = 0.01
DAMPING = 0.85
MIN_DISTANCE = 100.0
REPULSION_CUTOFF = MIN_DISTANCE * 3
DEFAULT_ITERATIONS = 300
INITIAL_AREA = 1000.0
# Pair evaluations between event-loop yields in the cooperative variant.
WORK_PER_YIELD = 20_000


@dataclass
class _Body:
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0


def adaptive_iterations(node_count: int, budget: int = DEFAULT_ITERATIONS, floor: int = 50) -> int:
    """Scale the iteration budget down for big graphs.

    Repulsion is quadratic in the node count, so the full budget is kept up
    to 200 nodes and shrinks proportionally past that, never below ``floor``.
    """
    if node_count <= 200:
        return budget
    return max(floor, int(budget * 200 / node_count))


class ForceSimulation:
    """Stateful simulation; advance it with :meth:`step` or :meth:`run`."""

    def __init__(
        self,
        nodes: Sequence[LayoutNode],
        edges: Sequence[LayoutEdge],
        rng: Optional[random.Random] = None,
    ) -> None:
        self.rng = rng or random.Random()
        self.ids: List[str] = []
        self.bodies: List[_Body] = []
        index: Dict[str, int] = {}
        for node in nodes:
            if node.id in index:
                continue
            index[node.id] = len(self.ids)
            self.ids.append(node.id)
            self.bodies.append(
                _Body(x=self.rng.random() * INITIAL_AREA, y=self.rng.random() * INITIAL_AREA)
            )
        self.springs = [
            (index[e.source], index[e.target])
            for e in edges
            if e.source in index and e.target in index and e.source != e.target
        ]
        self.iterations_run = 0

    def _repel(self, start: int = 0, stop: Optional[int] = None) -> None:
        """Apply repulsion to the rows ``start:stop`` of the pair matrix."""
        bodies = self.bodies
        stop = len(bodies) if stop is None else min(stop, len(bodies))
        for i in range(start, stop):
            a = bodies[i]
            for j, b in enumerate(bodies):
                if i == j:
                    continue
                dx = a.x - b.x
                dy = a.y - b.y
                dist = math.hypot(dx, dy)
                if dist == 0 or dist >= REPULSION_CUTOFF:
                    continue
                force = REPULSION_STRENGTH / (dist * dist)
                a.vx += dx / dist * force
                a.vy += dy / dist * force

    def _attract(self) -> None:
        for s, t in self.springs:
            source = self.bodies[s]
            target = self.bodies[t]
            # Spring force is distance * k along the unit vector, i.e. dx * k.
            fx = (target.x - source.x) * ATTRACTION_STRENGTH
            fy = (target.y - source.y) * ATTRACTION_STRENGTH
            source.vx += fx
            source.vy += fy
            target.vx -= fx
            target.vy -= fy

    def _integrate(self) -> None:
        for body in self.bodies:
            body.x += body.vx
            body.y += body.vy
            body.vx *= DAMPING
            body.vy *= DAMPING
        self.iterations_run += 1

    def step(self) -> None:
        self._repel()
        self._attract()
        self._integrate()

    def run(self, iterations: int = DEFAULT_ITERATIONS) -> Dict[str, Position]:
        if iterations < 0:
            raise ValueError("iterations must not be negative")
        for _ in range(iterations):
            self.step()
        return self.positions()

    async def run_async(
        self,
        iterations: int = DEFAULT_ITERATIONS,
        yield_every: int = 10,
        work_budget: int = WORK_PER_YIELD,
    ) -> Dict[str, Position]:
        """Cooperative variant of :meth:`run`.

        Control goes back to the event loop after at most ``yield_every``
        steps, and also whenever roughly ``work_budget`` repulsion pair
        evaluations have run, so a single step over a large graph is split
        across several yields. Cancelling the awaiting task stops the
        simulation at the next yield. Results match :meth:`run`.
        """
        if iterations < 0:
            raise ValueError("iterations must not be negative")
        if yield_every < 1:
            raise ValueError("yield_every must be at least 1")
        if work_budget < 1:
            raise ValueError("work_budget must be at least 1")

        count = len(self.bodies)
        rows_per_chunk = max(1, work_budget // max(count, 1))
        pending = 0
        for i in range(iterations):
            for start in range(0, count, rows_per_chunk):
                self._repel(start, start + rows_per_chunk)
                pending += min(rows_per_chunk, count - start) * count
                if pending >= work_budget:
                    pending = 0
                    await asyncio.sleep(0)
            self._attract()
            self._integrate()
            if (i + 1) % yield_every == 0:
                pending = 0
                await asyncio.sleep(0)
        return self.positions()

    def positions(self) -> Dict[str, Position]:
        return {node_id: Position(x=b.x, y=b.y) for node_id, b in zip(self.ids, self.bodies)}


def force_layout(
    nodes: Sequence[LayoutNode],
    edges: Sequence[LayoutEdge],
    iterations: int = DEFAULT_ITERATIONS,
    rng: Optional[random.Random] = None,
) -> Dict[str, Position]:
    """Run the simulation synchronously for a fixed number of iterations."""
    positions = ForceSimulation(nodes, edges, rng=rng).run(iterations)
    logger.debug("Force simulation ran %d iterations over %d nodes", iterations, len(positions))
    return positions


async def force_layout_async(
    nodes: Sequence[LayoutNode],
    edges: Sequence[LayoutEdge],
    iterations: int = DEFAULT_ITERATIONS,
    rng: Optional[random.Random] = None,
    yield_every: int = 10,
    work_budget: int = WORK_PER_YIELD,
) -> Dict[str, Position]:
    simulation = ForceSimulation(nodes, edges, rng=rng)
    positions = await simulation.run_async(iterations, yield_every=yield_every, work_budget=work_budget)
    logger.debug("Force simulation ran %d iterations over %d nodes", iterations, len(positions))
    return positions

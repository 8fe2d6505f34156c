"""Incremental force-directed layout for a skill graph.

LayoutController owns one diagram: it derives render nodes and edges from a
SkillGraph, steps a force simulation until it settles, and asks the viewport
to fit the result. ForceSimulation is a small d3-force style solver; any
object with the same ``step()`` / ``alpha`` / ``positions()`` surface can be
swapped in through ``simulation_factory``.
"""

import asyncio
import logging
import math
import random
from dataclasses import asdict, dataclass
from typing import NamedTuple

from .config import (
    ALPHA_DECAY,
    ALPHA_MIN,
    CHARGE_DISTANCE_MAX,
    CHARGE_STRENGTH,
    COOLDOWN_TICKS,
    FIT_DELAY_MS,
    FIT_DURATION_MS,
    FIT_PADDING,
    HUB_LINK_DISTANCE,
    LINK_DISTANCE,
    VELOCITY_DECAY,
)
from .graph import build_edges, build_render_nodes
from .models import HUB

logger = logging.getLogger(__name__)

UNINITIALIZED = "uninitialized"
SIMULATING = "simulating"
SETTLED = "settled"


@dataclass(frozen=True)
class ForceConfig:
    charge_strength: float = CHARGE_STRENGTH
    charge_distance_max: float = CHARGE_DISTANCE_MAX
    link_distance: float = LINK_DISTANCE
    hub_link_distance: float = HUB_LINK_DISTANCE
    alpha_decay: float = ALPHA_DECAY
    alpha_min: float = ALPHA_MIN
    velocity_decay: float = VELOCITY_DECAY
    cooldown_ticks: int = COOLDOWN_TICKS
    fit_duration_ms: int = FIT_DURATION_MS
    fit_padding: int = FIT_PADDING
    fit_delay_ms: int = FIT_DELAY_MS

    def link_distance_for(self, kind_a, kind_b):
        """Edges touching the hub rest longer than peer edges."""
        if kind_a == HUB or kind_b == HUB:
            return self.hub_link_distance
        return self.link_distance


def force_config_dict(config=None):
    """Force parameters as a plain dict for the browser renderer."""
    return asdict(config or ForceConfig())


class FitCommand(NamedTuple):
    duration_ms: int
    padding: int
    delay_ms: int = 0


class ForceSimulation:
    """Many-body, link and centering forces, stepped velocity-then-position.

    Mirrors d3-force: alpha decays geometrically towards zero, repulsion is
    ignored beyond ``distance_max`` and link strength is 1 / min(degree).
    """

    def __init__(self, node_ids, links, config=None, seed=0):
        self.config = config or ForceConfig()
        self.alpha = 1.0
        self._rng = random.Random(seed)
        self._index = {node_id: i for i, node_id in enumerate(node_ids)}
        self.ids = list(node_ids)

        # Phyllotaxis seeding, as d3 does for nodes without positions
        golden = math.pi * (3 - math.sqrt(5))
        self.x = []
        self.y = []
        for i in range(len(self.ids)):
            radius = 10 * math.sqrt(0.5 + i)
            self.x.append(radius * math.cos(i * golden))
            self.y.append(radius * math.sin(i * golden))
        self.vx = [0.0] * len(self.ids)
        self.vy = [0.0] * len(self.ids)

        count = [0] * len(self.ids)
        self.links = []
        for source, target, distance in links:
            s, t = self._index[source], self._index[target]
            self.links.append((s, t, distance))
            count[s] += 1
            count[t] += 1
        self._strength = [1 / min(count[s], count[t]) for s, t, _ in self.links]
        self._bias = [count[s] / (count[s] + count[t]) for s, t, _ in self.links]

    def _jiggle(self):
        return (self._rng.random() - 0.5) * 1e-6

    def step(self):
        cfg = self.config
        self.alpha += (0.0 - self.alpha) * cfg.alpha_decay
        self._apply_links()
        self._apply_charge()

        keep = 1 - cfg.velocity_decay
        for i in range(len(self.ids)):
            self.vx[i] *= keep
            self.vy[i] *= keep
            self.x[i] += self.vx[i]
            self.y[i] += self.vy[i]
        self._center()

    def _apply_links(self):
        alpha = self.alpha
        for (s, t, distance), strength, bias in zip(self.links, self._strength, self._bias):
            dx = self.x[t] + self.vx[t] - self.x[s] - self.vx[s] or self._jiggle()
            dy = self.y[t] + self.vy[t] - self.y[s] - self.vy[s] or self._jiggle()
            length = math.sqrt(dx * dx + dy * dy)
            k = (length - distance) / length * alpha * strength
            dx *= k
            dy *= k
            self.vx[t] -= dx * bias
            self.vy[t] -= dy * bias
            self.vx[s] += dx * (1 - bias)
            self.vy[s] += dy * (1 - bias)

    def _apply_charge(self):
        cfg = self.config
        max2 = cfg.charge_distance_max ** 2
        n = len(self.ids)
        for i in range(n):
            for j in range(n):
                if i == j:
                    continue
                dx = self.x[j] - self.x[i] or self._jiggle()
                dy = self.y[j] - self.y[i] or self._jiggle()
                dist2 = dx * dx + dy * dy
                if dist2 >= max2:
                    continue
                w = cfg.charge_strength * self.alpha / max(dist2, 1.0)
                self.vx[i] += dx * w
                self.vy[i] += dy * w

    def _center(self):
        n = len(self.ids)
        if not n:
            return
        sx = sum(self.x) / n
        sy = sum(self.y) / n
        self.x = [v - sx for v in self.x]
        self.y = [v - sy for v in self.y]

    def positions(self):
        return {node_id: (self.x[i], self.y[i]) for node_id, i in self._index.items()}


class LayoutController:
    """Drive the layout of a single diagram.

    States: uninitialized -> simulating -> settled. Handing over a different
    graph object restarts the simulation; pointer interaction only changes
    the selected / hovered id.
    """

    def __init__(self, config=None, on_fit=None, on_select=None, on_hover=None,
                 simulation_factory=ForceSimulation):
        self.config = config or ForceConfig()
        self.on_fit = on_fit
        self.on_select = on_select
        self.on_hover = on_hover
        self.simulation_factory = simulation_factory

        self.state = UNINITIALIZED
        self.graph = None
        self.nodes = []
        self.edges = []
        self.simulation = None
        self.ticks = 0
        self.generation = 0
        self.selected_id = None
        self.hovered_id = None

    @property
    def node_ids(self):
        return {n.id for n in self.nodes}

    def set_graph(self, graph):
        """Replace the graph and restart the simulation.

        Returns False if ``graph`` is the object already shown.
        """
        if graph is self.graph and self.state != UNINITIALIZED:
            return False

        self.graph = graph
        self.generation += 1
        source_nodes = graph.nodes if graph is not None else ()
        self.nodes = build_render_nodes(source_nodes)
        self.edges = build_edges(source_nodes)

        kinds = {n.id: n.kind for n in self.nodes}
        links = [
            (a, b, self.config.link_distance_for(kinds[a], kinds[b]))
            for a, b in self.edges
        ]
        self.simulation = self.simulation_factory(
            [n.id for n in self.nodes], links, config=self.config
        )
        self.ticks = 0
        self.state = SIMULATING

        hubs = sum(1 for n in self.nodes if n.kind == HUB)
        if hubs != 1:
            logger.warning("Laying out a graph with %d hub nodes", hubs)

        ids = self.node_ids
        if self.selected_id not in ids:
            self._set_selected(None)
        if self.hovered_id not in ids:
            self._set_hovered(None)

        if self.nodes:
            self._fit(self.config.fit_delay_ms)
        return True

    def tick(self):
        """Advance one simulation step. Returns False once settled."""
        if self.state != SIMULATING:
            return False
        self.simulation.step()
        self.ticks += 1
        if self.ticks >= self.config.cooldown_ticks or self.simulation.alpha < self.config.alpha_min:
            self.state = SETTLED
            logger.debug("Layout settled after %d ticks", self.ticks)
            if self.nodes:
                self._fit(0)
        return True

    def run(self):
        while self.tick():
            pass
        return self.positions()

    async def animate(self, frame_interval=1 / 60):
        """Tick once per frame until settled or a newer graph takes over."""
        generation = self.generation
        while self.generation == generation and self.tick():
            await asyncio.sleep(frame_interval)

    def positions(self):
        if self.simulation is None:
            return {}
        return self.simulation.positions()

    def select(self, node_id):
        """Mark a node as selected; ids not in the graph are ignored."""
        if node_id is not None and node_id not in self.node_ids:
            return
        self._set_selected(node_id)

    def hover(self, node_id):
        if node_id is not None and node_id not in self.node_ids:
            return
        self._set_hovered(node_id)

    def _set_selected(self, node_id):
        if node_id == self.selected_id:
            return
        self.selected_id = node_id
        if self.on_select:
            self.on_select(node_id)

    def _set_hovered(self, node_id):
        if node_id == self.hovered_id:
            return
        self.hovered_id = node_id
        if self.on_hover:
            self.on_hover(node_id)

    def _fit(self, delay_ms):
        if self.on_fit:
            self.on_fit(FitCommand(self.config.fit_duration_ms, self.config.fit_padding, delay_ms))

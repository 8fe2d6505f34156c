"""Tests for skillgraph.layout — force configuration and the layout state machine."""

import asyncio
import math

from helpers import make_node
from skillgraph.models import SkillGraph


def small_graph():
    return SkillGraph(topic="t", nodes=(
        make_node("hub", refs=["a", "b"], kind="hub"),
        make_node("a", refs=["b"]),
        make_node("b"),
    ))


class StubSimulation:
    """Solver stand-in: alpha drops by a fixed step each tick."""

    def __init__(self, node_ids, links, config=None, step_size=0.1):
        self.node_ids = node_ids
        self.links = links
        self.alpha = 1.0
        self.steps = 0
        self.step_size = step_size

    def step(self):
        self.steps += 1
        self.alpha -= self.step_size

    def positions(self):
        return {node_id: (0.0, 0.0) for node_id in self.node_ids}


class TestForceConfig:
    def test_hub_edges_rest_longer(self):
        from skillgraph.layout import ForceConfig

        cfg = ForceConfig()
        assert cfg.link_distance_for("hub", "concept") == 180
        assert cfg.link_distance_for("gotcha", "hub") == 180
        assert cfg.link_distance_for("concept", "pattern") == 90

    def test_config_dict(self):
        from skillgraph.layout import force_config_dict

        cfg = force_config_dict()
        assert cfg["charge_strength"] == -350
        assert cfg["charge_distance_max"] == 500
        assert cfg["cooldown_ticks"] == 100
        assert cfg["fit_duration_ms"] == 400
        assert cfg["fit_padding"] == 60


class TestLayoutController:
    def test_initial_state(self):
        from skillgraph.layout import UNINITIALIZED, LayoutController

        controller = LayoutController()
        assert controller.state == UNINITIALIZED
        assert controller.positions() == {}
        assert not controller.tick()

    def test_set_graph_starts_simulation(self):
        from skillgraph.layout import SIMULATING, LayoutController

        controller = LayoutController(simulation_factory=StubSimulation)
        assert controller.set_graph(small_graph())
        assert controller.state == SIMULATING
        assert [n.id for n in controller.nodes] == ["hub", "a", "b"]
        assert controller.edges == [("hub", "a"), ("hub", "b"), ("a", "b")]

    def test_link_distances_by_role(self):
        from skillgraph.layout import LayoutController

        controller = LayoutController(simulation_factory=StubSimulation)
        controller.set_graph(small_graph())
        assert controller.simulation.links == [("hub", "a", 180), ("hub", "b", 180), ("a", "b", 90)]

    def test_same_graph_is_noop(self):
        from skillgraph.layout import LayoutController

        controller = LayoutController(simulation_factory=StubSimulation)
        graph = small_graph()
        controller.set_graph(graph)
        sim = controller.simulation
        assert not controller.set_graph(graph)
        assert controller.simulation is sim

    def test_settles_when_alpha_decays(self):
        from skillgraph.layout import SETTLED, LayoutController

        fits = []
        controller = LayoutController(simulation_factory=StubSimulation, on_fit=fits.append)
        controller.set_graph(small_graph())
        controller.run()

        assert controller.state == SETTLED
        # alpha 1.0 -> below 0.001 after 10 steps of 0.1
        assert controller.ticks == 10
        assert [f.delay_ms for f in fits] == [500, 0]
        assert fits[-1].duration_ms == 400
        assert fits[-1].padding == 60

    def test_settles_on_cooldown_budget(self):
        from skillgraph.layout import SETTLED, ForceConfig, LayoutController

        def slow(*args, **kwargs):
            return StubSimulation(*args, step_size=0.0001, **kwargs)

        controller = LayoutController(config=ForceConfig(cooldown_ticks=25), simulation_factory=slow)
        controller.set_graph(small_graph())
        controller.run()
        assert controller.state == SETTLED
        assert controller.ticks == 25
        assert not controller.tick()
        assert controller.simulation.steps == 25

    def test_new_graph_restarts(self):
        from skillgraph.layout import SIMULATING, LayoutController

        controller = LayoutController(simulation_factory=StubSimulation)
        controller.set_graph(small_graph())
        controller.run()
        controller.set_graph(small_graph())
        assert controller.state == SIMULATING
        assert controller.ticks == 0

    def test_empty_graph(self):
        from skillgraph.layout import SETTLED, LayoutController

        fits = []
        controller = LayoutController(on_fit=fits.append)
        controller.set_graph(SkillGraph(topic="empty"))
        assert controller.run() == {}
        assert controller.state == SETTLED
        # An empty diagram is never fitted, on load or on settle
        assert fits == []

    def test_multiple_hubs_and_dangling_refs(self):
        from skillgraph.layout import SETTLED, LayoutController

        graph = SkillGraph(topic="t", nodes=(
            make_node("h1", refs=["h2", "nowhere"], kind="hub"),
            make_node("h2", refs=["h2"], kind="hub"),
        ))
        controller = LayoutController()
        controller.set_graph(graph)
        positions = controller.run()
        assert controller.state == SETTLED
        assert set(positions) == {"h1", "h2"}


class TestSelection:
    def test_select_and_hover(self):
        from skillgraph.layout import LayoutController

        selected, hovered = [], []
        controller = LayoutController(simulation_factory=StubSimulation,
                                      on_select=selected.append, on_hover=hovered.append)
        controller.set_graph(small_graph())
        controller.select("a")
        controller.hover("b")
        controller.hover(None)

        assert controller.selected_id == "a"
        assert selected == ["a"]
        assert hovered == ["b", None]

    def test_unknown_id_is_noop(self):
        from skillgraph.layout import LayoutController

        selected = []
        controller = LayoutController(simulation_factory=StubSimulation, on_select=selected.append)
        controller.set_graph(small_graph())
        controller.select("a")
        controller.select("does-not-exist")
        controller.hover("does-not-exist")

        assert controller.selected_id == "a"
        assert controller.hovered_id is None
        assert selected == ["a"]

    def test_select_before_graph(self):
        from skillgraph.layout import LayoutController

        controller = LayoutController()
        controller.select("anything")
        assert controller.selected_id is None

    def test_selection_does_not_touch_simulation(self):
        from skillgraph.layout import SIMULATING, LayoutController

        controller = LayoutController(simulation_factory=StubSimulation)
        controller.set_graph(small_graph())
        controller.tick()
        controller.select("hub")
        controller.hover("a")
        assert controller.state == SIMULATING
        assert controller.ticks == 1
        assert controller.simulation.steps == 1

    def test_stale_selection_cleared_on_new_graph(self):
        from skillgraph.layout import LayoutController

        selected = []
        controller = LayoutController(simulation_factory=StubSimulation, on_select=selected.append)
        controller.set_graph(small_graph())
        controller.select("a")
        controller.set_graph(SkillGraph(topic="other", nodes=(make_node("z"),)))
        assert controller.selected_id is None
        assert selected == ["a", None]


class TestAnimate:
    async def test_animate_runs_to_settle(self):
        from skillgraph.layout import SETTLED, LayoutController

        controller = LayoutController(simulation_factory=StubSimulation)
        controller.set_graph(small_graph())
        await controller.animate(frame_interval=0)
        assert controller.state == SETTLED

    async def test_superseded_animation_stops(self):
        from skillgraph.layout import SIMULATING, LayoutController

        controller = LayoutController(simulation_factory=StubSimulation)
        controller.set_graph(small_graph())
        old = asyncio.create_task(controller.animate(frame_interval=0.01))
        await asyncio.sleep(0.025)
        controller.set_graph(small_graph())
        await old

        # The old loop exits without stepping the new simulation
        assert controller.state == SIMULATING
        assert controller.simulation.steps == 0


class TestForceSimulation:
    def test_alpha_decays(self):
        from skillgraph.layout import ForceSimulation

        sim = ForceSimulation(["a", "b"], [("a", "b", 90)])
        sim.step()
        assert math.isclose(sim.alpha, 0.96)

    def test_linked_nodes_approach_rest_length(self):
        from skillgraph.layout import ForceConfig, ForceSimulation

        sim = ForceSimulation(["a", "b"], [("a", "b", 90)], config=ForceConfig(charge_strength=0))
        for _ in range(300):
            sim.step()
        (ax, ay), (bx, by) = sim.positions()["a"], sim.positions()["b"]
        assert abs(math.hypot(bx - ax, by - ay) - 90) < 5

    def test_repulsion_spreads_unlinked_nodes(self):
        from skillgraph.layout import ForceSimulation

        sim = ForceSimulation(["a", "b", "c"], [])
        before = sim.positions()
        for _ in range(50):
            sim.step()
        after = sim.positions()

        def spread(pos):
            return max(math.hypot(x1 - x2, y1 - y2)
                       for x1, y1 in pos.values() for x2, y2 in pos.values())

        assert spread(after) > spread(before)

    def test_repulsion_range_is_bounded(self):
        from skillgraph.layout import ForceConfig, ForceSimulation

        def distance(sim):
            (ax, ay), (bx, by) = sim.positions()["a"], sim.positions()["b"]
            return math.hypot(bx - ax, by - ay)

        sim = ForceSimulation(["a", "b"], [], config=ForceConfig(charge_distance_max=1))
        before = distance(sim)
        for _ in range(10):
            sim.step()
        assert math.isclose(distance(sim), before)

    def test_positions_are_centered(self):
        from skillgraph.layout import ForceSimulation

        sim = ForceSimulation(["a", "b", "c", "d"], [("a", "b", 90), ("c", "d", 180)])
        for _ in range(20):
            sim.step()
        xs = [x for x, _ in sim.positions().values()]
        assert abs(sum(xs) / len(xs)) < 1e-6

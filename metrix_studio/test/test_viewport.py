import pytest
import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from metrix_studio.settings import ViewportSettings
from metrix_studio.core.errors import LayoutError
from metrix_studio.core.events import RUN_ALGORITHM
from metrix_studio.core.knowledge_base.schema import AlgorithmRequest, Edge, GraphViewModel, Node
from metrix_studio.core.viewport.engine import NetworkXEngine
from metrix_studio.core.viewport.styling import (
    DIMMED_CLASS,
    HIGHLIGHT_CLASS,
    HUB_CLASS,
    SELECTED_CLASS,
    generate_node_color,
)
from metrix_studio.core.viewport.transition import ShutterPhase
from metrix_studio.core.viewport.viewport import GraphViewport


def build_view_model(node_ids=(1, 2, 3), edges=((10, 1, 2), (11, 2, 3)), labels=None):
    labels = labels or {}
    return GraphViewModel(
        nodes=[Node(id=i, label=labels.get(i, "Person"), properties={'name': f"n{i}"}) for i in node_ids],
        edges=[Edge(id=e, source_id=s, target_id=t, label="KNOWS") for e, s, t in edges],
    )


def star(leaves=4, inbound=True):
    """Node 1 is the hub; edges point from each leaf into it (or out of it)."""
    ids = tuple(range(1, leaves + 2))
    edges = tuple((100 + i, i, 1) if inbound else (100 + i, 1, i) for i in ids[1:])
    return build_view_model(ids, edges)


@pytest.fixture
def engine():
    return NetworkXEngine(width=800, height=600)


@pytest.fixture
def selections():
    return []


@pytest.fixture
def viewport(engine, event_bus, scheduler, selections):
    vp = GraphViewport(engine, event_bus, lambda element, kind: selections.append((element, kind)),
                       scheduler, settings=ViewportSettings())
    yield vp
    vp.destroy()


class TestApplyData:
    """Tests for rendering view models."""

    def test_renders_nodes_then_edges(self, viewport, engine):
        viewport.apply_data(build_view_model())

        assert viewport.stats.node_count == 3
        assert viewport.stats.edge_count == 2
        assert {n.id for n in engine.nodes()} == {1, 2, 3}
        assert {e.id for e in engine.edges()} == {10, 11}
        assert engine.layout_runs == 1

    def test_apply_twice_is_idempotent(self, viewport, engine):
        vm = build_view_model()
        viewport.apply_data(vm)
        stats = viewport.stats
        positions = {k: v.copy() for k, v in engine.positions.items()}

        viewport.apply_data(vm)

        assert viewport.stats == stats
        assert len(engine.nodes()) == 3
        assert len(engine.edges()) == 2
        for node_id, pos in positions.items():
            assert engine.positions[node_id] == pytest.approx(pos)

    def test_renders_private_copies(self, viewport, engine):
        vm = build_view_model()
        viewport.apply_data(vm)

        rendered = engine.node(1)
        assert rendered is not vm.find_node(1)
        rendered.properties['name'] = "mutated"
        rendered.visual_size = 99
        assert vm.find_node(1).properties['name'] == "n1"
        assert vm.find_node(1).visual_size is None

    def test_colour_follows_label(self, viewport, engine):
        viewport.apply_data(build_view_model(labels={1: "Movie", 2: "Person", 3: "Movie"}))

        assert engine.style(1)['color'] == generate_node_color("Movie")
        assert engine.style(1)['color'] == engine.style(3)['color']
        assert engine.node(2).color == generate_node_color("Person")
        assert engine.style(1)['opacity'] == 1.0

    def test_empty_view_model_skips_layout(self, viewport, engine):
        viewport.apply_data(GraphViewModel.empty())
        assert engine.layout_runs == 0
        assert viewport.stats.node_count == 0

    def test_dangling_edge_is_skipped(self, viewport, engine):
        viewport.apply_data(build_view_model(node_ids=(1, 2), edges=((10, 1, 2), (11, 2, 99))))
        assert [e.id for e in engine.edges()] == [10]
        assert viewport.stats.edge_count == 1

    def test_layout_failure_is_not_fatal(self, viewport, engine, monkeypatch):
        def broken_layout():
            raise LayoutError("degenerate layout")

        monkeypatch.setattr(engine, 'run_layout', broken_layout)
        viewport.apply_data(build_view_model())

        assert viewport.stats.node_count == 3


class TestSelection:
    """Tests for pointer selection."""

    def test_select_node_emits_copy(self, viewport, engine, selections):
        viewport.apply_data(build_view_model())

        selected = viewport.select_node(2)

        element, kind = selections[-1]
        assert kind == 'node'
        assert element.id == 2
        assert element.label == "Person"
        assert element.properties == {'name': "n2"}
        assert element is not engine.node(2)
        assert selected == element
        assert engine.has_class(2, SELECTED_CLASS)

    def test_select_node_centres_camera(self, viewport, engine):
        viewport.apply_data(build_view_model())
        viewport.select_node(3)
        assert engine.camera.center == pytest.approx(tuple(engine.positions[3]))

    def test_selection_moves_between_elements(self, viewport, engine):
        viewport.apply_data(build_view_model())
        viewport.select_node(1)
        viewport.select_edge(10)

        assert not engine.has_class(1, SELECTED_CLASS)
        assert engine.has_class(10, SELECTED_CLASS, kind='edge')

    def test_select_edge(self, viewport, selections):
        viewport.apply_data(build_view_model())
        viewport.select_edge(11)

        element, kind = selections[-1]
        assert kind == 'edge'
        assert (element.id, element.source_id, element.target_id) == (11, 2, 3)

    def test_unknown_ids_are_ignored(self, viewport, selections):
        viewport.apply_data(build_view_model())
        assert viewport.select_node(404) is None
        assert viewport.select_edge(404) is None
        assert selections == []

    def test_deselect(self, viewport, engine, selections):
        viewport.apply_data(build_view_model())
        viewport.select_node(1)
        viewport.deselect()

        assert selections[-1] == (None, None)
        assert engine.classed(SELECTED_CLASS) == set()


class TestSearch:
    """Tests for label and id search."""

    def test_label_match_is_case_insensitive(self, viewport, engine, selections):
        viewport.apply_data(build_view_model(labels={1: "Alice", 2: "Bob", 3: "alicia"}))

        matches = viewport.search("ALI")

        assert matches == [1, 3]
        assert engine.classed(HIGHLIGHT_CLASS) == {1, 3}
        assert selections[-1][0].id == 1

    def test_exact_id_match(self, viewport, engine):
        viewport.apply_data(build_view_model(labels={1: "Alice", 2: "Bob", 3: "Carol"}))
        assert viewport.search("2") == [2]
        assert engine.classed(HIGHLIGHT_CLASS) == {2}

    def test_new_search_replaces_highlights(self, viewport, engine):
        viewport.apply_data(build_view_model(labels={1: "Alice", 2: "Bob", 3: "Carol"}))
        viewport.search("alice")
        viewport.search("bob")
        assert engine.classed(HIGHLIGHT_CLASS) == {2}

    @pytest.mark.parametrize("term", ["", "   ", "zzz-no-match"])
    def test_no_op_terms(self, viewport, engine, selections, term):
        viewport.apply_data(build_view_model(labels={1: "Alice", 2: "Bob", 3: "Carol"}))
        viewport.search("bob")
        highlighted = engine.classed(HIGHLIGHT_CLASS)
        selected_before = list(selections)

        assert viewport.search(term) == []
        assert engine.classed(HIGHLIGHT_CLASS) == highlighted
        assert selections == selected_before


class TestAlgorithms:
    """Tests for algorithm-driven re-styling."""

    def test_pagerank_sizes_hub_largest(self, viewport, engine):
        viewport.apply_data(star())

        scores = viewport.run_algorithm(AlgorithmRequest(kind='pagerank'))

        assert max(scores, key=scores.get) == 1
        assert engine.style(1)['size'] == pytest.approx(60)
        for leaf in (2, 3, 4, 5):
            assert 20 <= engine.style(leaf)['size'] < engine.style(1)['size']
        assert all(duration == 500 for _, _, _, duration in engine.animations)

    def test_pagerank_via_event_bus(self, viewport, engine, event_bus):
        viewport.apply_data(star())
        event_bus.emit(RUN_ALGORITHM, {'algorithm': 'pagerank'})
        assert engine.node(1).visual_size == pytest.approx(60)

    def test_degree_centrality_promotes_hubs(self, viewport, engine):
        viewport.apply_data(star(leaves=4, inbound=False))

        degrees = viewport.run_algorithm(AlgorithmRequest(kind='degree_centrality'))

        assert degrees[1] == pytest.approx(1.0)
        assert engine.has_class(1, HUB_CLASS)
        assert engine.style(1)['color'] == viewport.settings.hub_color
        assert engine.style(1)['opacity'] == 1.0
        assert engine.style(1)['size'] == pytest.approx(30)
        for leaf in (2, 3, 4, 5):
            assert engine.has_class(leaf, DIMMED_CLASS)
            assert engine.style(leaf)['opacity'] == pytest.approx(0.2)
            assert engine.style(leaf)['size'] < engine.style(1)['size']

    def test_degree_centrality_on_empty_graph_is_no_op(self, viewport, engine, event_bus):
        viewport.apply_data(GraphViewModel.empty())

        event_bus.emit(RUN_ALGORITHM, {'algorithm': 'degree_centrality'})

        assert viewport.run_algorithm(AlgorithmRequest(kind='degree_centrality')) == {}
        assert engine.animations == []

    def test_malformed_payload_is_ignored(self, viewport, engine, event_bus):
        viewport.apply_data(star())
        event_bus.emit(RUN_ALGORITHM, {'algorithm': 'louvain'})
        event_bus.emit(RUN_ALGORITHM, "pagerank")
        assert engine.animations == []

    def test_algorithms_never_touch_the_store_copy(self, viewport):
        vm = star()
        viewport.apply_data(vm)
        viewport.run_algorithm(AlgorithmRequest(kind='degree_centrality'))
        assert all(n.color is None for n in vm.nodes)


class TestShutterTransition:
    """Tests for the four-phase fullscreen toggle."""

    def test_phases_follow_schedule(self, viewport, engine, scheduler):
        viewport.apply_data(build_view_model())
        viewport.container_size = (1920, 1080)

        assert viewport.toggle_fullscreen() is True
        assert viewport.transition.phase == ShutterPhase.FADE_OUT
        assert viewport.visible is False
        assert viewport.rendering is True

        scheduler.advance(249)
        assert viewport.transition.phase == ShutterPhase.FADE_OUT

        scheduler.advance(1)
        assert viewport.transition.phase == ShutterPhase.DETACH
        assert viewport.rendering is False
        assert viewport.fullscreen is False

        scheduler.advance(16)
        assert viewport.fullscreen is True

        scheduler.advance(533)
        assert viewport.transition.phase == ShutterPhase.DETACH
        assert engine.width == 800

        scheduler.advance(1)
        assert viewport.transition.phase == ShutterPhase.FADE_IN
        assert (engine.width, engine.height) == (1920, 1080)
        assert viewport.rendering is True
        assert viewport.visible is False

        scheduler.advance(16)
        assert viewport.visible is True
        assert viewport.transition.phase == ShutterPhase.IDLE
        assert scheduler.pending == 0

    def test_toggle_back(self, viewport, scheduler):
        viewport.toggle_fullscreen()
        scheduler.run_all()
        viewport.toggle_fullscreen()
        scheduler.run_all()
        assert viewport.fullscreen is False
        assert viewport.visible is True

    def test_toggle_while_running_is_ignored(self, viewport, scheduler):
        viewport.toggle_fullscreen()
        scheduler.advance(300)
        assert viewport.toggle_fullscreen() is False
        scheduler.run_all()
        assert viewport.fullscreen is True

    def test_destroy_cancels_pending_phases(self, viewport, engine, event_bus, scheduler):
        viewport.toggle_fullscreen()
        scheduler.advance(250)

        viewport.destroy()
        assert scheduler.pending == 0
        scheduler.advance(2000)

        assert viewport.alive is False
        assert engine.destroyed is True
        assert viewport.fullscreen is False
        assert viewport.rendering is False
        assert event_bus.handler_count(RUN_ALGORITHM) == 0

    def test_phase_skipped_if_engine_destroyed(self, viewport, engine, scheduler):
        viewport.toggle_fullscreen()
        engine.destroy()
        scheduler.run_all()
        assert viewport.fullscreen is False


class TestResize:
    """Tests for container resize handling."""

    def test_resize_refits_when_visible(self, viewport, engine):
        viewport.apply_data(build_view_model())
        before = engine.camera

        viewport.on_container_resize(400, 300)

        assert (engine.width, engine.height) == (400, 300)
        assert engine.camera is not before
        assert engine.camera.zoom < before.zoom

    def test_resize_does_not_refit_mid_transition(self, viewport, engine):
        viewport.apply_data(build_view_model())
        before = engine.camera

        viewport.rendering = False
        viewport.on_container_resize(400, 300)

        assert (engine.width, engine.height) == (400, 300)
        assert engine.camera is before

        viewport.rendering = True
        viewport.visible = False
        viewport.on_container_resize(500, 300)
        assert engine.camera is before


class TestStoreBinding:
    """Tests for following a StateStore."""

    @pytest.mark.asyncio
    async def test_bind_applies_new_view_models(self, connected_store, engine, event_bus, scheduler):
        viewport = GraphViewport(engine, event_bus, lambda e, k: None, scheduler, settings=ViewportSettings())
        viewport.bind(connected_store)
        assert viewport.stats.node_count == 0

        await connected_store.run_query()
        assert viewport.stats.node_count == 3

        viewport.select_node(2)
        assert connected_store.state.selection.element.id == 2

        viewport.destroy()
        await connected_store.disconnect()
        assert viewport.stats.node_count == 3

    @pytest.mark.asyncio
    async def test_unrelated_state_changes_do_not_rerender(self, connected_store, engine, event_bus, scheduler):
        viewport = GraphViewport(engine, event_bus, lambda e, k: None, scheduler, settings=ViewportSettings())
        viewport.bind(connected_store)
        await connected_store.run_query()
        runs = engine.layout_runs

        connected_store.toggle_left('search')
        connected_store.set_query_text("RETURN 1")

        assert engine.layout_runs == runs
        viewport.destroy()

    @pytest.mark.asyncio
    async def test_repeated_rows_are_counted_once(self, connected_store, backend, make_result, engine, event_bus,
                                                  scheduler):
        backend.query.return_value = make_result(node_ids=(1, 2, 2, 3), edges=((10, 1, 2), (11, 2, 3), (11, 2, 3)))
        viewport = GraphViewport(engine, event_bus, lambda e, k: None, scheduler, settings=ViewportSettings())
        viewport.bind(connected_store)

        await connected_store.run_query("MATCH (n)-[r]->(m) RETURN n,r,m LIMIT 50")

        assert viewport.stats.node_count == 3
        assert viewport.stats.edge_count == 2
        assert len(engine.edges()) == 2
        viewport.destroy()

    @pytest.mark.asyncio
    async def test_kept_selection_is_marked_after_rerender(self, connected_store, engine, event_bus, scheduler):
        viewport = GraphViewport(engine, event_bus, lambda e, k: None, scheduler, settings=ViewportSettings())
        viewport.bind(connected_store)
        await connected_store.run_query()
        viewport.select_node(2)

        await connected_store.run_query("MATCH (n)-[r]->(m) RETURN n,r,m LIMIT 10")

        assert connected_store.state.selection.element.id == 2
        assert engine.has_class(2, SELECTED_CLASS)
        assert engine.classed(SELECTED_CLASS) == {2}
        viewport.destroy()

    @pytest.mark.asyncio
    async def test_dropped_selection_is_not_marked(self, connected_store, backend, make_result, engine, event_bus,
                                                   scheduler):
        viewport = GraphViewport(engine, event_bus, lambda e, k: None, scheduler, settings=ViewportSettings())
        viewport.bind(connected_store)
        await connected_store.run_query()
        viewport.select_edge(11)

        backend.query.return_value = make_result(node_ids=(1, 2), edges=((10, 1, 2),))
        await connected_store.run_query("second")

        assert connected_store.state.selection.element is None
        assert engine.classed(SELECTED_CLASS, kind='edge') == set()
        viewport.destroy()


class TestDefaultEngine:
    """Tests for the engine a viewport builds for itself."""

    def test_engine_follows_viewport_settings(self, event_bus, scheduler):
        settings = ViewportSettings(layout_seed=7, layout_iterations=10)
        viewport = GraphViewport(None, event_bus, lambda e, k: None, scheduler, settings=settings,
                                 container_size=(640, 480))

        assert isinstance(viewport.engine, NetworkXEngine)
        assert viewport.engine.layout_seed == 7
        assert viewport.engine.layout_iterations == 10
        assert (viewport.engine.width, viewport.engine.height) == (640, 480)

        viewport.apply_data(build_view_model([1, 2, 3], [(10, 1, 2)]))
        assert viewport.engine.layout_runs == 1

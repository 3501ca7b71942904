"""
Graph Viewport Engine

Owns one RenderEngine and everything the user does with it: applying view
models, pointer selection, search highlighting, algorithm-driven re-styling,
the fullscreen shutter transition and container resizes.

The viewport only ever renders copies of the store's view model. Element
objects held by the engine belong to the viewport and may be mutated freely.
"""

import copy
import logging
from typing import Callable, Dict, List, Optional, Tuple

from metrix_studio.settings import ViewportSettings, settings_manager
from metrix_studio.core.errors import LayoutError
from metrix_studio.core.events import RUN_ALGORITHM, EventBus
from metrix_studio.core.scheduler import Scheduler
from ..knowledge_base.schema import (
    AlgorithmRequest,
    Edge,
    ElementKind,
    GraphElement,
    GraphViewModel,
    Node,
    ViewportStats,
)
from .algorithms import normalized_degrees, pagerank_scores, scale_sizes
from .engine import NetworkXEngine, RenderEngine
from .styling import (
    DEFAULT_NODE_SIZE,
    DIMMED_CLASS,
    DIMMED_SIZE_FACTOR,
    HIGHLIGHT_CLASS,
    HUB_CLASS,
    HUB_SIZE_FACTOR,
    SELECTED_CLASS,
    generate_node_color,
)
from .transition import ShutterTransition

logger = logging.getLogger(__name__)

SelectCallback = Callable[[Optional[GraphElement], Optional[ElementKind]], None]


class GraphViewport:
    """Interactive node-link viewport over a private render copy of the graph."""

    def __init__(self, engine: Optional[RenderEngine], event_bus: EventBus, on_select: SelectCallback,
                 scheduler: Scheduler, settings: Optional[ViewportSettings] = None,
                 container_size: Tuple[float, float] = (800, 600)):
        """Builds a NetworkXEngine from the viewport settings when engine is None."""
        self.settings = settings or settings_manager.get_settings().viewport
        self.engine = engine if engine is not None else NetworkXEngine.from_settings(self.settings, *container_size)
        self.event_bus = event_bus
        self.on_select = on_select
        self.scheduler = scheduler
        self.container_size = container_size

        self.stats = ViewportStats()
        self.fullscreen = False
        self.visible = True
        self.rendering = True

        self._applied: Optional[GraphViewModel] = None
        self._destroyed = False
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._transition = ShutterTransition(
            self, scheduler,
            fade_out_ms=self.settings.fade_out_ms,
            settle_ms=self.settings.settle_ms,
        )

        self.engine.resize(*container_size)
        self.event_bus.on(RUN_ALGORITHM, self._on_run_algorithm)

    @property
    def alive(self) -> bool:
        return not self._destroyed and not self.engine.destroyed

    @property
    def transition(self) -> ShutterTransition:
        return self._transition

    # === Store binding ===

    def bind(self, store) -> None:
        """Follow a StateStore: every newly published view model is applied."""
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = store.subscribe(self._on_state)
        self.on_select = store.select
        self.apply_data(store.graph_view_model)
        self._restore_selection(store.selection)

    def _on_state(self, state) -> None:
        if state.graph_view_model is not self._applied:
            self.apply_data(state.graph_view_model)
            self._restore_selection(state.selection)

    def _restore_selection(self, selection) -> None:
        # apply_data drops every class; re-mark a selection the store kept.
        if selection.element is None or not self.alive:
            return
        try:
            self.engine.add_class(selection.element.id, SELECTED_CLASS, kind=selection.kind)
        except KeyError:
            logger.debug(f"Selected {selection.kind} {selection.element.id} is not rendered")

    # === Data ===

    def apply_data(self, view_model: GraphViewModel) -> None:
        """Replace every rendered element with copies built from view_model."""
        if not self.alive:
            return
        self._applied = view_model
        self.engine.clear()

        for node in view_model.nodes:
            rendered = node.model_copy(deep=True)
            rendered.color = generate_node_color(rendered.label)
            rendered.visual_size = DEFAULT_NODE_SIZE
            self.engine.add_node(rendered, {'color': rendered.color, 'size': DEFAULT_NODE_SIZE, 'opacity': 1.0})

        rendered_ids = view_model.node_ids()
        edge_count = 0
        for edge in view_model.edges:
            if edge.source_id not in rendered_ids or edge.target_id not in rendered_ids:
                logger.warning(f"Skipping edge {edge.id}: endpoint {edge.source_id}->{edge.target_id} not in result")
                continue
            rendered_edge = edge.model_copy(deep=True)
            self.engine.add_edge(rendered_edge, {'color': generate_node_color(rendered_edge.label), 'opacity': 1.0})
            edge_count += 1

        if view_model.nodes:
            self._run_layout()

        self.stats = ViewportStats(node_count=len(view_model.nodes), edge_count=edge_count)
        logger.debug(f"Applied view model: {self.stats.node_count} nodes, {self.stats.edge_count} edges")

    def _run_layout(self) -> None:
        try:
            self.engine.run_layout()
        except LayoutError as e:
            # Non-fatal: the graph stays interactive with its previous positions.
            logger.warning(f"Layout pass failed: {e}")
            return
        if self.visible and self.rendering:
            self.fit_all()

    # === Selection ===

    def select_node(self, node_id: int, focus: bool = True) -> Optional[Node]:
        node = self._rendered_node(node_id)
        if node is None:
            logger.debug(f"select_node ignored: node {node_id} is not rendered")
            return None
        self._mark_selected(node_id, 'node')
        if focus:
            self.engine.center_on(node_id)
        selected = Node(id=node.id, label=node.label, properties=_copy_properties(node.properties))
        self.on_select(selected, 'node')
        return selected

    def select_edge(self, edge_id: int) -> Optional[Edge]:
        edge = next((e for e in self.engine.edges() if e.id == edge_id), None)
        if edge is None:
            logger.debug(f"select_edge ignored: edge {edge_id} is not rendered")
            return None
        self._mark_selected(edge_id, 'edge')
        selected = Edge(id=edge.id, source_id=edge.source_id, target_id=edge.target_id,
                        label=edge.label, properties=_copy_properties(edge.properties))
        self.on_select(selected, 'edge')
        return selected

    def deselect(self) -> None:
        self.engine.remove_class(SELECTED_CLASS, kind='node')
        self.engine.remove_class(SELECTED_CLASS, kind='edge')
        self.on_select(None, None)

    def _mark_selected(self, element_id: int, kind: str) -> None:
        self.engine.remove_class(SELECTED_CLASS, kind='node')
        self.engine.remove_class(SELECTED_CLASS, kind='edge')
        self.engine.add_class(element_id, SELECTED_CLASS, kind=kind)

    def _rendered_node(self, node_id: int) -> Optional[Node]:
        return next((n for n in self.engine.nodes() if n.id == node_id), None)

    # === Search ===

    def search(self, term: str) -> List[int]:
        """
        Highlight nodes whose label contains term (case-insensitive) or whose
        id equals term, frame them, and select the first one.

        Returns:
            The matching node ids. Empty term or no match changes nothing.
        """
        term = (term or "").strip()
        if not term:
            return []
        needle = term.lower()
        matches = [n.id for n in self.engine.nodes() if needle in n.label.lower() or str(n.id) == term]
        if not matches:
            return []

        self.engine.remove_class(HIGHLIGHT_CLASS)
        for node_id in matches:
            self.engine.add_class(node_id, HIGHLIGHT_CLASS)
        self.engine.fit(matches, padding=self.settings.camera_padding)
        self.select_node(matches[0], focus=False)
        return matches

    # === Algorithms ===

    def _on_run_algorithm(self, payload) -> None:
        try:
            request = AlgorithmRequest.from_payload(payload)
        except ValueError as e:
            logger.warning(f"Ignoring malformed algorithm request {payload!r}: {e}")
            return
        self.run_algorithm(request)

    def run_algorithm(self, request: AlgorithmRequest) -> Dict[int, float]:
        """Re-encode the rendered nodes from an algorithm's scores. Returns the scores."""
        if not self.alive or self.stats.node_count == 0:
            logger.debug(f"Algorithm {request.kind} skipped: nothing rendered")
            return {}
        if request.kind == 'pagerank':
            return self._apply_pagerank(request)
        return self._apply_degree_centrality(request)

    def _apply_pagerank(self, request: AlgorithmRequest) -> Dict[int, float]:
        s = self.settings
        scores = pagerank_scores(
            self.engine.graph(),
            damping=request.params.get('damping', s.pagerank_damping),
            max_iter=request.params.get('max_iter', s.pagerank_max_iter),
        )
        sizes = scale_sizes(scores, s.base_node_size, s.max_size_growth)
        for node in self.engine.nodes():
            size = sizes.get(node.id)
            if size is None:
                continue
            node.visual_size = size
            self.engine.animate_style(node.id, {'size': size, 'opacity': 1.0}, s.animation_ms)
        logger.info(f"PageRank applied to {len(scores)} nodes")
        return scores

    def _apply_degree_centrality(self, request: AlgorithmRequest) -> Dict[int, float]:
        s = self.settings
        threshold = request.params.get('threshold', s.degree_threshold)
        degrees = normalized_degrees(self.engine.graph())

        self.engine.remove_class(HUB_CLASS)
        self.engine.remove_class(DIMMED_CLASS)
        hubs = 0
        for node in self.engine.nodes():
            degree = degrees.get(node.id, 0.0)
            if degree > threshold:
                hubs += 1
                node.color = s.hub_color
                node.visual_size = s.base_node_size * HUB_SIZE_FACTOR
                self.engine.add_class(node.id, HUB_CLASS)
                self.engine.animate_style(
                    node.id, {'color': s.hub_color, 'size': node.visual_size, 'opacity': 1.0}, s.animation_ms)
            else:
                node.visual_size = s.base_node_size * DIMMED_SIZE_FACTOR
                self.engine.add_class(node.id, DIMMED_CLASS)
                self.engine.animate_style(
                    node.id, {'size': node.visual_size, 'opacity': s.dim_opacity}, s.animation_ms)
        logger.info(f"Degree centrality: {hubs} hubs above {threshold}")
        return degrees

    # === Fullscreen and resizing ===

    def toggle_fullscreen(self) -> bool:
        """Start the shutter transition. Returns False while one is already running."""
        if not self.alive:
            return False
        return self._transition.start()

    def resize_to_container(self) -> None:
        self.engine.resize(*self.container_size)

    def fit_all(self) -> None:
        self.engine.fit(None, padding=self.settings.camera_padding)

    def on_container_resize(self, width: float, height: float) -> None:
        """Container size observer callback."""
        self.container_size = (width, height)
        if not self.alive:
            return
        self.engine.resize(width, height)
        # Re-fitting mid-shutter would fight the transition.
        if self.visible and self.rendering:
            self.fit_all()

    # === Teardown ===

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        self._transition.cancel()
        self.event_bus.off(RUN_ALGORITHM, self._on_run_algorithm)
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.engine.destroy()


def _copy_properties(properties: dict) -> dict:
    return copy.deepcopy(properties)

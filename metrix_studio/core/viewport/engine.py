"""
Rendering engine abstraction and the networkx-backed implementation.

The engine holds the viewport's private, mutable copy of the graph: element
data, per-element style (colour, size, opacity), style classes, layout
positions and the camera. Painting is out of scope; ``snapshot`` renders the
current state to an image with matplotlib for inspection and export.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union
import logging

import matplotlib
matplotlib.use('Agg')  # Set non-interactive backend before importing pyplot
import matplotlib.pyplot as plt
import networkx as nx
import numpy as np

from metrix_studio.settings import ViewportSettings, settings_manager
from metrix_studio.core.errors import LayoutError
from ..knowledge_base.schema import Edge, Node
from .styling import BACKGROUND, EDGE_COLOR, LABEL_COLOR, STRATEGIC_PALETTE

logger = logging.getLogger(__name__)

Style = Dict[str, Any]


class Camera:
    """Viewport camera: world-space centre and zoom factor."""

    def __init__(self, center: Tuple[float, float] = (0.0, 0.0), zoom: float = 1.0):
        self.center = center
        self.zoom = zoom

    def __repr__(self) -> str:
        return f"Camera(center=({self.center[0]:.3f}, {self.center[1]:.3f}), zoom={self.zoom:.3f})"


class RenderEngine(ABC):
    """Abstract rendering surface driven by the GraphViewport."""

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def add_node(self, node: Node, style: Optional[Style] = None) -> None:
        pass

    @abstractmethod
    def add_edge(self, edge: Edge, style: Optional[Style] = None) -> None:
        pass

    @abstractmethod
    def nodes(self) -> List[Node]:
        pass

    @abstractmethod
    def edges(self) -> List[Edge]:
        pass

    @abstractmethod
    def graph(self) -> nx.MultiDiGraph:
        """The rendered element set as a networkx graph."""
        pass

    @abstractmethod
    def run_layout(self) -> None:
        """Run the force layout over the current elements."""
        pass

    @abstractmethod
    def resize(self, width: float, height: float) -> None:
        pass

    @abstractmethod
    def fit(self, node_ids: Optional[Iterable[int]] = None, padding: float = 0) -> None:
        """Frame the camera on node_ids, or on every node when None."""
        pass

    @abstractmethod
    def center_on(self, node_id: int) -> None:
        pass

    @abstractmethod
    def style(self, element_id: int, kind: str = 'node') -> Style:
        pass

    @abstractmethod
    def set_style(self, element_id: int, style: Style, kind: str = 'node') -> None:
        pass

    @abstractmethod
    def animate_style(self, element_id: int, style: Style, duration_ms: int, kind: str = 'node') -> None:
        pass

    @abstractmethod
    def add_class(self, element_id: int, class_name: str, kind: str = 'node') -> None:
        pass

    @abstractmethod
    def remove_class(self, class_name: str, element_ids: Optional[Iterable[int]] = None,
                     kind: str = 'node') -> None:
        """Remove class_name from element_ids, or from every element of that kind when None."""
        pass

    @abstractmethod
    def has_class(self, element_id: int, class_name: str, kind: str = 'node') -> bool:
        pass

    @abstractmethod
    def destroy(self) -> None:
        pass

    @property
    @abstractmethod
    def destroyed(self) -> bool:
        pass


class NetworkXEngine(RenderEngine):
    """Render engine keeping its element set in a networkx MultiDiGraph."""

    def __init__(self, width: float = 800, height: float = 600, layout_seed: int = 42,
                 layout_iterations: int = 50):
        self._graph = nx.MultiDiGraph()
        self._edge_index: Dict[int, Tuple[int, int]] = {}
        self.positions: Dict[int, np.ndarray] = {}
        self.width = width
        self.height = height
        self.camera = Camera()
        self.layout_seed = layout_seed
        self.layout_iterations = layout_iterations
        self.layout_runs = 0
        self.animations: List[Tuple[str, int, Style, int]] = []
        self._destroyed = False

    @classmethod
    def from_settings(cls, settings: Optional[ViewportSettings] = None, width: float = 800,
                      height: float = 600) -> 'NetworkXEngine':
        """Build an engine whose layout follows the configured seed and iteration count."""
        settings = settings or settings_manager.get_settings().viewport
        return cls(width=width, height=height, layout_seed=settings.layout_seed,
                   layout_iterations=settings.layout_iterations)

    # === Elements ===

    def clear(self) -> None:
        self._graph.clear()
        self._edge_index.clear()
        self.positions = {}
        self.animations.clear()

    def add_node(self, node: Node, style: Optional[Style] = None) -> None:
        self._graph.add_node(node.id, element=node, style=dict(style or {}), classes=set())

    def add_edge(self, edge: Edge, style: Optional[Style] = None) -> None:
        if edge.source_id not in self._graph or edge.target_id not in self._graph:
            raise KeyError(f"Edge {edge.id} references a node that is not rendered")
        self._graph.add_edge(edge.source_id, edge.target_id, key=edge.id,
                             element=edge, style=dict(style or {}), classes=set())
        self._edge_index[edge.id] = (edge.source_id, edge.target_id)

    def nodes(self) -> List[Node]:
        return [data['element'] for _, data in self._graph.nodes(data=True)]

    def edges(self) -> List[Edge]:
        return [data['element'] for _, _, data in self._graph.edges(data=True)]

    def node(self, node_id: int) -> Optional[Node]:
        if node_id not in self._graph:
            return None
        return self._graph.nodes[node_id]['element']

    def edge(self, edge_id: int) -> Optional[Edge]:
        data = self._edge_data(edge_id)
        return data['element'] if data is not None else None

    def graph(self) -> nx.MultiDiGraph:
        return self._graph

    def _edge_data(self, edge_id: int) -> Optional[Dict[str, Any]]:
        endpoints = self._edge_index.get(edge_id)
        if endpoints is None:
            return None
        return self._graph.edges[endpoints[0], endpoints[1], edge_id]

    def _data(self, element_id: int, kind: str) -> Dict[str, Any]:
        if kind == 'edge':
            data = self._edge_data(element_id)
        else:
            data = self._graph.nodes[element_id] if element_id in self._graph else None
        if data is None:
            raise KeyError(f"No rendered {kind} with id {element_id}")
        return data

    # === Layout and camera ===

    def run_layout(self) -> None:
        if self._graph.number_of_nodes() == 0:
            self.positions = {}
            return
        undirected = nx.Graph(self._graph.to_undirected(as_view=True))
        try:
            layout = nx.spring_layout(undirected, seed=self.layout_seed, iterations=self.layout_iterations)
        except (nx.NetworkXException, ValueError, FloatingPointError) as e:
            raise LayoutError(str(e)) from e
        self.positions = {node_id: np.asarray(pos, dtype=float) for node_id, pos in layout.items()}
        self.layout_runs += 1

    def resize(self, width: float, height: float) -> None:
        self.width = max(float(width), 0.0)
        self.height = max(float(height), 0.0)

    def fit(self, node_ids: Optional[Iterable[int]] = None, padding: float = 0) -> None:
        ids = list(self.positions) if node_ids is None else [i for i in node_ids if i in self.positions]
        if not ids:
            return
        points = np.vstack([self.positions[i] for i in ids])
        lower, upper = points.min(axis=0), points.max(axis=0)
        center = (lower + upper) / 2.0
        span = upper - lower

        usable_w = max(self.width - 2 * padding, 1.0)
        usable_h = max(self.height - 2 * padding, 1.0)
        zooms = [usable / extent for usable, extent in ((usable_w, span[0]), (usable_h, span[1])) if extent > 0]
        zoom = min(zooms) if zooms else self.camera.zoom
        self.camera = Camera(center=(float(center[0]), float(center[1])), zoom=float(zoom))

    def center_on(self, node_id: int) -> None:
        pos = self.positions.get(node_id)
        if pos is not None:
            self.camera = Camera(center=(float(pos[0]), float(pos[1])), zoom=self.camera.zoom)

    # === Styling ===

    def style(self, element_id: int, kind: str = 'node') -> Style:
        return dict(self._data(element_id, kind)['style'])

    def set_style(self, element_id: int, style: Style, kind: str = 'node') -> None:
        self._data(element_id, kind)['style'].update(style)

    def animate_style(self, element_id: int, style: Style, duration_ms: int, kind: str = 'node') -> None:
        # Headless engine: the end state is applied at once and the animation recorded.
        self.set_style(element_id, style, kind)
        self.animations.append((kind, element_id, dict(style), duration_ms))

    def add_class(self, element_id: int, class_name: str, kind: str = 'node') -> None:
        self._data(element_id, kind)['classes'].add(class_name)

    def remove_class(self, class_name: str, element_ids: Optional[Iterable[int]] = None,
                     kind: str = 'node') -> None:
        if element_ids is None:
            if kind == 'edge':
                element_ids = list(self._edge_index)
            else:
                element_ids = list(self._graph.nodes)
        for element_id in element_ids:
            try:
                self._data(element_id, kind)['classes'].discard(class_name)
            except KeyError:
                continue

    def has_class(self, element_id: int, class_name: str, kind: str = 'node') -> bool:
        return class_name in self._data(element_id, kind)['classes']

    def classed(self, class_name: str, kind: str = 'node') -> Set[int]:
        if kind == 'edge':
            return {eid for eid in self._edge_index if class_name in self._edge_data(eid)['classes']}
        return {nid for nid, data in self._graph.nodes(data=True) if class_name in data['classes']}

    # === Lifecycle ===

    def destroy(self) -> None:
        self.clear()
        self._destroyed = True

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def snapshot(self, file_path: Union[str, Path], dpi: int = 100) -> Path:
        """Render the current element set to an image file."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        fig, ax = plt.subplots(figsize=(max(self.width, 1) / dpi, max(self.height, 1) / dpi), dpi=dpi)
        fig.patch.set_facecolor(BACKGROUND)
        ax.set_facecolor(BACKGROUND)
        ax.axis('off')

        if self.positions:
            pos = {nid: self.positions[nid] for nid in self._graph.nodes if nid in self.positions}
            node_list = list(pos)
            styles = [self._graph.nodes[nid]['style'] for nid in node_list]
            nx.draw_networkx_edges(
                self._graph, pos, ax=ax,
                edgelist=[(u, v) for u, v, _ in self._graph.edges(keys=True) if u in pos and v in pos],
                edge_color=EDGE_COLOR, arrows=True, arrowsize=8, alpha=0.8,
            )
            nx.draw_networkx_nodes(
                self._graph, pos, ax=ax, nodelist=node_list,
                node_color=[s.get("color", STRATEGIC_PALETTE[0]) for s in styles],
                node_size=[float(s.get('size', 18)) * 10 for s in styles],
                alpha=[float(s.get('opacity', 1.0)) for s in styles],
            )
            nx.draw_networkx_labels(
                self._graph, pos, ax=ax,
                labels={nid: self._graph.nodes[nid]['element'].label for nid in node_list},
                font_size=7, font_color=LABEL_COLOR,
            )

        fig.savefig(file_path, facecolor=BACKGROUND, bbox_inches='tight')
        plt.close(fig)
        logger.info(f"Graph snapshot saved to {file_path}")
        return file_path

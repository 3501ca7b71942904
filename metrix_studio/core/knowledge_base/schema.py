"""
Data model for the Metrix Studio client: graph elements, query results,
history entries and the small state records published by the store.
"""

import uuid
from typing import Any, Dict, List, Literal, Optional, Union

import networkx as nx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, JsonValue, model_validator

ElementKind = Literal['node', 'edge']
ExecutionStatus = Literal['success', 'error']
AlgorithmKind = Literal['pagerank', 'degree_centrality']
ResultView = Literal['graph', 'table']


class Node(BaseModel):
    """A graph node as returned by the database."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    label: str = ""
    properties: Dict[str, JsonValue] = Field(default_factory=dict)
    visual_size: Optional[float] = Field(default=None, validation_alias=AliasChoices('visual_size', 'val'))
    color: Optional[str] = None


class Edge(BaseModel):
    """A directed relationship between two nodes."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    source_id: int = Field(validation_alias=AliasChoices('source_id', 'source'))
    target_id: int = Field(validation_alias=AliasChoices('target_id', 'target'))
    label: str = ""
    properties: Dict[str, JsonValue] = Field(default_factory=dict)


GraphElement = Union[Node, Edge]


class GraphViewModel(BaseModel):
    """
    Canonical graph data published by the store.

    Frozen once built: every change produces a new view model. The viewport
    never receives these objects directly, only copies of them.
    """
    model_config = ConfigDict(frozen=True)

    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

    @model_validator(mode='after')
    def _unique_node_ids(self) -> 'GraphViewModel':
        seen = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"Duplicate node id {node.id} in view model")
            seen.add(node.id)
        return self

    @classmethod
    def empty(cls) -> 'GraphViewModel':
        return cls(nodes=[], edges=[])

    @classmethod
    def from_elements(cls, nodes: List[Node], edges: List[Edge]) -> 'GraphViewModel':
        """
        Build a view model from copies of the given elements.

        Row-oriented results repeat a node (or edge) once per row it appears
        in; only the first occurrence of each id is kept.
        """
        unique_nodes: Dict[int, Node] = {}
        for node in nodes:
            unique_nodes.setdefault(node.id, node)
        unique_edges: Dict[int, Edge] = {}
        for edge in edges:
            unique_edges.setdefault(edge.id, edge)
        return cls(
            nodes=[node.model_copy(deep=True) for node in unique_nodes.values()],
            edges=[edge.model_copy(deep=True) for edge in unique_edges.values()],
        )

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.edges

    def node_ids(self) -> set:
        return {node.id for node in self.nodes}

    def find_node(self, node_id: int) -> Optional[Node]:
        return next((node for node in self.nodes if node.id == node_id), None)

    def find_edge(self, edge_id: int) -> Optional[Edge]:
        return next((edge for edge in self.edges if edge.id == edge_id), None)

    def to_networkx(self) -> nx.MultiDiGraph:
        """Exports the view model as a networkx multigraph keyed by edge id."""
        graph = nx.MultiDiGraph()
        for node in self.nodes:
            graph.add_node(node.id, label=node.label, properties=dict(node.properties))
        for edge in self.edges:
            graph.add_edge(edge.source_id, edge.target_id, key=edge.id,
                           label=edge.label, properties=dict(edge.properties))
        return graph


class QueryResult(BaseModel):
    """Raw result payload produced by a DatabaseBackend."""
    model_config = ConfigDict(populate_by_name=True)

    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)
    columns: List[str] = Field(default_factory=list)
    rows: List[List[JsonValue]] = Field(default_factory=list)
    duration_ms: int = Field(default=0, validation_alias=AliasChoices('duration_ms', 'durationMs'))


class HistoryEntry(BaseModel):
    """One recorded query execution."""
    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    query_text: str
    timestamp: int  # epoch milliseconds
    status: ExecutionStatus
    duration_ms: int
    result_count: int = 0


class ConnectionState(BaseModel):
    """Connection to a database path. Connected exactly when a path is set."""
    model_config = ConfigDict(frozen=True)

    path: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self.path is not None


class Selection(BaseModel):
    """The currently selected graph element, if any."""
    model_config = ConfigDict(frozen=True)

    element: Optional[GraphElement] = None
    kind: Optional[ElementKind] = None

    @model_validator(mode='after')
    def _element_matches_kind(self) -> 'Selection':
        if (self.element is None) != (self.kind is None):
            raise ValueError("Selection element and kind must both be set or both be empty")
        if self.kind == 'node' and not isinstance(self.element, Node):
            raise ValueError("Selection kind 'node' requires a Node element")
        if self.kind == 'edge' and not isinstance(self.element, Edge):
            raise ValueError("Selection kind 'edge' requires an Edge element")
        return self

    @property
    def is_empty(self) -> bool:
        return self.element is None


class AlgorithmRequest(BaseModel):
    """A one-shot request to re-encode the rendered graph with an algorithm."""
    kind: AlgorithmKind
    params: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> 'AlgorithmRequest':
        """Accepts either a request or the ``{"algorithm": ...}`` event payload."""
        if isinstance(payload, AlgorithmRequest):
            return payload
        if isinstance(payload, dict):
            kind = payload.get('algorithm', payload.get('kind'))
            return cls(kind=kind, params=dict(payload.get('params') or {}))
        raise ValueError(f"Unsupported algorithm payload: {payload!r}")


class ViewportStats(BaseModel):
    node_count: int = 0
    edge_count: int = 0

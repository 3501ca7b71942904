"""
Application State Coordinator

The StateStore is the single source of truth for connection, query, result,
selection, history and layout state. It is constructed once at startup and
injected into its consumers; every mutation goes through one of its action
methods, after which subscribers receive a fresh immutable AppState.
"""

import logging
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, JsonValue

from metrix_studio.settings import Settings, settings_manager
from metrix_studio.core.errors import ConnectionError
from metrix_studio.core.logging import log_connection
from ..knowledge_base.interfaces.backend import DatabaseBackend, RecentsStore
from ..knowledge_base.interfaces.recents import YamlRecentsStore
from ..knowledge_base.schema import (
    ConnectionState,
    ElementKind,
    GraphElement,
    GraphViewModel,
    HistoryEntry,
    Node,
    ResultView,
    Selection,
)
from .executor import ExecutionFailure, ExecutionOutcome, QueryExecutor
from .history import HistoryLog
from .layout import BottomPanel, LayoutController, LayoutState, LeftTab, TopPanel

logger = logging.getLogger(__name__)

Listener = Callable[['AppState'], None]


class AppState(BaseModel):
    """Immutable snapshot of everything the store owns."""
    model_config = ConfigDict(frozen=True)

    connection: ConnectionState = Field(default_factory=ConnectionState)
    query_text: str = ""
    graph_view_model: GraphViewModel = Field(default_factory=GraphViewModel.empty)
    selection: Selection = Field(default_factory=Selection)
    history: List[HistoryEntry] = Field(default_factory=list)
    layout: LayoutState = Field(default_factory=LayoutState)
    recent_files: List[str] = Field(default_factory=list)
    last_error: Optional[str] = None
    active_result_view: ResultView = 'graph'
    result_columns: List[str] = Field(default_factory=list)
    result_rows: List[List[JsonValue]] = Field(default_factory=list)

    @property
    def is_connected(self) -> bool:
        return self.connection.is_connected

    @property
    def right_sidebar_visible(self) -> bool:
        return self.layout.right_sidebar_visible


class StateStore:
    """Top-level coordinator owning all client state."""

    def __init__(self, backend: DatabaseBackend, recents_store: Optional[RecentsStore] = None,
                 settings: Optional[Settings] = None, clock: Optional[Callable[[], int]] = None,
                 timer: Optional[Callable[[], float]] = None):
        """
        Args:
            backend: Database engine used for connections and queries
            recents_store: Persistence for recently opened paths. Defaults to the YAML file named by
                ``recents.file`` in settings.
            settings: Application settings. Falls back to the global settings manager.
            clock: Epoch-millisecond clock for history timestamps
            timer: Monotonic millisecond clock for failure durations
        """
        self.settings = settings or settings_manager.get_settings()
        self.backend = backend
        self.recents_store = recents_store or YamlRecentsStore(self.settings.recents.path)

        self.history = HistoryLog(capacity=self.settings.history.capacity, clock=clock)
        self.layout = LayoutController()
        self.executor = QueryExecutor(backend, self.history, lambda: self.connection.is_connected, timer=timer)

        self.connection = ConnectionState()
        self.query_text = self.settings.query.default_query
        self.graph_view_model = GraphViewModel.empty()
        self.selection = Selection()
        self.last_error: Optional[str] = None
        self.active_result_view: ResultView = 'graph'
        self.result_columns: List[str] = []
        self.result_rows: List[List[JsonValue]] = []
        self.recent_files: List[str] = self._capped(self.recents_store.load())

        self._listeners: List[Listener] = []

    # === Subscription ===

    def snapshot(self) -> AppState:
        return AppState(
            connection=self.connection,
            query_text=self.query_text,
            graph_view_model=self.graph_view_model,
            selection=self.selection,
            history=self.history.entries(),
            layout=self.layout.state,
            recent_files=list(self.recent_files),
            last_error=self.last_error,
            active_result_view=self.active_result_view,
            result_columns=list(self.result_columns),
            result_rows=list(self.result_rows),
        )

    @property
    def state(self) -> AppState:
        return self.snapshot()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for state changes. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener failed")

    def close(self) -> None:
        """Drop every subscriber. The store itself holds no other resources."""
        self._listeners.clear()

    # === Connection ===

    async def connect(self, path: str) -> None:
        """Open an existing database. Failed paths are pruned from recents."""
        try:
            await self.backend.connect_existing(path)
        except Exception as e:
            logger.error(f"Connection failed for {path}: {e}")
            self.remove_recent_file(path, notify=False)
            self._fail_connection(path, e)

        self._connected(path)
        log_connection(f"Connected to {path}")

    async def create_database(self, parent_dir: str, name: str) -> str:
        """Create a new database file ``<parent_dir>/<name>.<ext>`` and connect to it."""
        path = f"{parent_dir.rstrip('/')}/{name}.{self.settings.app.database_extension}"
        try:
            await self.backend.create(path)
        except Exception as e:
            logger.error(f"Database creation failed for {path}: {e}")
            self._fail_connection(path, e)

        self._connected(path)
        log_connection(f"Created database at {path}")
        return path

    async def disconnect(self) -> None:
        try:
            await self.backend.disconnect()
        except Exception as e:
            logger.warning(f"Backend disconnect failed (ignored): {e}")

        previous = self.connection.path
        self.executor.invalidate()
        self.connection = ConnectionState()
        self.graph_view_model = GraphViewModel.empty()
        self.selection = Selection()
        self.result_columns = []
        self.result_rows = []
        self._notify()
        if previous:
            log_connection(f"Disconnected from {previous}")

    def _connected(self, path: str) -> None:
        self.connection = ConnectionState(path=path)
        self.last_error = None
        self._add_recent_file(path)
        self._notify()

    def _fail_connection(self, path: str, error: Exception) -> None:
        message = getattr(error, 'message', None) or str(error) or "Internal database integrity error."
        self.last_error = message
        self._notify()
        if isinstance(error, ConnectionError):
            raise error
        raise ConnectionError(message, path=path) from error

    def status_text(self) -> str:
        if self.connection.is_connected:
            return f"CONNECTED {self.connection.path}"
        return "DISCONNECTED"

    # === Recents ===

    def _capped(self, paths: List[str]) -> List[str]:
        unique: List[str] = []
        for p in paths:
            if p not in unique:
                unique.append(p)
        return unique[:self.settings.recents.capacity]

    def _add_recent_file(self, path: str) -> None:
        self.recent_files = self._capped([path] + [p for p in self.recent_files if p != path])
        self._save_recents()

    def _save_recents(self) -> None:
        # Non-fatal: the in-memory list stays authoritative for this session.
        try:
            self.recents_store.save(self.recent_files)
        except OSError as e:
            logger.warning(f"Could not persist recent files: {e}")

    def remove_recent_file(self, path: str, notify: bool = True) -> None:
        if path not in self.recent_files:
            return
        self.recent_files = [p for p in self.recent_files if p != path]
        self._save_recents()
        if notify:
            self._notify()

    def filter_recents(self, term: str) -> List[str]:
        needle = term.lower()
        return [p for p in self.recent_files if needle in p.lower()]

    # === Query ===

    def set_query_text(self, text: str) -> None:
        self.query_text = text
        self._notify()

    async def run_query(self, override_text: Optional[str] = None) -> Optional[ExecutionOutcome]:
        """
        Run the current query text, or override_text which then becomes the
        current query text. Does nothing while disconnected.
        """
        if not self.connection.is_connected:
            logger.debug("run_query ignored: not connected")
            return None

        if override_text is not None:
            self.query_text = override_text
            self._notify()

        outcome = await self.executor.execute(self.query_text)
        if outcome is None or outcome.stale:
            return outcome

        if isinstance(outcome, ExecutionFailure):
            # Keep the previous graph: stale-but-valid data stays visible.
            self.last_error = outcome.message
        else:
            self.graph_view_model = outcome.graph_view_model
            self.result_columns = outcome.columns
            self.result_rows = outcome.rows
            self.active_result_view = outcome.preferred_view
            self.last_error = None
            self._drop_missing_selection()

        self._notify()
        return outcome

    def _drop_missing_selection(self) -> None:
        element = self.selection.element
        if element is None:
            return
        if isinstance(element, Node):
            still_present = element.id in self.graph_view_model.node_ids()
        else:
            still_present = self.graph_view_model.find_edge(element.id) is not None
        if not still_present:
            self.selection = Selection()

    def set_result_view(self, view: ResultView) -> None:
        self.active_result_view = view
        self._notify()

    def clear_error(self) -> None:
        self.last_error = None
        self._notify()

    # === Selection ===

    def select(self, element: Optional[GraphElement], kind: Optional[ElementKind]) -> None:
        """Select an element (or clear the selection). Selecting reveals the properties panel."""
        if element is None:
            self.selection = Selection()
        else:
            self.selection = Selection(element=element, kind=kind)
            if self.layout.state.top_panel != 'properties':
                self.layout.reveal_top('properties')
        self._notify()

    # === Layout ===

    def toggle_left(self, tab: LeftTab) -> None:
        self.layout.toggle_left(tab)
        self._notify()

    def toggle_top(self, panel: TopPanel) -> None:
        self.layout.toggle_top(panel)
        self._notify()

    def toggle_bottom(self, panel: BottomPanel) -> None:
        self.layout.toggle_bottom(panel)
        self._notify()

"""
Query execution against the DatabaseBackend.

Each call to ``execute`` is tagged with a monotonically increasing request
id. Only the most recently issued request is allowed to touch the history
log; older requests that resolve afterwards come back flagged as stale so
the store can drop them.
"""

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from pydantic import JsonValue

from metrix_studio.core.errors import QueryError
from metrix_studio.core.logging import log_query, log_query_error
from ..knowledge_base.interfaces.backend import DatabaseBackend
from ..knowledge_base.schema import GraphViewModel, HistoryEntry, QueryResult, ResultView
from .history import HistoryLog

logger = logging.getLogger(__name__)

UNKNOWN_QUERY_ERROR = "Unknown database execution error"


def monotonic_ms() -> float:
    return time.perf_counter() * 1000.0


@dataclass(frozen=True)
class ExecutionSuccess:
    request_id: int
    query_text: str
    graph_view_model: GraphViewModel
    columns: List[str]
    rows: List[List[JsonValue]]
    duration_ms: int
    preferred_view: ResultView
    history_entry: Optional[HistoryEntry] = None
    stale: bool = False


@dataclass(frozen=True)
class ExecutionFailure:
    request_id: int
    query_text: str
    message: str
    duration_ms: int
    history_entry: Optional[HistoryEntry] = None
    stale: bool = False


ExecutionOutcome = Union[ExecutionSuccess, ExecutionFailure]


def preferred_view_for(result: QueryResult) -> ResultView:
    """Tabular results with no graph elements are best shown as a table."""
    if result.rows and not result.nodes:
        return 'table'
    return 'graph'


def _failure_message(error: Exception) -> str:
    if isinstance(error, QueryError):
        return error.message or UNKNOWN_QUERY_ERROR
    return str(error) or UNKNOWN_QUERY_ERROR


class QueryExecutor:
    """Runs one query at a time from the caller's perspective and records it in history."""

    def __init__(self, backend: DatabaseBackend, history: HistoryLog,
                 is_connected: Callable[[], bool], timer: Optional[Callable[[], float]] = None):
        """
        Args:
            backend: Database engine the query text is sent to
            history: Log receiving one entry per (non-stale) execution
            is_connected: Connection guard evaluated before every execution
            timer: Monotonic millisecond clock used for wall-clock durations
        """
        self.backend = backend
        self.history = history
        self._is_connected = is_connected
        self._timer = timer or monotonic_ms
        self._request_ids = itertools.count(1)
        self._latest_request_id = 0

    @property
    def latest_request_id(self) -> int:
        return self._latest_request_id

    def is_latest(self, request_id: int) -> bool:
        return request_id == self._latest_request_id

    def invalidate(self) -> None:
        """Mark every in-flight request as stale (e.g. on disconnect)."""
        self._latest_request_id = next(self._request_ids)

    async def execute(self, query_text: str) -> Optional[ExecutionOutcome]:
        """
        Execute query_text and record the outcome.

        Returns:
            None when not connected (no backend call is made), otherwise an
            ExecutionSuccess or ExecutionFailure. Outcomes superseded by a
            newer request are returned with ``stale=True`` and not recorded.
        """
        if not self._is_connected():
            logger.debug("Query ignored: no database connected")
            return None

        request_id = next(self._request_ids)
        self._latest_request_id = request_id
        start = self._timer()

        try:
            raw = await self.backend.query(query_text)
            result = raw if isinstance(raw, QueryResult) else QueryResult.model_validate(raw)
        except Exception as e:
            duration_ms = int(self._timer() - start)
            message = _failure_message(e)
            if not self.is_latest(request_id):
                logger.debug(f"Dropping stale failure for request {request_id}: {message}")
                return ExecutionFailure(request_id, query_text, message, duration_ms, stale=True)

            entry = self.history.record(query_text, 'error', duration_ms, 0)
            log_query_error(query_text, message, duration_ms)
            return ExecutionFailure(request_id, query_text, message, duration_ms, history_entry=entry)

        # Copies only: the render layer mutates whatever element objects it is handed.
        view_model = GraphViewModel.from_elements(result.nodes, result.edges)
        result_count = len(view_model.nodes) if view_model.nodes else len(result.rows)

        if not self.is_latest(request_id):
            logger.debug(f"Dropping stale result for request {request_id}")
            return ExecutionSuccess(
                request_id, query_text, view_model, list(result.columns), list(result.rows),
                result.duration_ms, preferred_view_for(result), stale=True,
            )

        entry = self.history.record(query_text, 'success', result.duration_ms, result_count)
        log_query(query_text, result.duration_ms, result_count)
        return ExecutionSuccess(
            request_id=request_id,
            query_text=query_text,
            graph_view_model=view_model,
            columns=list(result.columns),
            rows=[list(row) for row in result.rows],
            duration_ms=result.duration_ms,
            preferred_view=preferred_view_for(result),
            history_entry=entry,
        )

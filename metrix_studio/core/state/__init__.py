from .history import HistoryLog
from .layout import LayoutController, LayoutState
from .executor import ExecutionFailure, ExecutionSuccess, QueryExecutor
from .store import AppState, StateStore
from .actions import AlgorithmPanel, DatabaseActions
from .formatting import format_cell_value

__all__ = [
    'HistoryLog',
    'LayoutController',
    'LayoutState',
    'ExecutionFailure',
    'ExecutionSuccess',
    'QueryExecutor',
    'AppState',
    'StateStore',
    'AlgorithmPanel',
    'DatabaseActions',
    'format_cell_value',
]

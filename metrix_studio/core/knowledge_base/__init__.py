"""
Knowledge base layer: graph data model and the external database contracts.
"""

from .schema import (
    AlgorithmRequest,
    ConnectionState,
    Edge,
    GraphViewModel,
    HistoryEntry,
    Node,
    QueryResult,
    Selection,
    ViewportStats,
)
from .interfaces import DatabaseBackend, FileDialog, RecentsStore, MemoryRecentsStore, YamlRecentsStore

__all__ = [
    'AlgorithmRequest',
    'ConnectionState',
    'Edge',
    'GraphViewModel',
    'HistoryEntry',
    'Node',
    'QueryResult',
    'Selection',
    'ViewportStats',
    'DatabaseBackend',
    'FileDialog',
    'RecentsStore',
    'MemoryRecentsStore',
    'YamlRecentsStore',
]

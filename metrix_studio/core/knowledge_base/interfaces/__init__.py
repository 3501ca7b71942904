from .backend import DatabaseBackend, FileDialog, RecentsStore
from .recents import MemoryRecentsStore, YamlRecentsStore

__all__ = [
    'DatabaseBackend',
    'FileDialog',
    'RecentsStore',
    'MemoryRecentsStore',
    'YamlRecentsStore',
]

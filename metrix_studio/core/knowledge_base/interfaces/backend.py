"""
Contracts for the collaborators the client consumes but does not implement:
the database engine, native file pickers and recents persistence.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..schema import QueryResult


class DatabaseBackend(ABC):
    """Abstract interface to the graph database engine."""

    @abstractmethod
    async def connect_existing(self, path: str) -> None:
        """Open an existing store. Raises ConnectionError if the path is not a valid store."""
        pass

    @abstractmethod
    async def create(self, path: str) -> None:
        """Create (or open) a store at path. Raises ConnectionError on filesystem failures."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the current store. Best effort."""
        pass

    @abstractmethod
    async def query(self, text: str) -> QueryResult:
        """Execute query text. Raises QueryError on malformed or failing queries."""
        pass


class FileDialog(ABC):
    """Native file and directory pickers."""

    @abstractmethod
    async def open_file(self, filters: Sequence[str]) -> Optional[str]:
        """Pick a single file whose extension is in filters. None when cancelled."""
        pass

    @abstractmethod
    async def open_directory(self) -> Optional[str]:
        """Pick a directory. None when cancelled."""
        pass


class RecentsStore(ABC):
    """Keyed persistence for the recently opened database paths."""

    @abstractmethod
    def load(self) -> List[str]:
        pass

    @abstractmethod
    def save(self, paths: List[str]) -> None:
        pass

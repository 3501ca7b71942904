"""
User-facing actions that wrap the StateStore with the native dialogs and
the failure reporting a front end needs.
"""

import logging
import re
from typing import Callable, Optional, Sequence

from metrix_studio.settings import settings_manager
from metrix_studio.core.errors import ConnectionError
from metrix_studio.core.events import RUN_ALGORITHM, EventBus
from metrix_studio.core.scheduler import ScheduledHandle, Scheduler
from ..knowledge_base.interfaces.backend import FileDialog
from ..knowledge_base.schema import AlgorithmKind
from .store import StateStore

logger = logging.getLogger(__name__)

BUSY_MARKER_MS = 1000

_UNSAFE_NAME_CHARS = re.compile(r'[^A-Za-z0-9_-]')


def sanitize_database_name(name: str) -> str:
    """Keep only letters, digits, underscores and hyphens."""
    return _UNSAFE_NAME_CHARS.sub('', name or '')


def open_failure_message(path: str, reason: str) -> str:
    return (f"Failed to open database at:\n{path}\n\nReason: {reason}\n\n"
            f"This project will be removed from your history.")


class DatabaseActions:
    """Open, create and close databases on behalf of the user."""

    def __init__(self, store: StateStore, file_dialog: FileDialog,
                 notify: Optional[Callable[[str], None]] = None,
                 open_extensions: Optional[Sequence[str]] = None):
        """
        Args:
            store: The application StateStore
            file_dialog: Native file and directory picker
            notify: Receives user-facing failure messages (logged if None)
            open_extensions: Extensions offered by the open dialog
        """
        self.store = store
        self.file_dialog = file_dialog
        self.notify = notify or (lambda message: logger.error(message))
        if open_extensions is None:
            open_extensions = settings_manager.get_settings().app.open_extensions
        self.open_extensions = list(open_extensions)

    async def open_database_dialog(self) -> bool:
        """Pick a database file and connect to it. Returns True once connected."""
        try:
            path = await self.file_dialog.open_file(self.open_extensions)
        except Exception as e:
            logger.error(f"Failed to open file dialog: {e}")
            return False
        if not path:
            return False
        logger.info(f"Opening database: {path}")
        return await self.safe_connect(path)

    async def safe_connect(self, path: str) -> bool:
        """Connect to path, reporting a failure instead of raising it."""
        try:
            await self.store.connect(path)
        except ConnectionError as e:
            # The store has already pruned path from the recents list.
            self.notify(open_failure_message(path, e.message))
            return False
        return True

    async def create_database_dialog(self, name: str) -> Optional[str]:
        """
        Create ``<directory>/<name>.mx`` in a picked directory and connect to it.

        Returns:
            The new database path, or None if the name was empty after
            sanitising, the dialog was dismissed or creation failed.
        """
        safe_name = sanitize_database_name(name)
        if not safe_name:
            return None
        try:
            parent_dir = await self.file_dialog.open_directory()
        except Exception as e:
            logger.error(f"Failed to open directory dialog: {e}")
            return None
        if not parent_dir:
            return None
        try:
            return await self.store.create_database(parent_dir, safe_name)
        except ConnectionError as e:
            self.notify(f"Failed to create database at:\n{e.path}\n\nReason: {e.message}")
            return None

    async def disconnect(self) -> None:
        await self.store.disconnect()


class AlgorithmPanel:
    """Emits algorithm requests, at most one per busy window."""

    def __init__(self, event_bus: EventBus, scheduler: Scheduler, node_count: Callable[[], int]):
        self.event_bus = event_bus
        self.scheduler = scheduler
        self.node_count = node_count
        self.running: Optional[AlgorithmKind] = None
        self._reset: Optional[ScheduledHandle] = None

    @property
    def enabled(self) -> bool:
        return self.node_count() > 0

    def request(self, kind: AlgorithmKind) -> bool:
        if self.running or not self.enabled:
            return False
        self.running = kind
        self.event_bus.emit(RUN_ALGORITHM, {'algorithm': kind})
        self._reset = self.scheduler.call_later(BUSY_MARKER_MS, self._clear_busy)
        return True

    def _clear_busy(self) -> None:
        self.running = None
        self._reset = None

    def teardown(self) -> None:
        if self._reset is not None:
            self._reset.cancel()
        self._clear_busy()

"""RecentsStore implementations."""

import logging
from pathlib import Path
from typing import List, Optional, Union

import yaml

from .backend import RecentsStore

logger = logging.getLogger(__name__)


class MemoryRecentsStore(RecentsStore):
    """Keeps the recents list in memory only."""

    def __init__(self, paths: Optional[List[str]] = None):
        self._paths = list(paths or [])

    def load(self) -> List[str]:
        return list(self._paths)

    def save(self, paths: List[str]) -> None:
        self._paths = list(paths)


class YamlRecentsStore(RecentsStore):
    """Persists the recents list as a YAML document."""

    def __init__(self, file_path: Union[str, Path]):
        self.file_path = Path(file_path).expanduser()

    def load(self) -> List[str]:
        if not self.file_path.exists():
            return []
        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not read recents file {self.file_path}: {e}")
            return []

        paths = data.get('recent_files', []) if isinstance(data, dict) else []
        return [str(p) for p in paths if isinstance(p, str)]

    def save(self, paths: List[str]) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.file_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump({'recent_files': list(paths)}, f, default_flow_style=False)

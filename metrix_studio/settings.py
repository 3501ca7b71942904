import yaml
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default_config.yaml"


class AppSettings:
    def __init__(self, name="Metrix Studio", version="0.1.0", database_extension="mx",
                 open_extensions=None):
        self.name = name
        self.version = version
        self.database_extension = database_extension
        self.open_extensions = list(open_extensions or ["mx", "db", "bin"])

class HistorySettings:
    def __init__(self, capacity=50):
        self.capacity = capacity

class RecentsSettings:
    def __init__(self, capacity=10, file="~/.metrix_studio/recents.yaml"):
        self.capacity = capacity
        self.file = file

    @property
    def path(self) -> Path:
        return Path(self.file).expanduser()

class QuerySettings:
    def __init__(self, default_query="MATCH (n)-[r]->(m) RETURN n,r,m LIMIT 50"):
        self.default_query = default_query

class ViewportSettings:
    def __init__(self, fade_out_ms=250, settle_ms=550, camera_padding=60, layout_seed=42,
                 layout_iterations=50, base_node_size=20, max_size_growth=40,
                 pagerank_damping=0.85, pagerank_max_iter=50, degree_threshold=0.3,
                 hub_color="#38bdf8", dim_opacity=0.2, animation_ms=500):
        # Shutter timings: phase 2 fires after the fade, phase 3 once the
        # container geometry has settled.
        self.fade_out_ms = fade_out_ms
        self.settle_ms = settle_ms
        self.camera_padding = camera_padding
        self.layout_seed = layout_seed
        self.layout_iterations = layout_iterations
        self.base_node_size = base_node_size
        self.max_size_growth = max_size_growth
        self.pagerank_damping = pagerank_damping
        self.pagerank_max_iter = pagerank_max_iter
        self.degree_threshold = degree_threshold
        self.hub_color = hub_color
        self.dim_opacity = dim_opacity
        self.animation_ms = animation_ms

class LoggingSettings:
    def __init__(self, level="INFO", log_dir=None):
        self.level = level
        self.log_dir = log_dir

class Settings:
    def __init__(self, app=None, history=None, recents=None, query=None, viewport=None, logging=None):
        self.app = app or AppSettings()
        self.history = history or HistorySettings()
        self.recents = recents or RecentsSettings()
        self.query = query or QuerySettings()
        self.viewport = viewport or ViewportSettings()
        self.logging = logging or LoggingSettings()

    def to_dict(self):
        return {
            "app": self.app.__dict__,
            "history": self.history.__dict__,
            "recents": self.recents.__dict__,
            "query": self.query.__dict__,
            "viewport": self.viewport.__dict__,
            "logging": self.logging.__dict__,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            app=AppSettings(**data.get("app", {})),
            history=HistorySettings(**data.get("history", {})),
            recents=RecentsSettings(**data.get("recents", {})),
            query=QuerySettings(**data.get("query", {})),
            viewport=ViewportSettings(**data.get("viewport", {})),
            logging=LoggingSettings(**data.get("logging", {})),
        )

class SettingsManager:
    """Manages application settings from config file and environment variables."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self.settings = self._load_settings()

    def _load_settings(self) -> Settings:
        settings_dict = {}
        if self.config_path.exists():
            with open(self.config_path, 'r') as f:
                config_data = yaml.safe_load(f)
                if config_data:
                    settings_dict.update(config_data)
        else:
            raise FileNotFoundError(f"Configuration file {self.config_path} not found.")
        load_dotenv()
        self._load_env_overrides(settings_dict)
        return Settings.from_dict(settings_dict)

    def _load_env_overrides(self, settings_dict):
        for section in ('logging', 'recents', 'history', 'query'):
            if not settings_dict.get(section):
                settings_dict[section] = {}

        if os.getenv('METRIX_LOG_LEVEL'):
            settings_dict['logging']['level'] = os.getenv('METRIX_LOG_LEVEL')
        if os.getenv('METRIX_LOG_DIR'):
            settings_dict['logging']['log_dir'] = os.getenv('METRIX_LOG_DIR')

        if os.getenv('METRIX_RECENTS_FILE'):
            settings_dict['recents']['file'] = os.getenv('METRIX_RECENTS_FILE')
        if os.getenv('METRIX_HISTORY_CAPACITY'):
            settings_dict['history']['capacity'] = int(os.getenv('METRIX_HISTORY_CAPACITY'))
        if os.getenv('METRIX_DEFAULT_QUERY'):
            settings_dict['query']['default_query'] = os.getenv('METRIX_DEFAULT_QUERY')

    def save_settings(self):
        with open(self.config_path, 'w') as f:
            yaml.dump(self.settings.to_dict(), f, default_flow_style=False)

    def get_settings(self) -> Settings:
        return self.settings

    def update_settings(self, **kwargs):
        settings_dict = self.settings.to_dict()
        for key, value in kwargs.items():
            if '.' in key:
                keys = key.split('.')
                current = settings_dict
                for k in keys[:-1]:
                    if k not in current:
                        current[k] = {}
                    current = current[k]
                current[keys[-1]] = value
            else:
                settings_dict[key] = value
        self.settings = Settings.from_dict(settings_dict)

# Global settings manager instance
settings_manager = SettingsManager()

"""
Metrix Studio Logging System
============================

Provides:
- Colored terminal output for better readability
- Optional file logging to a configured directory
- Custom levels for query execution, connections and viewport transitions
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union
from enum import Enum


class Colors:
    """ANSI color codes for terminal output."""
    YELLOW = '\033[93m'
    PURPLE = '\033[95m'
    GREEN = '\033[92m'
    BLUE = '\033[94m'
    RED = '\033[91m'
    CYAN = '\033[96m'
    WHITE = '\033[97m'
    GRAY = '\033[90m'
    ENDC = '\033[0m'  # End color
    BOLD = '\033[1m'


class LogLevel(Enum):
    """Custom log levels for Metrix Studio components."""
    TRANSITION = 15
    CONNECTION = 22
    QUERY = 25
    QUERY_ERROR = 45


class ColoredFormatter(logging.Formatter):
    """Custom formatter that adds colors to terminal output."""

    COLORS = {
        logging.DEBUG: Colors.GRAY,
        logging.INFO: Colors.WHITE,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.RED + Colors.BOLD,
        LogLevel.TRANSITION.value: Colors.PURPLE,
        LogLevel.CONNECTION.value: Colors.CYAN,
        LogLevel.QUERY.value: Colors.GREEN,
        LogLevel.QUERY_ERROR.value: Colors.RED,
    }

    def format(self, record):
        color = self.COLORS.get(record.levelno, Colors.WHITE)
        formatted = super().format(record)

        if getattr(record, 'add_color', False):
            formatted = f"{color}{formatted}{Colors.ENDC}"

        return formatted


class FileFormatter(logging.Formatter):
    """Formatter for file output without colors."""

    def format(self, record):
        formatted = super().format(record)

        if record.levelno == LogLevel.QUERY.value:
            formatted = f"▶ {formatted}"
        elif record.levelno == LogLevel.QUERY_ERROR.value:
            formatted = f"✖ {formatted}"
        elif record.levelno == LogLevel.CONNECTION.value:
            formatted = f"⛁ {formatted}"

        return formatted


class StudioLogger:
    """Main logger class owning the ``metrix_studio`` logger hierarchy."""

    def __init__(self, level: Union[str, int] = logging.INFO, log_dir: Optional[Path] = None,
                 session_id: Optional[str] = None):
        """
        Initialize the Studio logger.

        Args:
            level: Minimum level emitted by the handlers
            log_dir: Directory for the session log file. No file is written when None.
            session_id: Identifier used to name the log file (defaults to timestamp)
        """
        if session_id is None:
            session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.session_id = session_id
        self.log_dir = Path(log_dir) if log_dir else None

        self.logger = logging.getLogger('metrix_studio')
        self.logger.setLevel(logging.DEBUG)
        self.logger.handlers.clear()
        self.logger.propagate = False

        for custom_level in LogLevel:
            logging.addLevelName(custom_level.value, custom_level.name)

        self.level = logging.getLevelName(level.upper()) if isinstance(level, str) else level
        self._setup_handlers()

        self.logger.debug(f"Studio logger initialized - session {session_id}")

    def _setup_handlers(self):
        """Set up console and (optional) file handlers."""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.level)
        console_handler.setFormatter(ColoredFormatter(fmt='[%(name)s] %(message)s'))

        def add_color_filter(record):
            record.add_color = True
            return True
        console_handler.addFilter(add_color_filter)
        self.logger.addHandler(console_handler)

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            log_file = self.log_dir / f"{self.session_id}.log"
            file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(FileFormatter(
                fmt='[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(file_handler)

    def query(self, query_text: str, duration_ms: int, result_count: int):
        """Log a successful query execution."""
        self.logger.log(LogLevel.QUERY.value,
                        f"QUERY OK ({duration_ms}ms, {result_count} nodes): {query_text}")

    def query_error(self, query_text: str, error: str, duration_ms: int):
        """Log a failed query execution."""
        self.logger.log(LogLevel.QUERY_ERROR.value,
                        f"QUERY FAILED ({duration_ms}ms): {query_text}\nError: {error}")

    def connection(self, message: str):
        self.logger.log(LogLevel.CONNECTION.value, message)

    def transition(self, message: str):
        self.logger.log(LogLevel.TRANSITION.value, message)

    def debug(self, message: str, context: str = "DEBUG"):
        self.logger.debug(f"[{context}] {message}")

    def info(self, message: str):
        self.logger.info(message)

    def warning(self, message: str):
        self.logger.warning(message)

    def error(self, message: str):
        self.logger.error(message)


# Global logger instance
_global_logger: Optional[StudioLogger] = None


def get_logger() -> StudioLogger:
    """Get the global logger instance, configured from settings on first use."""
    global _global_logger
    if _global_logger is None:
        from metrix_studio.settings import settings_manager
        logging_settings = settings_manager.get_settings().logging
        _global_logger = StudioLogger(level=logging_settings.level, log_dir=logging_settings.log_dir)
    return _global_logger


def setup_logger(level: Union[str, int] = logging.INFO, log_dir: Optional[str] = None,
                 session_id: Optional[str] = None) -> StudioLogger:
    """Set up and return the global logger instance."""
    global _global_logger
    log_dir_path = Path(log_dir) if log_dir else None
    _global_logger = StudioLogger(level=level, log_dir=log_dir_path, session_id=session_id)
    return _global_logger


def log_query(query_text: str, duration_ms: int, result_count: int):
    get_logger().query(query_text, duration_ms, result_count)


def log_query_error(query_text: str, error: str, duration_ms: int):
    get_logger().query_error(query_text, error, duration_ms)


def log_connection(message: str):
    get_logger().connection(message)


def log_transition(message: str):
    get_logger().transition(message)


def log_debug(message: str, context: str = "DEBUG"):
    get_logger().debug(message, context)

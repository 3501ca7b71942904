from .events import EventBus, RUN_ALGORITHM
from .scheduler import AsyncioScheduler, Scheduler, VirtualScheduler
from .errors import ConnectionError, LayoutError, QueryError, StudioError

__all__ = [
    'EventBus',
    'RUN_ALGORITHM',
    'AsyncioScheduler',
    'Scheduler',
    'VirtualScheduler',
    'ConnectionError',
    'LayoutError',
    'QueryError',
    'StudioError',
]

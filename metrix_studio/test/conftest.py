import itertools
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from metrix_studio.settings import Settings
from metrix_studio.core.events import EventBus
from metrix_studio.core.scheduler import VirtualScheduler
from metrix_studio.core.knowledge_base.interfaces import DatabaseBackend, FileDialog, MemoryRecentsStore
from metrix_studio.core.knowledge_base.schema import Edge, Node, QueryResult
from metrix_studio.core.state.store import StateStore


def make_result(node_ids=(1, 2, 3), edges=((10, 1, 2), (11, 2, 3)), labels=None, duration_ms=7,
                columns=None, rows=None) -> QueryResult:
    """Build a QueryResult; edges are (id, source, target) triples."""
    labels = labels or {}
    return QueryResult(
        nodes=[Node(id=i, label=labels.get(i, "Person"), properties={'name': f"n{i}"}) for i in node_ids],
        edges=[Edge(id=e, source_id=s, target_id=t, label="KNOWS", properties={'since': 2020})
               for e, s, t in edges],
        columns=list(columns or []),
        rows=[list(r) for r in (rows or [])],
        duration_ms=duration_ms,
    )


@pytest.fixture(name="make_result")
def make_result_fixture():
    return make_result


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def backend():
    fake = AsyncMock(spec=DatabaseBackend)
    fake.query.return_value = make_result()
    return fake


@pytest.fixture
def recents():
    return MemoryRecentsStore()


@pytest.fixture
def file_dialog():
    return AsyncMock(spec=FileDialog)


@pytest.fixture
def scheduler():
    return VirtualScheduler()


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def clock():
    """Deterministic epoch-ms clock advancing one second per reading."""
    ticks = itertools.count(1_700_000_000_000, 1000)
    return lambda: next(ticks)


@pytest.fixture
def timer():
    """Monotonic ms timer advancing 5 ms per reading."""
    ticks = itertools.count(0, 5)
    return lambda: float(next(ticks))


@pytest.fixture
def store(backend, recents, settings, clock, timer):
    return StateStore(backend, recents_store=recents, settings=settings, clock=clock, timer=timer)


@pytest_asyncio.fixture
async def connected_store(store):
    await store.connect("/data/graph.mx")
    return store

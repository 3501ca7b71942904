import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from metrix_studio.core.events import RUN_ALGORITHM, EventBus


class TestEventBus:
    """Tests for synchronous in-process event delivery."""

    def test_fan_out_in_registration_order(self):
        bus = EventBus()
        calls = []
        bus.on(RUN_ALGORITHM, lambda p: calls.append(("first", p)))
        bus.on(RUN_ALGORITHM, lambda p: calls.append(("second", p)))

        bus.emit(RUN_ALGORITHM, {'algorithm': 'pagerank'})

        assert calls == [("first", {'algorithm': 'pagerank'}), ("second", {'algorithm': 'pagerank'})]

    def test_emit_without_handlers_is_dropped(self):
        bus = EventBus()
        bus.emit("nobody-listens", 1)
        assert bus.handler_count("nobody-listens") == 0

    def test_off_removes_handler(self):
        bus = EventBus()
        calls = []

        def handler(payload):
            calls.append(payload)

        bus.on(RUN_ALGORITHM, handler)
        bus.off(RUN_ALGORITHM, handler)
        bus.emit(RUN_ALGORITHM, 1)

        assert calls == []
        assert bus.handler_count(RUN_ALGORITHM) == 0

    def test_off_unknown_handler_is_harmless(self):
        bus = EventBus()
        bus.on(RUN_ALGORITHM, print)
        bus.off(RUN_ALGORITHM, len)
        bus.off("other", len)
        assert bus.handler_count(RUN_ALGORITHM) == 1

    def test_delivery_is_synchronous(self):
        bus = EventBus()
        seen = []
        bus.on("ping", seen.append)
        bus.emit("ping", 42)
        assert seen == [42]

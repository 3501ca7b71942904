"""
Fullscreen "shutter" transition.

Toggling fullscreen resizes the viewport container. Doing that while the
graph is painted makes the layout visibly jump, so the toggle runs as four
named phases driven by a Scheduler:

1. FADE_OUT  (t=0)       visible=False
2. DETACH    (t=fade)    rendering=False, next frame: flip fullscreen
3. RESIZE    (t=fade+settle) resize surface to the new container, fit all
4. FADE_IN               rendering=True, next frame: visible=True

Every deferred step checks that the owner is still alive, and ``cancel``
drops whatever is still pending.
"""

from enum import Enum
from typing import Callable, List, TYPE_CHECKING

from metrix_studio.core.logging import log_transition
from metrix_studio.core.scheduler import ScheduledHandle, Scheduler

if TYPE_CHECKING:
    from .viewport import GraphViewport


class ShutterPhase(Enum):
    IDLE = "idle"
    FADE_OUT = "fade_out"
    DETACH = "detach"
    RESIZE = "resize"
    FADE_IN = "fade_in"


class ShutterTransition:
    """Four-phase fullscreen state machine bound to one viewport."""

    def __init__(self, viewport: 'GraphViewport', scheduler: Scheduler, fade_out_ms: int = 250,
                 settle_ms: int = 550):
        self.viewport = viewport
        self.scheduler = scheduler
        self.fade_out_ms = fade_out_ms
        self.settle_ms = settle_ms
        self.phase = ShutterPhase.IDLE
        self._pending: List[ScheduledHandle] = []

    @property
    def running(self) -> bool:
        return self.phase != ShutterPhase.IDLE

    def start(self) -> bool:
        """Begin a toggle. Returns False if a toggle is already in progress."""
        if self.running:
            log_transition("Fullscreen toggle ignored: transition already running")
            return False
        self._enter(ShutterPhase.FADE_OUT)
        self.viewport.visible = False
        self._schedule(self.fade_out_ms, self._detach)
        return True

    def cancel(self) -> None:
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()
        self.phase = ShutterPhase.IDLE

    def _enter(self, phase: ShutterPhase) -> None:
        self.phase = phase
        log_transition(f"Shutter phase: {phase.value}")

    def _schedule(self, delay_ms: float, step: Callable[[], None], frame: bool = False) -> None:
        def guarded():
            if not self.viewport.alive:
                return
            step()

        self._pending = [h for h in self._pending if not h.cancelled]
        if frame:
            handle = self.scheduler.next_frame(guarded)
        else:
            handle = self.scheduler.call_later(delay_ms, guarded)
        self._pending.append(handle)

    def _detach(self) -> None:
        self._enter(ShutterPhase.DETACH)
        self.viewport.rendering = False
        # Geometry flips on the next frame, while nothing is being painted.
        self._schedule(0, self._flip, frame=True)
        self._schedule(self.settle_ms, self._resize)

    def _flip(self) -> None:
        self.viewport.fullscreen = not self.viewport.fullscreen

    def _resize(self) -> None:
        self._enter(ShutterPhase.RESIZE)
        self.viewport.resize_to_container()
        self.viewport.fit_all()
        self._reveal()

    def _reveal(self) -> None:
        self._enter(ShutterPhase.FADE_IN)
        self.viewport.rendering = True
        self._schedule(0, self._show, frame=True)

    def _show(self) -> None:
        self.viewport.visible = True
        self._pending.clear()
        self._enter(ShutterPhase.IDLE)

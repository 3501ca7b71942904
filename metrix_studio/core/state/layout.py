"""
Dockable panel layout.

Three independent slots: the left sidebar (tab + open flag), the right-top
slot ('properties' | 'history' | closed) and the right-bottom slot
('analysis' | closed). Right sidebar visibility is derived from the two
right slots and never stored.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

LeftTab = Literal['explorer', 'search', 'settings']
TopPanel = Literal['properties', 'history']
BottomPanel = Literal['analysis']


class LayoutState(BaseModel):
    """Immutable snapshot of the panel layout."""
    model_config = ConfigDict(frozen=True)

    left_tab: LeftTab = 'explorer'
    left_open: bool = True
    top_panel: Optional[TopPanel] = 'properties'
    bottom_panel: Optional[BottomPanel] = None

    @property
    def right_sidebar_visible(self) -> bool:
        return self.top_panel is not None or self.bottom_panel is not None


class LayoutController:
    """Total state machine over the three panel slots."""

    def __init__(self, initial: Optional[LayoutState] = None):
        self._state = initial or LayoutState()

    @property
    def state(self) -> LayoutState:
        return self._state

    @property
    def right_sidebar_visible(self) -> bool:
        return self._state.right_sidebar_visible

    def toggle_left(self, tab: LeftTab) -> LayoutState:
        if tab == self._state.left_tab:
            self._state = self._state.model_copy(update={'left_open': not self._state.left_open})
        else:
            self._state = self._state.model_copy(update={'left_tab': tab, 'left_open': True})
        return self._state

    def toggle_top(self, panel: TopPanel) -> LayoutState:
        next_panel = None if self._state.top_panel == panel else panel
        self._state = self._state.model_copy(update={'top_panel': next_panel})
        return self._state

    def toggle_bottom(self, panel: BottomPanel) -> LayoutState:
        next_panel = None if self._state.bottom_panel == panel else panel
        self._state = self._state.model_copy(update={'bottom_panel': next_panel})
        return self._state

    def reveal_top(self, panel: TopPanel) -> LayoutState:
        """Force the top slot to show panel without toggling it closed."""
        if self._state.top_panel != panel:
            self._state = self._state.model_copy(update={'top_panel': panel})
        return self._state

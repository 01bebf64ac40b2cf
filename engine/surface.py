"""
Cellcrafter — engine/surface.py
Contract the grid core consumes from the rendering surface.

Visual handles are opaque to the core. Clicks are routed by CellIndex,
never by handle, so a cell without a visual is still hit-testable.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Tuple

from world.coords import LatLng, LatLngBounds


class RenderSurface(Protocol):
    def get_viewport_bounds(self) -> LatLngBounds: ...

    def world_to_screen(self, position: LatLng) -> Tuple[int, int]: ...

    def create_visual(self, bounds: LatLngBounds, label: Optional[str]) -> Any: ...

    def destroy_visual(self, handle: Any) -> None: ...

    def set_label(self, handle: Any, label: Optional[str]) -> None: ...

    def restyle_visual(self, handle: Any, active: bool) -> None: ...

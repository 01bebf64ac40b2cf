"""
Cellcrafter — ui/surface.py
ConsoleSurface: the rendering surface the grid core draws through, on a tcod console.
====================================================================================
Stack:       Python 3.11+ | tcod

The camera is a LatLng at the centre of the console. Each grid cell is a
cell_width x cell_height box of characters, north up. Visual handles are
plain ints; destroying one that is already gone raises KeyError.
"""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import tcod

from world.coords import GridMapping, LatLng, LatLngBounds

ACTIVE_FG = (230, 230, 230)
DIMMED_FG = (80, 80, 80)
LABEL_ACTIVE_FG = (255, 220, 90)
LABEL_DIMMED_FG = (110, 100, 60)


@dataclass
class VisualRecord:
    bounds: LatLngBounds
    label: Optional[str]
    active: bool = True


class ConsoleSurface:
    def __init__(self, width: int, height: int, mapping: GridMapping, cell_width: int = 5, cell_height: int = 3):
        self.width = width
        self.height = height
        self.mapping = mapping
        self.cell_width = cell_width
        self.cell_height = cell_height
        self.camera = mapping.origin
        self.on_viewport_changed: Optional[Callable[[], None]] = None
        self._visuals: Dict[int, VisualRecord] = {}
        self._handles = itertools.count(1)

    # ------------------------------------------------------------------
    # Camera
    # ------------------------------------------------------------------

    def pan_to(self, position: LatLng) -> None:
        if position == self.camera:
            return
        self.camera = position
        if self.on_viewport_changed is not None:
            self.on_viewport_changed()

    def pan_by(self, di: int, dj: int) -> None:
        self.pan_to(self.mapping.offset(self.camera, di, dj))

    def get_viewport_bounds(self) -> LatLngBounds:
        half_lat = (self.height / 2.0) / self.cell_height * self.mapping.cell_size
        half_lng = (self.width / 2.0) / self.cell_width * self.mapping.cell_size
        return LatLngBounds(
            self.camera.lat - half_lat,
            self.camera.lng - half_lng,
            self.camera.lat + half_lat,
            self.camera.lng + half_lng,
        )

    def world_to_screen(self, position: LatLng) -> Tuple[int, int]:
        size = self.mapping.cell_size
        x = self.width / 2.0 + (position.lng - self.camera.lng) / size * self.cell_width
        y = self.height / 2.0 - (position.lat - self.camera.lat) / size * self.cell_height
        return math.floor(x), math.floor(y)

    def screen_to_world(self, x: int, y: int) -> LatLng:
        """World position under the centre of console tile (x, y)."""
        size = self.mapping.cell_size
        lng = self.camera.lng + (x + 0.5 - self.width / 2.0) / self.cell_width * size
        lat = self.camera.lat - (y + 0.5 - self.height / 2.0) / self.cell_height * size
        return LatLng(lat, lng)

    # ------------------------------------------------------------------
    # Visual primitives
    # ------------------------------------------------------------------

    def create_visual(self, bounds: LatLngBounds, label: Optional[str]) -> int:
        handle = next(self._handles)
        self._visuals[handle] = VisualRecord(bounds, label)
        return handle

    def destroy_visual(self, handle: int) -> None:
        del self._visuals[handle]

    def set_label(self, handle: int, label: Optional[str]) -> None:
        self._visuals[handle].label = label

    def restyle_visual(self, handle: int, active: bool) -> None:
        self._visuals[handle].active = active

    def visual(self, handle: int) -> Optional[VisualRecord]:
        return self._visuals.get(handle)

    def __len__(self) -> int:
        return len(self._visuals)

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def render(self, console: tcod.console.Console) -> None:
        for record in self._visuals.values():
            x0, y0 = self.world_to_screen(LatLng(record.bounds.north, record.bounds.west))
            x1, y1 = self.world_to_screen(LatLng(record.bounds.south, record.bounds.east))
            w, h = x1 - x0, y1 - y0
            # Partially visible cells are skipped; padding keeps them off-screen
            if x0 < 0 or y0 < 0 or x1 > console.width or y1 > console.height or w < 3 or h < 3:
                continue

            fg = ACTIVE_FG if record.active else DIMMED_FG
            console.draw_frame(x0, y0, w, h, clear=False, fg=fg)
            if record.label:
                # Centred by hand inside the frame: unbounded CENTER alignment
                # shifts by one tile between tcod releases
                label = record.label[: w - 2]
                console.print(
                    x0 + 1 + (w - 2 - len(label)) // 2,
                    y0 + h // 2,
                    label,
                    fg=LABEL_ACTIVE_FG if record.active else LABEL_DIMMED_FG,
                )

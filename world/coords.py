"""
Cellcrafter — world/coords.py
Coordinate mapping between continuous lat/lng and discrete cell indices.
Pure, no state.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class CellIndex:
    i: int  # latitude steps (north is +i)
    j: int  # longitude steps (east is +j)

    @property
    def key(self) -> str:
        return f"{self.i},{self.j}"

    @classmethod
    def from_key(cls, key: str) -> "CellIndex":
        i, j = map(int, key.split(","))
        return cls(i, j)


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float


@dataclass(frozen=True)
class LatLngBounds:
    south: float
    west: float
    north: float
    east: float

    def contains(self, position: LatLng) -> bool:
        return (self.south <= position.lat <= self.north
                and self.west <= position.lng <= self.east)

    @property
    def center(self) -> LatLng:
        return LatLng((self.south + self.north) / 2.0, (self.west + self.east) / 2.0)


@dataclass(frozen=True)
class IndexRange:
    """Inclusive rectangle of cell indices."""
    i_min: int
    i_max: int
    j_min: int
    j_max: int

    def contains(self, index: CellIndex) -> bool:
        return self.i_min <= index.i <= self.i_max and self.j_min <= index.j <= self.j_max

    def __iter__(self) -> Iterator[CellIndex]:
        for i in range(self.i_min, self.i_max + 1):
            for j in range(self.j_min, self.j_max + 1):
                yield CellIndex(i, j)

    def __len__(self) -> int:
        if self.i_max < self.i_min or self.j_max < self.j_min:
            return 0
        return (self.i_max - self.i_min + 1) * (self.j_max - self.j_min + 1)


class GridMapping:
    """
    Fixed-size square grid anchored on an origin.

    Cell (i, j) is centred at origin + (i, j) * cell_size. Positions map to
    cells with round-half-up on each axis, so every point inside
    bounds_of(idx) maps back to idx.
    """

    def __init__(self, origin: LatLng, cell_size: float):
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.origin = origin
        self.cell_size = cell_size

    def _axis_index(self, value: float, origin: float) -> int:
        return math.floor((value - origin) / self.cell_size + 0.5)

    def to_cell_index(self, position: LatLng) -> CellIndex:
        return CellIndex(
            self._axis_index(position.lat, self.origin.lat),
            self._axis_index(position.lng, self.origin.lng),
        )

    def center_of(self, index: CellIndex) -> LatLng:
        return LatLng(
            self.origin.lat + index.i * self.cell_size,
            self.origin.lng + index.j * self.cell_size,
        )

    def bounds_of(self, index: CellIndex) -> LatLngBounds:
        half = self.cell_size / 2.0
        c = self.center_of(index)
        return LatLngBounds(c.lat - half, c.lng - half, c.lat + half, c.lng + half)

    def covering_range(self, bounds: LatLngBounds, padding: int = 0) -> IndexRange:
        """Cells touching the bounds, grown by `padding` cells on every side."""
        sw = self.to_cell_index(LatLng(bounds.south, bounds.west))
        ne = self.to_cell_index(LatLng(bounds.north, bounds.east))
        return IndexRange(
            i_min=sw.i - padding,
            i_max=ne.i + padding,
            j_min=sw.j - padding,
            j_max=ne.j + padding,
        )

    def offset(self, position: LatLng, di: int, dj: int) -> LatLng:
        """Moves a position by whole cells."""
        return LatLng(position.lat + di * self.cell_size, position.lng + dj * self.cell_size)

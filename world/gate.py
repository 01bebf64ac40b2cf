"""
Cellcrafter — world/gate.py
Interaction Gate: box-distance check between the player's cell and a target cell.

Two independent per-axis bounds (Chebyshev distance), not Euclidean.
Cells at exactly `radius` on an axis are in range.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np

from world.coords import CellIndex


class InteractionGate:
    def __init__(self, radius: int):
        if radius < 0:
            raise ValueError(f"radius must be >= 0, got {radius}")
        self.radius = radius

    @staticmethod
    def offset(cell: CellIndex, player: CellIndex) -> Tuple[int, int]:
        """Signed per-axis distance from the player to the cell."""
        return cell.i - player.i, cell.j - player.j

    def within_range(self, cell: CellIndex, player: CellIndex) -> bool:
        di, dj = self.offset(cell, player)
        return abs(di) <= self.radius and abs(dj) <= self.radius

    def check(self, cell: CellIndex, player: CellIndex) -> Optional[str]:
        """Returns None if the action may proceed, else the reason it may not."""
        if self.within_range(cell, player):
            return None
        di, dj = self.offset(cell, player)
        return f"Too far to interact (distance: {di}, {dj}). Move within {self.radius} cells."

    def within_range_mask(self, cells: Sequence[CellIndex], player: CellIndex) -> np.ndarray:
        """Vectorised within_range over many cells."""
        if not cells:
            return np.zeros(0, dtype=bool)
        coords = np.array([(c.i, c.j) for c in cells], dtype=np.int64)
        delta = np.abs(coords - np.array([player.i, player.j], dtype=np.int64))
        return np.all(delta <= self.radius, axis=1)

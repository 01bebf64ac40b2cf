"""
Cellcrafter — engine/ecs/components.py
ECS Component Definitions for python-tcod-ecs.
==============================================
Stack:       Python 3.11+ | python-tcod-ecs

Live cells are entities whose uid is their CellIndex. CellIndex itself
(world/coords.py) is stored as a component so queries can recover it.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional

from world.coords import LatLng, LatLngBounds

IN_RANGE_TAG = "in_range"

@dataclass(frozen=True)
class Token:
    value: Optional[int] = None  # None = EMPTY

@dataclass(frozen=True)
class CellBounds:
    bounds: LatLngBounds

@dataclass(frozen=True)
class Visual:
    handle: Any  # owned by the rendering surface

@dataclass
class PlayerState:
    position: LatLng
    holding: Optional[int] = None

"""
Cellcrafter — world/overlay.py
MutationOverlay: sparse record of cells whose token diverged from the generator.
Tracks player edits across an infinite world.

Only SpatialWindowCache calls into this store. An index is present only
while its token differs from the generated default.
"""

from dataclasses import dataclass
from typing import Any, Dict, ItemsView, Optional

from world.coords import CellIndex


@dataclass(frozen=True)
class OverlayEntry:
    token: Optional[int] = None


class MutationOverlay:
    def __init__(self):
        self._entries: Dict[CellIndex, OverlayEntry] = {}

    def get(self, index: CellIndex) -> Optional[OverlayEntry]:
        return self._entries.get(index)

    def set(self, index: CellIndex, entry: OverlayEntry) -> None:
        self._entries[index] = entry

    def delete(self, index: CellIndex) -> None:
        self._entries.pop(index, None)

    def items(self) -> ItemsView[CellIndex, OverlayEntry]:
        return self._entries.items()

    def __contains__(self, index: object) -> bool:
        return index in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get_state(self) -> Dict[str, Any]:
        """Returns a JSON-safe snapshot, keyed by "i,j"."""
        return {
            "cells": {idx.key: entry.token for idx, entry in self._entries.items()}
        }

"""
Cellcrafter — world/cache.py
Spatial Window Cache: JIT materialization and culling of grid cells.
====================================================================
Stack:       Python 3.11+ | python-tcod-ecs
Status:      Core. Sole owner of the live cell set and the MutationOverlay.

Architecture notes
------------------
- Each live cell is a tcod.ecs entity whose uid is its CellIndex, so an
  index can be live at most once.
- Content on (re)entry is overlay.get(index) if present, otherwise the
  generator's output. Nothing else is remembered about evicted cells.
- Every token write is diffed against the generator and flushed to the
  overlay immediately, and again on eviction. An overlay entry exists only
  while the cell differs from its default.
- Only cells holding a token get a visual. Empty cells stay hit-testable
  through their index.
- Visual release errors are logged and swallowed. The data model is the
  source of truth, not the surface.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Set

import tcod.ecs

from engine.ecs.components import IN_RANGE_TAG, CellBounds, Token, Visual
from engine.events import EVT_VIEWPORT_RECOMPUTED, EventBus, GridEvent
from engine.surface import RenderSurface
from world.coords import CellIndex, GridMapping, IndexRange, LatLngBounds
from world.gate import InteractionGate
from world.generator import TokenGenerator
from world.overlay import MutationOverlay, OverlayEntry

logger = logging.getLogger("cellcrafter.cache")


@dataclass(frozen=True)
class MaterializedCell:
    """Read-only view of a live cell."""
    index: CellIndex
    bounds: LatLngBounds
    token: Optional[int]
    visual: Any = None
    in_range: bool = False


@dataclass(frozen=True)
class RecomputeStats:
    spawned: int
    evicted: int
    live: int


class SpatialWindowCache:
    def __init__(
        self,
        mapping: GridMapping,
        generator: TokenGenerator,
        overlay: MutationOverlay,
        surface: RenderSurface,
        padding: int = 1,
        gate: Optional[InteractionGate] = None,
        bus: Optional[EventBus] = None,
    ):
        if padding < 1:
            raise ValueError(f"padding must be >= 1, got {padding}")
        self.mapping = mapping
        self.generator = generator
        self.overlay = overlay
        self.surface = surface
        self.padding = padding
        self.gate = gate
        self.bus = bus
        self.registry = tcod.ecs.Registry()
        self.window: Optional[IndexRange] = None
        self._player_index: Optional[CellIndex] = None
        self._recomputing = False

    # ------------------------------------------------------------------
    # Window maintenance
    # ------------------------------------------------------------------

    def recompute(self, viewport_bounds: LatLngBounds) -> RecomputeStats:
        """Spawns and evicts so the live set equals the padded covering range."""
        if self._recomputing:
            raise RuntimeError("recompute is not reentrant")
        self._recomputing = True
        try:
            window = self.mapping.covering_range(viewport_bounds, self.padding)

            spawned = 0
            for index in window:
                if not self.is_materialized(index):
                    self._spawn(index)
                    spawned += 1

            stale = [
                entity for entity in self.registry.Q.all_of(components=[CellIndex])
                if not window.contains(entity.components[CellIndex])
            ]
            for entity in stale:
                self._evict(entity)

            self.window = window
        finally:
            self._recomputing = False

        stats = RecomputeStats(spawned=spawned, evicted=len(stale), live=len(window))
        logger.debug(
            "recompute %s: spawned=%d evicted=%d live=%d overlay=%d",
            window, stats.spawned, stats.evicted, stats.live, len(self.overlay),
        )
        if self.bus is not None:
            self.bus.emit(GridEvent(
                event_key=EVT_VIEWPORT_RECOMPUTED,
                source="SpatialWindowCache",
                data={"spawned": stats.spawned, "evicted": stats.evicted, "live": stats.live},
            ))
        return stats

    def _spawn(self, index: CellIndex) -> None:
        token = self.effective_token(index)
        bounds = self.mapping.bounds_of(index)

        entity = self.registry[index]
        entity.components[CellIndex] = index
        entity.components[CellBounds] = CellBounds(bounds)
        entity.components[Token] = Token(token)
        if token is not None:
            self._attach_visual(entity, bounds, token)
        if self.gate is not None and self._player_index is not None:
            self._set_in_range(entity, self.gate.within_range(index, self._player_index))

    def _evict(self, entity: tcod.ecs.Entity) -> None:
        index = entity.components[CellIndex]
        self._flush(index, entity.components[Token].value)
        self._release_visual(entity)
        entity.clear()

    def _flush(self, index: CellIndex, token: Optional[int]) -> None:
        if token != self.generator.default_token(index):
            self.overlay.set(index, OverlayEntry(token))
        else:
            self.overlay.delete(index)

    # ------------------------------------------------------------------
    # Visual handles
    # ------------------------------------------------------------------

    def _attach_visual(self, entity: tcod.ecs.Entity, bounds: LatLngBounds, token: int) -> None:
        handle = self.surface.create_visual(bounds, str(token))
        entity.components[Visual] = Visual(handle)
        self.surface.restyle_visual(handle, IN_RANGE_TAG in entity.tags)

    def _release_visual(self, entity: tcod.ecs.Entity) -> None:
        visual = entity.components.get(Visual)
        if visual is None:
            return
        del entity.components[Visual]
        try:
            self.surface.destroy_visual(visual.handle)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to release visual for cell %s: %s",
                           entity.components[CellIndex].key, exc)

    def _set_in_range(self, entity: tcod.ecs.Entity, in_range: bool) -> None:
        if in_range:
            entity.tags.add(IN_RANGE_TAG)
        else:
            entity.tags.discard(IN_RANGE_TAG)
        visual = entity.components.get(Visual)
        if visual is not None:
            self.surface.restyle_visual(visual.handle, in_range)

    # ------------------------------------------------------------------
    # Token write path (used only by TokenInteraction)
    # ------------------------------------------------------------------

    def set_token(self, index: CellIndex, token: Optional[int]) -> None:
        """Writes a live cell's token, updates its visual, and flushes to the overlay."""
        entity = self.registry[index]
        if CellIndex not in entity.components:
            raise KeyError(f"cell {index.key} is not materialized")

        entity.components[Token] = Token(token)
        visual = entity.components.get(Visual)
        if token is None:
            self._release_visual(entity)
        elif visual is None:
            self._attach_visual(entity, entity.components[CellBounds].bounds, token)
        else:
            self.surface.set_label(visual.handle, str(token))

        self._flush(index, token)

    # ------------------------------------------------------------------
    # Interaction styling
    # ------------------------------------------------------------------

    def refresh_interaction(self, player_index: CellIndex) -> None:
        """Re-tags every live cell as in range or dimmed for the player's cell."""
        self._player_index = player_index
        if self.gate is None:
            return
        entities = list(self.registry.Q.all_of(components=[CellIndex]))
        mask = self.gate.within_range_mask(
            [entity.components[CellIndex] for entity in entities], player_index
        )
        for entity, in_range in zip(entities, mask):
            self._set_in_range(entity, bool(in_range))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_materialized(self, index: CellIndex) -> bool:
        return CellIndex in self.registry[index].components

    def effective_token(self, index: CellIndex) -> Optional[int]:
        """Current token for any index, live or not."""
        entity = self.registry[index]
        if CellIndex in entity.components:
            return entity.components[Token].value
        entry = self.overlay.get(index)
        if entry is not None:
            return entry.token
        return self.generator.default_token(index)

    def _snapshot(self, entity: tcod.ecs.Entity) -> MaterializedCell:
        visual = entity.components.get(Visual)
        return MaterializedCell(
            index=entity.components[CellIndex],
            bounds=entity.components[CellBounds].bounds,
            token=entity.components[Token].value,
            visual=visual.handle if visual is not None else None,
            in_range=IN_RANGE_TAG in entity.tags,
        )

    def get_cell(self, index: CellIndex) -> Optional[MaterializedCell]:
        entity = self.registry[index]
        if CellIndex not in entity.components:
            return None
        return self._snapshot(entity)

    def cells(self) -> Iterator[MaterializedCell]:
        for entity in list(self.registry.Q.all_of(components=[CellIndex])):
            yield self._snapshot(entity)

    def materialized_indices(self) -> Set[CellIndex]:
        return {entity.components[CellIndex] for entity in self.registry.Q.all_of(components=[CellIndex])}

    def in_range_indices(self) -> List[CellIndex]:
        return [
            entity.components[CellIndex]
            for entity in self.registry.Q.all_of(components=[CellIndex], tags=[IN_RANGE_TAG])
        ]

    def __len__(self) -> int:
        return len(self.materialized_indices())

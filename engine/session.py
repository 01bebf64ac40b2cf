"""
Cellcrafter — engine/session.py
GameSession: wires the grid core, the token machine and movement together.
=========================================================================
Stack:       Python 3.11+ | python-tcod-ecs | Pydantic v2

Every store (overlay, live cells, player) is created here once and handed
to the components that own it. Nothing lives in module-level globals.
The host drives the session through three entry points, each handled to
completion: on_viewport_changed(), on_position() (via the movement
facade) and perform().
"""

from __future__ import annotations

import logging
from typing import Optional

from engine.data_loader import GameplayConfig, get_gameplay_config
from engine.ecs.components import PlayerState
from engine.events import EVT_PLAYER_MOVED, EventBus, GridEvent
from engine.movement import (
    DiscreteStepper,
    MovementFacade,
    PositionFeed,
    SimulatedGpsFeed,
    StreamingMovement,
)
from engine.surface import RenderSurface
from world.cache import RecomputeStats, SpatialWindowCache
from world.coords import CellIndex, GridMapping, LatLng
from world.gate import InteractionGate
from world.generator import TokenGenerator
from world.overlay import MutationOverlay
from world.tokens import Action, ActionOutcome, CellMenu, TokenInteraction

logger = logging.getLogger("cellcrafter.session")


class GameSession:
    """
    Core executor for one play session.
    """
    def __init__(
        self,
        surface: RenderSurface,
        config: Optional[GameplayConfig] = None,
        bus: Optional[EventBus] = None,
        feed: Optional[PositionFeed] = None,
    ):
        self.config = config if config is not None else get_gameplay_config()
        self.bus = bus if bus is not None else EventBus()
        self.surface = surface

        world = self.config.world
        gen = self.config.generation
        self.origin = LatLng(world.origin_lat, world.origin_lng)
        self.mapping = GridMapping(self.origin, world.cell_size)
        self.generator = TokenGenerator(world.seed, gen.spawn_probability, gen.min_exponent, gen.max_exponent)
        self.gate = InteractionGate(self.config.interaction.radius)
        self.cache = SpatialWindowCache(
            self.mapping,
            self.generator,
            MutationOverlay(),
            surface,
            padding=self.config.cache.padding,
            gate=self.gate,
            bus=self.bus,
        )
        self.player = PlayerState(position=self.origin)
        self.tokens = TokenInteraction(
            self.cache,
            self.gate,
            self.mapping,
            self.player,
            bus=self.bus,
            max_value=self.config.interaction.max_token_value,
        )

        move = self.config.movement
        if feed is None:
            feed = SimulatedGpsFeed(
                start=lambda: self.player.position,
                step_size=world.cell_size,
                interval=move.stream_interval,
                seed=move.stream_seed,
            )
        self.stepper = DiscreteStepper(self.mapping, lambda: self.player.position)
        self.streaming = StreamingMovement(feed, min_interval=move.stream_min_interval)
        self.movement = MovementFacade(
            {self.stepper.name: self.stepper, self.streaming.name: self.streaming},
            fallback=self.stepper.name,
            bus=self.bus,
        )
        self.movement.set_move_callback(self.on_position)
        self.status_line = "Player at cell 0,0"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Activates the default movement source and materializes the first window."""
        self.movement.activate(self.config.movement.default_backend)
        self.on_viewport_changed()
        logger.info("Session started: seed=%r radius=%d padding=%d",
                    self.config.world.seed, self.gate.radius, self.cache.padding)

    def shutdown(self) -> None:
        self.movement.shutdown()

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def on_viewport_changed(self) -> RecomputeStats:
        stats = self.cache.recompute(self.surface.get_viewport_bounds())
        self.cache.refresh_interaction(self.player_index)
        return stats

    def on_position(self, position: LatLng) -> None:
        self.player.position = position
        index = self.player_index
        self.cache.refresh_interaction(index)
        self.status_line = (
            f"Moved to cell {index.i},{index.j} "
            f"(lat:{position.lat:.6f}, lng:{position.lng:.6f})"
        )
        self.bus.emit(GridEvent(
            event_key=EVT_PLAYER_MOVED,
            source="GameSession",
            target=index.key,
            data={"lat": position.lat, "lng": position.lng},
        ))

    def click(self, index: CellIndex) -> CellMenu:
        return self.tokens.menu_for(index)

    def perform(self, index: CellIndex, action: Action) -> ActionOutcome:
        outcome = self.tokens.perform(index, action)
        self.status_line = outcome.message
        return outcome

    # ------------------------------------------------------------------
    # Displays
    # ------------------------------------------------------------------

    @property
    def player_index(self) -> CellIndex:
        return self.mapping.to_cell_index(self.player.position)

    def held_display(self) -> str:
        held = self.player.holding
        return "Held Token: none" if held is None else f"Held Token: {held}"

"""
Cellcrafter — engine/events.py
Event Bus: typed pub-sub connecting the grid core to the host UI.
=================================================================
Stack:       Python 3.11+ | Pydantic v2 | bespoke pub-sub

Architecture notes
------------------
- All events are GridEvent instances (Pydantic v2 models).
- The bus is passed in at construction. There is no global singleton.
- Wildcard key "*" receives every emitted event.
- Per-handler errors are swallowed and logged so emission always continues.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger("cellcrafter.events")


# ============================================================
# CANONICAL EVENT KEYS
# Never use raw strings. Add new keys here only.
# ============================================================

EVT_VIEWPORT_RECOMPUTED   = "grid.viewport_recomputed"
EVT_TOKEN_GRABBED         = "token.grabbed"
EVT_TOKEN_PLACED          = "token.placed"
EVT_TOKEN_CRAFTED         = "token.crafted"
EVT_ACTION_REJECTED       = "token.action_rejected"
EVT_PLAYER_MOVED          = "player.moved"
EVT_MOVEMENT_SWITCHED     = "movement.backend_switched"
EVT_MOVEMENT_WARNING      = "movement.warning"


class GridEvent(BaseModel):
    """Base envelope. data must stay flat and JSON-serializable."""
    event_key: str
    source: str
    target: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


HandlerFn = Callable[[GridEvent], None]


class EventBus:
    """
    Bespoke pub-sub. Pass instance at construction.

    Wildcard key "*" receives every emitted event.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[HandlerFn]] = {}

    def subscribe(self, event_key: str, handler: HandlerFn) -> None:
        self._subscribers.setdefault(event_key, []).append(handler)

    def unsubscribe(self, event_key: str, handler: HandlerFn) -> None:
        if event_key in self._subscribers:
            self._subscribers[event_key] = [
                h for h in self._subscribers[event_key] if h != handler
            ]

    def emit(self, event: GridEvent) -> None:
        targets = (
            self._subscribers.get(event.event_key, [])
            + self._subscribers.get("*", [])
        )
        for handler in targets:
            try:
                handler(event)
            except Exception:  # noqa: BLE001
                logger.exception("Handler error on '%s'", event.event_key)

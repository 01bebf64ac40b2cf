"""
Cellcrafter — world/tokens.py
Token State Machine: grab / place / craft between one cell and the player's hand.
=================================================================================
Stack:       Python 3.11+ | Pydantic v2 (events)

Transition table (cell, held) -> (cell', held')
-----------------------------------------------
  grab    HOLDS(v), EMPTY       -> EMPTY, HOLDS(v)
  place   EMPTY,    HOLDS(v)    -> HOLDS(v), EMPTY
  craft   HOLDS(v), HOLDS(v)    -> EMPTY, HOLDS(2v)
  any     HOLDS(v), HOLDS(w≠v)  -> rejected, values must match
  any     EMPTY,    EMPTY       -> rejected, nothing here

Every action is gated by InteractionGate first. A successful transition is
written through SpatialWindowCache.set_token, which keeps the overlay in
step. Only this module writes PlayerState.holding.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from engine.ecs.components import PlayerState
from engine.events import (
    EVT_ACTION_REJECTED,
    EVT_TOKEN_CRAFTED,
    EVT_TOKEN_GRABBED,
    EVT_TOKEN_PLACED,
    EventBus,
    GridEvent,
)
from world.cache import SpatialWindowCache
from world.coords import CellIndex, GridMapping
from world.gate import InteractionGate


class Action(Enum):
    GRAB = "grab"
    PLACE = "place"
    CRAFT = "craft"


class MenuOption(Enum):
    GRAB = "grab"
    PLACE = "place"
    CRAFT = "craft"
    OUT_OF_RANGE = "out_of_range"
    MISMATCH = "mismatch"
    AT_LIMIT = "at_limit"
    EMPTY = "empty"

    @property
    def action(self) -> Optional[Action]:
        return _OPTION_ACTIONS.get(self)


_OPTION_ACTIONS = {
    MenuOption.GRAB: Action.GRAB,
    MenuOption.PLACE: Action.PLACE,
    MenuOption.CRAFT: Action.CRAFT,
}

MSG_EMPTY = "No token in this cell."


def mismatch_message(held: int, cell: int) -> str:
    return f"Cannot craft: held ({held}) ≠ cell ({cell}). Values must match."


def limit_message(value: int, max_value: int) -> str:
    return f"Cannot craft: {value * 2} would exceed the limit of {max_value}."


@dataclass(frozen=True)
class Transition:
    cell_token: Optional[int]
    held: Optional[int]
    rejection: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None


def menu_option(cell_token: Optional[int], held: Optional[int], max_value: Optional[int] = None) -> MenuOption:
    """The single option offered for an in-range cell."""
    if cell_token is None:
        return MenuOption.EMPTY if held is None else MenuOption.PLACE
    if held is None:
        return MenuOption.GRAB
    if held != cell_token:
        return MenuOption.MISMATCH
    if max_value is not None and held * 2 > max_value:
        return MenuOption.AT_LIMIT
    return MenuOption.CRAFT


def transition(
    action: Action,
    cell_token: Optional[int],
    held: Optional[int],
    max_value: Optional[int] = None,
) -> Transition:
    """Applies one action to (cell, held). Pure; rejections leave both unchanged."""
    option = menu_option(cell_token, held, max_value)

    if option is MenuOption.EMPTY:
        return Transition(cell_token, held, MSG_EMPTY)
    if option is MenuOption.MISMATCH:
        return Transition(cell_token, held, mismatch_message(held, cell_token))
    if option is MenuOption.AT_LIMIT:
        return Transition(cell_token, held, limit_message(held, max_value))
    if option.action is not action:
        return Transition(cell_token, held, f"Cannot {action.value} here; this cell offers {option.value}.")

    if action is Action.GRAB:
        return Transition(None, cell_token)
    if action is Action.PLACE:
        return Transition(held, None)
    return Transition(None, held * 2)


@dataclass(frozen=True)
class CellMenu:
    index: CellIndex
    title: str
    option: MenuOption
    message: str

    @property
    def action(self) -> Optional[Action]:
        return self.option.action


@dataclass(frozen=True)
class ActionOutcome:
    ok: bool
    message: str
    cell_token: Optional[int]
    held: Optional[int]


_ACTION_EVENTS = {
    Action.GRAB: EVT_TOKEN_GRABBED,
    Action.PLACE: EVT_TOKEN_PLACED,
    Action.CRAFT: EVT_TOKEN_CRAFTED,
}


class TokenInteraction:
    """
    Stateful side of the token machine: gate, transition, write-through.
    """
    def __init__(
        self,
        cache: SpatialWindowCache,
        gate: InteractionGate,
        mapping: GridMapping,
        player: PlayerState,
        bus: Optional[EventBus] = None,
        max_value: Optional[int] = None,
    ):
        self.cache = cache
        self.gate = gate
        self.mapping = mapping
        self.player = player
        self.bus = bus
        self.max_value = max_value

    def player_index(self) -> CellIndex:
        return self.mapping.to_cell_index(self.player.position)

    def _title(self, index: CellIndex) -> str:
        center = self.mapping.center_of(index)
        return f"Lat: {center.lat:.6f}, Lng: {center.lng:.6f}"

    def menu_for(self, index: CellIndex) -> CellMenu:
        """Builds the menu shown when a cell is clicked."""
        title = self._title(index)
        too_far = self.gate.check(index, self.player_index())
        if too_far is not None:
            return CellMenu(index, title, MenuOption.OUT_OF_RANGE, too_far)

        cell_token = self.cache.effective_token(index)
        held = self.player.holding
        option = menu_option(cell_token, held, self.max_value)
        if option is MenuOption.GRAB:
            message = f"Grab token ({cell_token})"
        elif option is MenuOption.PLACE:
            message = f"Place token ({held})"
        elif option is MenuOption.CRAFT:
            message = f"Craft (merge {held} + {cell_token})"
        elif option is MenuOption.MISMATCH:
            message = mismatch_message(held, cell_token)
        elif option is MenuOption.AT_LIMIT:
            message = limit_message(held, self.max_value)
        else:
            message = MSG_EMPTY
        return CellMenu(index, title, option, message)

    def _reject(self, index: CellIndex, action: Action, message: str, cell_token: Optional[int]) -> ActionOutcome:
        if self.bus is not None:
            self.bus.emit(GridEvent(
                event_key=EVT_ACTION_REJECTED,
                source="TokenInteraction",
                target=index.key,
                data={"action": action.value, "reason": message},
            ))
        return ActionOutcome(False, message, cell_token, self.player.holding)

    def perform(self, index: CellIndex, action: Action) -> ActionOutcome:
        too_far = self.gate.check(index, self.player_index())
        if too_far is not None:
            return self._reject(index, action, too_far, None)

        cell = self.cache.get_cell(index)
        if cell is None:
            return self._reject(index, action, f"Cell {index.key} is not loaded.", None)

        result = transition(action, cell.token, self.player.holding, self.max_value)
        if not result.ok:
            return self._reject(index, action, result.rejection, cell.token)

        self.cache.set_token(index, result.cell_token)
        before = self.player.holding
        self.player.holding = result.held

        if self.bus is not None:
            self.bus.emit(GridEvent(
                event_key=_ACTION_EVENTS[action],
                source="TokenInteraction",
                target=index.key,
                data={"cell_token": result.cell_token, "held_before": before, "held": result.held},
            ))
        return ActionOutcome(True, f"{action.value.capitalize()} succeeded.", result.cell_token, result.held)

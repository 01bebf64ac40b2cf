"""
Cellcrafter — ui/screens.py
Implementations of the UI Screen States.
"""
from typing import Optional

import tcod
from tcod import libtcodpy

from engine.data_loader import get_gameplay_config
from engine.events import EVT_MOVEMENT_WARNING, EVT_PLAYER_MOVED, GridEvent
from engine.session import GameSession
from ui.renderer import Renderer
from ui.states import BaseState, Engine
from ui.surface import ConsoleSurface
from world.coords import CellIndex, GridMapping, LatLng
from world.tokens import CellMenu

HUD_FG = (150, 150, 150)
STATUS_FG = (200, 255, 200)
WARNING_FG = (255, 140, 60)
PLAYER_FG = (80, 200, 255)

STEP_KEYS = {
    tcod.event.KeySym.UP: (1, 0),
    tcod.event.KeySym.W: (1, 0),
    tcod.event.KeySym.DOWN: (-1, 0),
    tcod.event.KeySym.S: (-1, 0),
    tcod.event.KeySym.LEFT: (0, -1),
    tcod.event.KeySym.A: (0, -1),
    tcod.event.KeySym.RIGHT: (0, 1),
    tcod.event.KeySym.D: (0, 1),
}


class MainMenuState(BaseState):
    """The title screen."""

    def on_render(self, renderer: Renderer) -> None:
        renderer.root_console.print(
            renderer.width // 2,
            renderer.height // 2 - 5,
            "Cellcrafter",
            fg=(255, 255, 0),
            alignment=libtcodpy.CENTER
        )
        renderer.root_console.print(renderer.width // 2, renderer.height // 2, "[N]ew Session", alignment=libtcodpy.CENTER)
        renderer.root_console.print(renderer.width // 2, renderer.height // 2 + 1, "[Q]uit", alignment=libtcodpy.CENTER)

    def ev_keydown(self, event: tcod.event.KeyDown) -> None:
        if event.sym == tcod.event.KeySym.Q:
            self.engine.running = False
        elif event.sym == tcod.event.KeySym.N:
            config = get_gameplay_config()
            mapping = GridMapping(LatLng(config.world.origin_lat, config.world.origin_lng), config.world.cell_size)
            surface = ConsoleSurface(
                self.engine.renderer.width,
                self.engine.renderer.height,
                mapping,
                cell_width=config.display.cell_width,
                cell_height=config.display.cell_height,
            )
            session = GameSession(surface, config=config)
            self.engine.change_state(MapState(self.engine, session, surface))


class MapState(BaseState):
    """The main gameplay screen: grid, player marker, held token and status."""

    def __init__(self, engine: Engine, session: GameSession, surface: ConsoleSurface):
        super().__init__(engine)
        self.session = session
        self.surface = surface
        self.warning: Optional[str] = None

        surface.on_viewport_changed = session.on_viewport_changed
        session.bus.subscribe(EVT_PLAYER_MOVED, self._follow_player)
        session.bus.subscribe(EVT_MOVEMENT_WARNING, self._show_warning)
        session.start()

    def _follow_player(self, event: GridEvent) -> None:
        self.surface.pan_to(self.session.player.position)

    def _show_warning(self, event: GridEvent) -> None:
        self.warning = f"{event.data['requested']} unavailable: {event.data['reason']}"

    def on_tick(self) -> None:
        self.session.movement.pump()

    def on_exit(self) -> None:
        self.session.shutdown()

    def on_render(self, renderer: Renderer) -> None:
        console = renderer.root_console
        self.surface.render(console)

        px, py = self.surface.world_to_screen(self.session.player.position)
        if 0 <= px < console.width and 0 <= py < console.height:
            console.print(px, py, "@", fg=PLAYER_FG)

        renderer.print_line(0, self.session.status_line, fg=STATUS_FG)
        if self.warning:
            renderer.print_line(1, self.warning, fg=WARNING_FG)
        source = self.session.movement.active_name or "-"
        renderer.print_line(-3, f"{self.session.held_display()}   Movement: {source}")
        renderer.print_line(-2, "[Arrows/WASD] Step  [Shift+Arrows] Pan  [m] Movement  [c] Recenter  [ESC] Quit", fg=HUD_FG)
        renderer.print_line(-1, "[LMB] Cell menu  [RMB] Move player here", fg=HUD_FG)

    def ev_keydown(self, event: tcod.event.KeyDown) -> None:
        if event.sym == tcod.event.KeySym.ESCAPE:
            self.engine.running = False
            return
        if event.sym == tcod.event.KeySym.M:
            self.warning = None
            self.session.movement.toggle()
            return
        if event.sym == tcod.event.KeySym.C:
            self.surface.pan_to(self.session.player.position)
            return

        step = STEP_KEYS.get(event.sym)
        if step is None:
            return
        if event.mod & tcod.event.Modifier.SHIFT:
            self.surface.pan_by(*step)
        else:
            self.session.stepper.step(*step)

    def _cell_at(self, event: tcod.event.MouseButtonDown) -> CellIndex:
        x, y = int(event.position.x), int(event.position.y)
        return self.session.mapping.to_cell_index(self.surface.screen_to_world(x, y))

    def ev_mousebuttondown(self, event: tcod.event.MouseButtonDown) -> None:
        if event.button == tcod.event.MouseButton.LEFT:
            menu = self.session.click(self._cell_at(event))
            self.engine.push_state(CellMenuState(self.engine, self, menu))
        elif event.button == tcod.event.MouseButton.RIGHT:
            x, y = int(event.position.x), int(event.position.y)
            self.session.stepper.jump_to(self.surface.screen_to_world(x, y))


class CellMenuState(BaseState):
    """Popup for a clicked cell: one action button or one explanation."""

    def __init__(self, engine: Engine, parent: MapState, menu: CellMenu):
        super().__init__(engine)
        self.parent = parent
        self.menu = menu

    def _close(self) -> None:
        self.engine.pop_state()

    def on_render(self, renderer: Renderer) -> None:
        if self.menu.action is not None:
            hint = f"[{self.menu.action.value[0].upper()}/Enter] {self.menu.message}"
        else:
            hint = self.menu.message
        anchor = self.parent.surface.world_to_screen(self.parent.session.mapping.center_of(self.menu.index))
        renderer.draw_popup(anchor, [self.menu.title, hint, "[ESC] Close"])

    def ev_keydown(self, event: tcod.event.KeyDown) -> None:
        if event.sym == tcod.event.KeySym.ESCAPE:
            self._close()
            return

        action = self.menu.action
        if action is None:
            return
        hotkey = getattr(tcod.event.KeySym, action.value[0].upper())
        if event.sym in (tcod.event.KeySym.RETURN, hotkey):
            self.parent.session.perform(self.menu.index, action)
            self._close()

    def ev_mousebuttondown(self, event: tcod.event.MouseButtonDown) -> None:
        self._close()

"""
Cellcrafter — ui/states.py
Stack of UI screen states and the main loop that routes tcod events to it.

The bottom state owns the game (MapState). Popups are pushed on top of it:
every state renders bottom-up and ticks, only the top one receives input.
"""

from __future__ import annotations
from typing import Any, List
import tcod

from ui.renderer import Renderer

# Upper bound on how long the loop sleeps waiting for input, so streamed
# positions are pumped promptly.
EVENT_WAIT_TIMEOUT = 0.1

class BaseState(tcod.event.EventDispatch[Any]):
    """
    A screen state. Intercepts tcod events and renders to the console.
    """
    def __init__(self, engine: "Engine"):
        super().__init__()
        self.engine = engine

    def on_render(self, renderer: Renderer) -> None:
        pass

    def on_tick(self) -> None:
        """Called once per loop iteration, before rendering."""
        pass

    def on_exit(self) -> None:
        """Called once when the state leaves the stack."""
        pass


class Engine:
    """
    Owns the tcod context, the Renderer and the state stack.
    """
    def __init__(self, renderer: Renderer, initial_state_cls: type[BaseState]):
        self.renderer = renderer
        self.states: List[BaseState] = []
        self.states.append(initial_state_cls(self))
        self.running = True

    @property
    def active_state(self) -> BaseState:
        return self.states[-1]

    def change_state(self, new_state: BaseState) -> None:
        """Replaces the whole stack with `new_state`."""
        while self.states:
            self.states.pop().on_exit()
        self.states.append(new_state)

    def push_state(self, state: BaseState) -> None:
        self.states.append(state)

    def pop_state(self) -> None:
        if len(self.states) > 1:
            self.states.pop().on_exit()

    def shutdown(self) -> None:
        while self.states:
            self.states.pop().on_exit()

    def step(self) -> None:
        """One frame without input: tick then render every state."""
        for state in list(self.states):
            state.on_tick()
        self.renderer.clear()
        for state in self.states:
            state.on_render(self.renderer)

    def dispatch(self, event: tcod.event.Event) -> None:
        if isinstance(event, tcod.event.Quit):
            self.running = False
            return
        self.active_state.dispatch(event)

    def run(self) -> None:
        """Main blocking event loop."""
        with tcod.context.new_terminal(
            self.renderer.width,
            self.renderer.height,
            title=self.renderer.title,
            vsync=True,
        ) as context:
            self.renderer.context = context
            try:
                while self.running:
                    self.step()
                    self.renderer.present(context)

                    for event in tcod.event.wait(timeout=EVENT_WAIT_TIMEOUT):
                        self.dispatch(context.convert_event(event))
                        if not self.running:
                            break
            finally:
                self.shutdown()

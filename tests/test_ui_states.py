"""
Headless tests for the state stack in ui/states.py. No window is opened.
"""
import tcod

from ui.renderer import Renderer
from ui.states import BaseState, Engine


class Recorder(BaseState):
    log = []

    def __init__(self, engine, name="base"):
        super().__init__(engine)
        self.name = name

    def on_tick(self):
        self.log.append(("tick", self.name))

    def on_render(self, renderer):
        self.log.append(("render", self.name))

    def on_exit(self):
        self.log.append(("exit", self.name))


def _engine():
    Recorder.log = []
    return Engine(Renderer(width=20, height=10), Recorder)

def test_step_ticks_and_renders_whole_stack():
    engine = _engine()
    engine.push_state(Recorder(engine, "popup"))
    engine.step()
    assert Recorder.log == [
        ("tick", "base"), ("tick", "popup"),
        ("render", "base"), ("render", "popup"),
    ]
    assert engine.active_state.name == "popup"

def test_pop_keeps_bottom_state():
    engine = _engine()
    engine.push_state(Recorder(engine, "popup"))
    engine.pop_state()
    engine.pop_state()
    assert [s.name for s in engine.states] == ["base"]
    assert Recorder.log == [("exit", "popup")]

def test_change_state_exits_everything():
    engine = _engine()
    engine.push_state(Recorder(engine, "popup"))
    engine.change_state(Recorder(engine, "next"))
    assert Recorder.log == [("exit", "popup"), ("exit", "base")]
    assert [s.name for s in engine.states] == ["next"]

def test_quit_event_stops_loop():
    engine = _engine()
    engine.dispatch(tcod.event.Quit())
    assert engine.running is False
    engine.shutdown()
    assert Recorder.log == [("exit", "base")]

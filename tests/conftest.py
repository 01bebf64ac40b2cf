"""
Shared fixtures: a recording rendering surface, a fixed-table generator and
builders for caches and sessions on a unit grid centred at (0, 0).
"""
import threading
import time
from typing import Dict, Optional, Tuple

import pytest

from engine.data_loader import (
    CacheDef,
    GameplayConfig,
    GenerationDef,
    InteractionDef,
    MovementDef,
    WorldDef,
)
from engine.events import EventBus
from engine.session import GameSession
from world.cache import SpatialWindowCache
from world.coords import CellIndex, GridMapping, LatLng, LatLngBounds
from world.gate import InteractionGate
from world.generator import InitialContent, TokenGenerator
from world.overlay import MutationOverlay

# Corners fall in cells -2 and 2, so padding 1 gives the range -3..3
DEFAULT_VIEW = LatLngBounds(-2.2, -2.2, 2.2, 2.2)


class FakeSurface:
    def __init__(self, bounds: LatLngBounds = DEFAULT_VIEW):
        self.bounds = bounds
        self.visuals: Dict[int, dict] = {}
        self.destroyed = []
        self.fail_destroy = False
        self._next = 0

    def get_viewport_bounds(self) -> LatLngBounds:
        return self.bounds

    def world_to_screen(self, position: LatLng) -> Tuple[int, int]:
        return int(position.lng * 10), int(-position.lat * 10)

    def create_visual(self, bounds: LatLngBounds, label: Optional[str]) -> int:
        self._next += 1
        self.visuals[self._next] = {"bounds": bounds, "label": label, "active": None}
        return self._next

    def destroy_visual(self, handle: int) -> None:
        if self.fail_destroy:
            raise RuntimeError("surface already discarded this visual")
        del self.visuals[handle]
        self.destroyed.append(handle)

    def set_label(self, handle: int, label: Optional[str]) -> None:
        self.visuals[handle]["label"] = label

    def restyle_visual(self, handle: int, active: bool) -> None:
        self.visuals[handle]["active"] = active

    def labels(self):
        return sorted(v["label"] for v in self.visuals.values())


class FixedGenerator(TokenGenerator):
    """Generator whose defaults come from a table; every other cell is empty."""
    def __init__(self, tokens: Dict[Tuple[int, int], int]):
        super().__init__("fixed")
        self.tokens = {CellIndex(i, j): v for (i, j), v in tokens.items()}

    def generate(self, index: CellIndex) -> InitialContent:
        return InitialContent(self.tokens.get(index))


UNIT_MAPPING = GridMapping(LatLng(0.0, 0.0), 1.0)


@pytest.fixture
def surface():
    return FakeSurface()


@pytest.fixture
def make_cache(surface):
    def _make(tokens=None, radius: int = 3, padding: int = 1, bus: Optional[EventBus] = None):
        generator = FixedGenerator(tokens or {})
        overlay = MutationOverlay()
        gate = InteractionGate(radius)
        cache = SpatialWindowCache(
            UNIT_MAPPING, generator, overlay, surface, padding=padding, gate=gate, bus=bus
        )
        return cache
    return _make


def unit_config(**generation) -> GameplayConfig:
    gen = {"spawn_probability": 1.0, "min_exponent": 1, "max_exponent": 1}
    gen.update(generation)
    return GameplayConfig(
        world=WorldDef(seed="test", origin_lat=0.0, origin_lng=0.0, cell_size=1.0),
        generation=GenerationDef(**gen),
        cache=CacheDef(padding=1),
        interaction=InteractionDef(radius=3),
        movement=MovementDef(default_backend="buttons", stream_min_interval=0.0),
    )


def list_feed(positions):
    def feed(stop: threading.Event):
        for position in positions:
            if stop.is_set():
                return
            yield position
    return feed


def endless_feed(step: float = 0.01):
    def feed(stop: threading.Event):
        n = 0
        while not stop.wait(step):
            n += 1
            yield LatLng(float(n), 0.0)
    return feed


def pump_until(backend, count: int, timeout: float = 2.0) -> int:
    delivered = 0
    deadline = time.monotonic() + timeout
    while delivered < count and time.monotonic() < deadline:
        delivered += backend.pump()
        time.sleep(0.005)
    return delivered


@pytest.fixture
def make_session():
    sessions = []

    def _make(feed=None, **generation):
        session = GameSession(FakeSurface(), config=unit_config(**generation), feed=feed or list_feed([]))
        session.start()
        sessions.append(session)
        return session
    yield _make
    for session in sessions:
        session.shutdown()

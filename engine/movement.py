"""
Cellcrafter — engine/movement.py
Movement Facade: interchangeable sources of player position updates.
====================================================================
Stack:       Python 3.11+ | stdlib threading/queue

Architecture notes
------------------
- Backends satisfy the MovementBackend protocol. The facade keeps a
  registry of them by name and exactly one is active.
- All callbacks fire on the caller's thread. The streaming backend's worker
  only enqueues; pump() delivers each update to completion before the next.
- stop() is synchronous. After it returns the backend delivers nothing
  further.
- A source that cannot start raises MovementSourceUnavailable from start(),
  including generator feeds that fail on their first fix. A source that
  dies later is noticed on the next pump(). Either way the facade falls
  back to the discrete backend and reports a warning.
"""

from __future__ import annotations

import logging
import queue
import random
import threading
import time
from typing import Callable, Dict, Iterator, Optional, Protocol

from engine.events import EVT_MOVEMENT_SWITCHED, EVT_MOVEMENT_WARNING, EventBus, GridEvent
from world.coords import GridMapping, LatLng

logger = logging.getLogger("cellcrafter.movement")

MoveCallback = Callable[[LatLng], None]
PositionFeed = Callable[[threading.Event], Iterator[LatLng]]


class MovementSourceUnavailable(RuntimeError):
    """A movement source could not be started."""


class MovementBackend(Protocol):
    name: str

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def set_move_callback(self, callback: Optional[MoveCallback]) -> None: ...

    def pump(self) -> int: ...

    @property
    def error(self) -> Optional[BaseException]: ...


class DiscreteStepper:
    """Moves the player exactly one cell along one axis per step."""

    name = "buttons"
    error = None

    def __init__(self, mapping: GridMapping, current_position: Callable[[], LatLng]):
        self.mapping = mapping
        self.current_position = current_position
        self._callback: Optional[MoveCallback] = None
        self.running = False

    def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False

    def set_move_callback(self, callback: Optional[MoveCallback]) -> None:
        self._callback = callback

    def pump(self) -> int:
        return 0

    def step(self, di: int, dj: int) -> bool:
        """Steps by (di, dj); exactly one of them must be +-1."""
        if (abs(di), abs(dj)) not in ((1, 0), (0, 1)):
            raise ValueError(f"step must move one cell along one axis, got ({di}, {dj})")
        if not self.running or self._callback is None:
            return False
        self._callback(self.mapping.offset(self.current_position(), di, dj))
        return True

    def jump_to(self, position: LatLng) -> bool:
        """Developer teleport to an arbitrary position."""
        if not self.running or self._callback is None:
            return False
        self._callback(position)
        return True


class SimulatedGpsFeed:
    """
    Continuous position source: a seeded random walk around a start point,
    emitting the start fix at once and then one fix every `interval` seconds.
    """
    def __init__(self, start: Callable[[], LatLng], step_size: float, interval: float = 1.0, seed: int = 7):
        self.start = start
        self.step_size = step_size
        self.interval = interval
        self.seed = seed

    def __call__(self, stop: threading.Event) -> Iterator[LatLng]:
        rng = random.Random(self.seed)
        position = self.start()
        yield position
        while not stop.wait(self.interval):
            position = LatLng(
                position.lat + rng.uniform(-1.0, 1.0) * self.step_size,
                position.lng + rng.uniform(-1.0, 1.0) * self.step_size,
            )
            yield position


class StreamingMovement:
    """Delivers positions from a PositionFeed running on a worker thread."""

    name = "gps"

    def __init__(self, feed: PositionFeed, min_interval: float = 0.5, clock: Callable[[], float] = time.monotonic):
        self.feed = feed
        self.min_interval = min_interval
        self.clock = clock
        self._callback: Optional[MoveCallback] = None
        self._queue: "queue.Queue[LatLng]" = queue.Queue()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_accepted: Optional[float] = None
        self._error: Optional[BaseException] = None
        self.running = False

    def start(self) -> None:
        if self.running:
            return
        self._stop = threading.Event()
        self._last_accepted = None
        self._error = None
        # Generator feeds run no code until iterated, so the first fix is
        # pulled here to surface a source that cannot open.
        try:
            positions = iter(self.feed(self._stop))
            first = next(positions, None)
        except MovementSourceUnavailable:
            raise
        except Exception as exc:
            raise MovementSourceUnavailable(f"position feed failed to open: {exc}") from exc

        if first is not None:
            self._offer(first)
        self._thread = threading.Thread(
            target=self._run, args=(positions, self._stop), name="position-feed", daemon=True
        )
        self.running = True
        self._thread.start()

    def _offer(self, position: LatLng) -> None:
        now = self.clock()
        if self._last_accepted is not None and now - self._last_accepted < self.min_interval:
            return
        self._last_accepted = now
        self._queue.put(position)

    def _run(self, positions: Iterator[LatLng], stop: threading.Event) -> None:
        try:
            for position in positions:
                if stop.is_set():
                    break
                self._offer(position)
        except MovementSourceUnavailable as exc:
            self._error = exc
            logger.warning("Position feed lost: %s", exc)
        except Exception as exc:  # noqa: BLE001
            self._error = MovementSourceUnavailable(f"position feed failed: {exc}")
            logger.warning("Position feed stopped with an error: %s", exc)

    def stop(self) -> None:
        self.running = False
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            if self._thread.is_alive():
                logger.warning("Position feed did not exit within 2s; its updates are discarded")
            self._thread = None
        self._drain()

    def _drain(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return

    def set_move_callback(self, callback: Optional[MoveCallback]) -> None:
        self._callback = callback

    def pump(self) -> int:
        """Delivers queued positions in order. Returns how many were delivered."""
        delivered = 0
        while self.running:
            try:
                position = self._queue.get_nowait()
            except queue.Empty:
                break
            if self._callback is not None:
                self._callback(position)
                delivered += 1
        return delivered

    @property
    def error(self) -> Optional[BaseException]:
        return self._error


class MovementFacade:
    """
    Holds one active backend and a registry of inactive ones.
    """
    def __init__(
        self,
        backends: Dict[str, MovementBackend],
        fallback: str = "buttons",
        bus: Optional[EventBus] = None,
    ):
        if fallback not in backends:
            raise KeyError(f"fallback backend '{fallback}' is not registered")
        self.backends = backends
        self.fallback = fallback
        self.bus = bus
        self._callback: Optional[MoveCallback] = None
        self._active: Optional[MovementBackend] = None

    @property
    def active_name(self) -> Optional[str]:
        return self._active.name if self._active is not None else None

    @property
    def active(self) -> Optional[MovementBackend]:
        return self._active

    def set_move_callback(self, callback: MoveCallback) -> None:
        self._callback = callback
        if self._active is not None:
            self._active.set_move_callback(callback)

    def _detach(self) -> None:
        if self._active is not None:
            self._active.stop()
            self._active.set_move_callback(None)
            self._active = None

    def _attach(self, backend: MovementBackend) -> None:
        backend.set_move_callback(self._callback)
        backend.start()
        self._active = backend

    def activate(self, name: str) -> bool:
        """Switches to `name`. Returns False if it fell back to the discrete backend."""
        if name not in self.backends:
            raise KeyError(f"unknown movement backend '{name}'")
        if self.active_name == name:
            return True

        previous = self.active_name
        self._detach()
        try:
            self._attach(self.backends[name])
        except MovementSourceUnavailable as exc:
            self._fall_back(name, exc)
            return False

        if self.bus is not None:
            self.bus.emit(GridEvent(
                event_key=EVT_MOVEMENT_SWITCHED,
                source="MovementFacade",
                data={"previous": previous, "active": name},
            ))
        return True

    def toggle(self) -> bool:
        """Cycles to the next registered backend."""
        names = list(self.backends)
        current = names.index(self.active_name) if self.active_name in names else -1
        return self.activate(names[(current + 1) % len(names)])

    def _fall_back(self, name: str, exc: BaseException) -> None:
        logger.warning("Movement source '%s' unavailable: %s; using '%s'", name, exc, self.fallback)
        self._detach()
        self.backends[name].set_move_callback(None)
        self._attach(self.backends[self.fallback])
        if self.bus is not None:
            self.bus.emit(GridEvent(
                event_key=EVT_MOVEMENT_WARNING,
                source="MovementFacade",
                data={"requested": name, "active": self.fallback, "reason": str(exc)},
            ))

    def pump(self) -> int:
        """Delivers pending updates; a source that died since the last pump is replaced by the fallback."""
        if self._active is None:
            return 0
        # Read before delivering: every position the dead source produced is already queued
        error = self._active.error
        delivered = self._active.pump()
        if error is not None:
            self._fall_back(self._active.name, error)
        return delivered

    def shutdown(self) -> None:
        self._detach()

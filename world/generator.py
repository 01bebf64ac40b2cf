"""
Cellcrafter — world/generator.py
Procedural Generation: deterministic per-cell token content.
============================================================
Stack:       Python 3.11+ | stdlib hashlib
Status:      Pure. No stored state; content is recomputed on demand.

Design Variables (configured in data/gameplay.toml [generation])
----------------------------------------------------------------
  spawn_probability   0.1   chance a cell starts with a token
  min_exponent        0     smallest token is 2**min_exponent
  max_exponent        3     largest token is 2**max_exponent

Each draw hashes a purpose-specific key, so "does this cell spawn" and
"what value does it hold" are independent draws for the same index.
Python's builtin hash() is salted per process and is never used here.
"""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass
from typing import Optional

from world.coords import CellIndex


def luck(key: str) -> float:
    """Stable uniform draw in [0, 1) from an arbitrary string key."""
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], byteorder="big", signed=False) / 2**64


@dataclass(frozen=True)
class InitialContent:
    token: Optional[int] = None


class TokenGenerator:
    """
    Maps a CellIndex to the content it holds before any player touches it.
    """
    def __init__(
        self,
        seed: str,
        spawn_probability: float = 0.1,
        min_exponent: int = 0,
        max_exponent: int = 3,
    ):
        if not 0.0 <= spawn_probability <= 1.0:
            raise ValueError(f"spawn_probability out of range: {spawn_probability}")
        if max_exponent < min_exponent:
            raise ValueError("max_exponent must be >= min_exponent")
        self.seed = seed
        self.spawn_probability = spawn_probability
        self.min_exponent = min_exponent
        self.max_exponent = max_exponent

    def _draw(self, index: CellIndex, purpose: str) -> float:
        return luck(f"{self.seed}:{index.i},{index.j},{purpose}")

    def generate(self, index: CellIndex) -> InitialContent:
        if self._draw(index, "spawn") >= self.spawn_probability:
            return InitialContent(token=None)

        span = self.max_exponent - self.min_exponent + 1
        k = self.min_exponent + min(span - 1, math.floor(self._draw(index, "value") * span))
        return InitialContent(token=2 ** k)

    def default_token(self, index: CellIndex) -> Optional[int]:
        return self.generate(index).token

"""
Cellcrafter — engine/data_loader.py
JIT loader for the gameplay configuration TOML, validated by Pydantic.
=====================================================================
Stack:       Python 3.11+ | Pydantic v2 | tomllib
Status:      Core configuration layer.

Every tunable lives in data/gameplay.toml. A missing file yields the
defaults declared on the schemas below. Padding and interaction radius are
independent values.
"""

import tomllib
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ================================================================================
# SCHEMAS
# ================================================================================

class WorldDef(BaseModel):
    model_config = ConfigDict(frozen=True)
    seed: str = "cellcrafter"
    # Cell (0, 0) is centred on the origin
    origin_lat: float = 36.997936938057016
    origin_lng: float = -122.05703507501151
    cell_size: float = Field(default=1e-4, gt=0)

class GenerationDef(BaseModel):
    model_config = ConfigDict(frozen=True)
    spawn_probability: float = Field(default=0.1, ge=0.0, le=1.0)
    min_exponent: int = Field(default=0, ge=0)
    max_exponent: int = Field(default=3, ge=0)

    @model_validator(mode="after")
    def _exponent_order(self) -> "GenerationDef":
        if self.max_exponent < self.min_exponent:
            raise ValueError("max_exponent must be >= min_exponent")
        return self

class CacheDef(BaseModel):
    model_config = ConfigDict(frozen=True)
    padding: int = Field(default=1, ge=1)

class InteractionDef(BaseModel):
    model_config = ConfigDict(frozen=True)
    radius: int = Field(default=3, ge=0)
    max_token_value: Optional[int] = Field(default=None, ge=1)

class MovementDef(BaseModel):
    model_config = ConfigDict(frozen=True)
    default_backend: Literal["buttons", "gps"] = "buttons"
    stream_interval: float = Field(default=1.0, gt=0)
    stream_min_interval: float = Field(default=0.5, ge=0)
    stream_seed: int = 7

class DisplayDef(BaseModel):
    model_config = ConfigDict(frozen=True)
    width: int = Field(default=80, ge=20)
    height: int = Field(default=50, ge=10)
    cell_width: int = Field(default=5, ge=3)
    cell_height: int = Field(default=3, ge=3)
    title: str = "Cellcrafter"

class GameplayConfig(BaseModel):
    model_config = ConfigDict(frozen=True)
    world: WorldDef = Field(default_factory=WorldDef)
    generation: GenerationDef = Field(default_factory=GenerationDef)
    cache: CacheDef = Field(default_factory=CacheDef)
    interaction: InteractionDef = Field(default_factory=InteractionDef)
    movement: MovementDef = Field(default_factory=MovementDef)
    display: DisplayDef = Field(default_factory=DisplayDef)

# ================================================================================
# LOADERS & CACHE (JIT)
# ================================================================================

_CONFIG_CACHE: Optional[GameplayConfig] = None

DATA_DIR = Path(__file__).parent.parent / "data"
DEFAULT_CONFIG_PATH = DATA_DIR / "gameplay.toml"

def load_gameplay_config(path: Path) -> GameplayConfig:
    """Reads and validates a gameplay TOML file. Missing file -> defaults."""
    if not path.exists():
        return GameplayConfig()

    with open(path, "rb") as f:
        data = tomllib.load(f)

    return GameplayConfig(**data)

def get_gameplay_config() -> GameplayConfig:
    """Loads data/gameplay.toml. Cached globally."""
    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None:
        return _CONFIG_CACHE

    _CONFIG_CACHE = load_gameplay_config(DEFAULT_CONFIG_PATH)
    return _CONFIG_CACHE

def reset_config_cache() -> None:
    global _CONFIG_CACHE
    _CONFIG_CACHE = None

import pytest
from pydantic import ValidationError

from engine.data_loader import (
    DEFAULT_CONFIG_PATH,
    CacheDef,
    GameplayConfig,
    GenerationDef,
    get_gameplay_config,
    load_gameplay_config,
    reset_config_cache,
)

def test_load_shipped_config():
    config = load_gameplay_config(DEFAULT_CONFIG_PATH)
    assert config.world.seed == "cellcrafter"
    assert config.world.cell_size == pytest.approx(1e-4)
    assert config.generation.spawn_probability == pytest.approx(0.1)
    assert config.cache.padding == 1
    assert config.interaction.radius == 3
    assert config.interaction.max_token_value is None
    assert config.movement.default_backend == "buttons"

def test_load_custom_file(tmp_path):
    path = tmp_path / "gameplay.toml"
    path.write_text(
        '[world]\nseed = "alt"\n\n'
        "[cache]\npadding = 4\n\n"
        "[interaction]\nradius = 1\nmax_token_value = 64\n"
    )
    config = load_gameplay_config(path)
    assert config.world.seed == "alt"
    assert config.cache.padding == 4
    assert config.interaction.radius == 1
    assert config.interaction.max_token_value == 64
    # Untouched sections keep their defaults
    assert config.generation.max_exponent == 3

def test_missing_file_gives_defaults(tmp_path):
    config = load_gameplay_config(tmp_path / "absent.toml")
    assert config == GameplayConfig()

def test_padding_must_be_at_least_one():
    with pytest.raises(ValidationError):
        CacheDef(padding=0)

def test_exponent_order_validated():
    with pytest.raises(ValidationError):
        GenerationDef(min_exponent=4, max_exponent=2)

def test_unknown_backend_rejected(tmp_path):
    path = tmp_path / "gameplay.toml"
    path.write_text('[movement]\ndefault_backend = "teleporter"\n')
    with pytest.raises(ValidationError):
        load_gameplay_config(path)

def test_config_is_cached():
    reset_config_cache()
    first = get_gameplay_config()
    assert get_gameplay_config() is first
    reset_config_cache()
    assert get_gameplay_config() is not first

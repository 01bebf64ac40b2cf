"""
JIT materialization and culling in SpatialWindowCache.
"""
import pytest
from conftest import DEFAULT_VIEW, UNIT_MAPPING
from engine.events import EVT_VIEWPORT_RECOMPUTED, EventBus
from world.coords import CellIndex, LatLngBounds
from world.overlay import OverlayEntry

FAR_VIEW = LatLngBounds(97.8, 97.8, 102.2, 102.2)

def _window(bounds, padding=1):
    return set(UNIT_MAPPING.covering_range(bounds, padding))

def test_recompute_materializes_exact_padded_range(make_cache):
    cache = make_cache()
    stats = cache.recompute(DEFAULT_VIEW)
    assert cache.materialized_indices() == _window(DEFAULT_VIEW)
    assert stats.spawned == 49
    assert stats.evicted == 0
    assert stats.live == 49
    assert len(cache) == 49

def test_recompute_is_idempotent(make_cache, surface):
    cache = make_cache({(0, 0): 2})
    cache.recompute(DEFAULT_VIEW)
    handles = set(surface.visuals)
    stats = cache.recompute(DEFAULT_VIEW)
    assert (stats.spawned, stats.evicted) == (0, 0)
    assert set(surface.visuals) == handles
    assert cache.materialized_indices() == _window(DEFAULT_VIEW)

def test_shift_spawns_and_evicts_edges(make_cache):
    cache = make_cache()
    cache.recompute(DEFAULT_VIEW)
    shifted = LatLngBounds(-2.2, -1.2, 2.2, 3.2)
    stats = cache.recompute(shifted)
    assert stats.spawned == 7
    assert stats.evicted == 7
    assert cache.materialized_indices() == _window(shifted)

def test_larger_padding(make_cache):
    cache = make_cache(padding=3)
    cache.recompute(DEFAULT_VIEW)
    assert cache.materialized_indices() == _window(DEFAULT_VIEW, padding=3)
    assert len(cache) == 11 * 11

def test_padding_must_be_positive(make_cache):
    with pytest.raises(ValueError):
        make_cache(padding=0)

def test_visuals_only_for_token_cells(make_cache, surface):
    cache = make_cache({(0, 0): 2, (1, -1): 8, (50, 50): 4})
    cache.recompute(DEFAULT_VIEW)
    assert surface.labels() == ["2", "8"]
    assert cache.get_cell(CellIndex(0, 0)).visual is not None
    empty = cache.get_cell(CellIndex(2, 2))
    assert empty is not None
    assert empty.token is None
    assert empty.visual is None

def test_eviction_releases_visuals(make_cache, surface):
    cache = make_cache({(0, 0): 2})
    cache.recompute(DEFAULT_VIEW)
    cache.recompute(FAR_VIEW)
    assert surface.visuals == {}
    assert cache.get_cell(CellIndex(0, 0)) is None

def test_untouched_cells_leave_no_overlay(make_cache):
    cache = make_cache({(0, 0): 2, (1, 1): 4})
    cache.recompute(DEFAULT_VIEW)
    cache.recompute(FAR_VIEW)
    assert len(cache.overlay) == 0

def test_round_trip_through_eviction(make_cache):
    cache = make_cache({(0, 0): 2})
    cache.recompute(DEFAULT_VIEW)
    cache.set_token(CellIndex(0, 0), None)

    cache.recompute(FAR_VIEW)
    assert cache.overlay.get(CellIndex(0, 0)) == OverlayEntry(None)

    cache.recompute(DEFAULT_VIEW)
    assert cache.get_cell(CellIndex(0, 0)).token is None

def test_overlay_minimal_after_convergence(make_cache):
    cache = make_cache({(0, 0): 2})
    cache.recompute(DEFAULT_VIEW)
    idx = CellIndex(0, 0)

    cache.set_token(idx, None)
    assert idx in cache.overlay
    cache.set_token(idx, 2)
    assert idx not in cache.overlay

    cache.set_token(CellIndex(1, 1), 4)
    cache.recompute(FAR_VIEW)
    assert cache.overlay.get_state() == {"cells": {"1,1": 4}}

def test_set_token_manages_visual(make_cache, surface):
    cache = make_cache()
    cache.recompute(DEFAULT_VIEW)
    idx = CellIndex(1, 0)

    cache.set_token(idx, 4)
    handle = cache.get_cell(idx).visual
    assert surface.visuals[handle]["label"] == "4"

    cache.set_token(idx, 8)
    assert cache.get_cell(idx).visual == handle
    assert surface.visuals[handle]["label"] == "8"

    cache.set_token(idx, None)
    assert cache.get_cell(idx).visual is None
    assert handle not in surface.visuals

def test_set_token_on_unloaded_cell_raises(make_cache):
    cache = make_cache()
    cache.recompute(DEFAULT_VIEW)
    with pytest.raises(KeyError):
        cache.set_token(CellIndex(40, 40), 2)

def test_visual_release_failure_is_swallowed(make_cache, surface):
    cache = make_cache({(0, 0): 2})
    cache.recompute(DEFAULT_VIEW)
    cache.set_token(CellIndex(0, 0), 4)
    surface.fail_destroy = True

    cache.recompute(FAR_VIEW)
    assert CellIndex(0, 0) not in cache.materialized_indices()
    assert cache.overlay.get(CellIndex(0, 0)) == OverlayEntry(4)

def test_effective_token_for_unloaded_cells(make_cache):
    cache = make_cache({(0, 0): 2, (60, 60): 8})
    cache.recompute(DEFAULT_VIEW)
    cache.set_token(CellIndex(0, 0), None)
    cache.recompute(FAR_VIEW)
    assert cache.effective_token(CellIndex(0, 0)) is None
    assert cache.effective_token(CellIndex(60, 60)) == 8

def test_refresh_interaction_tags_and_styles(make_cache, surface):
    cache = make_cache({(0, 0): 2, (3, 0): 2, (-3, 3): 1}, radius=2)
    cache.recompute(DEFAULT_VIEW)
    cache.refresh_interaction(CellIndex(0, 0))

    in_range = set(cache.in_range_indices())
    assert len(in_range) == 25
    assert cache.get_cell(CellIndex(0, 0)).in_range
    assert not cache.get_cell(CellIndex(3, 0)).in_range

    styles = {v["label"] + str(v["active"]) for v in surface.visuals.values()}
    assert styles == {"2True", "2False", "1False"}

    cache.refresh_interaction(CellIndex(3, 1))
    assert cache.get_cell(CellIndex(3, 0)).in_range
    assert not cache.get_cell(CellIndex(0, 0)).in_range

def test_new_spawns_styled_for_last_player_cell(make_cache, surface):
    cache = make_cache({(0, 4): 2})
    cache.recompute(DEFAULT_VIEW)
    cache.refresh_interaction(CellIndex(0, 2))
    cache.recompute(LatLngBounds(-2.2, 0.8, 2.2, 5.2))
    cell = cache.get_cell(CellIndex(0, 4))
    assert cell.in_range
    assert surface.visuals[cell.visual]["active"] is True

def test_recompute_emits_stats_event(make_cache):
    bus = EventBus()
    seen = []
    bus.subscribe(EVT_VIEWPORT_RECOMPUTED, seen.append)
    cache = make_cache(bus=bus)
    cache.recompute(DEFAULT_VIEW)
    assert seen[0].data == {"spawned": 49, "evicted": 0, "live": 49}

def test_recompute_not_reentrant(make_cache, surface):
    cache = make_cache({(0, 0): 2})
    original = surface.create_visual

    def nested(bounds, label):
        cache.recompute(DEFAULT_VIEW)
        return original(bounds, label)

    surface.create_visual = nested
    with pytest.raises(RuntimeError):
        cache.recompute(DEFAULT_VIEW)

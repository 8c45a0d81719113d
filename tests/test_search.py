"""
Tests: search (CombinationSearch + ResultAggregator)
- Reference scenario (white/black vs cyan), exhaustiveness, tie-breaking
- Brute-force agreement, serial/parallel agreement
- Error propagation from worker futures
"""

from __future__ import annotations

import itertools
from concurrent.futures import Future
from concurrent.futures.process import BrokenProcessPool

import numpy as np
import pytest

from beacon_map.blend import blend_panes
from beacon_map.colour_convert import delta_e76, delta_e2000, rgb_to_lab
from beacon_map.core_types import (
    Color8,
    ColorF,
    InvalidInputError,
    MissingKeyError,
    SearchResult,
    WorkerFailureError,
)
from beacon_map.palette_data import build_palette
from beacon_map.search import (
    count_leaves,
    find_closest_panes,
    gather_subtree_results,
    improves,
    reduce_results,
    search_subtree,
)

CYAN = Color8.from_number(0x00FFFF)


@pytest.fixture
def white_black():
    return build_palette([("white", (249, 255, 254)), ("black", (29, 29, 33))])


@pytest.fixture
def four_panes():
    return build_palette(
        [
            ("red", (176, 46, 38)),
            ("yellow", (254, 216, 61)),
            ("light_blue", (58, 179, 218)),
            ("purple", (137, 50, 184)),
        ]
    )


def _brute_force(target, palette, depth, metric=delta_e76):
    """Plain itertools enumeration; keeps the first minimum like the search."""
    target_lab = rgb_to_lab(target.to_array())
    best = (float("inf"), ())
    for combo in itertools.product(list(palette), repeat=depth):
        colour = blend_panes(combo, palette)
        dist = float(metric(rgb_to_lab(colour.to_array()), target_lab))
        if improves(dist, best[0]):
            best = (dist, combo)
    return best


# ──────────────────────────────────────────────────────────────────────────────
# Reference scenario and boundaries
# ──────────────────────────────────────────────────────────────────────────────

def test_white_beats_black_for_cyan(white_black):
    result = find_closest_panes(CYAN, white_black, 1)
    assert result.combination == ("white",)
    assert result.distance == pytest.approx(48.74002078, abs=1e-6)
    assert result.colour == ColorF(249.0, 255.0, 254.0)
    assert result.leaves == 2


def test_single_entry_palette_depth_one():
    palette = build_palette([("only", (10, 20, 30))])
    result = find_closest_panes(CYAN, palette, 1, workers=4)
    assert result.combination == ("only",)
    assert result.leaves == 1


def test_exact_match_has_zero_distance(white_black):
    result = find_closest_panes(Color8(29, 29, 33), white_black, 3)
    assert result.combination == ("black", "black", "black")
    assert result.distance == pytest.approx(0.0, abs=1e-9)


def test_empty_palette_is_invalid():
    with pytest.raises(InvalidInputError):
        find_closest_panes(CYAN, build_palette([]), 1)


@pytest.mark.parametrize("depth", [0, -1, 2.0, True])
def test_bad_depth_is_invalid(white_black, depth):
    with pytest.raises(InvalidInputError):
        find_closest_panes(CYAN, white_black, depth)


def test_bad_target_and_palette_values_are_invalid(white_black):
    with pytest.raises(InvalidInputError):
        find_closest_panes((0, 255, 255), white_black, 1)  # type: ignore[arg-type]
    with pytest.raises(InvalidInputError):
        find_closest_panes(CYAN, {"x": (1, 2, 3)}, 1)  # type: ignore[dict-item]


def test_unknown_metric_is_invalid(white_black):
    with pytest.raises(InvalidInputError):
        find_closest_panes(CYAN, white_black, 1, metric="cie94")


# ──────────────────────────────────────────────────────────────────────────────
# Enumeration
# ──────────────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("depth", [1, 2, 3, 4])
def test_leaf_count_is_palette_size_to_the_depth(four_panes, depth):
    result = find_closest_panes(CYAN, four_panes, depth)
    assert result.leaves == count_leaves(4, depth) == 4**depth


def test_subtree_leaf_count(four_panes):
    target_lab = rgb_to_lab(CYAN.to_array())
    res = search_subtree("yellow", target_lab, four_panes, 3)
    assert res.leaves == 16
    assert res.combination[0] == "yellow"
    assert len(res.combination) == 3


def test_tie_keeps_first_found(white_black):
    # (white, black) and (black, white) blend to the same colour.
    target = Color8(139, 142, 143)
    result = find_closest_panes(target, white_black, 2)
    assert result.combination == ("white", "black")
    assert result.colour == ColorF(139.0, 142.0, 143.5)


def test_position_weights_drive_the_choice():
    palette = build_palette([("red", (255, 0, 0)), ("blue", (0, 0, 255))])
    # Three quarters blue needs blue at the heavy last position.
    result = find_closest_panes(Color8(64, 0, 191), palette, 3)
    assert result.combination == ("red", "blue", "blue")
    assert result.colour == ColorF(63.75, 0.0, 191.25)
    assert result.leaves == 8


@pytest.mark.parametrize("depth", [1, 2, 3])
def test_matches_brute_force(four_panes, depth):
    result = find_closest_panes(CYAN, four_panes, depth)
    dist, combo = _brute_force(CYAN, four_panes, depth)
    assert result.combination == combo
    assert result.distance == pytest.approx(dist, abs=1e-9)


def test_result_colour_is_the_blend_of_its_combination(four_panes):
    result = find_closest_panes(Color8(120, 90, 200), four_panes, 4)
    assert result.colour == blend_panes(result.combination, four_panes)


def test_result_independent_of_palette_order(four_panes):
    reversed_palette = build_palette(reversed(list(four_panes.items())))
    a = find_closest_panes(Color8(200, 120, 80), four_panes, 3)
    b = find_closest_panes(Color8(200, 120, 80), reversed_palette, 3)
    assert a.distance == pytest.approx(b.distance, abs=1e-9)


def test_ciede2000_metric_matches_brute_force(four_panes):
    result = find_closest_panes(CYAN, four_panes, 2, metric="ciede2000")
    dist, combo = _brute_force(CYAN, four_panes, 2, metric=delta_e2000)
    assert result.combination == combo
    assert result.distance == pytest.approx(dist, abs=1e-9)


def test_callable_metric_is_used(four_panes):
    def lightness_only(lab1, lab2):
        return np.abs(np.asarray(lab1)[..., 0] - np.asarray(lab2)[..., 0])

    result = find_closest_panes(CYAN, four_panes, 2, metric=lightness_only)
    assert result.distance == pytest.approx(
        float(
            lightness_only(
                rgb_to_lab(result.colour.to_array()), rgb_to_lab(CYAN.to_array())
            )
        )
    )


def test_subtree_missing_start_key(four_panes):
    with pytest.raises(MissingKeyError):
        search_subtree("nope", rgb_to_lab(CYAN.to_array()), four_panes, 2)


# ──────────────────────────────────────────────────────────────────────────────
# Parallel dispatch
# ──────────────────────────────────────────────────────────────────────────────

def test_parallel_matches_serial(four_panes):
    target = Color8(90, 160, 120)
    serial = find_closest_panes(target, four_panes, 3, workers=1)
    parallel = find_closest_panes(target, four_panes, 3, workers=2)
    assert parallel == serial


def test_parallel_keeps_tie_break(white_black):
    result = find_closest_panes(Color8(139, 142, 143), white_black, 2, workers=2)
    assert result.combination == ("white", "black")


def _done(result=None, exc=None) -> Future:
    fut: Future = Future()
    if exc is not None:
        fut.set_exception(exc)
    else:
        fut.set_result(result)
    return fut


def _result(distance, combo):
    return SearchResult(distance, combo, ColorF(0.0, 0.0, 0.0), leaves=1)


def test_gather_keeps_submission_order():
    a, b = _result(2.0, ("a",)), _result(1.0, ("b",))
    assert gather_subtree_results(["a", "b"], [_done(a), _done(b)]) == [a, b]


@pytest.mark.parametrize("cause", [RuntimeError("boom"), BrokenProcessPool("dead")])
def test_gather_wraps_abnormal_failures(cause):
    futures = [_done(_result(1.0, ("a",))), _done(exc=cause)]
    with pytest.raises(WorkerFailureError) as info:
        gather_subtree_results(["a", "b"], futures)
    assert info.value.__cause__ is cause
    assert "'b'" in str(info.value)


@pytest.mark.parametrize("exc", [MissingKeyError("x"), InvalidInputError("bad")])
def test_gather_passes_domain_errors_through(exc):
    with pytest.raises(type(exc)):
        gather_subtree_results(["a"], [_done(exc=exc)])


# ──────────────────────────────────────────────────────────────────────────────
# Reducer
# ──────────────────────────────────────────────────────────────────────────────

def test_reduce_picks_smallest():
    rs = [_result(3.0, ("a",)), _result(1.0, ("b",)), _result(2.0, ("c",))]
    assert reduce_results(rs).combination == ("b",)


def test_reduce_first_seen_wins_ties():
    rs = [_result(1.0, ("a",)), _result(1.0, ("b",))]
    assert reduce_results(rs).combination == ("a",)


def test_reduce_empty_is_invalid():
    with pytest.raises(InvalidInputError):
        reduce_results([])


def test_debug_logs_each_subtree(white_black, capsys):
    find_closest_panes(CYAN, white_black, 1, debug=True)
    out = capsys.readouterr().out
    assert "[debug]   start=white" in out
    assert "[debug]   start=black" in out
    assert "Leaves: 2" in out


# ──────────────────────────────────────────────────────────────────────────────
# Near-ties and unusable metrics
# ──────────────────────────────────────────────────────────────────────────────

def _nearly_flat(lab1, lab2):
    # Every leaf scores 1.0 give or take float noise; darker is a hair smaller.
    return 1.0 + 1e-13 * np.asarray(lab1, dtype=np.float64)[..., 0]


def _always_nan(lab1, lab2):
    return np.full(np.asarray(lab1).shape[:-1], np.nan)


def _nan_for_light(lab1, lab2):
    lab1 = np.asarray(lab1, dtype=np.float64)
    dist = np.asarray(delta_e76(lab1, lab2), dtype=np.float64)
    return np.where(lab1[..., 0] > 95.0, np.nan, dist)


def test_improves_needs_more_than_float_noise():
    assert improves(1.0, float("inf"))
    assert improves(1.0, 2.0)
    assert not improves(1.0, 1.0)
    assert not improves(1.0, 1.0 + 1e-12)
    assert not improves(float("nan"), float("inf"))


def test_reduce_near_tie_keeps_first_seen():
    rs = [_result(1.0 + 1e-12, ("a",)), _result(1.0, ("b",))]
    assert reduce_results(rs).combination == ("a",)


@pytest.mark.parametrize("depth", [1, 2, 3])
def test_near_tie_keeps_first_found(white_black, depth):
    # Strict comparison would pick the all-black stack.
    result = find_closest_panes(CYAN, white_black, depth, metric=_nearly_flat)
    assert result.combination == ("white",) * depth


@pytest.mark.parametrize("depth", [1, 2])
def test_all_nan_metric_is_invalid(white_black, depth):
    with pytest.raises(InvalidInputError, match="no comparable distance"):
        find_closest_panes(CYAN, white_black, depth, metric=_always_nan)


def test_nan_leaves_are_skipped(white_black):
    # Only the all-white stack is NaN; without that it would win.
    result = find_closest_panes(CYAN, white_black, 2, metric=_nan_for_light)
    assert result.combination == ("white", "black")
    assert result.leaves == 4

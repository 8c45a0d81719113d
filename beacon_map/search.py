from __future__ import annotations

"""
Exhaustive pane-combination search.

Every ordered stack of exactly max_depth panes (repetition allowed) is
blended and scored against the target in Lab. The work is split by the pane
at position 0: one independent subtree per palette entry, run serially or on
a ProcessPoolExecutor, then reduced to the global minimum.

Hot spot: the last level of each subtree. Its |palette| sibling leaves are
blended and converted to Lab in a single NumPy call.
"""

import time
from concurrent.futures import FIRST_EXCEPTION, Future, ProcessPoolExecutor, wait
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from .blend import blend_scale, palette_matrix, pane_weights
from .colour_convert import resolve_metric, rgb_to_lab
from .constants import DEFAULT_MAX_DEPTH, DEFAULT_METRIC, TIE_TOLERANCE
from .core_types import (
    Color8,
    ColorF,
    DistanceMetric,
    InvalidInputError,
    Lab,
    MissingKeyError,
    Palette,
    SearchResult,
    WorkerFailureError,
)
from .utils import debug_log, format_seconds_compact, key_value_pairs_to_string


def count_leaves(palette_size: int, max_depth: int) -> int:
    """Number of full-length combinations for a palette of the given size."""
    return int(palette_size) ** int(max_depth)


def improves(candidate: float, best: float) -> bool:
    """
    True when candidate beats best by more than TIE_TOLERANCE.

    Near-equal distances differ only by float noise (batched and single-row
    Lab conversions can disagree in the last bits), so they count as a tie and
    the incumbent stays. NaN never improves.
    """
    return candidate < best - TIE_TOLERANCE


class _SubtreeState:
    """
    Mutable state for one starting pane: the combination buffer and the
    running best. Owned by a single search_subtree call.
    """

    def __init__(
        self,
        names: List[str],
        rows: NDArray[np.float64],
        max_depth: int,
        target_lab: Lab,
        metric: DistanceMetric,
    ) -> None:
        self.names = names
        self.rows = rows
        self.max_depth = max_depth
        self.weights = pane_weights(max_depth)
        self.scale = blend_scale(max_depth)
        self.target_lab = target_lab
        self.metric = metric
        self.buffer: List[str] = []
        self.best_distance = float("inf")
        self.best_combination: tuple = ()
        self.best_colour: Optional[NDArray[np.float64]] = None
        self.leaves = 0

    def offer(self, distance: float, combination: tuple, colour) -> None:
        # The first leaf found keeps a tie.
        if improves(distance, self.best_distance):
            self.best_distance = distance
            self.best_combination = combination
            self.best_colour = colour

    def evaluate_leaf(self, colour: NDArray[np.float64]) -> None:
        """Score the full combination currently held in the buffer."""
        distance = float(self.metric(rgb_to_lab(colour), self.target_lab))
        self.leaves += 1
        self.offer(distance, tuple(self.buffer), colour)

    def evaluate_last_level(self, partial: NDArray[np.float64]) -> None:
        """Score every pane appended at the final position, in palette order."""
        last_weight = self.weights[self.max_depth - 1]
        colours = (partial + last_weight * self.rows) * self.scale
        distances = np.asarray(
            self.metric(rgb_to_lab(colours), self.target_lab), dtype=np.float64
        )
        self.leaves += len(self.names)
        # Prune to rows that could beat the current best, then offer them in
        # palette order so near-ties resolve exactly as a row-by-row scan.
        for idx in np.flatnonzero(distances < self.best_distance - TIE_TOLERANCE):
            self.offer(
                float(distances[idx]),
                tuple(self.buffer) + (self.names[idx],),
                colours[idx],
            )

    def extend(self, partial: NDArray[np.float64]) -> None:
        """Depth-first extension of the buffer; partial is the weighted sum so far."""
        depth = len(self.buffer)
        if depth == self.max_depth - 1:
            self.evaluate_last_level(partial)
            return
        weight = self.weights[depth]
        for j, name in enumerate(self.names):
            self.buffer.append(name)
            self.extend(partial + weight * self.rows[j])
            self.buffer.pop()

    def result(self) -> SearchResult:
        if self.best_colour is None:
            start = self.buffer[0] if self.buffer else "?"
            raise InvalidInputError(
                f"metric produced no comparable distance for the "
                f"{self.leaves} leaves starting at {start!r} (NaN?)"
            )
        return SearchResult(
            distance=self.best_distance,
            combination=self.best_combination,
            colour=ColorF.from_array(self.best_colour),
            leaves=self.leaves,
        )


def search_subtree(
    start_key: str,
    target_lab: Lab,
    palette: Mapping[str, Color8],
    max_depth: int,
    metric: Union[str, DistanceMetric] = DEFAULT_METRIC,
) -> SearchResult:
    """
    Best combination that starts with start_key.

    Explores |palette| ** (max_depth - 1) leaves depth-first in palette order.
    The metric must broadcast over a leading axis (both built-ins do).
    """
    if max_depth < 1:
        raise InvalidInputError(f"max_depth must be >= 1, got {max_depth}")
    if start_key not in palette:
        raise MissingKeyError(start_key)
    names, rows = palette_matrix(palette)
    state = _SubtreeState(
        names,
        rows,
        max_depth,
        np.asarray(target_lab, dtype=np.float64),
        resolve_metric(metric),
    )

    start_row = rows[names.index(start_key)]
    partial = np.zeros((3,), dtype=np.float64) + state.weights[0] * start_row
    state.buffer.append(start_key)
    if max_depth == 1:
        state.evaluate_leaf(partial * state.scale)
    else:
        state.extend(partial)
    return state.result()


def reduce_results(results: Sequence[SearchResult]) -> SearchResult:
    """Smallest distance wins; the first one seen wins a tie (see improves)."""
    best: Optional[SearchResult] = None
    for res in results:
        if best is None or improves(res.distance, best.distance):
            best = res
    if best is None:
        raise InvalidInputError("no search results to reduce (empty palette?)")
    return best


def _validate(target: Color8, palette: Palette, max_depth: int) -> None:
    if not isinstance(target, Color8):
        raise InvalidInputError(f"target must be a Color8, got {type(target).__name__}")
    if isinstance(max_depth, bool) or not isinstance(max_depth, (int, np.integer)):
        raise InvalidInputError(f"max_depth must be an int, got {max_depth!r}")
    if max_depth < 1:
        raise InvalidInputError(f"max_depth must be >= 1, got {max_depth}")
    if len(palette) == 0:
        raise InvalidInputError("palette is empty")
    for name, colour in palette.items():
        if not isinstance(colour, Color8):
            raise InvalidInputError(f"palette entry {name!r} is not a Color8")


def _cancel_all(futures: Sequence[Future]) -> None:
    for fut in futures:
        fut.cancel()


def gather_subtree_results(
    starts: Sequence[str], futures: Sequence[Future]
) -> List[SearchResult]:
    """
    Join per-start futures in submission order.

    Domain errors pass through unchanged. Anything else is a worker failure and
    aborts the whole search.
    """
    wait(futures, return_when=FIRST_EXCEPTION)
    results: List[SearchResult] = []
    for key, fut in zip(starts, futures):
        try:
            results.append(fut.result())
        except (InvalidInputError, MissingKeyError):
            _cancel_all(futures)
            raise
        except Exception as exc:
            _cancel_all(futures)
            raise WorkerFailureError(
                f"search task starting at {key!r} failed: {exc!r}"
            ) from exc
    return results


def _search_parallel(
    starts: List[str],
    target_lab: Lab,
    palette: Palette,
    max_depth: int,
    metric: Union[str, DistanceMetric],
    workers: int,
) -> List[SearchResult]:
    # MappingProxyType does not pickle; hand each task a plain dict copy.
    plain: Dict[str, Color8] = dict(palette)
    with ProcessPoolExecutor(max_workers=min(int(workers), len(starts))) as ex:
        futures = [
            ex.submit(search_subtree, key, target_lab, plain, max_depth, metric)
            for key in starts
        ]
        return gather_subtree_results(starts, futures)


def find_closest_panes(
    target: Color8,
    palette: Palette,
    max_depth: int = DEFAULT_MAX_DEPTH,
    *,
    workers: int = 1,
    metric: Union[str, DistanceMetric] = DEFAULT_METRIC,
    debug: bool = False,
) -> SearchResult:
    """
    Closest blended pane stack of exactly max_depth panes to target.

    Args:
      target   : colour to match
      palette  : name -> Color8, read only
      max_depth: stack length, >= 1
      workers  : process count; <= 1 runs in-process
      metric   : "cie76" | "ciede2000" | broadcasting callable (must be
                 picklable when workers > 1)
      debug    : log per-start subtree results

    Returns:
      SearchResult whose leaves is |palette| ** max_depth.
    """
    _validate(target, palette, max_depth)
    resolve_metric(metric)
    target_lab = rgb_to_lab(target.to_array())
    starts = list(palette.keys())

    t0 = time.perf_counter()
    if workers <= 1 or len(starts) == 1:
        results = [
            search_subtree(key, target_lab, palette, max_depth, metric)
            for key in starts
        ]
    else:
        results = _search_parallel(
            starts, target_lab, palette, max_depth, metric, workers
        )
    elapsed = time.perf_counter() - t0

    best = reduce_results(results)
    total_leaves = sum(res.leaves for res in results)

    if debug:
        for key, res in zip(starts, results):
            debug_log(
                f"  start={key:<12} dE={res.distance:.4f}  "
                f"panes={' > '.join(res.combination)}"
            )
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Subtrees", len(results)),
                    ("Leaves", total_leaves),
                    ("Workers", max(1, min(int(workers), len(starts)))),
                    ("Search time", format_seconds_compact(elapsed)),
                ]
            )
        )

    return replace(best, leaves=total_leaves)


__all__ = [
    "count_leaves",
    "improves",
    "search_subtree",
    "reduce_results",
    "gather_subtree_results",
    "find_closest_panes",
]

"""Seeded k-means over embedding vectors.

Initialization: k-means++ driven by ``numpy.random.default_rng(seed)``, so a
given (points, k, seed) always produces the same centroids.  When every
remaining point coincides with an already chosen centroid, the missing seeds
are drawn uniformly from the unchosen points.

Iteration: assign each point to its nearest centroid (squared Euclidean,
ties go to the lower centroid index), move each centroid to the mean of its
points, and stop once no centroid moves further than ``tolerance`` or after
``max_iterations`` rounds.  A centroid left without points is moved onto the
point farthest from its own centroid, so exactly k centroids come back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
import structlog

log = structlog.get_logger()

FloatMatrix = np.ndarray[Any, np.dtype[np.float32]]
IntArray = np.ndarray[Any, np.dtype[np.int64]]

DEFAULT_MAX_ITERATIONS = 100
DEFAULT_TOLERANCE = 1e-4


@dataclass(frozen=True, slots=True)
class KMeansResult:
    """Centroids plus the final point -> centroid assignment."""

    centroids: FloatMatrix
    assignments: IntArray
    iterations: int
    converged: bool

    @property
    def k(self) -> int:
        return int(self.centroids.shape[0])


def _squared_distances(
    points: np.ndarray[Any, np.dtype[np.float64]],
    centroids: np.ndarray[Any, np.dtype[np.float64]],
) -> np.ndarray[Any, np.dtype[np.float64]]:
    """(n_points, n_centroids) squared Euclidean distances."""
    cross = points @ centroids.T
    dist = (
        np.einsum("ij,ij->i", points, points)[:, None]
        - 2.0 * cross
        + np.einsum("ij,ij->i", centroids, centroids)[None, :]
    )
    return np.maximum(dist, 0.0)


def _kmeans_plus_plus(
    points: np.ndarray[Any, np.dtype[np.float64]],
    k: int,
    rng: np.random.Generator,
) -> list[int]:
    """Pick k distinct point indices as initial centroids."""
    n_points = points.shape[0]
    chosen = [int(rng.integers(n_points))]
    closest = _squared_distances(points, points[chosen])[:, 0]

    while len(chosen) < k:
        total = float(closest.sum())
        if total <= 0.0:
            remaining = np.setdiff1d(np.arange(n_points), chosen)
            extra = rng.choice(remaining, size=k - len(chosen), replace=False)
            chosen.extend(int(i) for i in extra)
            break
        idx = int(rng.choice(n_points, p=closest / total))
        chosen.append(idx)
        closest = np.minimum(closest, _squared_distances(points, points[[idx]])[:, 0])

    return chosen


def _reseed_empty_clusters(
    points: np.ndarray[Any, np.dtype[np.float64]],
    centroids: np.ndarray[Any, np.dtype[np.float64]],
    assignments: IntArray,
    distances: np.ndarray[Any, np.dtype[np.float64]],
    empty: IntArray,
) -> np.ndarray[Any, np.dtype[np.float64]]:
    """Move each empty centroid onto the farthest not-yet-used point."""
    reseeded = centroids.copy()
    cost = distances[np.arange(points.shape[0]), assignments]
    # Stable sort: among equally distant points the lowest index wins
    farthest_first = np.argsort(-cost, kind="stable")
    for cluster, point_idx in zip(empty, farthest_first, strict=False):
        reseeded[int(cluster)] = points[int(point_idx)]
    return reseeded


def kmeans(
    points: Any,
    k: int,
    *,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
    seed: int = 0,
) -> KMeansResult:
    """Cluster ``(n, d)`` points into exactly *k* centroids.

    Raises:
        ValueError: points is not 2-D, or k is outside ``[1, n]``.
    """
    data = np.asarray(points, dtype=np.float64)
    if data.ndim != 2:
        raise ValueError(f"Expected a 2-D array of points, got {data.ndim} dimensions")
    n_points = data.shape[0]
    if not (1 <= k <= n_points):
        raise ValueError(f"k must be between 1 and {n_points}, got {k}")
    if max_iterations < 1:
        raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")

    rng = np.random.default_rng(seed)
    centroids = data[_kmeans_plus_plus(data, k, rng)].copy()

    converged = False
    iterations = 0
    for iterations in range(1, max_iterations + 1):
        distances = _squared_distances(data, centroids)
        assignments = np.argmin(distances, axis=1)
        counts = np.bincount(assignments, minlength=k)

        updated = centroids.copy()
        for cluster in np.flatnonzero(counts):
            updated[cluster] = data[assignments == cluster].mean(axis=0)

        empty = np.flatnonzero(counts == 0)
        if empty.size:
            log.debug("kmeans.empty_clusters", clusters=empty.tolist(), iteration=iterations)
            updated = _reseed_empty_clusters(data, updated, assignments, distances, empty)

        shift = float(np.sqrt(((updated - centroids) ** 2).sum(axis=1)).max())
        centroids = updated
        if shift <= tolerance:
            converged = True
            break

    final_assignments = np.argmin(_squared_distances(data, centroids), axis=1)
    log.debug(
        "kmeans.finished",
        points=n_points,
        k=k,
        iterations=iterations,
        converged=converged,
    )
    return KMeansResult(
        centroids=centroids.astype(np.float32),
        assignments=final_assignments.astype(np.int64),
        iterations=iterations,
        converged=converged,
    )

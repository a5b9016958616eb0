"""Append-only exact vector index over faiss ``IndexFlatL2``.

Ordinals are assigned in insertion order starting at 0 and never change.
Search is exhaustive, so results are exact: ascending squared Euclidean
distance, ties resolved toward the smaller ordinal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import faiss
import numpy as np
import structlog

from keyplane.config.constants import INVALID_ORDINAL
from keyplane.core.errors import DimensionMismatchError, OutOfRangeError

log = structlog.get_logger()

FloatMatrix = np.ndarray[Any, np.dtype[np.float32]]


@dataclass(frozen=True, slots=True)
class SearchResult:
    """k-NN results: one row per query, k columns.

    Unused slots hold ``INVALID_ORDINAL`` with an infinite distance.
    """

    labels: np.ndarray[Any, np.dtype[np.int64]]
    distances: FloatMatrix


def as_matrix(vectors: Any, dim: int) -> FloatMatrix:
    """Coerce vectors to a C-contiguous float32 ``(n, dim)`` matrix."""
    arr = np.ascontiguousarray(vectors, dtype=np.float32)
    if arr.ndim == 1:
        arr = arr.reshape(1, -1) if arr.size else arr.reshape(0, dim)
    if arr.ndim != 2:
        raise ValueError(f"Expected a 2-D array of vectors, got {arr.ndim} dimensions")
    if arr.shape[0] and arr.shape[1] != dim:
        raise DimensionMismatchError.for_vectors(dim, int(arr.shape[1]))
    return arr


class VectorIndex:
    """Exact L2 index with stable insertion-order ordinals."""

    def __init__(self, dim: int) -> None:
        if dim < 1:
            raise ValueError(f"dim must be >= 1, got {dim}")
        self._dim = dim
        self._index = faiss.IndexFlatL2(dim)

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def count(self) -> int:
        """Number of stored vectors."""
        return int(self._index.ntotal)

    def __len__(self) -> int:
        return self.count

    def add(self, vectors: Any) -> range:
        """Append vectors; returns the ordinals they were assigned."""
        matrix = as_matrix(vectors, self._dim)
        start = self.count
        if matrix.shape[0] == 0:
            return range(start, start)
        self._index.add(matrix)
        log.debug("index.added", added=int(matrix.shape[0]), count=self.count)
        return range(start, self.count)

    def reconstruct(self, ordinal: int) -> FloatMatrix:
        """Return the stored vector at *ordinal*."""
        if ordinal < 0 or ordinal >= self.count:
            raise OutOfRangeError.for_ordinal(int(ordinal), self.count)
        return np.asarray(self._index.reconstruct(int(ordinal)), dtype=np.float32)

    def reconstruct_all(self) -> FloatMatrix:
        """Return every stored vector, in ordinal order."""
        if self.count == 0:
            return np.empty((0, self._dim), dtype=np.float32)
        return np.asarray(self._index.reconstruct_n(0, self.count), dtype=np.float32)

    def search(self, queries: Any, k: int) -> SearchResult:
        """k-nearest-neighbour search for each query row."""
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        matrix = as_matrix(queries, self._dim)
        n_queries = matrix.shape[0]

        labels = np.full((n_queries, k), INVALID_ORDINAL, dtype=np.int64)
        distances = np.full((n_queries, k), np.inf, dtype=np.float32)
        if n_queries == 0 or self.count == 0:
            return SearchResult(labels=labels, distances=distances)

        k_found = min(k, self.count)
        found_d, found_i = self._index.search(matrix, k_found)
        for row in range(n_queries):
            # Stable on (distance, ordinal) so equal distances favour older vectors
            order = np.lexsort((found_i[row], found_d[row]))
            labels[row, :k_found] = found_i[row][order]
            distances[row, :k_found] = found_d[row][order]
        return SearchResult(labels=labels, distances=distances)

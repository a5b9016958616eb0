"""Cluster-based keyword extraction.

Both entry points share one core: cluster a set of embeddings with k-means,
then map every centroid to its nearest stored vector in the corpus index and
report that vector's source token.

- global: the points are every vector in the index.
- local: the points are the embeddings of one text, computed on the fly
  and never added to the index.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
import structlog

from keyplane.config.constants import INVALID_ORDINAL
from keyplane.config.models import KeywordsConfig
from keyplane.embedding.tokenizer import tokenize_text
from keyplane.keywords.kmeans import kmeans

if TYPE_CHECKING:
    from keyplane.embedding.pipeline import ChunkedEmbedder
    from keyplane.embedding.tokenizer import Tokenizer
    from keyplane.index.token_map import TokenMap
    from keyplane.index.vector_index import VectorIndex

log = structlog.get_logger()


class KeywordExtractor:
    """Derives representative tokens from the corpus index."""

    def __init__(
        self,
        index: VectorIndex,
        token_map: TokenMap,
        embedder: ChunkedEmbedder,
        tokenizer: Tokenizer,
        config: KeywordsConfig | None = None,
    ) -> None:
        self._index = index
        self._token_map = token_map
        self._embedder = embedder
        self._tokenizer = tokenizer
        self._config = config or KeywordsConfig()

    @property
    def config(self) -> KeywordsConfig:
        return self._config

    def global_keywords(self) -> list[str]:
        """Representative tokens for everything indexed so far."""
        points = self._index.reconstruct_all()
        keywords = self.keywords_for(points)
        log.info("keywords.global", points=int(points.shape[0]), keywords=len(keywords))
        return keywords

    def local_keywords(self, text: str) -> list[str]:
        """Representative tokens for *text*, matched against the corpus."""
        tokenized = tokenize_text(self._tokenizer, text)
        points = self._embedder.embed(tokenized.ids)
        keywords = self.keywords_for(points)
        log.info("keywords.local", points=int(points.shape[0]), keywords=len(keywords))
        return keywords

    def keywords_for(self, points: Any) -> list[str]:
        """Cluster *points* and resolve each centroid to an indexed token."""
        matrix = np.asarray(points, dtype=np.float32)
        n_points = int(matrix.shape[0]) if matrix.ndim == 2 else 0
        k = min(self._config.max_keywords, n_points)
        if k == 0 or self._index.count == 0:
            return []

        result = kmeans(
            matrix,
            k,
            max_iterations=self._config.max_iterations,
            tolerance=self._config.tolerance,
            seed=self._config.seed,
        )
        nearest = self._index.search(result.centroids, 1)

        keywords: list[str] = []
        for centroid_no, ordinal in enumerate(nearest.labels[:, 0].tolist()):
            token = None if ordinal == INVALID_ORDINAL else self._token_map.get(ordinal)
            if token is None:
                log.debug("keywords.unresolved_centroid", centroid=centroid_no, ordinal=ordinal)
                continue
            keywords.append(token)
        return keywords

"""EmbeddingEngine: owns the corpus and exposes the public operations.

The engine holds its tokenizer, encoder, vector index and token map as
instance state and hands them to the pipeline and extractor; nothing is
process-global.  Index and token-map mutation happens only in
``add_document`` and is serialized by a writer lock so ordinals stay in
insertion order.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import structlog

from keyplane.config.models import KeyplaneConfig
from keyplane.core.logging import document_context
from keyplane.embedding.encoder import Encoder, OnnxEncoder
from keyplane.embedding.pipeline import ChunkedEmbedder
from keyplane.embedding.tokenizer import (
    TokenizedText,
    Tokenizer,
    WordPieceTokenizer,
    tokenize_text,
)
from keyplane.index.token_map import TokenMap
from keyplane.index.vector_index import VectorIndex
from keyplane.keywords.extractor import KeywordExtractor

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class EngineStats:
    """Corpus size summary."""

    documents: int
    vectors: int
    dim: int
    window_size: int

    def to_dict(self) -> dict[str, int]:
        return {
            "documents": self.documents,
            "vectors": self.vectors,
            "dim": self.dim,
            "window_size": self.window_size,
        }


class EmbeddingEngine:
    """Per-token embedding index with cluster-based keyword extraction.

    Construction ingests *documents* in order; if any of them fails the
    exception propagates and no engine is returned.
    """

    def __init__(
        self,
        documents: Iterable[str] = (),
        *,
        tokenizer: Tokenizer,
        encoder: Encoder,
        config: KeyplaneConfig | None = None,
    ) -> None:
        self._config = config or KeyplaneConfig()
        self._tokenizer = tokenizer
        self._encoder = encoder
        self._index = VectorIndex(encoder.dim)
        self._token_map = TokenMap()
        self._embedder = ChunkedEmbedder(encoder)
        self._extractor = KeywordExtractor(
            self._index,
            self._token_map,
            self._embedder,
            tokenizer,
            self._config.keywords,
        )
        self._documents: list[str] = []
        self._write_lock = threading.Lock()

        for text in documents:
            self.add_document(text)

    @classmethod
    def from_config(
        cls,
        documents: Iterable[str] = (),
        config: KeyplaneConfig | None = None,
    ) -> EmbeddingEngine:
        """Build the WordPiece tokenizer and ONNX encoder from config.

        Raises:
            TokenizerUnavailableError: vocabulary missing or unreadable.
            ModelUnavailableError: model missing or unloadable.
        """
        config = config or KeyplaneConfig()
        tokenizer = WordPieceTokenizer.from_config(config.tokenizer)
        encoder = OnnxEncoder.from_config(config.model)
        return cls(documents, tokenizer=tokenizer, encoder=encoder, config=config)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def documents(self) -> tuple[str, ...]:
        return tuple(self._documents)

    @property
    def window_size(self) -> int:
        return self._encoder.window_size

    @property
    def index(self) -> VectorIndex:
        return self._index

    @property
    def token_map(self) -> TokenMap:
        return self._token_map

    @property
    def config(self) -> KeyplaneConfig:
        return self._config

    def stats(self) -> EngineStats:
        return EngineStats(
            documents=len(self._documents),
            vectors=self._index.count,
            dim=self._index.dim,
            window_size=self.window_size,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def tokenize_text(self, text: str) -> TokenizedText:
        """Token ids and token strings for *text*; no side effects."""
        return tokenize_text(self._tokenizer, text)

    def get_embedding(self, token_ids: Sequence[int]) -> np.ndarray[Any, np.dtype[np.float32]]:
        """Embed one window of ids (caller chunks longer input).

        Raises:
            InputTooLongError: more ids than ``window_size``.
        """
        return self._embedder.embed_chunk(token_ids)

    def add_document(self, text: str) -> int:
        """Tokenize, embed and index *text*; returns vectors added."""
        tokenized = self.tokenize_text(text)
        start = time.monotonic()
        with self._write_lock:
            position = len(self._documents)
            with document_context(position):
                added = self._embedder.ingest(tokenized, self._index, self._token_map)
            self._documents.append(text)
        log.info(
            "engine.document_added",
            document=position,
            tokens=len(tokenized),
            vectors=added,
            total_vectors=self._index.count,
            elapsed_ms=round((time.monotonic() - start) * 1000),
        )
        return added

    def global_keywords(self) -> list[str]:
        return self._extractor.global_keywords()

    def local_keywords(self, text: str) -> list[str]:
        return self._extractor.local_keywords(text)

"""Chunked per-token embedding.

Token id sequences are split into consecutive windows of at most
``window_size`` ids.  Each window is zero-padded to the full size, masked so
the encoder ignores padding, and only the rows for real tokens are kept.
Concatenating the windows in order yields exactly one vector per input id.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import numpy as np
import structlog

from keyplane.config.constants import PAD_TOKEN_ID
from keyplane.core.errors import InputTooLongError, InternalError

if TYPE_CHECKING:
    from keyplane.embedding.encoder import Encoder
    from keyplane.embedding.tokenizer import TokenizedText
    from keyplane.index.token_map import TokenMap
    from keyplane.index.vector_index import VectorIndex

log = structlog.get_logger()

FloatMatrix = np.ndarray[Any, np.dtype[np.float32]]


def chunk_ids(token_ids: Sequence[int], window_size: int) -> list[list[int]]:
    """Split ids into order-preserving chunks of at most *window_size*."""
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    return [
        list(token_ids[start : start + window_size])
        for start in range(0, len(token_ids), window_size)
    ]


class ChunkedEmbedder:
    """Runs an encoder over token ids one window at a time."""

    def __init__(self, encoder: Encoder) -> None:
        self._encoder = encoder

    @property
    def window_size(self) -> int:
        return self._encoder.window_size

    @property
    def dim(self) -> int:
        return self._encoder.dim

    def embed_chunk(self, token_ids: Sequence[int]) -> FloatMatrix:
        """Embed a single window; one row per id.

        Raises:
            InputTooLongError: more ids than the encoder window holds.
        """
        window = self.window_size
        n_tokens = len(token_ids)
        if n_tokens > window:
            raise InputTooLongError.for_chunk(n_tokens, window)
        if n_tokens == 0:
            return np.empty((0, self.dim), dtype=np.float32)

        input_ids = np.full(window, PAD_TOKEN_ID, dtype=np.int64)
        attention_mask = np.zeros(window, dtype=np.int64)
        input_ids[:n_tokens] = token_ids
        attention_mask[:n_tokens] = 1

        hidden = np.asarray(self._encoder.predict(input_ids, attention_mask))
        if hidden.ndim != 2 or hidden.shape[0] < n_tokens:
            raise InternalError.unexpected(
                "encoder returned a malformed hidden state",
                shape=list(hidden.shape),
                tokens=n_tokens,
            )
        return np.ascontiguousarray(hidden[:n_tokens], dtype=np.float32)

    def embed(self, token_ids: Sequence[int]) -> FloatMatrix:
        """Embed any number of ids, chunking as needed."""
        chunks = chunk_ids(token_ids, self.window_size)
        if not chunks:
            return np.empty((0, self.dim), dtype=np.float32)
        return np.vstack([self.embed_chunk(chunk) for chunk in chunks])

    def ingest(
        self,
        tokenized: TokenizedText,
        index: VectorIndex,
        token_map: TokenMap,
    ) -> int:
        """Embed *tokenized* and append every vector and its token.

        All windows are embedded before anything is appended, so a failing
        window leaves the index and token map untouched.  Returns the number
        of vectors added.
        """
        window = self.window_size
        start = time.monotonic()
        blocks: list[FloatMatrix] = []
        for chunk_no, ids in enumerate(chunk_ids(tokenized.ids, window)):
            blocks.append(self.embed_chunk(ids))
            log.debug("pipeline.chunk_embedded", chunk=chunk_no, tokens=len(ids))
        if not blocks:
            return 0

        ordinals = index.add(np.vstack(blocks))
        token_map.extend(ordinals, tokenized.tokens)
        log.debug(
            "pipeline.ingested",
            vectors=len(ordinals),
            chunks=len(blocks),
            first_ordinal=ordinals.start,
            elapsed_ms=round((time.monotonic() - start) * 1000),
        )
        return len(ordinals)

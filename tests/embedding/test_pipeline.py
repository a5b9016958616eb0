"""Tests for chunked per-token embedding and ingestion."""

from collections.abc import Callable
from typing import Any

import numpy as np
import pytest

from keyplane.core.errors import DimensionMismatchError, InputTooLongError, InternalError
from keyplane.embedding.pipeline import ChunkedEmbedder, chunk_ids
from keyplane.embedding.tokenizer import TokenizedText
from keyplane.index.token_map import TokenMap
from keyplane.index.vector_index import VectorIndex


class TestChunkIds:
    @pytest.mark.parametrize(
        ("length", "window", "sizes"),
        [
            (0, 4, []),
            (3, 4, [3]),
            (4, 4, [4]),
            (9, 4, [4, 4, 1]),
            (130, 128, [128, 2]),
        ],
    )
    def test_chunk_sizes(self, length: int, window: int, sizes: list[int]) -> None:
        chunks = chunk_ids(list(range(length)), window)
        assert [len(c) for c in chunks] == sizes

    def test_order_preserved(self) -> None:
        ids = list(range(10))
        assert sum(chunk_ids(ids, 3), []) == ids

    def test_rejects_non_positive_window(self) -> None:
        with pytest.raises(ValueError):
            chunk_ids([1, 2], 0)


class TestEmbedChunk:
    """One window in, one row per id out."""

    def test_one_row_per_token(self, make_encoder: Callable[..., Any]) -> None:
        encoder = make_encoder(dim=8, window_size=16)
        out = ChunkedEmbedder(encoder).embed_chunk([5, 6, 7])
        assert out.shape == (3, 8)
        assert out.dtype == np.float32

    def test_padding_and_mask(self, make_encoder: Callable[..., Any]) -> None:
        """Real ids first, zero padding after, mask 1 only over real ids."""
        # Given
        encoder = make_encoder(dim=4, window_size=6)

        # When
        ChunkedEmbedder(encoder).embed_chunk([11, 12, 13])

        # Then
        input_ids, mask = encoder.calls[0]
        assert input_ids.tolist() == [11, 12, 13, 0, 0, 0]
        assert mask.tolist() == [1, 1, 1, 0, 0, 0]

    def test_padded_rows_discarded(self, make_encoder: Callable[..., Any]) -> None:
        encoder = make_encoder(dim=4, window_size=6)
        out = ChunkedEmbedder(encoder).embed_chunk([11, 12])
        assert not np.any(out == encoder.PAD_VALUE)
        np.testing.assert_allclose(out[1], encoder.vector_for(12))

    def test_full_window_accepted(self, make_encoder: Callable[..., Any]) -> None:
        encoder = make_encoder(dim=4, window_size=5)
        out = ChunkedEmbedder(encoder).embed_chunk([1, 2, 3, 4, 5])
        assert out.shape == (5, 4)

    def test_too_long_raises_with_lengths(self, make_encoder: Callable[..., Any]) -> None:
        """window_size + 1 ids is rejected before the encoder runs."""
        encoder = make_encoder(dim=4, window_size=128)

        with pytest.raises(InputTooLongError) as exc_info:
            ChunkedEmbedder(encoder).embed_chunk(list(range(1, 130)))

        assert exc_info.value.actual_length == 129
        assert exc_info.value.max_length == 128
        assert encoder.calls == []

    def test_empty_chunk(self, make_encoder: Callable[..., Any]) -> None:
        encoder = make_encoder(dim=4, window_size=8)
        out = ChunkedEmbedder(encoder).embed_chunk([])
        assert out.shape == (0, 4)
        assert encoder.calls == []

    def test_malformed_hidden_state(self) -> None:
        class ShortEncoder:
            dim = 4
            window_size = 8

            def predict(self, input_ids: Any, attention_mask: Any) -> np.ndarray[Any, Any]:
                return np.zeros((2, 4), dtype=np.float32)

        with pytest.raises(InternalError, match="malformed"):
            ChunkedEmbedder(ShortEncoder()).embed_chunk([1, 2, 3])  # type: ignore[arg-type]


class TestEmbed:
    def test_long_input_chunks_into_windows(self, make_encoder: Callable[..., Any]) -> None:
        """130 ids with a 128 window: two encoder calls, 130 vectors."""
        encoder = make_encoder(dim=4, window_size=128)
        ids = [1000 + i for i in range(130)]

        out = ChunkedEmbedder(encoder).embed(ids)

        assert len(encoder.calls) == 2
        assert out.shape == (130, 4)
        np.testing.assert_allclose(out[129], encoder.vector_for(1129))
        second_mask = encoder.calls[1][1]
        assert int(second_mask.sum()) == 2

    def test_empty(self, make_encoder: Callable[..., Any]) -> None:
        encoder = make_encoder(dim=4, window_size=8)
        assert ChunkedEmbedder(encoder).embed([]).shape == (0, 4)


class TestIngest:
    """ingest appends vectors and tokens in lock step."""

    def test_appends_vectors_and_tokens(self, make_encoder: Callable[..., Any]) -> None:
        # Given
        encoder = make_encoder(dim=4, window_size=2)
        index, token_map = VectorIndex(4), TokenMap()
        tokenized = TokenizedText(ids=[1, 2, 3], tokens=["a", "b", "c"])

        # When
        added = ChunkedEmbedder(encoder).ingest(tokenized, index, token_map)

        # Then
        assert added == 3
        assert index.count == 3
        assert list(token_map) == ["a", "b", "c"]
        np.testing.assert_allclose(index.reconstruct(2), encoder.vector_for(3), atol=1e-6)

    def test_second_ingest_continues_ordinals(self, make_encoder: Callable[..., Any]) -> None:
        encoder = make_encoder(dim=4, window_size=4)
        index, token_map = VectorIndex(4), TokenMap()
        embedder = ChunkedEmbedder(encoder)

        embedder.ingest(TokenizedText(ids=[1, 2], tokens=["a", "b"]), index, token_map)
        embedder.ingest(TokenizedText(ids=[3], tokens=["c"]), index, token_map)

        assert token_map[2] == "c"
        assert index.count == len(token_map) == 3

    def test_empty_document_adds_nothing(self, make_encoder: Callable[..., Any]) -> None:
        encoder = make_encoder(dim=4, window_size=4)
        index, token_map = VectorIndex(4), TokenMap()
        assert ChunkedEmbedder(encoder).ingest(TokenizedText(), index, token_map) == 0
        assert index.count == 0

    def test_failing_window_leaves_index_untouched(
        self, make_encoder: Callable[..., Any]
    ) -> None:
        """A failure in a later window must not leave earlier windows indexed."""
        encoder = make_encoder(dim=4, window_size=2)
        calls = {"n": 0}
        real_predict = encoder.predict

        def flaky(input_ids: Any, attention_mask: Any) -> Any:
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("encoder crashed")
            return real_predict(input_ids, attention_mask)

        encoder.predict = flaky
        index, token_map = VectorIndex(4), TokenMap()
        tokenized = TokenizedText(ids=[1, 2, 3], tokens=["a", "b", "c"])

        with pytest.raises(RuntimeError):
            ChunkedEmbedder(encoder).ingest(tokenized, index, token_map)

        assert index.count == 0
        assert len(token_map) == 0

    def test_wrong_dimension_rejected(self, make_encoder: Callable[..., Any]) -> None:
        encoder = make_encoder(dim=4, window_size=4)
        index, token_map = VectorIndex(6), TokenMap()

        with pytest.raises(DimensionMismatchError):
            ChunkedEmbedder(encoder).ingest(
                TokenizedText(ids=[1], tokens=["a"]), index, token_map
            )
        assert len(token_map) == 0

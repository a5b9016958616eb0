"""Tests for EmbeddingEngine, the public surface over index and keywords."""

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import numpy as np
import pytest

from keyplane.config.models import KeyplaneConfig, KeywordsConfig, ModelConfig, TokenizerConfig
from keyplane.core.errors import (
    InputTooLongError,
    ModelUnavailableError,
    TokenizerUnavailableError,
)
from keyplane.engine import EmbeddingEngine, EngineStats


@pytest.fixture
def make_engine(
    make_tokenizer: Callable[..., Any], make_encoder: Callable[..., Any]
) -> Callable[..., EmbeddingEngine]:
    def _make(
        *documents: str,
        encoder: Any = None,
        max_keywords: int = 5,
    ) -> EmbeddingEngine:
        return EmbeddingEngine(
            documents,
            tokenizer=make_tokenizer(),
            encoder=encoder or make_encoder(dim=8, window_size=4),
            config=KeyplaneConfig(keywords=KeywordsConfig(max_keywords=max_keywords)),
        )

    return _make


class TestConstruction:
    def test_ingests_documents_in_order(self, make_engine: Callable[..., EmbeddingEngine]) -> None:
        engine = make_engine("the cat sat", "the dog ran")

        assert engine.documents == ("the cat sat", "the dog ran")
        assert engine.stats() == EngineStats(documents=2, vectors=6, dim=8, window_size=4)
        assert list(engine.token_map) == ["the", "cat", "sat", "the", "dog", "ran"]

    def test_empty_construction(self, make_engine: Callable[..., EmbeddingEngine]) -> None:
        engine = make_engine()
        assert engine.stats().vectors == 0
        assert engine.documents == ()

    def test_failure_propagates(
        self,
        make_engine: Callable[..., EmbeddingEngine],
        make_encoder: Callable[..., Any],
    ) -> None:
        encoder = make_encoder(dim=8, window_size=4)

        def broken(input_ids: Any, attention_mask: Any) -> Any:
            raise RuntimeError("encoder crashed")

        encoder.predict = broken

        with pytest.raises(RuntimeError, match="encoder crashed"):
            make_engine("the cat sat", encoder=encoder)

    def test_stats_to_dict(self, make_engine: Callable[..., EmbeddingEngine]) -> None:
        assert make_engine("the cat").stats().to_dict() == {
            "documents": 1,
            "vectors": 2,
            "dim": 8,
            "window_size": 4,
        }


class TestFromConfig:
    def test_missing_vocab(self) -> None:
        with pytest.raises(TokenizerUnavailableError):
            EmbeddingEngine.from_config(config=KeyplaneConfig())

    def test_missing_model(self, tmp_path: Path) -> None:
        vocab = tmp_path / "vocab.txt"
        vocab.write_text("[PAD]\n[UNK]\n[CLS]\n[SEP]\nthe\n")
        config = KeyplaneConfig(
            tokenizer=TokenizerConfig(vocab_path=str(vocab)),
            model=ModelConfig(model_path=str(tmp_path / "missing.onnx")),
        )

        with pytest.raises(ModelUnavailableError):
            EmbeddingEngine.from_config(["the"], config)


class TestTokenizeAndEmbed:
    def test_tokenize_text(self, make_engine: Callable[..., EmbeddingEngine]) -> None:
        engine = make_engine()
        result = engine.tokenize_text("The cat")
        assert result.tokens == ["the", "cat"]
        assert result.ids == [1996, 4937]
        assert engine.stats().vectors == 0

    def test_get_embedding(
        self, make_engine: Callable[..., EmbeddingEngine], make_encoder: Callable[..., Any]
    ) -> None:
        encoder = make_encoder(dim=8, window_size=4)
        engine = make_engine(encoder=encoder)

        out = engine.get_embedding([4937, 2938])

        assert out.shape == (2, 8)
        np.testing.assert_allclose(out[0], encoder.vector_for(4937))
        assert engine.stats().vectors == 0

    def test_get_embedding_too_long(self, make_engine: Callable[..., EmbeddingEngine]) -> None:
        with pytest.raises(InputTooLongError) as exc_info:
            make_engine().get_embedding([1, 2, 3, 4, 5])
        assert exc_info.value.actual_length == 5
        assert exc_info.value.max_length == 4


class TestAddDocument:
    def test_growth_is_monotonic(self, make_engine: Callable[..., EmbeddingEngine]) -> None:
        engine = make_engine()
        counts = []
        for text in ["the cat", "sat on the mat", "", "dog"]:
            engine.add_document(text)
            counts.append(engine.stats().vectors)

        assert counts == [2, 6, 6, 7]
        assert len(engine.token_map) == engine.index.count

    def test_returns_vectors_added(self, make_engine: Callable[..., EmbeddingEngine]) -> None:
        engine = make_engine("the cat")
        assert engine.add_document("sat on the mat example text") == 6

    def test_long_document_spans_windows(
        self, make_engine: Callable[..., EmbeddingEngine], make_encoder: Callable[..., Any]
    ) -> None:
        encoder = make_encoder(dim=8, window_size=4)
        engine = make_engine(encoder=encoder)

        engine.add_document("the cat sat on the mat the dog ran")

        assert len(encoder.calls) == 3
        assert engine.stats().vectors == 9

    def test_unknown_words_are_skipped(self, make_engine: Callable[..., EmbeddingEngine]) -> None:
        engine = make_engine()
        assert engine.add_document("zebra") == 0
        assert engine.documents == ("zebra",)

    def test_concurrent_adds_keep_ordinals_aligned(
        self, make_engine: Callable[..., EmbeddingEngine], make_encoder: Callable[..., Any]
    ) -> None:
        """Every ordinal's vector belongs to the token recorded for it."""
        # Given
        encoder = make_encoder(dim=8, window_size=4)
        engine = make_engine(encoder=encoder)
        texts = ["the cat sat", "on the mat", "the dog ran", "example text"] * 5
        vocab = engine._tokenizer.vocab

        # When
        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(engine.add_document, texts))

        # Then
        assert engine.stats().documents == 20
        assert engine.index.count == len(engine.token_map) == 55
        for ordinal, token in enumerate(engine.token_map):
            np.testing.assert_allclose(
                engine.index.reconstruct(ordinal), encoder.vector_for(vocab[token]), atol=1e-6
            )


class TestKeywords:
    def test_empty_corpus(self, make_engine: Callable[..., EmbeddingEngine]) -> None:
        engine = make_engine()
        assert engine.global_keywords() == []
        assert engine.local_keywords("the cat") == []

    def test_document_without_known_tokens(
        self, make_engine: Callable[..., EmbeddingEngine]
    ) -> None:
        """A document that tokenizes to nothing is counted but indexes no vectors."""
        engine = make_engine("zebra giraffe")

        assert engine.stats().documents == 1
        assert engine.stats().vectors == 0
        assert engine.global_keywords() == []
        assert engine.local_keywords("the cat") == []

    def test_global_keywords_small_corpus(
        self, make_engine: Callable[..., EmbeddingEngine]
    ) -> None:
        keywords = make_engine("the cat sat").global_keywords()
        assert len(keywords) == 3
        assert set(keywords) == {"the", "cat", "sat"}

    def test_global_keywords_bounded(self, make_engine: Callable[..., EmbeddingEngine]) -> None:
        engine = make_engine("the cat sat on the mat", "the dog ran", max_keywords=3)
        keywords = engine.global_keywords()
        assert len(keywords) == 3
        assert set(keywords) <= set(engine.token_map)

    def test_local_keywords_do_not_grow_index(
        self, make_engine: Callable[..., EmbeddingEngine]
    ) -> None:
        engine = make_engine("the cat sat on the mat")
        before = engine.stats()

        keywords = engine.local_keywords("the mat")

        assert sorted(keywords) == ["mat", "the"]
        assert engine.stats() == before

    @pytest.mark.parametrize(
        ("document", "expected"),
        [("cat kitty", "cat"), ("kitty cat", "kitty")],
    )
    def test_identical_vectors_resolve_to_first_insertion(
        self,
        make_engine: Callable[..., EmbeddingEngine],
        make_encoder: Callable[..., Any],
        document: str,
        expected: str,
    ) -> None:
        """Two tokens with the same embedding: the earlier ordinal names them."""
        encoder = make_encoder(dim=8, window_size=4, aliases={14433: 4937})
        engine = make_engine(document, encoder=encoder)

        assert engine.global_keywords() == [expected, expected]
        assert engine.local_keywords("kitty") == [expected]

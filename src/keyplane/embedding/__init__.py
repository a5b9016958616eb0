"""Tokenizer/encoder adapters and the chunked embedding pipeline."""

from keyplane.embedding.encoder import Encoder, OnnxEncoder
from keyplane.embedding.pipeline import ChunkedEmbedder, chunk_ids
from keyplane.embedding.tokenizer import (
    TokenizedText,
    Tokenizer,
    WordPieceTokenizer,
    tokenize_text,
)

__all__ = [
    "ChunkedEmbedder",
    "Encoder",
    "OnnxEncoder",
    "TokenizedText",
    "Tokenizer",
    "WordPieceTokenizer",
    "chunk_ids",
    "tokenize_text",
]

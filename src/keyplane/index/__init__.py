"""Vector storage: exact faiss index plus the ordinal -> token map."""

from keyplane.index.token_map import TokenMap
from keyplane.index.vector_index import SearchResult, VectorIndex

__all__ = ["SearchResult", "TokenMap", "VectorIndex"]

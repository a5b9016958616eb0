"""k-means clustering and keyword extraction."""

from keyplane.keywords.extractor import KeywordExtractor
from keyplane.keywords.kmeans import KMeansResult, kmeans

__all__ = ["KMeansResult", "KeywordExtractor", "kmeans"]

"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
For configurable values, see models.py (ModelConfig, KeywordsConfig, etc.).
"""

# =============================================================================
# Keyword Extraction Limits
# =============================================================================

KEYWORDS_MAX_LIMIT = 64
"""Hard cap on clusters (and therefore keywords) per query."""

# =============================================================================
# Vector Index
# =============================================================================

INVALID_ORDINAL = -1
"""Label used for search slots that have no stored vector behind them."""

# =============================================================================
# Encoder Input
# =============================================================================

PAD_TOKEN_ID = 0
"""Id written to padded positions of an encoder window."""

ENCODER_INPUT_NAMES = ("input_ids", "attention_mask")
"""Input names of a BERT-family ONNX export, in feed order."""

"""Config module exports."""

from keyplane.config.loader import load_config
from keyplane.config.models import (
    KeyplaneConfig,
    KeywordsConfig,
    LoggingConfig,
    ModelConfig,
    TokenizerConfig,
)

__all__ = [
    "load_config",
    "KeyplaneConfig",
    "KeywordsConfig",
    "LoggingConfig",
    "ModelConfig",
    "TokenizerConfig",
]

"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (KEYPLANE__SECTION__KEY)
3. YAML config file (~/.config/keyplane/config.yaml or an explicit path)
4. Built-in defaults (this file)

Environment Variable Format:
    KEYPLANE__<SECTION>__<KEY>=<VALUE>

Examples:
    KEYPLANE__LOGGING__LEVEL=DEBUG
    KEYPLANE__MODEL__MODEL_PATH=/models/distilbert.onnx
    KEYPLANE__TOKENIZER__VOCAB_PATH=/models/vocab.txt
    KEYPLANE__KEYWORDS__SEED=7
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from keyplane.config.constants import KEYWORDS_MAX_LIMIT

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        KEYPLANE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every embedded chunk.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ModelConfig(BaseModel):
    """Encoder model configuration.

    Env vars:
        KEYPLANE__MODEL__MODEL_PATH: Path to the ONNX encoder export
        KEYPLANE__MODEL__WINDOW_SIZE: Tokens per encoder call
        KEYPLANE__MODEL__EMBEDDING_DIM: Hidden size of the encoder
        KEYPLANE__MODEL__THREADS: Intra-op threads for onnxruntime
    """

    model_config = ConfigDict(protected_namespaces=())

    model_path: str | None = Field(
        default=None,
        description="ONNX export of a BERT-family encoder with input_ids/attention_mask inputs.",
    )
    window_size: int = Field(
        default=128,
        description="Fixed sequence length the encoder was exported with.",
    )
    embedding_dim: int = Field(
        default=768,
        description="Width of the encoder's last hidden state.",
    )
    threads: int | None = Field(
        default=None,
        description="onnxruntime intra-op threads. Defaults to half the CPU count.",
    )

    @field_validator("window_size", "embedding_dim")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Must be >= 1, got {v}")
        return v


class TokenizerConfig(BaseModel):
    """WordPiece tokenizer configuration.

    Env vars:
        KEYPLANE__TOKENIZER__VOCAB_PATH: Path to a BERT vocab.txt
        KEYPLANE__TOKENIZER__LOWERCASE: Lowercase before segmentation
        KEYPLANE__TOKENIZER__HANDLE_CHINESE_CHARS: Split CJK characters individually
    """

    vocab_path: str | None = None
    lowercase: bool = True
    handle_chinese_chars: bool = True
    bos_token: str = "[CLS]"
    eos_token: str = "[SEP]"
    unk_token: str = "[UNK]"


class KeywordsConfig(BaseModel):
    """Keyword extraction / k-means configuration.

    Env vars:
        KEYPLANE__KEYWORDS__MAX_KEYWORDS: Upper bound on clusters per query
        KEYPLANE__KEYWORDS__MAX_ITERATIONS: k-means iteration cap
        KEYPLANE__KEYWORDS__TOLERANCE: Stop once no centroid moves further than this
        KEYPLANE__KEYWORDS__SEED: k-means++ seed, shared by local and global queries
    """

    max_keywords: int = Field(default=5, description="k = min(max_keywords, points).")
    max_iterations: int = Field(default=100)
    tolerance: float = Field(default=1e-4)
    seed: int = Field(default=0, description="Seed for k-means++ initialization.")

    @field_validator("max_keywords")
    @classmethod
    def validate_max_keywords(cls, v: int) -> int:
        if not (1 <= v <= KEYWORDS_MAX_LIMIT):
            raise ValueError(f"max_keywords must be 1-{KEYWORDS_MAX_LIMIT}, got {v}")
        return v

    @field_validator("max_iterations")
    @classmethod
    def validate_max_iterations(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_iterations must be >= 1, got {v}")
        return v

    @field_validator("tolerance")
    @classmethod
    def validate_tolerance(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"tolerance must be >= 0, got {v}")
        return v


class KeyplaneConfig(BaseModel):
    """Root configuration for keyplane.

    All settings can be configured via:
    1. Environment variables: KEYPLANE__SECTION__KEY
    2. A YAML config file
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    tokenizer: TokenizerConfig = Field(default_factory=TokenizerConfig)
    keywords: KeywordsConfig = Field(default_factory=KeywordsConfig)

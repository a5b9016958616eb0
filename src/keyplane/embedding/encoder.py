"""Transformer encoder adapter.

The encoder takes one fixed-size window of token ids plus an attention mask
and returns the last hidden state: one D-dimensional vector per window
position.  ``OnnxEncoder`` runs a BERT-family ONNX export (e.g. DistilBERT,
768-dim, 128-token window) through onnxruntime.
"""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np
import structlog

from keyplane.config.constants import ENCODER_INPUT_NAMES
from keyplane.core.errors import ModelUnavailableError

if TYPE_CHECKING:
    from keyplane.config.models import ModelConfig

log = structlog.get_logger()


class Encoder(Protocol):
    """What the embedding pipeline needs from a model."""

    @property
    def dim(self) -> int: ...

    @property
    def window_size(self) -> int: ...

    def predict(
        self,
        input_ids: np.ndarray[Any, np.dtype[np.int64]],
        attention_mask: np.ndarray[Any, np.dtype[np.int64]],
    ) -> np.ndarray[Any, np.dtype[np.float32]]:
        """Return a (window_size, dim) hidden-state matrix."""
        ...


def _detect_providers() -> list[str]:
    """Detect available ONNX Runtime execution providers."""
    try:
        import onnxruntime as ort

        available = set(ort.get_available_providers())
    except Exception:
        return []

    providers: list[str] = []
    if "CUDAExecutionProvider" in available:
        providers.append("CUDAExecutionProvider")
    providers.append("CPUExecutionProvider")
    return providers


class OnnxEncoder:
    """Encoder backed by an onnxruntime ``InferenceSession``."""

    def __init__(
        self,
        model_path: str | Path,
        *,
        window_size: int = 128,
        dim: int = 768,
        threads: int | None = None,
        providers: list[str] | None = None,
    ) -> None:
        path = Path(model_path).expanduser()
        if not path.is_file():
            raise ModelUnavailableError.load_failed(str(path), "model file not found")

        self._window_size = window_size
        self._dim = dim
        self._path = path

        try:
            import onnxruntime as ort

            options = ort.SessionOptions()
            options.intra_op_num_threads = threads or max(1, (os.cpu_count() or 4) // 2)
            providers = providers or _detect_providers() or ["CPUExecutionProvider"]
            start = time.monotonic()
            self._session = ort.InferenceSession(
                str(path), sess_options=options, providers=providers
            )
            elapsed = time.monotonic() - start
        except ImportError as e:
            raise ModelUnavailableError.load_failed(
                str(path), "onnxruntime is not installed"
            ) from e
        except Exception as e:
            raise ModelUnavailableError.load_failed(str(path), str(e)) from e

        input_names = {node.name for node in self._session.get_inputs()}
        missing = [name for name in ENCODER_INPUT_NAMES if name not in input_names]
        if missing:
            raise ModelUnavailableError.load_failed(
                str(path), f"model is missing inputs: {', '.join(missing)}"
            )

        outputs = self._session.get_outputs()
        if not outputs:
            raise ModelUnavailableError.load_failed(str(path), "model has no outputs")
        # Symbolic dims (e.g. "hidden") are left to predict
        width = outputs[0].shape[-1] if outputs[0].shape else None
        if isinstance(width, int) and width != dim:
            raise ModelUnavailableError.load_failed(
                str(path), f"model output width {width} does not match embedding_dim {dim}"
            )

        log.info(
            "encoder.loaded",
            model=str(path),
            providers=providers,
            window_size=window_size,
            dim=dim,
            elapsed_s=round(elapsed, 2),
        )

    @classmethod
    def from_config(cls, config: ModelConfig) -> OnnxEncoder:
        if config.model_path is None:
            raise ModelUnavailableError.load_failed(None, "no model_path configured")
        return cls(
            config.model_path,
            window_size=config.window_size,
            dim=config.embedding_dim,
            threads=config.threads,
        )

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def window_size(self) -> int:
        return self._window_size

    def predict(
        self,
        input_ids: np.ndarray[Any, np.dtype[np.int64]],
        attention_mask: np.ndarray[Any, np.dtype[np.int64]],
    ) -> np.ndarray[Any, np.dtype[np.float32]]:
        feeds = {
            "input_ids": input_ids.reshape(1, -1).astype(np.int64),
            "attention_mask": attention_mask.reshape(1, -1).astype(np.int64),
        }
        # First output is last_hidden_state: (1, window, dim)
        hidden = self._session.run(None, feeds)[0]
        if hidden.shape[-1] != self._dim:
            raise ModelUnavailableError.load_failed(
                str(self._path),
                f"model output width {hidden.shape[-1]} does not match embedding_dim {self._dim}",
            )
        return np.asarray(hidden[0], dtype=np.float32)

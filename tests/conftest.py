"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages, and
provides a whitespace tokenizer plus a deterministic fake encoder so tests
never need a real vocabulary or ONNX model.
"""

import sys
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import numpy as np
import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local keyplane package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of keyplane modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("keyplane"):
        del sys.modules[module_name]


DEFAULT_VOCAB: dict[str, int] = {
    "[PAD]": 0,
    "[UNK]": 100,
    "[CLS]": 101,
    "[SEP]": 102,
    "the": 1996,
    "cat": 4937,
    "sat": 2938,
    "on": 2006,
    "mat": 13523,
    "dog": 3899,
    "ran": 2743,
    "kitty": 14433,
    "example": 2742,
    "text": 3793,
}


class WhitespaceTokenizer:
    """Lowercases and splits on whitespace; unknown words get no id."""

    def __init__(self, vocab: Mapping[str, int] | None = None) -> None:
        self.vocab = dict(vocab or DEFAULT_VOCAB)
        self.calls: list[str] = []

    def tokenize(self, text: str) -> list[str]:
        self.calls.append(text)
        return text.lower().split()

    def token_to_id(self, token: str) -> int | None:
        return self.vocab.get(token)


class FakeEncoder:
    """Deterministic stand-in for a transformer encoder.

    Each active position gets a unit vector seeded by its token id (or by
    ``aliases[token_id]``, to force two ids onto one vector).  Padded
    positions get a large constant so leaking padding is easy to spot.
    """

    PAD_VALUE = 999.0

    def __init__(
        self,
        *,
        dim: int = 8,
        window_size: int = 128,
        aliases: Mapping[int, int] | None = None,
    ) -> None:
        self._dim = dim
        self._window_size = window_size
        self.aliases = dict(aliases or {})
        self.calls: list[tuple[np.ndarray[Any, Any], np.ndarray[Any, Any]]] = []

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def window_size(self) -> int:
        return self._window_size

    def vector_for(self, token_id: int) -> np.ndarray[Any, np.dtype[np.float32]]:
        seed = self.aliases.get(token_id, token_id)
        rng = np.random.RandomState(seed)
        vec = rng.randn(self._dim).astype(np.float32)
        return vec / np.linalg.norm(vec)

    def predict(
        self,
        input_ids: np.ndarray[Any, Any],
        attention_mask: np.ndarray[Any, Any],
    ) -> np.ndarray[Any, np.dtype[np.float32]]:
        assert input_ids.shape == (self._window_size,)
        assert attention_mask.shape == (self._window_size,)
        self.calls.append((input_ids.copy(), attention_mask.copy()))
        hidden = np.full((self._window_size, self._dim), self.PAD_VALUE, dtype=np.float32)
        for pos in np.flatnonzero(attention_mask):
            hidden[pos] = self.vector_for(int(input_ids[pos]))
        return hidden


@pytest.fixture
def make_tokenizer() -> Callable[..., WhitespaceTokenizer]:
    """Factory for whitespace tokenizers over an optional vocabulary."""
    return WhitespaceTokenizer


@pytest.fixture
def make_encoder() -> Callable[..., FakeEncoder]:
    """Factory for deterministic fake encoders."""
    return FakeEncoder


@pytest.fixture
def tokenizer() -> WhitespaceTokenizer:
    return WhitespaceTokenizer()


@pytest.fixture
def encoder() -> FakeEncoder:
    return FakeEncoder()

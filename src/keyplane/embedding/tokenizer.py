"""WordPiece tokenizer adapter.

Wraps the HuggingFace ``tokenizers`` BERT WordPiece pipeline behind the two
calls the rest of keyplane needs: ``tokenize`` (text -> subword strings) and
``token_to_id`` (subword -> vocabulary index or None).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import structlog

from keyplane.core.errors import TokenizerUnavailableError

if TYPE_CHECKING:
    from keyplane.config.models import TokenizerConfig

log = structlog.get_logger()


class Tokenizer(Protocol):
    """What the engine needs from a tokenizer."""

    def tokenize(self, text: str) -> list[str]: ...

    def token_to_id(self, token: str) -> int | None: ...


@dataclass(frozen=True, slots=True)
class TokenizedText:
    """Parallel token ids and token strings for one text."""

    ids: list[int] = field(default_factory=list)
    tokens: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.ids)


def tokenize_text(tokenizer: Tokenizer, text: str) -> TokenizedText:
    """Tokenize *text*, dropping subwords that have no vocabulary id."""
    ids: list[int] = []
    tokens: list[str] = []
    for token in tokenizer.tokenize(text):
        token_id = tokenizer.token_to_id(token)
        if token_id is None:
            continue
        ids.append(token_id)
        tokens.append(token)
    return TokenizedText(ids=ids, tokens=tokens)


class WordPieceTokenizer:
    """BERT WordPiece tokenizer over an explicit vocabulary.

    ``bos_token``/``eos_token`` must be present in the vocabulary; they are
    registered as special tokens but never emitted by ``tokenize``.

    A vocabulary without ``unk_token`` is accepted: out-of-vocabulary words
    still come back from ``tokenize`` as ``unk_token``, but ``token_to_id``
    returns None for it, so ``tokenize_text`` drops them.
    """

    def __init__(
        self,
        vocab: Mapping[str, int] | str | Path,
        *,
        lowercase: bool = True,
        handle_chinese_chars: bool = True,
        bos_token: str = "[CLS]",
        eos_token: str = "[SEP]",
        unk_token: str = "[UNK]",
    ) -> None:
        from tokenizers import BertWordPieceTokenizer
        from tokenizers.models import WordPiece

        source = str(vocab) if isinstance(vocab, (str, Path)) else "<mapping>"
        if isinstance(vocab, (str, Path)) and not Path(vocab).is_file():
            raise TokenizerUnavailableError.load_failed(source, "vocabulary file not found")

        try:
            entries = WordPiece.read_file(str(vocab)) if isinstance(vocab, (str, Path)) else vocab
            vocab_map = {str(token): int(token_id) for token, token_id in entries.items()}
        except Exception as e:
            raise TokenizerUnavailableError.load_failed(source, str(e)) from e

        self._vocab_size = len(vocab_map)
        # WordPiece needs an id for unk_token; give it one outside the vocabulary
        self._unk_unmapped = unk_token not in vocab_map
        if self._unk_unmapped:
            vocab_map[unk_token] = max(vocab_map.values(), default=-1) + 1

        try:
            self._tokenizer = BertWordPieceTokenizer(
                vocab_map,
                unk_token=unk_token,
                sep_token=eos_token,
                cls_token=bos_token,
                handle_chinese_chars=handle_chinese_chars,
                lowercase=lowercase,
            )
        except Exception as e:
            raise TokenizerUnavailableError.load_failed(source, str(e)) from e

        self.bos_token = bos_token
        self.eos_token = eos_token
        self.unk_token = unk_token
        log.debug(
            "tokenizer.loaded",
            source=source,
            vocab_size=self.vocab_size,
            unk_in_vocab=not self._unk_unmapped,
            handle_chinese_chars=handle_chinese_chars,
        )

    @classmethod
    def from_config(cls, config: TokenizerConfig) -> WordPieceTokenizer:
        if config.vocab_path is None:
            raise TokenizerUnavailableError.load_failed(None, "no vocab_path configured")
        return cls(
            Path(config.vocab_path).expanduser(),
            lowercase=config.lowercase,
            handle_chinese_chars=config.handle_chinese_chars,
            bos_token=config.bos_token,
            eos_token=config.eos_token,
            unk_token=config.unk_token,
        )

    @property
    def vocab_size(self) -> int:
        return self._vocab_size

    def tokenize(self, text: str) -> list[str]:
        if not text:
            return []
        encoding = self._tokenizer.encode(text, add_special_tokens=False)
        return list(encoding.tokens)

    def token_to_id(self, token: str) -> int | None:
        if self._unk_unmapped and token == self.unk_token:
            return None
        token_id = self._tokenizer.token_to_id(token)
        return None if token_id is None else int(token_id)

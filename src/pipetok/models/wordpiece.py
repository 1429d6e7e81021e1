"""Greedy longest-prefix WordPiece model."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from pipetok.errors import BuildError, VocabularyError
from pipetok.models.base import Model, Token, output_path
from pipetok.utils.logging import get_logger

if TYPE_CHECKING:
    from pipetok.models.bpe import BPE

logger = get_logger(__name__)


class WordPiece(Model):
    type_name = "WordPiece"

    def __init__(
        self,
        vocab: dict[str, int] | None = None,
        unk_token: str = "[UNK]",
        continuing_subword_prefix: str = "##",
        max_input_chars_per_word: int = 100,
    ) -> None:
        self._vocab: dict[str, int] = dict(vocab or {})
        self._vocab_r: dict[int, str] = {}
        for token, token_id in self._vocab.items():
            if token_id in self._vocab_r:
                raise BuildError(
                    f"Tokens {self._vocab_r[token_id]!r} and {token!r} share the id {token_id}"
                )
            self._vocab_r[token_id] = token
        if max_input_chars_per_word < 1:
            raise BuildError("max_input_chars_per_word must be positive")
        self.unk_token = unk_token
        self.continuing_subword_prefix = continuing_subword_prefix
        self.max_input_chars_per_word = max_input_chars_per_word
        logger.debug("Built WordPiece with %d tokens", len(self._vocab))

    @classmethod
    def from_bpe(cls, bpe: "BPE", **kwargs: Any) -> "WordPiece":
        """Reuse a BPE vocabulary for a WordPiece model."""
        if bpe.unk_token is not None:
            kwargs.setdefault("unk_token", bpe.unk_token)
        if bpe.continuing_subword_prefix is not None:
            kwargs.setdefault("continuing_subword_prefix", bpe.continuing_subword_prefix)
        return cls(vocab=bpe.get_vocab(), **kwargs)

    def token_to_id(self, token: str) -> int | None:
        return self._vocab.get(token)

    def id_to_token(self, token_id: int) -> str | None:
        return self._vocab_r.get(token_id)

    def get_vocab(self) -> dict[str, int]:
        return dict(self._vocab)

    def get_vocab_size(self) -> int:
        return len(self._vocab)

    def _unk(self, length: int) -> list[Token]:
        unk_id = self._vocab.get(self.unk_token)
        if unk_id is None:
            raise VocabularyError(f"unk_token {self.unk_token!r} is missing from the vocabulary", self.unk_token)
        return [Token(unk_id, self.unk_token, (0, length))]

    def tokenize(self, word: str) -> list[Token]:
        if not word:
            return []
        if len(word) > self.max_input_chars_per_word:
            return self._unk(len(word))

        tokens: list[Token] = []
        start = 0
        while start < len(word):
            end = len(word)
            match: Token | None = None
            while start < end:
                piece = word[start:end]
                if start > 0:
                    piece = self.continuing_subword_prefix + piece
                token_id = self._vocab.get(piece)
                if token_id is not None:
                    match = Token(token_id, piece, (start, end))
                    break
                end -= 1
            if match is None:
                return self._unk(len(word))
            tokens.append(match)
            start = end
        return tokens

    def save(self, folder: str | Path, prefix: str | None = None) -> list[Path]:
        """Write ``vocab.txt``, one token per line in id order."""
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(f"{folder} is not a directory")
        vocab_path = output_path(folder, prefix, "vocab.txt")
        lines = [token for _id, token in sorted(self._vocab_r.items())]
        vocab_path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        return [vocab_path]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "vocab": dict(self._vocab),
            "unk_token": self.unk_token,
            "continuing_subword_prefix": self.continuing_subword_prefix,
            "max_input_chars_per_word": self.max_input_chars_per_word,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "WordPiece":
        return cls(**{k: v for k, v in payload.items() if k != "type"})

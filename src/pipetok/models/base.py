"""Model interface and the Token it produces."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pipetok.normalized import Offsets


@dataclass(frozen=True)
class Token:
    id: int
    value: str
    offsets: Offsets


class Model:
    """Maps one pre-tokenized word to tokens; offsets are relative to the word."""

    type_name = ""

    def tokenize(self, word: str) -> list[Token]:
        raise NotImplementedError

    def token_to_id(self, token: str) -> int | None:
        raise NotImplementedError

    def id_to_token(self, token_id: int) -> str | None:
        raise NotImplementedError

    def get_vocab(self) -> dict[str, int]:
        raise NotImplementedError

    def get_vocab_size(self) -> int:
        return len(self.get_vocab())

    def save(self, folder: str | Path, prefix: str | None = None) -> list[Path]:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.type_name}(vocab_size={self.get_vocab_size()})"


def output_path(folder: str | Path, prefix: str | None, filename: str) -> Path:
    name = f"{prefix}-{filename}" if prefix else filename
    return Path(folder) / name

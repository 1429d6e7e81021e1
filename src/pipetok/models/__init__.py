"""Model family: turns pre-tokenized words into vocabulary tokens."""

from __future__ import annotations

from typing import Any

from pipetok.errors import BuildError
from pipetok.models.base import Model, Token
from pipetok.models.bpe import BPE
from pipetok.models.cache import LRUCache
from pipetok.models.wordpiece import WordPiece

_REGISTRY: dict[str, type[Model]] = {BPE.type_name: BPE, WordPiece.type_name: WordPiece}


def from_dict(payload: dict[str, Any]) -> Model:
    cls = _REGISTRY.get(payload.get("type"))
    if cls is None:
        raise BuildError(f"Unknown model type: {payload.get('type')!r}")
    return cls.from_dict(payload)


__all__ = ["BPE", "LRUCache", "Model", "Token", "WordPiece", "from_dict"]

"""Tokens added on top of a model vocabulary.

Added tokens are matched in the raw input before normalization and are never
split by the rest of the pipeline.
"""

from __future__ import annotations

from collections.abc import Iterable
from itertools import chain
from dataclasses import asdict, dataclass
from typing import Any

import regex

from pipetok.models.base import Model
from pipetok.normalized import Offsets
from pipetok.utils.logging import get_logger

logger = get_logger(__name__)

# (text, offsets into the input, id when the piece is an added token)
Piece = tuple[str, Offsets, int | None]


@dataclass(frozen=True)
class AddedToken:
    content: str
    single_word: bool = False
    special: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "AddedToken":
        return AddedToken(**d)


def _as_added_token(token: str | AddedToken, special: bool) -> AddedToken:
    if isinstance(token, AddedToken):
        if special and not token.special:
            return AddedToken(token.content, token.single_word, True)
        return token
    return AddedToken(str(token), special=special)


class AddedVocabulary:
    def __init__(self) -> None:
        self._added: list[AddedToken] = []
        self._ids: dict[str, int] = {}
        self._tokens: dict[int, str] = {}
        self._n_new = 0
        self._specials: set[str] = set()
        self._pattern: regex.Pattern | None = None

    def __len__(self) -> int:
        """Number of ids created beyond the model vocabulary."""
        return self._n_new

    @property
    def tokens(self) -> list[AddedToken]:
        return list(self._added)

    def token_to_id(self, token: str) -> int | None:
        return self._ids.get(token)

    def id_to_token(self, token_id: int) -> str | None:
        return self._tokens.get(token_id)

    def is_special(self, token: str) -> bool:
        return token in self._specials

    def get_vocab(self) -> dict[str, int]:
        return dict(self._ids)

    def add(self, tokens: Iterable[str | AddedToken], model: Model, special: bool = False) -> int:
        """Register tokens and return how many new ids were created."""
        created = 0
        next_id: int | None = None
        for raw in tokens:
            token = _as_added_token(raw, special)
            if not token.content:
                continue
            if token.special:
                self._specials.add(token.content)
            if token.content in self._ids:
                if token.special:
                    self._added = [t if t.content != token.content else token for t in self._added]
                continue

            token_id = model.token_to_id(token.content)
            if token_id is None:
                if next_id is None:
                    # past every id in use, so gaps in the model vocabulary stay free
                    next_id = max(chain(model.get_vocab().values(), self._tokens), default=-1) + 1
                token_id = next_id
                next_id += 1
                self._n_new += 1
                created += 1
            self._added.append(token)
            self._ids[token.content] = token_id
            self._tokens[token_id] = token.content

        self._pattern = self._compile()
        logger.debug("Added %d new tokens (%d registered)", created, len(self._added))
        return created

    def _compile(self) -> regex.Pattern | None:
        if not self._added:
            return None
        alternatives = []
        # longest first so that overlapping tokens prefer the longer match
        for token in sorted(self._added, key=lambda t: len(t.content), reverse=True):
            escaped = regex.escape(token.content)
            if token.single_word:
                escaped = rf"(?<!\w){escaped}(?!\w)"
            alternatives.append(escaped)
        return regex.compile("|".join(alternatives))

    def split(self, text: str) -> list[Piece]:
        """Cut `text` around added tokens.

        Matched tokens carry their id; the pieces in between carry ``None`` and
        still need to go through the pipeline.
        """
        if self._pattern is None:
            return [(text, (0, len(text)), None)] if text else []

        pieces: list[Piece] = []
        last = 0
        for match in self._pattern.finditer(text):
            start, end = match.span()
            if start > last:
                pieces.append((text[last:start], (last, start), None))
            content = match.group(0)
            pieces.append((content, (start, end), self._ids[content]))
            last = end
        if last < len(text):
            pieces.append((text[last:], (last, len(text)), None))
        return pieces

    def to_list(self) -> list[dict[str, Any]]:
        return [token.to_dict() for token in self._added]

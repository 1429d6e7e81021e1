"""Byte-pair encoding model."""

from __future__ import annotations

import heapq
import random
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pipetok.errors import BuildError, VocabularyError
from pipetok.models.base import Model, Token, output_path
from pipetok.models.cache import DEFAULT_CACHE_CAPACITY, LRUCache
from pipetok.utils.logging import get_logger
from pipetok.utils.serialization import write_json

if TYPE_CHECKING:
    from pipetok.models.wordpiece import WordPiece

logger = get_logger(__name__)

MERGES_HEADER = "#version: 0.2"

# (id, start, end) for every symbol of a merged word
_Symbols = tuple[tuple[int, int, int], ...]


class BPE(Model):
    """Merge-rank BPE with an optional dropout and a per-model word cache.

    Merges are applied lowest rank first; among equal ranks the leftmost pair
    wins. With ``dropout`` set, each eligible merge is skipped with that
    probability and the cache is bypassed, so cached results always match a
    dropout-free computation.
    """

    type_name = "BPE"

    def __init__(
        self,
        vocab: dict[str, int] | None = None,
        merges: Iterable[tuple[str, str]] | None = None,
        cache_capacity: int = DEFAULT_CACHE_CAPACITY,
        dropout: float | None = None,
        unk_token: str | None = None,
        continuing_subword_prefix: str | None = None,
        end_of_word_suffix: str | None = None,
    ) -> None:
        self._vocab: dict[str, int] = dict(vocab or {})
        self._vocab_r: dict[int, str] = {}
        for token, token_id in self._vocab.items():
            if token_id in self._vocab_r:
                raise BuildError(
                    f"Tokens {self._vocab_r[token_id]!r} and {token!r} share the id {token_id}"
                )
            self._vocab_r[token_id] = token

        if dropout is not None and not 0.0 <= dropout <= 1.0:
            raise BuildError(f"dropout must be between 0 and 1, got {dropout}")
        if unk_token is not None and unk_token not in self._vocab:
            raise BuildError(f"unk_token {unk_token!r} is not in the vocabulary")

        self.dropout = dropout or None
        self.unk_token = unk_token
        self.continuing_subword_prefix = continuing_subword_prefix
        self.end_of_word_suffix = end_of_word_suffix
        self.cache_capacity = cache_capacity

        self._merges: list[tuple[str, str]] = []
        self._merge_map: dict[tuple[int, int], tuple[int, int]] = {}
        for rank, pair in enumerate(merges or []):
            self._add_merge(rank, pair)

        self._cache: LRUCache[str, _Symbols] = LRUCache(cache_capacity)
        logger.debug(
            "Built BPE with %d tokens, %d merges, cache capacity %d",
            len(self._vocab),
            len(self._merges),
            cache_capacity,
        )

    def _add_merge(self, rank: int, pair: tuple[str, str]) -> None:
        try:
            a, b = pair
        except (TypeError, ValueError) as exc:
            raise BuildError(f"Merge #{rank} is not a pair of tokens: {pair!r}") from exc
        if a not in self._vocab:
            raise BuildError(f"Merge #{rank} references unknown token {a!r}")
        if b not in self._vocab:
            raise BuildError(f"Merge #{rank} references unknown token {b!r}")
        prefix = self.continuing_subword_prefix
        tail = b[len(prefix) :] if prefix and b.startswith(prefix) else b
        new_token = a + tail
        new_id = self._vocab.get(new_token)
        if new_id is None:
            raise BuildError(f"Merge #{rank} produces {new_token!r}, which is not in the vocabulary")
        self._merges.append((a, b))
        self._merge_map.setdefault((self._vocab[a], self._vocab[b]), (rank, new_id))

    # -- construction helpers ---------------------------------------------

    @classmethod
    def from_wordpiece(cls, wordpiece: "WordPiece", **kwargs: Any) -> "BPE":
        """Reuse a WordPiece vocabulary (no merges) for a BPE model."""
        kwargs.setdefault("unk_token", wordpiece.unk_token)
        kwargs.setdefault("continuing_subword_prefix", wordpiece.continuing_subword_prefix)
        return cls(vocab=wordpiece.get_vocab(), merges=[], **kwargs)

    # -- vocabulary ---------------------------------------------------------

    def token_to_id(self, token: str) -> int | None:
        return self._vocab.get(token)

    def id_to_token(self, token_id: int) -> str | None:
        return self._vocab_r.get(token_id)

    def get_vocab(self) -> dict[str, int]:
        return dict(self._vocab)

    def get_vocab_size(self) -> int:
        return len(self._vocab)

    @property
    def merges(self) -> list[tuple[str, str]]:
        return list(self._merges)

    def clear_cache(self) -> None:
        self._cache.clear()

    # -- tokenization -------------------------------------------------------

    def tokenize(self, word: str) -> list[Token]:
        if not word:
            return []
        if self.dropout is None:
            symbols = self._cache.get(word)
            if symbols is None:
                symbols = self._cache.set(word, self._merge_word(word))
        else:
            symbols = self._merge_word(word)
        return [Token(token_id, self._vocab_r[token_id], (start, end)) for token_id, start, end in symbols]

    def _symbol_id(self, symbol: str) -> int:
        token_id = self._vocab.get(symbol)
        if token_id is not None:
            return token_id
        if self.unk_token is not None:
            return self._vocab[self.unk_token]
        raise VocabularyError(f"Symbol {symbol!r} is not in the vocabulary and no unk_token is set", symbol)

    def _merge_word(self, word: str) -> _Symbols:
        ids: list[int] = []
        last = len(word) - 1
        for i, c in enumerate(word):
            symbol = c
            if i > 0 and self.continuing_subword_prefix:
                symbol = self.continuing_subword_prefix + symbol
            if i == last and self.end_of_word_suffix:
                symbol = symbol + self.end_of_word_suffix
            ids.append(self._symbol_id(symbol))

        n = len(ids)
        starts = list(range(n))
        ends = list(range(1, n + 1))
        prev = list(range(-1, n - 1))
        nxt = [i + 1 if i + 1 < n else -1 for i in range(n)]
        alive = [True] * n

        merges = self._merge_map
        queue: list[tuple[int, int, int]] = []
        for pos in range(n - 1):
            merge = merges.get((ids[pos], ids[pos + 1]))
            if merge is not None:
                queue.append((merge[0], pos, merge[1]))
        heapq.heapify(queue)

        skipped: list[tuple[int, int, int]] = []
        while queue:
            top = heapq.heappop(queue)
            if self.dropout is not None and random.random() < self.dropout:
                skipped.append(top)
                continue
            for item in skipped:
                heapq.heappush(queue, item)
            skipped.clear()

            _rank, pos, new_id = top
            right = nxt[pos]
            if not alive[pos] or right == -1:
                continue
            # stale entry: the pair at `pos` changed since it was queued
            current = merges.get((ids[pos], ids[right]))
            if current is None or current[1] != new_id:
                continue

            ids[pos] = new_id
            ends[pos] = ends[right]
            alive[right] = False
            nxt[pos] = nxt[right]
            if nxt[pos] != -1:
                prev[nxt[pos]] = pos

            if prev[pos] != -1:
                merge = merges.get((ids[prev[pos]], new_id))
                if merge is not None:
                    heapq.heappush(queue, (merge[0], prev[pos], merge[1]))
            if nxt[pos] != -1:
                merge = merges.get((new_id, ids[nxt[pos]]))
                if merge is not None:
                    heapq.heappush(queue, (merge[0], pos, merge[1]))

        return tuple((ids[i], starts[i], ends[i]) for i in range(n) if alive[i])

    # -- persistence --------------------------------------------------------

    def save(self, folder: str | Path, prefix: str | None = None) -> list[Path]:
        """Write ``vocab.json`` and ``merges.txt`` into an existing folder."""
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(f"{folder} is not a directory")
        vocab_path = output_path(folder, prefix, "vocab.json")
        merges_path = output_path(folder, prefix, "merges.txt")
        write_json(vocab_path, self._vocab)
        lines = [MERGES_HEADER] + [f"{a} {b}" for a, b in self._merges]
        merges_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return [vocab_path, merges_path]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "vocab": dict(self._vocab),
            "merges": [[a, b] for a, b in self._merges],
            "cache_capacity": self.cache_capacity,
            "dropout": self.dropout,
            "unk_token": self.unk_token,
            "continuing_subword_prefix": self.continuing_subword_prefix,
            "end_of_word_suffix": self.end_of_word_suffix,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "BPE":
        return cls(**_init_params(payload))

    def __getstate__(self) -> dict[str, Any]:
        return self.to_dict()

    def __setstate__(self, state: dict[str, Any]) -> None:
        self.__init__(**_init_params(state))  # type: ignore[misc]


def _init_params(payload: dict[str, Any]) -> dict[str, Any]:
    params = {k: v for k, v in payload.items() if k != "type"}
    params["merges"] = [tuple(pair) for pair in params.get("merges", [])]
    return params

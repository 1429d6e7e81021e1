"""The Encoding produced by a tokenizer pipeline."""

from __future__ import annotations

import copy
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from pipetok.normalized import Offsets

if TYPE_CHECKING:
    from pipetok.models.base import Token


class PaddingDirection(str, Enum):
    LEFT = "left"
    RIGHT = "right"


def _current_part(prev: list, current: list, size: int, idx: int, stride: int) -> list:
    curr_slice = current[idx * size : (idx + 1) * size]
    prev_slice = prev[len(prev) - stride :] if stride else []
    return prev_slice + curr_slice


@dataclass
class Encoding:
    """Token ids plus everything needed to relate them back to the input.

    All per-token lists always have the same length. Offsets point into the
    original text of the sequence the token came from; inserted special tokens
    and padding use ``(0, 0)``.
    """

    ids: list[int] = field(default_factory=list)
    type_ids: list[int] = field(default_factory=list)
    tokens: list[str] = field(default_factory=list)
    offsets: list[Offsets] = field(default_factory=list)
    special_tokens_mask: list[int] = field(default_factory=list)
    attention_mask: list[int] = field(default_factory=list)
    overflowing: list["Encoding"] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._check_lengths()

    def _check_lengths(self) -> None:
        n = len(self.ids)
        assert (
            len(self.type_ids) == n
            and len(self.tokens) == n
            and len(self.offsets) == n
            and len(self.special_tokens_mask) == n
            and len(self.attention_mask) == n
        ), "Encoding lists have mismatched lengths"

    def __len__(self) -> int:
        return len(self.ids)

    def is_empty(self) -> bool:
        return not self.ids

    @classmethod
    def from_tokens(cls, tokens: Iterable["Token"], type_id: int = 0) -> "Encoding":
        encoding = cls()
        for token in tokens:
            encoding.ids.append(token.id)
            encoding.tokens.append(token.value)
            encoding.offsets.append(token.offsets)
        n = len(encoding.ids)
        encoding.type_ids = [type_id] * n
        encoding.special_tokens_mask = [0] * n
        encoding.attention_mask = [1] * n
        return encoding

    def copy(self) -> "Encoding":
        return copy.deepcopy(self)

    def _slice(self, start: int, end: int | None = None) -> "Encoding":
        return Encoding(
            ids=self.ids[start:end],
            type_ids=self.type_ids[start:end],
            tokens=self.tokens[start:end],
            offsets=self.offsets[start:end],
            special_tokens_mask=self.special_tokens_mask[start:end],
            attention_mask=self.attention_mask[start:end],
        )

    def set_type_ids(self, type_id: int) -> None:
        self.type_ids = [type_id] * len(self.ids)
        for encoding in self.overflowing:
            encoding.set_type_ids(type_id)

    def truncate(self, max_len: int, stride: int = 0) -> None:
        """Keep the first `max_len` tokens; the rest become overflowing chunks.

        Each chunk starts with the last `stride` tokens of the chunk before it
        and holds at most ``max_len - stride`` new tokens.
        """
        if max_len >= len(self.ids):
            return
        if max_len > 0 and stride >= max_len:
            raise ValueError(f"stride ({stride}) must be smaller than max_len ({max_len})")

        removed = self._slice(max_len)
        kept = self._slice(0, max_len)
        self.ids, self.type_ids, self.tokens = kept.ids, kept.type_ids, kept.tokens
        self.offsets, self.special_tokens_mask, self.attention_mask = (
            kept.offsets,
            kept.special_tokens_mask,
            kept.attention_mask,
        )

        if max_len == 0:
            self.overflowing = [removed]
            return

        part_size = max_len - stride
        overflowing: list[Encoding] = []
        prev: Encoding = self
        part_id = 0
        while part_size * part_id < len(removed.ids):
            part = Encoding(
                ids=_current_part(prev.ids, removed.ids, part_size, part_id, stride),
                type_ids=_current_part(prev.type_ids, removed.type_ids, part_size, part_id, stride),
                tokens=_current_part(prev.tokens, removed.tokens, part_size, part_id, stride),
                offsets=_current_part(prev.offsets, removed.offsets, part_size, part_id, stride),
                special_tokens_mask=_current_part(
                    prev.special_tokens_mask, removed.special_tokens_mask, part_size, part_id, stride
                ),
                attention_mask=_current_part(prev.attention_mask, removed.attention_mask, part_size, part_id, stride),
            )
            overflowing.append(part)
            prev = part
            part_id += 1
        self.overflowing = overflowing

    def pad(
        self,
        target_length: int,
        pad_id: int = 0,
        pad_type_id: int = 0,
        pad_token: str = "[PAD]",
        direction: PaddingDirection | str = PaddingDirection.RIGHT,
    ) -> None:
        """Pad to `target_length`; longer encodings are left unchanged."""
        direction = PaddingDirection(direction)
        for encoding in self.overflowing:
            encoding.pad(target_length, pad_id, pad_type_id, pad_token, direction)

        pad_length = target_length - len(self.ids)
        if pad_length <= 0:
            return

        if direction is PaddingDirection.LEFT:
            self.ids = [pad_id] * pad_length + self.ids
            self.type_ids = [pad_type_id] * pad_length + self.type_ids
            self.tokens = [pad_token] * pad_length + self.tokens
            self.offsets = [(0, 0)] * pad_length + self.offsets
            self.special_tokens_mask = [1] * pad_length + self.special_tokens_mask
            self.attention_mask = [0] * pad_length + self.attention_mask
        else:
            self.ids = self.ids + [pad_id] * pad_length
            self.type_ids = self.type_ids + [pad_type_id] * pad_length
            self.tokens = self.tokens + [pad_token] * pad_length
            self.offsets = self.offsets + [(0, 0)] * pad_length
            self.special_tokens_mask = self.special_tokens_mask + [1] * pad_length
            self.attention_mask = self.attention_mask + [0] * pad_length

    def merge_with(self, pair: "Encoding", growing_offsets: bool = False) -> None:
        """Append `pair` to this encoding, combining overflowing parts too."""
        overflowings: list[Encoding] = []
        for self_o in self.overflowing:
            merged = self_o._slice(0)
            merged.merge_with(pair._slice(0), growing_offsets)
            overflowings.append(merged)
            for other_o in pair.overflowing:
                merged = self_o._slice(0)
                merged.merge_with(other_o._slice(0), growing_offsets)
                overflowings.append(merged)
        for other_o in pair.overflowing:
            merged = self._slice(0)
            merged.merge_with(other_o._slice(0), growing_offsets)
            overflowings.append(merged)

        starting_offset = self.offsets[-1][1] if growing_offsets and self.offsets else 0
        self.ids = self.ids + pair.ids
        self.type_ids = self.type_ids + pair.type_ids
        self.tokens = self.tokens + pair.tokens
        self.offsets = self.offsets + [(s + starting_offset, e + starting_offset) for s, e in pair.offsets]
        self.special_tokens_mask = self.special_tokens_mask + pair.special_tokens_mask
        self.attention_mask = self.attention_mask + pair.attention_mask
        self.overflowing = overflowings

    @classmethod
    def merge(cls, encodings: Iterable["Encoding"], growing_offsets: bool = False) -> "Encoding":
        merged = cls()
        for encoding in encodings:
            merged.merge_with(encoding, growing_offsets)
        return merged

    def to_dict(self) -> dict[str, Any]:
        return {
            "ids": list(self.ids),
            "type_ids": list(self.type_ids),
            "tokens": list(self.tokens),
            "offsets": [list(o) for o in self.offsets],
            "special_tokens_mask": list(self.special_tokens_mask),
            "attention_mask": list(self.attention_mask),
            "overflowing": [o.to_dict() for o in self.overflowing],
        }

"""Post-processors: add special tokens and merge a sequence pair into one Encoding."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pipetok.encoding import Encoding
from pipetok.errors import BuildError

SpecialToken = tuple[str, int]

_SPACE_MARKER = "Ġ"  # the byte-level alphabet character for " "


class PostProcessor:
    type_name = ""

    def added_tokens(self, is_pair: bool) -> int:
        return 0

    def process(
        self,
        encoding: Encoding,
        pair_encoding: Encoding | None = None,
        add_special_tokens: bool = True,
    ) -> Encoding:
        return default_process(encoding, pair_encoding)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PostProcessor):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        params = {k: v for k, v in self.to_dict().items() if k != "type"}
        return f"{self.type_name}({params})"


def default_process(encoding: Encoding, pair_encoding: Encoding | None) -> Encoding:
    """Append the pair to the first encoding without adding anything."""
    if pair_encoding is not None:
        encoding.merge_with(pair_encoding)
    return encoding


def _special(value: Any, name: str) -> SpecialToken:
    try:
        token, token_id = value
    except (TypeError, ValueError) as exc:
        raise BuildError(f"{name} must be a (token, id) pair, got {value!r}") from exc
    return str(token), int(token_id)


def _wrap(
    encoding: Encoding,
    before: list[SpecialToken],
    after: list[SpecialToken],
    type_id: int,
) -> Encoding:
    n = len(encoding)
    wrapped = Encoding(
        ids=[i for _, i in before] + encoding.ids + [i for _, i in after],
        type_ids=[type_id] * (len(before) + n + len(after)),
        tokens=[t for t, _ in before] + encoding.tokens + [t for t, _ in after],
        offsets=[(0, 0)] * len(before) + encoding.offsets + [(0, 0)] * len(after),
        special_tokens_mask=[1] * len(before) + [0] * n + [1] * len(after),
        attention_mask=[1] * (len(before) + n + len(after)),
    )
    wrapped.overflowing = [_wrap(o, before, after, type_id) for o in encoding.overflowing]
    return wrapped


class BertProcessing(PostProcessor):
    """``[CLS] A [SEP]`` and ``[CLS] A [SEP] B [SEP]``."""

    type_name = "BertProcessing"

    def __init__(self, sep: SpecialToken, cls: SpecialToken) -> None:
        self.sep = _special(sep, "sep")
        self.cls = _special(cls, "cls")

    def added_tokens(self, is_pair: bool) -> int:
        return 3 if is_pair else 2

    def process(
        self,
        encoding: Encoding,
        pair_encoding: Encoding | None = None,
        add_special_tokens: bool = True,
    ) -> Encoding:
        if not add_special_tokens:
            return default_process(encoding, pair_encoding)

        result = _wrap(encoding, [self.cls], [self.sep], 0)
        if pair_encoding is not None:
            result.merge_with(_wrap(pair_encoding, [], [self.sep], 1))
        return result

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name, "sep": list(self.sep), "cls": list(self.cls)}


def _count_spaces(chars: Iterable[str]) -> int:
    count = 0
    for c in chars:
        if c != _SPACE_MARKER and not c.isspace():
            break
        count += 1
    return count


def trim_byte_level_offsets(encoding: Encoding, add_prefix_space: bool) -> None:
    """Drop the space markers byte-level tokens carry from their offsets.

    A prepended prefix space has no counterpart in the original text, so the
    single leading space of a first token is kept when `add_prefix_space` is set.
    """
    for i, (token, (start, end)) in enumerate(zip(encoding.tokens, encoding.offsets)):
        leading = _count_spaces(token)
        trailing = _count_spaces(reversed(token)) if leading < len(token) else 0
        if leading == 0 and trailing == 0:
            continue
        if leading > 0:
            is_first = i == 0 or start == 0
            if is_first and add_prefix_space and leading == 1:
                leading = 0
            start = min(start + leading, end)
        if trailing > 0 and end >= trailing:
            end = max(end - trailing, start)
        encoding.offsets[i] = (start, end)
    for overflow in encoding.overflowing:
        trim_byte_level_offsets(overflow, add_prefix_space)


class ByteLevel(PostProcessor):
    """Adds no tokens; only trims byte-level offsets."""

    type_name = "ByteLevel"

    def __init__(self, trim_offsets: bool = True, add_prefix_space: bool = True) -> None:
        self.trim_offsets = trim_offsets
        self.add_prefix_space = add_prefix_space

    def process(
        self,
        encoding: Encoding,
        pair_encoding: Encoding | None = None,
        add_special_tokens: bool = True,
    ) -> Encoding:
        if self.trim_offsets:
            trim_byte_level_offsets(encoding, self.add_prefix_space)
            if pair_encoding is not None:
                trim_byte_level_offsets(pair_encoding, self.add_prefix_space)
        return default_process(encoding, pair_encoding)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "trim_offsets": self.trim_offsets,
            "add_prefix_space": self.add_prefix_space,
        }


class RobertaProcessing(PostProcessor):
    """``<s> A </s>`` and ``<s> A </s></s> B </s>`` with optional offset trimming."""

    type_name = "RobertaProcessing"

    def __init__(
        self,
        sep: SpecialToken,
        cls: SpecialToken,
        trim_offsets: bool = True,
        add_prefix_space: bool = True,
    ) -> None:
        self.sep = _special(sep, "sep")
        self.cls = _special(cls, "cls")
        self.trim_offsets = trim_offsets
        self.add_prefix_space = add_prefix_space

    def added_tokens(self, is_pair: bool) -> int:
        return 4 if is_pair else 2

    def process(
        self,
        encoding: Encoding,
        pair_encoding: Encoding | None = None,
        add_special_tokens: bool = True,
    ) -> Encoding:
        if self.trim_offsets:
            trim_byte_level_offsets(encoding, self.add_prefix_space)
            if pair_encoding is not None:
                trim_byte_level_offsets(pair_encoding, self.add_prefix_space)
        if not add_special_tokens:
            return default_process(encoding, pair_encoding)

        result = _wrap(encoding, [self.cls], [self.sep], 0)
        if pair_encoding is not None:
            result.merge_with(_wrap(pair_encoding, [self.sep], [self.sep], 1))
        return result

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "sep": list(self.sep),
            "cls": list(self.cls),
            "trim_offsets": self.trim_offsets,
            "add_prefix_space": self.add_prefix_space,
        }


_REGISTRY: dict[str, type[PostProcessor]] = {
    cls.type_name: cls for cls in (BertProcessing, RobertaProcessing, ByteLevel)
}


def from_dict(payload: dict[str, Any]) -> PostProcessor:
    params = dict(payload)
    type_name = params.pop("type", None)
    cls = _REGISTRY.get(type_name)
    if cls is None:
        raise BuildError(f"Unknown post-processor type: {type_name!r}")
    return cls(**params)

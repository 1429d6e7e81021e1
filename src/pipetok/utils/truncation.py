"""Truncation and padding policies applied to one or a batch of encodings."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from pipetok.config import RuntimeConfig
from pipetok.encoding import Encoding, PaddingDirection
from pipetok.errors import SecondSequenceNotProvided, SequenceTooShort
from pipetok.utils.parallelism import parallel_map


class TruncationStrategy(str, Enum):
    LONGEST_FIRST = "longest_first"
    ONLY_FIRST = "only_first"
    ONLY_SECOND = "only_second"


@dataclass(frozen=True)
class TruncationParams:
    max_length: int = 512
    strategy: TruncationStrategy = TruncationStrategy.LONGEST_FIRST
    stride: int = 0

    def __post_init__(self) -> None:
        if self.max_length < 0 or self.stride < 0:
            raise ValueError("max_length and stride must be non-negative")
        object.__setattr__(self, "strategy", TruncationStrategy(self.strategy))

    def to_dict(self) -> dict[str, Any]:
        return {"max_length": self.max_length, "strategy": self.strategy.value, "stride": self.stride}

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "TruncationParams":
        return TruncationParams(**d)


@dataclass(frozen=True)
class PaddingParams:
    """`fixed_length=None` pads to the longest encoding of the batch."""

    fixed_length: int | None = None
    direction: PaddingDirection = PaddingDirection.RIGHT
    pad_id: int = 0
    pad_type_id: int = 0
    pad_token: str = "[PAD]"

    def __post_init__(self) -> None:
        if self.fixed_length is not None and self.fixed_length < 0:
            raise ValueError("fixed_length must be non-negative")
        object.__setattr__(self, "direction", PaddingDirection(self.direction))

    @property
    def is_batch_longest(self) -> bool:
        return self.fixed_length is None

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["direction"] = self.direction.value
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "PaddingParams":
        return PaddingParams(**d)


def _check_stride(encoding: Encoding, max_len: int, stride: int) -> None:
    # the overflow window must advance by at least one token
    if 0 < max_len <= stride and max_len < len(encoding):
        raise SequenceTooShort()


def truncate_encodings(
    encoding: Encoding,
    pair_encoding: Encoding | None,
    params: TruncationParams,
) -> tuple[Encoding, Encoding | None]:
    """Truncate a sequence, or a pair of sequences, to `params.max_length` in total."""
    if params.max_length == 0:
        return encoding, pair_encoding

    total_length = len(encoding) + (len(pair_encoding) if pair_encoding is not None else 0)
    if total_length <= params.max_length:
        return encoding, pair_encoding
    to_remove = total_length - params.max_length

    if params.strategy is TruncationStrategy.LONGEST_FIRST:
        n_first = len(encoding)
        n_second = len(pair_encoding) if pair_encoding is not None else 0
        for _ in range(to_remove):
            if n_first > n_second:
                n_first -= 1
            else:
                n_second -= 1
        _check_stride(encoding, n_first, params.stride)
        if pair_encoding is not None:
            _check_stride(pair_encoding, n_second, params.stride)
        encoding.truncate(n_first, params.stride)
        if pair_encoding is not None:
            pair_encoding.truncate(n_second, params.stride)
    else:
        if params.strategy is TruncationStrategy.ONLY_FIRST:
            target = encoding
        elif pair_encoding is not None:
            target = pair_encoding
        else:
            raise SecondSequenceNotProvided()

        target_len = len(target)
        if target_len <= to_remove:
            raise SequenceTooShort()
        _check_stride(target, target_len - to_remove, params.stride)
        target.truncate(target_len - to_remove, params.stride)

    return encoding, pair_encoding


def pad_encodings(
    encodings: list[Encoding],
    params: PaddingParams,
    runtime: RuntimeConfig | None = None,
) -> list[Encoding]:
    """Pad every encoding of the batch in place and return the batch."""
    if not encodings:
        return encodings

    if params.fixed_length is not None:
        pad_length = params.fixed_length
    else:
        pad_length = max(parallel_map(len, encodings, runtime))

    def _pad(encoding: Encoding) -> None:
        encoding.pad(pad_length, params.pad_id, params.pad_type_id, params.pad_token, params.direction)

    parallel_map(_pad, encodings, runtime)
    return encodings

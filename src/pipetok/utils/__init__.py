"""Shared helpers: truncation/padding, parallel batches, serialization, logging."""

from pipetok.utils.truncation import (
    PaddingDirection,
    PaddingParams,
    TruncationParams,
    TruncationStrategy,
    pad_encodings,
    truncate_encodings,
)

__all__ = [
    "PaddingDirection",
    "PaddingParams",
    "TruncationParams",
    "TruncationStrategy",
    "pad_encodings",
    "truncate_encodings",
]

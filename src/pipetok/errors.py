"""Error taxonomy for the tokenization pipeline.

    PipetokError
    ├── BuildError                  malformed vocab/merges, bad stage arguments
    ├── VocabularyError             symbol not representable, no unk token
    └── TruncationError
        ├── SecondSequenceNotProvided
        └── SequenceTooShort
"""

from __future__ import annotations


class PipetokError(Exception):
    """Base class for every error raised by pipetok."""


class BuildError(PipetokError, ValueError):
    """Raised while constructing a pipeline stage; no partial stage is usable."""


class VocabularyError(PipetokError, LookupError):
    """Raised per item when a word cannot be represented by the model."""

    def __init__(self, message: str, token: str | None = None) -> None:
        super().__init__(message)
        self.token = token

    def __str__(self) -> str:
        return self.args[0]


class TruncationError(PipetokError, ValueError):
    """Caller-input misuse detected while truncating."""


class SecondSequenceNotProvided(TruncationError):
    def __init__(self) -> None:
        super().__init__("Truncation error: Second sequence not provided")


class SequenceTooShort(TruncationError):
    def __init__(self) -> None:
        super().__init__(
            "Truncation error: Sequence to truncate too short to respect the provided max_length"
        )

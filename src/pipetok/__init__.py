"""pipetok: reproducible text tokenization pipelines."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from pipetok.added_vocabulary import AddedToken
from pipetok.encoding import Encoding, PaddingDirection
from pipetok.errors import (
    BuildError,
    PipetokError,
    SecondSequenceNotProvided,
    SequenceTooShort,
    TruncationError,
    VocabularyError,
)
from pipetok.normalized import NormalizedString
from pipetok.tokenizer import Tokenizer

try:
    __version__ = version("pipetok")
except PackageNotFoundError:  # pragma: no cover - runtime fallback
    __version__ = "0.0.0"

__all__ = [
    "AddedToken",
    "BuildError",
    "Encoding",
    "NormalizedString",
    "PaddingDirection",
    "PipetokError",
    "SecondSequenceNotProvided",
    "SequenceTooShort",
    "Tokenizer",
    "TruncationError",
    "VocabularyError",
    "__version__",
]

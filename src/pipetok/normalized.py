"""Text buffer that remembers where every character came from."""

from __future__ import annotations

import unicodedata
from collections.abc import Callable, Iterable

Offsets = tuple[int, int]


class NormalizedString:
    """A normalized view over an original string.

    ``alignments[i]`` is the ``(start, end)`` span of original characters that
    produced normalized character ``i``. The table is rebuilt on every mutation
    and stays monotonic, so any normalized span converts back to a slice of the
    original text.
    """

    def __init__(self, original: str) -> None:
        self._original = original
        self._normalized = original
        self._alignments: list[Offsets] = [(i, i + 1) for i in range(len(original))]

    def __repr__(self) -> str:
        return f"NormalizedString(original={self._original!r}, normalized={self._normalized!r})"

    def __len__(self) -> int:
        return len(self._normalized)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NormalizedString):
            return NotImplemented
        return (
            self._original == other._original
            and self._normalized == other._normalized
            and self._alignments == other._alignments
        )

    def get(self) -> str:
        return self._normalized

    def get_original(self) -> str:
        return self._original

    @property
    def alignments(self) -> list[Offsets]:
        return list(self._alignments)

    def is_empty(self) -> bool:
        return not self._normalized

    def len_original(self) -> int:
        return len(self._original)

    # -- offset conversion -------------------------------------------------

    def _original_position(self, pos: int) -> int:
        if pos < len(self._alignments):
            return self._alignments[pos][0]
        if self._alignments:
            return self._alignments[-1][1]
        return len(self._original) if pos > 0 else 0

    def convert_offsets(self, start: int, end: int) -> Offsets:
        """Map a span of the normalized text to a span of the original text."""
        if start < 0 or end > len(self._normalized) or start > end:
            raise IndexError(f"Invalid normalized range ({start}, {end}) for length {len(self._normalized)}")
        if start == end:
            pos = self._original_position(start)
            return pos, pos
        return self._alignments[start][0], self._alignments[end - 1][1]

    def get_range_original(self, start: int, end: int) -> str:
        o_start, o_end = self.convert_offsets(start, end)
        return self._original[o_start:o_end]

    # -- mutation ----------------------------------------------------------

    def _rebuild(self, pieces: Iterable[tuple[str, int, int]]) -> None:
        """Replace the normalized text from ordered ``(text, start, end)`` pieces.

        Each piece replaces ``normalized[start:end]``; pieces must be sorted and
        together cover the whole normalized string. Every produced character
        is aligned to the original span of its source range, and characters
        produced from an empty range get a zero-width span at that position.
        """
        chars: list[str] = []
        alignments: list[Offsets] = []
        cursor = 0
        for text, start, end in pieces:
            if start != cursor or end < start:
                raise ValueError(f"Pieces must cover the text in order (got {start}..{end} at {cursor})")
            cursor = end
            if not text:
                continue
            if end > start:
                span = (self._alignments[start][0], self._alignments[end - 1][1])
            else:
                pos = self._original_position(start)
                span = (pos, pos)
            chars.append(text)
            alignments.extend([span] * len(text))
        if cursor != len(self._normalized):
            raise ValueError("Pieces must cover the whole normalized text")
        self._normalized = "".join(chars)
        self._alignments = alignments

    def _identity(self, start: int, end: int) -> list[tuple[str, int, int]]:
        return [(self._normalized[i], i, i + 1) for i in range(start, end)]

    def replace(self, start: int, end: int, content: str) -> NormalizedString:
        """Replace ``normalized[start:end]`` with `content`."""
        if start < 0 or end > len(self._normalized) or start > end:
            raise IndexError(f"Invalid normalized range ({start}, {end})")
        pieces = self._identity(0, start)
        if start == end:
            pieces.append((content, start, start))
        else:
            pieces.append((content, start, end))
        pieces.extend(self._identity(end, len(self._normalized)))
        self._rebuild(pieces)
        return self

    def insert(self, pos: int, content: str) -> NormalizedString:
        return self.replace(pos, pos, content)

    def prepend(self, content: str) -> NormalizedString:
        return self.insert(0, content)

    def append(self, content: str) -> NormalizedString:
        return self.insert(len(self._normalized), content)

    def map(self, fn: Callable[[str], str]) -> NormalizedString:
        """Replace each character with ``fn(char)``, which may be empty or longer."""
        self._rebuild((fn(c), i, i + 1) for i, c in enumerate(self._normalized))
        return self

    def filter(self, keep: Callable[[str], bool]) -> NormalizedString:
        self._rebuild((c if keep(c) else "", i, i + 1) for i, c in enumerate(self._normalized))
        return self

    def lowercase(self) -> NormalizedString:
        return self.map(str.lower)

    def uppercase(self) -> NormalizedString:
        return self.map(str.upper)

    def lstrip(self) -> NormalizedString:
        return self._strip(left=True, right=False)

    def rstrip(self) -> NormalizedString:
        return self._strip(left=False, right=True)

    def strip(self) -> NormalizedString:
        return self._strip(left=True, right=True)

    def _strip(self, left: bool, right: bool) -> NormalizedString:
        text = self._normalized
        start, end = 0, len(text)
        if left:
            while start < end and text[start].isspace():
                start += 1
        if right:
            while end > start and text[end - 1].isspace():
                end -= 1
        pieces = [("", 0, start)] if start else []
        pieces.extend(self._identity(start, end))
        if end < len(text):
            pieces.append(("", end, len(text)))
        self._rebuild(pieces)
        return self

    def _unicode_normalize(self, form: str) -> NormalizedString:
        # Runs are normalized on their own; a run only ends before a character
        # that neither reorders nor composes with it (Hangul jamo and some
        # vowel signs compose although their combining class is 0).
        text = self._normalized
        pieces: list[tuple[str, int, int]] = []
        start = 0
        for i in range(1, len(text) + 1):
            if i < len(text) and not _starts_run(form, text[start:i], text[i]):
                continue
            segment = text[start:i]
            normalized = unicodedata.normalize(form, segment)
            if normalized == segment:
                pieces.extend(self._identity(start, i))
            else:
                pieces.append((normalized, start, i))
            start = i
        self._rebuild(pieces)
        return self

    def nfc(self) -> NormalizedString:
        return self._unicode_normalize("NFC")

    def nfd(self) -> NormalizedString:
        return self._unicode_normalize("NFD")

    def nfkc(self) -> NormalizedString:
        return self._unicode_normalize("NFKC")

    def nfkd(self) -> NormalizedString:
        return self._unicode_normalize("NFKD")


def _starts_run(form: str, run: str, char: str) -> bool:
    if char < "\x80":
        return True
    if unicodedata.combining(char):
        return False
    joined = unicodedata.normalize(form, run + char)
    return joined == unicodedata.normalize(form, run) + unicodedata.normalize(form, char)

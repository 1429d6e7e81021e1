"""Pre-tokenizers: split a NormalizedString into words with offsets.

Every variant returns ``(word, (start, end))`` pairs whose offsets index the
*normalized* text; the tokenizer maps them back to the original input through
the NormalizedString alignments.
"""

from __future__ import annotations

import unicodedata
from typing import Any, Protocol

import regex

from pipetok.errors import BuildError
from pipetok.normalized import NormalizedString, Offsets

PreTokenizedWords = list[tuple[str, Offsets]]

# GPT-2 split pattern; must match what byte-level vocabularies were built with.
_BYTE_LEVEL_PATTERN = regex.compile(
    r"""'s|'t|'re|'ve|'m|'ll|'d| ?\p{L}+| ?\p{N}+| ?[^\s\p{L}\p{N}]+|\s+(?!\S)|\s+"""
)
_WHITESPACE_PATTERN = regex.compile(r"\w+|[^\w\s]")
_WHITESPACE_SPLIT_PATTERN = regex.compile(r"\S+")


def bytes_to_unicode() -> dict[int, str]:
    """Fixed bijection from the 256 byte values to printable characters."""
    bs = (
        list(range(ord("!"), ord("~") + 1))
        + list(range(ord("¡"), ord("¬") + 1))
        + list(range(ord("®"), ord("ÿ") + 1))
    )
    cs = bs[:]
    n = 0
    for b in range(2**8):
        if b not in bs:
            bs.append(b)
            cs.append(2**8 + n)
            n += 1
    return dict(zip(bs, [chr(c) for c in cs]))


BYTES_CHAR: dict[int, str] = bytes_to_unicode()
CHAR_BYTES: dict[str, int] = {c: b for b, c in BYTES_CHAR.items()}


class PreTokenizer:
    type_name = ""

    def pre_tokenize(self, normalized: NormalizedString) -> PreTokenizedWords:
        raise NotImplementedError

    def pre_tokenize_str(self, text: str) -> PreTokenizedWords:
        return self.pre_tokenize(NormalizedString(text))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PreTokenizer):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        params = {k: v for k, v in self.to_dict().items() if k != "type"}
        return f"{self.type_name}({params})"


def _regex_words(pattern: regex.Pattern, text: str) -> PreTokenizedWords:
    return [(m.group(0), (m.start(), m.end())) for m in pattern.finditer(text)]


def _single_char(value: str, name: str) -> str:
    if not isinstance(value, str) or len(value) != 1:
        raise BuildError(f"{name} must be a single character, got {value!r}")
    return value


class ByteLevel(PreTokenizer):
    """GPT-2 style splitting over a byte-to-character alphabet.

    The normalized string is rewritten so that each UTF-8 byte becomes one
    alphabet character; bytes beyond the first of a multi-byte character stay
    aligned to that character in the original text.
    """

    type_name = "ByteLevel"

    def __init__(self, add_prefix_space: bool = False) -> None:
        self.add_prefix_space = add_prefix_space

    @staticmethod
    def alphabet() -> list[str]:
        return sorted(BYTES_CHAR.values())

    def pre_tokenize(self, normalized: NormalizedString) -> PreTokenizedWords:
        if self.add_prefix_space and not normalized.get().startswith(" "):
            normalized.prepend(" ")

        text = normalized.get()
        spans = [m.span() for m in _BYTE_LEVEL_PATTERN.finditer(text)]

        # position of every character once expanded to bytes
        positions = [0]
        for c in text:
            positions.append(positions[-1] + len(c.encode("utf-8")))
        normalized.map(lambda c: "".join(BYTES_CHAR[b] for b in c.encode("utf-8")))

        byte_text = normalized.get()
        return [
            (byte_text[positions[start] : positions[end]], (positions[start], positions[end]))
            for start, end in spans
        ]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name, "add_prefix_space": self.add_prefix_space}


class Whitespace(PreTokenizer):
    """Runs of word characters; every other non-space character on its own."""

    type_name = "Whitespace"

    def pre_tokenize(self, normalized: NormalizedString) -> PreTokenizedWords:
        return _regex_words(_WHITESPACE_PATTERN, normalized.get())


class WhitespaceSplit(PreTokenizer):
    type_name = "WhitespaceSplit"

    def pre_tokenize(self, normalized: NormalizedString) -> PreTokenizedWords:
        return _regex_words(_WHITESPACE_SPLIT_PATTERN, normalized.get())


class CharDelimiterSplit(PreTokenizer):
    type_name = "CharDelimiterSplit"

    def __init__(self, delimiter: str) -> None:
        self.delimiter = _single_char(delimiter, "delimiter")

    def pre_tokenize(self, normalized: NormalizedString) -> PreTokenizedWords:
        words: PreTokenizedWords = []
        word: list[str] = []
        offset = 0
        for c in normalized.get():
            if c == self.delimiter:
                if word:
                    words.append(("".join(word), (offset - len(word), offset)))
                    word = []
            else:
                word.append(c)
            offset += 1
        if word:
            words.append(("".join(word), (offset - len(word), offset)))
        return words

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name, "delimiter": self.delimiter}


def _is_bert_punctuation(c: str) -> bool:
    cp = ord(c)
    if 33 <= cp <= 47 or 58 <= cp <= 64 or 91 <= cp <= 96 or 123 <= cp <= 126:
        return True
    return unicodedata.category(c).startswith("P")


class BertPreTokenizer(PreTokenizer):
    """Whitespace split, then every punctuation character becomes its own word."""

    type_name = "BertPreTokenizer"

    def pre_tokenize(self, normalized: NormalizedString) -> PreTokenizedWords:
        words: PreTokenizedWords = []
        for word, (start, _end) in _regex_words(_WHITESPACE_SPLIT_PATTERN, normalized.get()):
            piece_start = 0
            for i, c in enumerate(word):
                if _is_bert_punctuation(c):
                    if piece_start < i:
                        words.append((word[piece_start:i], (start + piece_start, start + i)))
                    words.append((c, (start + i, start + i + 1)))
                    piece_start = i + 1
            if piece_start < len(word):
                words.append((word[piece_start:], (start + piece_start, start + len(word))))
        return words


class Metaspace(PreTokenizer):
    """Replaces whitespace with `replacement`, each occurrence starting a new word."""

    type_name = "Metaspace"

    def __init__(self, replacement: str = "▁", add_prefix_space: bool = True) -> None:
        self.replacement = _single_char(replacement, "replacement")
        self.add_prefix_space = add_prefix_space

    def pre_tokenize(self, normalized: NormalizedString) -> PreTokenizedWords:
        if self.add_prefix_space and not normalized.get().startswith(" "):
            normalized.prepend(" ")

        words: PreTokenizedWords = []
        word: list[str] = []
        offset = 0
        for c in normalized.get():
            if c.isspace():
                if word:
                    words.append(("".join(word), (offset - len(word), offset)))
                    word = []
                word.append(self.replacement)
            else:
                word.append(c)
            offset += 1
        if word:
            words.append(("".join(word), (offset - len(word), offset)))
        return words

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "replacement": self.replacement,
            "add_prefix_space": self.add_prefix_space,
        }


class Sequence(PreTokenizer):
    """Chains pre-tokenizers; each one re-splits the words of the previous one."""

    type_name = "Sequence"

    def __init__(self, pre_tokenizers: list[PreTokenizer]) -> None:
        for i, pretok in enumerate(pre_tokenizers):
            if i > 0 and isinstance(pretok, ByteLevel):
                raise BuildError("ByteLevel rewrites the text and must come first in a Sequence")
            if i > 0 and isinstance(pretok, Metaspace) and pretok.add_prefix_space:
                raise BuildError("Metaspace with add_prefix_space must come first in a Sequence")
        self.pre_tokenizers = list(pre_tokenizers)

    def pre_tokenize(self, normalized: NormalizedString) -> PreTokenizedWords:
        if not self.pre_tokenizers:
            return [(normalized.get(), (0, len(normalized)))] if len(normalized) else []
        words = self.pre_tokenizers[0].pre_tokenize(normalized)
        for pretok in self.pre_tokenizers[1:]:
            text = normalized.get()
            resplit: PreTokenizedWords = []
            for _word, (start, end) in words:
                piece = NormalizedString(text[start:end])
                for sub_word, (sub_start, sub_end) in pretok.pre_tokenize(piece):
                    resplit.append((sub_word, (start + sub_start, start + sub_end)))
            words = resplit
        return words

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name, "pre_tokenizers": [p.to_dict() for p in self.pre_tokenizers]}


class SupportsPreTokenize(Protocol):
    def pre_tokenize(self, text: str) -> list[tuple[str, tuple[int, int]]]: ...


class Custom(PreTokenizer):
    """Wraps a caller-provided object exposing ``pre_tokenize(str)``.

    The callback sees the normalized text and must return offsets into it.
    """

    type_name = "Custom"

    def __init__(self, callback: SupportsPreTokenize) -> None:
        if not callable(getattr(callback, "pre_tokenize", None)):
            raise BuildError("Custom pre-tokenizer needs an object with a `pre_tokenize` method")
        self.callback = callback

    def pre_tokenize(self, normalized: NormalizedString) -> PreTokenizedWords:
        text = normalized.get()
        words: PreTokenizedWords = []
        for item in self.callback.pre_tokenize(text):
            try:
                word, (start, end) = item
            except (TypeError, ValueError) as exc:
                raise TypeError("`pre_tokenize` is expected to return a list of (str, (int, int))") from exc
            if not 0 <= start <= end <= len(text):
                raise ValueError(f"Custom pre-tokenizer returned invalid offsets ({start}, {end})")
            words.append((str(word), (int(start), int(end))))
        return words

    def to_dict(self) -> dict[str, Any]:
        raise ValueError("Custom pre-tokenizers cannot be serialized")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Custom) and other.callback is self.callback

    def __repr__(self) -> str:
        return f"Custom({self.callback!r})"


_REGISTRY: dict[str, type[PreTokenizer]] = {
    cls.type_name: cls
    for cls in (ByteLevel, Whitespace, WhitespaceSplit, CharDelimiterSplit, BertPreTokenizer, Metaspace, Sequence)
}


def from_dict(payload: dict[str, Any]) -> PreTokenizer:
    params = dict(payload)
    type_name = params.pop("type", None)
    cls = _REGISTRY.get(type_name)
    if cls is None:
        raise BuildError(f"Unknown pre-tokenizer type: {type_name!r}")
    if cls is Sequence:
        return Sequence([from_dict(item) for item in params.get("pre_tokenizers", [])])
    return cls(**params)

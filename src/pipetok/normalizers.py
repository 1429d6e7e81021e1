"""Normalizers: optional first stage rewriting a NormalizedString in place."""

from __future__ import annotations

import unicodedata
from typing import Any

from pipetok.errors import BuildError
from pipetok.normalized import NormalizedString


class Normalizer:
    type_name = ""

    def normalize(self, normalized: NormalizedString) -> None:
        raise NotImplementedError

    def normalize_str(self, text: str) -> str:
        normalized = NormalizedString(text)
        self.normalize(normalized)
        return normalized.get()

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Normalizer):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        params = {k: v for k, v in self.to_dict().items() if k != "type"}
        return f"{self.type_name}({params})"


def _is_bert_whitespace(c: str) -> bool:
    return c in " \t\n\r" or unicodedata.category(c) == "Zs"


def _is_bert_control(c: str) -> bool:
    if c in "\t\n\r":
        return False
    return unicodedata.category(c) in {"Cc", "Cf", "Cn", "Co"}


def _is_chinese_char(c: str) -> bool:
    cp = ord(c)
    return (
        0x4E00 <= cp <= 0x9FFF
        or 0x3400 <= cp <= 0x4DBF
        or 0x20000 <= cp <= 0x2A6DF
        or 0x2A700 <= cp <= 0x2B73F
        or 0x2B740 <= cp <= 0x2B81F
        or 0x2B920 <= cp <= 0x2CEAF
        or 0xF900 <= cp <= 0xFAFF
        or 0x2F800 <= cp <= 0x2FA1F
    )


class BertNormalizer(Normalizer):
    """BERT cleanup: control characters, CJK spacing, accents and case.

    `strip_accents=None` follows `lowercase`, as the reference BERT vocabularies
    expect.
    """

    type_name = "BertNormalizer"

    def __init__(
        self,
        clean_text: bool = True,
        handle_chinese_chars: bool = True,
        strip_accents: bool | None = None,
        lowercase: bool = True,
    ) -> None:
        self.clean_text = clean_text
        self.handle_chinese_chars = handle_chinese_chars
        self.strip_accents = strip_accents
        self.lowercase = lowercase

    def normalize(self, normalized: NormalizedString) -> None:
        if self.clean_text:
            normalized.filter(lambda c: not (c == "\0" or c == "\ufffd" or _is_bert_control(c)))
            normalized.map(lambda c: " " if _is_bert_whitespace(c) else c)
        if self.handle_chinese_chars:
            normalized.map(lambda c: f" {c} " if _is_chinese_char(c) else c)
        strip_accents = self.lowercase if self.strip_accents is None else self.strip_accents
        if strip_accents:
            normalized.nfd()
            normalized.filter(lambda c: unicodedata.category(c) != "Mn")
        if self.lowercase:
            normalized.lowercase()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "clean_text": self.clean_text,
            "handle_chinese_chars": self.handle_chinese_chars,
            "strip_accents": self.strip_accents,
            "lowercase": self.lowercase,
        }


class Lowercase(Normalizer):
    type_name = "Lowercase"

    def normalize(self, normalized: NormalizedString) -> None:
        normalized.lowercase()


class Strip(Normalizer):
    type_name = "Strip"

    def __init__(self, left: bool = True, right: bool = True) -> None:
        self.left = left
        self.right = right

    def normalize(self, normalized: NormalizedString) -> None:
        if self.left and self.right:
            normalized.strip()
        elif self.left:
            normalized.lstrip()
        elif self.right:
            normalized.rstrip()

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name, "left": self.left, "right": self.right}


class NFC(Normalizer):
    type_name = "NFC"

    def normalize(self, normalized: NormalizedString) -> None:
        normalized.nfc()


class NFD(Normalizer):
    type_name = "NFD"

    def normalize(self, normalized: NormalizedString) -> None:
        normalized.nfd()


class NFKC(Normalizer):
    type_name = "NFKC"

    def normalize(self, normalized: NormalizedString) -> None:
        normalized.nfkc()


class NFKD(Normalizer):
    type_name = "NFKD"

    def normalize(self, normalized: NormalizedString) -> None:
        normalized.nfkd()


class Sequence(Normalizer):
    type_name = "Sequence"

    def __init__(self, normalizers: list[Normalizer]) -> None:
        self.normalizers = list(normalizers)

    def normalize(self, normalized: NormalizedString) -> None:
        for normalizer in self.normalizers:
            normalizer.normalize(normalized)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name, "normalizers": [n.to_dict() for n in self.normalizers]}


_REGISTRY: dict[str, type[Normalizer]] = {
    cls.type_name: cls for cls in (BertNormalizer, Lowercase, Strip, NFC, NFD, NFKC, NFKD, Sequence)
}


def from_dict(payload: dict[str, Any]) -> Normalizer:
    params = dict(payload)
    type_name = params.pop("type", None)
    cls = _REGISTRY.get(type_name)
    if cls is None:
        raise BuildError(f"Unknown normalizer type: {type_name!r}")
    if cls is Sequence:
        return Sequence([from_dict(item) for item in params.get("normalizers", [])])
    return cls(**params)

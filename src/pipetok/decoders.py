"""Decoders: turn a list of token strings back into text."""

from __future__ import annotations

from typing import Any, Protocol

from pipetok.errors import BuildError
from pipetok.pre_tokenizers import CHAR_BYTES


class Decoder:
    type_name = ""

    def decode(self, tokens: list[str]) -> str:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Decoder):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        params = {k: v for k, v in self.to_dict().items() if k != "type"}
        return f"{self.type_name}({params})"


class ByteLevel(Decoder):
    """Maps the byte-level alphabet back to bytes and decodes them as UTF-8."""

    type_name = "ByteLevel"

    def decode(self, tokens: list[str]) -> str:
        data = bytearray()
        for c in "".join(tokens):
            byte = CHAR_BYTES.get(c)
            if byte is None:
                data.extend(c.encode("utf-8"))
            else:
                data.append(byte)
        return data.decode("utf-8", errors="replace")


# applied in order
_CLEANUP_RULES = (
    (" .", "."),
    (" ?", "?"),
    (" !", "!"),
    (" ,", ","),
    (" ' ", "'"),
    (" n't", "n't"),
    (" 'm", "'m"),
    (" do not", " don't"),
    (" 's", "'s"),
    (" 've", "'ve"),
    (" 're", "'re"),
)


def cleanup_text(text: str) -> str:
    """Undo the spacing tokenization puts around punctuation and English contractions."""
    for dirty, clean in _CLEANUP_RULES:
        text = text.replace(dirty, clean)
    return text


class WordPiece(Decoder):
    type_name = "WordPiece"

    def __init__(self, prefix: str = "##", cleanup: bool = True) -> None:
        self.prefix = prefix
        self.cleanup = cleanup

    def decode(self, tokens: list[str]) -> str:
        text = " ".join(tokens).replace(f" {self.prefix}", "")
        if self.cleanup:
            text = cleanup_text(text)
        return text

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name, "prefix": self.prefix, "cleanup": self.cleanup}


class Metaspace(Decoder):
    type_name = "Metaspace"

    def __init__(self, replacement: str = "▁", add_prefix_space: bool = True) -> None:
        if not isinstance(replacement, str) or len(replacement) != 1:
            raise BuildError(f"replacement must be a single character, got {replacement!r}")
        self.replacement = replacement
        self.add_prefix_space = add_prefix_space

    def decode(self, tokens: list[str]) -> str:
        text = "".join(tokens)
        if self.add_prefix_space and text.startswith(self.replacement):
            text = text[1:]
        return text.replace(self.replacement, " ")

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "replacement": self.replacement,
            "add_prefix_space": self.add_prefix_space,
        }


class BPEDecoder(Decoder):
    """Concatenates tokens and turns every end-of-word suffix into a space."""

    type_name = "BPEDecoder"

    def __init__(self, suffix: str = "</w>") -> None:
        self.suffix = suffix

    def decode(self, tokens: list[str]) -> str:
        return "".join(tokens).replace(self.suffix, " ").strip()

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name, "suffix": self.suffix}


class SupportsDecode(Protocol):
    def decode(self, tokens: list[str]) -> str: ...


class Custom(Decoder):
    type_name = "Custom"

    def __init__(self, callback: SupportsDecode) -> None:
        if not callable(getattr(callback, "decode", None)):
            raise BuildError("Custom decoder needs an object with a `decode` method")
        self.callback = callback

    def decode(self, tokens: list[str]) -> str:
        text = self.callback.decode(list(tokens))
        if not isinstance(text, str):
            raise TypeError("`decode` is expected to return a str")
        return text

    def to_dict(self) -> dict[str, Any]:
        raise ValueError("Custom decoders cannot be serialized")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Custom) and other.callback is self.callback

    def __repr__(self) -> str:
        return f"Custom({self.callback!r})"


_REGISTRY: dict[str, type[Decoder]] = {
    cls.type_name: cls for cls in (ByteLevel, WordPiece, Metaspace, BPEDecoder)
}


def from_dict(payload: dict[str, Any]) -> Decoder:
    params = dict(payload)
    type_name = params.pop("type", None)
    cls = _REGISTRY.get(type_name)
    if cls is None:
        raise BuildError(f"Unknown decoder type: {type_name!r}")
    return cls(**params)

import pytest

from pipetok import decoders
from pipetok.errors import BuildError
from pipetok.pre_tokenizers import Metaspace as MetaspacePreTokenizer


def test_byte_level():
    decoder = decoders.ByteLevel()
    assert decoder.decode(["Hello", "Ġworld"]) == "Hello world"
    assert decoder.decode(["\u00c3", "\u00a9"]) == "\u00e9"


def test_byte_level_replaces_invalid_utf8():
    assert decoders.ByteLevel().decode(["\u00c3"]) == "\ufffd"


def test_wordpiece_joins_continuations():
    decoder = decoders.WordPiece()
    assert decoder.decode(["un", "##aff", "##able", "!"]) == "unaffable!"
    assert decoder.decode(["i", "do", "not", "know", "."]) == "i don't know."


def test_wordpiece_without_cleanup():
    assert decoders.WordPiece(cleanup=False).decode(["hi", "!"]) == "hi !"


@pytest.mark.parametrize("text", ["Hey friend!", "Hey   friend!", "a b  c"])
def test_metaspace_round_trip(text):
    words = MetaspacePreTokenizer().pre_tokenize_str(text)
    assert decoders.Metaspace().decode([w for w, _ in words]) == text


def test_bpe_decoder():
    assert decoders.BPEDecoder().decode(["hel", "lo</w>", "world</w>"]) == "hello world"


class _Upper:
    def decode(self, tokens):
        return "".join(tokens).upper()


def test_custom_decoder():
    decoder = decoders.Custom(_Upper())
    assert decoder.decode(["a", "b"]) == "AB"
    with pytest.raises(ValueError):
        decoder.to_dict()


def test_from_dict():
    decoder = decoders.WordPiece(prefix="@@", cleanup=False)
    assert decoders.from_dict(decoder.to_dict()) == decoder
    with pytest.raises(BuildError):
        decoders.from_dict({"type": "Nope"})

import pytest

from pipetok import pre_tokenizers
from pipetok.errors import BuildError
from pipetok.normalized import NormalizedString
from pipetok.pre_tokenizers import (
    BertPreTokenizer,
    ByteLevel,
    CharDelimiterSplit,
    Custom,
    Metaspace,
    Sequence,
    Whitespace,
    WhitespaceSplit,
)


def test_metaspace_splits_on_spaces():
    pretok = Metaspace("▁", True)
    assert pretok.pre_tokenize_str("Hey friend!") == [("▁Hey", (0, 4)), ("▁friend!", (4, 12))]


def test_metaspace_keeps_extra_spaces():
    words = Metaspace("▁", True).pre_tokenize_str("Hey   friend!")
    assert [w for w, _ in words] == ["▁Hey", "▁", "▁", "▁friend!"]


def test_metaspace_offsets_map_to_original():
    n = NormalizedString("Hey friend!")
    words = Metaspace().pre_tokenize(n)
    assert [n.convert_offsets(*o) for _, o in words] == [(0, 3), (3, 11)]


def test_char_delimiter_split_skips_empty_words():
    assert CharDelimiterSplit(",").pre_tokenize_str("a,b,,c") == [("a", (0, 1)), ("b", (2, 3)), ("c", (5, 6))]


def test_single_character_arguments():
    with pytest.raises(BuildError):
        CharDelimiterSplit("ab")
    with pytest.raises(BuildError):
        Metaspace(replacement="--")


def test_whitespace():
    assert Whitespace().pre_tokenize_str("Hey man!") == [("Hey", (0, 3)), ("man", (4, 7)), ("!", (7, 8))]
    assert [w for w, _ in Whitespace().pre_tokenize_str("a..b")] == ["a", ".", ".", "b"]


def test_whitespace_split():
    assert WhitespaceSplit().pre_tokenize_str("Hey  man!") == [("Hey", (0, 3)), ("man!", (5, 9))]


def test_bert_pre_tokenizer_isolates_punctuation():
    assert BertPreTokenizer().pre_tokenize_str("Hey, friend!") == [
        ("Hey", (0, 3)),
        (",", (3, 4)),
        ("friend", (5, 11)),
        ("!", (11, 12)),
    ]


def test_byte_level_words():
    assert ByteLevel().pre_tokenize_str("Hello world") == [("Hello", (0, 5)), ("Ġworld", (5, 11))]


def test_byte_level_prefix_space():
    assert ByteLevel(add_prefix_space=True).pre_tokenize_str("Hello") == [("ĠHello", (0, 6))]


def test_byte_level_multibyte_offsets():
    n = NormalizedString("\u00e9")
    words = ByteLevel().pre_tokenize(n)
    assert words == [("\u00c3\u00a9", (0, 2))]
    assert n.convert_offsets(0, 2) == (0, 1)
    assert n.convert_offsets(1, 2) == (0, 1)


def test_byte_level_alphabet():
    alphabet = ByteLevel.alphabet()
    assert len(alphabet) == 256
    assert len(set(alphabet)) == 256


def test_sequence_resplits_words():
    pretok = Sequence([WhitespaceSplit(), CharDelimiterSplit("-")])
    assert pretok.pre_tokenize_str("a-b c") == [("a", (0, 1)), ("b", (2, 3)), ("c", (4, 5))]


def test_sequence_rejects_byte_level_after_first():
    with pytest.raises(BuildError):
        Sequence([Whitespace(), ByteLevel()])


class _SplitOnSpace:
    def pre_tokenize(self, text):
        words, start = [], 0
        for part in text.split(" "):
            words.append((part, (start, start + len(part))))
            start += len(part) + 1
        return words


def test_custom_pre_tokenizer():
    custom = Custom(_SplitOnSpace())
    assert custom.pre_tokenize_str("ab cd") == [("ab", (0, 2)), ("cd", (3, 5))]
    with pytest.raises(ValueError):
        custom.to_dict()


def test_custom_needs_pre_tokenize_method():
    with pytest.raises(BuildError):
        Custom(object())


def test_from_dict_round_trip():
    pretok = Sequence([Metaspace(add_prefix_space=True), CharDelimiterSplit("|")])
    assert pre_tokenizers.from_dict(pretok.to_dict()) == pretok
    with pytest.raises(BuildError):
        pre_tokenizers.from_dict({"type": "Nope"})

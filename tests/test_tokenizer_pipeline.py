import pytest

from pipetok import AddedToken, Encoding, Tokenizer, VocabularyError
from pipetok.config import RuntimeConfig
from pipetok.errors import SequenceTooShort
from pipetok.implementations import bert_wordpiece, byte_level_bpe
from pipetok.models import BPE
from pipetok.pre_tokenizers import ByteLevel, WhitespaceSplit

BERT_VOCAB = {
    "[PAD]": 0,
    "[UNK]": 1,
    "[CLS]": 2,
    "[SEP]": 3,
    "hello": 4,
    "world": 5,
    "!": 6,
    "un": 7,
    "##aff": 8,
    "##able": 9,
    "how": 10,
    "are": 11,
    "you": 12,
}


def _byte_level_vocab():
    vocab = {c: i for i, c in enumerate(ByteLevel.alphabet())}
    merges = [("H", "e"), ("He", "l"), ("Hel", "l"), ("Hell", "o")]
    merges += [("Ġ", "w"), ("Ġw", "o"), ("Ġwo", "r"), ("Ġwor", "l"), ("Ġworl", "d")]
    for a, b in merges:
        vocab[a + b] = len(vocab)
    return vocab, merges


def test_bert_encode():
    tokenizer = bert_wordpiece(BERT_VOCAB)
    encoding = tokenizer.encode("Hello World!")
    assert encoding.tokens == ["[CLS]", "hello", "world", "!", "[SEP]"]
    assert encoding.ids == [2, 4, 5, 6, 3]
    assert encoding.offsets == [(0, 0), (0, 5), (6, 11), (11, 12), (0, 0)]
    assert encoding.special_tokens_mask == [1, 0, 0, 0, 1]


@pytest.mark.parametrize("text", ["Hello World!", "  hello   world ", "\u00dcnaffable!", "how are you"])
def test_offsets_point_into_the_original(text):
    tokenizer = bert_wordpiece(BERT_VOCAB)
    encoding = tokenizer.encode(text)
    pieces = [text[s:e] for (s, e), special in zip(encoding.offsets, encoding.special_tokens_mask) if not special]
    assert "".join(pieces) == "".join(text.split())


def test_offsets_survive_accent_stripping():
    encoding = bert_wordpiece(BERT_VOCAB).encode("\u00dcnaffable", add_special_tokens=False)
    assert encoding.tokens == ["un", "##aff", "##able"]
    assert encoding.offsets == [(0, 2), (2, 5), (5, 9)]


def test_bert_pair():
    encoding = bert_wordpiece(BERT_VOCAB).encode("hello", "how are you")
    assert encoding.ids == [2, 4, 3, 10, 11, 12, 3]
    assert encoding.type_ids == [0, 0, 0, 1, 1, 1, 1]
    assert encoding.offsets[3:6] == [(0, 3), (4, 7), (8, 11)]


def test_unknown_word_becomes_unk():
    encoding = bert_wordpiece(BERT_VOCAB).encode("hello xyz", add_special_tokens=False)
    assert encoding.tokens == ["hello", "[UNK]"]
    assert encoding.offsets == [(0, 5), (6, 9)]


def test_decode_skips_special_tokens():
    tokenizer = bert_wordpiece(BERT_VOCAB)
    ids = tokenizer.encode("hello", "how are you").ids
    assert tokenizer.decode(ids) == "hello how are you"
    assert tokenizer.decode(ids, skip_special_tokens=False) == "[CLS] hello [SEP] how are you [SEP]"
    assert tokenizer.decode_batch([[4, 6], [7, 8, 9]]) == ["hello!", "unaffable"]


def test_truncation_budget_accounts_for_special_tokens():
    tokenizer = bert_wordpiece(BERT_VOCAB)
    tokenizer.enable_truncation(4)
    encoding = tokenizer.encode("hello world how are")
    assert encoding.ids == [2, 4, 5, 3]
    assert [o.ids for o in encoding.overflowing] == [[2, 10, 11, 3]]

    tokenizer.enable_truncation(2)
    with pytest.raises(SequenceTooShort):
        tokenizer.encode("hello world")

    tokenizer.no_truncation()
    assert len(tokenizer.encode("hello world how are")) == 6


def test_batch_longest_padding():
    tokenizer = bert_wordpiece(BERT_VOCAB)
    tokenizer.enable_padding(pad_id=0, pad_token="[PAD]")
    first, second = tokenizer.encode_batch(["hello", "hello world"])
    assert first.ids == [2, 4, 3, 0]
    assert first.attention_mask == [1, 1, 1, 0]
    assert len(second) == 4


def test_fixed_length_padding():
    tokenizer = bert_wordpiece(BERT_VOCAB)
    tokenizer.enable_padding(length=8, direction="left")
    encoding = tokenizer.encode("hello")
    assert len(encoding) == 8
    assert encoding.tokens[:5] == ["[PAD]"] * 5
    tokenizer.no_padding()
    assert len(tokenizer.encode("hello")) == 3


def test_encode_batch_with_pairs_matches_encode():
    tokenizer = bert_wordpiece(BERT_VOCAB)
    tokenizer.runtime = RuntimeConfig(parallelism=True, num_threads=4)
    inputs = [("hello", "how are you"), "hello world!", ("un", "are")] * 5
    batch = tokenizer.encode_batch(inputs)
    expected = [tokenizer.encode(*item) if isinstance(item, tuple) else tokenizer.encode(item) for item in inputs]
    assert [e.to_dict() for e in batch] == [e.to_dict() for e in expected]


def _strict_tokenizer():
    model = BPE({"a": 0, "b": 1, "ab": 2}, [("a", "b")])
    return Tokenizer(model, pre_tokenizer=WhitespaceSplit(), runtime=RuntimeConfig(parallelism=False))


def test_vocabulary_error_fails_the_batch():
    with pytest.raises(VocabularyError):
        _strict_tokenizer().encode_batch(["ab", "ax"])


def test_vocabulary_error_per_item():
    results = _strict_tokenizer().encode_batch(["ab", "ax", "b a"], return_exceptions=True)
    assert isinstance(results[0], Encoding)
    assert isinstance(results[1], VocabularyError)
    assert results[2].ids == [1, 0]


def test_no_pre_tokenizer_uses_the_whole_chunk():
    encoding = _strict_tokenizer().encode("abab", add_special_tokens=False)
    assert encoding.tokens == ["ab", "ab"]
    tokenizer = Tokenizer(BPE({"a": 0, "b": 1, "ab": 2}, [("a", "b")]))
    assert tokenizer.encode("abab").offsets == [(0, 2), (2, 4)]
    assert tokenizer.decode([2, 2]) == "ab ab"


def test_added_tokens_are_never_split():
    tokenizer = bert_wordpiece(BERT_VOCAB)
    assert tokenizer.add_tokens(["<new>", "hello"]) == 1
    assert tokenizer.token_to_id("<new>") == 13
    assert tokenizer.id_to_token(13) == "<new>"
    assert tokenizer.get_vocab_size() == 14
    assert tokenizer.get_vocab_size(with_added_tokens=False) == 13
    assert tokenizer.get_vocab()["<new>"] == 13

    text = "hello<new> world"
    encoding = tokenizer.encode(text, add_special_tokens=False)
    assert encoding.tokens == ["hello", "<new>", "world"]
    assert [text[s:e] for s, e in encoding.offsets] == ["hello", "<new>", "world"]
    assert tokenizer.decode(encoding.ids) == "hello <new> world"


def test_single_word_added_token():
    tokenizer = bert_wordpiece(BERT_VOCAB)
    tokenizer.add_tokens([AddedToken("how", single_word=True)])
    encoding = tokenizer.encode("showhow how", add_special_tokens=False)
    assert encoding.tokens == ["[UNK]", "how"]
    assert encoding.offsets == [(0, 7), (8, 11)]


def test_added_special_tokens_are_skipped_when_decoding():
    tokenizer = bert_wordpiece(BERT_VOCAB)
    tokenizer.add_special_tokens(["<mask>"])
    ids = tokenizer.encode("hello <mask>", add_special_tokens=False).ids
    assert ids == [4, 13]
    assert tokenizer.decode(ids) == "hello"


def test_byte_level_round_trip():
    vocab, merges = _byte_level_vocab()
    tokenizer = byte_level_bpe(vocab, merges)
    encoding = tokenizer.encode("Hello world")
    assert encoding.tokens == ["Hello", "Ġworld"]
    assert encoding.offsets == [(0, 5), (5, 11)]
    assert tokenizer.decode(encoding.ids) == "Hello world"


def test_byte_level_multibyte_offsets():
    vocab, merges = _byte_level_vocab()
    tokenizer = byte_level_bpe(vocab, merges)
    text = "h\u00e9llo"
    encoding = tokenizer.encode(text)
    assert encoding.tokens == ["h", "\u00c3", "\u00a9", "l", "l", "o"]
    assert encoding.offsets == [(0, 1), (1, 2), (1, 2), (2, 3), (3, 4), (4, 5)]
    assert tokenizer.decode(encoding.ids) == text


def test_byte_level_trim_offsets():
    vocab, merges = _byte_level_vocab()
    tokenizer = byte_level_bpe(vocab, merges, trim_offsets=True)
    assert tokenizer.encode("Hello world").offsets == [(0, 5), (6, 11)]


def test_empty_input():
    tokenizer = bert_wordpiece(BERT_VOCAB)
    assert tokenizer.encode("").tokens == ["[CLS]", "[SEP]"]
    assert tokenizer.encode("", add_special_tokens=False).is_empty()

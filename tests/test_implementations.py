import pytest

from pipetok import normalizers, processors
from pipetok.errors import BuildError
from pipetok.implementations import bert_wordpiece, byte_level_bpe
from pipetok.models import BPE, WordPiece


def test_bert_wordpiece_needs_sep_and_cls():
    with pytest.raises(BuildError):
        bert_wordpiece({"[UNK]": 0, "[CLS]": 1})
    with pytest.raises(BuildError):
        bert_wordpiece({"[UNK]": 0, "[SEP]": 1})


def test_bert_wordpiece_without_special_tokens():
    tokenizer = bert_wordpiece({"[UNK]": 0, "a": 1}, add_special_tokens=False)
    assert tokenizer.post_processor is None
    assert isinstance(tokenizer.model, WordPiece)
    assert tokenizer.encode("A").tokens == ["a"]


def test_bert_wordpiece_processor():
    tokenizer = bert_wordpiece({"[UNK]": 0, "[SEP]": 1, "[CLS]": 2})
    assert tokenizer.post_processor == processors.BertProcessing(("[SEP]", 1), ("[CLS]", 2))


def test_empty_models():
    assert bert_wordpiece().get_vocab_size() == 0
    assert byte_level_bpe().get_vocab_size() == 0


def test_byte_level_bpe_normalizer():
    assert byte_level_bpe().normalizer == normalizers.NFKC()
    tokenizer = byte_level_bpe(lowercase=True, dropout=0.5)
    assert tokenizer.normalizer == normalizers.Sequence([normalizers.NFKC(), normalizers.Lowercase()])
    assert isinstance(tokenizer.model, BPE)
    assert tokenizer.model.dropout == 0.5

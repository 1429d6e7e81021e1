import pytest

from pipetok.config import RuntimeConfig
from pipetok.encoding import Encoding
from pipetok.errors import SecondSequenceNotProvided, SequenceTooShort, TruncationError
from pipetok.models import Token
from pipetok.utils import (
    PaddingDirection,
    PaddingParams,
    TruncationParams,
    TruncationStrategy,
    pad_encodings,
    truncate_encodings,
)


def _encoding(n):
    return Encoding.from_tokens([Token(i + 1, f"t{i}", (i, i + 1)) for i in range(n)])


def test_zero_max_length_is_noop():
    encoding, pair = _encoding(10), _encoding(10)
    truncate_encodings(encoding, pair, TruncationParams(max_length=0))
    assert len(encoding) == 10 and len(pair) == 10
    assert not encoding.overflowing


def test_short_enough_is_noop():
    encoding, _ = truncate_encodings(_encoding(3), None, TruncationParams(max_length=3))
    assert len(encoding) == 3


def test_longest_first_reduces_longer_sequence():
    encoding, pair = truncate_encodings(_encoding(5), _encoding(3), TruncationParams(max_length=6))
    assert (len(encoding), len(pair)) == (3, 3)
    assert [o.ids for o in encoding.overflowing] == [[4, 5]]


def test_longest_first_tie_keeps_first():
    encoding, pair = truncate_encodings(_encoding(3), _encoding(3), TruncationParams(max_length=5))
    assert (len(encoding), len(pair)) == (3, 2)


def test_only_second_without_pair():
    with pytest.raises(SecondSequenceNotProvided):
        truncate_encodings(_encoding(5), None, TruncationParams(max_length=2, strategy="only_second"))


def test_only_first_too_short():
    params = TruncationParams(max_length=4, strategy=TruncationStrategy.ONLY_FIRST)
    with pytest.raises(SequenceTooShort):
        truncate_encodings(_encoding(2), _encoding(5), params)


def test_only_first_truncates_first():
    params = TruncationParams(max_length=5, strategy=TruncationStrategy.ONLY_FIRST, stride=1)
    encoding, pair = truncate_encodings(_encoding(5), _encoding(2), params)
    assert (len(encoding), len(pair)) == (3, 2)
    assert [o.ids for o in encoding.overflowing] == [[3, 4, 5]]


def test_batch_longest_padding():
    batch = [_encoding(2), _encoding(4), _encoding(1)]
    pad_encodings(batch, PaddingParams(), RuntimeConfig(parallelism=True, num_threads=2))
    assert [len(e) for e in batch] == [4, 4, 4]
    assert batch[0].attention_mask == [1, 1, 0, 0]
    assert batch[2].attention_mask == [1, 0, 0, 0]
    for encoding in batch:
        assert [m == 0 for m in encoding.attention_mask] == [t == "[PAD]" for t in encoding.tokens]


def test_padding_is_idempotent():
    params = PaddingParams(direction=PaddingDirection.LEFT, pad_id=7)
    batch = pad_encodings([_encoding(2), _encoding(3)], params)
    snapshot = [e.to_dict() for e in batch]
    pad_encodings(batch, params)
    assert [e.to_dict() for e in batch] == snapshot


def test_fixed_length_padding():
    batch = pad_encodings([_encoding(2)], PaddingParams(fixed_length=5), RuntimeConfig(parallelism=False))
    assert len(batch[0]) == 5


def test_empty_batch():
    assert pad_encodings([], PaddingParams()) == []


def test_params_round_trip():
    params = TruncationParams(max_length=8, strategy="only_second", stride=2)
    assert TruncationParams.from_dict(params.to_dict()) == params
    padding = PaddingParams(fixed_length=16, direction="left")
    assert PaddingParams.from_dict(padding.to_dict()) == padding


def test_longest_first_stride_not_smaller_than_target():
    encoding, pair = _encoding(3), _encoding(3)
    with pytest.raises(SequenceTooShort):
        truncate_encodings(encoding, pair, TruncationParams(max_length=4, stride=2))
    assert (len(encoding), len(pair)) == (3, 3)


def test_only_second_stride_not_smaller_than_target():
    params = TruncationParams(max_length=4, strategy="only_second", stride=1)
    with pytest.raises(TruncationError):
        truncate_encodings(_encoding(3), _encoding(3), params)

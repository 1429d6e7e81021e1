"""Ready-made pipelines for the two common tokenizer families."""

from __future__ import annotations

from pipetok import decoders, normalizers, pre_tokenizers, processors
from pipetok.errors import BuildError
from pipetok.models import BPE, WordPiece
from pipetok.tokenizer import Tokenizer


def bert_wordpiece(
    vocab: dict[str, int] | None = None,
    unk_token: str = "[UNK]",
    sep_token: str = "[SEP]",
    cls_token: str = "[CLS]",
    pad_token: str = "[PAD]",
    mask_token: str = "[MASK]",
    clean_text: bool = True,
    handle_chinese_chars: bool = True,
    strip_accents: bool = True,
    lowercase: bool = True,
    wordpieces_prefix: str = "##",
    add_special_tokens: bool = True,
) -> Tokenizer:
    """BERT: BertNormalizer, BertPreTokenizer, WordPiece and ``[CLS] ... [SEP]``.

    With a vocabulary and `add_special_tokens`, both `sep_token` and
    `cls_token` must be in it.
    """
    model = WordPiece(vocab, unk_token=unk_token, continuing_subword_prefix=wordpieces_prefix)
    tokenizer = Tokenizer(
        model,
        normalizer=normalizers.BertNormalizer(
            clean_text=clean_text,
            handle_chinese_chars=handle_chinese_chars,
            strip_accents=strip_accents,
            lowercase=lowercase,
        ),
        pre_tokenizer=pre_tokenizers.BertPreTokenizer(),
        decoder=decoders.WordPiece(prefix=wordpieces_prefix),
    )

    if vocab and add_special_tokens:
        sep_id = model.token_to_id(sep_token)
        if sep_id is None:
            raise BuildError(f"sep_token {sep_token!r} not found in the vocabulary")
        cls_id = model.token_to_id(cls_token)
        if cls_id is None:
            raise BuildError(f"cls_token {cls_token!r} not found in the vocabulary")
        tokenizer.post_processor = processors.BertProcessing((sep_token, sep_id), (cls_token, cls_id))

    candidates = (unk_token, sep_token, cls_token, pad_token, mask_token)
    specials = [t for t in candidates if model.token_to_id(t) is not None]
    tokenizer.add_special_tokens(specials)
    return tokenizer


def byte_level_bpe(
    vocab: dict[str, int] | None = None,
    merges: list[tuple[str, str]] | None = None,
    add_prefix_space: bool = False,
    lowercase: bool = False,
    dropout: float | None = None,
    continuing_subword_prefix: str | None = None,
    end_of_word_suffix: str | None = None,
    trim_offsets: bool = False,
) -> Tokenizer:
    """GPT-2 style byte-level BPE with an NFKC normalizer."""
    model = BPE(
        vocab,
        merges,
        dropout=dropout,
        continuing_subword_prefix=continuing_subword_prefix,
        end_of_word_suffix=end_of_word_suffix,
    )
    if lowercase:
        normalizer: normalizers.Normalizer = normalizers.Sequence([normalizers.NFKC(), normalizers.Lowercase()])
    else:
        normalizer = normalizers.NFKC()
    return Tokenizer(
        model,
        normalizer=normalizer,
        pre_tokenizer=pre_tokenizers.ByteLevel(add_prefix_space=add_prefix_space),
        post_processor=processors.ByteLevel(trim_offsets=trim_offsets, add_prefix_space=add_prefix_space),
        decoder=decoders.ByteLevel(),
    )

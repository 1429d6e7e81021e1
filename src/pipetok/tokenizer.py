"""The Tokenizer: runs the full pipeline and owns its stages.

    input ─► added-token split ─► normalizer ─► pre-tokenizer ─► model
          ─► truncation ─► post-processor ─► padding ─► Encoding

Offsets produced along the way are converted back to the caller's input, so
``sequence[start:end]`` is always the text a token came from.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import replace
from pathlib import Path
from typing import Any

from pipetok import decoders, models, normalizers, pre_tokenizers, processors
from pipetok.added_vocabulary import AddedToken, AddedVocabulary
from pipetok.config import PipelineConfig, RuntimeConfig
from pipetok.decoders import Decoder
from pipetok.encoding import Encoding, PaddingDirection
from pipetok.errors import SequenceTooShort, VocabularyError
from pipetok.models.base import Model, Token
from pipetok.normalized import NormalizedString
from pipetok.normalizers import Normalizer
from pipetok.pre_tokenizers import PreTokenizer
from pipetok.processors import PostProcessor, default_process
from pipetok.utils.logging import get_logger
from pipetok.utils.parallelism import parallel_map
from pipetok.utils.serialization import read_document, write_document
from pipetok.utils.truncation import (
    PaddingParams,
    TruncationParams,
    TruncationStrategy,
    pad_encodings,
    truncate_encodings,
)

logger = get_logger(__name__)

EncodeInput = str | tuple[str, str] | list[str]


class Tokenizer:
    def __init__(
        self,
        model: Model,
        normalizer: Normalizer | None = None,
        pre_tokenizer: PreTokenizer | None = None,
        post_processor: PostProcessor | None = None,
        decoder: Decoder | None = None,
        runtime: RuntimeConfig | None = None,
    ) -> None:
        self.model = model
        self.normalizer = normalizer
        self.pre_tokenizer = pre_tokenizer
        self.post_processor = post_processor
        self.decoder = decoder
        self.runtime = runtime
        self._truncation: TruncationParams | None = None
        self._padding: PaddingParams | None = None
        self._added = AddedVocabulary()

    def __repr__(self) -> str:
        return (
            f"Tokenizer(model={self.model!r}, normalizer={self.normalizer!r}, "
            f"pre_tokenizer={self.pre_tokenizer!r}, post_processor={self.post_processor!r}, "
            f"decoder={self.decoder!r})"
        )

    # -- truncation / padding ------------------------------------------------

    @property
    def truncation(self) -> TruncationParams | None:
        return self._truncation

    @property
    def padding(self) -> PaddingParams | None:
        return self._padding

    def enable_truncation(
        self,
        max_length: int,
        stride: int = 0,
        strategy: TruncationStrategy | str = TruncationStrategy.LONGEST_FIRST,
    ) -> None:
        self._truncation = TruncationParams(max_length=max_length, strategy=strategy, stride=stride)

    def no_truncation(self) -> None:
        self._truncation = None

    def enable_padding(
        self,
        direction: PaddingDirection | str = PaddingDirection.RIGHT,
        pad_id: int = 0,
        pad_type_id: int = 0,
        pad_token: str = "[PAD]",
        length: int | None = None,
    ) -> None:
        """Pad to `length`, or to the longest encoding of each batch when it is None."""
        self._padding = PaddingParams(
            fixed_length=length,
            direction=direction,
            pad_id=pad_id,
            pad_type_id=pad_type_id,
            pad_token=pad_token,
        )

    def no_padding(self) -> None:
        self._padding = None

    # -- vocabulary ----------------------------------------------------------

    def add_tokens(self, tokens: Iterable[str | AddedToken]) -> int:
        return self._added.add(tokens, self.model)

    def add_special_tokens(self, tokens: Iterable[str | AddedToken]) -> int:
        return self._added.add(tokens, self.model, special=True)

    def token_to_id(self, token: str) -> int | None:
        token_id = self._added.token_to_id(token)
        if token_id is not None:
            return token_id
        return self.model.token_to_id(token)

    def id_to_token(self, token_id: int) -> str | None:
        token = self._added.id_to_token(token_id)
        if token is not None:
            return token
        return self.model.id_to_token(token_id)

    def get_vocab(self, with_added_tokens: bool = True) -> dict[str, int]:
        vocab = self.model.get_vocab()
        if with_added_tokens:
            vocab.update(self._added.get_vocab())
        return vocab

    def get_vocab_size(self, with_added_tokens: bool = True) -> int:
        size = self.model.get_vocab_size()
        if with_added_tokens:
            size += len(self._added)
        return size

    # -- encoding ------------------------------------------------------------

    def _encode_chunk(self, text: str, shift: int, type_id: int) -> Encoding:
        normalized = NormalizedString(text)
        if self.normalizer is not None:
            self.normalizer.normalize(normalized)

        if self.pre_tokenizer is not None:
            words = self.pre_tokenizer.pre_tokenize(normalized)
        elif len(normalized):
            words = [(normalized.get(), (0, len(normalized)))]
        else:
            words = []

        tokens: list[Token] = []
        for word, (word_start, _word_end) in words:
            for token in self.model.tokenize(word):
                start, end = normalized.convert_offsets(
                    word_start + token.offsets[0], word_start + token.offsets[1]
                )
                tokens.append(Token(token.id, token.value, (start + shift, end + shift)))
        return Encoding.from_tokens(tokens, type_id)

    def _encode_sequence(self, sequence: str, type_id: int) -> Encoding:
        encodings: list[Encoding] = []
        for piece, offsets, token_id in self._added.split(sequence):
            if token_id is None:
                encodings.append(self._encode_chunk(piece, offsets[0], type_id))
            else:
                encodings.append(Encoding.from_tokens([Token(token_id, piece, offsets)], type_id))
        if len(encodings) == 1:
            return encodings[0]
        return Encoding.merge(encodings)

    def encode(self, sequence: str, pair: str | None = None, add_special_tokens: bool = True) -> Encoding:
        """Encode one sequence, or a pair of sequences, into a single Encoding.

        Raises VocabularyError when a word cannot be represented by the model.
        """
        encoding = self._encode_sequence(sequence, 0)
        pair_encoding = self._encode_sequence(pair, 1) if pair is not None else None
        return self.post_process(encoding, pair_encoding, add_special_tokens)

    def encode_batch(
        self,
        inputs: Sequence[EncodeInput],
        add_special_tokens: bool = True,
        return_exceptions: bool = False,
    ) -> list[Encoding | VocabularyError]:
        """Encode every input in parallel, then apply batch padding.

        With `return_exceptions`, the VocabularyError of a failing input is put
        in its slot instead of being raised; the other inputs are still encoded.
        """

        def _encode(item: EncodeInput) -> Encoding | VocabularyError:
            if isinstance(item, str):
                sequence, pair = item, None
            else:
                sequence, pair = item
            try:
                return self.encode(sequence, pair, add_special_tokens)
            except VocabularyError as exc:
                if return_exceptions:
                    return exc
                raise

        results = parallel_map(_encode, inputs, self.runtime)
        if self._padding is not None and self._padding.is_batch_longest:
            pad_encodings([r for r in results if isinstance(r, Encoding)], self._padding, self.runtime)
        return results

    def post_process(
        self,
        encoding: Encoding,
        pair_encoding: Encoding | None = None,
        add_special_tokens: bool = True,
    ) -> Encoding:
        """Truncate, add special tokens and pad to a fixed length, in that order."""
        if self._truncation is not None:
            params = self._truncation
            if add_special_tokens and self.post_processor is not None and params.max_length > 0:
                n_added = self.post_processor.added_tokens(pair_encoding is not None)
                if n_added:
                    if params.max_length <= n_added:
                        raise SequenceTooShort()
                    params = replace(params, max_length=params.max_length - n_added)
            encoding, pair_encoding = truncate_encodings(encoding, pair_encoding, params)

        if self.post_processor is not None:
            final = self.post_processor.process(encoding, pair_encoding, add_special_tokens)
        else:
            final = default_process(encoding, pair_encoding)

        if self._padding is not None and not self._padding.is_batch_longest:
            pad_encodings([final], self._padding, self.runtime)
        return final

    # -- decoding ------------------------------------------------------------

    def decode(self, ids: Iterable[int], skip_special_tokens: bool = True) -> str:
        tokens: list[str] = []
        for token_id in ids:
            token = self.id_to_token(token_id)
            if token is None:
                continue
            if skip_special_tokens and self._added.is_special(token):
                continue
            tokens.append(token)
        if self.decoder is None:
            return " ".join(tokens)
        return self.decoder.decode(tokens)

    def decode_batch(self, sequences: Sequence[Iterable[int]], skip_special_tokens: bool = True) -> list[str]:
        return parallel_map(lambda ids: self.decode(ids, skip_special_tokens), sequences, self.runtime)

    # -- persistence ---------------------------------------------------------

    def to_config(self) -> PipelineConfig:
        return PipelineConfig(
            model=self.model.to_dict(),
            normalizer=self.normalizer.to_dict() if self.normalizer is not None else None,
            pre_tokenizer=self.pre_tokenizer.to_dict() if self.pre_tokenizer is not None else None,
            post_processor=self.post_processor.to_dict() if self.post_processor is not None else None,
            decoder=self.decoder.to_dict() if self.decoder is not None else None,
            truncation=self._truncation.to_dict() if self._truncation is not None else None,
            padding=self._padding.to_dict() if self._padding is not None else None,
            added_tokens=self._added.to_list(),
        )

    def to_dict(self) -> dict[str, Any]:
        return self.to_config().to_dict()

    @classmethod
    def from_config(cls, config: PipelineConfig, runtime: RuntimeConfig | None = None) -> "Tokenizer":
        tokenizer = cls(
            models.from_dict(config.model),
            normalizer=normalizers.from_dict(config.normalizer) if config.normalizer else None,
            pre_tokenizer=pre_tokenizers.from_dict(config.pre_tokenizer) if config.pre_tokenizer else None,
            post_processor=processors.from_dict(config.post_processor) if config.post_processor else None,
            decoder=decoders.from_dict(config.decoder) if config.decoder else None,
            runtime=runtime,
        )
        if config.truncation is not None:
            tokenizer._truncation = TruncationParams.from_dict(config.truncation)
        if config.padding is not None:
            tokenizer._padding = PaddingParams.from_dict(config.padding)
        # re-adding in the saved order reproduces the same ids
        for payload in config.added_tokens:
            tokenizer._added.add([AddedToken.from_dict(payload)], tokenizer.model)
        return tokenizer

    @classmethod
    def from_dict(cls, payload: dict[str, Any], runtime: RuntimeConfig | None = None) -> "Tokenizer":
        return cls.from_config(PipelineConfig.from_dict(payload), runtime)

    def to_str(self, pretty: bool = False) -> str:
        if pretty:
            return self.to_config().to_json()
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_str(cls, s: str) -> "Tokenizer":
        return cls.from_config(PipelineConfig.from_json(s))

    def save(self, path: str | Path) -> Path:
        """Write the whole pipeline as JSON, or YAML for a `.yaml`/`.yml` path."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        write_document(path, self.to_dict())
        logger.info("Saved tokenizer to %s", path)
        return path

    @classmethod
    def from_file(cls, path: str | Path, runtime: RuntimeConfig | None = None) -> "Tokenizer":
        path = Path(path)
        tokenizer = cls.from_dict(read_document(path), runtime)
        logger.debug("Loaded tokenizer from %s (%d tokens)", path, tokenizer.get_vocab_size())
        return tokenizer

    def __getstate__(self) -> dict[str, Any]:
        return {"pipeline": self.to_dict(), "runtime": self.runtime}

    def __setstate__(self, state: dict[str, Any]) -> None:
        restored = Tokenizer.from_dict(state["pipeline"], state["runtime"])
        self.__dict__.update(restored.__dict__)

"""Runtime and pipeline configuration."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from typing import Any

PARALLELISM_ENV = "PIPETOK_PARALLELISM"
NUM_THREADS_ENV = "PIPETOK_NUM_THREADS"
PIPELINE_SCHEMA_VERSION = "pipetok.v1"

_FALSY = {"0", "false", "off", "no"}


@dataclass(frozen=True)
class RuntimeConfig:
    """How batch operations are scheduled.

    `parallelism=False` runs every batch sequentially in the calling thread.
    `num_threads=None` lets the pool size follow `os.cpu_count()`.
    """

    parallelism: bool = True
    num_threads: int | None = None

    def __post_init__(self) -> None:
        if self.num_threads is not None and self.num_threads < 1:
            raise ValueError("num_threads must be a positive integer")

    def max_workers(self, n_items: int) -> int:
        if not self.parallelism or n_items <= 1:
            return 1
        limit = self.num_threads or os.cpu_count() or 1
        return max(1, min(limit, n_items))

    @staticmethod
    def from_env() -> "RuntimeConfig":
        raw_parallelism = os.environ.get(PARALLELISM_ENV)
        parallelism = True
        if raw_parallelism is not None:
            parallelism = raw_parallelism.strip().lower() not in _FALSY
        raw_threads = os.environ.get(NUM_THREADS_ENV)
        num_threads = int(raw_threads) if raw_threads else None
        return RuntimeConfig(parallelism=parallelism, num_threads=num_threads)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "RuntimeConfig":
        return RuntimeConfig(**d)


@dataclass(frozen=True)
class PipelineConfig:
    """Serialized shape of a whole tokenizer.

    Each stage entry is the tagged payload produced by that stage's
    ``to_dict``; ``None`` means the stage is not set.
    """

    model: dict[str, Any]
    normalizer: dict[str, Any] | None = None
    pre_tokenizer: dict[str, Any] | None = None
    post_processor: dict[str, Any] | None = None
    decoder: dict[str, Any] | None = None
    truncation: dict[str, Any] | None = None
    padding: dict[str, Any] | None = None
    added_tokens: list[dict[str, Any]] = field(default_factory=list)
    schema_version: str = PIPELINE_SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2, sort_keys=True)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "PipelineConfig":
        if "model" not in d:
            raise ValueError("Pipeline config is missing the 'model' entry")
        version = d.get("schema_version", PIPELINE_SCHEMA_VERSION)
        if version != PIPELINE_SCHEMA_VERSION:
            raise ValueError(f"Unsupported pipeline schema version: {version}")
        return PipelineConfig(
            model=dict(d["model"]),
            normalizer=d.get("normalizer"),
            pre_tokenizer=d.get("pre_tokenizer"),
            post_processor=d.get("post_processor"),
            decoder=d.get("decoder"),
            truncation=d.get("truncation"),
            padding=d.get("padding"),
            added_tokens=list(d.get("added_tokens") or []),
            schema_version=version,
        )

    @staticmethod
    def from_json(s: str) -> "PipelineConfig":
        return PipelineConfig.from_dict(json.loads(s))

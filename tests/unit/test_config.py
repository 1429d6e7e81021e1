import pytest

from pipetok.config import PIPELINE_SCHEMA_VERSION, PipelineConfig, RuntimeConfig


def test_runtime_from_env(monkeypatch):
    monkeypatch.setenv("PIPETOK_PARALLELISM", "false")
    monkeypatch.setenv("PIPETOK_NUM_THREADS", "3")
    cfg = RuntimeConfig.from_env()
    assert cfg == RuntimeConfig(parallelism=False, num_threads=3)
    assert cfg.max_workers(10) == 1


def test_runtime_defaults(monkeypatch):
    monkeypatch.delenv("PIPETOK_PARALLELISM", raising=False)
    monkeypatch.delenv("PIPETOK_NUM_THREADS", raising=False)
    assert RuntimeConfig.from_env() == RuntimeConfig()


def test_max_workers():
    cfg = RuntimeConfig(num_threads=4)
    assert cfg.max_workers(1) == 1
    assert cfg.max_workers(2) == 2
    assert cfg.max_workers(100) == 4
    with pytest.raises(ValueError):
        RuntimeConfig(num_threads=0)


def test_pipeline_config_json_round_trip():
    cfg = PipelineConfig(model={"type": "WordPiece", "vocab": {"a": 0}}, added_tokens=[{"content": "<x>"}])
    restored = PipelineConfig.from_json(cfg.to_json())
    assert restored == cfg
    assert restored.schema_version == PIPELINE_SCHEMA_VERSION


def test_pipeline_config_validation():
    with pytest.raises(ValueError):
        PipelineConfig.from_dict({"normalizer": None})
    with pytest.raises(ValueError):
        PipelineConfig.from_dict({"model": {"type": "BPE"}, "schema_version": "pipetok.v0"})

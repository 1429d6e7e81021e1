import logging

import pytest

from pipetok.utils.logging import configure_logging, get_logger
from pipetok.utils.serialization import read_document, read_yaml, write_document

PAYLOAD = {"model": {"type": "BPE", "merges": [["a", "b"]], "vocab": {"a": 0, "b": 1, "ab": 2}}, "name": "Ġx"}


@pytest.mark.parametrize("name", ["pipeline.json", "pipeline.yaml", "pipeline.yml"])
def test_document_round_trip(tmp_path, name):
    path = tmp_path / name
    write_document(path, PAYLOAD)
    assert read_document(path) == PAYLOAD


def test_yaml_must_be_a_mapping(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_yaml(path)


def test_logging_helpers(monkeypatch):
    monkeypatch.setenv("PIPETOK_LOG_LEVEL", "debug")
    configure_logging()
    logger = get_logger("pipetok.tests")
    assert isinstance(logger, logging.Logger)
    assert logger.name == "pipetok.tests"

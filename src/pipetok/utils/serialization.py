"""Serialization utilities."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

YAML_SUFFIXES = {".yaml", ".yml"}


def write_json(path: Path, payload: dict[str, object]) -> None:
    text = json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)
    path.write_text(text + "\n", encoding="utf-8")


def read_json(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


def write_yaml(path: Path, payload: dict[str, object]) -> None:
    text = yaml.safe_dump(payload, allow_unicode=True, sort_keys=True)
    path.write_text(text, encoding="utf-8")


def read_yaml(path: Path) -> dict[str, Any]:
    payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a mapping at the top of {path}")
    return payload


def write_document(path: Path, payload: dict[str, object]) -> None:
    """Write JSON, or YAML when the suffix asks for it."""
    if path.suffix.lower() in YAML_SUFFIXES:
        write_yaml(path, payload)
    else:
        write_json(path, payload)


def read_document(path: Path) -> dict[str, Any]:
    if path.suffix.lower() in YAML_SUFFIXES:
        return read_yaml(path)
    return read_json(path)

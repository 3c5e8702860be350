from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml


_DATA_DIR = Path(__file__).resolve().parents[1] / "data"


class FixtureError(AssertionError):
    pass


def fixture_path(name: str) -> Path:
    return _DATA_DIR / name


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise FixtureError(f"Invalid YAML root object at {path}")
    return data


def load_sample_institution() -> Dict[str, Any]:
    return _load_yaml(fixture_path("sample_institution.yaml"))

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Type

from siee.services.shared.errors import UnsupportedStrategyError


def assert_exhaustive(table: Dict, enum_cls: Type[Enum]) -> None:
    missing = [m.value for m in enum_cls if m not in table]
    if missing:
        raise UnsupportedStrategyError(f"{enum_cls.__name__} without strategy: {missing}")


def lookup(table: Dict, tag: Any):
    try:
        return table[tag]
    except KeyError:
        raise UnsupportedStrategyError(f"Unsupported strategy: {tag!r}") from None

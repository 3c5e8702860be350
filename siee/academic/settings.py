from __future__ import annotations

from dataclasses import dataclass
import os

from .components import DEFAULT_DECIMALS
from .promotion import PromotionPolicy


def _env_bool(name: str, default: bool = False) -> bool:
    val = str(os.environ.get(name, "1" if default else "0")).strip().lower()
    return val in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except Exception:
        return int(default)


@dataclass(frozen=True)
class EngineSettings:
    grade_decimals: int = DEFAULT_DECIMALS
    max_failed_areas: int = 0
    conditional_blocks_promotion: bool = True
    use_final_components: bool = False

    def promotion_policy(self) -> PromotionPolicy:
        return PromotionPolicy(
            max_failed_areas=self.max_failed_areas,
            conditional_blocks_promotion=self.conditional_blocks_promotion,
        )


def get_engine_settings() -> EngineSettings:
    return EngineSettings(
        grade_decimals=max(min(_env_int("SIEE_GRADE_DECIMALS", DEFAULT_DECIMALS), 6), 0),
        max_failed_areas=max(_env_int("SIEE_MAX_FAILED_AREAS", 0), 0),
        conditional_blocks_promotion=_env_bool("SIEE_CONDITIONAL_BLOCKS_PROMOTION", default=True),
        use_final_components=_env_bool("SIEE_USE_FINAL_COMPONENTS", default=False),
    )

"""Per-level / per-grade configuration overrides."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Tuple

from .types import AreaConfig, Subject

# (area_id, academic_level_id) and (area_id, grade_id) keyed overrides
LevelOverrides = Mapping[Tuple[str, str], AreaConfig]
GradeOverrides = Mapping[Tuple[str, str], AreaConfig]


def resolve_area_config(
    area_id: str,
    global_config: AreaConfig,
    *,
    academic_level_id: Optional[str] = None,
    grade_id: Optional[str] = None,
    level_overrides: Optional[LevelOverrides] = None,
    grade_overrides: Optional[GradeOverrides] = None,
) -> AreaConfig:
    """Precedence: grade override > level override > global default."""
    if grade_id and grade_overrides:
        hit = grade_overrides.get((area_id, grade_id))
        if hit is not None:
            return hit
    if academic_level_id and level_overrides:
        hit = level_overrides.get((area_id, academic_level_id))
        if hit is not None:
            return hit
    return global_config


def subject_applies(subject: Subject, academic_level_id: Optional[str], grade_id: Optional[str]) -> bool:
    if subject.grade_id is not None:
        return subject.grade_id == grade_id
    if subject.academic_level_id is not None:
        return subject.academic_level_id == academic_level_id
    return True


def subjects_in_scope(
    subjects: Iterable[Subject],
    academic_level_id: Optional[str],
    grade_id: Optional[str],
) -> List[Subject]:
    return [s for s in subjects if subject_applies(s, academic_level_id, grade_id)]

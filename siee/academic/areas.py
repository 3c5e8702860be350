"""
Area aggregation: subject final grades -> area average and approval.

Calculation method and approval criteria are independent axes; each tag is
dispatched through a table that must cover its whole enum.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .components import DEFAULT_DECIMALS, round_grade, weighted_sum
from .dispatch import assert_exhaustive, lookup
from .types import (
    AcademicLevel,
    ApprovalCriteria,
    Area,
    AreaConfig,
    AreaResult,
    AreaType,
    CalculationMethod,
    Issue,
    IssueCode,
    RecoveryType,
    Severity,
    SubjectGrade,
)


# ---------------------------------------------------------------------------
# Area types
# ---------------------------------------------------------------------------

AREA_TYPE_AFFECTS_PROMOTION: Dict[AreaType, bool] = {
    AreaType.EVALUABLE: True,
    AreaType.INFORMATIVE: False,
    AreaType.FORMATIVE: False,
}


# ---------------------------------------------------------------------------
# Dominant subject
# ---------------------------------------------------------------------------


def find_dominant(area_id: str, subjects: Sequence[SubjectGrade]) -> Tuple[Optional[SubjectGrade], List[Issue]]:
    dominants = [s for s in subjects if s.is_dominant]
    if len(dominants) == 1:
        return dominants[0], []
    if not dominants:
        return None, [
            Issue(
                code=IssueCode.MISSING_DOMINANT_SUBJECT,
                severity=Severity.ERROR,
                message="Area tidak memiliki mata pelajaran dominan",
                entity="AREA",
                entity_id=area_id,
            )
        ]
    ids = ", ".join(s.subject_id for s in dominants)
    return None, [
        Issue(
            code=IssueCode.MULTIPLE_DOMINANT_SUBJECTS,
            severity=Severity.ERROR,
            message=f"Area memiliki lebih dari satu mata pelajaran dominan: {ids}",
            entity="AREA",
            entity_id=area_id,
        )
    ]


# ---------------------------------------------------------------------------
# Calculation methods
# ---------------------------------------------------------------------------

CalcFn = Callable[[str, Sequence[SubjectGrade], Optional[int]], Tuple[Optional[float], List[Issue]]]


def _calc_average(area_id: str, subjects: Sequence[SubjectGrade], decimals: Optional[int]):
    total = sum(float(s.final_grade) for s in subjects)
    avg = total / len(subjects)
    return round_grade(avg, decimals), []


def _calc_weighted(area_id: str, subjects: Sequence[SubjectGrade], decimals: Optional[int]):
    pairs = [(s.final_grade, s.weight_percentage) for s in subjects]
    return weighted_sum(pairs, decimals), []


def _calc_dominant(area_id: str, subjects: Sequence[SubjectGrade], decimals: Optional[int]):
    dominant, issues = find_dominant(area_id, subjects)
    if dominant is None:
        return None, issues
    return float(dominant.final_grade), []


CALCULATION_METHODS: Dict[CalculationMethod, CalcFn] = {
    CalculationMethod.AVERAGE: _calc_average,
    CalculationMethod.WEIGHTED: _calc_weighted,
    CalculationMethod.DOMINANT: _calc_dominant,
}


def calculate_area_average(
    area_id: str,
    subjects: Sequence[SubjectGrade],
    method: CalculationMethod,
    decimals: Optional[int] = DEFAULT_DECIMALS,
) -> Tuple[Optional[float], List[Issue]]:
    if not subjects:
        return None, []
    return lookup(CALCULATION_METHODS, method)(area_id, subjects, decimals)


# ---------------------------------------------------------------------------
# Approval criteria
# ---------------------------------------------------------------------------

ApprovalFn = Callable[[Optional[float], Sequence[SubjectGrade], float], bool]


def _approve_by_average(average: Optional[float], subjects: Sequence[SubjectGrade], min_passing: float) -> bool:
    return average is not None and average >= min_passing


def _approve_all_subjects(average: Optional[float], subjects: Sequence[SubjectGrade], min_passing: float) -> bool:
    return bool(subjects) and all(s.final_grade >= min_passing for s in subjects)


def _approve_by_dominant(average: Optional[float], subjects: Sequence[SubjectGrade], min_passing: float) -> bool:
    dominants = [s for s in subjects if s.is_dominant]
    return len(dominants) == 1 and dominants[0].final_grade >= min_passing


APPROVAL_CRITERIA: Dict[ApprovalCriteria, ApprovalFn] = {
    ApprovalCriteria.AREA_AVERAGE: _approve_by_average,
    ApprovalCriteria.ALL_SUBJECTS: _approve_all_subjects,
    ApprovalCriteria.DOMINANT_SUBJECT: _approve_by_dominant,
}


for _table, _enum in (
    (AREA_TYPE_AFFECTS_PROMOTION, AreaType),
    (CALCULATION_METHODS, CalculationMethod),
    (APPROVAL_CRITERIA, ApprovalCriteria),
):
    assert_exhaustive(_table, _enum)


def is_area_approved(
    average: Optional[float],
    subjects: Sequence[SubjectGrade],
    config: AreaConfig,
    min_passing: float,
) -> bool:
    approved = lookup(APPROVAL_CRITERIA, config.approval_criteria)(average, subjects, min_passing)
    # Override always has the final say.
    if config.fail_if_any_subject_fails and any(s.final_grade < min_passing for s in subjects):
        return False
    return approved


# ---------------------------------------------------------------------------
# Recovery requirement per subject
# ---------------------------------------------------------------------------


def subjects_requiring_recovery(
    subjects: Sequence[SubjectGrade],
    config: AreaConfig,
    min_passing: float,
    area_approved: bool,
) -> List[str]:
    """
    Mata pelajaran yang wajib ikut remedial menurut kriteria area.

    - Area lulus: tidak ada.
    - Recovery NONE: tidak ada, area tidak bisa diremedial.
    - fail_if_any / AREA_AVERAGE / ALL_SUBJECTS: semua mata pelajaran yang gagal.
    - DOMINANT_SUBJECT: hanya mata pelajaran dominan bila gagal.
    """
    if area_approved or config.recovery_type == RecoveryType.NONE:
        return []
    failing = [s for s in subjects if s.final_grade < min_passing]
    if config.fail_if_any_subject_fails:
        return [s.subject_id for s in failing]
    if config.approval_criteria == ApprovalCriteria.DOMINANT_SUBJECT:
        return [s.subject_id for s in failing if s.is_dominant]
    return [s.subject_id for s in failing]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _needs_single_dominant(config: AreaConfig) -> bool:
    return (
        config.calculation_method == CalculationMethod.DOMINANT
        or config.approval_criteria == ApprovalCriteria.DOMINANT_SUBJECT
    )


def aggregate_area(
    area: Area,
    subjects: Sequence[SubjectGrade],
    config: AreaConfig,
    level: AcademicLevel,
    decimals: Optional[int] = DEFAULT_DECIMALS,
) -> AreaResult:
    if not lookup(AREA_TYPE_AFFECTS_PROMOTION, config.area_type):
        return AreaResult(
            area_id=area.id,
            area_type=config.area_type,
            area_average=None,
            is_approved=True,
            is_mandatory=area.is_mandatory,
            recovery_type=RecoveryType.NONE,
        )

    min_passing = float(level.min_passing_grade)
    result = AreaResult(
        area_id=area.id,
        area_type=config.area_type,
        area_average=None,
        is_approved=False,
        is_mandatory=area.is_mandatory,
        recovery_type=config.recovery_type,
    )

    if not subjects:
        result.issues.append(
            Issue(
                code=IssueCode.INCOMPLETE_GRADING,
                severity=Severity.WARNING,
                message="Area belum memiliki nilai mata pelajaran",
                entity="AREA",
                entity_id=area.id,
            )
        )
        return result

    if _needs_single_dominant(config):
        _, dominant_issues = find_dominant(area.id, subjects)
        if dominant_issues:
            result.issues.extend(dominant_issues)
            result.blocked = True
            return result

    average, issues = calculate_area_average(area.id, subjects, config.calculation_method, decimals)
    result.issues.extend(issues)
    result.area_average = average
    result.is_approved = is_area_approved(average, subjects, config, min_passing)
    result.failing_subject_ids = subjects_requiring_recovery(subjects, config, min_passing, result.is_approved)
    return result

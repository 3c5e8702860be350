from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from .types import (
    AcademicLevel,
    Classification,
    GradingScaleType,
    Issue,
    IssueCode,
    Severity,
)


def _unclassified(value: Any, level: AcademicLevel, reason: str) -> Classification:
    return Classification(
        score=value,
        issue=Issue(
            code=IssueCode.UNCLASSIFIED_SCORE,
            severity=Severity.WARNING,
            message=reason,
            entity="ACADEMIC_LEVEL",
            entity_id=level.id,
        ),
    )


def classify_score(score: Any, level: AcademicLevel) -> Classification:
    """
    Cari performance level untuk skor numerik.

    Bands dipindai sesuai urutan konfigurasi, band pertama yang memuat skor
    (inklusif di kedua ujung) menang. Skor di luar semua band menghasilkan
    Classification tanpa level beserta issue UNCLASSIFIED_SCORE.
    """
    try:
        s = float(score)
    except (TypeError, ValueError):
        return _unclassified(score, level, f"Nilai '{score}' bukan angka")

    for band in level.performance_levels:
        if band.contains(s):
            return Classification(score=s, level=band)
    return _unclassified(s, level, f"Nilai {s} di luar semua performance level")


def classify_qualitative(code: Any, level: AcademicLevel) -> Classification:
    normalized = str(code or "").strip().upper()
    for q in level.qualitative_levels:
        if q.code.strip().upper() == normalized:
            return Classification(score=code, qualitative_level=q)
    return _unclassified(code, level, f"Kode kualitatif '{code}' tidak dikenal")


def classify(value: Any, level: AcademicLevel) -> Classification:
    if level.grading_scale_type == GradingScaleType.QUALITATIVE:
        return classify_qualitative(value, level)
    return classify_score(value, level)


def get_scale_range(level: AcademicLevel) -> Tuple[float, float]:
    return float(level.min_grade), float(level.max_grade)


def validate_grade(score: Any, level: AcademicLevel) -> Dict[str, Any]:
    low, high = get_scale_range(level)
    try:
        s = float(score)
    except (TypeError, ValueError):
        return {"valid": False, "error": "Nilai harus berupa angka"}
    if s < low or s > high:
        return {"valid": False, "error": f"Nilai harus di antara {low:g} dan {high:g}"}
    return {"valid": True, "error": None}


def clamp_grade(score: float, level: AcademicLevel) -> float:
    low, high = get_scale_range(level)
    return max(low, min(high, float(score)))


def is_grade_approved(value: Any, level: AcademicLevel) -> bool:
    if level.grading_scale_type == GradingScaleType.QUALITATIVE:
        result = classify_qualitative(value, level)
        return bool(result.qualitative_level and result.qualitative_level.is_approved)
    try:
        return float(value) >= float(level.min_passing_grade)
    except (TypeError, ValueError):
        return False


def performance_code(score: Optional[float], level: AcademicLevel) -> Optional[str]:
    if score is None:
        return None
    return classify(score, level).code

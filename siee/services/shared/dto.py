from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple, TypedDict

from django.utils.dateparse import parse_datetime

from siee.academic.pipeline import EvaluationContext
from siee.academic.promotion import PromotionPolicy, RecoveryOutcome
from siee.academic.types import (
    AcademicLevel,
    AcademicTerm,
    AcademicYear,
    ApprovalCriteria,
    Area,
    AreaConfig,
    AreaType,
    CalculationMethod,
    EvaluationProcess,
    GradeRecord,
    GradingScaleType,
    PerformanceLevel,
    QualitativeLevel,
    RecoveryType,
    Subject,
    Subprocess,
    TermType,
    YearStatus,
)
from siee.services.lifecycle.period_window import GradingWindow

from .errors import ValidationError


class GradeRecordPayload(TypedDict, total=False):
    student_id: str
    subject_id: str
    term_id: str
    process_code: str
    subprocess_id: str
    activity_id: str
    score: Optional[float]


class AreaConfigPayload(TypedDict, total=False):
    area_type: str
    calculation_method: str
    approval_criteria: str
    recovery_type: str
    fail_if_any_subject_fails: bool


class EvaluationPayload(TypedDict, total=False):
    academic_level: Dict[str, Any]
    processes: List[Dict[str, Any]]
    terms: List[Dict[str, Any]]
    areas: List[Dict[str, Any]]
    subjects: List[Dict[str, Any]]
    area_config: AreaConfigPayload
    level_overrides: List[Dict[str, Any]]
    grade_overrides: List[Dict[str, Any]]
    grade_id: Optional[str]
    use_final_components: bool
    records: List[GradeRecordPayload]
    student_ids: List[str]
    outcomes: Dict[str, Dict[str, Dict[str, Any]]]


def _enum(enum_cls, raw: Any, default):
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return enum_cls(str(raw).strip().upper())
    except ValueError:
        raise ValidationError(f"{enum_cls.__name__} tidak valid: {raw}") from None


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _flag(raw: Any, default: Optional[bool] = False) -> Optional[bool]:
    """Boolean payload: bool, 0/1, atau string ya/tidak. Selain itu ditolak."""
    if raw is None or (isinstance(raw, str) and raw.strip() == ""):
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    val = str(raw).strip().lower()
    if val in _TRUE:
        return True
    if val in _FALSE:
        return False
    raise ValidationError(f"Nilai boolean tidak valid: {raw!r}")


def _req(data: Mapping[str, Any], key: str) -> Any:
    if key not in data or data[key] is None:
        raise ValidationError(f"Field '{key}' wajib diisi")
    return data[key]


def area_config_from_dict(data: Optional[Mapping[str, Any]]) -> AreaConfig:
    data = data or {}
    return AreaConfig(
        area_type=_enum(AreaType, data.get("area_type"), AreaType.EVALUABLE),
        calculation_method=_enum(CalculationMethod, data.get("calculation_method"), CalculationMethod.AVERAGE),
        approval_criteria=_enum(ApprovalCriteria, data.get("approval_criteria"), ApprovalCriteria.AREA_AVERAGE),
        recovery_type=_enum(RecoveryType, data.get("recovery_type"), RecoveryType.BY_SUBJECT),
        fail_if_any_subject_fails=_flag(data.get("fail_if_any_subject_fails")),
    )


def academic_level_from_dict(data: Mapping[str, Any]) -> AcademicLevel:
    return AcademicLevel(
        id=str(_req(data, "id")),
        grading_scale_type=_enum(GradingScaleType, data.get("grading_scale_type"), GradingScaleType.NUMERIC),
        min_grade=float(data.get("min_grade", 1.0)),
        max_grade=float(data.get("max_grade", 5.0)),
        min_passing_grade=float(data.get("min_passing_grade", 3.0)),
        performance_levels=tuple(
            PerformanceLevel(
                code=str(_req(p, "code")),
                min_score=float(_req(p, "min_score")),
                max_score=float(_req(p, "max_score")),
                order=int(p.get("order", 0)),
                is_approved=_flag(p.get("is_approved"), True),
                name=str(p.get("name", "")),
            )
            for p in data.get("performance_levels") or []
        ),
        qualitative_levels=tuple(
            QualitativeLevel(
                code=str(_req(q, "code")),
                is_approved=_flag(q.get("is_approved"), True),
                name=str(q.get("name", "")),
                order=int(q.get("order", 0)),
            )
            for q in data.get("qualitative_levels") or []
        ),
    )


def process_from_dict(data: Mapping[str, Any]) -> EvaluationProcess:
    return EvaluationProcess(
        code=str(_req(data, "code")),
        weight_percentage=float(_req(data, "weight_percentage")),
        subprocesses=tuple(
            Subprocess(
                id=str(_req(s, "id")),
                weight_percentage=float(_req(s, "weight_percentage")),
                number_of_grades=int(s.get("number_of_grades", 1)),
                order=int(s.get("order", 0)),
            )
            for s in data.get("subprocesses") or []
        ),
        allow_teacher_add_grades=_flag(data.get("allow_teacher_add_grades")),
        order=int(data.get("order", 0)),
    )


def term_from_dict(data: Mapping[str, Any]) -> AcademicTerm:
    return AcademicTerm(
        id=str(_req(data, "id")),
        weight_percentage=float(_req(data, "weight_percentage")),
        order=int(data.get("order", 0)),
        term_type=_enum(TermType, data.get("term_type"), TermType.PERIOD),
        name=str(data.get("name", "")),
    )


def subject_from_dict(data: Mapping[str, Any]) -> Subject:
    return Subject(
        id=str(_req(data, "id")),
        area_id=str(_req(data, "area_id")),
        name=str(data.get("name", "")),
        weekly_hours=int(data.get("weekly_hours", 0)),
        weight_percentage=float(data.get("weight_percentage", 0)),
        is_dominant=_flag(data.get("is_dominant")),
        academic_level_id=data.get("academic_level_id"),
        grade_id=data.get("grade_id"),
    )


def record_from_dict(data: Mapping[str, Any]) -> GradeRecord:
    score = data.get("score")
    return GradeRecord(
        student_id=str(_req(data, "student_id")),
        subject_id=str(_req(data, "subject_id")),
        term_id=str(_req(data, "term_id")),
        process_code=str(data.get("process_code", "")),
        subprocess_id=str(data.get("subprocess_id", "")),
        score=score,
        activity_id=str(data.get("activity_id", "")),
    )


def year_from_dict(data: Mapping[str, Any]) -> AcademicYear:
    return AcademicYear(
        id=str(_req(data, "id")),
        institution_id=str(data.get("institution_id", "")),
        year=int(data.get("year", 0)),
        status=_enum(YearStatus, data.get("status"), YearStatus.DRAFT),
        terms=tuple(term_from_dict(t) for t in data.get("terms") or []),
    )


def _parse_dt(raw: Any) -> Optional[datetime]:
    if raw is None or isinstance(raw, datetime):
        return raw
    parsed = parse_datetime(str(raw))
    if parsed is None:
        raise ValidationError(f"Format tanggal tidak valid: {raw}")
    return parsed


def window_from_dict(data: Mapping[str, Any]) -> GradingWindow:
    return GradingWindow(
        term_id=str(_req(data, "term_id")),
        open_date=_parse_dt(data.get("open_date")),
        close_date=_parse_dt(data.get("close_date")),
        is_open=_flag(data.get("is_open"), True),
        allow_late_entry=_flag(data.get("allow_late_entry")),
        late_entry_days=int(data.get("late_entry_days", 0)),
    )


def _overrides(rows: Optional[List[Dict[str, Any]]], scope_key: str) -> Dict[Tuple[str, str], AreaConfig]:
    out: Dict[Tuple[str, str], AreaConfig] = {}
    for row in rows or []:
        out[(str(_req(row, "area_id")), str(_req(row, scope_key)))] = area_config_from_dict(row.get("config"))
    return out


def outcome_from_dict(data: Mapping[str, Any]) -> RecoveryOutcome:
    return RecoveryOutcome(
        subject_grades={str(k): float(v) for k, v in (data.get("subject_grades") or {}).items()},
        area_grade=None if data.get("area_grade") is None else float(data["area_grade"]),
        area_approved=_flag(data.get("area_approved"), None),
        council_approved=_flag(data.get("council_approved"), None),
    )


def context_from_payload(
    payload: Mapping[str, Any],
    *,
    policy: Optional[PromotionPolicy] = None,
    decimals: Optional[int] = None,
    use_final_components: Optional[bool] = None,
) -> EvaluationContext:
    ctx = EvaluationContext(
        level=academic_level_from_dict(_req(payload, "academic_level")),
        processes=[process_from_dict(p) for p in payload.get("processes") or []],
        terms=[term_from_dict(t) for t in payload.get("terms") or []],
        areas=[
            Area(id=str(_req(a, "id")), name=str(a.get("name", "")), is_mandatory=_flag(a.get("is_mandatory"), True))
            for a in payload.get("areas") or []
        ],
        subjects=[subject_from_dict(s) for s in payload.get("subjects") or []],
        area_config=area_config_from_dict(payload.get("area_config")),
        level_overrides=_overrides(payload.get("level_overrides"), "academic_level_id"),
        grade_overrides=_overrides(payload.get("grade_overrides"), "grade_id"),
        grade_id=payload.get("grade_id"),
    )
    if use_final_components is not None:
        ctx.use_final_components = bool(use_final_components)
    elif "use_final_components" in payload:
        ctx.use_final_components = bool(_flag(payload["use_final_components"]))
    if policy is not None:
        ctx.policy = policy
    if decimals is not None:
        ctx.decimals = decimals
    return ctx


def records_from_payload(payload: Mapping[str, Any]) -> List[GradeRecord]:
    return [record_from_dict(r) for r in payload.get("records") or []]


def outcomes_from_payload(payload: Mapping[str, Any]) -> Dict[str, Dict[str, RecoveryOutcome]]:
    return {
        str(sid): {str(area_id): outcome_from_dict(o) for area_id, o in (areas or {}).items()}
        for sid, areas in (payload.get("outcomes") or {}).items()
    }

"""
Full bottom-up pipeline for one student and for a cohort.

raw scores -> subprocess -> process -> period -> subject -> area -> promotion
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from siee.services.shared.errors import ServiceError, ValidationError

from .areas import aggregate_area
from .components import DEFAULT_DECIMALS, aggregate_period, round_grade, subprocess_average
from .logging_utils import (
    log_area_blocked,
    log_cohort_timing,
    log_student_done,
    log_student_fail,
    log_student_start,
)
from .promotion import AreaContext, PromotionPolicy, RecoveryOutcome, evaluate_promotion, pending_council_issues
from .scale import classify_score, is_grade_approved
from .scope import GradeOverrides, LevelOverrides, resolve_area_config, subjects_in_scope
from .subject_finalizer import finalize_subject
from .types import (
    AcademicLevel,
    AcademicTerm,
    Area,
    AreaConfig,
    AreaResult,
    EvaluationProcess,
    GradeRecord,
    GradingScaleType,
    Issue,
    IssueCode,
    PromotionDecision,
    PromotionStatus,
    Severity,
    Subject,
    SubjectGrade,
    SubjectResult,
    TermType,
)

logger = logging.getLogger(__name__)


@dataclass
class EvaluationContext:
    level: AcademicLevel
    processes: Sequence[EvaluationProcess]
    terms: Sequence[AcademicTerm]
    areas: Sequence[Area]
    subjects: Sequence[Subject]
    area_config: AreaConfig = field(default_factory=AreaConfig)
    level_overrides: Optional[LevelOverrides] = None
    grade_overrides: Optional[GradeOverrides] = None
    grade_id: Optional[str] = None
    use_final_components: bool = False
    policy: PromotionPolicy = field(default_factory=PromotionPolicy)
    decimals: Optional[int] = DEFAULT_DECIMALS


@dataclass
class ResolvedContext:
    """Context with overrides and subject scope resolved once per (area, grade)."""

    base: EvaluationContext
    area_configs: Dict[str, AreaConfig]
    subjects_by_area: Dict[str, List[Subject]]


@dataclass
class StudentResult:
    student_id: str
    subjects: List[SubjectResult] = field(default_factory=list)
    areas: List[AreaResult] = field(default_factory=list)
    promotion: Optional[PromotionDecision] = None
    general_average: Optional[float] = None
    issues: List[Issue] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self.student_id,
            "subjects": [s.as_dict() for s in self.subjects],
            "areas": [a.as_dict() for a in self.areas],
            "promotion": self.promotion.as_dict() if self.promotion else None,
            "general_average": self.general_average,
            "issues": [i.as_dict() for i in self.issues],
        }


def resolve_context(ctx: EvaluationContext) -> ResolvedContext:
    if ctx.level.grading_scale_type != GradingScaleType.NUMERIC:
        raise ValidationError("Pipeline nilai hanya berlaku untuk skala numerik")

    in_scope = subjects_in_scope(ctx.subjects, ctx.level.id, ctx.grade_id)
    subjects_by_area: Dict[str, List[Subject]] = {}
    for s in in_scope:
        subjects_by_area.setdefault(s.area_id, []).append(s)

    area_configs = {
        a.id: resolve_area_config(
            a.id,
            ctx.area_config,
            academic_level_id=ctx.level.id,
            grade_id=ctx.grade_id,
            level_overrides=ctx.level_overrides,
            grade_overrides=ctx.grade_overrides,
        )
        for a in ctx.areas
    }
    return ResolvedContext(base=ctx, area_configs=area_configs, subjects_by_area=subjects_by_area)


def _group_records(records: Iterable[GradeRecord]) -> Dict[Tuple[str, str], List[GradeRecord]]:
    grouped: Dict[Tuple[str, str], List[GradeRecord]] = {}
    for r in records:
        grouped.setdefault((r.subject_id, r.term_id), []).append(r)
    return grouped


def _range_issues(records: Iterable[GradeRecord], level: AcademicLevel) -> List[Issue]:
    issues: List[Issue] = []
    for r in records:
        if r.score is None or str(r.score).strip() == "" or float(r.score) == 0:
            continue
        if not (level.min_grade <= float(r.score) <= level.max_grade):
            issues.append(
                Issue(
                    code=IssueCode.SCORE_OUT_OF_RANGE,
                    severity=Severity.WARNING,
                    message=f"Nilai {r.score} di luar rentang {level.min_grade:g}-{level.max_grade:g}",
                    entity="ACTIVITY",
                    entity_id=r.activity_id or r.subject_id,
                )
            )
    return issues


def _evaluate_subject(
    subject: Subject,
    grouped: Mapping[Tuple[str, str], List[GradeRecord]],
    ctx: EvaluationContext,
) -> Tuple[SubjectResult, List[Issue]]:
    level = ctx.level
    issues: List[Issue] = []
    result = SubjectResult(subject_id=subject.id, area_id=subject.area_id)

    period_grades: Dict[str, float] = {}
    component_scores: Dict[str, float] = {}
    for term in sorted(ctx.terms, key=lambda t: t.order):
        term_records = grouped.get((subject.id, term.id), [])
        if term.term_type == TermType.SEMESTER_EXAM:
            component_scores[term.id] = subprocess_average([r.score for r in term_records], ctx.decimals)
            continue
        period = aggregate_period(term.id, term_records, ctx.processes, ctx.decimals)
        period_grades[term.id] = period.grade
        result.periods.append(period)
        issues.extend(period.issues)

    result.final_grade = finalize_subject(
        period_grades,
        ctx.terms,
        component_scores=component_scores,
        use_final_components=ctx.use_final_components,
        decimals=ctx.decimals,
    )
    classification = classify_score(result.final_grade, level)
    if classification.issue is not None:
        issues.append(
            Issue(
                code=classification.issue.code,
                severity=classification.issue.severity,
                message=classification.issue.message,
                entity="SUBJECT",
                entity_id=subject.id,
            )
        )
    result.performance_level = classification.code
    result.approved = is_grade_approved(result.final_grade, level)

    if not result.approved:
        issues.append(
            Issue(
                code=IssueCode.SUBJECT_NOT_APPROVED,
                severity=Severity.WARNING,
                message=f"Mata pelajaran {subject.name or subject.id} tidak lulus",
                entity="SUBJECT",
                entity_id=subject.id,
            )
        )
    if classification.level is not None and not classification.level.is_approved:
        issues.append(
            Issue(
                code=IssueCode.LOW_PERFORMANCE,
                severity=Severity.WARNING,
                message=f"{subject.name or subject.id} berada di level {classification.level.name or classification.level.code}",
                entity="SUBJECT",
                entity_id=subject.id,
            )
        )
    return result, issues


def evaluate_student(
    student_id: str,
    records: Iterable[GradeRecord],
    context: ResolvedContext,
    outcomes: Optional[Mapping[str, RecoveryOutcome]] = None,
) -> StudentResult:
    ctx = context.base
    own = [r for r in records if r.student_id == student_id]
    log_student_start(logger, student_id, len(own))

    out = StudentResult(student_id=student_id)
    out.issues.extend(_range_issues(own, ctx.level))
    grouped = _group_records(own)

    grades_by_area: Dict[str, List[SubjectGrade]] = {}
    for area in ctx.areas:
        for subject in context.subjects_by_area.get(area.id, []):
            subject_result, issues = _evaluate_subject(subject, grouped, ctx)
            out.subjects.append(subject_result)
            out.issues.extend(issues)
            grades_by_area.setdefault(area.id, []).append(
                SubjectGrade(
                    subject_id=subject.id,
                    final_grade=subject_result.final_grade,
                    weight_percentage=subject.weight_percentage,
                    is_dominant=subject.is_dominant,
                )
            )

    contexts: Dict[str, AreaContext] = {}
    for area in ctx.areas:
        subject_grades = grades_by_area.get(area.id)
        if not subject_grades:
            continue
        config = context.area_configs[area.id]
        area_result = aggregate_area(area, subject_grades, config, ctx.level, ctx.decimals)
        out.areas.append(area_result)
        out.issues.extend(area_result.issues)
        contexts[area.id] = AreaContext(
            area=area,
            subjects=subject_grades,
            config=config,
            level=ctx.level,
            decimals=ctx.decimals,
        )
        if area_result.blocked:
            log_area_blocked(logger, student_id, area.id, ",".join(i.code.value for i in area_result.issues))
        elif area_result.counts_for_promotion and not area_result.is_approved:
            out.issues.append(
                Issue(
                    code=IssueCode.AREA_NOT_APPROVED,
                    severity=Severity.WARNING,
                    message=f"Area {area.name or area.id} tidak lulus",
                    entity="AREA",
                    entity_id=area.id,
                )
            )

    out.promotion = evaluate_promotion(out.areas, ctx.policy, outcomes, contexts)
    out.issues.extend(pending_council_issues(out.promotion))

    finals = [s.final_grade for s in out.subjects]
    if finals:
        avg = sum(finals) / len(finals)
        out.general_average = round_grade(avg, ctx.decimals)

    log_student_done(logger, student_id, out.promotion.status.value, len(out.issues))
    return out


def _failed_result(student_id: str, reason: str) -> StudentResult:
    return StudentResult(
        student_id=student_id,
        promotion=PromotionDecision(promoted=False, status=PromotionStatus.BLOCKED, reasons=[reason]),
        issues=[
            Issue(
                code=IssueCode.STUDENT_EVALUATION_FAILED,
                severity=Severity.ERROR,
                message=reason,
                entity="STUDENT",
                entity_id=student_id,
            )
        ],
    )


def evaluate_cohort(
    records: Iterable[GradeRecord],
    context: EvaluationContext,
    student_ids: Optional[Sequence[str]] = None,
    outcomes: Optional[Mapping[str, Mapping[str, RecoveryOutcome]]] = None,
) -> Dict[str, StudentResult]:
    """
    Evaluasi seluruh siswa. Data buruk satu siswa tidak menghentikan batch:
    kegagalannya dicatat sebagai issue STUDENT_EVALUATION_FAILED.
    """
    t0 = time.time()
    resolved = resolve_context(context)
    by_student: Dict[str, List[GradeRecord]] = {}
    for r in records:
        by_student.setdefault(r.student_id, []).append(r)

    ids = list(student_ids) if student_ids is not None else sorted(by_student)
    outcomes = outcomes or {}
    results: Dict[str, StudentResult] = {}
    failed = 0
    for sid in ids:
        try:
            results[sid] = evaluate_student(sid, by_student.get(sid, []), resolved, outcomes.get(sid))
        except (ServiceError, TypeError, ValueError) as exc:
            failed += 1
            log_student_fail(logger, sid, str(exc))
            results[sid] = _failed_result(sid, str(exc))

    log_cohort_timing(logger, students=len(ids), failed=failed, total_ms=int((time.time() - t0) * 1000))
    return results

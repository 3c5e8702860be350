"""
Promotion decision for one student and one academic year.

Only mandatory EVALUABLE areas count. A failed area carries its configured
recovery type; recovery outcomes supplied by the caller are applied before
the final decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from siee.services.shared.errors import ValidationError

from .areas import aggregate_area
from .components import DEFAULT_DECIMALS
from .dispatch import assert_exhaustive, lookup
from .types import (
    AcademicLevel,
    Area,
    AreaConfig,
    AreaResult,
    Issue,
    IssueCode,
    PromotionDecision,
    PromotionStatus,
    RecoveryType,
    Severity,
    SubjectGrade,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromotionPolicy:
    # Number of finally failed mandatory areas still compatible with promotion.
    max_failed_areas: int = 0
    # When False a pending council decision does not hold promotion back.
    conditional_blocks_promotion: bool = True


@dataclass(frozen=True)
class RecoveryOutcome:
    # BY_SUBJECT: recovered final grades for the failing subjects.
    subject_grades: Mapping[str, float] = field(default_factory=dict)
    # FULL_AREA: re-evaluated area grade, or a plain verdict.
    area_grade: Optional[float] = None
    area_approved: Optional[bool] = None
    # CONDITIONAL: academic council verdict.
    council_approved: Optional[bool] = None


@dataclass
class AreaContext:
    """What is needed to re-aggregate an area after subject recovery."""

    area: Area
    subjects: Sequence[SubjectGrade]
    config: AreaConfig
    level: AcademicLevel
    decimals: Optional[int] = DEFAULT_DECIMALS


# ---------------------------------------------------------------------------
# Recovery application
# ---------------------------------------------------------------------------

RecoveryFn = Callable[[AreaResult, RecoveryOutcome, Optional[AreaContext]], AreaResult]


def _recover_by_subject(result: AreaResult, outcome: RecoveryOutcome, ctx: Optional[AreaContext]) -> AreaResult:
    if not outcome.subject_grades:
        return result
    if ctx is None:
        raise ValidationError(f"Area {result.area_id}: nilai remedial per mata pelajaran butuh AreaContext")
    failing = set(result.failing_subject_ids)
    subjects = [
        replace(s, final_grade=float(outcome.subject_grades[s.subject_id]))
        if s.subject_id in failing and s.subject_id in outcome.subject_grades
        else s
        for s in ctx.subjects
    ]
    return aggregate_area(ctx.area, subjects, ctx.config, ctx.level, ctx.decimals)


def _recover_full_area(result: AreaResult, outcome: RecoveryOutcome, ctx: Optional[AreaContext]) -> AreaResult:
    if outcome.area_grade is not None:
        approved = outcome.area_approved
        if approved is None:
            if ctx is None:
                raise ValidationError(f"Area {result.area_id}: nilai remedial area tanpa keputusan butuh AreaContext")
            approved = float(outcome.area_grade) >= float(ctx.level.min_passing_grade)
        return replace(result, area_average=float(outcome.area_grade), is_approved=bool(approved), failing_subject_ids=[])
    if outcome.area_approved is not None:
        return replace(result, is_approved=bool(outcome.area_approved), failing_subject_ids=[])
    return result


def _recover_conditional(result: AreaResult, outcome: RecoveryOutcome, ctx: Optional[AreaContext]) -> AreaResult:
    if outcome.council_approved is None:
        return result
    return replace(result, is_approved=bool(outcome.council_approved))


def _recover_none(result: AreaResult, outcome: RecoveryOutcome, ctx: Optional[AreaContext]) -> AreaResult:
    return result


RECOVERY_STRATEGIES: Dict[RecoveryType, RecoveryFn] = {
    RecoveryType.BY_SUBJECT: _recover_by_subject,
    RecoveryType.FULL_AREA: _recover_full_area,
    RecoveryType.CONDITIONAL: _recover_conditional,
    RecoveryType.NONE: _recover_none,
}

assert_exhaustive(RECOVERY_STRATEGIES, RecoveryType)


def apply_recovery(
    result: AreaResult,
    outcome: Optional[RecoveryOutcome],
    ctx: Optional[AreaContext] = None,
) -> AreaResult:
    if outcome is None or result.is_approved or result.blocked:
        return result
    return lookup(RECOVERY_STRATEGIES, result.recovery_type)(result, outcome, ctx)


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------


def _has_resolution(recovery_type: RecoveryType, outcome: Optional[RecoveryOutcome]) -> bool:
    if outcome is None:
        return False
    if recovery_type == RecoveryType.BY_SUBJECT:
        return bool(outcome.subject_grades)
    if recovery_type == RecoveryType.FULL_AREA:
        return outcome.area_grade is not None or outcome.area_approved is not None
    if recovery_type == RecoveryType.CONDITIONAL:
        return outcome.council_approved is not None
    return True


def evaluate_promotion(
    areas: Sequence[AreaResult],
    policy: Optional[PromotionPolicy] = None,
    outcomes: Optional[Mapping[str, RecoveryOutcome]] = None,
    contexts: Optional[Mapping[str, AreaContext]] = None,
) -> PromotionDecision:
    """
    Putuskan kenaikan kelas dari keputusan area.

    Urutan status: BLOCKED (error konfigurasi) > NOT_PROMOTED (gagal final
    melebihi toleransi) > IN_RECOVERY (remedial belum ada hasil) >
    PENDING_DECISION (menunggu dewan akademik) > PROMOTED.

    Outcome BY_SUBJECT, dan outcome FULL_AREA berupa nilai tanpa keputusan,
    hanya bisa diterapkan bila `contexts` memuat area tersebut; tanpa itu
    ValidationError dilempar.
    """
    policy = policy or PromotionPolicy()
    outcomes = outcomes or {}
    contexts = contexts or {}
    decision = PromotionDecision(promoted=False, status=PromotionStatus.PROMOTED)

    in_recovery: List[str] = []
    final_failures: List[str] = []

    for original in areas:
        if not original.counts_for_promotion:
            continue
        if original.blocked:
            decision.blocked_areas.append(original.area_id)
            decision.reasons.append(f"Area {original.area_id} memiliki error konfigurasi")
            continue
        if original.is_approved:
            continue

        rtype = original.recovery_type
        decision.areas_requiring_recovery.append(original.area_id)
        decision.recovery_types[original.area_id] = rtype

        outcome = outcomes.get(original.area_id)
        area = apply_recovery(original, outcome, contexts.get(original.area_id))
        if area.is_approved:
            continue

        if rtype == RecoveryType.NONE or _has_resolution(rtype, outcome):
            final_failures.append(area.area_id)
        elif rtype == RecoveryType.CONDITIONAL:
            decision.pending_council_areas.append(area.area_id)
        else:
            in_recovery.append(area.area_id)

    decision.failed_areas = final_failures
    tolerance = max(int(policy.max_failed_areas or 0), 0)

    if decision.blocked_areas:
        decision.status = PromotionStatus.BLOCKED
    elif len(final_failures) > tolerance:
        decision.status = PromotionStatus.NOT_PROMOTED
        decision.reasons.extend(f"Area {a} tidak lulus" for a in final_failures)
    elif in_recovery:
        decision.status = PromotionStatus.IN_RECOVERY
        decision.reasons.append(f"{len(in_recovery)} area dalam proses remedial")
    elif decision.pending_council_areas and policy.conditional_blocks_promotion:
        decision.status = PromotionStatus.PENDING_DECISION
        decision.reasons.append(f"{len(decision.pending_council_areas)} area menunggu keputusan dewan akademik")
    else:
        decision.status = PromotionStatus.PROMOTED
        decision.promoted = True

    logger.debug(
        "promotion_decision status=%s failed=%s recovery=%s pending=%s blocked=%s",
        decision.status.value,
        len(final_failures),
        len(in_recovery),
        len(decision.pending_council_areas),
        len(decision.blocked_areas),
    )
    return decision


def pending_council_issues(decision: PromotionDecision) -> List[Issue]:
    return [
        Issue(
            code=IssueCode.CONDITIONAL_RECOVERY_PENDING,
            severity=Severity.INFO,
            message="Area menunggu keputusan dewan akademik",
            entity="AREA",
            entity_id=area_id,
        )
        for area_id in decision.pending_council_areas
    ]

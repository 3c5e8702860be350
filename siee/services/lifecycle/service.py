"""Orchestration on top of the pure engine: write gating and year closure."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from siee.academic.components import graded_scores
from siee.academic.pipeline import EvaluationContext, StudentResult, evaluate_cohort, resolve_context
from siee.academic.promotion import RecoveryOutcome
from siee.academic.types import AcademicYear, AreaType, GradeRecord, PromotionStatus, YearStatus
from siee.services.shared.errors import InvalidTransitionError

from . import period_window as pw
from . import state_machine as sm

logger = logging.getLogger(__name__)


def check_grade_entry(year: AcademicYear, window: Optional[pw.GradingWindow], now: Optional[datetime] = None) -> pw.FlowResult:
    if not sm.can_record_grades(year):
        return pw.FlowResult(allowed=False, reason=f"Tahun ajaran berstatus {year.status.value}, nilai tidak bisa dicatat")
    return pw.check(window, now)


def ensure_grade_entry(year: AcademicYear, window: Optional[pw.GradingWindow], now: Optional[datetime] = None) -> None:
    if not sm.can_record_grades(year):
        raise InvalidTransitionError(f"Tahun ajaran berstatus {year.status.value}, nilai tidak bisa dicatat")
    pw.ensure_can_enter_grades(window, now)


@dataclass
class CloseYearResult:
    year: AcademicYear
    results: Dict[str, StudentResult] = field(default_factory=dict)
    promoted_count: int = 0
    repeated_count: int = 0
    pending_count: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "year_id": self.year.id,
            "status": self.year.status.value,
            "promoted_count": self.promoted_count,
            "repeated_count": self.repeated_count,
            "pending_count": self.pending_count,
            "results": {sid: r.as_dict() for sid, r in self.results.items()},
        }


def mandatory_area_ids(context: EvaluationContext) -> List[str]:
    resolved = resolve_context(context)
    return [
        a.id
        for a in context.areas
        if a.is_mandatory
        and resolved.area_configs[a.id].area_type == AreaType.EVALUABLE
        and resolved.subjects_by_area.get(a.id)
    ]


def _is_graded(score: Any) -> bool:
    try:
        return bool(graded_scores([score]))
    except (TypeError, ValueError):
        return False


def computed_areas(records: Iterable[GradeRecord], results: Mapping[str, StudentResult]) -> Dict[str, List[str]]:
    """
    Area dianggap terhitung bila tidak terblokir dan minimal satu mata
    pelajarannya punya nilai yang sudah diisi untuk siswa tersebut.
    """
    graded = {(r.student_id, r.subject_id) for r in records if _is_graded(r.score)}
    out: Dict[str, List[str]] = {}
    for sid, r in results.items():
        subjects_by_area: Dict[str, List[str]] = {}
        for s in r.subjects:
            subjects_by_area.setdefault(s.area_id, []).append(s.subject_id)
        out[sid] = [
            a.area_id
            for a in r.areas
            if not a.blocked and any((sid, subject_id) in graded for subject_id in subjects_by_area.get(a.area_id, []))
        ]
    return out


def close_year(
    year: AcademicYear,
    records: Iterable[GradeRecord],
    context: EvaluationContext,
    enrolled_student_ids: Sequence[str],
    outcomes: Optional[Mapping[str, Mapping[str, RecoveryOutcome]]] = None,
) -> CloseYearResult:
    """
    Tutup tahun ajaran: hitung promosi seluruh siswa terdaftar, validasi
    bahwa semua area wajib sudah terhitung (tidak terblokir dan sudah ada
    nilai), lalu kembalikan tahun berstatus CLOSED. Sekali CLOSED,
    pemanggilan ulang akan ditolak.
    """
    if not sm.can_transition(year.status, YearStatus.CLOSED):
        raise InvalidTransitionError(f"Tahun ajaran tidak bisa ditutup karena berstatus {year.status.value}")

    t0 = time.time()
    records = list(records)
    results = evaluate_cohort(records, context, student_ids=enrolled_student_ids, outcomes=outcomes)
    closed = sm.close(year, enrolled_student_ids, mandatory_area_ids(context), computed_areas(records, results))

    out = CloseYearResult(year=closed, results=results)
    for r in results.values():
        status = r.promotion.status if r.promotion else PromotionStatus.BLOCKED
        if status == PromotionStatus.PROMOTED:
            out.promoted_count += 1
        elif status == PromotionStatus.NOT_PROMOTED:
            out.repeated_count += 1
        else:
            out.pending_count += 1

    logger.info(
        "close_year promoted=%s repeated=%s pending=%s ms=%s",
        out.promoted_count,
        out.repeated_count,
        out.pending_count,
        int((time.time() - t0) * 1000),
        extra={"year_id": year.id},
    )
    return out

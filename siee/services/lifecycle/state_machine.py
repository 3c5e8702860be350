"""
Academic-year lifecycle: DRAFT -> ACTIVE -> CLOSED.

CLOSED is terminal. Transitions are pure: they return a new AcademicYear and
never touch storage; the orchestrator persists the result.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from siee.academic.types import AcademicYear, YearStatus
from siee.academic.validation import validate_term_weights
from siee.services.shared.errors import InvalidTransitionError

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: Dict[YearStatus, Set[YearStatus]] = {
    YearStatus.DRAFT: {YearStatus.ACTIVE},
    YearStatus.ACTIVE: {YearStatus.CLOSED},
    YearStatus.CLOSED: set(),
}


def can_transition(from_state: YearStatus, to_state: YearStatus) -> bool:
    return to_state in VALID_TRANSITIONS.get(from_state, set())


def _result(errors: List[str]) -> Dict[str, Any]:
    return {"valid": not errors, "errors": errors}


def can_activate(year: AcademicYear, other_active_years: Iterable[AcademicYear] = ()) -> Dict[str, Any]:
    errors: List[str] = []
    if not can_transition(year.status, YearStatus.ACTIVE):
        errors.append(f"Tahun ajaran tidak bisa diaktifkan karena berstatus {year.status.value}")
    if not year.terms:
        errors.append("Minimal satu periode akademik harus dikonfigurasi")
    else:
        errors.extend(i.message for i in validate_term_weights(year.terms, year.id))
    for other in other_active_years or []:
        if other.id != year.id and other.status == YearStatus.ACTIVE and other.institution_id == year.institution_id:
            errors.append(f"Sudah ada tahun ajaran aktif ({other.year}). Tutup terlebih dahulu.")
            break
    return _result(errors)


def missing_area_computations(
    enrolled_student_ids: Iterable[str],
    mandatory_area_ids: Iterable[str],
    computed_areas: Mapping[str, Iterable[str]],
) -> Dict[str, List[str]]:
    required = list(mandatory_area_ids or [])
    missing: Dict[str, List[str]] = {}
    for sid in enrolled_student_ids or []:
        done = set(computed_areas.get(sid, []) or [])
        gaps = [a for a in required if a not in done]
        if gaps:
            missing[sid] = gaps
    return missing


def can_close(
    year: AcademicYear,
    enrolled_student_ids: Iterable[str] = (),
    mandatory_area_ids: Iterable[str] = (),
    computed_areas: Optional[Mapping[str, Iterable[str]]] = None,
) -> Dict[str, Any]:
    errors: List[str] = []
    if not can_transition(year.status, YearStatus.CLOSED):
        errors.append(f"Tahun ajaran tidak bisa ditutup karena berstatus {year.status.value}")
    missing = missing_area_computations(enrolled_student_ids, mandatory_area_ids, computed_areas or {})
    for sid, areas in sorted(missing.items()):
        errors.append(f"Siswa {sid} belum memiliki nilai area: {', '.join(areas)}")
    return _result(errors)


def activate(year: AcademicYear, other_active_years: Iterable[AcademicYear] = ()) -> AcademicYear:
    check = can_activate(year, other_active_years)
    if not check["valid"]:
        raise InvalidTransitionError("Tahun ajaran belum memenuhi syarat aktivasi", check["errors"])
    logger.info("academic_year_activated", extra={"year_id": year.id})
    return replace(year, status=YearStatus.ACTIVE)


def close(
    year: AcademicYear,
    enrolled_student_ids: Iterable[str] = (),
    mandatory_area_ids: Iterable[str] = (),
    computed_areas: Optional[Mapping[str, Iterable[str]]] = None,
) -> AcademicYear:
    check = can_close(year, enrolled_student_ids, mandatory_area_ids, computed_areas)
    if not check["valid"]:
        raise InvalidTransitionError("Tahun ajaran belum memenuhi syarat penutupan", check["errors"])
    logger.info("academic_year_closed", extra={"year_id": year.id})
    return replace(year, status=YearStatus.CLOSED)


def can_edit_structure(year: AcademicYear) -> bool:
    return year.status == YearStatus.DRAFT


def can_record_grades(year: AcademicYear) -> bool:
    return year.status == YearStatus.ACTIVE


def can_enroll_students(year: AcademicYear) -> bool:
    return year.status == YearStatus.ACTIVE


def can_modify(year: AcademicYear) -> bool:
    return year.status != YearStatus.CLOSED

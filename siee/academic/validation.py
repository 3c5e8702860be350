"""Configuration-save validators. They return issues; they never compute grades."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from siee.services.shared.errors import ConfigurationError

from .components import DEFAULT_DECIMALS
from .types import (
    AcademicLevel,
    AcademicTerm,
    ApprovalCriteria,
    AreaConfig,
    CalculationMethod,
    EvaluationProcess,
    Issue,
    IssueCode,
    Severity,
    Subject,
)

WEIGHT_TOLERANCE = 0.01


def _weight_issue(total: float, entity: str, entity_id: str, label: str) -> List[Issue]:
    if abs(float(total) - 100.0) <= WEIGHT_TOLERANCE:
        return []
    return [
        Issue(
            code=IssueCode.WEIGHT_SUM_MISMATCH,
            severity=Severity.ERROR,
            message=f"Total bobot {label} harus 100%, saat ini {total:g}%",
            entity=entity,
            entity_id=entity_id,
        )
    ]


def validate_processes(processes: Sequence[EvaluationProcess], config_id: str = "") -> List[Issue]:
    issues = _weight_issue(sum(p.weight_percentage for p in processes), "GRADING_CONFIG", config_id, "proses")
    for p in processes:
        if not p.subprocesses:
            continue
        issues.extend(
            _weight_issue(sum(s.weight_percentage for s in p.subprocesses), "PROCESS", p.code, f"subproses {p.code}")
        )
    return issues


def validate_term_weights(terms: Sequence[AcademicTerm], year_id: str = "") -> List[Issue]:
    return _weight_issue(sum(t.weight_percentage for t in terms), "ACADEMIC_YEAR", year_id, "periode")


def validate_area_subjects(area_id: str, config: AreaConfig, subjects: Sequence[Subject]) -> List[Issue]:
    issues: List[Issue] = []
    if config.calculation_method == CalculationMethod.WEIGHTED:
        issues.extend(
            _weight_issue(sum(s.weight_percentage for s in subjects), "AREA", area_id, "mata pelajaran")
        )
    if (
        config.calculation_method == CalculationMethod.DOMINANT
        or config.approval_criteria == ApprovalCriteria.DOMINANT_SUBJECT
    ):
        dominants = [s for s in subjects if s.is_dominant]
        if not dominants:
            issues.append(
                Issue(
                    code=IssueCode.MISSING_DOMINANT_SUBJECT,
                    severity=Severity.ERROR,
                    message="Metode DOMINANT membutuhkan tepat satu mata pelajaran dominan",
                    entity="AREA",
                    entity_id=area_id,
                )
            )
        elif len(dominants) > 1:
            issues.append(
                Issue(
                    code=IssueCode.MULTIPLE_DOMINANT_SUBJECTS,
                    severity=Severity.ERROR,
                    message="Hanya boleh satu mata pelajaran dominan per area: "
                    + ", ".join(s.id for s in dominants),
                    entity="AREA",
                    entity_id=area_id,
                )
            )
    return issues


def validate_performance_levels(level: AcademicLevel, decimals: Optional[int] = DEFAULT_DECIMALS) -> List[Issue]:
    """
    Bands yang tumpang tindih atau berlubang hanya diberi WARNING;
    classify_score tetap memakai first-match.

    Nilai dibulatkan ke `decimals` angka sebelum diklasifikasi, jadi jarak
    antar band sebesar satu langkah pembulatan (2.9 -> 3.0 pada 1 desimal)
    masih dianggap bersambung. Dengan presisi penuh (None) setiap jarak
    adalah celah.
    """
    step = 0.0 if decimals is None else 10.0 ** -int(decimals)
    bands = sorted(level.performance_levels, key=lambda b: (b.min_score, b.max_score))
    issues: List[Issue] = []
    for prev, cur in zip(bands, bands[1:]):
        if cur.min_score <= prev.max_score:
            issues.append(
                Issue(
                    code=IssueCode.OVERLAPPING_BANDS,
                    severity=Severity.WARNING,
                    message=f"Level {prev.code} dan {cur.code} tumpang tindih",
                    entity="ACADEMIC_LEVEL",
                    entity_id=level.id,
                )
            )
        elif round(cur.min_score - prev.max_score, 6) > round(step, 6):
            issues.append(
                Issue(
                    code=IssueCode.GAPPED_BANDS,
                    severity=Severity.WARNING,
                    message=f"Ada celah antara level {prev.code} dan {cur.code}",
                    entity="ACADEMIC_LEVEL",
                    entity_id=level.id,
                )
            )
    if bands:
        if bands[0].min_score > level.min_grade or bands[-1].max_score < level.max_grade:
            issues.append(
                Issue(
                    code=IssueCode.GAPPED_BANDS,
                    severity=Severity.WARNING,
                    message="Performance level tidak menutup seluruh rentang nilai",
                    entity="ACADEMIC_LEVEL",
                    entity_id=level.id,
                )
            )
    return issues


def blocking(issues: Iterable[Issue]) -> List[Issue]:
    return [i for i in issues or [] if i.is_blocking]


def ensure_saveable(issues: Iterable[Issue], message: str = "Konfigurasi tidak valid") -> None:
    errors = blocking(issues)
    if errors:
        raise ConfigurationError(message, errors)

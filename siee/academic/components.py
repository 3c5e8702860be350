"""Subprocess -> process -> period aggregation for one subject."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .types import (
    EvaluationProcess,
    GradeRecord,
    Issue,
    IssueCode,
    PeriodResult,
    ProcessResult,
    Severity,
    SubprocessResult,
)

DEFAULT_DECIMALS = 1


def round_grade(value: float, decimals: Optional[int] = DEFAULT_DECIMALS) -> float:
    """Half-up, bukan banker's rounding: 2.95 -> 3.0, 2.25 -> 2.3."""
    if decimals is None:
        return float(value)
    step = Decimal(1).scaleb(-int(decimals))
    return float(Decimal(str(float(value))).quantize(step, rounding=ROUND_HALF_UP))


def graded_scores(scores: Iterable[Any]) -> List[float]:
    """Skor 0 / None / kosong berarti belum dinilai, bukan nilai nol."""
    out: List[float] = []
    for raw in scores or []:
        if raw is None or str(raw).strip() == "":
            continue
        s = float(raw)
        if s == 0:
            continue
        out.append(s)
    return out


def subprocess_average(scores: Iterable[Any], decimals: Optional[int] = DEFAULT_DECIMALS) -> float:
    valid = graded_scores(scores)
    if not valid:
        return 0.0
    return round_grade(sum(valid) / len(valid), decimals)


def weighted_sum(pairs: Sequence[Tuple[float, float]], decimals: Optional[int] = DEFAULT_DECIMALS) -> float:
    """
    Σ(average × weight) / 100.

    Komponen kosong (average 0) tetap ikut dengan kontribusi 0, sehingga
    penilaian yang belum lengkap menurunkan rata-rata dan terlihat oleh guru.
    """
    total = 0.0
    for average, weight in pairs or []:
        total += float(average or 0) * float(weight or 0)
    return round_grade(total / 100.0, decimals)


def process_average(
    subprocess_averages: Sequence[Tuple[float, float]],
    decimals: Optional[int] = DEFAULT_DECIMALS,
) -> float:
    return weighted_sum(subprocess_averages, decimals)


def period_grade(
    process_averages: Sequence[Tuple[float, float]],
    decimals: Optional[int] = DEFAULT_DECIMALS,
) -> float:
    return weighted_sum(process_averages, decimals)


def _index_scores(records: Iterable[GradeRecord]) -> Dict[Tuple[str, str], List[Any]]:
    index: Dict[Tuple[str, str], List[Any]] = {}
    for r in records or []:
        key = (str(r.process_code), str(r.subprocess_id))
        index.setdefault(key, []).append(r.score)
    return index


def aggregate_period(
    term_id: str,
    records: Iterable[GradeRecord],
    processes: Sequence[EvaluationProcess],
    decimals: Optional[int] = DEFAULT_DECIMALS,
) -> PeriodResult:
    """
    Bangun breakdown lengkap satu mata pelajaran untuk satu periode.

    Record dengan process/subprocess yang tidak dikonfigurasi diabaikan.
    Tidak ada clamping di sini; skor sudah divalidasi saat input.
    """
    index = _index_scores(records)
    result = PeriodResult(term_id=term_id)
    process_pairs: List[Tuple[float, float]] = []

    for process in sorted(processes, key=lambda p: p.order):
        proc = ProcessResult(process_code=process.code, weight_percentage=float(process.weight_percentage))
        pairs: List[Tuple[float, float]] = []
        for sub in sorted(process.subprocesses, key=lambda s: s.order):
            scores = graded_scores(index.get((process.code, sub.id), []))
            avg = subprocess_average(scores, decimals)
            proc.subprocesses.append(
                SubprocessResult(
                    subprocess_id=sub.id,
                    weight_percentage=float(sub.weight_percentage),
                    scores=scores,
                    average=avg,
                )
            )
            pairs.append((avg, sub.weight_percentage))
            if not scores:
                result.issues.append(
                    Issue(
                        code=IssueCode.INCOMPLETE_GRADING,
                        severity=Severity.INFO,
                        message=f"Subproses {sub.id} pada proses {process.code} belum memiliki nilai",
                        entity="SUBPROCESS",
                        entity_id=sub.id,
                    )
                )
        proc.average = process_average(pairs, decimals)
        result.processes.append(proc)
        process_pairs.append((proc.average, process.weight_percentage))

    result.grade = period_grade(process_pairs, decimals)
    return result

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from siee.services.shared.errors import UnsupportedStrategyError

from .components import DEFAULT_DECIMALS, weighted_sum
from .types import AcademicTerm, TermType


def finalize_subject(
    period_grades: Mapping[str, float],
    terms: Sequence[AcademicTerm],
    component_scores: Optional[Mapping[str, float]] = None,
    use_final_components: bool = False,
    decimals: Optional[int] = DEFAULT_DECIMALS,
) -> float:
    """
    Nilai akhir tahunan satu mata pelajaran.

    Periode (PERIOD) memakai period_grades, komponen akhir (SEMESTER_EXAM)
    memakai component_scores dan hanya dihitung bila use_final_components.
    Nilai yang tidak ada berkontribusi 0. Total bobot = 100 divalidasi saat
    konfigurasi disimpan, bukan di sini.
    """
    components = component_scores or {}
    pairs = []
    for term in sorted(terms, key=lambda t: t.order):
        if term.term_type == TermType.PERIOD:
            pairs.append((float(period_grades.get(term.id, 0) or 0), term.weight_percentage))
        elif term.term_type == TermType.SEMESTER_EXAM:
            if use_final_components:
                pairs.append((float(components.get(term.id, 0) or 0), term.weight_percentage))
        else:
            raise UnsupportedStrategyError(f"Unsupported term type: {term.term_type!r}")
    return weighted_sum(pairs, decimals)

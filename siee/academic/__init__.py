"""Academic domain modules for SIEE grade aggregation and promotion."""

from .areas import aggregate_area, calculate_area_average, is_area_approved, subjects_requiring_recovery
from .components import aggregate_period, period_grade, process_average, subprocess_average
from .pipeline import EvaluationContext, StudentResult, evaluate_cohort, evaluate_student, resolve_context
from .promotion import PromotionPolicy, RecoveryOutcome, apply_recovery, evaluate_promotion
from .scale import classify, classify_qualitative, classify_score, clamp_grade, is_grade_approved, validate_grade
from .scope import resolve_area_config, subjects_in_scope
from .subject_finalizer import finalize_subject

__all__ = [
    "aggregate_area",
    "calculate_area_average",
    "is_area_approved",
    "subjects_requiring_recovery",
    "aggregate_period",
    "period_grade",
    "process_average",
    "subprocess_average",
    "EvaluationContext",
    "StudentResult",
    "evaluate_cohort",
    "evaluate_student",
    "resolve_context",
    "PromotionPolicy",
    "RecoveryOutcome",
    "apply_recovery",
    "evaluate_promotion",
    "classify",
    "classify_qualitative",
    "classify_score",
    "clamp_grade",
    "is_grade_approved",
    "validate_grade",
    "resolve_area_config",
    "subjects_in_scope",
    "finalize_subject",
]

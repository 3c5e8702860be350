"""Plain-data records consumed and produced by the grading engine."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class GradingScaleType(str, Enum):
    NUMERIC = "NUMERIC"
    QUALITATIVE = "QUALITATIVE"


class AreaType(str, Enum):
    EVALUABLE = "EVALUABLE"
    INFORMATIVE = "INFORMATIVE"
    FORMATIVE = "FORMATIVE"


class CalculationMethod(str, Enum):
    AVERAGE = "AVERAGE"
    WEIGHTED = "WEIGHTED"
    DOMINANT = "DOMINANT"


class ApprovalCriteria(str, Enum):
    AREA_AVERAGE = "AREA_AVERAGE"
    ALL_SUBJECTS = "ALL_SUBJECTS"
    DOMINANT_SUBJECT = "DOMINANT_SUBJECT"


class RecoveryType(str, Enum):
    BY_SUBJECT = "BY_SUBJECT"
    FULL_AREA = "FULL_AREA"
    CONDITIONAL = "CONDITIONAL"
    NONE = "NONE"


class TermType(str, Enum):
    PERIOD = "PERIOD"
    SEMESTER_EXAM = "SEMESTER_EXAM"


class YearStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class PromotionStatus(str, Enum):
    PROMOTED = "PROMOTED"
    NOT_PROMOTED = "NOT_PROMOTED"
    IN_RECOVERY = "IN_RECOVERY"
    PENDING_DECISION = "PENDING_DECISION"
    BLOCKED = "BLOCKED"


class Severity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class IssueCode(str, Enum):
    WEIGHT_SUM_MISMATCH = "WEIGHT_SUM_MISMATCH"
    MISSING_DOMINANT_SUBJECT = "MISSING_DOMINANT_SUBJECT"
    MULTIPLE_DOMINANT_SUBJECTS = "MULTIPLE_DOMINANT_SUBJECTS"
    UNCLASSIFIED_SCORE = "UNCLASSIFIED_SCORE"
    INCOMPLETE_GRADING = "INCOMPLETE_GRADING"
    CONDITIONAL_RECOVERY_PENDING = "CONDITIONAL_RECOVERY_PENDING"
    OVERLAPPING_BANDS = "OVERLAPPING_BANDS"
    GAPPED_BANDS = "GAPPED_BANDS"
    SCORE_OUT_OF_RANGE = "SCORE_OUT_OF_RANGE"
    AREA_NOT_APPROVED = "AREA_NOT_APPROVED"
    SUBJECT_NOT_APPROVED = "SUBJECT_NOT_APPROVED"
    LOW_PERFORMANCE = "LOW_PERFORMANCE"
    STUDENT_EVALUATION_FAILED = "STUDENT_EVALUATION_FAILED"


@dataclass(frozen=True)
class Issue:
    code: IssueCode
    severity: Severity
    message: str
    entity: str = ""
    entity_id: str = ""

    @property
    def is_blocking(self) -> bool:
        return self.severity == Severity.ERROR

    def as_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "severity": self.severity.value,
            "message": self.message,
            "entity": self.entity,
            "entity_id": self.entity_id,
        }


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Subprocess:
    id: str
    weight_percentage: float
    number_of_grades: int = 1
    order: int = 0


@dataclass(frozen=True)
class EvaluationProcess:
    code: str
    weight_percentage: float
    subprocesses: Tuple[Subprocess, ...] = ()
    allow_teacher_add_grades: bool = False
    order: int = 0


@dataclass(frozen=True)
class PerformanceLevel:
    code: str
    min_score: float
    max_score: float
    order: int = 0
    is_approved: bool = True
    name: str = ""

    def contains(self, score: float) -> bool:
        return self.min_score <= score <= self.max_score


@dataclass(frozen=True)
class QualitativeLevel:
    code: str
    is_approved: bool = True
    name: str = ""
    order: int = 0


@dataclass(frozen=True)
class AcademicLevel:
    id: str
    grading_scale_type: GradingScaleType = GradingScaleType.NUMERIC
    min_grade: float = 1.0
    max_grade: float = 5.0
    min_passing_grade: float = 3.0
    performance_levels: Tuple[PerformanceLevel, ...] = ()
    qualitative_levels: Tuple[QualitativeLevel, ...] = ()


@dataclass(frozen=True)
class AreaConfig:
    area_type: AreaType = AreaType.EVALUABLE
    calculation_method: CalculationMethod = CalculationMethod.AVERAGE
    approval_criteria: ApprovalCriteria = ApprovalCriteria.AREA_AVERAGE
    recovery_type: RecoveryType = RecoveryType.BY_SUBJECT
    fail_if_any_subject_fails: bool = False


@dataclass(frozen=True)
class Area:
    id: str
    name: str = ""
    is_mandatory: bool = True


@dataclass(frozen=True)
class Subject:
    id: str
    area_id: str
    name: str = ""
    weekly_hours: int = 0
    weight_percentage: float = 0.0
    is_dominant: bool = False
    # None means the subject applies to every level / grade.
    academic_level_id: Optional[str] = None
    grade_id: Optional[str] = None


@dataclass(frozen=True)
class AcademicTerm:
    id: str
    weight_percentage: float
    order: int = 0
    term_type: TermType = TermType.PERIOD
    name: str = ""


@dataclass(frozen=True)
class AcademicYear:
    id: str
    institution_id: str = ""
    year: int = 0
    status: YearStatus = YearStatus.DRAFT
    terms: Tuple[AcademicTerm, ...] = ()


@dataclass(frozen=True)
class GradeRecord:
    student_id: str
    subject_id: str
    term_id: str
    process_code: str
    subprocess_id: str
    score: Optional[float] = None
    activity_id: str = ""


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class Classification:
    score: Any
    level: Optional[PerformanceLevel] = None
    qualitative_level: Optional[QualitativeLevel] = None
    issue: Optional[Issue] = None

    @property
    def classified(self) -> bool:
        return self.level is not None or self.qualitative_level is not None

    @property
    def code(self) -> Optional[str]:
        if self.level is not None:
            return self.level.code
        if self.qualitative_level is not None:
            return self.qualitative_level.code
        return None


@dataclass
class SubprocessResult:
    subprocess_id: str
    weight_percentage: float
    scores: List[float] = field(default_factory=list)
    average: float = 0.0


@dataclass
class ProcessResult:
    process_code: str
    weight_percentage: float
    subprocesses: List[SubprocessResult] = field(default_factory=list)
    average: float = 0.0


@dataclass
class PeriodResult:
    term_id: str
    processes: List[ProcessResult] = field(default_factory=list)
    grade: float = 0.0
    issues: List[Issue] = field(default_factory=list)


@dataclass
class SubjectResult:
    subject_id: str
    area_id: str
    periods: List[PeriodResult] = field(default_factory=list)
    final_grade: float = 0.0
    performance_level: Optional[str] = None
    approved: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SubjectGrade:
    subject_id: str
    final_grade: float
    weight_percentage: float = 0.0
    is_dominant: bool = False


@dataclass
class AreaResult:
    area_id: str
    area_type: AreaType
    area_average: Optional[float]
    is_approved: bool
    is_mandatory: bool = True
    recovery_type: RecoveryType = RecoveryType.NONE
    failing_subject_ids: List[str] = field(default_factory=list)
    blocked: bool = False
    issues: List[Issue] = field(default_factory=list)

    @property
    def counts_for_promotion(self) -> bool:
        return self.is_mandatory and self.area_type == AreaType.EVALUABLE

    def as_dict(self) -> Dict[str, Any]:
        return {
            "area_id": self.area_id,
            "area_type": self.area_type.value,
            "area_average": self.area_average,
            "is_approved": self.is_approved,
            "is_mandatory": self.is_mandatory,
            "recovery_type": self.recovery_type.value,
            "failing_subject_ids": list(self.failing_subject_ids),
            "blocked": self.blocked,
            "issues": [i.as_dict() for i in self.issues],
        }


@dataclass
class PromotionDecision:
    promoted: bool
    status: PromotionStatus
    areas_requiring_recovery: List[str] = field(default_factory=list)
    recovery_types: Dict[str, RecoveryType] = field(default_factory=dict)
    pending_council_areas: List[str] = field(default_factory=list)
    failed_areas: List[str] = field(default_factory=list)
    blocked_areas: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "promoted": self.promoted,
            "status": self.status.value,
            "areas_requiring_recovery": list(self.areas_requiring_recovery),
            "recovery_types": {k: v.value for k, v in self.recovery_types.items()},
            "pending_council_areas": list(self.pending_council_areas),
            "failed_areas": list(self.failed_areas),
            "blocked_areas": list(self.blocked_areas),
            "reasons": list(self.reasons),
        }

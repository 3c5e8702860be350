from dataclasses import replace
from unittest.mock import ANY, patch

from django.test import SimpleTestCase

from siee.academic.pipeline import EvaluationContext, evaluate_cohort, evaluate_student, resolve_context
from siee.academic.promotion import PromotionPolicy
from siee.academic.types import (
    AcademicLevel,
    AcademicTerm,
    Area,
    AreaType,
    EvaluationProcess,
    GradeRecord,
    GradingScaleType,
    IssueCode,
    PerformanceLevel,
    PromotionStatus,
    RecoveryType,
    Subject,
    Subprocess,
    TermType,
)
from siee.services.shared.dto import context_from_payload, outcomes_from_payload, records_from_payload
from siee.services.shared.errors import ValidationError
from siee.test.utils.fixture_loader import load_sample_institution


def _codes(issues):
    return [i.code for i in issues]


class PipelineEndToEndTests(SimpleTestCase):
    def setUp(self):
        self.payload = load_sample_institution()
        self.context = context_from_payload(self.payload)
        self.records = records_from_payload(self.payload)
        self.outcomes = outcomes_from_payload(self.payload)

    def test_student_with_all_areas_approved(self):
        out = evaluate_cohort(self.records, self.context)["S1"]
        finals = {s.subject_id: s.final_grade for s in out.subjects}
        self.assertEqual(finals, {"MATH": 4.0, "STATS": 3.0, "BIO": 4.0, "ETI": 5.0})

        levels = {s.subject_id: s.performance_level for s in out.subjects}
        self.assertEqual(levels["MATH"], "ALTO")
        self.assertEqual(levels["ETI"], "SUPERIOR")

        areas = {a.area_id: a for a in out.areas}
        self.assertEqual(areas["MAT"].area_average, 3.6)
        self.assertTrue(areas["MAT"].is_approved)
        self.assertEqual(areas["ETICA"].area_type, AreaType.INFORMATIVE)
        self.assertIsNone(areas["ETICA"].area_average)

        self.assertEqual(out.promotion.status, PromotionStatus.PROMOTED)
        self.assertEqual(out.general_average, 4.0)

    def test_period_breakdown_is_exposed(self):
        out = evaluate_cohort(self.records, self.context)["S1"]
        math = next(s for s in out.subjects if s.subject_id == "MATH")
        period = math.periods[0]
        self.assertEqual(period.term_id, "T1")
        self.assertEqual(period.grade, 4.0)
        self.assertEqual(
            {p.process_code: p.average for p in period.processes},
            {"COGNITIVO": 4.0, "PROCEDIMENTAL": 3.5, "ACTITUDINAL": 5.0},
        )

    def test_failing_subject_without_recovery_result(self):
        out = evaluate_cohort(self.records, self.context)["S2"]
        self.assertEqual(out.promotion.status, PromotionStatus.IN_RECOVERY)
        self.assertEqual(out.promotion.areas_requiring_recovery, ["CIE"])
        cie = next(a for a in out.areas if a.area_id == "CIE")
        self.assertEqual(cie.failing_subject_ids, ["BIO"])
        codes = _codes(out.issues)
        self.assertIn(IssueCode.SUBJECT_NOT_APPROVED, codes)
        self.assertIn(IssueCode.LOW_PERFORMANCE, codes)
        self.assertIn(IssueCode.AREA_NOT_APPROVED, codes)

    def test_recovered_subject_promotes(self):
        results = evaluate_cohort(self.records, self.context, outcomes=self.outcomes)
        self.assertEqual(results["S2"].promotion.status, PromotionStatus.IN_RECOVERY)
        self.assertEqual(results["S3"].promotion.status, PromotionStatus.PROMOTED)

    def test_evaluation_is_idempotent(self):
        first = evaluate_cohort(self.records, self.context, outcomes=self.outcomes)
        second = evaluate_cohort(self.records, self.context, outcomes=self.outcomes)
        self.assertEqual(
            {sid: r.as_dict() for sid, r in first.items()},
            {sid: r.as_dict() for sid, r in second.items()},
        )

    def test_student_ids_include_students_without_records(self):
        results = evaluate_cohort(self.records, self.context, student_ids=["S1", "S9"])
        self.assertEqual(list(results), ["S1", "S9"])
        ghost = results["S9"]
        self.assertTrue(all(s.final_grade == 0.0 for s in ghost.subjects))
        self.assertEqual(ghost.promotion.status, PromotionStatus.IN_RECOVERY)

    def test_bad_record_is_isolated_to_its_student(self):
        records = self.records + [
            GradeRecord("S1", "MATH", "T1", "COGNITIVO", "COG-EVAL", score="tidak-ada"),
        ]
        with patch("siee.academic.pipeline.log_student_fail") as log_fail:
            results = evaluate_cohort(records, self.context)
        log_fail.assert_called_once_with(ANY, "S1", ANY)
        self.assertEqual(results["S1"].promotion.status, PromotionStatus.BLOCKED)
        self.assertEqual(_codes(results["S1"].issues), [IssueCode.STUDENT_EVALUATION_FAILED])
        self.assertEqual(results["S3"].promotion.status, PromotionStatus.IN_RECOVERY)

    def test_out_of_range_score_is_reported(self):
        records = self.records + [
            GradeRecord("S1", "BIO", "T1", "COGNITIVO", "COG-EVAL", score=6.0, activity_id="ACT-9"),
        ]
        out = evaluate_cohort(records, self.context, student_ids=["S1"])["S1"]
        hits = [i for i in out.issues if i.code == IssueCode.SCORE_OUT_OF_RANGE]
        self.assertEqual(len(hits), 1)
        self.assertEqual(hits[0].entity_id, "ACT-9")

    def test_tolerance_policy(self):
        self.context.policy = PromotionPolicy(max_failed_areas=1)
        self.context.area_config = replace(self.context.area_config, recovery_type=RecoveryType.NONE)
        out = evaluate_cohort(self.records, self.context, student_ids=["S2"])["S2"]
        self.assertEqual(out.promotion.failed_areas, ["CIE"])
        self.assertTrue(out.promotion.promoted)

    def test_semester_exam_component(self):
        self.context.terms = [
            AcademicTerm(id="T1", weight_percentage=80, order=1),
            AcademicTerm(id="EX", weight_percentage=20, order=2, term_type=TermType.SEMESTER_EXAM),
        ]
        self.context.use_final_components = True
        records = [r for r in self.records if r.student_id == "S1"] + [
            GradeRecord("S1", "MATH", "EX", "", "", score=5.0),
        ]
        resolved = resolve_context(self.context)
        out = evaluate_student("S1", records, resolved)
        math = next(s for s in out.subjects if s.subject_id == "MATH")
        self.assertEqual(math.final_grade, 4.2)
        self.assertEqual(len(math.periods), 1)

    def test_qualitative_level_is_rejected(self):
        self.context.level = replace(self.context.level, grading_scale_type=GradingScaleType.QUALITATIVE)
        with self.assertRaises(ValidationError):
            evaluate_cohort(self.records, self.context)


class BoundaryRoundingTests(SimpleTestCase):
    def _context(self, **kwargs):
        level = AcademicLevel(
            id="BASICA",
            min_passing_grade=3.0,
            performance_levels=(
                PerformanceLevel("SUPERIOR", 4.5, 5.0),
                PerformanceLevel("ALTO", 4.0, 4.4),
                PerformanceLevel("BASICO", 3.0, 3.9),
                PerformanceLevel("BAJO", 1.0, 2.9, is_approved=False),
            ),
        )
        return EvaluationContext(
            level=level,
            processes=[EvaluationProcess("COGNITIVO", 100, (Subprocess("COG", 100),))],
            terms=[AcademicTerm("T1", 100)],
            areas=[Area("MAT")],
            subjects=[Subject("MATH", "MAT")],
            **kwargs,
        )

    def _records(self):
        return [
            GradeRecord("S1", "MATH", "T1", "COGNITIVO", "COG", score=3.0),
            GradeRecord("S1", "MATH", "T1", "COGNITIVO", "COG", score=2.9),
        ]

    def test_average_on_pass_mark_boundary_is_promoted(self):
        out = evaluate_cohort(self._records(), self._context())["S1"]
        math = out.subjects[0]
        self.assertEqual(math.final_grade, 3.0)
        self.assertEqual(math.performance_level, "BASICO")
        self.assertTrue(math.approved)
        self.assertEqual(out.promotion.status, PromotionStatus.PROMOTED)
        self.assertNotIn(IssueCode.UNCLASSIFIED_SCORE, _codes(out.issues))

    def test_finer_rounding_is_opt_in(self):
        out = evaluate_cohort(self._records(), self._context(decimals=2))["S1"]
        self.assertEqual(out.subjects[0].final_grade, 2.95)
        self.assertFalse(out.subjects[0].approved)
        self.assertIn(IssueCode.UNCLASSIFIED_SCORE, _codes(out.issues))

from django.test import SimpleTestCase

from siee.academic.types import (
    AcademicLevel,
    AcademicTerm,
    ApprovalCriteria,
    AreaConfig,
    CalculationMethod,
    EvaluationProcess,
    IssueCode,
    PerformanceLevel,
    Severity,
    Subject,
    Subprocess,
)
from siee.academic.validation import (
    blocking,
    ensure_saveable,
    validate_area_subjects,
    validate_performance_levels,
    validate_processes,
    validate_term_weights,
)
from siee.services.shared.errors import ConfigurationError


def _level(*bands, **kwargs):
    return AcademicLevel(id="BASICA", performance_levels=tuple(bands), **kwargs)


class WeightValidationTests(SimpleTestCase):
    def test_valid_processes(self):
        processes = [
            EvaluationProcess("COGNITIVO", 40, (Subprocess("A", 70), Subprocess("B", 30))),
            EvaluationProcess("PROCEDIMENTAL", 40),
            EvaluationProcess("ACTITUDINAL", 20),
        ]
        self.assertEqual(validate_processes(processes, "cfg-1"), [])

    def test_process_and_subprocess_sums(self):
        processes = [
            EvaluationProcess("COGNITIVO", 50, (Subprocess("A", 70), Subprocess("B", 20))),
            EvaluationProcess("PROCEDIMENTAL", 40),
        ]
        issues = validate_processes(processes, "cfg-1")
        self.assertEqual([i.entity for i in issues], ["GRADING_CONFIG", "PROCESS"])
        self.assertTrue(all(i.code == IssueCode.WEIGHT_SUM_MISMATCH for i in issues))
        self.assertTrue(all(i.severity == Severity.ERROR for i in issues))

    def test_term_weights_with_tolerance(self):
        terms = [AcademicTerm("P1", 33.33), AcademicTerm("P2", 33.33), AcademicTerm("P3", 33.34)]
        self.assertEqual(validate_term_weights(terms, "Y1"), [])
        issues = validate_term_weights([AcademicTerm("P1", 60), AcademicTerm("P2", 30)], "Y1")
        self.assertEqual(issues[0].code, IssueCode.WEIGHT_SUM_MISMATCH)
        self.assertIn("90", issues[0].message)


class AreaSubjectValidationTests(SimpleTestCase):
    def test_weighted_area_needs_hundred_percent(self):
        cfg = AreaConfig(calculation_method=CalculationMethod.WEIGHTED)
        subjects = [Subject("A", "MAT", weight_percentage=60), Subject("B", "MAT", weight_percentage=30)]
        issues = validate_area_subjects("MAT", cfg, subjects)
        self.assertEqual(issues[0].code, IssueCode.WEIGHT_SUM_MISMATCH)

    def test_dominant_cardinality(self):
        cfg = AreaConfig(approval_criteria=ApprovalCriteria.DOMINANT_SUBJECT)
        none = validate_area_subjects("MAT", cfg, [Subject("A", "MAT")])
        self.assertEqual(none[0].code, IssueCode.MISSING_DOMINANT_SUBJECT)
        two = validate_area_subjects(
            "MAT", cfg, [Subject("A", "MAT", is_dominant=True), Subject("B", "MAT", is_dominant=True)]
        )
        self.assertEqual(two[0].code, IssueCode.MULTIPLE_DOMINANT_SUBJECTS)
        one = validate_area_subjects("MAT", cfg, [Subject("A", "MAT", is_dominant=True), Subject("B", "MAT")])
        self.assertEqual(one, [])

    def test_average_area_has_no_subject_constraints(self):
        self.assertEqual(validate_area_subjects("MAT", AreaConfig(), [Subject("A", "MAT")]), [])


class PerformanceLevelValidationTests(SimpleTestCase):
    def test_contiguous_bands(self):
        level = _level(
            PerformanceLevel("SUPERIOR", 4.5, 5.0),
            PerformanceLevel("ALTO", 4.0, 4.4),
            PerformanceLevel("BASICO", 3.0, 3.9),
            PerformanceLevel("BAJO", 1.0, 2.9),
        )
        self.assertEqual(validate_performance_levels(level), [])

    def test_one_decimal_steps_are_gaps_at_two_decimals(self):
        level = _level(
            PerformanceLevel("SUPERIOR", 4.5, 5.0),
            PerformanceLevel("ALTO", 4.0, 4.4),
            PerformanceLevel("BASICO", 3.0, 3.9),
            PerformanceLevel("BAJO", 1.0, 2.9),
        )
        issues = validate_performance_levels(level, decimals=2)
        self.assertEqual([i.code for i in issues], [IssueCode.GAPPED_BANDS] * 3)
        self.assertEqual(len(validate_performance_levels(level, decimals=None)), 3)

    def test_overlap_is_warning(self):
        level = _level(PerformanceLevel("A", 1.0, 3.5), PerformanceLevel("B", 3.0, 5.0))
        issues = validate_performance_levels(level)
        self.assertEqual([i.code for i in issues], [IssueCode.OVERLAPPING_BANDS])
        self.assertEqual(issues[0].severity, Severity.WARNING)

    def test_gap_is_warning(self):
        level = _level(PerformanceLevel("A", 1.0, 2.5), PerformanceLevel("B", 3.0, 5.0))
        self.assertEqual([i.code for i in validate_performance_levels(level)], [IssueCode.GAPPED_BANDS])

    def test_uncovered_range(self):
        level = _level(PerformanceLevel("A", 2.0, 5.0))
        self.assertEqual([i.code for i in validate_performance_levels(level)], [IssueCode.GAPPED_BANDS])


class SaveGuardTests(SimpleTestCase):
    def test_errors_block_save(self):
        issues = validate_term_weights([AcademicTerm("P1", 50)], "Y1")
        self.assertEqual(len(blocking(issues)), 1)
        with self.assertRaises(ConfigurationError) as ctx:
            ensure_saveable(issues)
        self.assertEqual(ctx.exception.issues, issues)

    def test_warnings_do_not_block_save(self):
        level = _level(PerformanceLevel("A", 1.0, 3.5), PerformanceLevel("B", 3.0, 5.0))
        ensure_saveable(validate_performance_levels(level))

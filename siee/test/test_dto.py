from datetime import datetime, timezone

from django.test import SimpleTestCase

from siee.academic.types import (
    ApprovalCriteria,
    AreaType,
    CalculationMethod,
    RecoveryType,
    TermType,
    YearStatus,
)
from siee.services.shared import dto
from siee.services.shared.errors import ValidationError
from siee.test.utils.fixture_loader import load_sample_institution


class PayloadParsingTests(SimpleTestCase):
    def test_area_config_defaults(self):
        cfg = dto.area_config_from_dict(None)
        self.assertEqual(cfg.area_type, AreaType.EVALUABLE)
        self.assertEqual(cfg.calculation_method, CalculationMethod.AVERAGE)
        self.assertEqual(cfg.approval_criteria, ApprovalCriteria.AREA_AVERAGE)
        self.assertEqual(cfg.recovery_type, RecoveryType.BY_SUBJECT)
        self.assertFalse(cfg.fail_if_any_subject_fails)

    def test_enum_values_are_case_insensitive(self):
        cfg = dto.area_config_from_dict({"calculation_method": "weighted", "recovery_type": " conditional "})
        self.assertEqual(cfg.calculation_method, CalculationMethod.WEIGHTED)
        self.assertEqual(cfg.recovery_type, RecoveryType.CONDITIONAL)

    def test_unknown_enum_value(self):
        with self.assertRaises(ValidationError):
            dto.area_config_from_dict({"calculation_method": "MEDIAN"})

    def test_missing_required_field(self):
        with self.assertRaises(ValidationError):
            dto.term_from_dict({"id": "T1"})

    def test_year_and_terms(self):
        year = dto.year_from_dict(
            {
                "id": "Y2026",
                "year": 2026,
                "status": "active",
                "terms": [{"id": "EX", "weight_percentage": 20, "term_type": "SEMESTER_EXAM"}],
            }
        )
        self.assertEqual(year.status, YearStatus.ACTIVE)
        self.assertEqual(year.terms[0].term_type, TermType.SEMESTER_EXAM)

    def test_window_dates(self):
        w = dto.window_from_dict(
            {"term_id": "T1", "open_date": "2026-02-01T00:00:00+00:00", "close_date": None, "late_entry_days": "3"}
        )
        self.assertEqual(w.open_date, datetime(2026, 2, 1, tzinfo=timezone.utc))
        self.assertIsNone(w.close_date)
        self.assertEqual(w.late_entry_days, 3)
        with self.assertRaises(ValidationError):
            dto.window_from_dict({"term_id": "T1", "open_date": "besok"})

    def test_outcome(self):
        out = dto.outcome_from_dict({"subject_grades": {"BIO": "3.5"}, "council_approved": True})
        self.assertEqual(out.subject_grades, {"BIO": 3.5})
        self.assertIsNone(out.area_grade)
        self.assertTrue(out.council_approved)

    def test_string_flags_are_parsed_strictly(self):
        self.assertIs(dto.outcome_from_dict({"area_approved": "false"}).area_approved, False)
        self.assertIs(dto.outcome_from_dict({"area_approved": "yes"}).area_approved, True)
        self.assertIsNone(dto.outcome_from_dict({}).area_approved)
        self.assertIs(dto.outcome_from_dict({"council_approved": 0}).council_approved, False)
        self.assertFalse(dto.area_config_from_dict({"fail_if_any_subject_fails": "false"}).fail_if_any_subject_fails)

    def test_unknown_flag_value(self):
        with self.assertRaises(ValidationError):
            dto.outcome_from_dict({"council_approved": "mungkin"})


class ContextFromPayloadTests(SimpleTestCase):
    def test_sample_institution(self):
        payload = load_sample_institution()
        ctx = dto.context_from_payload(payload)
        self.assertEqual(ctx.level.id, "BASICA")
        self.assertEqual(len(ctx.level.performance_levels), 4)
        self.assertFalse(ctx.level.performance_levels[-1].is_approved)
        self.assertEqual([p.code for p in ctx.processes], ["COGNITIVO", "PROCEDIMENTAL", "ACTITUDINAL"])
        self.assertEqual(ctx.level_overrides[("MAT", "BASICA")].calculation_method, CalculationMethod.WEIGHTED)
        self.assertEqual(ctx.grade_overrides[("ETICA", "G6")].area_type, AreaType.INFORMATIVE)
        self.assertEqual(ctx.grade_id, "G6")
        self.assertEqual(len(dto.records_from_payload(payload)), 36)
        self.assertEqual(list(dto.outcomes_from_payload(payload)), ["S3"])

    def test_explicit_arguments_override_payload(self):
        payload = load_sample_institution()
        payload["use_final_components"] = True
        ctx = dto.context_from_payload(payload, decimals=2, use_final_components=False)
        self.assertEqual(ctx.decimals, 2)
        self.assertFalse(ctx.use_final_components)
        self.assertTrue(dto.context_from_payload(payload).use_final_components)

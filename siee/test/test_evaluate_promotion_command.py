import json
import os
import tempfile
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase

from siee.test.utils.fixture_loader import fixture_path, load_sample_institution


class EvaluatePromotionCommandTests(SimpleTestCase):
    def _run(self, *args):
        out, err = StringIO(), StringIO()
        call_command("evaluate_promotion", *args, stdout=out, stderr=err)
        return json.loads(out.getvalue()), err.getvalue()

    def test_yaml_payload(self):
        data, err = self._run("--input", str(fixture_path("sample_institution.yaml")))
        self.assertEqual(sorted(data), ["S1", "S2", "S3"])
        self.assertEqual(data["S1"]["promotion"]["status"], "PROMOTED")
        self.assertEqual(data["S2"]["promotion"]["status"], "IN_RECOVERY")
        self.assertEqual(data["S3"]["promotion"]["status"], "PROMOTED")
        self.assertIn("3 siswa", err)

    def test_json_payload_and_student_filter(self):
        payload = load_sample_institution()
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "payload.json")
            with open(path, "w", encoding="utf-8") as fh:
                json.dump(payload, fh)
            data, _ = self._run("--input", path, "--student", "S2")
        self.assertEqual(list(data), ["S2"])
        self.assertEqual(data["S2"]["promotion"]["areas_requiring_recovery"], ["CIE"])

    def test_unknown_student(self):
        with self.assertRaises(CommandError):
            self._run("--input", str(fixture_path("sample_institution.yaml")), "--student", "S404")

    def test_missing_file(self):
        with self.assertRaises(CommandError):
            self._run("--input", str(fixture_path("tidak_ada.json")))

    def test_invalid_configuration(self):
        payload = load_sample_institution()
        payload["area_config"] = {"calculation_method": "MEDIAN"}
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "payload.json")
            with open(path, "w", encoding="utf-8") as fh:
                json.dump(payload, fh)
            with self.assertRaises(CommandError):
                self._run("--input", path)

import json
from pathlib import Path

import yaml
from django.core.management.base import BaseCommand, CommandError

from siee.academic.pipeline import evaluate_cohort
from siee.academic.settings import get_engine_settings
from siee.services.shared.dto import context_from_payload, outcomes_from_payload, records_from_payload
from siee.services.shared.errors import ServiceError


def _load_payload(path: Path):
    with path.open("r", encoding="utf-8") as fh:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(fh) or {}
        else:
            data = json.load(fh)
    if not isinstance(data, dict):
        raise CommandError(f"Root payload harus berupa object: {path}")
    return data


class Command(BaseCommand):
    help = "Hitung nilai area dan keputusan kenaikan kelas dari payload JSON/YAML"

    def add_arguments(self, parser):
        parser.add_argument("--input", required=True, help="Path payload JSON atau YAML (konfigurasi + nilai)")
        parser.add_argument("--student", default=None, help="Hanya tampilkan hasil siswa ini")
        parser.add_argument("--indent", type=int, default=2)

    def handle(self, *args, **options):
        try:
            payload = _load_payload(Path(options["input"]))
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
            raise CommandError(f"Gagal membaca payload: {exc}") from exc

        cfg = get_engine_settings()
        try:
            context = context_from_payload(
                payload,
                policy=cfg.promotion_policy(),
                decimals=cfg.grade_decimals,
                use_final_components=None if "use_final_components" in payload else cfg.use_final_components,
            )
            results = evaluate_cohort(
                records_from_payload(payload),
                context,
                student_ids=payload.get("student_ids"),
                outcomes=outcomes_from_payload(payload),
            )
        except ServiceError as exc:
            raise CommandError(str(exc)) from exc

        student = options.get("student")
        if student:
            if student not in results:
                raise CommandError(f"Siswa {student} tidak ditemukan di payload")
            results = {student: results[student]}

        out = {sid: r.as_dict() for sid, r in results.items()}
        self.stdout.write(json.dumps(out, indent=options["indent"], ensure_ascii=False))
        promoted = sum(1 for r in results.values() if r.promotion and r.promotion.promoted)
        self.stderr.write(self.style.SUCCESS(f"✅ {len(results)} siswa dievaluasi, {promoted} naik kelas"))

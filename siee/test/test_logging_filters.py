import logging

from django.test import SimpleTestCase

from config.logging_filters import EngineContextFilter


def _record(level=logging.INFO, **extra):
    record = logging.LogRecord("siee", level, __file__, 1, "msg", (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class EngineContextFilterTests(SimpleTestCase):
    def test_missing_context_defaults_to_dash(self):
        record = _record()
        self.assertTrue(EngineContextFilter().filter(record))
        self.assertEqual((record.student_id, record.year_id, record.term_id, record.area_id), ("-", "-", "-", "-"))
        self.assertEqual(record.level_color, "")

    def test_existing_context_is_kept(self):
        record = _record(student_id="S1")
        EngineContextFilter().filter(record)
        self.assertEqual(record.student_id, "S1")

    def test_level_colors(self):
        warn = _record(logging.WARNING)
        err = _record(logging.ERROR)
        EngineContextFilter().filter(warn)
        EngineContextFilter().filter(err)
        self.assertEqual(warn.level_color, "\x1b[33m")
        self.assertEqual(err.level_color, "\x1b[31m")

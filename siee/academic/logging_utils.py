from typing import Any


def log_student_start(logger: Any, student_id: str, records: int) -> None:
    logger.debug(" EVALUATE_START records=%s", records, extra={"student_id": student_id})


def log_student_done(logger: Any, student_id: str, status: str, issues: int) -> None:
    logger.info(" EVALUATE_DONE status=%s issues=%s", status, issues, extra={"student_id": student_id})


def log_student_fail(logger: Any, student_id: str, reason: str) -> None:
    logger.warning(" EVALUATE_FAIL reason=%s", reason or "unknown_error", extra={"student_id": student_id})


def log_area_blocked(logger: Any, student_id: str, area_id: str, codes: str) -> None:
    logger.warning(
        " AREA_BLOCKED codes=%s",
        codes or "-",
        extra={"student_id": student_id, "area_id": area_id},
    )


def log_cohort_timing(logger: Any, *, students: int, failed: int, total_ms: int) -> None:
    logger.info(" COHORT_DONE students=%s failed=%s total_ms=%s", students, failed, total_ms)

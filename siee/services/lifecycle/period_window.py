"""
Per-term grading window.

Status is recomputed from the supplied clock on every call; nothing is cached
so a write can never slip past a closing boundary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from django.utils import timezone

from siee.services.shared.errors import GradingWindowClosedError

logger = logging.getLogger(__name__)


class WindowStatus(str, Enum):
    UPCOMING = "upcoming"
    OPEN = "open"
    CLOSED = "closed"
    NOT_CONFIGURED = "not_configured"


@dataclass(frozen=True)
class GradingWindow:
    term_id: str
    open_date: Optional[datetime] = None
    close_date: Optional[datetime] = None
    # Manual switch kept by administrators; False closes the window regardless of dates.
    is_open: bool = True
    allow_late_entry: bool = False
    late_entry_days: int = 0

    def effective_close_date(self) -> Optional[datetime]:
        if self.close_date is None:
            return None
        if self.allow_late_entry and self.late_entry_days > 0:
            return self.close_date + timedelta(days=self.late_entry_days)
        return self.close_date


@dataclass(frozen=True)
class FlowResult:
    allowed: bool
    reason: str = ""
    blocked_until: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "blocked_until": self.blocked_until.isoformat() if self.blocked_until else None,
        }


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else timezone.now()


def status(window: Optional[GradingWindow], now: Optional[datetime] = None) -> WindowStatus:
    if window is None:
        return WindowStatus.NOT_CONFIGURED
    if not window.is_open:
        return WindowStatus.CLOSED
    ts = _now(now)
    if window.open_date is not None and ts < window.open_date:
        return WindowStatus.UPCOMING
    close_at = window.effective_close_date()
    if close_at is not None and ts > close_at:
        return WindowStatus.CLOSED
    return WindowStatus.OPEN


def can_enter_grades(window: Optional[GradingWindow], now: Optional[datetime] = None) -> bool:
    return status(window, now) == WindowStatus.OPEN


def check(window: Optional[GradingWindow], now: Optional[datetime] = None) -> FlowResult:
    current = status(window, now)
    if current == WindowStatus.OPEN:
        return FlowResult(allowed=True)
    if current == WindowStatus.NOT_CONFIGURED:
        return FlowResult(allowed=False, reason="Periode penilaian belum dikonfigurasi")
    if current == WindowStatus.UPCOMING:
        return FlowResult(
            allowed=False,
            reason=f"Periode penilaian dibuka pada {window.open_date:%Y-%m-%d}",
            blocked_until=window.open_date,
        )
    if window is not None and not window.is_open:
        return FlowResult(allowed=False, reason="Periode penilaian ditutup oleh administrator")
    return FlowResult(allowed=False, reason="Periode penilaian sudah berakhir")


def ensure_can_enter_grades(window: Optional[GradingWindow], now: Optional[datetime] = None) -> None:
    result = check(window, now)
    if not result.allowed:
        term = window.term_id if window is not None else "-"
        logger.warning("grade_entry_rejected reason=%s", result.reason, extra={"term_id": term})
        raise GradingWindowClosedError(f"{result.reason} (term={term})")

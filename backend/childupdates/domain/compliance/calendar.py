"""Reporting calendar: which period is current and when it is due."""
from __future__ import annotations
from calendar import monthrange
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Optional


@dataclass(frozen=True)
class ReportingPeriod:
    period_or_term: str
    deadline: date

    def days_until_deadline(self, today: date) -> int:
        return (self.deadline - today).days


def field_period(today: date, deadline_day: int) -> ReportingPeriod:
    """
    Field updates are monthly, labelled "YYYY-MM", due on ``deadline_day`` of
    that month. Months shorter than ``deadline_day`` are due on their last day.
    """
    if not 1 <= deadline_day <= 31:
        raise ValueError(f"deadline_day must be between 1 and 31, got {deadline_day}")
    label = f"{today.year}-{today.month:02d}"
    last_day = monthrange(today.year, today.month)[1]
    return ReportingPeriod(label, date(today.year, today.month, min(deadline_day, last_day)))


def academic_term(today: date, term_deadlines: Mapping[str, str], grace_days: int) -> Optional[ReportingPeriod]:
    """
    The term with the earliest deadline that has not been past for more than
    ``grace_days``. None when no term is configured or all are long closed.
    """
    candidates = []
    for label, raw in term_deadlines.items():
        deadline = date.fromisoformat(raw)
        if (today - deadline).days <= grace_days:
            candidates.append(ReportingPeriod(label, deadline))
    if not candidates:
        return None
    return min(candidates, key=lambda p: p.deadline)

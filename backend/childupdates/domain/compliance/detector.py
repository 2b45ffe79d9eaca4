"""Compliance detector: which active children have no qualifying update for a period."""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from childupdates.domain.compliance.models import (
    ComplianceReport,
    ComplianceSummary,
    MissingUpdate,
    MissingUpdatesReport,
)
from childupdates.domain.update.models import Child, ChildStatus, ReportType, UpdateSubmission
from childupdates.domain.update.rules import QUALIFYING_STATUSES


def compliance_rate(present: int, expected: int) -> int:
    """Percentage rounded half-up; an empty population is fully compliant."""
    if expected <= 0:
        return 100
    return int(100 * present / expected + 0.5)


def detect_missing(
    children: Iterable[Child],
    submissions: Iterable[UpdateSubmission],
    period_or_term: str,
    report_type: ReportType,
) -> MissingUpdatesReport:
    """
    Expected = active children. Present = expected children with at least one
    submission in a qualifying status whose period and report type match exactly.

    Submissions for children outside the active population are ignored, so
    ``present`` never exceeds ``expected``.
    """
    active = [c for c in children if c.status == ChildStatus.ACTIVE]
    expected_ids = {c.child_id for c in active}

    submitted_ids = {
        s.child_id
        for s in submissions
        if s.period_or_term == period_or_term
        and s.report_type == report_type
        and s.status in QUALIFYING_STATUSES
    }

    present_ids: List[str] = []
    missing_ids: List[str] = []
    missing_updates: List[MissingUpdate] = []
    for child in active:
        if child.child_id in submitted_ids:
            present_ids.append(child.child_id)
        else:
            missing_ids.append(child.child_id)
            missing_updates.append(
                MissingUpdate(
                    child_id=child.child_id,
                    child_first_name=child.first_name,
                    period_or_term=period_or_term,
                    report_type=report_type,
                )
            )

    expected = len(expected_ids)
    present = len(present_ids)
    return MissingUpdatesReport(
        period_or_term=period_or_term,
        report_type=report_type,
        missing_child_ids=missing_ids,
        present_child_ids=present_ids,
        missing_updates=missing_updates,
        expected=expected,
        present=present,
        missing=len(missing_ids),
        compliance_rate=compliance_rate(present, expected),
    )


def to_summary(report: MissingUpdatesReport, generated_at: str) -> ComplianceSummary:
    return ComplianceSummary(
        period_or_term=report.period_or_term,
        report_type=report.report_type,
        expected=report.expected,
        present=report.present,
        missing=report.missing,
        missing_child_ids=list(report.missing_child_ids),
        compliance_rate=report.compliance_rate,
        generated_at=generated_at,
    )


def summarize(reports: Sequence[MissingUpdatesReport], generated_at: Optional[str] = None) -> ComplianceReport:
    generated_at = generated_at or datetime.now(timezone.utc).isoformat()
    summaries = [to_summary(r, generated_at) for r in reports]
    total_expected = sum(s.expected for s in summaries)
    total_present = sum(s.present for s in summaries)
    total_missing = sum(s.missing for s in summaries)
    return ComplianceReport(
        summaries=summaries,
        overall_compliance_rate=compliance_rate(total_present, total_expected),
        total_expected=total_expected,
        total_present=total_present,
        total_missing=total_missing,
        generated_at=generated_at,
    )

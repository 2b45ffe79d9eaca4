"""
Escalation / reminder policy.

Given how far a period is from its deadline, decide whether a reminder tier or an
escalation is due, and build the notice for it. The policy keeps no memory of what
it already produced; de-duplicating sends is the scheduler's job.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional

from childupdates.domain.common.result import ErrorCode, Result
from childupdates.domain.compliance import templates
from childupdates.domain.compliance.models import Notice, NoticeTier, Urgency
from childupdates.domain.update.models import ReportType, Role
from childupdates.domain.update.rules import SUBMITTER_ROLES

REMINDER_TIERS = (NoticeTier.INITIAL, NoticeTier.FOLLOW_UP, NoticeTier.FINAL)


@dataclass(frozen=True)
class ReminderSchedule:
    """Days before the deadline on which each reminder tier is due."""
    initial_days_before: int
    follow_up_days_before: int
    final_days_before: int = 0

    @classmethod
    def from_config(cls, entry: dict) -> "ReminderSchedule":
        return cls(
            initial_days_before=entry["initial"],
            follow_up_days_before=entry["follow_up"],
            final_days_before=entry.get("final", 0),
        )


def urgency_for(days_overdue: int) -> Urgency:
    if days_overdue > 7:
        return Urgency.HIGH
    if days_overdue > 3:
        return Urgency.MEDIUM
    return Urgency.LOW


def target_role(tier: NoticeTier, report_type: ReportType) -> Role:
    """Reminders go to whoever submits the report type; escalations always go to the reviewer."""
    if tier == NoticeTier.ESCALATION:
        return Role.REVIEWER
    return SUBMITTER_ROLES[report_type]


class EscalationPolicy:
    def __init__(self, schedules: dict[ReportType, ReminderSchedule]):
        self._schedules = schedules

    def select_tier(self, report_type: ReportType, days_until_deadline: int) -> Optional[NoticeTier]:
        """
        ``days_until_deadline`` is negative once the deadline has passed.
        Reminder tiers fire only on their exact day; every day past the deadline
        is an escalation day.
        """
        if days_until_deadline < 0:
            return NoticeTier.ESCALATION

        schedule = self._schedules[report_type]
        if days_until_deadline == schedule.final_days_before:
            return NoticeTier.FINAL
        if days_until_deadline == schedule.follow_up_days_before:
            return NoticeTier.FOLLOW_UP
        if days_until_deadline == schedule.initial_days_before:
            return NoticeTier.INITIAL
        return None

    def build_reminder(
        self,
        tier: NoticeTier,
        period_or_term: str,
        report_type: ReportType,
        missing_child_ids: List[str],
        form_url: str,
    ) -> Result[Notice]:
        if tier not in REMINDER_TIERS:
            return Result.fail(ErrorCode.INVALID_ARGS, f"'{tier.value}' is not a reminder tier.")
        invalid = _validate_common(period_or_term, missing_child_ids)
        if invalid is not None:
            return invalid
        if not (form_url or "").strip():
            return Result.fail(ErrorCode.INVALID_ARGS, "form_url is required for reminders.")

        return Result.ok(
            Notice(
                tier=tier,
                to_role=target_role(tier, report_type),
                period_or_term=period_or_term,
                report_type=report_type,
                subject=templates.reminder_subject(tier, report_type, period_or_term),
                html_body=templates.reminder_html(tier, report_type, period_or_term, missing_child_ids, form_url),
                text_body=templates.reminder_text(tier, report_type, period_or_term, missing_child_ids, form_url),
                missing_child_ids=list(missing_child_ids),
            )
        )

    def build_escalation(
        self,
        period_or_term: str,
        report_type: ReportType,
        missing_child_ids: List[str],
        days_overdue: int,
    ) -> Result[Notice]:
        invalid = _validate_common(period_or_term, missing_child_ids)
        if invalid is not None:
            return invalid
        if days_overdue < 1:
            return Result.fail(ErrorCode.INVALID_ARGS, "days_overdue must be at least 1.")

        urgency = urgency_for(days_overdue)
        responsible = SUBMITTER_ROLES[report_type].value
        return Result.ok(
            Notice(
                tier=NoticeTier.ESCALATION,
                to_role=Role.REVIEWER,
                period_or_term=period_or_term,
                report_type=report_type,
                subject=templates.escalation_subject(report_type, period_or_term, len(missing_child_ids), days_overdue),
                html_body=templates.escalation_html(
                    report_type, period_or_term, responsible, missing_child_ids, days_overdue, urgency
                ),
                text_body=templates.escalation_text(
                    report_type, period_or_term, responsible, missing_child_ids, days_overdue, urgency
                ),
                missing_child_ids=list(missing_child_ids),
                days_overdue=days_overdue,
                urgency=urgency,
            )
        )

    def plan(
        self,
        period_or_term: str,
        report_type: ReportType,
        missing_child_ids: List[str],
        days_until_deadline: int,
        form_url: str,
    ) -> Result[Optional[Notice]]:
        """Pick the tier for today and build its notice; Result.ok(None) when nothing is due."""
        tier = self.select_tier(report_type, days_until_deadline)
        if tier is None:
            return Result.ok(None)
        if tier == NoticeTier.ESCALATION:
            built = self.build_escalation(period_or_term, report_type, missing_child_ids, -days_until_deadline)
        else:
            built = self.build_reminder(tier, period_or_term, report_type, missing_child_ids, form_url)
        if not built.is_success:
            return Result.from_failure(built)
        return Result.ok(built.value)


def _validate_common(period_or_term: str, missing_child_ids: List[str]) -> Optional[Result]:
    if not (period_or_term or "").strip():
        return Result.fail(ErrorCode.INVALID_ARGS, "period_or_term is required.")
    if not missing_child_ids:
        return Result.fail(ErrorCode.INVALID_ARGS, "missing_child_ids must contain at least one child ID.")
    return None

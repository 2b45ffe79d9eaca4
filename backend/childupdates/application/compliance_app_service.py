"""Application service: compliance reports, the admin digest and the daily reminder/escalation job."""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Union

from childupdates.application.uniqueness_registry import UniquenessRegistry
from childupdates.domain.common.errors import NotificationError, StoreError
from childupdates.domain.common.result import ErrorCode, Result
from childupdates.domain.compliance import templates
from childupdates.domain.compliance.calendar import ReportingPeriod, academic_term, field_period
from childupdates.domain.compliance.detector import detect_missing, summarize
from childupdates.domain.compliance.escalation import EscalationPolicy
from childupdates.domain.compliance.models import (
    AdminDigest,
    ComplianceReport,
    MissingUpdatesReport,
    NoticeTier,
    OverdueReport,
)
from childupdates.domain.compliance.overdue import find_overdue
from childupdates.domain.update.models import ReportType, Role, UpdateStatus
from childupdates.notifications.sink import NotificationSink
from childupdates.persistence.interfaces.record_store import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class JobAction:
    period_or_term: str
    report_type: ReportType
    action: str
    result: str  # success | skipped | error
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ComplianceJobResult:
    run_on: str
    actions: List[JobAction]
    reports: List[ComplianceReport]


class ComplianceAppService:
    def __init__(
        self,
        store: RecordStore,
        sink: NotificationSink,
        policy: EscalationPolicy,
        form_urls: Dict[str, str],
        field_deadline_day: int,
        academic_term_deadlines: Dict[str, str],
        academic_grace_days: int,
        overdue_threshold_days: int = 90,
    ):
        self._store = store
        self._sink = sink
        self._policy = policy
        self._form_urls = form_urls
        self._field_deadline_day = field_deadline_day
        self._academic_terms = academic_term_deadlines
        self._academic_grace_days = academic_grace_days
        self._overdue_threshold_days = overdue_threshold_days

    # ------------------------------------------------------------------
    # DETECTION (read-only)
    # ------------------------------------------------------------------
    def detect_missing(self, period_or_term: str, report_type: Union[ReportType, str]) -> Result[MissingUpdatesReport]:
        if not (period_or_term or "").strip():
            return Result.fail(ErrorCode.INVALID_ARGS, "period_or_term is required.")
        try:
            report_type = ReportType(report_type)
        except ValueError:
            return Result.fail(ErrorCode.INVALID_ARGS, 'report_type must be "field" or "academic".')

        logger.info("detect_missing: Starting period=%s type=%s", period_or_term, report_type.value)
        try:
            children = self._store.list_active_children()
            submissions = self._store.find_submissions(period_or_term=period_or_term, report_type=report_type)
        except StoreError as e:
            logger.exception("detect_missing: Failed period=%s", period_or_term)
            return Result.fail(ErrorCode.STORE_ERROR, str(e))

        report = detect_missing(children, submissions, period_or_term, report_type)
        logger.info(
            "detect_missing: Completed period=%s type=%s expected=%d present=%d missing=%d rate=%d",
            period_or_term, report_type.value, report.expected, report.present, report.missing, report.compliance_rate,
        )
        return Result.ok(report)

    def generate_compliance_summary(
        self,
        period_or_term: str,
        report_type: Union[ReportType, str, None] = None,
    ) -> Result[ComplianceReport]:
        if report_type is None:
            report_types = list(ReportType)
        else:
            try:
                report_types = [ReportType(report_type)]
            except ValueError:
                return Result.fail(ErrorCode.INVALID_ARGS, 'report_type must be "field" or "academic".')

        reports: List[MissingUpdatesReport] = []
        for rt in report_types:
            detected = self.detect_missing(period_or_term, rt)
            if not detected.is_success:
                return Result.from_failure(detected)
            reports.append(detected.value)

        summary = summarize(reports)
        logger.info(
            "generate_compliance_summary: Completed period=%s overall=%d missing=%d",
            period_or_term, summary.overall_compliance_rate, summary.total_missing,
        )
        return Result.ok(summary)

    # ------------------------------------------------------------------
    # OVERDUE CHILDREN + ADMIN DIGEST
    # ------------------------------------------------------------------
    def list_overdue(self, threshold_days: Optional[int] = None, now: Optional[datetime] = None) -> Result[OverdueReport]:
        threshold = self._overdue_threshold_days if threshold_days is None else threshold_days
        if threshold < 1:
            return Result.fail(ErrorCode.INVALID_ARGS, "threshold_days must be a positive number.")

        logger.info("list_overdue: Starting threshold_days=%d", threshold)
        try:
            children = self._store.list_active_children()
            published = self._store.find_submissions(status_in=(UpdateStatus.PUBLISHED,))
        except StoreError as e:
            logger.exception("list_overdue: Failed")
            return Result.fail(ErrorCode.STORE_ERROR, str(e))

        report = find_overdue(children, published, threshold, now)
        logger.info(
            "list_overdue: Completed total_active=%d overdue=%d threshold_days=%d",
            report.total_active, report.overdue_count, threshold,
        )
        return Result.ok(report)

    def send_admin_digest(self, threshold_days: Optional[int] = None, now: Optional[datetime] = None) -> Result[AdminDigest]:
        """
        Email the reviewer mailbox the review queue size and the overdue children.
        Not deduplicated: every call sends.
        """
        now = now or datetime.now(timezone.utc)
        overdue = self.list_overdue(threshold_days, now)
        if not overdue.is_success:
            return Result.from_failure(overdue)
        report = overdue.value

        try:
            pending = self._store.find_submissions(
                status_in=(UpdateStatus.PENDING_REVIEW, UpdateStatus.NEEDS_CORRECTION),
            )
            superseded = UniquenessRegistry(self._store).superseded_ids() if pending else set()
        except StoreError as e:
            logger.exception("send_admin_digest: Failed")
            return Result.fail(ErrorCode.STORE_ERROR, str(e))
        pending = [s for s in pending if s.id not in superseded]

        generated_on = now.date().isoformat()
        args = (pending, report.overdue_children, report.total_active, report.threshold_days, generated_on)
        try:
            receipt = self._sink.send(
                Role.REVIEWER,
                templates.digest_subject(len(pending), report.overdue_count),
                templates.digest_html(*args),
                templates.digest_text(*args),
            )
        except NotificationError as e:
            logger.error("send_admin_digest: Not delivered: %s", e)
            return Result.fail(ErrorCode.NOTIFICATION_ERROR, str(e))

        logger.info(
            "send_admin_digest: Completed pending=%d overdue=%d provider=%s",
            len(pending), report.overdue_count, receipt.provider,
        )
        return Result.ok(
            AdminDigest(
                pending_updates=len(pending),
                overdue_children=report.overdue_count,
                total_active=report.total_active,
                generated_at=now.isoformat(),
                message_id=receipt.message_id,
                provider=receipt.provider,
            )
        )

    # ------------------------------------------------------------------
    # SCHEDULED JOB
    # ------------------------------------------------------------------
    def current_periods(self, today: date) -> Dict[ReportType, Optional[ReportingPeriod]]:
        return {
            ReportType.FIELD: field_period(today, self._field_deadline_day),
            ReportType.ACADEMIC: academic_term(today, self._academic_terms, self._academic_grace_days),
        }

    def run_compliance_job(self, today: Optional[date] = None) -> ComplianceJobResult:
        """
        One pass of the daily job. Reminder tiers are sent at most once per period;
        escalations at most once per day. A failed send is reported and left
        unmarked so the next run tries again.
        """
        today = today or date.today()
        logger.info("Compliance job: Starting run_on=%s", today.isoformat())
        actions: List[JobAction] = []
        reports: List[ComplianceReport] = []

        for report_type, period in self.current_periods(today).items():
            if period is None:
                actions.append(JobAction("", report_type, "check", "skipped", {"reason": "No current period configured"}))
                continue

            detected = self.detect_missing(period.period_or_term, report_type)
            if not detected.is_success:
                actions.append(JobAction(period.period_or_term, report_type, "check", "error", _error_details(detected)))
                continue
            report = detected.value
            reports.append(summarize([report]))

            if report.missing == 0:
                actions.append(
                    JobAction(period.period_or_term, report_type, "check", "skipped",
                              {"reason": "No missing updates", "compliance_rate": report.compliance_rate})
                )
                continue

            actions.append(self._dispatch(period, report, today))

        logger.info("Compliance job: Completed run_on=%s actions=%d", today.isoformat(), len(actions))
        return ComplianceJobResult(run_on=today.isoformat(), actions=actions, reports=reports)

    def _dispatch(self, period: ReportingPeriod, report: MissingUpdatesReport, today: date) -> JobAction:
        report_type = report.report_type
        days_until = period.days_until_deadline(today)
        planned = self._policy.plan(
            period.period_or_term, report_type, report.missing_child_ids, days_until,
            self._form_urls.get(report_type.value, ""),
        )
        if not planned.is_success:
            return JobAction(period.period_or_term, report_type, "plan", "error", _error_details(planned))
        notice = planned.value
        if notice is None:
            return JobAction(period.period_or_term, report_type, "check", "skipped",
                             {"reason": "No notice due today", "days_until_deadline": days_until})

        action = "escalation" if notice.tier == NoticeTier.ESCALATION else f"reminder_{notice.tier.value}"
        # Escalations repeat daily; reminder tiers fire once per period.
        sent_on = today.isoformat() if notice.tier == NoticeTier.ESCALATION else None
        try:
            if self._store.has_notice_been_sent(period.period_or_term, report_type, notice.tier.value, sent_on):
                return JobAction(period.period_or_term, report_type, action, "skipped", {"reason": "Already sent"})
        except StoreError as e:
            return JobAction(period.period_or_term, report_type, action, "error",
                             {"code": ErrorCode.STORE_ERROR.value, "message": str(e)})

        try:
            receipt = self._sink.send(notice.to_role, notice.subject, notice.html_body, notice.text_body)
        except NotificationError as e:
            logger.error("Compliance job: %s for %s/%s not delivered: %s",
                         action, period.period_or_term, report_type.value, e)
            return JobAction(period.period_or_term, report_type, action, "error",
                             {"code": ErrorCode.NOTIFICATION_ERROR.value, "message": str(e)})

        details: Dict[str, Any] = {
            "to_role": notice.to_role.value,
            "child_count": len(notice.missing_child_ids),
            "message_id": receipt.message_id,
            "provider": receipt.provider,
        }
        if notice.tier == NoticeTier.ESCALATION:
            details.update(days_overdue=notice.days_overdue, urgency=notice.urgency.value)

        try:
            self._store.record_notice_sent(
                period.period_or_term, report_type, notice.tier.value, today.isoformat(), receipt.message_id
            )
        except StoreError:
            # Delivered but unmarked: a re-run may send it again.
            logger.exception("Compliance job: Could not record %s for %s", action, period.period_or_term)
            details["marker_recorded"] = False

        return JobAction(period.period_or_term, report_type, action, "success", details)


def _error_details(result: Result) -> Dict[str, Any]:
    return {"code": result.code.value if result.code else None, "message": result.error}

"""The daily reminder/escalation job: what it sends, and that it sends it once."""
from datetime import date

import pytest

from conftest import FIELD_PAYLOAD, RecordingSink, make_child
from childupdates.application.compliance_app_service import ComplianceAppService
from childupdates.application.update_app_service import UpdateAppService
from childupdates.domain.compliance.escalation import EscalationPolicy, ReminderSchedule
from childupdates.domain.update.models import ReportType, Role

TERMS = {"2026-T1": "2026-01-30"}


def _service(store, sink, terms=None, deadline_day=28):
    policy = EscalationPolicy(
        {
            ReportType.FIELD: ReminderSchedule(initial_days_before=27, follow_up_days_before=5),
            ReportType.ACADEMIC: ReminderSchedule(initial_days_before=14, follow_up_days_before=3),
        }
    )
    return ComplianceAppService(
        store=store,
        sink=sink,
        policy=policy,
        form_urls={"field": "https://forms.example/field", "academic": "https://forms.example/academic"},
        field_deadline_day=deadline_day,
        academic_term_deadlines=terms or {},
        academic_grace_days=30,
    )


@pytest.fixture
def children(seed_children):
    seed_children(make_child("C1"), make_child("C2"), make_child("C3"))


def _actions(result, report_type):
    return [a for a in result.actions if a.report_type == report_type]


def test_initial_reminder_sent_once_per_period(store, children):
    sink = RecordingSink()
    svc = _service(store, sink)

    first = svc.run_compliance_job(date(2026, 1, 1))
    field = _actions(first, ReportType.FIELD)[0]
    assert field.action == "reminder_initial"
    assert field.result == "success"
    assert field.details["child_count"] == 3
    assert field.details["to_role"] == "field_submitter"
    assert len(sink.sent) == 1
    assert sink.sent[0]["to_role"] == Role.FIELD_SUBMITTER

    second = svc.run_compliance_job(date(2026, 1, 1))
    assert _actions(second, ReportType.FIELD)[0].result == "skipped"
    assert len(sink.sent) == 1


def test_no_notice_on_an_off_day(store, children):
    sink = RecordingSink()
    result = _service(store, sink).run_compliance_job(date(2026, 1, 10))
    action = _actions(result, ReportType.FIELD)[0]
    assert action.result == "skipped"
    assert action.details["days_until_deadline"] == 18
    assert sink.sent == []


def test_escalation_sent_once_per_day(store, children):
    sink = RecordingSink()
    svc = _service(store, sink)

    svc.run_compliance_job(date(2026, 1, 30))
    svc.run_compliance_job(date(2026, 1, 30))
    assert len(sink.sent) == 1
    assert sink.sent[0]["to_role"] == Role.REVIEWER

    result = svc.run_compliance_job(date(2026, 1, 31))
    action = _actions(result, ReportType.FIELD)[0]
    assert action.action == "escalation"
    assert action.details["days_overdue"] == 3
    assert action.details["urgency"] == "low"
    assert len(sink.sent) == 2


def test_fully_compliant_period_sends_nothing(store, children):
    updates = UpdateAppService(store)
    for child_id in ("C1", "C2", "C3"):
        updates.submit_update(child_id, ReportType.FIELD, "2026-01", Role.FIELD_SUBMITTER, dict(FIELD_PAYLOAD))

    sink = RecordingSink()
    result = _service(store, sink).run_compliance_job(date(2026, 1, 28))
    action = _actions(result, ReportType.FIELD)[0]
    assert action.result == "skipped"
    assert action.details["compliance_rate"] == 100
    assert sink.sent == []


def test_failed_send_is_retried_next_run(store, children):
    failing = RecordingSink(fail=True)
    result = _service(store, failing).run_compliance_job(date(2026, 1, 23))
    action = _actions(result, ReportType.FIELD)[0]
    assert action.action == "reminder_follow_up"
    assert action.result == "error"
    assert action.details["code"] == "notification_error"
    assert not store.has_notice_been_sent("2026-01", ReportType.FIELD, "follow_up")

    working = RecordingSink()
    retry = _service(store, working).run_compliance_job(date(2026, 1, 23))
    assert _actions(retry, ReportType.FIELD)[0].result == "success"
    assert len(working.sent) == 1


def test_academic_skipped_without_terms(store, children):
    result = _service(store, RecordingSink()).run_compliance_job(date(2026, 1, 10))
    action = _actions(result, ReportType.ACADEMIC)[0]
    assert action.result == "skipped"
    assert action.details["reason"] == "No current period configured"


def test_academic_term_reminders(store, children):
    sink = RecordingSink()
    result = _service(store, sink, TERMS).run_compliance_job(date(2026, 1, 16))
    action = _actions(result, ReportType.ACADEMIC)[0]
    assert action.period_or_term == "2026-T1"
    assert action.action == "reminder_initial"
    assert sink.sent[-1]["to_role"] == Role.ACADEMIC_SUBMITTER


def test_job_reports_compliance(store, children):
    result = _service(store, RecordingSink()).run_compliance_job(date(2026, 1, 10))
    assert result.run_on == "2026-01-10"
    assert len(result.reports) == 1
    assert result.reports[0].summaries[0].missing == 3


def test_deadline_day_past_month_end_uses_last_day(store, children):
    sink = RecordingSink()
    svc = _service(store, sink, deadline_day=31)

    quiet = _actions(svc.run_compliance_job(date(2026, 2, 10)), ReportType.FIELD)[0]
    assert quiet.result == "skipped"
    assert quiet.details["days_until_deadline"] == 18

    result = svc.run_compliance_job(date(2026, 2, 23))
    action = _actions(result, ReportType.FIELD)[0]
    assert action.period_or_term == "2026-02"
    assert action.action == "reminder_follow_up"
    assert action.result == "success"

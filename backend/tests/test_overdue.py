"""Overdue children and the reviewer digest."""
from datetime import datetime, timedelta, timezone

import pytest

from conftest import FIELD_PAYLOAD, make_child
from childupdates.application.compliance_app_service import ComplianceAppService
from childupdates.application.update_app_service import UpdateAppService
from childupdates.container import get_escalation_policy
from childupdates.domain.common.errors import StoreError
from childupdates.domain.common.result import ErrorCode
from childupdates.domain.compliance.overdue import find_overdue
from childupdates.domain.update.models import (
    Child,
    ChildStatus,
    ReportType,
    Role,
    UpdateStatus,
    UpdateSubmission,
)

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _published(child_id, published_at):
    return UpdateSubmission(
        id=f"u-{child_id}-{published_at}",
        child_id=child_id,
        report_type=ReportType.FIELD,
        period_or_term="2026-01",
        status=UpdateStatus.PUBLISHED,
        submitted_by=Role.FIELD_SUBMITTER,
        submitted_at=published_at,
        published_at=published_at,
    )


# ------------------------------------------------------------------
# Domain
# ------------------------------------------------------------------
def test_overdue_threshold_and_order():
    children = [make_child("C1"), make_child("C2"), make_child("C3"), make_child("C4")]
    submissions = [
        _published("C1", (NOW - timedelta(days=10)).isoformat()),
        _published("C2", (NOW - timedelta(days=120)).isoformat()),
        _published("C3", (NOW - timedelta(days=95)).isoformat()),
    ]
    report = find_overdue(children, submissions, 90, NOW)

    assert report.total_active == 4
    assert report.overdue_count == 3
    assert [c.child_id for c in report.overdue_children] == ["C4", "C2", "C3"]
    assert report.overdue_children[0].days_since_update is None
    assert report.overdue_children[0].last_update_at is None
    assert report.overdue_children[1].days_since_update == 120


def test_latest_update_wins():
    submissions = [
        _published("C1", (NOW - timedelta(days=200)).isoformat()),
        _published("C1", (NOW - timedelta(days=30)).isoformat()),
    ]
    assert find_overdue([make_child("C1")], submissions, 90, NOW).overdue_count == 0


def test_unpublished_updates_do_not_count():
    pending = UpdateSubmission(
        id="u-1",
        child_id="C1",
        report_type=ReportType.FIELD,
        period_or_term="2026-05",
        status=UpdateStatus.PENDING_REVIEW,
        submitted_by=Role.FIELD_SUBMITTER,
        submitted_at=(NOW - timedelta(days=1)).isoformat(),
    )
    report = find_overdue([make_child("C1")], [pending], 90, NOW)
    assert [c.child_id for c in report.overdue_children] == ["C1"]


def test_enrollment_stamps_count_as_updates():
    child = Child(
        child_id="C1",
        first_name="Amani",
        status=ChildStatus.ACTIVE,
        last_academic_update_at=(NOW - timedelta(days=5)).isoformat(),
    )
    assert find_overdue([child], [], 90, NOW).overdue_count == 0


def test_inactive_children_are_not_overdue():
    children = [make_child("C1"), make_child("C2", status=ChildStatus.PAUSED)]
    report = find_overdue(children, [], 90, NOW)
    assert report.total_active == 1
    assert [c.child_id for c in report.overdue_children] == ["C1"]


def test_partial_days_round_up():
    submissions = [_published("C1", (NOW - timedelta(days=90, hours=1)).isoformat())]
    report = find_overdue([make_child("C1")], submissions, 90, NOW)
    assert report.overdue_children[0].days_since_update == 91


# ------------------------------------------------------------------
# Through the application service
# ------------------------------------------------------------------
@pytest.fixture
def compliance(store, seed_children, sink):
    seed_children(make_child("C1"), make_child("C2"), make_child("C3"))
    return ComplianceAppService(
        store=store,
        sink=sink,
        policy=get_escalation_policy(),
        form_urls={"field": "https://forms.example/field", "academic": "https://forms.example/academic"},
        field_deadline_day=28,
        academic_term_deadlines={},
        academic_grace_days=30,
        overdue_threshold_days=90,
    )


def _publish(store, child_id, period="2026-01"):
    updates = UpdateAppService(store)
    created = updates.submit_update(child_id, ReportType.FIELD, period, Role.FIELD_SUBMITTER, dict(FIELD_PAYLOAD)).value
    return updates.change_status(created.id, UpdateStatus.PUBLISHED, Role.REVIEWER).value


def test_list_overdue_from_store(compliance, store):
    _publish(store, "C1")
    now = datetime.now(timezone.utc)

    soon = compliance.list_overdue(now=now + timedelta(days=10)).value
    assert [c.child_id for c in soon.overdue_children] == ["C2", "C3"]

    later = compliance.list_overdue(now=now + timedelta(days=100)).value
    assert later.overdue_count == 3
    assert later.overdue_children[-1].child_id == "C1"
    assert later.overdue_children[-1].days_since_update >= 100

    assert compliance.list_overdue(threshold_days=200, now=now + timedelta(days=100)).value.overdue_count == 2


def test_list_overdue_rejects_bad_threshold(compliance):
    assert compliance.list_overdue(threshold_days=0).code == ErrorCode.INVALID_ARGS


def test_digest_goes_to_reviewer(compliance, store, sink):
    _publish(store, "C1")
    UpdateAppService(store).submit_update("C2", ReportType.FIELD, "2026-01", Role.FIELD_SUBMITTER, dict(FIELD_PAYLOAD))

    result = compliance.send_admin_digest()
    assert result.is_success
    digest = result.value
    assert digest.pending_updates == 1
    assert digest.overdue_children == 2
    assert digest.total_active == 3
    assert digest.message_id == "msg-1"

    assert len(sink.sent) == 1
    sent = sink.sent[0]
    assert sent["to_role"] == Role.REVIEWER
    assert sent["subject"] == "Admin Digest: 1 pending, 2 overdue"
    assert "C2 | 2026-01 | field" in sent["text"]
    assert "Never" in sent["html"]


def test_digest_skips_replaced_updates(compliance, store):
    updates = UpdateAppService(store)
    first = updates.submit_update("C1", ReportType.FIELD, "2026-01", Role.FIELD_SUBMITTER, dict(FIELD_PAYLOAD)).value
    updates.submit_update(
        "C1", ReportType.FIELD, "2026-01", Role.FIELD_SUBMITTER, dict(FIELD_PAYLOAD), supersedes=first.id
    )
    assert compliance.send_admin_digest().value.pending_updates == 1


def test_digest_sends_every_time(compliance, sink):
    compliance.send_admin_digest()
    compliance.send_admin_digest()
    assert len(sink.sent) == 2
    assert "All children have recent updates!" not in sink.sent[0]["text"]
    assert "No pending updates to review." in sink.sent[0]["text"]


def test_digest_delivery_failure(compliance, sink):
    sink.fail = True
    assert compliance.send_admin_digest().code == ErrorCode.NOTIFICATION_ERROR


def test_digest_store_failure(compliance, store, sink, monkeypatch):
    def _boom(*args, **kwargs):
        raise StoreError("locked")

    monkeypatch.setattr(store, "list_active_children", _boom)
    assert compliance.send_admin_digest().code == ErrorCode.STORE_ERROR
    assert sink.sent == []

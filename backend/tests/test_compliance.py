"""Compliance detection: who is missing an update for a period."""
import pytest

from conftest import FIELD_PAYLOAD, RecordingSink, make_child
from childupdates.application.compliance_app_service import ComplianceAppService
from childupdates.application.update_app_service import UpdateAppService
from childupdates.container import get_escalation_policy
from childupdates.domain.common.result import ErrorCode
from childupdates.domain.compliance.detector import compliance_rate, detect_missing, summarize
from childupdates.domain.update.models import (
    ChildStatus,
    ReportType,
    Role,
    UpdateStatus,
    UpdateSubmission,
)


def _submission(child_id, status=UpdateStatus.PENDING_REVIEW, period="2026-01", report_type=ReportType.FIELD):
    return UpdateSubmission(
        id=f"u-{child_id}-{status.value}",
        child_id=child_id,
        report_type=report_type,
        period_or_term=period,
        status=status,
        submitted_by=Role.FIELD_SUBMITTER,
        submitted_at="2026-01-10T00:00:00+00:00",
    )


# ------------------------------------------------------------------
# Pure detector
# ------------------------------------------------------------------
def test_three_of_five_present():
    children = [make_child(f"C{i}") for i in range(1, 6)]
    submissions = [_submission("C1"), _submission("C2"), _submission("C3", UpdateStatus.PUBLISHED)]

    report = detect_missing(children, submissions, "2026-01", ReportType.FIELD)
    assert report.expected == 5
    assert report.present == 3
    assert report.missing == 2
    assert report.missing_child_ids == ["C4", "C5"]
    assert report.compliance_rate == 60
    assert [m.child_first_name for m in report.missing_updates] == ["Child C4", "Child C5"]


def test_non_qualifying_statuses_do_not_count():
    children = [make_child("C1"), make_child("C2")]
    submissions = [_submission("C1", UpdateStatus.DRAFT), _submission("C2", UpdateStatus.REJECTED)]
    report = detect_missing(children, submissions, "2026-01", ReportType.FIELD)
    assert report.missing_child_ids == ["C1", "C2"]
    assert report.compliance_rate == 0


def test_needs_correction_counts_as_present():
    report = detect_missing(
        [make_child("C1")], [_submission("C1", UpdateStatus.NEEDS_CORRECTION)], "2026-01", ReportType.FIELD
    )
    assert report.present == 1


def test_other_period_and_type_ignored():
    submissions = [
        _submission("C1", period="2025-12"),
        _submission("C1", report_type=ReportType.ACADEMIC),
    ]
    report = detect_missing([make_child("C1")], submissions, "2026-01", ReportType.FIELD)
    assert report.missing_child_ids == ["C1"]


def test_inactive_children_are_not_expected():
    children = [make_child("C1"), make_child("C2", ChildStatus.INACTIVE)]
    submissions = [_submission("C2")]
    report = detect_missing(children, submissions, "2026-01", ReportType.FIELD)
    assert report.expected == 1
    assert report.present == 0
    assert report.missing_child_ids == ["C1"]


def test_empty_population_is_fully_compliant():
    report = detect_missing([], [], "2026-01", ReportType.FIELD)
    assert report.expected == 0
    assert report.compliance_rate == 100


@pytest.mark.parametrize(
    "present, expected, rate",
    [(0, 0, 100), (1, 3, 33), (2, 3, 67), (1, 8, 13), (1, 200, 1), (5, 5, 100)],
)
def test_compliance_rate_rounding(present, expected, rate):
    assert compliance_rate(present, expected) == rate


def test_summarize_totals():
    children = [make_child("C1"), make_child("C2")]
    field = detect_missing(children, [_submission("C1")], "2026-01", ReportType.FIELD)
    academic = detect_missing(children, [], "2026-01", ReportType.ACADEMIC)

    summary = summarize([field, academic], generated_at="2026-01-31T00:00:00+00:00")
    assert summary.total_expected == 4
    assert summary.total_present == 1
    assert summary.total_missing == 3
    assert summary.overall_compliance_rate == 25
    assert [s.report_type for s in summary.summaries] == [ReportType.FIELD, ReportType.ACADEMIC]


# ------------------------------------------------------------------
# Through the application service
# ------------------------------------------------------------------
@pytest.fixture
def compliance(store, seed_children):
    seed_children(*(make_child(f"C{i}") for i in range(1, 6)))
    return ComplianceAppService(
        store=store,
        sink=RecordingSink(),
        policy=get_escalation_policy(),
        form_urls={"field": "https://forms.example/field", "academic": "https://forms.example/academic"},
        field_deadline_day=28,
        academic_term_deadlines={},
        academic_grace_days=30,
    )


def test_detect_missing_from_store(compliance, store):
    updates = UpdateAppService(store)
    for child_id in ("C1", "C2", "C3"):
        updates.submit_update(child_id, ReportType.FIELD, "2026-01", Role.FIELD_SUBMITTER, dict(FIELD_PAYLOAD))

    result = compliance.detect_missing("2026-01", "field")
    assert result.is_success
    assert result.value.missing_child_ids == ["C4", "C5"]
    assert result.value.compliance_rate == 60


def test_detect_missing_validates_arguments(compliance):
    assert compliance.detect_missing("", ReportType.FIELD).code == ErrorCode.INVALID_ARGS
    assert compliance.detect_missing("2026-01", "medical").code == ErrorCode.INVALID_ARGS


def test_summary_covers_both_types_by_default(compliance):
    result = compliance.generate_compliance_summary("2026-01")
    assert result.is_success
    assert len(result.value.summaries) == 2
    assert result.value.total_expected == 10
    assert result.value.overall_compliance_rate == 0

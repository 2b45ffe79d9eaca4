"""Unit tests for update business rules (pure functions, no DB)."""
import pytest

from childupdates.domain.common.result import ErrorCode
from childupdates.domain.update.models import ReportType, Role, UpdateStatus
from childupdates.domain.update.rules import (
    ALLOWED_TRANSITIONS,
    authorize_status_change,
    authorize_submit,
    validate_payload,
    validate_status_transition,
)

S = UpdateStatus


# ------------------------------------------------------------------
# Submit authorization
# ------------------------------------------------------------------
@pytest.mark.parametrize(
    "report_type, role, allowed",
    [
        (ReportType.FIELD, Role.FIELD_SUBMITTER, True),
        (ReportType.FIELD, Role.ACADEMIC_SUBMITTER, False),
        (ReportType.FIELD, Role.REVIEWER, False),
        (ReportType.ACADEMIC, Role.ACADEMIC_SUBMITTER, True),
        (ReportType.ACADEMIC, Role.FIELD_SUBMITTER, False),
        (ReportType.ACADEMIC, Role.REVIEWER, False),
    ],
)
def test_authorize_submit(report_type, role, allowed):
    result = authorize_submit(report_type, role)
    assert result.is_success is allowed
    if not allowed:
        assert result.code == ErrorCode.FORBIDDEN_ACTOR


def test_only_reviewer_sets_admin_statuses():
    for status in (S.PUBLISHED, S.REJECTED, S.NEEDS_CORRECTION):
        assert authorize_status_change(status, Role.REVIEWER).is_success
        for role in (Role.FIELD_SUBMITTER, Role.ACADEMIC_SUBMITTER):
            assert authorize_status_change(status, role).code == ErrorCode.FORBIDDEN


def test_submitters_may_resubmit_for_review():
    assert authorize_status_change(S.PENDING_REVIEW, Role.FIELD_SUBMITTER).is_success


# ------------------------------------------------------------------
# State machine
# ------------------------------------------------------------------
_ALLOWED_PAIRS = [
    (S.DRAFT, S.PENDING_REVIEW),
    (S.DRAFT, S.REJECTED),
    (S.PENDING_REVIEW, S.NEEDS_CORRECTION),
    (S.PENDING_REVIEW, S.PUBLISHED),
    (S.PENDING_REVIEW, S.REJECTED),
    (S.NEEDS_CORRECTION, S.PENDING_REVIEW),
    (S.NEEDS_CORRECTION, S.PUBLISHED),
    (S.NEEDS_CORRECTION, S.REJECTED),
]


@pytest.mark.parametrize("current, nxt", _ALLOWED_PAIRS)
def test_allowed_transitions_succeed_for_reviewer(current, nxt):
    result = validate_status_transition(current, nxt, Role.REVIEWER)
    assert result.is_success
    assert result.value == nxt


def test_every_other_pair_is_refused():
    allowed = set(_ALLOWED_PAIRS)
    for current in S:
        for nxt in S:
            if (current, nxt) in allowed:
                continue
            result = validate_status_transition(current, nxt, Role.REVIEWER)
            assert not result.is_success, (current, nxt)
            expected = ErrorCode.PUBLISHED_IMMUTABLE if current == S.PUBLISHED else ErrorCode.INVALID_TRANSITION
            assert result.code == expected, (current, nxt)


def test_table_matches_allowed_pairs():
    flattened = {(cur, nxt) for cur, nexts in ALLOWED_TRANSITIONS.items() for nxt in nexts}
    assert flattened == set(_ALLOWED_PAIRS)


def test_published_is_immutable_even_for_reviewer():
    result = validate_status_transition(S.PUBLISHED, S.NEEDS_CORRECTION, Role.REVIEWER)
    assert result.code == ErrorCode.PUBLISHED_IMMUTABLE


def test_non_reviewer_publish_is_forbidden_from_any_status():
    for current in S:
        result = validate_status_transition(current, S.PUBLISHED, Role.FIELD_SUBMITTER)
        assert result.code == ErrorCode.FORBIDDEN


def test_rejected_is_terminal():
    result = validate_status_transition(S.REJECTED, S.PENDING_REVIEW, Role.REVIEWER)
    assert result.code == ErrorCode.INVALID_TRANSITION
    assert "none" in result.error


# ------------------------------------------------------------------
# Payload shape
# ------------------------------------------------------------------
def test_field_payload_requires_narrative():
    result = validate_payload(ReportType.FIELD, {"physical_wellbeing": "Good", "sponsor_narrative": "  "})
    assert result.code == ErrorCode.INVALID_ARGS


def test_unknown_payload_keys_refused():
    result = validate_payload(ReportType.FIELD, {"sponsor_narrative": "Fine", "shoe_size": 4})
    assert result.code == ErrorCode.INVALID_ARGS
    assert "shoe_size" in result.error


def test_academic_payload_scores_in_range():
    assert validate_payload(ReportType.ACADEMIC, {"attendance_percent": 100, "math_grade": 0}).is_success
    assert not validate_payload(ReportType.ACADEMIC, {"attendance_percent": 101}).is_success
    assert not validate_payload(ReportType.ACADEMIC, {"attendance_percent": "90"}).is_success
    assert not validate_payload(ReportType.ACADEMIC, {"attendance_percent": True}).is_success
    assert not validate_payload(ReportType.ACADEMIC, {"math_grade": 50}).is_success


def test_empty_payload_refused():
    assert validate_payload(ReportType.ACADEMIC, {}).code == ErrorCode.INVALID_ARGS

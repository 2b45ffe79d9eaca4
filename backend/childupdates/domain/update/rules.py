"""Business rules for child updates: role authorization and the review state machine table."""
from __future__ import annotations
from typing import Any, Dict, Iterable, Optional

from childupdates.domain.common.result import ErrorCode, Result
from childupdates.domain.update.models import ReportType, Role, UpdateStatus, UpdateSubmission

# Allowed next statuses for each status. Published and Rejected are terminal.
ALLOWED_TRANSITIONS: dict[UpdateStatus, frozenset[UpdateStatus]] = {
    UpdateStatus.DRAFT: frozenset({UpdateStatus.PENDING_REVIEW, UpdateStatus.REJECTED}),
    UpdateStatus.PENDING_REVIEW: frozenset(
        {UpdateStatus.NEEDS_CORRECTION, UpdateStatus.PUBLISHED, UpdateStatus.REJECTED}
    ),
    UpdateStatus.NEEDS_CORRECTION: frozenset(
        {UpdateStatus.PENDING_REVIEW, UpdateStatus.PUBLISHED, UpdateStatus.REJECTED}
    ),
    UpdateStatus.PUBLISHED: frozenset(),
    UpdateStatus.REJECTED: frozenset(),
}

# The single role allowed to submit each report type
SUBMITTER_ROLES: dict[ReportType, Role] = {
    ReportType.FIELD: Role.FIELD_SUBMITTER,
    ReportType.ACADEMIC: Role.ACADEMIC_SUBMITTER,
}

ADMIN_ONLY_STATUSES: frozenset[UpdateStatus] = frozenset(
    {UpdateStatus.PUBLISHED, UpdateStatus.REJECTED, UpdateStatus.NEEDS_CORRECTION}
)

# Statuses that count as "received" for compliance purposes
QUALIFYING_STATUSES: frozenset[UpdateStatus] = frozenset(
    {UpdateStatus.PENDING_REVIEW, UpdateStatus.NEEDS_CORRECTION, UpdateStatus.PUBLISHED}
)

# Statuses that hold the (child, period/term, report type) slot. Rejected records stay for audit only.
LIVE_STATUSES: frozenset[UpdateStatus] = frozenset(
    {UpdateStatus.DRAFT, UpdateStatus.PENDING_REVIEW, UpdateStatus.NEEDS_CORRECTION, UpdateStatus.PUBLISHED}
)


def live_submission(candidates: Iterable[UpdateSubmission]) -> Optional[UpdateSubmission]:
    """
    First of ``candidates`` (newest first, all in LIVE_STATUSES, one key) that no
    other candidate names in its ``supersedes_id``.
    """
    candidates = list(candidates)
    superseded = {c.supersedes_id for c in candidates if c.supersedes_id}
    for submission in candidates:
        if submission.id not in superseded:
            return submission
    return None


_FIELD_PAYLOAD_KEYS = {
    "physical_wellbeing", "physical_notes",
    "emotional_wellbeing", "emotional_notes",
    "school_engagement", "engagement_notes",
    "sponsor_narrative", "positive_highlight", "challenge",
}
_ACADEMIC_SCORE_KEYS = {
    "attendance_percent", "english_grade", "math_grade",
    "science_grade", "social_studies_grade",
}
_ACADEMIC_PAYLOAD_KEYS = _ACADEMIC_SCORE_KEYS | {"teacher_comment"}


def authorize_submit(report_type: ReportType, actor_role: Role) -> Result[Role]:
    required = SUBMITTER_ROLES[report_type]
    if actor_role != required:
        return Result.fail(
            ErrorCode.FORBIDDEN_ACTOR,
            f"{report_type.value.capitalize()} updates must be submitted by '{required.value}', "
            f"not '{actor_role.value}'.",
        )
    return Result.ok(actor_role)


def authorize_status_change(next_status: UpdateStatus, actor_role: Role) -> Result[Role]:
    if next_status in ADMIN_ONLY_STATUSES and actor_role != Role.REVIEWER:
        return Result.fail(
            ErrorCode.FORBIDDEN,
            f"Only '{Role.REVIEWER.value}' can set status to '{next_status.value}'.",
        )
    return Result.ok(actor_role)


def validate_status_transition(current: UpdateStatus, next_status: UpdateStatus, actor_role: Role) -> Result[UpdateStatus]:
    """
    Check order: role authorization, then published immutability, then the table.
    A non-reviewer asking for an admin-only status is refused whatever the record holds.
    """
    authorization = authorize_status_change(next_status, actor_role)
    if not authorization.is_success:
        return Result.from_failure(authorization)

    if current == UpdateStatus.PUBLISHED:
        return Result.fail(
            ErrorCode.PUBLISHED_IMMUTABLE,
            "Published updates cannot be modified. Submit a superseding update instead.",
        )

    allowed = ALLOWED_TRANSITIONS[current]
    if next_status not in allowed:
        allowed_text = ", ".join(sorted(s.value for s in allowed)) or "none"
        return Result.fail(
            ErrorCode.INVALID_TRANSITION,
            f"Cannot transition from '{current.value}' to '{next_status.value}'. Allowed: {allowed_text}.",
        )

    return Result.ok(next_status)


def validate_payload(report_type: ReportType, payload: Dict[str, Any]) -> Result[Dict[str, Any]]:
    """Checks the payload shape for the report type. Unknown keys are refused."""
    if not isinstance(payload, dict) or not payload:
        return Result.fail(ErrorCode.INVALID_ARGS, "payload must be a non-empty object.")

    allowed = _FIELD_PAYLOAD_KEYS if report_type == ReportType.FIELD else _ACADEMIC_PAYLOAD_KEYS
    unknown = sorted(set(payload) - allowed)
    if unknown:
        return Result.fail(
            ErrorCode.INVALID_ARGS,
            f"Unknown {report_type.value} payload fields: {', '.join(unknown)}.",
        )

    if report_type == ReportType.FIELD:
        narrative = (payload.get("sponsor_narrative") or "").strip()
        if not narrative:
            return Result.fail(ErrorCode.INVALID_ARGS, "Field updates require a 'sponsor_narrative'.")
        return Result.ok(payload)

    if payload.get("attendance_percent") is None:
        return Result.fail(ErrorCode.INVALID_ARGS, "Academic updates require 'attendance_percent'.")
    for key in _ACADEMIC_SCORE_KEYS & set(payload):
        value = payload[key]
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 100:
            return Result.fail(ErrorCode.INVALID_ARGS, f"'{key}' must be a number between 0 and 100.")
    return Result.ok(payload)

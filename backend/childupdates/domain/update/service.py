"""Domain service — pure business logic for the update submission lifecycle."""
from __future__ import annotations
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from childupdates.domain.common.result import ErrorCode, Result
from childupdates.domain.update.models import ReportType, Role, UpdateStatus, UpdateSubmission
from childupdates.domain.update.rules import authorize_submit, validate_payload, validate_status_transition


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


class UpdateDomainService:
    """
    Pure domain operations — no I/O. All methods return Result[T].
    The application layer calls these and then persists via the record store.
    """

    def create_submission(
        self,
        child_id: str,
        report_type: ReportType,
        period_or_term: str,
        actor_role: Role,
        payload: Dict[str, Any],
        supersedes_id: Optional[str] = None,
        as_draft: bool = False,
    ) -> Result[UpdateSubmission]:
        """Build a new submission. Intake submissions go straight to Pending Review."""
        if not (child_id or "").strip():
            return Result.fail(ErrorCode.INVALID_ARGS, "child_id is required.")
        if not (period_or_term or "").strip():
            return Result.fail(ErrorCode.INVALID_ARGS, "period_or_term is required.")

        authorization = authorize_submit(report_type, actor_role)
        if not authorization.is_success:
            return Result.from_failure(authorization)

        validation = validate_payload(report_type, payload)
        if not validation.is_success:
            return Result.from_failure(validation)

        now = _now_iso()
        submission = UpdateSubmission(
            id=_new_id(),
            child_id=child_id.strip(),
            report_type=report_type,
            period_or_term=period_or_term.strip(),
            status=UpdateStatus.DRAFT if as_draft else UpdateStatus.PENDING_REVIEW,
            submitted_by=actor_role,
            submitted_at=now,
            payload=dict(payload),
            supersedes_id=supersedes_id,
            revision=1,
            created_at=now,
            updated_at=now,
        )
        return Result.ok(submission)

    def request_transition(
        self,
        record: UpdateSubmission,
        next_status: UpdateStatus,
        actor_role: Role,
        notes: Optional[str] = None,
    ) -> Result[UpdateSubmission]:
        """
        Apply a lifecycle status transition.

        Returns a new UpdateSubmission; ``record`` itself is never mutated, so a
        refused transition leaves the caller's copy exactly as it was. Review
        metadata is stamped in the same step as the status change.
        """
        validation = validate_status_transition(record.status, next_status, actor_role)
        if not validation.is_success:
            return Result.from_failure(validation)

        now = _now_iso()
        changes: Dict[str, Any] = {"status": next_status, "updated_at": now}

        if next_status == UpdateStatus.PUBLISHED:
            changes.update(published_at=now, reviewed_by=actor_role, reviewed_at=now)
        elif next_status == UpdateStatus.REJECTED:
            changes.update(reviewed_by=actor_role, reviewed_at=now, rejection_reason=notes)
        elif next_status == UpdateStatus.NEEDS_CORRECTION:
            changes.update(reviewed_by=actor_role, reviewed_at=now, correction_notes=notes)

        return Result.ok(replace(record, **changes))

    @staticmethod
    def changed_fields(before: UpdateSubmission, after: UpdateSubmission) -> Dict[str, Any]:
        """The subset of attributes that differ between two versions of a record."""
        names = (
            "status", "published_at", "reviewed_by", "reviewed_at",
            "rejection_reason", "correction_notes", "updated_at",
        )
        return {n: getattr(after, n) for n in names if getattr(before, n) != getattr(after, n)}

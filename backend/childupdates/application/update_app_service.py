"""Application service: validate, run the domain operation, persist. Update submissions and review."""
from __future__ import annotations
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from childupdates.application.uniqueness_registry import UniquenessRegistry
from childupdates.domain.common.errors import ConcurrentModificationError, DuplicateSubmissionError, StoreError
from childupdates.domain.common.result import ErrorCode, Result
from childupdates.domain.update.models import ReportType, Role, UpdateStatus, UpdateSubmission
from childupdates.domain.update.service import UpdateDomainService
from childupdates.persistence.interfaces.record_store import RecordStore

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


def _parse_enum(enum_cls: Type[E], value: Union[E, str, None], name: str) -> Result[E]:
    if isinstance(value, enum_cls):
        return Result.ok(value)
    try:
        return Result.ok(enum_cls(value))
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        return Result.fail(ErrorCode.INVALID_ARGS, f"{name} must be one of: {allowed}.")


class UpdateAppService:
    def __init__(self, store: RecordStore):
        self._store = store
        self._registry = UniquenessRegistry(store)
        self._domain = UpdateDomainService()

    # ------------------------------------------------------------------
    # SUBMIT
    # ------------------------------------------------------------------
    def submit_update(
        self,
        child_id: str,
        report_type: Union[ReportType, str],
        period_or_term: str,
        actor_role: Union[Role, str],
        payload: Dict[str, Any],
        supersedes: Optional[str] = None,
        as_draft: bool = False,
    ) -> Result[UpdateSubmission]:
        logger.info(
            "submit_update: Starting child=%s type=%s period=%s actor=%s supersedes=%s",
            child_id, report_type, period_or_term, actor_role, supersedes,
        )
        parsed_type = _parse_enum(ReportType, report_type, "report_type")
        if not parsed_type.is_success:
            return Result.from_failure(parsed_type)
        parsed_role = _parse_enum(Role, actor_role, "actor_role")
        if not parsed_role.is_success:
            return Result.from_failure(parsed_role)

        built = self._domain.create_submission(
            child_id, parsed_type.value, period_or_term, parsed_role.value, payload,
            supersedes_id=supersedes, as_draft=as_draft,
        )
        if not built.is_success:
            if built.code == ErrorCode.FORBIDDEN_ACTOR:
                logger.warning("submit_update: %s", built.error)
            return Result.from_failure(built)
        submission = built.value

        try:
            if self._store.get_child(submission.child_id) is None:
                return Result.fail(ErrorCode.NOT_FOUND, f"Child '{submission.child_id}' not found.")

            if supersedes:
                target = self._check_supersedes_target(submission, supersedes)
                if not target.is_success:
                    return Result.from_failure(target)

            unique = self._registry.assert_unique(
                submission.child_id, submission.report_type, submission.period_or_term, supersedes
            )
            if not unique.is_success:
                return Result.from_failure(unique)

            created = self._store.create_submission(submission, guard_unique=True)
        except DuplicateSubmissionError as e:
            # A concurrent submission took the key after our check.
            logger.warning("submit_update: %s", e)
            return Result.fail(ErrorCode.DUPLICATE_UPDATE, str(e))
        except StoreError as e:
            logger.exception("submit_update: Failed child=%s", child_id)
            return Result.fail(ErrorCode.STORE_ERROR, str(e))

        if supersedes:
            self._link_superseded(supersedes, created.id)

        logger.info("submit_update: Completed id=%s key=%s status=%s", created.id, created.update_key, created.status.value)
        return Result.ok(created)

    def _check_supersedes_target(self, submission: UpdateSubmission, supersedes: str) -> Result[UpdateSubmission]:
        target = self._store.get_submission(supersedes)
        if target is None:
            return Result.fail(ErrorCode.NOT_FOUND, f"Superseded update '{supersedes}' not found.")
        if target.update_key != submission.update_key:
            return Result.fail(
                ErrorCode.INVALID_ARGS,
                f"Update '{supersedes}' is for {target.update_key}, not {submission.update_key}.",
            )
        return Result.ok(target)

    def _link_superseded(self, old_id: str, new_id: str) -> None:
        """
        Back-link the older record. Liveness is decided from the newer record's
        ``supersedes_id``, so a failure here leaves only the convenience link missing.
        """
        try:
            self._store.update_submission(old_id, {"superseded_by_id": new_id})
        except StoreError:
            logger.exception("submit_update: Could not back-link %s -> %s", old_id, new_id)

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------
    def get_update(self, submission_id: str) -> Result[UpdateSubmission]:
        try:
            submission = self._store.get_submission(submission_id)
        except StoreError as e:
            return Result.fail(ErrorCode.STORE_ERROR, str(e))
        if submission is None:
            return Result.fail(ErrorCode.NOT_FOUND, f"Update '{submission_id}' not found.")
        return Result.ok(submission)

    def list_pending(self, report_type: Optional[ReportType] = None) -> Result[List[UpdateSubmission]]:
        """The reviewer queue: everything waiting on a review decision that no live correction has replaced."""
        try:
            pending = self._store.find_submissions(
                report_type=report_type,
                status_in=(UpdateStatus.PENDING_REVIEW, UpdateStatus.NEEDS_CORRECTION),
            )
            superseded = self._registry.superseded_ids(report_type) if pending else set()
        except StoreError as e:
            return Result.fail(ErrorCode.STORE_ERROR, str(e))
        return Result.ok([s for s in pending if s.id not in superseded])

    # ------------------------------------------------------------------
    # STATUS TRANSITION
    # ------------------------------------------------------------------
    def change_status(
        self,
        submission_id: str,
        next_status: Union[UpdateStatus, str],
        actor_role: Union[Role, str],
        notes: Optional[str] = None,
        expected_revision: Optional[int] = None,
    ) -> Result[UpdateSubmission]:
        logger.info(
            "change_status: Starting id=%s next=%s actor=%s", submission_id, next_status, actor_role
        )
        parsed_status = _parse_enum(UpdateStatus, next_status, "next_status")
        if not parsed_status.is_success:
            return Result.from_failure(parsed_status)
        parsed_role = _parse_enum(Role, actor_role, "actor_role")
        if not parsed_role.is_success:
            return Result.from_failure(parsed_role)

        try:
            record = self._store.get_submission(submission_id)
            if record is None:
                return Result.fail(ErrorCode.NOT_FOUND, f"Update '{submission_id}' not found.")
            if expected_revision is not None and expected_revision != record.revision:
                return Result.fail(
                    ErrorCode.CONFLICT,
                    f"Update '{submission_id}' is at revision {record.revision}, not {expected_revision}.",
                )

            transitioned = self._domain.request_transition(record, parsed_status.value, parsed_role.value, notes)
            if not transitioned.is_success:
                logger.warning(
                    "change_status: Refused id=%s from=%s to=%s code=%s",
                    submission_id, record.status.value, parsed_status.value.value, transitioned.code.value,
                )
                return Result.from_failure(transitioned)

            if parsed_status.value == UpdateStatus.PUBLISHED:
                superseder = self._registry.find_superseder(record)
                if superseder is not None:
                    logger.warning("change_status: Refused id=%s superseded by %s", submission_id, superseder.id)
                    return Result.fail(
                        ErrorCode.INVALID_TRANSITION,
                        f"Update '{submission_id}' has been superseded by '{superseder.id}' and cannot be published.",
                    )

            changes = self._domain.changed_fields(record, transitioned.value)
            saved = self._store.update_submission(submission_id, changes, expected_revision=record.revision)
        except ConcurrentModificationError as e:
            logger.warning("change_status: %s", e)
            return Result.fail(ErrorCode.CONFLICT, str(e))
        except StoreError as e:
            logger.exception("change_status: Failed id=%s", submission_id)
            return Result.fail(ErrorCode.STORE_ERROR, str(e))

        logger.info(
            "change_status: Completed id=%s %s -> %s", submission_id, record.status.value, saved.status.value
        )
        return Result.ok(saved)

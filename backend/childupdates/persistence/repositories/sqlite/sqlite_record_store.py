"""SQLite implementation of RecordStore."""
from __future__ import annotations
import json
import logging
import sqlite3
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional

from childupdates.domain.common.errors import ConcurrentModificationError, DuplicateSubmissionError, StoreError
from childupdates.domain.update.models import (
    Child,
    ChildStatus,
    ReportType,
    Role,
    UpdateStatus,
    UpdateSubmission,
)
from childupdates.domain.update.rules import LIVE_STATUSES, live_submission
from childupdates.persistence.db import get_connection
from childupdates.persistence.interfaces.record_store import RecordStore, SponsorRequestState, Sponsorship

logger = logging.getLogger(__name__)

# Columns update_submission() may touch; identity columns are fixed at creation.
_MUTABLE_COLUMNS = {
    "status", "reviewed_by", "reviewed_at", "published_at",
    "rejection_reason", "correction_notes", "superseded_by_id", "updated_at",
}


def _row_to_child(row) -> Child:
    return Child(
        child_id=row["child_id"],
        first_name=row["first_name"],
        last_initial=row["last_initial"],
        status=ChildStatus(row["status"]),
        expected_field_period=row["expected_field_period"],
        expected_academic_term=row["expected_academic_term"],
        last_field_update_at=row["last_field_update_at"],
        last_academic_update_at=row["last_academic_update_at"],
    )


def _row_to_submission(row) -> UpdateSubmission:
    return UpdateSubmission(
        id=row["id"],
        child_id=row["child_id"],
        report_type=ReportType(row["report_type"]),
        period_or_term=row["period_or_term"],
        status=UpdateStatus(row["status"]),
        submitted_by=Role(row["submitted_by"]),
        submitted_at=row["submitted_at"],
        payload=json.loads(row["payload"] or "{}"),
        reviewed_by=Role(row["reviewed_by"]) if row["reviewed_by"] else None,
        reviewed_at=row["reviewed_at"],
        published_at=row["published_at"],
        rejection_reason=row["rejection_reason"],
        correction_notes=row["correction_notes"],
        supersedes_id=row["supersedes_id"],
        superseded_by_id=row["superseded_by_id"],
        revision=row["revision"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _db_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class SqliteRecordStore(RecordStore):

    def __init__(self, db_path: Optional[str] = None):
        self._db_path = db_path

    @contextmanager
    def _connect(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """With ``immediate`` the write lock is taken up front, before any read."""
        try:
            conn = get_connection(self._db_path)
        except sqlite3.Error as e:
            raise StoreError(f"Could not open database: {e}") from e
        try:
            if immediate:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.exception("SQLite operation failed")
            raise StoreError(str(e)) from e
        except DuplicateSubmissionError:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Children
    # ------------------------------------------------------------------
    def list_active_children(self) -> List[Child]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM children WHERE status = ? ORDER BY child_id ASC",
                (ChildStatus.ACTIVE.value,),
            ).fetchall()
        return [_row_to_child(r) for r in rows]

    def get_child(self, child_id: str) -> Optional[Child]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM children WHERE child_id = ?", (child_id,)).fetchone()
        return _row_to_child(row) if row else None

    def upsert_child(self, child: Child) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO children (
                    child_id, first_name, last_initial, status,
                    expected_field_period, expected_academic_term,
                    last_field_update_at, last_academic_update_at
                ) VALUES (
                    :child_id, :first_name, :last_initial, :status,
                    :expected_field_period, :expected_academic_term,
                    :last_field_update_at, :last_academic_update_at
                )
                ON CONFLICT(child_id) DO UPDATE SET
                    first_name              = excluded.first_name,
                    last_initial            = excluded.last_initial,
                    status                  = excluded.status,
                    expected_field_period   = excluded.expected_field_period,
                    expected_academic_term  = excluded.expected_academic_term,
                    last_field_update_at    = excluded.last_field_update_at,
                    last_academic_update_at = excluded.last_academic_update_at
                """,
                {
                    "child_id": child.child_id,
                    "first_name": child.first_name,
                    "last_initial": child.last_initial,
                    "status": child.status.value,
                    "expected_field_period": child.expected_field_period,
                    "expected_academic_term": child.expected_academic_term,
                    "last_field_update_at": child.last_field_update_at,
                    "last_academic_update_at": child.last_academic_update_at,
                },
            )

    # ------------------------------------------------------------------
    # Update submissions
    # ------------------------------------------------------------------
    def find_submissions(
        self,
        child_id: Optional[str] = None,
        period_or_term: Optional[str] = None,
        report_type: Optional[ReportType] = None,
        status_in: Optional[Iterable[UpdateStatus]] = None,
    ) -> List[UpdateSubmission]:
        clauses: List[str] = []
        params: List[Any] = []
        if child_id is not None:
            clauses.append("child_id = ?")
            params.append(child_id)
        if period_or_term is not None:
            clauses.append("period_or_term = ?")
            params.append(period_or_term)
        if report_type is not None:
            clauses.append("report_type = ?")
            params.append(report_type.value)
        if status_in is not None:
            statuses = [s.value for s in status_in]
            if not statuses:
                return []
            clauses.append(f"status IN ({', '.join('?' for _ in statuses)})")
            params.extend(statuses)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM update_submissions {where} ORDER BY created_at DESC, rowid DESC",
                params,
            ).fetchall()
        return [_row_to_submission(r) for r in rows]

    def get_submission(self, submission_id: str) -> Optional[UpdateSubmission]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM update_submissions WHERE id = ?", (submission_id,)).fetchone()
        return _row_to_submission(row) if row else None

    def create_submission(self, submission: UpdateSubmission, guard_unique: bool = False) -> UpdateSubmission:
        with self._connect(immediate=guard_unique) as conn:
            if guard_unique:
                self._refuse_duplicate(conn, submission)
            conn.execute(
                """
                INSERT INTO update_submissions (
                    id, child_id, report_type, period_or_term, status,
                    submitted_by, submitted_at, payload,
                    reviewed_by, reviewed_at, published_at,
                    rejection_reason, correction_notes,
                    supersedes_id, superseded_by_id, revision,
                    created_at, updated_at
                ) VALUES (
                    :id, :child_id, :report_type, :period_or_term, :status,
                    :submitted_by, :submitted_at, :payload,
                    :reviewed_by, :reviewed_at, :published_at,
                    :rejection_reason, :correction_notes,
                    :supersedes_id, :superseded_by_id, :revision,
                    :created_at, :updated_at
                )
                """,
                {
                    "id": submission.id,
                    "child_id": submission.child_id,
                    "report_type": submission.report_type.value,
                    "period_or_term": submission.period_or_term,
                    "status": submission.status.value,
                    "submitted_by": submission.submitted_by.value,
                    "submitted_at": submission.submitted_at,
                    "payload": json.dumps(submission.payload),
                    "reviewed_by": _db_value(submission.reviewed_by),
                    "reviewed_at": submission.reviewed_at,
                    "published_at": submission.published_at,
                    "rejection_reason": submission.rejection_reason,
                    "correction_notes": submission.correction_notes,
                    "supersedes_id": submission.supersedes_id,
                    "superseded_by_id": submission.superseded_by_id,
                    "revision": submission.revision,
                    "created_at": submission.created_at,
                    "updated_at": submission.updated_at,
                },
            )
        return submission

    def _refuse_duplicate(self, conn: sqlite3.Connection, submission: UpdateSubmission) -> None:
        statuses = [s.value for s in LIVE_STATUSES]
        placeholders = ", ".join("?" for _ in statuses)
        rows = conn.execute(
            f"""
            SELECT * FROM update_submissions
            WHERE child_id = ? AND period_or_term = ? AND report_type = ?
              AND status IN ({placeholders})
            ORDER BY created_at DESC, rowid DESC
            """,
            [submission.child_id, submission.period_or_term, submission.report_type.value, *statuses],
        ).fetchall()
        existing = live_submission(_row_to_submission(r) for r in rows)
        if existing is not None and existing.id != submission.supersedes_id:
            raise DuplicateSubmissionError(existing.update_key, existing.id, existing.status.value)

    def update_submission(
        self,
        submission_id: str,
        fields: Dict[str, Any],
        expected_revision: Optional[int] = None,
    ) -> UpdateSubmission:
        unknown = set(fields) - _MUTABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {sorted(unknown)}")

        assignments = [f"{name} = :{name}" for name in fields]
        assignments.append("revision = revision + 1")
        params = {name: _db_value(value) for name, value in fields.items()}
        params["id"] = submission_id
        sql = f"UPDATE update_submissions SET {', '.join(assignments)} WHERE id = :id"
        if expected_revision is not None:
            sql += " AND revision = :expected_revision"
            params["expected_revision"] = expected_revision

        with self._connect() as conn:
            cur = conn.execute(sql, params)
            if cur.rowcount == 0:
                exists = conn.execute(
                    "SELECT 1 FROM update_submissions WHERE id = ?", (submission_id,)
                ).fetchone()
                if not exists:
                    raise StoreError(f"Update '{submission_id}' not found.")
                raise ConcurrentModificationError(submission_id, expected_revision)
            row = conn.execute("SELECT * FROM update_submissions WHERE id = ?", (submission_id,)).fetchone()
        return _row_to_submission(row)

    # ------------------------------------------------------------------
    # Sponsorships
    # ------------------------------------------------------------------
    def get_sponsorship(self, sponsor_code: str) -> Optional[Sponsorship]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM sponsorships WHERE sponsor_code = ?", (sponsor_code,)
            ).fetchone()
        if not row:
            return None
        return Sponsorship(
            sponsor_code=row["sponsor_code"],
            sponsor_email=row["sponsor_email"],
            sponsor_name=row["sponsor_name"],
            child_id=row["child_id"],
            active=bool(row["active"]),
        )

    def upsert_sponsorship(self, sponsorship: Sponsorship) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO sponsorships (sponsor_code, sponsor_email, sponsor_name, child_id, active)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(sponsor_code) DO UPDATE SET
                    sponsor_email = excluded.sponsor_email,
                    sponsor_name  = excluded.sponsor_name,
                    child_id      = excluded.child_id,
                    active        = excluded.active
                """,
                (
                    sponsorship.sponsor_code,
                    sponsorship.sponsor_email,
                    sponsorship.sponsor_name,
                    sponsorship.child_id,
                    int(sponsorship.active),
                ),
            )

    # ------------------------------------------------------------------
    # Sponsor cooldown
    # ------------------------------------------------------------------
    def get_sponsor(self, sponsor_code: str) -> Optional[SponsorRequestState]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM sponsor_requests WHERE sponsor_code = ?", (sponsor_code,)
            ).fetchone()
        if not row:
            return None
        return SponsorRequestState(
            sponsor_code=row["sponsor_code"],
            last_request_at=row["last_request_at"],
            next_eligible_at=row["next_eligible_at"],
        )

    def save_sponsor_request(self, state: SponsorRequestState) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO sponsor_requests (sponsor_code, last_request_at, next_eligible_at)
                VALUES (?, ?, ?)
                ON CONFLICT(sponsor_code) DO UPDATE SET
                    last_request_at  = excluded.last_request_at,
                    next_eligible_at = excluded.next_eligible_at
                """,
                (state.sponsor_code, state.last_request_at, state.next_eligible_at),
            )

    # ------------------------------------------------------------------
    # Notice markers
    # ------------------------------------------------------------------
    def has_notice_been_sent(self, period_or_term: str, report_type: ReportType, tier: str, sent_on: Optional[str] = None) -> bool:
        sql = "SELECT 1 FROM notice_log WHERE period_or_term = ? AND report_type = ? AND tier = ?"
        params: List[Any] = [period_or_term, report_type.value, tier]
        if sent_on is not None:
            sql += " AND sent_on = ?"
            params.append(sent_on)
        with self._connect() as conn:
            row = conn.execute(sql + " LIMIT 1", params).fetchone()
        return row is not None

    def record_notice_sent(self, period_or_term: str, report_type: ReportType, tier: str, sent_on: str, message_id: Optional[str]) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO notice_log (period_or_term, report_type, tier, sent_on, message_id)
                VALUES (?, ?, ?, ?, ?)
                """,
                (period_or_term, report_type.value, tier, sent_on, message_id),
            )

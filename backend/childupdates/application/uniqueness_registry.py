"""At most one live submission per (child, period/term, report type)."""
from __future__ import annotations
import logging
from typing import Optional, Set

from childupdates.domain.common.result import ErrorCode, Result
from childupdates.domain.update.models import ReportType, UpdateSubmission
from childupdates.domain.update.rules import LIVE_STATUSES, live_submission
from childupdates.persistence.interfaces.record_store import RecordStore

logger = logging.getLogger(__name__)


class UniquenessRegistry:
    def __init__(self, store: RecordStore):
        self._store = store

    def _candidates(self, child_id: str, report_type: ReportType, period_or_term: str):
        return self._store.find_submissions(
            child_id=child_id,
            period_or_term=period_or_term,
            report_type=report_type,
            status_in=LIVE_STATUSES,
        )

    def find_existing(self, child_id: str, report_type: ReportType, period_or_term: str) -> Optional[UpdateSubmission]:
        """
        Newest non-rejected submission for the exact triple that no other
        non-rejected submission supersedes. Matching is on the stored
        period/term label only.

        Supersession is read from the ``supersedes_id`` of the live candidates,
        so a rejected correction hands the slot back to the record it tried to
        replace.
        """
        return live_submission(self._candidates(child_id, report_type, period_or_term))

    def find_superseder(self, submission: UpdateSubmission) -> Optional[UpdateSubmission]:
        """Non-rejected submission that names ``submission`` in its ``supersedes_id``."""
        for candidate in self._candidates(submission.child_id, submission.report_type, submission.period_or_term):
            if candidate.supersedes_id == submission.id:
                return candidate
        return None

    def superseded_ids(self, report_type: Optional[ReportType] = None) -> Set[str]:
        live = self._store.find_submissions(report_type=report_type, status_in=LIVE_STATUSES)
        return {s.supersedes_id for s in live if s.supersedes_id}

    def assert_unique(
        self,
        child_id: str,
        report_type: ReportType,
        period_or_term: str,
        supersedes: Optional[str] = None,
    ) -> Result[Optional[UpdateSubmission]]:
        """
        Ok(existing) when the caller explicitly supersedes the live record (or
        Ok(None) when there is none); duplicate_update otherwise.
        """
        existing = self.find_existing(child_id, report_type, period_or_term)
        if existing is None or existing.id == supersedes:
            return Result.ok(existing)

        logger.warning(
            "Duplicate update refused: key=%s existing=%s status=%s",
            existing.update_key, existing.id, existing.status.value,
        )
        return Result.fail(
            ErrorCode.DUPLICATE_UPDATE,
            f"An update already exists for {existing.update_key} "
            f"(id {existing.id}, status {existing.status.value}).",
        )

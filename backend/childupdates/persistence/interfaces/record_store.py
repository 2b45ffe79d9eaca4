"""Abstract record store for children, update submissions and the compliance bookkeeping around them."""
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from childupdates.domain.update.models import Child, ReportType, UpdateStatus, UpdateSubmission


@dataclass
class SponsorRequestState:
    sponsor_code: str
    last_request_at: Optional[str] = None
    next_eligible_at: Optional[str] = None


@dataclass
class Sponsorship:
    sponsor_code: str
    sponsor_email: str
    sponsor_name: Optional[str] = None
    child_id: Optional[str] = None
    active: bool = True


class RecordStore(ABC):
    """
    No multi-record transaction is assumed beyond the guarded insert. Implementations
    raise StoreError on persistence failures and ConcurrentModificationError when a
    compare-and-swap update loses the race.
    """

    # ------------------------------------------------------------------
    # Children (written only by the enrollment sync)
    # ------------------------------------------------------------------
    @abstractmethod
    def list_active_children(self) -> List[Child]:
        ...

    @abstractmethod
    def get_child(self, child_id: str) -> Optional[Child]:
        ...

    @abstractmethod
    def upsert_child(self, child: Child) -> None:
        ...

    # ------------------------------------------------------------------
    # Update submissions
    # ------------------------------------------------------------------
    @abstractmethod
    def find_submissions(
        self,
        child_id: Optional[str] = None,
        period_or_term: Optional[str] = None,
        report_type: Optional[ReportType] = None,
        status_in: Optional[Iterable[UpdateStatus]] = None,
    ) -> List[UpdateSubmission]:
        """All filters are exact matches and are ANDed; newest first."""
        ...

    @abstractmethod
    def get_submission(self, submission_id: str) -> Optional[UpdateSubmission]:
        ...

    @abstractmethod
    def create_submission(self, submission: UpdateSubmission, guard_unique: bool = False) -> UpdateSubmission:
        """
        With ``guard_unique`` the insert is refused with DuplicateSubmissionError
        when another live submission holds the same key, unless it is the one
        named in ``submission.supersedes_id``. Check and insert are atomic.
        """
        ...

    @abstractmethod
    def update_submission(
        self,
        submission_id: str,
        fields: Dict[str, Any],
        expected_revision: Optional[int] = None,
    ) -> UpdateSubmission:
        """
        Apply ``fields`` and bump the revision. With ``expected_revision`` the write
        only happens if the stored revision still matches.
        """
        ...

    # ------------------------------------------------------------------
    # Sponsorships (written only by the sponsorship sync)
    # ------------------------------------------------------------------
    @abstractmethod
    def get_sponsorship(self, sponsor_code: str) -> Optional[Sponsorship]:
        ...

    @abstractmethod
    def upsert_sponsorship(self, sponsorship: Sponsorship) -> None:
        ...

    # ------------------------------------------------------------------
    # Sponsor update-request cooldown
    # ------------------------------------------------------------------
    @abstractmethod
    def get_sponsor(self, sponsor_code: str) -> Optional[SponsorRequestState]:
        ...

    @abstractmethod
    def save_sponsor_request(self, state: SponsorRequestState) -> None:
        ...

    # ------------------------------------------------------------------
    # Sent markers for reminder / escalation tiers
    # ------------------------------------------------------------------
    @abstractmethod
    def has_notice_been_sent(self, period_or_term: str, report_type: ReportType, tier: str, sent_on: Optional[str] = None) -> bool:
        """With ``sent_on`` (YYYY-MM-DD) only markers from that day count."""
        ...

    @abstractmethod
    def record_notice_sent(self, period_or_term: str, report_type: ReportType, tier: str, sent_on: str, message_id: Optional[str]) -> None:
        ...

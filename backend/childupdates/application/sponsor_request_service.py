"""Application service: sponsor-initiated update requests under the 90-day cooldown."""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Optional

from childupdates.domain.common.errors import StoreError
from childupdates.domain.common.result import ErrorCode, Result
from childupdates.domain.throttling.cooldown import (
    UpdateRequestEligibility,
    calculate_next_eligible_date,
    can_request_update,
)
from childupdates.persistence.interfaces.record_store import RecordStore, SponsorRequestState, Sponsorship

logger = logging.getLogger(__name__)


class SponsorRequestService:
    def __init__(self, store: RecordStore):
        self._store = store

    def verify_sponsor(self, sponsor_code: str, email: str) -> Result[Sponsorship]:
        """An active sponsorship whose code and email both match; unauthorized otherwise."""
        code = (sponsor_code or "").strip()
        address = (email or "").strip().lower()
        if not code or not address:
            return Result.fail(ErrorCode.INVALID_ARGS, "Sponsor code and email are required.")
        try:
            sponsorship = self._store.get_sponsorship(code)
        except StoreError as e:
            return Result.fail(ErrorCode.STORE_ERROR, str(e))
        if (
            sponsorship is None
            or not sponsorship.active
            or sponsorship.sponsor_email.strip().lower() != address
        ):
            logger.warning("verify_sponsor: Refused sponsor=%s", code)
            return Result.fail(
                ErrorCode.UNAUTHORIZED, "Invalid email or sponsor code, or sponsorship is not active."
            )
        logger.info("verify_sponsor: Verified sponsor=%s", code)
        return Result.ok(sponsorship)

    def eligibility(self, sponsor_code: str, now: Optional[datetime] = None) -> Result[UpdateRequestEligibility]:
        if not (sponsor_code or "").strip():
            return Result.fail(ErrorCode.INVALID_ARGS, "sponsor_code is required.")
        try:
            state = self._store.get_sponsor(sponsor_code)
        except StoreError as e:
            return Result.fail(ErrorCode.STORE_ERROR, str(e))
        if state is None:
            return Result.ok(UpdateRequestEligibility(can_request=True))
        return Result.ok(can_request_update(state.last_request_at, state.next_eligible_at, now))

    def request_update(self, sponsor_code: str, now: Optional[datetime] = None) -> Result[SponsorRequestState]:
        now = now or datetime.now(timezone.utc)
        checked = self.eligibility(sponsor_code, now)
        if not checked.is_success:
            return Result.from_failure(checked)

        if not checked.value.can_request:
            days = checked.value.days_remaining
            logger.info("request_update: Throttled sponsor=%s days_remaining=%s", sponsor_code, days)
            return Result.fail(
                ErrorCode.RATE_LIMITED,
                f"You can request your next update in {days} days. Updates are limited to once per quarter.",
            )

        state = SponsorRequestState(
            sponsor_code=sponsor_code,
            last_request_at=now.isoformat(),
            next_eligible_at=calculate_next_eligible_date(now).isoformat(),
        )
        try:
            self._store.save_sponsor_request(state)
        except StoreError as e:
            logger.exception("request_update: Failed sponsor=%s", sponsor_code)
            return Result.fail(ErrorCode.STORE_ERROR, str(e))

        logger.info("request_update: Accepted sponsor=%s next_eligible_at=%s", sponsor_code, state.next_eligible_at)
        return Result.ok(state)

"""Sponsor-initiated update requests are allowed once per 90 days."""
from __future__ import annotations
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from childupdates.core.config import UPDATE_REQUEST_THROTTLE_DAYS

Timestamp = Union[datetime, str, None]

_SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class UpdateRequestEligibility:
    can_request: bool
    days_remaining: Optional[int] = None


def _parse(value: Timestamp) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def can_request_update(
    last_request_at: Timestamp,
    next_eligible_at: Timestamp,
    now: Optional[datetime] = None,
) -> UpdateRequestEligibility:
    """
    Only ``next_eligible_at`` decides; ``last_request_at`` is accepted for callers
    that pass the sponsor record through unchanged.
    """
    eligible_at = _parse(next_eligible_at)
    if eligible_at is None:
        return UpdateRequestEligibility(can_request=True)

    now = _parse(now) or datetime.now(timezone.utc)
    if now >= eligible_at:
        return UpdateRequestEligibility(can_request=True)

    remaining = (eligible_at - now).total_seconds()
    return UpdateRequestEligibility(can_request=False, days_remaining=math.ceil(remaining / _SECONDS_PER_DAY))


def calculate_next_eligible_date(now: Optional[datetime] = None) -> datetime:
    now = _parse(now) or datetime.now(timezone.utc)
    return now + timedelta(days=UPDATE_REQUEST_THROTTLE_DAYS)

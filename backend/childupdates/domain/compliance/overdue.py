"""Overdue children: active children with no update inside the threshold window."""
from __future__ import annotations
import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from childupdates.domain.compliance.models import OverdueChild, OverdueReport
from childupdates.domain.update.models import Child, ChildStatus, UpdateStatus, UpdateSubmission

_SECONDS_PER_DAY = 24 * 60 * 60


def _parse(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def last_update_by_child(children: Iterable[Child], submissions: Iterable[UpdateSubmission]) -> Dict[str, datetime]:
    """
    Most recent update per child: the latest ``published_at`` of a Published
    submission, or the enrollment system's own last-update stamps when newer.
    """
    latest: Dict[str, datetime] = {}

    def _offer(child_id: str, raw: Optional[str]) -> None:
        stamp = _parse(raw)
        if stamp is not None and (child_id not in latest or stamp > latest[child_id]):
            latest[child_id] = stamp

    for submission in submissions:
        if submission.status == UpdateStatus.PUBLISHED:
            _offer(submission.child_id, submission.published_at)
    for child in children:
        _offer(child.child_id, child.last_field_update_at)
        _offer(child.child_id, child.last_academic_update_at)
    return latest


def find_overdue(
    children: Iterable[Child],
    submissions: Iterable[UpdateSubmission],
    threshold_days: int,
    now: Optional[datetime] = None,
) -> OverdueReport:
    """
    A child is overdue when its last update is more than ``threshold_days``
    old, or when it has never had one. Never-updated children sort first,
    then the longest gaps.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    active = [c for c in children if c.status == ChildStatus.ACTIVE]
    latest = last_update_by_child(active, submissions)

    overdue: List[OverdueChild] = []
    for child in active:
        stamp = latest.get(child.child_id)
        if stamp is None:
            overdue.append(OverdueChild(child.child_id, child.first_name, None, None))
            continue
        days = math.ceil((now - stamp).total_seconds() / _SECONDS_PER_DAY)
        if days > threshold_days:
            overdue.append(OverdueChild(child.child_id, child.first_name, stamp.isoformat(), days))

    overdue.sort(key=lambda c: (c.days_since_update is not None, -(c.days_since_update or 0), c.child_id))
    return OverdueReport(
        threshold_days=threshold_days,
        total_active=len(active),
        overdue_count=len(overdue),
        overdue_children=overdue,
        generated_at=now.isoformat(),
    )

"""Compliance value objects: derived on demand, never persisted."""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from childupdates.domain.update.models import ReportType, Role


@dataclass
class MissingUpdate:
    child_id: str
    child_first_name: str
    period_or_term: str
    report_type: ReportType


@dataclass
class MissingUpdatesReport:
    period_or_term: str
    report_type: ReportType
    missing_child_ids: List[str]
    present_child_ids: List[str]
    missing_updates: List[MissingUpdate]
    expected: int
    present: int
    missing: int
    compliance_rate: int


@dataclass
class ComplianceSummary:
    period_or_term: str
    report_type: ReportType
    expected: int
    present: int
    missing: int
    missing_child_ids: List[str]
    compliance_rate: int
    generated_at: str


@dataclass
class ComplianceReport:
    summaries: List[ComplianceSummary]
    overall_compliance_rate: int
    total_expected: int
    total_present: int
    total_missing: int
    generated_at: str


class NoticeTier(str, Enum):
    INITIAL = "initial"
    FOLLOW_UP = "follow_up"
    FINAL = "final"
    ESCALATION = "escalation"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class Notice:
    tier: NoticeTier
    to_role: Role
    period_or_term: str
    report_type: ReportType
    subject: str
    html_body: str
    text_body: str
    missing_child_ids: List[str] = field(default_factory=list)
    days_overdue: int = 0
    urgency: Optional[Urgency] = None


@dataclass
class OverdueChild:
    child_id: str
    child_first_name: str
    last_update_at: Optional[str]
    days_since_update: Optional[int]  # None: never updated


@dataclass
class OverdueReport:
    threshold_days: int
    total_active: int
    overdue_count: int
    overdue_children: List[OverdueChild]
    generated_at: str


@dataclass
class AdminDigest:
    pending_updates: int
    overdue_children: int
    total_active: int
    generated_at: str
    message_id: Optional[str] = None
    provider: Optional[str] = None

"""Child update domain models — pure Python, no DB or HTTP dependencies."""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ReportType(str, Enum):
    FIELD = "field"
    ACADEMIC = "academic"


class UpdateStatus(str, Enum):
    DRAFT = "Draft"
    PENDING_REVIEW = "Pending Review"
    NEEDS_CORRECTION = "Needs Correction"
    PUBLISHED = "Published"
    REJECTED = "Rejected"


class Role(str, Enum):
    FIELD_SUBMITTER = "field_submitter"
    ACADEMIC_SUBMITTER = "academic_submitter"
    REVIEWER = "reviewer"


class ChildStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PAUSED = "paused"
    ARCHIVED = "archived"


@dataclass
class Child:
    child_id: str
    first_name: str
    status: ChildStatus
    last_initial: Optional[str] = None
    expected_field_period: Optional[str] = None
    expected_academic_term: Optional[str] = None
    last_field_update_at: Optional[str] = None
    last_academic_update_at: Optional[str] = None


@dataclass
class UpdateSubmission:
    id: str
    child_id: str
    report_type: ReportType
    period_or_term: str
    status: UpdateStatus
    submitted_by: Role
    submitted_at: str
    payload: Dict[str, Any] = field(default_factory=dict)
    reviewed_by: Optional[Role] = None
    reviewed_at: Optional[str] = None
    published_at: Optional[str] = None
    rejection_reason: Optional[str] = None
    correction_notes: Optional[str] = None
    supersedes_id: Optional[str] = None
    superseded_by_id: Optional[str] = None
    revision: int = 1
    created_at: str = ""
    updated_at: str = ""

    @property
    def update_key(self) -> str:
        return f"{self.child_id} | {self.period_or_term} | {self.report_type.value}"

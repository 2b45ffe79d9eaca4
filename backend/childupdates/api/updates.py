"""Update submission + review workflow API endpoints."""
from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from childupdates.api.auth import get_current_role, require_reviewer
from childupdates.api.common import raise_for_result, rate_limited
from childupdates.application.update_app_service import UpdateAppService
from childupdates.container import get_update_app_service
from childupdates.domain.update.models import ReportType, Role, UpdateStatus, UpdateSubmission

router = APIRouter(prefix="/updates", tags=["updates"])


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class SubmitUpdateBody(BaseModel):
    child_id: str = Field(..., min_length=1)
    report_type: ReportType
    period_or_term: str = Field(..., min_length=1)
    payload: Dict[str, Any]
    supersedes: Optional[str] = None
    as_draft: bool = False


class StatusChangeBody(BaseModel):
    next_status: UpdateStatus
    notes: Optional[str] = None
    expected_revision: Optional[int] = None


# ------------------------------------------------------------------
# Serializers
# ------------------------------------------------------------------
def _serialize_update(u: UpdateSubmission) -> dict:
    return {
        "id": u.id,
        "update_key": u.update_key,
        "child_id": u.child_id,
        "report_type": u.report_type.value,
        "period_or_term": u.period_or_term,
        "status": u.status.value,
        "submitted_by": u.submitted_by.value,
        "submitted_at": u.submitted_at,
        "payload": u.payload,
        "reviewed_by": u.reviewed_by.value if u.reviewed_by else None,
        "reviewed_at": u.reviewed_at,
        "published_at": u.published_at,
        "rejection_reason": u.rejection_reason,
        "correction_notes": u.correction_notes,
        "supersedes_id": u.supersedes_id,
        "superseded_by_id": u.superseded_by_id,
        "revision": u.revision,
        "created_at": u.created_at,
        "updated_at": u.updated_at,
    }


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------
@router.post("/", status_code=status.HTTP_201_CREATED, dependencies=[Depends(rate_limited("update-submission"))])
def submit_update(
    body: SubmitUpdateBody,
    svc: UpdateAppService = Depends(get_update_app_service),
    role: Role = Depends(get_current_role),
):
    result = svc.submit_update(
        child_id=body.child_id,
        report_type=body.report_type,
        period_or_term=body.period_or_term,
        actor_role=role,
        payload=body.payload,
        supersedes=body.supersedes,
        as_draft=body.as_draft,
    )
    raise_for_result(result)
    return _serialize_update(result.value)


@router.get("/pending")
def list_pending(
    report_type: Optional[ReportType] = None,
    svc: UpdateAppService = Depends(get_update_app_service),
    _: Role = Depends(require_reviewer),
):
    result = svc.list_pending(report_type)
    raise_for_result(result)
    return [_serialize_update(u) for u in result.value]


@router.get("/{update_id}")
def get_update(
    update_id: str,
    svc: UpdateAppService = Depends(get_update_app_service),
    _: Role = Depends(get_current_role),
):
    result = svc.get_update(update_id)
    raise_for_result(result)
    return _serialize_update(result.value)


@router.post("/{update_id}/status")
def change_status(
    update_id: str,
    body: StatusChangeBody,
    svc: UpdateAppService = Depends(get_update_app_service),
    role: Role = Depends(get_current_role),
):
    result = svc.change_status(
        update_id,
        next_status=body.next_status,
        actor_role=role,
        notes=body.notes,
        expected_revision=body.expected_revision,
    )
    raise_for_result(result)
    return _serialize_update(result.value)

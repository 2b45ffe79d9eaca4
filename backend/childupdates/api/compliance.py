"""Compliance API: read-only gap reports, the overdue list, the admin digest and the cron-triggered reminder job."""
from __future__ import annotations
import hmac
from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from childupdates.api.auth import decode_token, require_reviewer
from childupdates.api.common import raise_for_result
from childupdates.application.compliance_app_service import ComplianceAppService
from childupdates.container import get_compliance_app_service
from childupdates.core import config
from childupdates.domain.update.models import ReportType, Role

router = APIRouter(prefix="/compliance", tags=["compliance"])


def verify_cron_secret(authorization: Optional[str] = Header(default=None)) -> None:
    if not config.CRON_SECRET:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="CRON_SECRET not configured")
    expected = f"Bearer {config.CRON_SECRET}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def verify_cron_or_reviewer(authorization: Optional[str] = Header(default=None)) -> None:
    """Accepts the cron secret or a reviewer session."""
    if config.CRON_SECRET and authorization and hmac.compare_digest(authorization, f"Bearer {config.CRON_SECRET}"):
        return
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    if decode_token(token).get("role") != Role.REVIEWER.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Reviewer role required")


@router.get("/missing")
def detect_missing(
    period_or_term: str = Query(..., min_length=1),
    report_type: ReportType = Query(...),
    svc: ComplianceAppService = Depends(get_compliance_app_service),
    _: Role = Depends(require_reviewer),
):
    result = svc.detect_missing(period_or_term, report_type)
    raise_for_result(result)
    return asdict(result.value)


@router.get("/summary")
def compliance_summary(
    period_or_term: str = Query(..., min_length=1),
    report_type: Optional[ReportType] = None,
    svc: ComplianceAppService = Depends(get_compliance_app_service),
    _: Role = Depends(require_reviewer),
):
    result = svc.generate_compliance_summary(period_or_term, report_type)
    raise_for_result(result)
    return asdict(result.value)


@router.post("/run", dependencies=[Depends(verify_cron_secret)])
def run_compliance_job(
    run_on: Optional[date] = None,
    svc: ComplianceAppService = Depends(get_compliance_app_service),
):
    return asdict(svc.run_compliance_job(run_on))


@router.get("/overdue")
def list_overdue(
    threshold_days: Optional[int] = Query(default=None, ge=1),
    svc: ComplianceAppService = Depends(get_compliance_app_service),
    _: Role = Depends(require_reviewer),
):
    result = svc.list_overdue(threshold_days)
    raise_for_result(result)
    return asdict(result.value)


@router.post("/digest", dependencies=[Depends(verify_cron_or_reviewer)])
def send_admin_digest(
    threshold_days: Optional[int] = Query(default=None, ge=1),
    svc: ComplianceAppService = Depends(get_compliance_app_service),
):
    result = svc.send_admin_digest(threshold_days)
    raise_for_result(result)
    return {"detail": "Admin digest sent successfully", **asdict(result.value)}

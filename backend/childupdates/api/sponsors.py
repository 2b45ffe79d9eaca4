"""Sponsor API: session verification and update requests, one per sponsor per 90 days."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from childupdates.api.auth import create_sponsor_token, require_sponsor_session
from childupdates.api.common import raise_for_result, rate_limited
from childupdates.application.sponsor_request_service import SponsorRequestService
from childupdates.container import get_sponsor_request_service

router = APIRouter(prefix="/sponsors", tags=["sponsors"])


class VerifySponsorBody(BaseModel):
    sponsor_code: str
    email: str


@router.post("/verify", dependencies=[Depends(rate_limited("sponsor-verify"))])
def verify_sponsor(
    body: VerifySponsorBody,
    svc: SponsorRequestService = Depends(get_sponsor_request_service),
):
    result = svc.verify_sponsor(body.sponsor_code, body.email)
    raise_for_result(result)
    sponsorship = result.value
    return {
        "token": create_sponsor_token(sponsorship.sponsor_code),
        "sponsor_code": sponsorship.sponsor_code,
        "name": sponsorship.sponsor_name,
    }


@router.get("/{sponsor_code}/update-eligibility")
def update_eligibility(
    sponsor_code: str,
    svc: SponsorRequestService = Depends(get_sponsor_request_service),
):
    result = svc.eligibility(sponsor_code)
    raise_for_result(result)
    return {"can_request": result.value.can_request, "days_remaining": result.value.days_remaining}


@router.post(
    "/{sponsor_code}/request-update",
    dependencies=[Depends(require_sponsor_session), Depends(rate_limited("update-request"))],
)
def request_update(
    sponsor_code: str,
    svc: SponsorRequestService = Depends(get_sponsor_request_service),
):
    result = svc.request_update(sponsor_code)
    raise_for_result(result)
    return {
        "detail": "Update request submitted successfully",
        "last_request_at": result.value.last_request_at,
        "next_eligible_at": result.value.next_eligible_at,
    }

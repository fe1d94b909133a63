"""Submitted applications and scheduled follow-ups."""

from typing import Literal

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from autoapply.api.schemas import (
    ApplicationListResponse,
    ApplicationResponse,
    FollowUpListResponse,
    FollowUpResponse,
)
from autoapply.db import Application, FollowUp, get_db

router = APIRouter()


@router.get("", response_model=ApplicationListResponse)
def list_applications(
    x_user_id: str = Header(..., alias="X-User-ID"),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Most recent applications first."""
    applications = (
        db.query(Application)
        .filter(Application.user_id == x_user_id)
        .order_by(Application.applied_at.desc())
        .limit(limit)
        .all()
    )
    return ApplicationListResponse(
        applications=[ApplicationResponse.model_validate(a) for a in applications]
    )


@router.get("/follow-ups", response_model=FollowUpListResponse)
def list_follow_ups(
    x_user_id: str = Header(..., alias="X-User-ID"),
    status: Literal["pending", "sent", "cancelled"] | None = None,
    db: Session = Depends(get_db),
):
    """Follow-ups for the user's applications, soonest first."""
    query = db.query(FollowUp).join(Application).filter(Application.user_id == x_user_id)
    if status:
        query = query.filter(FollowUp.status == status)
    follow_ups = query.order_by(FollowUp.scheduled_date).all()
    return FollowUpListResponse(follow_ups=[FollowUpResponse.model_validate(f) for f in follow_ups])

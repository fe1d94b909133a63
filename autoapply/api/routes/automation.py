"""Automation config endpoint."""

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from autoapply.api.deps import ensure_user
from autoapply.api.schemas import AutomationConfigResponse, AutomationConfigUpdate
from autoapply.db import AutomationConfig, get_db
from autoapply.pipeline.models import normalize_company
from autoapply.utils.clock import utcnow

router = APIRouter()


def _get_or_create(db: Session, user_id: str) -> AutomationConfig:
    config = db.query(AutomationConfig).filter(AutomationConfig.user_id == user_id).first()
    if not config:
        ensure_user(db, user_id)
        config = AutomationConfig(user_id=user_id, blacklisted_companies=[])
        db.add(config)
        db.commit()
        db.refresh(config)
    return config


@router.get("/config", response_model=AutomationConfigResponse)
def get_automation_config(
    x_user_id: str = Header(..., alias="X-User-ID"),
    db: Session = Depends(get_db),
):
    """Get the user's submission policy, creating defaults on first access."""
    return _get_or_create(db, x_user_id)


@router.put("/config", response_model=AutomationConfigResponse)
def update_automation_config(
    data: AutomationConfigUpdate,
    x_user_id: str = Header(..., alias="X-User-ID"),
    db: Session = Depends(get_db),
):
    """Update the user's submission policy."""
    config = _get_or_create(db, x_user_id)

    if data.max_applications_per_day is not None:
        config.max_applications_per_day = data.max_applications_per_day
    if data.minimum_match_score is not None:
        config.minimum_match_score = data.minimum_match_score
    if data.blacklisted_companies is not None:
        names = [normalize_company(c) for c in data.blacklisted_companies]
        config.blacklisted_companies = sorted({n for n in names if n})
    if data.auto_follow_up is not None:
        config.auto_follow_up = data.auto_follow_up
    if data.follow_up_delay_days is not None:
        config.follow_up_delay_days = data.follow_up_delay_days

    config.updated_at = utcnow()
    db.commit()
    db.refresh(config)
    return config

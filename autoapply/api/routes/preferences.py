"""Preferences endpoint."""

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from autoapply.api.deps import ensure_user
from autoapply.api.schemas import PreferencesResponse, PreferencesUpdate
from autoapply.db import Preferences, get_db
from autoapply.utils.clock import utcnow

router = APIRouter()


def _to_response(prefs: Preferences) -> PreferencesResponse:
    return PreferencesResponse(
        keywords=prefs.keywords or [],
        location=prefs.location,
        remote=prefs.remote,
        radius=prefs.radius,
    )


@router.get("", response_model=PreferencesResponse)
def get_preferences(
    x_user_id: str = Header(..., alias="X-User-ID"),
    db: Session = Depends(get_db),
):
    """Get user search preferences."""
    prefs = db.query(Preferences).filter(Preferences.user_id == x_user_id).first()
    if not prefs:
        raise HTTPException(status_code=404, detail="Preferences not found")
    return _to_response(prefs)


@router.put("", response_model=PreferencesResponse)
def update_preferences(
    data: PreferencesUpdate,
    x_user_id: str = Header(..., alias="X-User-ID"),
    db: Session = Depends(get_db),
):
    """Create or update user search preferences."""
    prefs = db.query(Preferences).filter(Preferences.user_id == x_user_id).first()
    if not prefs:
        ensure_user(db, x_user_id)
        prefs = Preferences(user_id=x_user_id, keywords=[])
        db.add(prefs)

    if data.keywords is not None:
        prefs.keywords = [k.strip() for k in data.keywords if k and k.strip()]
    if data.location is not None:
        prefs.location = data.location.strip() or None
    if data.remote is not None:
        prefs.remote = data.remote
    if data.radius is not None:
        prefs.radius = data.radius

    prefs.updated_at = utcnow()
    db.commit()
    db.refresh(prefs)

    return _to_response(prefs)

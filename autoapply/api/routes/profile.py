"""Profile endpoint."""

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from autoapply.api.schemas import ProfileResponse
from autoapply.db import Profile, get_db
from autoapply.pipeline.models import ResumeProfile

router = APIRouter()


@router.get("", response_model=ProfileResponse)
def get_profile(
    x_user_id: str = Header(..., alias="X-User-ID"),
    db: Session = Depends(get_db),
):
    """Get the user's parsed resume."""
    profile = db.query(Profile).filter(Profile.user_id == x_user_id).first()
    if not profile or not profile.resume:
        raise HTTPException(status_code=404, detail="Profile not found")

    resume = ResumeProfile.model_validate(profile.resume)
    return ProfileResponse(
        skills=resume.skills,
        titles=resume.titles,
        experience_years=resume.experience_years,
        summary=resume.summary,
        uploaded_at=profile.uploaded_at,
    )

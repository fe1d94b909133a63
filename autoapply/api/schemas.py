"""API request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


# Run schemas
class StartRunRequest(BaseModel):
    """Per-run overrides of the stored automation config (all optional)."""

    max_applications_per_day: int | None = Field(default=None, gt=0)
    minimum_match_score: float | None = Field(default=None, ge=0, le=100)
    blacklisted_companies: list[str] | None = None
    auto_follow_up: bool | None = None
    follow_up_delay_days: int | None = Field(default=None, ge=0)


class StartRunResponse(BaseModel):
    run_id: str
    status: str
    message: str


class CurrentRunResponse(BaseModel):
    run_id: str | None
    next_allowed_time: datetime | None


# Automation config schemas
class AutomationConfigUpdate(BaseModel):
    max_applications_per_day: int | None = Field(default=None, gt=0)
    minimum_match_score: float | None = Field(default=None, ge=0, le=100)
    blacklisted_companies: list[str] | None = None
    auto_follow_up: bool | None = None
    follow_up_delay_days: int | None = Field(default=None, ge=0)


class AutomationConfigResponse(BaseModel):
    max_applications_per_day: int
    minimum_match_score: float
    blacklisted_companies: list[str]
    auto_follow_up: bool
    follow_up_delay_days: int

    class Config:
        from_attributes = True


# Preferences schemas
class PreferencesUpdate(BaseModel):
    keywords: list[str] | None = None
    location: str | None = None
    remote: bool | None = None
    radius: int | None = Field(default=None, ge=0)


class PreferencesResponse(BaseModel):
    keywords: list[str]
    location: str | None
    remote: bool
    radius: int | None

    class Config:
        from_attributes = True


# Profile schemas
class ProfileResponse(BaseModel):
    skills: list[str]
    titles: list[str]
    experience_years: int | None
    summary: str
    uploaded_at: datetime


# Application schemas
class ApplicationResponse(BaseModel):
    id: str
    job_ref: str
    job_title: str
    company: str
    match_score: float | None
    status: str
    applied_at: datetime
    last_contact_at: datetime | None

    class Config:
        from_attributes = True


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationResponse]


class FollowUpResponse(BaseModel):
    id: str
    application_id: str
    scheduled_date: datetime
    status: str

    class Config:
        from_attributes = True


class FollowUpListResponse(BaseModel):
    follow_ups: list[FollowUpResponse]

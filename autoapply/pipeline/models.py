"""Pipeline data models passed between stages."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

RunState = Literal["processing", "complete", "error", "cancelled"]


def normalize_company(name: str) -> str:
    return " ".join(name.lower().split())


class JobPreferences(BaseModel):
    """Search preferences handed to discovery."""

    keywords: list[str] = Field(default_factory=list)
    location: str | None = None
    remote: bool = False
    radius: int | None = None


class ResumeProfile(BaseModel):
    """Parsed resume as stored by the profile store."""

    skills: list[str] = Field(default_factory=list)
    titles: list[str] = Field(default_factory=list)
    experience_years: int | None = None
    summary: str = ""


class RunConfig(BaseModel):
    """Submission policy for one run, resolved from the user's AutomationConfig."""

    max_applications_per_day: int = Field(default=20, gt=0)
    minimum_match_score: float = Field(default=75, ge=0, le=100)
    blacklisted_companies: set[str] = Field(default_factory=set)
    auto_follow_up: bool = True
    follow_up_delay_days: int = Field(default=5, ge=0)

    @field_validator("blacklisted_companies", mode="before")
    @classmethod
    def _normalize_blacklist(cls, value):
        return {normalize_company(c) for c in (value or []) if c and c.strip()}

    def is_blacklisted(self, company: str) -> bool:
        return normalize_company(company) in self.blacklisted_companies


class CandidateJob(BaseModel):
    """A job returned by discovery, scored before submission."""

    title: str
    company: str = "Unknown"
    location: str = "unknown"
    description: str = ""
    source_url: str
    posted_at: datetime | None = None
    match_score: float | None = None
    match_reasons: list[str] = Field(default_factory=list)


class MatchResult(BaseModel):
    score: float = Field(ge=0, le=100)
    reasons: list[str] = Field(default_factory=list)


class RunStatus(BaseModel):
    """Polling view of a processing run."""

    run_id: str
    status: RunState
    progress: int
    estimated_end_time: datetime | None
    error: str | None
    jobs_found: int
    jobs_processed: int
    started_at: datetime
    completed_at: datetime | None

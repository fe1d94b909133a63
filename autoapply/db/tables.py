"""Database table models."""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autoapply.db.base import Base
from autoapply.utils.clock import utcnow


def generate_uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    """User account."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    profile: Mapped["Profile | None"] = relationship(back_populates="user", uselist=False)
    preferences: Mapped["Preferences | None"] = relationship(back_populates="user", uselist=False)
    automation_config: Mapped["AutomationConfig | None"] = relationship(
        back_populates="user", uselist=False
    )


class Profile(Base):
    """Parsed resume owned by the profile store."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), unique=True)
    resume: Mapped[dict | None] = mapped_column(JSON, default=None)  # skills/titles/experience_years/summary
    resume_text: Mapped[str] = mapped_column(Text, default="")
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    user: Mapped["User"] = relationship(back_populates="profile")


class Preferences(Base):
    """User job search preferences."""

    __tablename__ = "preferences"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), unique=True)
    keywords: Mapped[list] = mapped_column(JSON, default=list)
    location: Mapped[str | None] = mapped_column(String(255), default=None)
    remote: Mapped[bool] = mapped_column(Boolean, default=False)
    radius: Mapped[int | None] = mapped_column(Integer, default=None)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    user: Mapped["User"] = relationship(back_populates="preferences")


class AutomationConfig(Base):
    """Per-user submission policy."""

    __tablename__ = "automation_configs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), unique=True)
    max_applications_per_day: Mapped[int] = mapped_column(Integer, default=20)
    minimum_match_score: Mapped[float] = mapped_column(Float, default=75.0)
    blacklisted_companies: Mapped[list] = mapped_column(JSON, default=list)
    auto_follow_up: Mapped[bool] = mapped_column(Boolean, default=True)
    follow_up_delay_days: Mapped[int] = mapped_column(Integer, default=5)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    user: Mapped["User"] = relationship(back_populates="automation_config")


class ProcessingRun(Base):
    """One execution of the pipeline for a user."""

    __tablename__ = "processing_runs"
    __table_args__ = (
        # Single active run per user, enforced by the database
        Index(
            "uq_processing_runs_active_user",
            "user_id",
            unique=True,
            sqlite_where=text("completed_at IS NULL"),
            postgresql_where=text("completed_at IS NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    jobs_found: Mapped[int] = mapped_column(Integer, default=0)
    jobs_processed: Mapped[int] = mapped_column(Integer, default=0)
    error: Mapped[str | None] = mapped_column(Text, default=None)
    cancelled: Mapped[bool] = mapped_column(Boolean, default=False)

    @property
    def state(self) -> str:
        """processing / cancelled / error / complete"""
        if self.completed_at is None:
            return "processing"
        if self.cancelled:
            return "cancelled"
        if self.error:
            return "error"
        return "complete"


class RunCooldown(Base):
    """Start time of each user's most recent run."""

    __tablename__ = "run_cooldowns"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    last_run_start: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class Application(Base):
    """A submitted job application."""

    __tablename__ = "applications"
    __table_args__ = (UniqueConstraint("user_id", "job_ref", name="uq_applications_user_job"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    job_ref: Mapped[str] = mapped_column(String(2048))  # posting source URL
    job_title: Mapped[str] = mapped_column(String(255), default="")
    company: Mapped[str] = mapped_column(String(255), default="")
    match_score: Mapped[float | None] = mapped_column(Float, default=None)
    status: Mapped[str] = mapped_column(String(20), default="applied")  # applied/contacted/rejected/accepted
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_contact_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    customized_resume: Mapped[str | None] = mapped_column(Text, default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)

    follow_ups: Mapped[list["FollowUp"]] = relationship(back_populates="application")


class FollowUp(Base):
    """A scheduled follow-up for an application."""

    __tablename__ = "follow_ups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    application_id: Mapped[str] = mapped_column(ForeignKey("applications.id"))
    scheduled_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending/sent/cancelled

    application: Mapped["Application"] = relationship(back_populates="follow_ups")

"""Submission policy: per-user config, daily quota, ranking."""

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from autoapply.db import Application, AutomationConfig
from autoapply.pipeline.models import CandidateJob, RunConfig
from autoapply.utils.clock import start_of_day, utcnow


def load_run_config(db: Session, user_id: str, overrides: dict | None = None) -> RunConfig:
    """
    Resolve the policy for one run.

    Starts from the user's stored AutomationConfig (or defaults) and applies
    per-run overrides. The result is passed explicitly to the orchestrator.
    """
    values: dict = {}
    stored = db.query(AutomationConfig).filter(AutomationConfig.user_id == user_id).first()
    if stored:
        values = {
            "max_applications_per_day": stored.max_applications_per_day,
            "minimum_match_score": stored.minimum_match_score,
            "blacklisted_companies": stored.blacklisted_companies or [],
            "auto_follow_up": stored.auto_follow_up,
            "follow_up_delay_days": stored.follow_up_delay_days,
        }
    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})
    return RunConfig(**values)


def count_todays_applications(db: Session, user_id: str, now: datetime | None = None) -> int:
    """Applications submitted since midnight UTC."""
    today = start_of_day(now or utcnow())
    return (
        db.query(func.count(Application.id))
        .filter(Application.user_id == user_id, Application.applied_at >= today)
        .scalar()
        or 0
    )


def rank_candidates(jobs: Iterable[CandidateJob], config: RunConfig, remaining: int) -> list[CandidateJob]:
    """
    Apply minimum score and blacklist, best score first, capped at the
    remaining daily quota. Unscored jobs never qualify.
    """
    if remaining <= 0:
        return []

    eligible = [
        job
        for job in jobs
        if job.match_score is not None
        and job.match_score >= config.minimum_match_score
        and not config.is_blacklisted(job.company)
    ]
    eligible.sort(key=lambda job: job.match_score, reverse=True)
    return eligible[:remaining]

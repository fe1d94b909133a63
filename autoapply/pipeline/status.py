"""
Status reporter.

Pure read projection of a ProcessingRun for polling clients.
"""

from datetime import datetime

from sqlalchemy.orm import Session

from autoapply.db import ProcessingRun
from autoapply.pipeline.errors import RunNotFound
from autoapply.pipeline.models import RunStatus
from autoapply.utils.clock import as_utc, utcnow

# Shown while discovery runs so the client does not look idle
DISCOVERY_PLACEHOLDER_PROGRESS = 10


def compute_progress(jobs_found: int, jobs_processed: int, error: str | None) -> int:
    if jobs_found > 0:
        return round(jobs_processed / jobs_found * 100)
    if error:
        return 0
    return DISCOVERY_PLACEHOLDER_PROGRESS


def estimate_end_time(
    started_at: datetime, jobs_found: int, jobs_processed: int, now: datetime
) -> datetime | None:
    """Linear extrapolation from the average time per processed job."""
    if jobs_processed <= 0:
        return None
    elapsed = now - started_at
    per_job = elapsed / jobs_processed
    return now + per_job * max(0, jobs_found - jobs_processed)


def build_status(run: ProcessingRun, now: datetime | None = None) -> RunStatus:
    now = now or utcnow()
    started_at = as_utc(run.started_at)
    state = run.state

    estimated = None
    if state == "processing":
        estimated = estimate_end_time(started_at, run.jobs_found, run.jobs_processed, now)

    return RunStatus(
        run_id=run.id,
        status=state,
        progress=compute_progress(run.jobs_found, run.jobs_processed, run.error),
        estimated_end_time=estimated,
        error=run.error,
        jobs_found=run.jobs_found,
        jobs_processed=run.jobs_processed,
        started_at=started_at,
        completed_at=as_utc(run.completed_at),
    )


def get_status(
    db: Session, run_id: str, user_id: str | None = None, now: datetime | None = None
) -> RunStatus:
    """Read the run in one SELECT and project it. No writes."""
    query = db.query(ProcessingRun).populate_existing().filter(ProcessingRun.id == run_id)
    if user_id is not None:
        query = query.filter(ProcessingRun.user_id == user_id)
    run = query.first()
    if not run:
        raise RunNotFound(run_id)
    return build_status(run, now=now)

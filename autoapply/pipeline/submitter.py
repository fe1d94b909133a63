"""
Application submitter.

Best-effort: one job's failure is logged and skipped, and `submit` returns
the applications it did create.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import timedelta

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from autoapply.db import Application, FollowUp
from autoapply.pipeline.backoff import BackoffExecutor, BackoffOptions
from autoapply.pipeline.errors import SubmissionPartialFailure
from autoapply.pipeline.models import CandidateJob, RunConfig
from autoapply.utils.clock import utcnow

logger = logging.getLogger(__name__)


def _is_transient_db_error(error: Exception) -> bool:
    return isinstance(error, OperationalError)


class ApplicationSubmitter:
    """Persists applications and follow-ups for ranked jobs."""

    def __init__(self, backoff: BackoffExecutor | None = None, backoff_options: BackoffOptions | None = None):
        self.backoff = backoff or BackoffExecutor()
        self.backoff_options = (backoff_options or BackoffOptions()).with_predicate(_is_transient_db_error)

    @staticmethod
    def already_applied(db: Session, user_id: str, job_ref: str) -> bool:
        return (
            db.query(Application.id)
            .filter(Application.user_id == user_id, Application.job_ref == job_ref)
            .first()
            is not None
        )

    def _check_applied(self, db: Session, user_id: str, job_ref: str) -> bool:
        try:
            return self.already_applied(db, user_id, job_ref)
        except OperationalError:
            db.rollback()
            raise

    def _insert(self, db: Session, user_id: str, job: CandidateJob, config: RunConfig) -> Application:
        """Insert the application (and follow-up) and commit. Earlier jobs are already committed."""
        now = utcnow()
        application = Application(
            user_id=user_id,
            job_ref=job.source_url,
            job_title=job.title,
            company=job.company,
            match_score=job.match_score,
            status="applied",
            applied_at=now,
        )
        try:
            db.add(application)
            db.flush()

            if config.auto_follow_up:
                db.add(
                    FollowUp(
                        application_id=application.id,
                        scheduled_date=now + timedelta(days=config.follow_up_delay_days),
                        status="pending",
                    )
                )
            db.commit()
        except Exception:
            db.rollback()
            raise
        return application

    def submit_one(self, db: Session, user_id: str, job: CandidateJob, config: RunConfig) -> Application | None:
        """Submit a single job. None if the user already applied to it."""
        try:
            if self.backoff.execute(lambda: self._check_applied(db, user_id, job.source_url), self.backoff_options):
                logger.info(f"Skipping {job.source_url}: already applied")
                return None
            return self.backoff.execute(lambda: self._insert(db, user_id, job, config), self.backoff_options)
        except Exception as e:
            raise SubmissionPartialFailure(job.source_url, e) from e

    def submit(
        self,
        db: Session,
        user_id: str,
        ranked_jobs: Sequence[CandidateJob],
        config: RunConfig,
        is_cancelled: Callable[[], bool] | None = None,
        on_processed: Callable[[CandidateJob, Application | None], None] | None = None,
    ) -> list[Application]:
        """
        Submit ranked jobs in order.

        Args:
            db: Session used for all writes
            user_id: Applicant
            ranked_jobs: Jobs already filtered and sorted by the orchestrator
            config: Policy for this run (follow-up settings)
            is_cancelled: Checked before each job; stops submitting when true
            on_processed: Called after each job is handled, with the new
                application or None (duplicate or failure)

        Returns:
            Applications created by this call
        """
        submitted: list[Application] = []

        for job in ranked_jobs:
            if is_cancelled and is_cancelled():
                logger.info("Submission stopped: run cancelled")
                break

            application = None
            try:
                application = self.submit_one(db, user_id, job, config)
            except SubmissionPartialFailure as e:
                logger.warning(str(e))

            if application is not None:
                submitted.append(application)
            if on_processed:
                on_processed(job, application)

        logger.info(f"Submitted {len(submitted)}/{len(ranked_jobs)} applications for user {user_id}")
        return submitted

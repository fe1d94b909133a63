"""
Run orchestrator.

State machine for one pipeline run per user:

    Idle -> Processing -> Complete | Error | Cancelled

`start` creates the run synchronously (single-active-run check, cooldown,
preconditions). `execute` is the background task: discovery -> scoring ->
filtering -> submission, checking for cancellation before each unit of work.
Every write to the run row is a conditional UPDATE on `completed_at IS NULL`,
so a terminal run is never modified again.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from autoapply.db import Preferences, ProcessingRun, Profile
from autoapply.pipeline.backoff import BackoffExecutor, BackoffOptions
from autoapply.pipeline.cooldown import CooldownGuard
from autoapply.pipeline.errors import (
    CANCELLED_MESSAGE,
    AlreadyProcessing,
    Cancelled,
    DiscoveryFailed,
    InvalidScoringInput,
    NotProcessing,
    PipelineError,
    PreconditionFailed,
    RunNotFound,
)
from autoapply.pipeline.models import CandidateJob, JobPreferences, ResumeProfile, RunConfig
from autoapply.pipeline.policy import count_todays_applications, rank_candidates
from autoapply.pipeline.submitter import ApplicationSubmitter
from autoapply.tools.discovery import JobDiscoveryClient
from autoapply.tools.match_scorer import MatchScorer
from autoapply.tools.notifier import Notifier
from autoapply.utils.clock import utcnow

logger = logging.getLogger(__name__)

NO_RESUME_MESSAGE = "Please upload and parse your resume first"
NO_PREFERENCES_MESSAGE = "Please set your job preferences first"
NO_VALID_MATCHES_MESSAGE = "No valid job matches found"
NO_QUALIFYING_JOBS_MESSAGE = "No jobs met the minimum match score. Try adjusting your preferences."


@dataclass
class RunInputs:
    resume: ResumeProfile
    preferences: JobPreferences
    todays_applications: int


def _is_transient_db_error(error: Exception) -> bool:
    return isinstance(error, OperationalError)


def _is_retryable_discovery_error(error: Exception) -> bool:
    return isinstance(error, DiscoveryFailed)


def _is_retryable_scoring_error(error: Exception) -> bool:
    return not isinstance(error, InvalidScoringInput)


class RunOrchestrator:
    """Drives discovery, scoring and submission for a user's run."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        discovery: JobDiscoveryClient,
        scorer: MatchScorer,
        submitter: ApplicationSubmitter | None = None,
        notifier: Notifier | None = None,
        cooldown: CooldownGuard | None = None,
        backoff: BackoffExecutor | None = None,
        backoff_options: BackoffOptions | None = None,
    ):
        self.session_factory = session_factory
        self.discovery = discovery
        self.scorer = scorer
        self.backoff = backoff or BackoffExecutor()
        self.backoff_options = backoff_options or BackoffOptions()
        self.submitter = submitter or ApplicationSubmitter(self.backoff, self.backoff_options)
        self.notifier = notifier or Notifier()
        self.cooldown = cooldown or CooldownGuard()

    # ------------------------------------------------------------------
    # Run record helpers

    def _db_call(self, db: Session, fn: Callable):
        """Run a DB operation through the backoff executor, retrying transient errors."""

        def attempt():
            try:
                return fn()
            except OperationalError:
                db.rollback()
                raise

        return self.backoff.execute(attempt, self.backoff_options.with_predicate(_is_transient_db_error))

    def _update_active(self, db: Session, run_id: str, values: dict) -> bool:
        """Conditional update of a non-terminal run. False if the run is already terminal."""

        def update():
            count = (
                db.query(ProcessingRun)
                .filter(ProcessingRun.id == run_id, ProcessingRun.completed_at.is_(None))
                .update(values, synchronize_session=False)
            )
            db.commit()
            return count == 1

        return self._db_call(db, update)

    def _is_terminal(self, db: Session, run_id: str) -> bool:
        completed_at = self._db_call(
            db,
            lambda: db.query(ProcessingRun.completed_at).filter(ProcessingRun.id == run_id).scalar(),
        )
        return completed_at is not None

    def _checkpoint(self, db: Session, run_id: str):
        """Cooperative cancellation point between units of work."""
        if self._is_terminal(db, run_id):
            raise Cancelled()

    def _notify(self, user_id: str, event: str, payload: dict):
        """Fire-and-forget. Failures are logged, never raised."""
        try:
            self.backoff.execute(lambda: self.notifier.notify(user_id, event, payload), self.backoff_options)
        except Exception as e:
            logger.warning(f"Notification {event} for user {user_id} failed: {e}")

    @staticmethod
    def active_run(db: Session, user_id: str) -> ProcessingRun | None:
        return (
            db.query(ProcessingRun)
            .filter(ProcessingRun.user_id == user_id, ProcessingRun.completed_at.is_(None))
            .first()
        )

    # ------------------------------------------------------------------
    # Preconditions

    def load_inputs(self, db: Session, user_id: str, config: RunConfig) -> RunInputs:
        """Resume, preferences and today's count. Raises PreconditionFailed."""

        def load():
            profile = db.query(Profile).filter(Profile.user_id == user_id).first()
            prefs = db.query(Preferences).filter(Preferences.user_id == user_id).first()
            return profile, prefs, count_todays_applications(db, user_id)

        profile, prefs, todays = self._db_call(db, load)

        if not profile or not profile.resume:
            raise PreconditionFailed(NO_RESUME_MESSAGE)

        keywords = [k.strip() for k in (prefs.keywords or []) if k and k.strip()] if prefs else []
        if not keywords:
            raise PreconditionFailed(NO_PREFERENCES_MESSAGE)

        if todays >= config.max_applications_per_day:
            raise PreconditionFailed(f"Daily application limit of {config.max_applications_per_day} reached")

        try:
            resume = ResumeProfile.model_validate(profile.resume)
        except ValidationError as e:
            logger.warning(f"Stored resume for user {user_id} is malformed: {e}")
            raise PreconditionFailed(NO_RESUME_MESSAGE) from e

        return RunInputs(
            resume=resume,
            preferences=JobPreferences(
                keywords=keywords,
                location=prefs.location,
                remote=prefs.remote,
                radius=prefs.radius,
            ),
            todays_applications=todays,
        )

    # ------------------------------------------------------------------
    # Public operations

    def start(self, user_id: str, config: RunConfig) -> str:
        """
        Create a run for the user and validate its preconditions.

        Returns:
            The new run id

        Raises:
            AlreadyProcessing: the user has an active run
            RateLimited: inside the cooldown window
            PreconditionFailed: the run was created and immediately failed

        Any other error while checking preconditions also ends the run as Error
        before it propagates.
        """
        if not user_id:
            raise ValueError("User ID is required")

        with self.session_factory() as db:
            active = self._db_call(db, lambda: self.active_run(db, user_id))
            if active:
                raise AlreadyProcessing(user_id, active.id)

            self._db_call(db, lambda: self.cooldown.check(db, user_id))

            now = utcnow()
            run = ProcessingRun(user_id=user_id, started_at=now, jobs_found=0, jobs_processed=0)
            db.add(run)
            self.cooldown.record(db, user_id, now)
            try:
                db.commit()
            except IntegrityError:
                # Lost a race against a concurrent start for the same user
                db.rollback()
                raise AlreadyProcessing(user_id)

            run_id = run.id
            logger.info(f"[{run_id}] Run started for user {user_id}")

            try:
                self.load_inputs(db, user_id, config)
            except PreconditionFailed as e:
                logger.info(f"[{run_id}] Precondition failed: {e.reason}")
                self._update_active(db, run_id, {"completed_at": utcnow(), "error": e.reason})
                self._notify(user_id, "run.error", {"run_id": run_id, "error": e.reason})
                e.run_id = run_id
                raise
            except Exception as e:
                # The run never reaches the background task, so it must not stay active
                self._fail(db, run_id, user_id, str(e) or e.__class__.__name__)
                raise

        return run_id

    def cancel(self, run_id: str, user_id: str | None = None):
        """
        Cancel a processing run. In-flight external calls finish, but no
        further stage starts.

        Raises:
            RunNotFound: unknown run (or owned by another user)
            NotProcessing: the run is already terminal
        """
        with self.session_factory() as db:
            run = self._db_call(db, lambda: db.query(ProcessingRun).filter(ProcessingRun.id == run_id).first())
            if not run or (user_id is not None and run.user_id != user_id):
                raise RunNotFound(run_id)

            cancelled = self._update_active(
                db,
                run_id,
                {"cancelled": True, "error": CANCELLED_MESSAGE, "completed_at": utcnow()},
            )
            if not cancelled:
                raise NotProcessing(run_id)

            logger.info(f"[{run_id}] Cancelled by user")
            self._notify(run.user_id, "run.cancelled", {"run_id": run_id, "error": CANCELLED_MESSAGE})

    def execute(self, run_id: str, user_id: str, config: RunConfig):
        """Background task body. Terminal errors are recorded on the run."""
        db = self.session_factory()
        try:
            submitted = self._run_stages(db, run_id, user_id, config)
            if self._update_active(db, run_id, {"completed_at": utcnow()}):
                logger.info(f"[{run_id}] Run completed with {submitted} applications")
                self._notify(user_id, "run.complete", {"run_id": run_id, "applications": submitted})
            else:
                logger.info(f"[{run_id}] Run ended before completion was recorded")
        except Cancelled:
            logger.info(f"[{run_id}] Stopped after cancellation")
        except PipelineError as e:
            self._fail(db, run_id, user_id, str(e))
        except Exception as e:
            logger.exception(f"[{run_id}] Run failed: {e}")
            self._fail(db, run_id, user_id, str(e) or e.__class__.__name__)
        finally:
            db.close()

    def _fail(self, db: Session, run_id: str, user_id: str, message: str):
        logger.error(f"[{run_id}] Run failed: {message}")
        db.rollback()
        if self._update_active(db, run_id, {"completed_at": utcnow(), "error": message}):
            self._notify(user_id, "run.error", {"run_id": run_id, "error": message})

    # ------------------------------------------------------------------
    # Stages

    def _run_stages(self, db: Session, run_id: str, user_id: str, config: RunConfig) -> int:
        inputs = self.load_inputs(db, user_id, config)

        # Discovery
        self._checkpoint(db, run_id)
        logger.info(f"[{run_id}] Searching jobs for {inputs.preferences.keywords}")
        candidates = self.backoff.execute(
            lambda: self.discovery.discover(inputs.preferences),
            self.backoff_options.with_predicate(_is_retryable_discovery_error),
        )
        if not self._update_active(db, run_id, {"jobs_found": len(candidates)}):
            raise Cancelled()
        logger.info(f"[{run_id}] Found {len(candidates)} jobs")

        # Scoring
        scored = self._score_all(db, run_id, candidates, inputs.resume)
        if not scored:
            raise PipelineError(NO_VALID_MATCHES_MESSAGE)

        # Filtering
        self._checkpoint(db, run_id)
        remaining = config.max_applications_per_day - inputs.todays_applications
        ranked = rank_candidates(scored, config, remaining)
        if not ranked:
            raise PipelineError(NO_QUALIFYING_JOBS_MESSAGE)
        logger.info(f"[{run_id}] {len(ranked)} jobs qualify for submission")

        # Submission
        def on_processed(job: CandidateJob, application):
            self._update_active(db, run_id, {"jobs_processed": ProcessingRun.jobs_processed + 1})

        submitted = self.submitter.submit(
            db,
            user_id,
            ranked,
            config,
            is_cancelled=lambda: self._is_terminal(db, run_id),
            on_processed=on_processed,
        )
        return len(submitted)

    def _score_all(
        self, db: Session, run_id: str, candidates: list[CandidateJob], resume: ResumeProfile
    ) -> list[CandidateJob]:
        """Score each job independently. Jobs whose scoring fails are dropped."""
        scored: list[CandidateJob] = []
        for job in candidates:
            self._checkpoint(db, run_id)
            description = job.description or f"{job.title} at {job.company}"
            try:
                match = self.backoff.execute(
                    lambda: self.scorer.score(resume, description),
                    self.backoff_options.with_predicate(_is_retryable_scoring_error),
                )
            except Exception as e:
                logger.warning(f"[{run_id}] Match calculation failed for {job.source_url}: {e}")
                continue
            scored.append(job.model_copy(update={"match_score": match.score, "match_reasons": match.reasons}))

        logger.info(f"[{run_id}] Scored {len(scored)}/{len(candidates)} jobs")
        return scored

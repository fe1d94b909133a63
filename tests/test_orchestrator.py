"""Tests for the run orchestrator state machine."""

import threading
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from autoapply.db import Application, Preferences, ProcessingRun, Profile, User
from autoapply.pipeline.cooldown import CooldownGuard
from autoapply.pipeline.errors import (
    CANCELLED_MESSAGE,
    AlreadyProcessing,
    DiscoveryFailed,
    InvalidScoringInput,
    NoResults,
    NotProcessing,
    PreconditionFailed,
    RateLimited,
    RunNotFound,
)
from autoapply.pipeline.models import RunConfig
from autoapply.pipeline.orchestrator import (
    NO_PREFERENCES_MESSAGE,
    NO_QUALIFYING_JOBS_MESSAGE,
    NO_RESUME_MESSAGE,
    NO_VALID_MATCHES_MESSAGE,
)
from autoapply.pipeline.status import get_status
from autoapply.pipeline.submitter import ApplicationSubmitter
from autoapply.utils.clock import utcnow

from tests.conftest import USER_ID, FakeDiscovery, FakeScorer, RecordingNotifier, make_job

JOBS = [make_job(1), make_job(2), make_job(3)]
SCORES = {"job-1": 90, "job-2": 60, "job-3": 80}


def run_to_end(orchestrator, config=None) -> str:
    config = config or RunConfig()
    run_id = orchestrator.start(USER_ID, config)
    orchestrator.execute(run_id, USER_ID, config)
    return run_id


def events(notifier) -> list[str]:
    return [event for _, event, _ in notifier.events]


class TestStart:
    def test_creates_processing_run(self, seeded_user, make_orchestrator, db):
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES))
        run_id = orchestrator.start(USER_ID, RunConfig())

        status = get_status(db, run_id)
        assert status.status == "processing"
        assert status.jobs_found == 0
        assert status.jobs_processed == 0
        assert status.progress == 10

    def test_second_start_is_already_processing(self, seeded_user, make_orchestrator):
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES))
        run_id = orchestrator.start(USER_ID, RunConfig())

        with pytest.raises(AlreadyProcessing) as exc_info:
            orchestrator.start(USER_ID, RunConfig())
        assert exc_info.value.run_id == run_id

    def test_start_within_cooldown_is_rate_limited(self, seeded_user, make_orchestrator):
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES))
        run_to_end(orchestrator)

        with pytest.raises(RateLimited) as exc_info:
            orchestrator.start(USER_ID, RunConfig())
        assert timedelta(0) < exc_info.value.retry_after <= timedelta(minutes=5)

    def test_missing_resume_fails_run(self, session_factory, make_orchestrator, notifier, db):
        with session_factory() as session:
            session.add(User(id=USER_ID))
            session.add(Preferences(user_id=USER_ID, keywords=["python"]))
            session.commit()
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES))

        with pytest.raises(PreconditionFailed) as exc_info:
            orchestrator.start(USER_ID, RunConfig())

        assert exc_info.value.reason == NO_RESUME_MESSAGE
        status = get_status(db, exc_info.value.run_id)
        assert status.status == "error"
        assert status.error == NO_RESUME_MESSAGE
        assert events(notifier) == ["run.error"]

    def test_malformed_resume_fails_run(self, session_factory, make_orchestrator, db):
        with session_factory() as session:
            session.add(User(id=USER_ID))
            session.add(Profile(user_id=USER_ID, resume={"skills": "python", "experience_years": "5+"}))
            session.add(Preferences(user_id=USER_ID, keywords=["python"]))
            session.commit()
        orchestrator = make_orchestrator(
            FakeDiscovery(JOBS), FakeScorer(SCORES), cooldown=CooldownGuard(window=timedelta(0))
        )

        with pytest.raises(PreconditionFailed) as exc_info:
            orchestrator.start(USER_ID, RunConfig())

        assert exc_info.value.reason == NO_RESUME_MESSAGE
        assert get_status(db, exc_info.value.run_id).status == "error"
        # A retry reports the same precondition instead of AlreadyProcessing
        with pytest.raises(PreconditionFailed, match=NO_RESUME_MESSAGE):
            orchestrator.start(USER_ID, RunConfig())

    def test_unexpected_error_during_start_ends_run(self, seeded_user, make_orchestrator, notifier, db):
        orchestrator = make_orchestrator(
            FakeDiscovery(JOBS), FakeScorer(SCORES), cooldown=CooldownGuard(window=timedelta(0))
        )
        load_inputs = orchestrator.load_inputs

        def broken_load_inputs(session, user_id, config):
            orchestrator.load_inputs = load_inputs
            raise RuntimeError("connection reset")

        orchestrator.load_inputs = broken_load_inputs

        with pytest.raises(RuntimeError, match="connection reset"):
            orchestrator.start(USER_ID, RunConfig())

        run = db.query(ProcessingRun).one()
        assert run.completed_at is not None
        assert run.error == "connection reset"
        assert events(notifier) == ["run.error"]

        run_id = orchestrator.start(USER_ID, RunConfig())
        assert get_status(db, run_id).status == "processing"

    def test_transient_cooldown_lookup_is_retried(self, seeded_user, make_orchestrator, db, sleeps):
        class FlakyCooldown(CooldownGuard):
            checks = 0

            def check(self, session, user_id, now=None):
                self.checks += 1
                if self.checks == 1:
                    raise OperationalError("SELECT", {}, Exception("database is locked"))
                return super().check(session, user_id, now)

        cooldown = FlakyCooldown()
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES), cooldown=cooldown)
        run_id = orchestrator.start(USER_ID, RunConfig())

        assert get_status(db, run_id).status == "processing"
        assert cooldown.checks == 2
        assert sleeps == [1.0]

    def test_missing_preferences_fails_run(self, session_factory, make_orchestrator):
        with session_factory() as session:
            session.add(User(id=USER_ID))
            session.add(Profile(user_id=USER_ID, resume={"skills": ["python"]}))
            session.add(Preferences(user_id=USER_ID, keywords=["  "]))
            session.commit()
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES))

        with pytest.raises(PreconditionFailed, match=NO_PREFERENCES_MESSAGE):
            orchestrator.start(USER_ID, RunConfig())

    def test_daily_limit_reached_fails_run(self, seeded_user, session_factory, make_orchestrator):
        with session_factory() as session:
            session.add(Application(user_id=USER_ID, job_ref="https://old/1", applied_at=utcnow()))
            session.commit()
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES))

        with pytest.raises(PreconditionFailed, match="Daily application limit of 1 reached"):
            orchestrator.start(USER_ID, RunConfig(max_applications_per_day=1))

    def test_concurrent_starts_leave_one_active_run(self, seeded_user, make_orchestrator, db):
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES))
        barrier = threading.Barrier(5)
        started, rejected, unexpected = [], [], []

        def attempt():
            barrier.wait()
            try:
                started.append(orchestrator.start(USER_ID, RunConfig()))
            except (AlreadyProcessing, RateLimited) as e:
                rejected.append(e)
            except Exception as e:
                unexpected.append(e)

        threads = [threading.Thread(target=attempt) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert unexpected == []
        assert len(started) == 1
        assert len(rejected) == 4
        active = db.query(ProcessingRun).filter(
            ProcessingRun.user_id == USER_ID, ProcessingRun.completed_at.is_(None)
        )
        assert active.count() == 1


class TestExecute:
    def test_successful_run(self, seeded_user, make_orchestrator, notifier, db):
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES))
        run_id = run_to_end(orchestrator, RunConfig(minimum_match_score=75))

        status = get_status(db, run_id)
        assert status.status == "complete"
        assert status.error is None
        assert status.jobs_found == 3
        assert status.jobs_processed == 2
        assert status.completed_at is not None

        applications = db.query(Application).order_by(Application.match_score.desc()).all()
        assert [a.match_score for a in applications] == [90, 80]
        assert events(notifier) == ["run.complete"]
        assert notifier.events[0][2]["applications"] == 2

    def test_respects_remaining_daily_quota(self, seeded_user, session_factory, make_orchestrator, db):
        with session_factory() as session:
            for n in range(3):
                session.add(Application(user_id=USER_ID, job_ref=f"https://old/{n}", applied_at=utcnow()))
            session.commit()
        jobs = [make_job(n) for n in range(1, 6)]
        scorer = FakeScorer({f"job-{n}": 90 for n in range(1, 6)})
        orchestrator = make_orchestrator(FakeDiscovery(jobs), scorer)

        run_to_end(orchestrator, RunConfig(max_applications_per_day=5))

        assert db.query(Application).filter(Application.user_id == USER_ID).count() == 5

    def test_blacklisted_company_is_skipped(self, seeded_user, make_orchestrator, db):
        jobs = [make_job(1, company="Acme"), make_job(3)]
        orchestrator = make_orchestrator(FakeDiscovery(jobs), FakeScorer(SCORES))

        run_to_end(orchestrator, RunConfig(blacklisted_companies=["ACME"]))

        assert [a.company for a in db.query(Application).all()] == ["Company 3"]

    def test_no_results_is_not_retried(self, seeded_user, make_orchestrator, notifier, db):
        discovery = FakeDiscovery(NoResults())
        orchestrator = make_orchestrator(discovery, FakeScorer(SCORES))
        run_id = run_to_end(orchestrator)

        status = get_status(db, run_id)
        assert status.status == "error"
        assert status.error == "No jobs found matching your preferences"
        assert status.progress == 0
        assert discovery.calls == 1
        assert events(notifier) == ["run.error"]

    def test_discovery_failure_is_retried(self, seeded_user, make_orchestrator, db, sleeps):
        discovery = FakeDiscovery(DiscoveryFailed("timeout"), JOBS)
        orchestrator = make_orchestrator(discovery, FakeScorer(SCORES))
        run_id = run_to_end(orchestrator)

        assert get_status(db, run_id).status == "complete"
        assert discovery.calls == 2
        assert sleeps == [1.0]

    def test_discovery_failure_exhausts_retries(self, seeded_user, make_orchestrator, db):
        discovery = FakeDiscovery(DiscoveryFailed("Failed to fetch job listings"))
        orchestrator = make_orchestrator(discovery, FakeScorer(SCORES))
        run_id = run_to_end(orchestrator)

        status = get_status(db, run_id)
        assert status.status == "error"
        assert status.error == "Failed to fetch job listings"
        assert discovery.calls == 3

    def test_unexpected_error_is_recorded(self, seeded_user, make_orchestrator, db):
        discovery = FakeDiscovery(RuntimeError("kaboom"))
        orchestrator = make_orchestrator(discovery, FakeScorer(SCORES))
        run_id = run_to_end(orchestrator)

        assert get_status(db, run_id).error == "kaboom"
        assert discovery.calls == 1

    def test_scoring_failures_skip_jobs(self, seeded_user, make_orchestrator, db):
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer({"job-1": 95}))
        run_id = run_to_end(orchestrator)

        status = get_status(db, run_id)
        assert status.status == "complete"
        assert status.jobs_processed == 1

    def test_all_scores_fail(self, seeded_user, make_orchestrator, db):
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer({}))
        run_id = run_to_end(orchestrator)

        status = get_status(db, run_id)
        assert status.status == "error"
        assert status.error == NO_VALID_MATCHES_MESSAGE
        assert status.jobs_found == 3

    def test_invalid_scoring_input_is_not_retried(self, seeded_user, make_orchestrator, db, sleeps):
        class UnscorableScorer(FakeScorer):
            def score(self, resume, job_description):
                self.calls.append(job_description)
                raise InvalidScoringInput("Resume has no skills to match")

        scorer = UnscorableScorer({})
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), scorer)
        run_id = run_to_end(orchestrator)

        assert get_status(db, run_id).error == NO_VALID_MATCHES_MESSAGE
        assert scorer.calls == ["job-1", "job-2", "job-3"]
        assert sleeps == []

    def test_no_job_meets_minimum(self, seeded_user, make_orchestrator, db):
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES))
        run_id = run_to_end(orchestrator, RunConfig(minimum_match_score=95))

        status = get_status(db, run_id)
        assert status.error == NO_QUALIFYING_JOBS_MESSAGE
        assert db.query(Application).count() == 0

    def test_notifier_failure_does_not_change_outcome(self, seeded_user, make_orchestrator, db):
        failing = RecordingNotifier(fail=True)
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES), notifier=failing)
        run_id = run_to_end(orchestrator)

        assert get_status(db, run_id).status == "complete"
        assert len(failing.events) == 3


class TestCancel:
    def test_cancel_during_scoring(self, seeded_user, make_orchestrator, notifier, db):
        run = {}

        def cancel_on_second_job(description):
            if description == "job-2":
                orchestrator.cancel(run["id"], user_id=USER_ID)

        scorer = FakeScorer(SCORES, before_score=cancel_on_second_job)
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), scorer)
        run["id"] = orchestrator.start(USER_ID, RunConfig())
        orchestrator.execute(run["id"], USER_ID, RunConfig())

        status = get_status(db, run["id"])
        assert status.status == "cancelled"
        assert status.error == CANCELLED_MESSAGE
        assert status.jobs_processed == 0
        assert scorer.calls == ["job-1", "job-2"]
        assert db.query(Application).count() == 0
        assert events(notifier) == ["run.cancelled"]

    def test_cancel_during_submission_stops_increments(self, seeded_user, make_orchestrator, backoff, db):
        run = {}

        class CancellingSubmitter(ApplicationSubmitter):
            def submit_one(self, db, user_id, job, config):
                application = super().submit_one(db, user_id, job, config)
                orchestrator.cancel(run["id"], user_id=USER_ID)
                return application

        orchestrator = make_orchestrator(
            FakeDiscovery(JOBS), FakeScorer(SCORES), submitter=CancellingSubmitter(backoff=backoff)
        )
        run["id"] = orchestrator.start(USER_ID, RunConfig())
        orchestrator.execute(run["id"], USER_ID, RunConfig())

        status = get_status(db, run["id"])
        assert status.status == "cancelled"
        assert status.jobs_processed == 0
        # The in-flight submission completes; nothing after it starts
        assert db.query(Application).count() == 1

    def test_cancelled_run_does_not_start_discovery(self, seeded_user, make_orchestrator, db):
        discovery = FakeDiscovery(JOBS)
        orchestrator = make_orchestrator(discovery, FakeScorer(SCORES))
        run_id = orchestrator.start(USER_ID, RunConfig())
        orchestrator.cancel(run_id)
        orchestrator.execute(run_id, USER_ID, RunConfig())

        assert discovery.calls == 0
        assert get_status(db, run_id).status == "cancelled"

    def test_cancel_finished_run(self, seeded_user, make_orchestrator):
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES))
        run_id = run_to_end(orchestrator)

        with pytest.raises(NotProcessing):
            orchestrator.cancel(run_id)

    def test_cancel_unknown_run(self, make_orchestrator):
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES))
        with pytest.raises(RunNotFound):
            orchestrator.cancel("missing")

    def test_cancel_other_users_run(self, seeded_user, make_orchestrator):
        orchestrator = make_orchestrator(FakeDiscovery(JOBS), FakeScorer(SCORES))
        run_id = orchestrator.start(USER_ID, RunConfig())
        with pytest.raises(RunNotFound):
            orchestrator.cancel(run_id, user_id="intruder")

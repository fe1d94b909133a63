"""Shared fixtures: SQLite database per test, seeded user, pipeline fakes."""

from collections.abc import Callable

import pytest
from sqlalchemy.orm import sessionmaker

from autoapply.db import Preferences, Profile, User
from autoapply.db.base import create_db_engine, init_db
from autoapply.pipeline.backoff import BackoffExecutor, BackoffOptions
from autoapply.pipeline.errors import ScoringFailed
from autoapply.pipeline.models import CandidateJob, JobPreferences, MatchResult, ResumeProfile
from autoapply.pipeline.orchestrator import RunOrchestrator
from autoapply.tools.discovery import JobDiscoveryClient
from autoapply.tools.match_scorer import MatchScorer
from autoapply.tools.notifier import Notifier

USER_ID = "user-1"

RESUME = {
    "skills": ["Python", "FastAPI", "PostgreSQL"],
    "titles": ["Backend Engineer"],
    "experience_years": 5,
    "summary": "Backend engineer building APIs.",
}


def make_job(n: int, company: str | None = None, score: float | None = None) -> CandidateJob:
    return CandidateJob(
        title=f"Engineer {n}",
        company=company or f"Company {n}",
        description=f"job-{n}",
        source_url=f"https://jobs.example.com/{n}",
        match_score=score,
    )


class FakeDiscovery(JobDiscoveryClient):
    """Returns queued results in order; exceptions in the queue are raised."""

    source_name = "fake"

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def discover(self, preferences: JobPreferences) -> list[CandidateJob]:
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return list(result)


class FakeScorer(MatchScorer):
    """Scores by job description ("job-N"); missing descriptions fail."""

    def __init__(self, scores: dict[str, float], before_score: Callable[[str], None] | None = None):
        self.scores = scores
        self.before_score = before_score
        self.calls: list[str] = []

    def score(self, resume: ResumeProfile, job_description: str) -> MatchResult:
        self.calls.append(job_description)
        if self.before_score:
            self.before_score(job_description)
        if job_description not in self.scores:
            raise ScoringFailed(f"no score for {job_description}")
        return MatchResult(score=self.scores[job_description], reasons=["fake"])


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False):
        self.events: list[tuple[str, str, dict]] = []
        self.fail = fail

    def notify(self, user_id: str, event: str, payload: dict):
        self.events.append((user_id, event, payload))
        if self.fail:
            raise RuntimeError("webhook down")


@pytest.fixture
def session_factory(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'autoapply.db'}")
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded_user(session_factory):
    """User with a parsed resume and keyword preferences."""
    with session_factory() as session:
        session.add(User(id=USER_ID))
        session.add(Profile(user_id=USER_ID, resume=RESUME, resume_text="..."))
        session.add(Preferences(user_id=USER_ID, keywords=["python"], location="Berlin", remote=True))
        session.commit()
    return USER_ID


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def backoff(sleeps):
    """Executor that records delays instead of sleeping."""
    return BackoffExecutor(sleep=sleeps.append, rand=lambda: 1.0)


@pytest.fixture
def backoff_options():
    return BackoffOptions(max_retries=3, base_delay=1.0, max_delay=5.0)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_orchestrator(session_factory, backoff, backoff_options, notifier):
    def factory(discovery: JobDiscoveryClient, scorer: MatchScorer, **kwargs) -> RunOrchestrator:
        return RunOrchestrator(
            session_factory=session_factory,
            discovery=discovery,
            scorer=scorer,
            notifier=kwargs.pop("notifier", notifier),
            backoff=backoff,
            backoff_options=backoff_options,
            **kwargs,
        )

    return factory

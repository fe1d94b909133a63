"""Tests for run status projection."""

from datetime import UTC, datetime, timedelta

import pytest

from autoapply.db import ProcessingRun
from autoapply.pipeline.errors import CANCELLED_MESSAGE, RunNotFound
from autoapply.pipeline.status import build_status, compute_progress, estimate_end_time, get_status

START = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


def make_run(**kwargs) -> ProcessingRun:
    values = {"id": "run-1", "user_id": "u1", "started_at": START, "jobs_found": 0, "jobs_processed": 0}
    values.update(kwargs)
    return ProcessingRun(**values)


class TestProgress:
    def test_ratio_of_processed_to_found(self):
        assert compute_progress(10, 4, None) == 40

    def test_placeholder_while_discovering(self):
        assert compute_progress(0, 0, None) == 10

    def test_zero_when_failed_before_discovery(self):
        assert compute_progress(0, 0, "No jobs found matching your preferences") == 0

    def test_rounds(self):
        assert compute_progress(3, 1, None) == 33


class TestEstimatedEndTime:
    def test_none_before_first_job(self):
        assert estimate_end_time(START, 10, 0, START + timedelta(minutes=1)) is None

    def test_linear_extrapolation(self):
        now = START + timedelta(minutes=4)
        # 1 minute per job, 6 jobs left
        assert estimate_end_time(START, 10, 4, now) == now + timedelta(minutes=6)


class TestBuildStatus:
    def test_processing(self):
        status = build_status(make_run(jobs_found=10, jobs_processed=4), now=START + timedelta(minutes=4))
        assert status.status == "processing"
        assert status.progress == 40
        assert status.estimated_end_time == START + timedelta(minutes=10)
        assert status.error is None

    def test_complete_has_no_estimate(self):
        run = make_run(jobs_found=2, jobs_processed=2, completed_at=START + timedelta(minutes=1))
        status = build_status(run, now=START + timedelta(minutes=2))
        assert status.status == "complete"
        assert status.progress == 100
        assert status.estimated_end_time is None

    def test_cancelled(self):
        run = make_run(
            jobs_found=5,
            jobs_processed=1,
            completed_at=START + timedelta(minutes=1),
            cancelled=True,
            error=CANCELLED_MESSAGE,
        )
        status = build_status(run)
        assert status.status == "cancelled"
        assert status.error == CANCELLED_MESSAGE

    def test_error(self):
        run = make_run(completed_at=START, error="No jobs found matching your preferences")
        status = build_status(run)
        assert status.status == "error"
        assert status.progress == 0


class TestGetStatus:
    def test_reads_persisted_run(self, db):
        db.add(make_run(jobs_found=10, jobs_processed=4))
        db.commit()

        status = get_status(db, "run-1", now=START + timedelta(minutes=4))
        assert status.run_id == "run-1"
        assert status.progress == 40
        assert status.started_at == START

    def test_unknown_run(self, db):
        with pytest.raises(RunNotFound):
            get_status(db, "missing")

    def test_other_users_run_is_not_found(self, db):
        db.add(make_run())
        db.commit()

        with pytest.raises(RunNotFound):
            get_status(db, "run-1", user_id="someone-else")

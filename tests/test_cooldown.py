"""Tests for the per-user cooldown guard."""

from datetime import UTC, datetime, timedelta

import pytest

from autoapply.pipeline.cooldown import CooldownGuard
from autoapply.pipeline.errors import RateLimited

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


class TestCooldownGuard:
    def test_first_run_is_allowed(self, db):
        guard = CooldownGuard()
        assert guard.next_allowed_time(db, "u1", now=NOW) is None
        guard.check(db, "u1", now=NOW)

    def test_default_window_is_five_minutes(self):
        assert CooldownGuard().window == timedelta(minutes=5)

    def test_rejects_inside_window(self, db):
        guard = CooldownGuard()
        guard.record(db, "u1", NOW)
        db.commit()

        with pytest.raises(RateLimited) as exc_info:
            guard.check(db, "u1", now=NOW + timedelta(minutes=2))
        assert exc_info.value.retry_after == timedelta(minutes=3)
        assert exc_info.value.retry_after <= timedelta(minutes=5)

    def test_allows_after_window(self, db):
        guard = CooldownGuard()
        guard.record(db, "u1", NOW)
        db.commit()

        guard.check(db, "u1", now=NOW + timedelta(minutes=5))
        assert guard.next_allowed_time(db, "u1", now=NOW + timedelta(minutes=6)) is None

    def test_keyed_per_user(self, db):
        guard = CooldownGuard()
        guard.record(db, "u1", NOW)
        db.commit()

        guard.check(db, "u2", now=NOW)

    def test_record_overwrites_previous_start(self, db):
        guard = CooldownGuard(window=timedelta(minutes=1))
        guard.record(db, "u1", NOW)
        db.commit()
        guard.record(db, "u1", NOW + timedelta(minutes=10))
        db.commit()

        assert guard.next_allowed_time(db, "u1", now=NOW + timedelta(minutes=10)) == NOW + timedelta(minutes=11)

    def test_survives_new_session(self, session_factory):
        guard = CooldownGuard()
        with session_factory() as session:
            guard.record(session, "u1", NOW)
            session.commit()

        with session_factory() as session:
            with pytest.raises(RateLimited):
                CooldownGuard().check(session, "u1", now=NOW + timedelta(seconds=30))

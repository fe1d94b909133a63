"""
Cooldown guard.

Enforces a minimum interval between run starts for each user. The last start
is persisted in `run_cooldowns`, so restarts and other instances see it.
"""

from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from autoapply.config import settings
from autoapply.db import RunCooldown
from autoapply.pipeline.errors import RateLimited
from autoapply.utils.clock import as_utc, utcnow


class CooldownGuard:
    """Per-user start-interval check. Rejects, never queues."""

    def __init__(self, window: timedelta | None = None):
        self.window = window if window is not None else timedelta(minutes=settings.cooldown_minutes)

    def next_allowed_time(self, db: Session, user_id: str, now: datetime | None = None) -> datetime | None:
        """When the user may start again, or None if allowed now."""
        now = now or utcnow()
        cooldown = db.get(RunCooldown, user_id)
        if cooldown is None:
            return None

        allowed_at = as_utc(cooldown.last_run_start) + self.window
        if now >= allowed_at:
            return None
        return allowed_at

    def check(self, db: Session, user_id: str, now: datetime | None = None):
        """Raise RateLimited with the remaining wait if inside the window."""
        now = now or utcnow()
        allowed_at = self.next_allowed_time(db, user_id, now=now)
        if allowed_at is not None:
            raise RateLimited(retry_after=allowed_at - now)

    def record(self, db: Session, user_id: str, started_at: datetime | None = None):
        """Record a run start. Caller commits."""
        started_at = started_at or utcnow()
        cooldown = db.get(RunCooldown, user_id)
        if cooldown is None:
            db.add(RunCooldown(user_id=user_id, last_run_start=started_at))
        else:
            cooldown.last_run_start = started_at

"""Shared FastAPI dependencies."""

from sqlalchemy.orm import Session

from autoapply.db import User
from autoapply.db.base import get_session_factory
from autoapply.pipeline.orchestrator import RunOrchestrator
from autoapply.tools.discovery import create_discovery_client
from autoapply.tools.match_scorer import create_match_scorer
from autoapply.tools.notifier import create_notifier

# Created lazily so the app starts without API keys configured
_orchestrator: RunOrchestrator | None = None


def get_orchestrator() -> RunOrchestrator:
    """FastAPI dependency for the process-wide orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = RunOrchestrator(
            session_factory=get_session_factory(),
            discovery=create_discovery_client(),
            scorer=create_match_scorer(),
            notifier=create_notifier(),
        )
    return _orchestrator


def ensure_user(db: Session, user_id: str) -> User:
    """Get or create the user row that owns per-user settings."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        user = User(id=user_id)
        db.add(user)
        db.flush()
    return user

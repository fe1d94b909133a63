"""Database package."""

from autoapply.db.base import Base, get_db, init_db
from autoapply.db.tables import (
    Application,
    AutomationConfig,
    FollowUp,
    Preferences,
    ProcessingRun,
    Profile,
    RunCooldown,
    User,
)

__all__ = [
    "Base",
    "get_db",
    "init_db",
    "User",
    "Profile",
    "Preferences",
    "AutomationConfig",
    "ProcessingRun",
    "RunCooldown",
    "Application",
    "FollowUp",
]

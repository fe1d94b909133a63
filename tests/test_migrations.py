"""Alembic migration checks against a throwaway SQLite database."""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

from autoapply.config import settings

SCRIPT_LOCATION = Path(__file__).resolve().parent.parent / "autoapply" / "alembic"


@pytest.fixture
def migrated_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.setattr(settings, "database_url", url)
    config = Config()
    config.set_main_option("script_location", str(SCRIPT_LOCATION))
    command.upgrade(config, "head")
    yield url
    command.downgrade(config, "base")


def test_upgrade_creates_tables(migrated_url):
    inspector = inspect(create_engine(migrated_url))
    assert {
        "users",
        "profiles",
        "preferences",
        "automation_configs",
        "processing_runs",
        "run_cooldowns",
        "applications",
        "follow_ups",
    } <= set(inspector.get_table_names())

    indexes = {index["name"]: index for index in inspector.get_indexes("processing_runs")}
    assert indexes["uq_processing_runs_active_user"]["unique"]


def test_one_active_run_per_user(migrated_url):
    engine = create_engine(migrated_url)
    insert = text(
        "INSERT INTO processing_runs (id, user_id, started_at, completed_at) "
        "VALUES (:id, 'u1', '2026-01-01 00:00:00', :completed_at)"
    )
    with engine.begin() as conn:
        conn.execute(insert, {"id": "r1", "completed_at": "2026-01-01 00:01:00"})
        conn.execute(insert, {"id": "r2", "completed_at": None})

    with pytest.raises(IntegrityError):
        with engine.begin() as conn:
            conn.execute(insert, {"id": "r3", "completed_at": None})
    engine.dispose()

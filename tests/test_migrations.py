"""Tests for the Alembic migration shipped with the service."""

import sqlite3
from contextlib import closing
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config

import review_service

ALEMBIC_INI = Path(review_service.__file__).resolve().parent / "alembic.ini"


@pytest.fixture
def alembic_config(tmp_path, monkeypatch):
    db_path = tmp_path / "migrated.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")
    return Config(str(ALEMBIC_INI)), db_path


def _schema(db_path: Path) -> dict:
    with closing(sqlite3.connect(db_path)) as conn:
        rows = conn.execute(
            "SELECT name, sql FROM sqlite_master WHERE type = 'table'"
        ).fetchall()
    return dict(rows)


def test_upgrade_creates_constrained_tables(alembic_config):
    cfg, db_path = alembic_config

    command.upgrade(cfg, "head")

    schema = _schema(db_path)
    assert {"users", "reviews", "alembic_version"} <= set(schema)
    assert "uq_users_username" in schema["users"]
    assert "uq_users_email" in schema["users"]
    assert "ck_reviews_rating_range" in schema["reviews"]


def test_downgrade_drops_tables(alembic_config):
    cfg, db_path = alembic_config

    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    assert set(_schema(db_path)) == {"alembic_version"}

"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
Every table is emptied after each test; services see only the rows the
test itself inserted.
"""
import os

SQLITE_URL = "sqlite:///./test_brain.db"
os.environ.setdefault("DATABASE_URL", SQLITE_URL)

from datetime import datetime, timedelta, timezone  # noqa: E402
from itertools import count  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

import brain.models  # noqa: E402,F401
from brain.db.base import Base, get_db  # noqa: E402
from brain.main import app  # noqa: E402
from brain.models.decision import Decision  # noqa: E402
from brain.models.event import Event  # noqa: E402
from brain.models.health import HealthScore  # noqa: E402
from brain.models.pattern_analysis import PatternAnalysis  # noqa: E402
from brain.models.project import Project  # noqa: E402

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Wednesday; its ISO week runs 2026-03-09 .. 2026-03-15
NOW = datetime(2026, 3, 11, 12, 0, tzinfo=timezone.utc)

_slugs = count(1)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def now():
    return NOW


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_project(db):
    def _make(**fields) -> Project:
        n = next(_slugs)
        values = {
            "name": f"Projet {n}",
            "slug": f"projet-{n}",
            "completion_percentage": 40,
            "cash_impact_score": 5,
            "risk_level": "medium",
            "main_blocker": None,
            "status": "active",
            "created_at": NOW - timedelta(days=90),
        }
        values.update(fields)
        project = Project(**values)
        db.add(project)
        db.commit()
        db.refresh(project)
        return project
    return _make


@pytest.fixture()
def make_pattern(db):
    def _make(project_id: int, **fields) -> PatternAnalysis:
        values = {
            "analysis_date": NOW,
            "velocity_7d": 7.0,
            "velocity_30d": 30.0,
            "velocity_trend": "stable",
            "blockers_count": 0,
            "blockers_recurring": [],
            "decisions_velocity": 2,
            "last_activity_days": 2,
            "momentum_score": 50.0,
        }
        values.update(fields)
        row = PatternAnalysis(project_id=project_id, **values)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    return _make


@pytest.fixture()
def make_health(db):
    def _make(project_id: int, overall: float, days_ago: int = 0, **fields) -> HealthScore:
        values = {
            "score_date": (NOW - timedelta(days=days_ago)).date(),
            "overall_score": overall,
            "completion_score": 40,
            "velocity_score": 70,
            "risk_score": 60,
            "cash_impact_score": 50,
            "decision_quality_score": 50,
            "momentum_score": 50,
            "grade": "warning",
            "factors_breakdown": {},
        }
        values.update(fields)
        row = HealthScore(project_id=project_id, **values)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    return _make


@pytest.fixture()
def make_decision(db):
    def _make(project_id, days_ago: float = 1, **fields) -> Decision:
        values = {
            "title": "Choisir le prestataire",
            "rationale": None,
            "status": "pending",
            "created_at": NOW - timedelta(days=days_ago),
        }
        values.update(fields)
        row = Decision(project_id=project_id, **values)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    return _make


@pytest.fixture()
def make_event(db):
    def _make(project_id: int, days_ago: float = 1, description: str = "update") -> Event:
        row = Event(
            entity_type="project",
            entity_id=project_id,
            event_type="update",
            description=description,
            created_at=NOW - timedelta(days=days_ago),
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    return _make

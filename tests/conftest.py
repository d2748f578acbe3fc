"""
Shared pytest fixtures for the Portfolio Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / make_project / make_entry: model factories
"""

from datetime import date

import pytest

from portfolio_tracker import create_app
from portfolio_tracker.models import db as _db
from portfolio_tracker.models.project import Project, ProjectHealthHistory
from portfolio_tracker.models.time_entry import TimeEntry
from portfolio_tracker.models.user import User


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield _db.session
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    def _make(first_name="Ada", last_name="Lovelace", tier=2, is_active=True, email=None):
        user = User(
            first_name=first_name, last_name=last_name,
            tier=tier, is_active=is_active, email=email,
        )
        _db.session.add(user)
        _db.session.commit()
        return user
    return _make


@pytest.fixture()
def make_project():
    def _make(project_name="Apollo", *, status="in_progress", health="green",
              arr_value=None, close_date=None, is_closed=False,
              tier1_owner_id=None, tier2_owner_id=None, tier3_owners=None):
        project = Project(
            project_name=project_name, status=status, health=health,
            arr_value=arr_value, close_date=close_date, is_closed=is_closed,
            tier1_owner_id=tier1_owner_id, tier2_owner_id=tier2_owner_id,
            tier3_owners=tier3_owners,
        )
        _db.session.add(project)
        _db.session.flush()
        _db.session.add(ProjectHealthHistory(
            project_id=project.id, health=health, change_reason="Project created",
        ))
        _db.session.commit()
        return project
    return _make


@pytest.fixture()
def make_entry():
    def _make(user, entry_date, hours, description=None):
        if isinstance(entry_date, str):
            entry_date = date.fromisoformat(entry_date)
        entry = TimeEntry(
            user_id=user.id, entry_date=entry_date, hours=hours, description=description,
        )
        _db.session.add(entry)
        _db.session.commit()
        return entry
    return _make

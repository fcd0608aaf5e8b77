"""
Pytest fixtures for CricTally testing.
Provides reusable test fixtures for the app, clients, users and live matches.
"""

import os
import sys
from datetime import datetime, timezone

import pytest
import yaml
from flask import g

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app import create_app
from database import db
from database.models import User
from engine.innings_manager import Openers, start_match
from engine.match_state import MatchStatus


# ==================== Application Fixtures ====================

@pytest.fixture(scope="function")
def test_config(tmp_path):
    """Create a temporary config file for testing."""
    config_path = tmp_path / "config.yaml"
    config_data = {
        "app": {
            "secret_key": "test-secret-key-for-testing-only-12345",
        },
        "database": {
            "uri": "sqlite:///:memory:",
        },
        "live_cache": {
            "ttl_seconds": 3600,
        },
        "logging": {
            "level": "DEBUG",
            "file": str(tmp_path / "logs" / "test.log"),
        },
        "scoring": {
            "max_runs_per_ball": 7,
        },
    }

    config_path.write_text(yaml.safe_dump(config_data, sort_keys=False), encoding="utf-8")
    return config_path


@pytest.fixture(scope="function")
def app(test_config, tmp_path, monkeypatch):
    """Create and configure a test Flask application instance."""
    monkeypatch.setenv("CRICTALLY_CONFIG_PATH", str(test_config))
    test_db_file = tmp_path / "pytest_app.db"
    monkeypatch.setenv("CRICTALLY_DB_URI", f"sqlite:///{test_db_file.as_posix()}")

    app = create_app()
    app.config.update({
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
        "LOGIN_DISABLED": False,
    })

    @app.before_request
    def _reset_cached_login_user():
        # The fixture's outer app context is shared by every request, so drop
        # Flask-Login's per-request user cache as a fresh context would.
        g.pop("_login_user", None)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture(scope="function")
def live_cache(app):
    return app.extensions["live_cache"]


# ==================== User Fixtures ====================

def _make_user(user_id, name):
    user = User(
        id=user_id,
        email=user_id,
        display_name=name,
        created_at=datetime.now(timezone.utc),
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope="function")
def regular_user(app):
    """Create the scorer who owns test matches."""
    return _make_user("scorer@example.com", "Test Scorer")


@pytest.fixture(scope="function")
def other_user(app):
    """Create a second scorer who owns nothing."""
    return _make_user("other@example.com", "Other Scorer")


# ==================== Authentication Helpers ====================

def login_as(client, user_id):
    """Mark the test client's session as logged in (Flask-Login session key)."""
    with client.session_transaction() as sess:
        sess["_user_id"] = user_id
        sess["_fresh"] = True


@pytest.fixture(scope="function")
def authenticated_client(client, regular_user):
    """Return a client logged in as the regular scorer."""
    login_as(client, regular_user.id)
    return client


@pytest.fixture(scope="function")
def other_client(app, other_user):
    """A separate client logged in as another scorer."""
    other = app.test_client()
    login_as(other, other_user.id)
    return other


# ==================== Match Fixtures ====================

LIONS = ["L1", "L2", "L3", "L4", "L5"]
TIGERS = ["T1", "T2", "T3", "T4", "T5"]


def start_payload(**overrides):
    payload = {
        "tossWinner": "Lions",
        "tossDecision": "BAT",
        "squads": {"Lions": list(LIONS), "Tigers": list(TIGERS)},
        "openingBatsman1": "L1",
        "openingBatsman2": "L2",
        "openingBowler": "T1",
    }
    payload.update(overrides)
    return payload


@pytest.fixture(scope="function")
def created_match(authenticated_client):
    """A CREATED match owned by the regular scorer; returns its id."""
    response = authenticated_client.post(
        "/api/matches/create",
        json={"teamAName": "Lions", "teamBName": "Tigers", "overs": 2},
    )
    assert response.status_code == 201
    return response.get_json()["match"]["id"]


@pytest.fixture(scope="function")
def live_match(authenticated_client, created_match):
    """A LIVE match with Lions batting L1/L2 against T1; returns its id."""
    response = authenticated_client.post(f"/api/matches/{created_match}/start", json=start_payload())
    assert response.status_code == 200
    return created_match


class FakeRecord:
    """Stand-in for a Match row when exercising the engine directly."""

    def __init__(self, match_id="m-1", status=MatchStatus.CREATED.value, overs=2,
                 team_a_name="Lions", team_b_name="Tigers"):
        self.id = match_id
        self.status = status
        self.overs = overs
        self.team_a_name = team_a_name
        self.team_b_name = team_b_name


def make_state(overs=2, lions=None, tigers=None, toss_decision="BAT", openers=("L1", "L2", "T1")):
    """Build a fresh innings-1 MatchState without touching the database."""
    squads = {"Lions": list(lions or LIONS), "Tigers": list(tigers or TIGERS)}
    return start_match(FakeRecord(overs=overs), "Lions", toss_decision, Openers(*openers), squads)


# ==================== Pytest Configuration ====================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )

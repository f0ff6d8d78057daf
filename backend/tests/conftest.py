"""Shared fixtures for cycle planner tests."""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from services.models import (
    Area, Cycle, DomainSnapshot, Objective, Person, RoadmapBet, Stage, Team, WorkItem,
)
from services.settings import OrganisationSettings


@pytest.fixture
def mock_jira_credentials():
    """Mock Jira credentials for testing."""
    return {
        "server": "https://test.atlassian.net",
        "email": "test@example.com",
        "token": "test-token-123"
    }


@pytest.fixture
def settings():
    """Settings for a tracker-backed adapter."""
    return OrganisationSettings(
        jira_host="https://test.atlassian.net",
        jira_email="test@example.com",
        jira_token="test-token-123",
        board_id=7,
    )


@pytest.fixture
def sample_sprint():
    """Sample sprint data."""
    return {
        "id": 100,
        "name": "Sprint 1",
        "state": "closed",
        "startDate": "2024-01-01T00:00:00.000Z",
        "endDate": "2024-01-14T00:00:00.000Z",
        "goal": "Complete feature X"
    }


@pytest.fixture
def sample_sprints():
    """One closed, one active and one future sprint."""
    return [
        {
            "id": 100,
            "name": "Sprint 1",
            "state": "closed",
            "startDate": "2024-01-01T00:00:00.000Z",
            "endDate": "2024-01-14T00:00:00.000Z"
        },
        {
            "id": 101,
            "name": "Sprint 2",
            "state": "active",
            "startDate": "2024-01-15T09:30:00.000+0000",
            "endDate": "2024-01-28T17:00:00.000+0000"
        },
        {
            "id": 102,
            "name": "Sprint 3",
            "state": "future",
            "startDate": "2024-01-29T00:00:00.000Z",
            "endDate": "2024-02-11T00:00:00.000Z"
        }
    ]


@pytest.fixture
def sample_roadmap_issue():
    """Roadmap Item with area and objective labels."""
    return {
        "key": "ROAD-1",
        "fields": {
            "summary": "[Q1] Faster checkout [BIG]",
            "labels": ["area:platform", "objective:compliance"],
            "assignee": None,
        }
    }


@pytest.fixture
def sample_cycle_item():
    """Cycle Item fully labelled, estimated and scheduled."""
    return {
        "key": "PROJ-123",
        "fields": {
            "summary": "Checkout API (S1)",
            "labels": ["area:platform", "team:platform-backend"],
            "status": {"id": "3", "name": "In Progress"},
            "assignee": {"accountId": "acc-1", "displayName": "Jane Smith"},
            "customfield_10002": 5.0,
            "parent": {"key": "ROAD-1"},
            "customfield_10020": [{"id": 101, "name": "Sprint 2"}],
            "created": "2024-01-02T10:00:00.000Z",
            "updated": "2024-01-10T15:30:00.000Z",
        }
    }


@pytest.fixture
def sample_unlabelled_cycle_item():
    """Cycle Item with no labels, assignee, estimate, parent or sprint."""
    return {
        "key": "PROJ-200",
        "fields": {
            "summary": "Mystery work",
            "labels": [],
            "status": {"id": "1", "name": "To Do"},
            "assignee": None,
        }
    }


@pytest.fixture
def sample_epic():
    """Epic as returned for the organisation adapter."""
    return {
        "key": "PRODUCT-9",
        "fields": {
            "summary": "Security hardening (s2)",
            "labels": [],
            "status": {"id": "10", "name": "In Technical Scoping"},
            "assignee": {"accountId": "acc-7", "displayName": "Alice Brown"},
            "customfield_10021": {"id": 101, "name": "Sprint 2"},
        }
    }


def _make_item(key, area, status, effort, bet_id="BET-1", team=None, stage="s1",
              assignee="acc-1", cycle_id="1"):
    return WorkItem(
        id=key,
        ticket_id=key,
        name=key,
        roadmap_bet_id=bet_id,
        effort=effort,
        area_ids=(area,),
        teams=(team or f"{area}-team",),
        status=status,
        stage=stage,
        assignee=Person(assignee, assignee),
        cycle_id=cycle_id,
    )


@pytest.fixture
def make_item():
    """Factory for WorkItems in a given area, status and effort."""
    return _make_item


@pytest.fixture
def three_item_snapshot():
    """One bet with work items in areas A, A, B and statuses done, inprogress, todo."""
    bet = RoadmapBet(
        id="BET-1",
        name="Checkout",
        area=Area("A", "Area A"),
        owning_team=Team("A-team", "Team A"),
        objective_id="obj-1",
        team_display="A-team, B-team",
        area_display="A, B",
    )
    items = (
        _make_item("W-1", "A", "done", 3),
        _make_item("W-2", "A", "inprogress", 2, stage="s2", assignee="acc-2"),
        _make_item("W-3", "B", "todo", 5, cycle_id="2"),
    )
    return DomainSnapshot(
        cycles=(
            Cycle("1", "Cycle 1", "2024-01-01", "2024-02-29", "2024-02-29", "active"),
            Cycle("2", "Cycle 2", "2024-03-01", "2024-04-30", "2024-04-30", "future"),
        ),
        roadmap_bets=(bet,),
        work_items=items,
        areas=(Area("A", "Area A", (Team("A-team", "Team A"),)),
               Area("B", "Area B", (Team("B-team", "Team B"),))),
        objectives=(Objective("obj-1", "Objective 1"),),
        teams=(Team("A-team", "Team A"), Team("B-team", "Team B")),
        assignees=(Person("acc-1", "acc-1"), Person("acc-2", "acc-2")),
        stages=(Stage("s1", "Stage 1"), Stage("s2", "Stage 2")),
    )


@pytest.fixture
def app():
    """Create test Flask app backed by fake data."""
    from app import create_app
    app = create_app("testing")
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()

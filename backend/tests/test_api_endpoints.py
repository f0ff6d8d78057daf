"""Tests for API endpoints."""

import pytest
from unittest.mock import Mock
import json
from dataclasses import replace

from app import create_app
from services.models import Objective
from services.jira_client import TrackerError
from services.result import Result


class TestHealth:
    """Test health endpoint."""

    def test_health(self, client):
        """Should report ok and the configured source."""
        response = client.get("/health")
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["status"] == "ok"
        assert data["source"] == "fake"


class TestCycleData:
    """Test snapshot endpoint."""

    def test_snapshot_shape(self, client):
        """Should return every collection of the snapshot."""
        response = client.get("/api/cycle-data")
        assert response.status_code == 200
        data = json.loads(response.data)["data"]
        for key in ("cycles", "roadmapBets", "workItems", "areas",
                    "objectives", "teams", "assignees", "stages"):
            assert key in data
        assert len(data["cycles"]) == 4
        assert data["assignees"][0]["id"] == "all"

    def test_upstream_failure(self, app, client):
        """Adapter failures should return 502 with an error message."""
        adapter = Mock()
        adapter.fetch_snapshot.return_value = Result.fail(TrackerError("Jira is down"))
        app.extensions["cycle_data_adapter"] = adapter

        response = client.get("/api/cycle-data")

        assert response.status_code == 502
        data = json.loads(response.data)
        assert "Jira is down" in data["error"]


class TestProjection:
    """Test filtered projection endpoints."""

    def test_area_filter(self, client):
        """Every returned work item belongs to the requested area."""
        response = client.get("/api/cycle-data/projection?area=platform")
        assert response.status_code == 200
        data = json.loads(response.data)["data"]
        assert data["criteria"]["area"] == "platform"
        for bet in data["roadmapBets"]:
            assert bet["workItems"]
            assert bet["areaDisplay"] == "platform"
            for item in bet["workItems"]:
                assert "platform" in item["areaIds"]

    def test_list_params(self, client):
        """Comma-separated params become criteria lists."""
        response = client.get("/api/cycle-data/projection?stages=s0,s1&assignees=all")
        data = json.loads(response.data)["data"]
        assert data["criteria"]["stageIds"] == ["s0", "s1"]
        assert data["criteria"]["assigneeIds"] == ["all"]
        for bet in data["roadmapBets"]:
            assert all(item["stage"] in ("s0", "s1") for item in bet["workItems"])

    def test_no_match_is_empty_not_error(self, client):
        """Filters that match nothing give an empty projection."""
        response = client.get("/api/cycle-data/projection?area=nowhere")
        assert response.status_code == 200
        data = json.loads(response.data)["data"]
        assert data["roadmapBets"] == []
        assert data["totals"] == {"roadmapBets": 0, "workItems": 0}

    def test_configured_unassigned_objective(self, app, client):
        """Bets without an objective are found under the configured default id."""
        settings = app.extensions["organisation_settings"]
        app.extensions["organisation_settings"] = replace(
            settings,
            defaults=replace(settings.defaults, objective=Objective("no-objective", "None")),
        )

        response = client.get("/api/cycle-data/projection?objectives=no-objective")

        data = json.loads(response.data)["data"]
        assert data["roadmapBets"]
        assert all(bet["objectiveId"] is None for bet in data["roadmapBets"])
        assert [o["id"] for o in data["objectives"]] == ["no-objective"]

    def test_area_slices(self, client):
        """Should include the overview slice."""
        response = client.get("/api/cycle-data/areas")
        assert response.status_code == 200
        data = json.loads(response.data)["data"]
        assert "overview" in data
        assert data["overview"]["criteria"]["area"] is None


class TestOverview:
    """Test the cycle overview endpoint."""

    def test_default_cycle_is_active(self, client):
        """The active fake cycle is selected by default."""
        response = client.get("/api/cycle-data/overview")
        assert response.status_code == 200
        data = json.loads(response.data)["data"]
        assert data["cycle"]["state"] == "active"
        assert "metrics" in data["progress"]
        assert "currentDayPercentage" in data["progress"]["metadata"]

    def test_explicit_cycle(self, client):
        """The cycle query param picks the cycle."""
        response = client.get("/api/cycle-data/overview?cycle=4")
        data = json.loads(response.data)["data"]
        assert data["cycle"]["id"] == "4"
        for bet in data["projection"]["roadmapBets"]:
            assert all(item["cycleId"] == "4" for item in bet["workItems"])

    def test_no_cycles(self, app, client):
        """Snapshots without cycles give 404."""
        from services.models import DomainSnapshot
        adapter = Mock()
        adapter.fetch_snapshot.return_value = Result.ok(DomainSnapshot())
        app.extensions["cycle_data_adapter"] = adapter

        response = client.get("/api/cycle-data/overview")
        assert response.status_code == 404


class TestCreateApp:
    """Test application factory."""

    def test_invalid_jira_config_fails_fast(self):
        """Should refuse to start without a usable adapter."""
        with pytest.raises(RuntimeError, match="JIRA_HOST"):
            create_app("testing", overrides={
                "CYCLE_DATA_SOURCE": "default",
                "JIRA_HOST": "",
            })

    def test_adapter_stored_on_app(self, app):
        """The adapter is built once and kept on the app."""
        assert app.extensions["cycle_data_adapter"].kind.value == "fake"

"""Tests for organisation settings loading."""

import json

from services.models import Objective
from services.settings import load_settings


class TestLoadSettings:
    """Test building settings from config values and the organisation file."""

    def test_config_values(self):
        """Connection details come from the config mapping."""
        settings = load_settings({
            "CYCLE_DATA_SOURCE": "Organisation",
            "JIRA_HOST": "https://jira.test",
            "JIRA_EMAIL": "a@b.c",
            "JIRA_TOKEN": "t",
            "JIRA_BOARD_ID": "12",
        })
        assert settings.source == "organisation"
        assert settings.board_id == 12
        assert settings.jira_host == "https://jira.test"

    def test_defaults_without_file(self):
        """Built-in catalogue is used when no file is configured."""
        settings = load_settings({})
        assert settings.source == "default"
        assert [s.id for s in settings.stages] == ["s0", "s1", "s2", "s3", "s3+"]
        assert settings.team_areas["platform-frontend"] == "platform"
        assert settings.defaults.area.id == "unassigned-teams"

    def test_file_overrides(self, tmp_path):
        """Keys in the organisation file replace the defaults."""
        path = tmp_path / "organisation.json"
        path.write_text(json.dumps({
            "sprintFields": ["customfield_10021"],
            "statusMapping": {"Doing": "inprogress"},
            "assigneeTeams": {"Jane": "core-api"},
            "areas": [{"id": "core", "name": "Core", "teams": [{"id": "core-api"}]}],
            "objectives": [{"id": "growth", "name": "Growth"}],
            "defaults": {"objective": {"id": "none", "name": "No Objective"}},
        }))

        settings = load_settings({}, str(path))

        assert settings.sprint_fields == ("customfield_10021",)
        assert settings.status_mapping == {"doing": "inprogress"}
        assert settings.team_areas == {"core-api": "core"}
        assert settings.objectives == (Objective("growth", "Growth"),)
        assert settings.defaults.objective == Objective("none", "No Objective")
        assert settings.defaults.area.id == "unassigned-teams"

    def test_env_overrides_file(self, tmp_path):
        """Sprint field env var wins over the file."""
        path = tmp_path / "organisation.json"
        path.write_text(json.dumps({"sprintFields": ["customfield_1"]}))
        settings = load_settings({"JIRA_SPRINT_FIELDS": "sprint, customfield_2"}, str(path))
        assert settings.sprint_fields == ("sprint", "customfield_2")

    def test_broken_file_falls_back(self, tmp_path):
        """Invalid JSON is ignored rather than fatal."""
        path = tmp_path / "organisation.json"
        path.write_text("{not json")
        settings = load_settings({}, str(path))
        assert settings.effort_field == "customfield_10002"

    def test_bad_board_id(self):
        """Non-numeric board ids are dropped."""
        assert load_settings({"JIRA_BOARD_ID": "abc"}).board_id is None

    def test_release_policy(self, tmp_path):
        """Stage categories and the pre-release label come from the file."""
        default = load_settings({})
        assert default.is_external_stage("s1")
        assert not default.is_external_stage(None)
        assert default.is_final_release_stage("s3+")
        assert not default.is_final_release_stage("s2")

        path = tmp_path / "organisation.json"
        path.write_text(json.dumps({
            "stageCategories": {"externalStages": ["beta", "ga"], "finalReleaseStages": ["ga"]},
            "noPreReleaseAllowedLabel": "ga-only",
        }))
        settings = load_settings({}, str(path))

        assert settings.external_stages == ("beta", "ga")
        assert settings.is_final_release_stage("ga")
        assert not settings.is_external_stage("s1")
        assert settings.no_pre_release_label == "ga-only"

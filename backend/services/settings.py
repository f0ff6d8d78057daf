"""Organisation settings consumed by the adapters and the adapter factory.

Built-in defaults describe a generic organisation; a JSON organisation file
(``ORGANISATION_CONFIG``) can override any of them. Connection details come
from the Flask config / environment.
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from typing import Optional

from services.models import Area, Objective, Person, Stage, Team

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DefaultIdentities:
    """Fallback entities used when nothing can be derived from the tracker."""

    objective: Objective = Objective("unassigned", "Unassigned Objective")
    assignee: Person = Person("unassigned", "Unassigned")
    area: Area = Area("unassigned-teams", "Unassigned Teams")
    team: Team = Team("unknown", "Unknown Team")
    stage: Stage = Stage("non-customer-facing", "Non-Customer Facing")
    ticket_id: str = "unknown"
    cycle_name: str = "Unknown Cycle"


DEFAULT_STAGES = (
    Stage("s0", "Stage 0 - Pilot it"),
    Stage("s1", "Stage 1 - Sell it"),
    Stage("s2", "Stage 2 - Scale it"),
    Stage("s3", "Stage 3 - Global Release"),
    Stage("s3+", "Enhancements"),
)

DEFAULT_AREAS = (
    Area("platform", "Platform", (
        Team("platform-frontend", "Frontend Team"),
        Team("platform-backend", "Backend Team"),
        Team("platform-devops", "DevOps Team"),
    )),
    Area("resilience", "Resilience", (
        Team("resilience-security", "Security Team"),
        Team("resilience-monitoring", "Monitoring Team"),
    )),
    Area("sustainability", "Sustainability", (
        Team("sustainability-green", "Green Tech Team"),
        Team("sustainability-metrics", "Metrics Team"),
    )),
)

DEFAULT_OBJECTIVES = (
    Objective("compliance", "Compliance"),
    Objective("integrated-scorecard", "Integrated Scorecard"),
    Objective("time-to-value", "Time to Value"),
)

# Keyed by Jira status id or lowercased status name
DEFAULT_STATUS_MAPPING = {
    "to do": "todo",
    "open": "todo",
    "backlog": "todo",
    "in progress": "inprogress",
    "in review": "inprogress",
    "review": "inprogress",
    "done": "done",
    "closed": "done",
    "cancelled": "cancelled",
    "canceled": "cancelled",
    "won't do": "cancelled",
    "postponed": "postponed",
    "on hold": "postponed",
}

# Status names used by the organisation workflow, checked before the table above
DEFAULT_STATUS_NAME_MAPPING = {
    "in progress": "inprogress",
    "done": "done",
    "cancelled": "cancelled",
    "new": "todo",
    "in technical scoping": "todo",
    "ready": "todo",
    "planned": "todo",
}

SOURCE_DEFAULT = "default"

# Release policy: stages seen outside the company, and the last stage of a
# rollout. Items in an external stage below the final one need a roadmap bet
# of their own when the bet forbids pre-releases.
DEFAULT_EXTERNAL_STAGES = ("s0", "s1", "s2", "s3", "s3+")
DEFAULT_FINAL_RELEASE_STAGES = ("s3", "s3+")
NO_PRE_RELEASE_LABEL = "no-pre-release-allowed"


@dataclass(frozen=True)
class OrganisationSettings:
    source: str = SOURCE_DEFAULT

    # Connection
    jira_host: str = ""
    jira_email: str = ""
    jira_token: str = ""
    board_id: Optional[int] = None
    project_key: str = "PRODUCT"

    # Issue shape
    roadmap_issue_type: str = "Roadmap Item"
    work_issue_type: str = "Cycle Item"
    effort_field: str = "customfield_10002"
    sprint_fields: tuple = ("sprint", "customfield_10020")
    prefer_last_sprint: bool = False
    default_effort: float = 1

    # Policy tables
    status_mapping: dict = field(default_factory=lambda: dict(DEFAULT_STATUS_MAPPING))
    status_name_mapping: dict = field(default_factory=lambda: dict(DEFAULT_STATUS_NAME_MAPPING))
    label_translations: dict = field(default_factory=dict)
    assignee_teams: dict = field(default_factory=dict)

    # Catalogue
    defaults: DefaultIdentities = DefaultIdentities()
    stages: tuple = DEFAULT_STAGES
    areas: tuple = DEFAULT_AREAS
    objectives: tuple = DEFAULT_OBJECTIVES

    # Release policy
    external_stages: tuple = DEFAULT_EXTERNAL_STAGES
    final_release_stages: tuple = DEFAULT_FINAL_RELEASE_STAGES
    no_pre_release_label: str = NO_PRE_RELEASE_LABEL

    fake_seed: Optional[int] = None

    def is_external_stage(self, stage: Optional[str]) -> bool:
        return stage in self.external_stages

    def is_final_release_stage(self, stage: Optional[str]) -> bool:
        return stage in self.final_release_stages

    @property
    def team_areas(self) -> dict:
        """Team id -> area id, from the area catalogue."""
        return {team.id: area.id for area in self.areas for team in area.teams}

    @property
    def teams(self) -> dict:
        return {team.id: team for area in self.areas for team in area.teams}

    def translate(self, kind: str, value: str) -> str:
        """Display name for a label value, e.g. ``translate("areas", "platform")``."""
        return self.label_translations.get(kind, {}).get(value, value)


def _parse_int(value) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric board id %r", value)
        return None


def _parse_list(value) -> tuple:
    if isinstance(value, (list, tuple)):
        return tuple(v for v in value if v)
    return tuple(part.strip() for part in str(value).split(",") if part.strip())


def _areas_from_json(raw: list) -> tuple:
    areas = []
    for entry in raw:
        teams = tuple(
            Team(t["id"], t.get("name", t["id"])) for t in entry.get("teams", [])
        )
        areas.append(Area(entry["id"], entry.get("name", entry["id"]), teams))
    return tuple(areas)


def _defaults_from_json(raw: dict, base: DefaultIdentities) -> DefaultIdentities:
    def pair(key, cls, current):
        entry = raw.get(key)
        if not entry:
            return current
        return cls(entry["id"], entry.get("name", entry["id"]))

    return DefaultIdentities(
        objective=pair("objective", Objective, base.objective),
        assignee=pair("assignee", Person, base.assignee),
        area=pair("area", Area, base.area),
        team=pair("team", Team, base.team),
        stage=pair("stage", Stage, base.stage),
        ticket_id=raw.get("ticketId", base.ticket_id),
        cycle_name=raw.get("cycleName", base.cycle_name),
    )


def apply_organisation_file(settings: OrganisationSettings, data: dict) -> OrganisationSettings:
    """Overlay the keys present in an organisation JSON document."""
    changes = {}
    if "projectKey" in data:
        changes["project_key"] = data["projectKey"]
    if "roadmapIssueType" in data:
        changes["roadmap_issue_type"] = data["roadmapIssueType"]
    if "workIssueType" in data:
        changes["work_issue_type"] = data["workIssueType"]
    if "effortField" in data:
        changes["effort_field"] = data["effortField"]
    if "sprintFields" in data:
        changes["sprint_fields"] = _parse_list(data["sprintFields"])
    if "preferLastSprint" in data:
        changes["prefer_last_sprint"] = bool(data["preferLastSprint"])
    if "defaultEffort" in data:
        changes["default_effort"] = data["defaultEffort"]
    if "statusMapping" in data:
        changes["status_mapping"] = {
            str(k).lower(): v for k, v in data["statusMapping"].items()
        }
    if "statusNameMapping" in data:
        changes["status_name_mapping"] = {
            str(k).lower(): v for k, v in data["statusNameMapping"].items()
        }
    if "labelTranslations" in data:
        changes["label_translations"] = data["labelTranslations"]
    if "assigneeTeams" in data:
        changes["assignee_teams"] = dict(data["assigneeTeams"])
    if "defaults" in data:
        changes["defaults"] = _defaults_from_json(data["defaults"], settings.defaults)
    if "stages" in data:
        changes["stages"] = tuple(
            Stage(s["id"], s.get("name", s["id"])) for s in data["stages"]
        )
    if "areas" in data:
        changes["areas"] = _areas_from_json(data["areas"])
    if "objectives" in data:
        changes["objectives"] = tuple(
            Objective(o["id"], o.get("name", o["id"])) for o in data["objectives"]
        )
    categories = data.get("stageCategories") or {}
    if "externalStages" in categories:
        changes["external_stages"] = _parse_list(categories["externalStages"])
    if "finalReleaseStages" in categories:
        changes["final_release_stages"] = _parse_list(categories["finalReleaseStages"])
    if "noPreReleaseAllowedLabel" in data:
        changes["no_pre_release_label"] = data["noPreReleaseAllowedLabel"]
    return replace(settings, **changes)


def load_organisation_file(config_path: Optional[str]) -> dict:
    """Read the organisation JSON file; missing or broken files give {}."""
    if not config_path:
        return {}
    if not os.path.exists(config_path):
        logger.info("No organisation config at %s, using built-in defaults", config_path)
        return {}
    try:
        with open(config_path, "r") as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning("Failed to load organisation config %s: %s", config_path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Organisation config %s is not a JSON object, ignoring it", config_path)
        return {}
    return data


def load_settings(values, config_path: Optional[str] = None) -> OrganisationSettings:
    """Build settings from a Flask config mapping plus the organisation file.

    Args:
        values: Mapping with CYCLE_DATA_SOURCE, JIRA_* and FAKE_DATA_SEED keys
        config_path: Optional path to an organisation JSON file

    Returns:
        OrganisationSettings
    """
    settings = OrganisationSettings(
        source=(values.get("CYCLE_DATA_SOURCE") or SOURCE_DEFAULT).strip().lower(),
        jira_host=values.get("JIRA_HOST") or "",
        jira_email=values.get("JIRA_EMAIL") or "",
        jira_token=values.get("JIRA_TOKEN") or "",
        board_id=_parse_int(values.get("JIRA_BOARD_ID")),
        fake_seed=_parse_int(values.get("FAKE_DATA_SEED")),
    )

    settings = apply_organisation_file(settings, load_organisation_file(config_path))

    # Environment wins over the organisation file for field keys
    overrides = {}
    if values.get("JIRA_PROJECT_KEY"):
        overrides["project_key"] = values["JIRA_PROJECT_KEY"]
    if values.get("JIRA_EFFORT_FIELD"):
        overrides["effort_field"] = values["JIRA_EFFORT_FIELD"]
    if values.get("JIRA_SPRINT_FIELDS"):
        overrides["sprint_fields"] = _parse_list(values["JIRA_SPRINT_FIELDS"])
    return replace(settings, **overrides)

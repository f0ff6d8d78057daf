"""Adapter for trackers that model roadmap and cycle items as issue types.

Roadmap Items become roadmap bets and Cycle Items become work items linked
to their parent. Areas, teams and objectives are read from ``area:``,
``team:`` and ``objective:`` labels.
"""

import logging

from services.adapters.base import (
    AdapterKind,
    TrackerAdapter,
    area_named,
    derive_areas_and_teams,
    derive_objectives,
    fetch_concurrently,
    place,
    release_state,
    team_named,
    unique,
    virtual_bet_for,
)
from services.extraction import (
    clean_roadmap_name,
    create_jira_url,
    extract_all_assignees,
    extract_assignee,
    extract_custom_field,
    extract_labels,
    extract_labels_with_prefix,
    extract_parent,
    extract_sprint_id,
    extract_stage_from_name,
    jira_sprint_to_cycle,
    map_jira_status,
    or_default,
)
from services.metrics import parse_effort
from services.models import (
    SEVERITY_WARNING,
    CycleRef,
    DomainSnapshot,
    RoadmapBet,
    WorkItem,
)
from services.validation import (
    combine_validations,
    create_parameterized_validation,
    create_validation,
    validate_one_of,
    validate_range,
    validate_required,
)

logger = logging.getLogger(__name__)

ROADMAP_FIELDS = ["summary", "labels", "assignee", "status"]


class DefaultJiraAdapter(TrackerAdapter):
    """Roadmap Item / Cycle Item issue types on a single board."""

    kind = AdapterKind.DEFAULT

    def _fetch(self) -> dict:
        settings = self.settings
        return fetch_concurrently({
            "sprints": lambda: self.client.get_sprints(settings.board_id),
            "roadmap": lambda: self.client.search_issues(
                f'issuetype = "{settings.roadmap_issue_type}"', ROADMAP_FIELDS
            ),
            "work": lambda: self.client.search_issues(
                f'issuetype = "{settings.work_issue_type}"'
            ),
        })

    def _to_work_item(self, issue: dict, bet_labels: dict, cycle_names: dict) -> WorkItem:
        settings = self.settings
        key = issue["key"]
        fields = issue.get("fields") or {}
        name = fields.get("summary") or key

        assignee = extract_assignee(issue)
        placement = place(extract_labels(issue), assignee, settings)
        effort = parse_effort(extract_custom_field(issue, settings.effort_field))
        stage = extract_stage_from_name(name)

        parent = extract_parent(issue)
        bet_id = parent if parent in bet_labels else f"VIRTUAL-{key}"
        is_external, release_validations = release_state(
            stage, bet_labels.get(bet_id, ()), key, settings
        )

        cycle_id = extract_sprint_id(issue, settings.sprint_fields, settings.prefer_last_sprint)
        cycle = None
        if cycle_id:
            cycle = CycleRef(cycle_id, cycle_names.get(cycle_id, settings.defaults.cycle_name))

        validations = combine_validations(
            validate_required(effort, key, "estimate"),
            validate_range(effort, 0, None, key, "effort"),
            validate_required(placement.area_signal, key, "areaLabel", SEVERITY_WARNING),
            validate_required(placement.team_signal, key, "teamLabel", SEVERITY_WARNING),
            validate_required(assignee, key, "assignee", SEVERITY_WARNING),
            [] if parent else [create_validation(key, "noProjectId", SEVERITY_WARNING)],
            validate_one_of(stage, {s.id for s in settings.stages}, key, "stage"),
            release_validations,
        )

        return WorkItem(
            id=key,
            ticket_id=key,
            name=name,
            summary=name,
            roadmap_bet_id=bet_id,
            effort=effort,
            area_ids=placement.area_ids,
            teams=placement.team_ids,
            status=map_jira_status(fields.get("status"), settings.status_mapping),
            stage=stage,
            assignee=or_default(assignee, settings.defaults.assignee),
            cycle_id=cycle_id,
            cycle=cycle,
            url=create_jira_url(key, settings.jira_host),
            is_external=is_external,
            created=fields.get("created") or "",
            updated=fields.get("updated") or "",
            validations=validations,
        )

    def _unknown_area_validations(self, key: str, labels: list) -> list:
        """One warning per `area:` label that names no configured or translated area."""
        settings = self.settings
        known = {area.id for area in settings.areas}
        known.update(settings.label_translations.get("areas", {}))
        return [
            create_parameterized_validation(key, "missingAreaTranslation", area_id, SEVERITY_WARNING)
            for area_id in extract_labels_with_prefix(labels, "area")
            if area_id not in known
        ]

    def _to_bet(self, issue: dict, child_issues: list, has_objectives: bool) -> RoadmapBet:
        settings = self.settings
        key = issue["key"]
        fields = issue.get("fields") or {}
        labels = extract_labels(issue)

        # Owning team comes from the first team label among child items
        child_teams = [
            team
            for child in child_issues
            for team in extract_labels_with_prefix(extract_labels(child), "team")
        ]
        placement = place(labels, extract_assignee(issue), settings,
                          extra_team_labels=tuple(child_teams[:1]))

        objectives = extract_labels_with_prefix(labels, "objective")
        objective_id = objectives[0] if objectives else None
        if objective_id is None and not has_objectives:
            objective_id = settings.defaults.objective.id

        validations = combine_validations(
            validate_required(placement.area_signal, key, "areaLabel", SEVERITY_WARNING),
            self._unknown_area_validations(key, labels),
            validate_required(objectives, key, "objectiveLabel", SEVERITY_WARNING),
        )

        area_id = placement.area_ids[0]
        team_id = placement.team_ids[0]
        return RoadmapBet(
            id=key,
            name=clean_roadmap_name(fields.get("summary") or key),
            summary=fields.get("summary") or "",
            area=area_named(area_id, settings),
            owning_team=team_named(team_id, settings),
            objective_id=objective_id,
            labels=tuple(labels),
            url=create_jira_url(key, settings.jira_host),
            team_display=team_id,
            area_display=area_id,
            validations=validations,
        )

    def build_snapshot(self) -> DomainSnapshot:
        settings = self.settings
        raw = self._fetch()

        cycles = tuple(jira_sprint_to_cycle(sprint) for sprint in raw["sprints"])
        cycle_names = {cycle.id: cycle.name for cycle in cycles}
        roadmap_issues = raw["roadmap"]
        work_issues = raw["work"]
        all_issues = roadmap_issues + work_issues

        children = {}
        for issue in work_issues:
            parent = extract_parent(issue)
            if parent:
                children.setdefault(parent, []).append(issue)
        logger.debug(
            "%d cycle items, %d roadmap items, %d with children",
            len(work_issues), len(roadmap_issues), len(children),
        )

        all_labels = [label for issue in all_issues for label in extract_labels(issue)]
        objective_labels = extract_labels_with_prefix(all_labels, "objective")

        bet_labels = {issue["key"]: extract_labels(issue) for issue in roadmap_issues}
        work_items = tuple(
            self._to_work_item(issue, bet_labels, cycle_names) for issue in work_issues
        )
        bets = [
            self._to_bet(issue, children.get(issue["key"], []), bool(objective_labels))
            for issue in roadmap_issues
        ]
        fallback_objective = None if objective_labels else settings.defaults.objective.id
        for item in work_items:
            if item.roadmap_bet_id not in bet_labels:
                bets.append(virtual_bet_for(item, settings, fallback_objective))

        areas, teams = derive_areas_and_teams(
            settings,
            extract_labels_with_prefix(all_labels, "area"),
            extract_labels_with_prefix(all_labels, "team"),
            [bet.area.id for bet in bets]
            + [a for item in work_items for a in item.area_ids],
            [b.owning_team.id for b in bets] + [t for item in work_items for t in item.teams],
        )

        assignees = extract_all_assignees(all_issues)
        if any(item.assignee == settings.defaults.assignee for item in work_items):
            assignees.append(settings.defaults.assignee)

        return DomainSnapshot(
            cycles=cycles,
            roadmap_bets=tuple(bets),
            work_items=work_items,
            areas=areas,
            objectives=derive_objectives(settings, objective_labels),
            teams=teams,
            assignees=tuple(unique(assignees)),
            stages=tuple(settings.stages),
        )

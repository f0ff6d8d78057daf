"""Adapter for an organisation that plans with Epics only.

Every Epic is one work item. There are no roadmap-level issues, so each
Epic gets a virtual roadmap bet of its own. Areas and teams rarely appear as
labels here; the assignee-to-team table does most of the placement.
"""

import logging

from services.adapters.base import (
    AdapterKind,
    TrackerAdapter,
    derive_areas_and_teams,
    derive_objectives,
    fetch_concurrently,
    place,
    release_state,
    unique,
    virtual_bet_for,
)
from services.extraction import (
    create_jira_url,
    extract_all_assignees,
    extract_assignee,
    extract_custom_field,
    extract_labels,
    extract_labels_with_prefix,
    extract_sprint_id,
    extract_stage_from_name,
    jira_sprint_to_cycle,
    map_jira_status,
    or_default,
)
from services.metrics import parse_effort
from services.models import SEVERITY_WARNING, CycleRef, DomainSnapshot, WorkItem
from services.validation import combine_validations, validate_range, validate_required

logger = logging.getLogger(__name__)


class OrganisationJiraAdapter(TrackerAdapter):
    """Epics in one project, placed by assignee."""

    kind = AdapterKind.ORGANISATION

    def _epic_query(self) -> str:
        return (
            f'project = {self.settings.project_key} AND issuetype = "Epic" '
            f"ORDER BY updated DESC"
        )

    def _fetch(self) -> dict:
        return fetch_concurrently({
            "sprints": lambda: self.client.get_sprints(self.settings.board_id),
            "epics": lambda: self.client.search_issues(self._epic_query()),
        })

    def map_status(self, status) -> str:
        """Workflow names first, then the generic status table."""
        name = ((status or {}).get("name") or "").strip().lower()
        if name in self.settings.status_name_mapping:
            return self.settings.status_name_mapping[name]
        return map_jira_status(status, self.settings.status_mapping)

    def _to_work_item(self, issue: dict, cycle_names: dict) -> WorkItem:
        settings = self.settings
        key = issue["key"]
        fields = issue.get("fields") or {}
        name = fields.get("summary") or key

        labels = extract_labels(issue)
        assignee = extract_assignee(issue)
        placement = place(labels, assignee, settings)

        raw_effort = extract_custom_field(issue, settings.effort_field)
        effort = parse_effort(raw_effort) or settings.default_effort
        stage = extract_stage_from_name(name)
        # The epic is its own roadmap bet, so its labels decide the release policy
        is_external, release_validations = release_state(stage, labels, key, settings)

        cycle_id = extract_sprint_id(issue, settings.sprint_fields, settings.prefer_last_sprint)
        cycle = None
        if cycle_id:
            cycle = CycleRef(cycle_id, cycle_names.get(cycle_id, settings.defaults.cycle_name))

        validations = combine_validations(
            validate_range(effort, 0, None, key, "effort"),
            validate_required(placement.area_signal, key, "areaLabel", SEVERITY_WARNING),
            validate_required(assignee, key, "assignee", SEVERITY_WARNING),
            validate_required(stage, key, "stage", SEVERITY_WARNING),
            release_validations,
        )

        return WorkItem(
            id=key,
            ticket_id=key,
            name=name,
            summary=name,
            roadmap_bet_id=f"VIRTUAL-{key}",
            effort=effort,
            area_ids=placement.area_ids,
            teams=placement.team_ids,
            status=self.map_status(fields.get("status")),
            stage=or_default(stage, settings.defaults.stage.id),
            assignee=or_default(assignee, settings.defaults.assignee),
            cycle_id=cycle_id,
            cycle=cycle,
            url=create_jira_url(key, settings.jira_host),
            is_external=is_external,
            created=fields.get("created") or "",
            updated=fields.get("updated") or "",
            validations=validations,
        )

    def build_snapshot(self) -> DomainSnapshot:
        settings = self.settings
        raw = self._fetch()

        cycles = tuple(jira_sprint_to_cycle(sprint) for sprint in raw["sprints"])
        cycle_names = {cycle.id: cycle.name for cycle in cycles}
        epics = raw["epics"]

        work_items = tuple(self._to_work_item(epic, cycle_names) for epic in epics)

        all_labels = [label for epic in epics for label in extract_labels(epic)]
        objective_labels = extract_labels_with_prefix(all_labels, "objective")

        bets = []
        for epic, item in zip(epics, work_items):
            objectives = extract_labels_with_prefix(extract_labels(epic), "objective")
            if objectives:
                objective_id = objectives[0]
            elif objective_labels:
                objective_id = None
            else:
                objective_id = settings.defaults.objective.id
            bets.append(virtual_bet_for(item, settings, objective_id))

        areas, teams = derive_areas_and_teams(
            settings,
            extract_labels_with_prefix(all_labels, "area"),
            extract_labels_with_prefix(all_labels, "team"),
            [a for item in work_items for a in item.area_ids],
            [t for item in work_items for t in item.teams],
        )
        unmapped = sum(1 for item in work_items if settings.defaults.area.id in item.area_ids)
        if unmapped:
            logger.warning(
                "%d of %d epics could not be placed in an area, using %s",
                unmapped, len(work_items), settings.defaults.area.id,
            )

        assignees = extract_all_assignees(epics)
        if any(item.assignee == settings.defaults.assignee for item in work_items):
            assignees.append(settings.defaults.assignee)

        stages = list(settings.stages)
        if any(item.stage == settings.defaults.stage.id for item in work_items):
            stages.append(settings.defaults.stage)

        return DomainSnapshot(
            cycles=cycles,
            roadmap_bets=tuple(bets),
            work_items=work_items,
            areas=areas,
            objectives=derive_objectives(settings, objective_labels),
            teams=teams,
            assignees=tuple(unique(assignees)),
            stages=tuple(unique(stages)),
        )

"""Pieces shared by the tracker-backed adapters."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from services.extraction import extract_labels_with_prefix, first_present
from services.models import Area, Objective, RoadmapBet, Team
from services.result import Result
from services.validation import create_validation

logger = logging.getLogger(__name__)


class AdapterKind(Enum):
    DEFAULT = "default"
    ORGANISATION = "organisation"
    FAKE = "fake"


def unique(values) -> list:
    """Order-preserving de-duplication."""
    seen = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def fetch_concurrently(tasks: dict) -> dict:
    """Run independent fetches in parallel and return their results by name.

    The first failure is re-raised once all fetches have finished, so no
    snapshot is ever built from a half-successful fetch.
    """
    results = {}
    errors = []

    with ThreadPoolExecutor(max_workers=max(1, len(tasks))) as executor:
        futures = {executor.submit(fetch): name for name, fetch in tasks.items()}
        for future in as_completed(futures):
            name = futures[future]
            try:
                results[name] = future.result()
            except Exception as e:
                errors.append((name, e))

    if errors:
        name, error = errors[0]
        logger.warning("Fetching %s failed: %s", name, error)
        raise error
    return results


@dataclass(frozen=True)
class Placement:
    """Where a bet or work item sits in the area/team hierarchy.

    ``area_signal`` / ``team_signal`` hold what was actually found on the
    tracker (labels or assignee mapping); they are empty when the default
    identities had to be used.
    """

    area_ids: tuple
    team_ids: tuple
    area_signal: tuple
    team_signal: tuple


def lookup_assignee_team(assignee, settings) -> Optional[str]:
    """Team id for an assignee from the assignee table.

    Matches the display name exactly, then ignoring case, then the account id.
    """
    if assignee is None or not settings.assignee_teams:
        return None
    table = settings.assignee_teams
    if assignee.name in table:
        return table[assignee.name]
    lowered = assignee.name.lower()
    for name, team_id in table.items():
        if name.lower() == lowered:
            return team_id
    return table.get(assignee.id)


def place(labels: list, assignee, settings, extra_team_labels: tuple = ()) -> Placement:
    """Resolve areas and teams: labels, then assignee lookup, then defaults.

    Each tier only runs when the tiers before it found nothing.
    """
    assignee_team = None

    def from_assignee_team():
        nonlocal assignee_team
        assignee_team = lookup_assignee_team(assignee, settings)
        return [assignee_team] if assignee_team else None

    def from_assignee_area():
        team_id = assignee_team or lookup_assignee_team(assignee, settings)
        area_id = settings.team_areas.get(team_id) if team_id else None
        return [area_id] if area_id else None

    team_signal = first_present(
        lambda: unique(extract_labels_with_prefix(labels, "team") + list(extra_team_labels)),
        from_assignee_team,
    ) or []
    area_signal = first_present(
        lambda: unique(extract_labels_with_prefix(labels, "area")),
        from_assignee_area,
    ) or []

    return Placement(
        area_ids=tuple(area_signal) or (settings.defaults.area.id,),
        team_ids=tuple(team_signal) or (settings.defaults.team.id,),
        area_signal=tuple(area_signal),
        team_signal=tuple(team_signal),
    )


def release_state(stage: Optional[str], bet_labels, subject_id: str, settings) -> tuple:
    """External flag and pre-release validations for a work item.

    Work in an external stage is external when its roadmap bet carries the
    no-pre-release label. Below the final release stage that combination is
    an error: the item should have a roadmap bet of its own.

    Returns:
        (is_external, validations)
    """
    pre_release_blocked = settings.no_pre_release_label in bet_labels
    is_external = settings.is_external_stage(stage) and pre_release_blocked
    if is_external and not settings.is_final_release_stage(stage):
        logger.info("Pre-release violation on %s at stage %s", subject_id, stage)
        return is_external, [create_validation(subject_id, "tooLowStageWithoutProperRoadmapItem")]
    return is_external, []


def area_named(area_id: str, settings) -> Area:
    if area_id == settings.defaults.area.id:
        return Area(area_id, settings.defaults.area.name)
    for area in settings.areas:
        if area.id == area_id:
            return Area(area.id, area.name)
    return Area(area_id, settings.translate("areas", area_id))


def team_named(team_id: str, settings) -> Team:
    if team_id == settings.defaults.team.id:
        return settings.defaults.team
    team = settings.teams.get(team_id)
    if team:
        return team
    return Team(team_id, settings.translate("teams", team_id))


def objective_named(objective_id: str, settings) -> Objective:
    if objective_id == settings.defaults.objective.id:
        return settings.defaults.objective
    for objective in settings.objectives:
        if objective.id == objective_id:
            return objective
    return Objective(objective_id, settings.translate("objectives", objective_id))


def associate_teams(area_ids: list, teams: list, settings) -> tuple:
    """Attach teams to areas.

    A team goes to its explicitly mapped area first, otherwise to the first
    area whose id prefixes the team id. Anything left over is collected in
    the default "unassigned" area, which is created once and then reused.
    """
    members = {area_id: [] for area_id in area_ids}
    order = list(area_ids)
    explicit = settings.team_areas

    def bucket(area_id):
        if area_id not in members:
            members[area_id] = []
            order.append(area_id)
        return members[area_id]

    for team in teams:
        target = explicit.get(team.id)
        if target is None:
            target = next(
                (area_id for area_id in area_ids if team.id.startswith(area_id)),
                None,
            )
        if target is None:
            target = settings.defaults.area.id
        bucket(target).append(team)

    return tuple(
        replace(area_named(area_id, settings), teams=tuple(members[area_id]))
        for area_id in order
    )


def derive_areas_and_teams(settings, label_area_ids, label_team_ids,
                           used_area_ids, used_team_ids) -> tuple:
    """Areas (with teams attached) and teams from the union of all issues.

    Returns:
        (areas, teams) tuples
    """
    area_ids = unique(list(label_area_ids) + list(used_area_ids))
    team_ids = unique(list(label_team_ids) + list(used_team_ids))

    if not area_ids and not team_ids:
        logger.warning(
            "No area or team signal in tracker data, falling back to %d configured areas",
            len(settings.areas),
        )
        teams = tuple(team for area in settings.areas for team in area.teams)
        return tuple(settings.areas), teams

    teams = [team_named(team_id, settings) for team_id in team_ids]
    return associate_teams(area_ids, teams, settings), tuple(teams)


def derive_objectives(settings, label_objective_ids) -> tuple:
    """Objectives from labels, or the single default objective when none exist."""
    objective_ids = unique(label_objective_ids)
    if not objective_ids:
        logger.warning("No objective labels found, using default objective")
        return (settings.defaults.objective,)
    return tuple(objective_named(oid, settings) for oid in objective_ids)


def virtual_bet_for(item, settings, objective_id: Optional[str] = None) -> RoadmapBet:
    """Roadmap bet standing in for a work item that has no real parent."""
    area_id = item.area_ids[0] if item.area_ids else settings.defaults.area.id
    team_id = item.teams[0] if item.teams else settings.defaults.team.id
    return RoadmapBet(
        id=item.roadmap_bet_id,
        name=item.name,
        summary=item.summary,
        area=area_named(area_id, settings),
        owning_team=team_named(team_id, settings),
        objective_id=objective_id,
        url=item.url,
        team_display=team_id,
        area_display=area_id,
    )


class TrackerAdapter:
    """Common ``fetch_snapshot`` wrapper for adapters that talk to Jira."""

    kind = None

    def __init__(self, client, settings):
        self.client = client
        self.settings = settings

    def build_snapshot(self):
        raise NotImplementedError

    def fetch_snapshot(self) -> Result:
        """Fetch from the tracker and transform into a DomainSnapshot.

        Returns:
            Result holding the snapshot, or the error that stopped the run
        """
        logger.info("Fetching cycle data with %s adapter", self.kind.value)
        try:
            snapshot = self.build_snapshot()
        except Exception as e:
            logger.exception("%s adapter failed to build a snapshot", self.kind.value)
            return Result.fail(e)

        logger.info(
            "Built snapshot: %d cycles, %d roadmap bets, %d work items",
            len(snapshot.cycles), len(snapshot.roadmap_bets), len(snapshot.work_items),
        )
        return Result.ok(snapshot)

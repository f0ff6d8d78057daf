"""Filtered views over a DomainSnapshot.

Everything here is a pure function of its arguments. The snapshot is only
read, so one snapshot can serve many views at once.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional

from services.extraction import EPOCH_DATE
from services.metrics import aggregate_progress, calculate_cycle_progress, calculate_progress
from services.models import (
    ALL_ASSIGNEES_ID,
    CYCLE_ACTIVE,
    CYCLE_CLOSED,
    OVERVIEW_SLICE_ID,
    FilterCriteria,
    Objective,
    RoadmapBet,
)

UNASSIGNED_OBJECTIVE_ID = "unassigned"
NO_CONSTRAINT = ("", ALL_ASSIGNEES_ID)


@dataclass(frozen=True)
class ProjectedBet:
    bet: RoadmapBet
    work_items: tuple
    progress: dict

    def to_dict(self) -> dict:
        data = self.bet.to_dict()
        data["workItems"] = [item.to_dict() for item in self.work_items]
        data["progress"] = self.progress
        return data


@dataclass(frozen=True)
class ObjectiveGroup:
    objective: Objective
    roadmap_bet_ids: tuple
    progress: dict

    def to_dict(self) -> dict:
        data = self.objective.to_dict()
        data["roadmapBetIds"] = list(self.roadmap_bet_ids)
        data["progress"] = self.progress
        return data


@dataclass(frozen=True)
class Projection:
    criteria: FilterCriteria
    roadmap_bets: tuple
    objectives: tuple
    progress: dict

    @property
    def work_item_count(self) -> int:
        return sum(len(projected.work_items) for projected in self.roadmap_bets)

    def to_dict(self) -> dict:
        return {
            "criteria": self.criteria.to_dict(),
            "roadmapBets": [b.to_dict() for b in self.roadmap_bets],
            "objectives": [o.to_dict() for o in self.objectives],
            "progress": self.progress,
            "totals": {
                "roadmapBets": len(self.roadmap_bets),
                "workItems": self.work_item_count,
            },
        }


def _single(value: Optional[str]) -> Optional[str]:
    """A scalar criterion, or None when it imposes no constraint."""
    if value is None or value in NO_CONSTRAINT:
        return None
    return value


def _many(values) -> Optional[set]:
    """A list criterion as a set, or None when it imposes no constraint."""
    values = set(values or ()) - set(NO_CONSTRAINT)
    return values or None


def _join_unique(values) -> str:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return ", ".join(seen)


def work_item_matches(item, objective_id: str, criteria: FilterCriteria) -> bool:
    """True when ``item`` satisfies every constrained dimension of ``criteria``.

    ``objective_id`` is the objective of the item's roadmap bet.
    """
    area = _single(criteria.area)
    if area is not None and area not in item.area_ids:
        return False

    objectives = _many(criteria.objective_ids)
    if objectives is not None and objective_id not in objectives:
        return False

    stages = _many(criteria.stage_ids)
    if stages is not None and item.stage not in stages:
        return False

    assignees = _many(criteria.assignee_ids)
    if assignees is not None and item.assignee.id not in assignees:
        return False

    cycle = _single(criteria.cycle)
    if cycle is not None and item.cycle_id != cycle:
        return False

    return True


def _group_by_objective(snapshot, projected_bets: list, unassigned_objective_id: str) -> tuple:
    known = {objective.id: objective for objective in snapshot.objectives}
    order = [objective.id for objective in snapshot.objectives]
    grouped = {}

    for projected in projected_bets:
        objective_id = projected.bet.objective_id or unassigned_objective_id
        grouped.setdefault(objective_id, []).append(projected)
        if objective_id not in order:
            order.append(objective_id)

    groups = []
    for objective_id in order:
        members = grouped.get(objective_id)
        if not members:
            continue
        objective = known.get(objective_id)
        if objective is None:
            name = "Unassigned Objective" if objective_id == unassigned_objective_id else objective_id
            objective = Objective(objective_id, name)
        groups.append(ObjectiveGroup(
            objective=objective,
            roadmap_bet_ids=tuple(p.bet.id for p in members),
            progress=aggregate_progress([p.progress for p in members]),
        ))
    return tuple(groups)


def filter_snapshot(snapshot, criteria: Optional[FilterCriteria] = None,
                    unassigned_objective_id: str = UNASSIGNED_OBJECTIVE_ID) -> Projection:
    """Prune the bet/work-item tree to ``criteria`` and recompute aggregates.

    Args:
        snapshot: DomainSnapshot to read from
        criteria: FilterCriteria; None or empty dimensions impose no constraint
        unassigned_objective_id: Objective id that bets without an objective
            are filtered and grouped under

    Returns:
        Projection with only non-empty bets, whose team/area display values
        and progress reflect the surviving work items alone
    """
    criteria = criteria or FilterCriteria()

    items_by_bet = {}
    for item in snapshot.work_items:
        items_by_bet.setdefault(item.roadmap_bet_id, []).append(item)

    projected_bets = []
    for bet in snapshot.roadmap_bets:
        objective_id = bet.objective_id or unassigned_objective_id
        survivors = tuple(
            item for item in items_by_bet.get(bet.id, [])
            if work_item_matches(item, objective_id, criteria)
        )
        if not survivors:
            continue

        recomputed = replace(
            bet,
            team_display=_join_unique(team for item in survivors for team in item.teams),
            area_display=_join_unique(area for item in survivors for area in item.area_ids),
        )
        projected_bets.append(ProjectedBet(
            bet=recomputed,
            work_items=survivors,
            progress=calculate_progress(survivors),
        ))

    return Projection(
        criteria=criteria,
        roadmap_bets=tuple(projected_bets),
        objectives=_group_by_objective(snapshot, projected_bets, unassigned_objective_id),
        progress=aggregate_progress([p.progress for p in projected_bets]),
    )


def slice_by_area(snapshot, criteria: Optional[FilterCriteria] = None,
                  unassigned_objective_id: str = UNASSIGNED_OBJECTIVE_ID) -> dict:
    """One projection per area plus a leading "overview" slice.

    Area slices that end up empty are left out; the overview is always there.
    """
    criteria = criteria or FilterCriteria()
    slices = {
        OVERVIEW_SLICE_ID: filter_snapshot(
            snapshot, criteria.with_area(None), unassigned_objective_id
        ),
    }
    for area in snapshot.areas:
        projection = filter_snapshot(
            snapshot, criteria.with_area(area.id), unassigned_objective_id
        )
        if projection.roadmap_bets:
            slices[area.id] = projection
    return slices


def _today(now) -> str:
    if now is None:
        now = datetime.now()
    if isinstance(now, datetime):
        now = now.date()
    if isinstance(now, date):
        return now.isoformat()
    return str(now)[:10]


def select_default_cycle(cycles, now=None):
    """Pick "the" cycle when none was chosen.

    Cycles are sorted by start date; the first active one wins, then the
    first one starting after ``now`` that is not closed, then the first
    closed one, then simply the earliest. Undated cycles sort as the epoch.
    Returns None for no cycles.
    """
    if not cycles:
        return None

    ordered = sorted(cycles, key=lambda c: c.start or c.delivery or EPOCH_DATE)
    today = _today(now)

    tiers = (
        lambda c: c.state == CYCLE_ACTIVE,
        lambda c: (c.start or "") > today and c.state not in (CYCLE_CLOSED, "completed"),
        lambda c: c.state in (CYCLE_CLOSED, "completed"),
    )
    for matches in tiers:
        for cycle in ordered:
            if matches(cycle):
                return cycle
    return ordered[0]


def cycle_overview(snapshot, criteria: Optional[FilterCriteria] = None, now=None,
                   unassigned_objective_id: str = UNASSIGNED_OBJECTIVE_ID) -> Optional[dict]:
    """Projection and progress summary for one cycle.

    Uses the criteria's cycle when it names one of the snapshot's cycles,
    otherwise the default selection. Returns None when there are no cycles.
    """
    criteria = criteria or FilterCriteria()
    requested = _single(criteria.cycle)
    cycle = next((c for c in snapshot.cycles if c.id == requested), None)
    if cycle is None:
        cycle = select_default_cycle(snapshot.cycles, now)
    if cycle is None:
        return None

    projection = filter_snapshot(
        snapshot, criteria.with_cycle(cycle.id), unassigned_objective_id
    )
    progress = calculate_cycle_progress(
        cycle,
        [(p.bet, p.work_items) for p in projection.roadmap_bets],
        now or datetime.now(),
    )
    return {
        "cycle": cycle.to_dict(),
        "projection": projection.to_dict(),
        "progress": progress,
    }

"""Domain model for cycle planning snapshots.

All entities are frozen; collections are tuples so a snapshot can be shared
between concurrent requests and filtered repeatedly without copying.
``to_dict`` renders the camelCase wire shape served by the API.
"""

from dataclasses import dataclass, replace
from typing import Optional

ALL_ASSIGNEES_ID = "all"
OVERVIEW_SLICE_ID = "overview"

# Cycle lifecycle states
CYCLE_FUTURE = "future"
CYCLE_ACTIVE = "active"
CYCLE_CLOSED = "closed"

SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"


@dataclass(frozen=True)
class Person:
    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


ALL_ASSIGNEES = Person(ALL_ASSIGNEES_ID, "All Assignees")


@dataclass(frozen=True)
class Team:
    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Area:
    id: str
    name: str
    teams: tuple = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "teams": [team.to_dict() for team in self.teams],
        }


@dataclass(frozen=True)
class Objective:
    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Stage:
    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Cycle:
    id: str
    name: str
    start: Optional[str]
    end: Optional[str]
    delivery: Optional[str]
    state: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "start": self.start,
            "end": self.end,
            "delivery": self.delivery,
            "state": self.state,
        }


@dataclass(frozen=True)
class CycleRef:
    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class ValidationItem:
    id: str
    code: str
    name: str
    severity: str
    description: str = ""
    reference: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "status": self.severity,
            "description": self.description,
            "reference": self.reference,
        }


@dataclass(frozen=True)
class WorkItem:
    """Smallest unit of delivery work, scheduled into at most one cycle.

    ``is_external`` is set for work in an external stage whose roadmap bet
    carries the no-pre-release label.
    """

    id: str
    ticket_id: str
    name: str
    roadmap_bet_id: str
    effort: float = 0
    area_ids: tuple = ()
    teams: tuple = ()
    status: str = "todo"
    stage: Optional[str] = None
    assignee: Person = Person("", "")
    cycle_id: Optional[str] = None
    cycle: Optional[CycleRef] = None
    summary: str = ""
    url: str = ""
    is_external: bool = False
    created: str = ""
    updated: str = ""
    validations: tuple = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ticketId": self.ticket_id,
            "name": self.name,
            "summary": self.summary,
            "effort": self.effort,
            "areaIds": list(self.area_ids),
            "teams": list(self.teams),
            "status": self.status,
            "stage": self.stage,
            "assignee": self.assignee.to_dict(),
            "roadmapBetId": self.roadmap_bet_id,
            "cycleId": self.cycle_id,
            "cycle": self.cycle.to_dict() if self.cycle else None,
            "url": self.url,
            "isExternal": self.is_external,
            "created": self.created,
            "updated": self.updated,
            "validations": [v.to_dict() for v in self.validations],
        }


@dataclass(frozen=True)
class RoadmapBet:
    """Roadmap-level item grouping work items.

    ``area`` and ``owning_team`` are derived by the adapter. ``team_display``
    and ``area_display`` are recomputed by the projection engine from the
    surviving work items.
    """

    id: str
    name: str
    area: Area
    owning_team: Team
    objective_id: Optional[str] = None
    summary: str = ""
    labels: tuple = ()
    url: str = ""
    team_display: str = ""
    area_display: str = ""
    validations: tuple = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "summary": self.summary,
            "area": {"id": self.area.id, "name": self.area.name},
            "objectiveId": self.objective_id,
            "owningTeam": self.owning_team.to_dict(),
            "labels": list(self.labels),
            "url": self.url,
            "teamDisplay": self.team_display,
            "areaDisplay": self.area_display,
            "validations": [v.to_dict() for v in self.validations],
        }


@dataclass(frozen=True)
class DomainSnapshot:
    """Everything one ingestion run produced."""

    cycles: tuple = ()
    roadmap_bets: tuple = ()
    work_items: tuple = ()
    areas: tuple = ()
    objectives: tuple = ()
    teams: tuple = ()
    assignees: tuple = ()
    stages: tuple = ()

    def work_items_for(self, bet_id: str) -> list:
        return [item for item in self.work_items if item.roadmap_bet_id == bet_id]

    def to_dict(self) -> dict:
        return {
            "cycles": [c.to_dict() for c in self.cycles],
            "roadmapBets": [b.to_dict() for b in self.roadmap_bets],
            "workItems": [w.to_dict() for w in self.work_items],
            "areas": [a.to_dict() for a in self.areas],
            "objectives": [o.to_dict() for o in self.objectives],
            "teams": [t.to_dict() for t in self.teams],
            "assignees": [p.to_dict() for p in self.assignees],
            "stages": [s.to_dict() for s in self.stages],
        }


@dataclass(frozen=True)
class FilterCriteria:
    """View filter. Empty or absent dimensions impose no constraint."""

    area: Optional[str] = None
    objective_ids: tuple = ()
    stage_ids: tuple = ()
    assignee_ids: tuple = ()
    cycle: Optional[str] = None

    def with_area(self, area: Optional[str]) -> "FilterCriteria":
        return replace(self, area=area)

    def with_cycle(self, cycle: Optional[str]) -> "FilterCriteria":
        return replace(self, cycle=cycle)

    def to_dict(self) -> dict:
        return {
            "area": self.area,
            "objectiveIds": list(self.objective_ids),
            "stageIds": list(self.stage_ids),
            "assigneeIds": list(self.assignee_ids),
            "cycle": self.cycle,
        }

"""Generated cycle data for local development, no tracker needed."""

import calendar
import itertools
import logging
import random
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from services.adapters.base import AdapterKind, area_named, team_named
from services.extraction import create_jira_url
from services.models import (
    ALL_ASSIGNEES,
    CYCLE_ACTIVE,
    CYCLE_CLOSED,
    CYCLE_FUTURE,
    Cycle,
    CycleRef,
    DomainSnapshot,
    Person,
    RoadmapBet,
    WorkItem,
)
from services.result import Result

logger = logging.getLogger(__name__)

FAKE_PEOPLE = (
    Person("john.doe", "John Doe"),
    Person("jane.smith", "Jane Smith"),
    Person("bob.johnson", "Bob Johnson"),
    Person("alice.brown", "Alice Brown"),
    Person("charlie.wilson", "Charlie Wilson"),
    Person("david.lee", "David Lee"),
    Person("emma.davis", "Emma Davis"),
)

FAKE_STATUSES = ("todo", "inprogress", "done", "inprogress")

# Cycles relative to the one containing today
CYCLE_OFFSETS = (-1, 0, 1, 2)
BETS_WITHOUT_OBJECTIVE = 3


def _add_months(year: int, month: int, months: int) -> tuple:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def shape_up_cycles(today: date) -> tuple:
    """Two-month cycles (Jan-Feb, Mar-Apr, ...): one past, the current, two ahead."""
    first_month = ((today.month - 1) // 2) * 2 + 1
    cycles = []
    for number, offset in enumerate(CYCLE_OFFSETS, start=1):
        year, month = _add_months(today.year, first_month, offset * 2)
        end_year, end_month = _add_months(year, month, 1)
        start = date(year, month, 1)
        end = date(end_year, end_month, calendar.monthrange(end_year, end_month)[1])

        if end < today:
            state = CYCLE_CLOSED
        elif start <= today:
            state = CYCLE_ACTIVE
        else:
            state = CYCLE_FUTURE

        name = f"{start.strftime('%b')}-{end.strftime('%b')} {end.year}"
        cycles.append(Cycle(
            id=str(number),
            name=name,
            start=start.isoformat(),
            end=end.isoformat(),
            delivery=end.isoformat(),
            state=state,
        ))
    return tuple(cycles)


class FakeDataAdapter:
    """Builds a random but internally consistent snapshot.

    Args:
        settings: OrganisationSettings; areas, objectives and stages come
            from its catalogue
        seed: Random seed; the same seed and date give the same snapshot
        now: Date the cycles are laid out around, defaults to today
    """

    kind = AdapterKind.FAKE

    def __init__(self, settings, seed: Optional[int] = None, now: Optional[datetime] = None):
        self.settings = settings
        self.seed = seed
        self.now = now

    def _today(self) -> date:
        now = self.now or datetime.now()
        return now.date() if isinstance(now, datetime) else now

    def _areas(self) -> tuple:
        """Configured areas, or the default area with the default team."""
        if self.settings.areas:
            return tuple(self.settings.areas)
        defaults = self.settings.defaults
        return (replace(defaults.area, teams=(defaults.team,)),)

    def _bet(self, rng, number: int, objective_id: Optional[str]) -> RoadmapBet:
        area = rng.choice(self._areas())
        team = rng.choice(area.teams) if area.teams else self.settings.defaults.team
        bet_id = f"ROAD-{number}"
        labels = [f"area:{area.id}", f"team:{team.id}"]
        if objective_id:
            labels.append(f"objective:{objective_id}")
        return RoadmapBet(
            id=bet_id,
            name=f"Roadmap Item {number}",
            summary=f"Roadmap Item {number}",
            area=area_named(area.id, self.settings),
            owning_team=team_named(team.id, self.settings),
            objective_id=objective_id,
            labels=tuple(labels),
            url=create_jira_url(bet_id),
            team_display=team.id,
            area_display=area.id,
        )

    def _work_items(self, rng, bet: RoadmapBet, cycles: tuple, counter) -> list:
        stages = self.settings.stages
        items = []
        for index in range(rng.randint(1, 3)):
            key = f"CYCLE-{next(counter)}"
            stage = stages[min(index, len(stages) - 1)].id if stages else None
            cycle = rng.choice(cycles)
            items.append(WorkItem(
                id=key,
                ticket_id=key,
                name=f"{bet.name} - Cycle Item {index + 1} - ({stage})",
                summary=f"{bet.name} - Cycle Item {index + 1}",
                roadmap_bet_id=bet.id,
                effort=rng.randint(1, 8),
                area_ids=(bet.area.id,),
                teams=(bet.owning_team.id,),
                status=rng.choice(FAKE_STATUSES),
                stage=stage,
                assignee=rng.choice(FAKE_PEOPLE),
                cycle_id=cycle.id,
                cycle=CycleRef(cycle.id, cycle.name),
                url=create_jira_url(key),
            ))
        return items

    def build_snapshot(self) -> DomainSnapshot:
        rng = random.Random(self.seed)
        settings = self.settings
        cycles = shape_up_cycles(self._today())

        bets = []
        number = 0
        for objective in settings.objectives:
            for _ in range(rng.randint(1, 5)):
                number += 1
                bets.append(self._bet(rng, number, objective.id))
        for _ in range(BETS_WITHOUT_OBJECTIVE):
            number += 1
            bets.append(self._bet(rng, number, None))

        counter = itertools.count(1)
        work_items = []
        for bet in bets:
            work_items.extend(self._work_items(rng, bet, cycles, counter))

        areas = self._areas()
        return DomainSnapshot(
            cycles=cycles,
            roadmap_bets=tuple(bets),
            work_items=tuple(work_items),
            areas=areas,
            objectives=tuple(settings.objectives),
            teams=tuple(team for area in areas for team in area.teams),
            assignees=(ALL_ASSIGNEES,) + tuple(sorted(FAKE_PEOPLE, key=lambda p: p.name)),
            stages=tuple(settings.stages),
        )

    def fetch_snapshot(self) -> Result:
        try:
            snapshot = self.build_snapshot()
        except Exception as e:
            logger.exception("fake adapter failed to build a snapshot")
            return Result.fail(e)

        logger.info(
            "Generated fake snapshot: %d roadmap bets, %d work items",
            len(snapshot.roadmap_bets), len(snapshot.work_items),
        )
        return Result.ok(snapshot)

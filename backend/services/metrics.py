"""Effort rollups, progress percentages and cycle calendar metadata."""

import math
from datetime import date, datetime
from typing import Optional

# Domain statuses
STATUS_TODO = "todo"
STATUS_IN_PROGRESS = "inprogress"
STATUS_DONE = "done"
STATUS_CANCELLED = "cancelled"
STATUS_POSTPONED = "postponed"
STATUS_REPLANNED = "replanned"

# Spellings seen in tracker data and older configs
STATUS_ALIASES = {
    "to do": STATUS_TODO,
    "to-do": STATUS_TODO,
    "in progress": STATUS_IN_PROGRESS,
    "in-progress": STATUS_IN_PROGRESS,
    "completed": STATUS_DONE,
    "closed": STATUS_DONE,
    "finished": STATUS_DONE,
    "canceled": STATUS_CANCELLED,
    "rescheduled": STATUS_REPLANNED,
}

# Which effort bucket each status feeds. Replanned work moved to another
# cycle and is left out of the totals entirely.
STATUS_BUCKETS = {
    STATUS_TODO: "effortTodo",
    STATUS_IN_PROGRESS: "effortInProgress",
    STATUS_DONE: "effortDone",
    STATUS_CANCELLED: "effortCancelled",
    STATUS_POSTPONED: "effortPostponed",
    STATUS_REPLANNED: None,
}

EFFORT_FIELDS = (
    "effort",
    "effortDone",
    "effortInProgress",
    "effortTodo",
    "effortPostponed",
    "effortCancelled",
    "effortNotToDo",
)
COUNT_FIELDS = ("itemCount", "doneCount")


def normalize_status(status: Optional[str]) -> str:
    if not status:
        return STATUS_TODO
    key = status.strip().lower()
    return STATUS_ALIASES.get(key, key)


def parse_effort(value) -> float:
    """Coerce an effort value to a number; anything unusable counts as 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = value
    else:
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return number


def _effort_of(item) -> float:
    if isinstance(item, dict):
        return parse_effort(item.get("effort"))
    return parse_effort(getattr(item, "effort", None))


def _status_of(item) -> str:
    if isinstance(item, dict):
        return normalize_status(item.get("status"))
    return normalize_status(getattr(item, "status", None))


def _percent(part: float, whole: float) -> int:
    return round(part / whole * 100) if whole > 0 else 0


def calculate_effort(items) -> float:
    """Total effort of ``items``, rounded to 2 decimals."""
    return round(sum(_effort_of(item) for item in items), 2)


def _with_percentages(metrics: dict) -> dict:
    effort = metrics["effort"]
    metrics["progress"] = _percent(metrics["effortDone"], effort)
    metrics["progressWithInProgress"] = _percent(
        metrics["effortDone"] + metrics["effortInProgress"], effort
    )
    metrics["progressByItems"] = _percent(metrics["doneCount"], metrics["itemCount"])
    metrics["percentageNotToDo"] = _percent(metrics["effortNotToDo"], effort)
    return metrics


def empty_progress() -> dict:
    metrics = {field: 0 for field in EFFORT_FIELDS}
    metrics.update({field: 0 for field in COUNT_FIELDS})
    return _with_percentages(metrics)


def calculate_progress(items) -> dict:
    """Status-bucketed effort rollup for a list of work items.

    Args:
        items: WorkItem objects or dicts with ``effort`` and ``status``

    Returns:
        Dict with effort totals per bucket, item counts and percentages
    """
    metrics = empty_progress()

    for item in items:
        status = _status_of(item)
        bucket = STATUS_BUCKETS.get(status, "effortTodo")
        if bucket is None:
            continue

        effort = _effort_of(item)
        metrics["effort"] += effort
        metrics[bucket] += effort
        metrics["itemCount"] += 1
        if status == STATUS_DONE:
            metrics["doneCount"] += 1

    metrics["effortNotToDo"] = metrics["effortPostponed"] + metrics["effortCancelled"]
    for field in EFFORT_FIELDS:
        metrics[field] = round(metrics[field], 2)

    return _with_percentages(metrics)


def aggregate_progress(metrics_list) -> dict:
    """Sum several progress dicts and recompute the percentages."""
    total = empty_progress()
    for metrics in metrics_list:
        for field in EFFORT_FIELDS + COUNT_FIELDS:
            total[field] += metrics.get(field, 0)
    for field in EFFORT_FIELDS:
        total[field] = round(total[field], 2)
    return _with_percentages(total)


def _to_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def calculate_cycle_metadata(cycle, now) -> dict:
    """Calendar position of ``now`` within a cycle.

    ``now`` is passed in rather than read from the clock so the result only
    depends on its inputs.
    """
    start = _to_date(getattr(cycle, "start", None)) if cycle else None
    end = _to_date(getattr(cycle, "end", None)) if cycle else None
    today = _to_date(now)

    if not start or not end or not today:
        return {
            "startMonth": "",
            "endMonth": "",
            "daysFromStartOfCycle": 0,
            "daysInCycle": 0,
            "daysRemaining": 0,
            "currentDayPercentage": 0,
        }

    days_from_start = (today - start).days
    days_in_cycle = (end - start).days
    percentage = _percent(days_from_start, days_in_cycle)

    return {
        "startMonth": start.strftime("%b"),
        "endMonth": end.strftime("%b"),
        "daysFromStartOfCycle": days_from_start,
        "daysInCycle": days_in_cycle,
        "daysRemaining": max(0, (end - today).days),
        "currentDayPercentage": min(100, max(0, percentage)),
    }


def calculate_cycle_progress(cycle, bets_with_items, now) -> dict:
    """Cycle summary built from (bet, work items) pairs.

    Recomputed from whatever bets are passed, so a filtered bet list gives a
    filtered summary.
    """
    bet_metrics = [calculate_progress(items) for _bet, items in bets_with_items]
    progress = aggregate_progress(bet_metrics)
    progress["roadmapBetCount"] = len(bet_metrics)
    return {
        "cycle": cycle.to_dict() if cycle else None,
        "metrics": progress,
        "metadata": calculate_cycle_metadata(cycle, now),
    }

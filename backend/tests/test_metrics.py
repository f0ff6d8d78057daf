"""Tests for effort and cycle metrics."""

from datetime import datetime

import pytest

from services.metrics import (
    aggregate_progress,
    calculate_cycle_metadata,
    calculate_cycle_progress,
    calculate_effort,
    calculate_progress,
    normalize_status,
    parse_effort,
)
from services.models import Cycle


@pytest.fixture
def cycle():
    return Cycle("1", "Jan-Feb 2024", "2024-01-01", "2024-02-29", "2024-02-29", "active")


class TestParseEffort:
    """Test effort coercion."""

    @pytest.mark.parametrize("value,expected", [
        (3, 3), (2.5, 2.5), ("4", 4.0), (" 1.5 ", 1.5),
        (None, 0), ("lots", 0), (float("nan"), 0), (True, 0), ({}, 0),
    ])
    def test_parse_effort(self, value, expected):
        """Non-numeric effort should count as 0."""
        assert parse_effort(value) == expected

    def test_rollup_ignores_bad_effort(self):
        """Non-numeric effort contributes 0, not NaN."""
        items = [{"effort": 2}, {"effort": "n/a"}, {"effort": 1.25}]
        assert calculate_effort(items) == 3.25


class TestCalculateProgress:
    """Test status-bucketed rollups."""

    def test_buckets(self, make_item):
        """Effort should be split by status."""
        items = [
            make_item("1", "A", "done", 3),
            make_item("2", "A", "inprogress", 2),
            make_item("3", "A", "todo", 5),
            make_item("4", "A", "cancelled", 1),
            make_item("5", "A", "postponed", 1),
            make_item("6", "A", "replanned", 100),
        ]
        metrics = calculate_progress(items)
        assert metrics["effort"] == 12
        assert metrics["effortDone"] == 3
        assert metrics["effortInProgress"] == 2
        assert metrics["effortTodo"] == 5
        assert metrics["effortNotToDo"] == 2
        assert metrics["itemCount"] == 5
        assert metrics["doneCount"] == 1
        assert metrics["progress"] == 25
        assert metrics["progressWithInProgress"] == 42
        assert metrics["progressByItems"] == 20

    def test_status_aliases(self):
        """Tracker spellings should be normalised."""
        assert normalize_status("In Progress") == "inprogress"
        assert normalize_status("Closed") == "done"
        assert normalize_status("Canceled") == "cancelled"
        assert normalize_status(None) == "todo"

    def test_empty(self):
        """No items gives zero progress without dividing by zero."""
        metrics = calculate_progress([])
        assert metrics["effort"] == 0
        assert metrics["progress"] == 0

    def test_aggregate(self, make_item):
        """Aggregates sum efforts and recompute percentages."""
        first = calculate_progress([make_item("1", "A", "done", 2)])
        second = calculate_progress([make_item("2", "A", "todo", 2)])
        total = aggregate_progress([first, second])
        assert total["effort"] == 4
        assert total["effortDone"] == 2
        assert total["progress"] == 50


class TestCycleMetadata:
    """Test calendar metadata."""

    def test_mid_cycle(self, cycle):
        """Position within the cycle depends only on the given time."""
        meta = calculate_cycle_metadata(cycle, datetime(2024, 1, 30))
        assert meta["startMonth"] == "Jan"
        assert meta["endMonth"] == "Feb"
        assert meta["daysInCycle"] == 59
        assert meta["daysFromStartOfCycle"] == 29
        assert meta["daysRemaining"] == 30
        assert meta["currentDayPercentage"] == 49

    def test_clamped(self, cycle):
        """Percentage stays within 0..100."""
        assert calculate_cycle_metadata(cycle, datetime(2023, 12, 1))["currentDayPercentage"] == 0
        assert calculate_cycle_metadata(cycle, datetime(2024, 6, 1))["currentDayPercentage"] == 100

    def test_missing_dates(self):
        """Cycles without usable dates give empty metadata."""
        broken = Cycle("x", "x", "", "", "", "future")
        assert calculate_cycle_metadata(broken, datetime(2024, 1, 1))["daysInCycle"] == 0

    def test_cycle_progress(self, cycle, make_item):
        """Cycle summary is built from the bets passed in."""
        bets = [
            (None, [make_item("1", "A", "done", 4)]),
            (None, [make_item("2", "A", "inprogress", 4)]),
        ]
        summary = calculate_cycle_progress(cycle, bets, datetime(2024, 1, 30))
        assert summary["cycle"]["id"] == "1"
        assert summary["metrics"]["effort"] == 8
        assert summary["metrics"]["progress"] == 50
        assert summary["metrics"]["roadmapBetCount"] == 2
        assert summary["metadata"]["startMonth"] == "Jan"

"""Extraction primitives for raw Jira issue and sprint payloads.

Every function here tolerates missing data: absent values come back as
``None`` or an empty list, never as an exception.
"""

import re
from datetime import datetime
from typing import Callable, Optional

from services.models import (
    CYCLE_ACTIVE,
    CYCLE_CLOSED,
    CYCLE_FUTURE,
    Cycle,
    Person,
)

EPOCH_DATE = "1970-01-01"

# Jira sprint states onto cycle lifecycle states
SPRINT_STATES = {
    "future": CYCLE_FUTURE,
    "active": CYCLE_ACTIVE,
    "closed": CYCLE_CLOSED,
}

_BRACKET_PREFIX = re.compile(r"^\s*\[[^\]]*\]\s*")
_BRACKET_SUFFIX = re.compile(r"\s*\[[^\]]*\]\s*$")


def or_default(value, default):
    """Return ``value`` unless it is ``None``."""
    return default if value is None else value


def first_present(*suppliers: Callable):
    """Call each supplier in turn and return the first non-empty result.

    Suppliers after the first hit are never called, so later (more expensive
    or less trusted) lookups only run when earlier ones produced nothing.
    """
    for supplier in suppliers:
        value = supplier()
        if value is None:
            continue
        if isinstance(value, (list, tuple, str, dict)) and not value:
            continue
        return value
    return None


def _fields(issue: dict) -> dict:
    return (issue or {}).get("fields") or {}


def extract_labels_with_prefix(labels: Optional[list], prefix: str) -> list:
    """Return the suffixes of all ``prefix:value`` labels, in label order.

    ``extract_labels_with_prefix(["area:platform", "team:core"], "area")``
    returns ``["platform"]``.
    """
    marker = prefix.rstrip(":") + ":"
    values = []
    for label in labels or []:
        if not isinstance(label, str):
            continue
        label = label.strip()
        if label.startswith(marker):
            values.append(label[len(marker):])
    return values


def extract_labels(issue: dict) -> list:
    return list(_fields(issue).get("labels") or [])


def extract_custom_field(issue: dict, field_key: str):
    """Return a field value or ``None`` when the field is absent or null."""
    if not field_key:
        return None
    return _fields(issue).get(field_key)


def extract_parent(issue: dict) -> Optional[str]:
    parent = _fields(issue).get("parent")
    if not isinstance(parent, dict):
        return None
    return parent.get("key") or None


def extract_assignee(issue: dict) -> Optional[Person]:
    assignee = _fields(issue).get("assignee")
    if not isinstance(assignee, dict) or not assignee.get("accountId"):
        return None
    return Person(
        id=assignee["accountId"],
        name=assignee.get("displayName") or assignee["accountId"],
    )


def extract_all_assignees(issues: list) -> list:
    """Distinct assignees across ``issues``, sorted by display name."""
    people = {}
    for issue in issues:
        person = extract_assignee(issue)
        if person and person.id not in people:
            people[person.id] = person
    return sorted(people.values(), key=lambda p: (p.name.lower(), p.id))


def _sprint_value_id(value) -> Optional[str]:
    if isinstance(value, dict):
        sprint_id = value.get("id")
        return str(sprint_id) if sprint_id is not None else None
    if isinstance(value, bool) or value is None or value == "":
        return None
    if isinstance(value, (int, float, str)):
        return str(value)
    return None


def extract_sprint_id(issue: dict, field_keys, prefer_last: bool = False) -> Optional[str]:
    """Find the sprint an issue is scheduled in.

    Args:
        issue: Raw Jira issue
        field_keys: Candidate field keys tried in order, e.g.
            ``("sprint", "customfield_10020")``
        prefer_last: When the field holds several sprints, take the last
            (most recent) one instead of the first

    Returns:
        Sprint id as a string, or None when no candidate field carries one
    """
    if isinstance(field_keys, str):
        field_keys = (field_keys,)

    for field_key in field_keys:
        value = extract_custom_field(issue, field_key)
        if isinstance(value, list):
            if not value:
                continue
            value = value[-1] if prefer_last else value[0]
        sprint_id = _sprint_value_id(value)
        if sprint_id:
            return sprint_id
    return None


def extract_stage_from_name(name: Optional[str]) -> Optional[str]:
    """Read the stage out of the last ``(...)`` group in an issue name.

    "Checkout flow (S1)" gives "s1". Names without a closing parenthesis
    after the last opening one, or with an empty group, give None.
    """
    if not name:
        return None
    start = name.rfind("(")
    if start == -1:
        return None
    end = name.find(")", start)
    if end == -1:
        return None
    stage = name[start + 1:end].strip().lower()
    return stage or None


def clean_roadmap_name(name: Optional[str]) -> str:
    """Strip a leading ``[TAG]`` and a trailing ``[TAG]`` from a name."""
    if not name:
        return ""
    cleaned = _BRACKET_PREFIX.sub("", name, count=1)
    cleaned = _BRACKET_SUFFIX.sub("", cleaned, count=1)
    return cleaned.strip()


def map_jira_status(status: Optional[dict], mapping: dict, fallback: str = "todo") -> str:
    """Translate a Jira status into a domain status.

    The mapping is keyed by status id; a lowercased status name is accepted
    as a second key so configs can be written by hand.
    """
    if not status:
        return fallback
    status_id = status.get("id")
    if status_id is not None and str(status_id) in mapping:
        return mapping[str(status_id)]
    name = (status.get("name") or "").strip().lower()
    if name and name in mapping:
        return mapping[name]
    return fallback


def _parse_date(date_str: Optional[str]) -> Optional[datetime]:
    """Parse Jira date string."""
    if not date_str:
        return None

    formats = [
        "%Y-%m-%dT%H:%M:%S.%f%z",
        "%Y-%m-%dT%H:%M:%S%z",
        "%Y-%m-%dT%H:%M:%S.%f",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d",
    ]

    for fmt in formats:
        try:
            return datetime.strptime(date_str, fmt)
        except ValueError:
            continue

    return None


def to_iso_date(value, fallback: Optional[str] = EPOCH_DATE) -> Optional[str]:
    """Normalise a date or timestamp to ``YYYY-MM-DD``."""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d")
    parsed = _parse_date(value) if isinstance(value, str) else None
    if parsed is None:
        return fallback
    return parsed.strftime("%Y-%m-%d")


def jira_sprint_to_cycle(sprint: dict) -> Cycle:
    """Convert a Jira sprint record into a Cycle.

    Delivery is the sprint start, matching how sprints are planned; dates
    keep only their calendar part. Sprints not yet scheduled have no dates.
    """
    start = to_iso_date(sprint.get("startDate") or sprint.get("start"), fallback=None)
    end = to_iso_date(sprint.get("endDate") or sprint.get("end"), fallback=None)
    state = SPRINT_STATES.get(str(sprint.get("state", "")).lower(), CYCLE_FUTURE)
    return Cycle(
        id=str(sprint.get("id")),
        name=sprint.get("name") or f"Sprint {sprint.get('id')}",
        start=start,
        end=end,
        delivery=start,
        state=state,
    )


def create_jira_url(key: str, host: Optional[str] = None) -> str:
    """Browser link for an issue key."""
    if not host:
        return f"https://example.com/browse/{key}"
    base = host.rstrip("/").replace("/rest", "")
    return f"{base}/browse/{key}"

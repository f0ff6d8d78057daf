"""Choose and construct the adapter named by the configuration."""

import logging
from urllib.parse import urlparse

from services.adapters.base import AdapterKind
from services.adapters.default import DefaultJiraAdapter
from services.adapters.fake import FakeDataAdapter
from services.adapters.organisation import OrganisationJiraAdapter
from services.jira_client import JiraClient
from services.result import Result

logger = logging.getLogger(__name__)

TRACKER_ADAPTERS = {
    AdapterKind.DEFAULT: DefaultJiraAdapter,
    AdapterKind.ORGANISATION: OrganisationJiraAdapter,
}


def parse_kind(source: str) -> AdapterKind:
    """Map a CYCLE_DATA_SOURCE value onto an AdapterKind.

    Raises:
        ValueError: for unknown sources
    """
    try:
        return AdapterKind((source or AdapterKind.DEFAULT.value).strip().lower())
    except ValueError:
        valid = ", ".join(kind.value for kind in AdapterKind)
        raise ValueError(f"Unknown cycle data source {source!r}, expected one of: {valid}")


def validate_connection(settings) -> list:
    """Return a list of problems with the Jira connection settings."""
    problems = []
    parsed = urlparse(settings.jira_host or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        problems.append("JIRA_HOST must be an http(s) URL")
    if not settings.jira_email:
        problems.append("JIRA_EMAIL is required")
    if not settings.jira_token:
        problems.append("JIRA_TOKEN is required")
    if not isinstance(settings.board_id, int) or settings.board_id <= 0:
        problems.append("JIRA_BOARD_ID must be a positive integer")
    return problems


def create_adapter(settings, client=None) -> Result:
    """Build the adapter selected by ``settings.source``.

    Args:
        settings: OrganisationSettings
        client: Optional tracker client; a JiraClient is built from the
            settings when omitted

    Returns:
        Result holding the adapter, or a ValueError describing the bad config
    """
    try:
        kind = parse_kind(settings.source)
    except ValueError as e:
        return Result.fail(e)

    if kind is AdapterKind.FAKE:
        logger.info("Using fake cycle data")
        return Result.ok(FakeDataAdapter(settings, seed=settings.fake_seed))

    problems = validate_connection(settings)
    if problems:
        return Result.fail(ValueError("Invalid Jira configuration: " + "; ".join(problems)))

    if client is None:
        client = JiraClient(settings.jira_host, settings.jira_email, settings.jira_token)

    logger.info("Using %s adapter against %s", kind.value, settings.jira_host)
    return Result.ok(TRACKER_ADAPTERS[kind](client, settings))

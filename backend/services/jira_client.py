"""Thin Jira REST client used by the adapters."""

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class TrackerError(Exception):
    """A call to the issue tracker failed (network, auth or bad payload)."""


class JiraClient:
    """Read-only access to sprints and issues.

    No retries or caching; failures surface as TrackerError.
    """

    def __init__(self, server: str, email: str, token: str, timeout: int = 30):
        self.server = server.rstrip("/")
        self.email = email
        self.token = token
        self.timeout = timeout

    def _request(self, endpoint: str, params: Optional[dict] = None):
        """Make authenticated request to Jira API."""
        try:
            response = requests.get(
                f"{self.server}{endpoint}",
                auth=(self.email, self.token),
                headers={"Accept": "application/json"},
                params=params,
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise TrackerError(f"Jira request to {endpoint} failed: {e}") from e
        except ValueError as e:
            raise TrackerError(f"Jira returned invalid JSON for {endpoint}") from e

    def get_sprints(self, board_id: int) -> list:
        """Get all sprints (future, active and closed) for a board."""
        all_sprints = []
        start_at = 0
        max_results = 50

        while True:
            data = self._request(
                f"/rest/agile/1.0/board/{board_id}/sprint",
                params={"startAt": start_at, "maxResults": max_results}
            )

            sprints = data.get("values", [])
            all_sprints.extend(sprints)

            if data.get("isLast") or len(sprints) < max_results:
                break

            start_at += max_results

        logger.debug("Fetched %d sprints for board %s", len(all_sprints), board_id)
        return all_sprints

    def search_issues(self, jql: str, fields: Optional[list] = None) -> list:
        """Run a JQL search and return every matching issue.

        Args:
            jql: JQL query
            fields: Field keys to return; None asks Jira for all fields
        """
        all_issues = []
        start_at = 0
        max_results = 100

        params = {"jql": jql, "maxResults": max_results}
        params["fields"] = ",".join(fields) if fields else "*all"

        while True:
            params["startAt"] = start_at
            data = self._request("/rest/api/3/search", params=dict(params))

            issues = data.get("issues", [])
            all_issues.extend(issues)

            total = data.get("total")
            if len(issues) < max_results or (total is not None and start_at + len(issues) >= total):
                break

            start_at += max_results

        logger.debug("JQL %r matched %d issues", jql, len(all_issues))
        return all_issues

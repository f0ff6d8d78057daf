"""Tests for JiraClient."""

from unittest.mock import Mock, patch

import pytest
import requests

from services.jira_client import JiraClient, TrackerError


class TestJiraClientInit:
    """Test client initialization."""

    def test_init_strips_trailing_slash(self):
        """Server URL should have trailing slash removed."""
        client = JiraClient(
            server="https://test.atlassian.net/",
            email="test@example.com",
            token="token123"
        )
        assert client.server == "https://test.atlassian.net"

    def test_init_stores_credentials(self, mock_jira_credentials):
        """Credentials should be stored correctly."""
        client = JiraClient(**mock_jira_credentials)
        assert client.email == mock_jira_credentials["email"]
        assert client.token == mock_jira_credentials["token"]


class TestRequest:
    """Test the authenticated request helper."""

    @patch("services.jira_client.requests.get")
    def test_sends_basic_auth(self, mock_get, mock_jira_credentials):
        """Requests should carry basic auth and JSON accept header."""
        mock_get.return_value = Mock(json=lambda: {"ok": True})
        client = JiraClient(**mock_jira_credentials)

        assert client._request("/rest/api/3/myself") == {"ok": True}

        args, kwargs = mock_get.call_args
        assert args[0] == "https://test.atlassian.net/rest/api/3/myself"
        assert kwargs["auth"] == ("test@example.com", "test-token-123")
        assert kwargs["headers"] == {"Accept": "application/json"}
        assert kwargs["timeout"] == 30

    @patch("services.jira_client.requests.get")
    def test_http_error_becomes_tracker_error(self, mock_get, mock_jira_credentials):
        """HTTP failures should raise TrackerError."""
        response = Mock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("401 Unauthorized")
        mock_get.return_value = response
        client = JiraClient(**mock_jira_credentials)

        with pytest.raises(TrackerError, match="401"):
            client._request("/rest/api/3/search")

    @patch("services.jira_client.requests.get")
    def test_connection_error_becomes_tracker_error(self, mock_get, mock_jira_credentials):
        """Network failures should raise TrackerError."""
        mock_get.side_effect = requests.exceptions.ConnectionError("no route")
        client = JiraClient(**mock_jira_credentials)

        with pytest.raises(TrackerError):
            client.get_sprints(1)


class TestPagination:
    """Test paginated fetches."""

    def test_get_sprints_paginates(self, mock_jira_credentials):
        """Should keep fetching until isLast."""
        client = JiraClient(**mock_jira_credentials)
        pages = [
            {"values": [{"id": i} for i in range(50)], "isLast": False},
            {"values": [{"id": 50}], "isLast": True},
        ]

        with patch.object(client, '_request', side_effect=pages) as mock_request:
            sprints = client.get_sprints(7)

        assert len(sprints) == 51
        assert mock_request.call_count == 2
        second_params = mock_request.call_args_list[1][1]["params"]
        assert second_params["startAt"] == 50

    def test_search_issues_paginates(self, mock_jira_credentials):
        """Should page through search results using total."""
        client = JiraClient(**mock_jira_credentials)
        pages = [
            {"issues": [{"key": f"P-{i}"} for i in range(100)], "total": 120},
            {"issues": [{"key": f"P-{i}"} for i in range(100, 120)], "total": 120},
        ]

        with patch.object(client, '_request', side_effect=pages) as mock_request:
            issues = client.search_issues('issuetype = "Epic"', ["summary", "labels"])

        assert len(issues) == 120
        first_params = mock_request.call_args_list[0][1]["params"]
        assert first_params["fields"] == "summary,labels"
        assert first_params["jql"] == 'issuetype = "Epic"'
        assert mock_request.call_args_list[1][1]["params"]["startAt"] == 100

    def test_search_all_fields(self, mock_jira_credentials):
        """No field list asks for every field."""
        client = JiraClient(**mock_jira_credentials)

        with patch.object(client, '_request', return_value={"issues": []}) as mock_request:
            assert client.search_issues("project = X") == []

        assert mock_request.call_args[1]["params"]["fields"] == "*all"

"""
Unit tests for the Jira REST client. No network access: requests.get is mocked.
"""
from unittest.mock import Mock, patch

import pytest
import requests
from requests.auth import HTTPBasicAuth

from relnote_tickets.services.jira_client import (
    JiraClient,
    JiraClientError,
    extract_adf_text,
    extract_description,
)


def _page(issues, total):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"issues": issues, "total": total}
    return response


def _issues(*keys):
    return [{"key": key, "fields": {}} for key in keys]


def test_search_collects_every_page():
    """Test that paging continues until Jira's total is reached."""
    client = JiraClient("https://issues.example.com", "jira-key", chunk_size=2)
    with patch("relnote_tickets.services.jira_client.requests.get") as mock_get:
        mock_get.side_effect = [
            _page(_issues("P-1", "P-2"), total=5),
            _page(_issues("P-3", "P-4"), total=5),
            _page(_issues("P-5"), total=5),
        ]

        result = client.search("project = P")

    assert [issue["key"] for issue in result] == ["P-1", "P-2", "P-3", "P-4", "P-5"]
    start_values = [call.kwargs["params"]["startAt"] for call in mock_get.call_args_list]
    assert start_values == [0, 2, 4]
    params = mock_get.call_args.kwargs["params"]
    assert params["jql"] == "project = P"
    assert params["maxResults"] == 2
    assert params["fields"] == "*all"
    assert params["validateQuery"] == "strict"


def test_fetch_by_keys_chunks_the_keys():
    """Test that keys are requested in chunks and nonexistent keys don't fail the search."""
    client = JiraClient("https://issues.example.com", "jira-key", chunk_size=2)
    with patch("relnote_tickets.services.jira_client.requests.get") as mock_get:
        mock_get.side_effect = [
            _page(_issues("P-1", "P-2"), total=2),
            _page(_issues("P-3"), total=1),
        ]

        result = client.fetch_by_keys(["P-1", "P-2", "P-3"])

    assert [issue["key"] for issue in result] == ["P-1", "P-2", "P-3"]
    jqls = [call.kwargs["params"]["jql"] for call in mock_get.call_args_list]
    assert jqls == ["key in (P-1,P-2)", "key in (P-3)"]
    assert all(
        call.kwargs["params"]["validateQuery"] == "warn" for call in mock_get.call_args_list
    )


def test_bearer_token_by_default():
    client = JiraClient("https://issues.example.com", "jira-key")
    with patch("relnote_tickets.services.jira_client.requests.get") as mock_get:
        mock_get.return_value = _page([], total=0)

        client.search("project = P")

    kwargs = mock_get.call_args.kwargs
    assert kwargs["headers"]["Authorization"] == "Bearer jira-key"
    assert kwargs["auth"] is None
    assert mock_get.call_args.args[0] == "https://issues.example.com/rest/api/2/search"


def test_basic_auth_when_user_is_set():
    client = JiraClient("https://example.atlassian.net", "api-token", user="writer@example.com")
    with patch("relnote_tickets.services.jira_client.requests.get") as mock_get:
        mock_get.return_value = _page([], total=0)

        client.search("project = P")

    kwargs = mock_get.call_args.kwargs
    assert isinstance(kwargs["auth"], HTTPBasicAuth)
    assert kwargs["auth"].username == "writer@example.com"
    assert "Authorization" not in kwargs["headers"]


def test_http_error_raises():
    client = JiraClient("https://issues.example.com", "jira-key")
    with patch("relnote_tickets.services.jira_client.requests.get") as mock_get:
        response = Mock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("400 Bad Request")
        mock_get.return_value = response

        with pytest.raises(JiraClientError) as exc_info:
            client.search("project = ")

    assert "400" in str(exc_info.value)


def test_timeout_raises():
    client = JiraClient("https://issues.example.com", "jira-key", timeout=5)
    with patch("relnote_tickets.services.jira_client.requests.get") as mock_get:
        mock_get.side_effect = requests.exceptions.Timeout()

        with pytest.raises(JiraClientError) as exc_info:
            client.fetch_by_keys(["P-1"])

    assert "5 seconds" in str(exc_info.value)


def test_extract_description_handles_plain_and_adf():
    adf = {
        "type": "doc",
        "content": [
            {"type": "paragraph", "content": [{"type": "text", "text": "First "}, {"type": "text", "text": "line"}]},
            {"type": "paragraph", "content": [{"type": "text", "text": "Second line"}]},
        ],
    }

    assert extract_description("Plain text") == "Plain text"
    assert extract_description(adf) == "First line\nSecond line"
    assert extract_adf_text(adf) == "First line\nSecond line"
    assert extract_description(None) is None
    assert extract_description("") is None

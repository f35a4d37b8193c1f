"""
Jira client for downloading issues through the REST API.

This module provides read-only access to Jira issues. Keys and searches both go
through the JQL search endpoint so that every issue arrives in the same shape.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

import requests
from requests.auth import HTTPBasicAuth

from relnote_tickets.errors import TrackerClientError

logger = logging.getLogger(__name__)

SEARCH_ENDPOINT = "/rest/api/2/search"


class JiraClientError(TrackerClientError):
    """Raised when Jira API calls fail."""
    pass


def extract_description(description_field: Any) -> Optional[str]:
    """
    Extract text from Jira description field (handles ADF format).

    Args:
        description_field: Description field from Jira (can be string or ADF dict)

    Returns:
        Plain text description, or None if the issue has no description
    """
    if not description_field:
        return None

    if isinstance(description_field, str):
        return description_field

    if isinstance(description_field, dict):
        return extract_adf_text(description_field)

    return None


def extract_adf_text(adf_content: Dict[str, Any]) -> str:
    """
    Extract plain text from Atlassian Document Format (ADF).

    Paragraphs are separated by newlines.

    Args:
        adf_content: ADF content dictionary

    Returns:
        Plain text representation
    """
    if not isinstance(adf_content, dict):
        return ""

    paragraphs = []

    def extract_node(node: Dict[str, Any], parts: List[str]) -> None:
        if node.get("type") == "text":
            parts.append(node.get("text", ""))
        elif "content" in node:
            for child in node["content"]:
                extract_node(child, parts)

    for block in adf_content.get("content", []):
        parts: List[str] = []
        extract_node(block, parts)
        paragraphs.append("".join(parts))

    return "\n".join(paragraphs)


class JiraClient:
    """Client for fetching Jira issue data (read-only)."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        user: Optional[str] = None,
        timeout: int = 90,
        chunk_size: int = 30
    ):
        """
        Initialize Jira client.

        Args:
            base_url: Jira instance URL (e.g., "https://issues.example.com")
            api_key: Personal access token, or API token when user is set
            user: Account email for basic authentication (Jira Cloud); bearer token when None
            timeout: Request timeout in seconds
            chunk_size: Maximum number of keys or results in a single request
        """
        self.jira_url = base_url.rstrip("/")
        self.api_key = api_key
        self.user = user
        self.timeout = timeout
        self.chunk_size = chunk_size

        if not self.jira_url:
            raise JiraClientError("Jira host cannot be empty")
        if not self.api_key:
            raise JiraClientError("Jira API key cannot be empty")
        if self.chunk_size < 1:
            raise JiraClientError("Jira chunk size must be positive")

    def _make_request(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Make authenticated GET request to Jira API.

        Args:
            endpoint: API endpoint (e.g., "/rest/api/2/search")
            params: Query parameters

        Returns:
            JSON response from Jira API

        Raises:
            JiraClientError: If request fails
        """
        url = f"{self.jira_url}{endpoint}"
        headers = {"Accept": "application/json"}
        auth = None
        if self.user:
            auth = HTTPBasicAuth(self.user, self.api_key)
        else:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = requests.get(
                url,
                params=params,
                auth=auth,
                headers=headers,
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout:
            raise JiraClientError(
                f"Jira API request timed out after {self.timeout} seconds. "
                f"This may indicate Jira is slow or experiencing issues."
            )
        except requests.exceptions.RequestException as e:
            raise JiraClientError(f"Jira API request failed: {str(e)}")
        except ValueError as e:
            raise JiraClientError(f"Jira returned a response that isn't valid JSON: {str(e)}")

    def _search_all(self, jql: str, validate_query: str = "strict") -> List[Dict[str, Any]]:
        """
        Run a JQL search and collect every page of results.

        Args:
            jql: JQL query string
            validate_query: Jira's validateQuery mode; "warn" tolerates unknown keys

        Returns:
            List of raw issue dictionaries in the order that Jira returned them
        """
        issues: List[Dict[str, Any]] = []
        start_at = 0

        while True:
            response = self._make_request(
                SEARCH_ENDPOINT,
                {
                    "jql": jql,
                    "startAt": start_at,
                    "maxResults": self.chunk_size,
                    "fields": "*all",
                    "validateQuery": validate_query,
                }
            )
            page = response.get("issues", [])
            issues.extend(page)
            start_at += len(page)

            if not page or start_at >= response.get("total", 0):
                break

        return issues

    def fetch_by_keys(self, keys: Sequence[str]) -> List[Dict[str, Any]]:
        """
        Fetch issues by their keys, in chunks of chunk_size keys per search.

        Keys that don't exist are left out of the result rather than failing the request.

        Args:
            keys: Jira issue keys (e.g., ["PROJ-1", "PROJ-2"])

        Returns:
            List of raw issue dictionaries
        """
        issues: List[Dict[str, Any]] = []
        try:
            for start in range(0, len(keys), self.chunk_size):
                chunk = keys[start:start + self.chunk_size]
                logger.debug("Requesting %d issues from Jira.", len(chunk))
                jql = f"key in ({','.join(chunk)})"
                issues.extend(self._search_all(jql, validate_query="warn"))
            return issues
        except JiraClientError:
            raise
        except Exception as e:
            raise JiraClientError(f"Failed to fetch issues {', '.join(keys)}: {str(e)}")

    def search(self, query: str) -> List[Dict[str, Any]]:
        """
        Fetch all issues that match a JQL search.

        Args:
            query: JQL query string

        Returns:
            List of raw issue dictionaries
        """
        try:
            logger.debug("Searching Jira: %s", query)
            return self._search_all(query)
        except JiraClientError:
            raise
        except Exception as e:
            raise JiraClientError(f"Failed to search issues with {query!r}: {str(e)}")

    @staticmethod
    def ticket_key(issue: Dict[str, Any]) -> str:
        """The key that a key query uses to request this issue."""
        return issue["key"]

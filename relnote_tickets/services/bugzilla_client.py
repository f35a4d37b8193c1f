"""
Bugzilla client for downloading bugs through the REST API.

This module provides read-only access to Bugzilla. It never modifies bugs.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from relnote_tickets.errors import TrackerClientError

logger = logging.getLogger(__name__)

# Always include these fields in Bugzilla requests. We process some of their content.
INCLUDED_FIELDS = ["_default", "pool", "flags"]


class BugzillaClientError(TrackerClientError):
    """Raised when Bugzilla API calls fail."""
    pass


class BugzillaClient:
    """Client for fetching Bugzilla bugs (read-only)."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: int = 90,
        extra_fields: Optional[Sequence[str]] = None
    ):
        """
        Initialize Bugzilla client.

        Args:
            base_url: Bugzilla instance URL (e.g., "https://bugzilla.example.com")
            api_key: Bugzilla API key, sent as a bearer token
            timeout: Request timeout in seconds
            extra_fields: Custom field names to request on top of the default fields
        """
        self.bugzilla_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.include_fields = list(INCLUDED_FIELDS)
        for field in extra_fields or []:
            if field not in self.include_fields:
                self.include_fields.append(field)

        if not self.bugzilla_url:
            raise BugzillaClientError("Bugzilla host cannot be empty")
        if not self.api_key:
            raise BugzillaClientError("Bugzilla API key cannot be empty")

    def _make_request(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Make authenticated GET request to Bugzilla API.

        Args:
            endpoint: API endpoint, optionally with a query string (e.g., "/rest/bug?product=Foo")
            params: Additional query parameters

        Returns:
            JSON response from Bugzilla API

        Raises:
            BugzillaClientError: If the request fails or Bugzilla reports an error
        """
        url = f"{self.bugzilla_url}{endpoint}"
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            response = requests.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise BugzillaClientError(
                f"Bugzilla API request timed out after {self.timeout} seconds"
            )
        except requests.exceptions.RequestException as e:
            raise BugzillaClientError(f"Bugzilla API request failed: {str(e)}")

        try:
            data = response.json()
        except ValueError:
            data = None

        # Bugzilla reports errors in the body, often together with an HTTP error status
        if isinstance(data, dict) and data.get("error"):
            raise BugzillaClientError(
                f"Bugzilla returned error {data.get('code')}: {data.get('message', 'unknown error')}"
            )

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise BugzillaClientError(f"Bugzilla API request failed: {str(e)}")

        if not isinstance(data, dict):
            raise BugzillaClientError(f"Bugzilla returned an unexpected response from {endpoint}")
        return data

    def _bugs(self, endpoint: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        params = dict(params)
        params["include_fields"] = ",".join(self.include_fields)
        # A limit of 0 asks Bugzilla for all matching bugs at once
        params["limit"] = 0

        response = self._make_request(endpoint, params)
        bugs = response.get("bugs")
        if not isinstance(bugs, list):
            raise BugzillaClientError("Bugzilla response is missing the list of bugs")
        return bugs

    def fetch_by_keys(self, keys: Sequence[str]) -> List[Dict[str, Any]]:
        """
        Fetch bugs by their IDs in a single request.

        Bugzilla silently leaves out IDs that don't exist.

        Args:
            keys: Bug IDs as strings

        Returns:
            List of raw bug dictionaries
        """
        if not keys:
            return []
        try:
            logger.debug("Requesting %d bugs from Bugzilla.", len(keys))
            return self._bugs("/rest/bug", {"id": ",".join(keys)})
        except BugzillaClientError:
            raise
        except Exception as e:
            raise BugzillaClientError(f"Failed to fetch bugs {', '.join(keys)}: {str(e)}")

    def search(self, query: str) -> List[Dict[str, Any]]:
        """
        Fetch all bugs that match a Bugzilla search.

        Args:
            query: Search in the Bugzilla URL query format (e.g., "product=Foo&component=bar")

        Returns:
            List of raw bug dictionaries
        """
        try:
            logger.debug("Searching Bugzilla: %s", query)
            return self._bugs(f"/rest/bug?{query.lstrip('?')}", {})
        except BugzillaClientError:
            raise
        except Exception as e:
            raise BugzillaClientError(f"Failed to search bugs with {query!r}: {str(e)}")

    @staticmethod
    def ticket_key(bug: Dict[str, Any]) -> str:
        """The key that a key query uses to request this bug."""
        return str(bug["id"])

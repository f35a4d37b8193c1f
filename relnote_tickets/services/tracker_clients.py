"""
The common interface of tracker clients and the factory that builds them.
"""
from typing import Any, Dict, List, Optional, Protocol, Sequence

from relnote_tickets.config import Settings, resolve_api_key
from relnote_tickets.models.enums import Tracker
from relnote_tickets.models.tracker import TrackerInstance
from relnote_tickets.services.bugzilla_client import BugzillaClient
from relnote_tickets.services.jira_client import JiraClient


class TrackerClient(Protocol):
    """What the fetch orchestrator needs from a tracker client."""

    def fetch_by_keys(self, keys: Sequence[str]) -> List[Dict[str, Any]]:
        ...

    def search(self, query: str) -> List[Dict[str, Any]]:
        ...

    def ticket_key(self, raw: Dict[str, Any]) -> str:
        ...


def _bugzilla_client(instance: TrackerInstance, api_key: str, settings: Settings) -> BugzillaClient:
    fields = instance.fields
    custom_fields = (
        fields.doc_type + fields.doc_text + fields.docs_contact
        + fields.target_release + fields.subsystems
    )
    return BugzillaClient(
        instance.host,
        api_key,
        timeout=settings.tracker_timeout,
        extra_fields=custom_fields
    )


def _jira_client(instance: TrackerInstance, api_key: str, settings: Settings) -> JiraClient:
    return JiraClient(
        instance.host,
        api_key,
        user=instance.user,
        timeout=settings.tracker_timeout,
        chunk_size=settings.jira_chunk_size
    )


CLIENT_BUILDERS = {
    Tracker.BUGZILLA: _bugzilla_client,
    Tracker.JIRA: _jira_client,
}


def create_client(
    tracker: Tracker,
    instance: TrackerInstance,
    settings: Optional[Settings] = None
) -> TrackerClient:
    """
    Build an authenticated client for the given tracker.

    Raises:
        ConfigurationError: If no API key is available for the tracker
    """
    settings = settings or Settings()
    api_key = resolve_api_key(tracker, instance, settings)
    return CLIENT_BUILDERS[tracker](instance, api_key, settings)

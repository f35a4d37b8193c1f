"""
Shared fixtures: tracker configuration, raw ticket builders, and fake tracker clients.
"""
import time
from types import SimpleNamespace
from typing import Any, Callable, Dict, List

import pytest

from relnote_tickets.models import Tracker, TrackersConfig

BUGZILLA_HOST = "https://bugzilla.example.com"
JIRA_HOST = "https://issues.example.com"


@pytest.fixture(autouse=True)
def clear_api_key_env(monkeypatch):
    """Keep credentials from the developer's environment out of the tests."""
    monkeypatch.delenv("BZ_API_KEY", raising=False)
    monkeypatch.delenv("JIRA_API_KEY", raising=False)


@pytest.fixture
def trackers_data() -> Dict[str, Any]:
    """The trackers configuration as it appears in trackers.yaml."""
    return {
        "bugzilla": {
            "host": BUGZILLA_HOST,
            "api_key": "bz-key",
            "fields": {
                "doc_type": "cf_doc_type",
                "doc_text": "cf_release_notes",
                "doc_text_status": "requires_doc_text",
                "docs_contact": "docs_contact",
                "target_release": ["cf_internal_target_release", "target_release"],
                "subsystems": "pool",
            },
        },
        "jira": {
            "host": JIRA_HOST,
            "api_key": "jira-key",
            "fields": {
                "doc_type": "customfield_doc_type",
                "doc_text": "customfield_doc_text",
                "doc_text_status": "customfield_doc_text_status",
                "docs_contact": "customfield_docs_contact",
                "target_release": "fixVersions",
                "subsystems": "customfield_subsystems",
            },
        },
    }


@pytest.fixture
def trackers(trackers_data) -> TrackersConfig:
    return TrackersConfig.model_validate(trackers_data)


@pytest.fixture
def bug_factory() -> Callable[..., Dict[str, Any]]:
    """Build a raw Bugzilla bug with all release note fields set."""
    def make_bug(bug_id, **fields) -> Dict[str, Any]:
        bug = {
            "id": int(bug_id),
            "summary": f"Bug {bug_id}",
            "status": "VERIFIED",
            "is_open": True,
            "priority": "high",
            "assigned_to": "developer@example.com",
            "component": ["kernel"],
            "product": "Example Linux",
            "groups": [],
            "flags": [{"name": "requires_doc_text", "status": "+"}],
            "cf_doc_type": "Bug Fix",
            "cf_release_notes": f"Release note for bug {bug_id}.",
            "docs_contact": "writer@example.com",
            "target_release": ["9.2.0"],
            "pool": {"team": {"name": "Kernel"}},
        }
        bug.update(fields)
        return bug
    return make_bug


@pytest.fixture
def issue_factory() -> Callable[..., Dict[str, Any]]:
    """Build a raw Jira issue with all release note fields set."""
    def make_issue(key, **fields) -> Dict[str, Any]:
        issue_fields = {
            "summary": f"Issue {key}",
            "description": f"Description of {key}",
            "status": {"name": "In Progress"},
            "priority": {"name": "Major"},
            "assignee": {"name": "developer", "displayName": "Developer"},
            "components": [{"name": "networking"}],
            "project": {"name": "Example Project"},
            "labels": ["release-note"],
            "security": None,
            "customfield_doc_type": {"value": "Enhancement"},
            "customfield_doc_text": f"Release note for {key}.",
            "customfield_doc_text_status": {"value": "Done"},
            "customfield_docs_contact": {"emailAddress": "writer@example.com"},
            "fixVersions": [{"name": "2.1"}],
            "customfield_subsystems": [{"value": "Networking"}],
        }
        issue_fields.update(fields)
        return {"key": key, "fields": issue_fields}
    return make_issue


class FakeTrackerClient:
    """An in-memory tracker client that records its calls and can be slowed down."""

    def __init__(self, key_of: Callable[[Dict[str, Any]], str]):
        self._key_of = key_of
        self.tickets: Dict[str, Dict[str, Any]] = {}
        self.searches: Dict[str, List[Dict[str, Any]]] = {}
        self.delays: Dict[str, float] = {}
        self.key_calls: List[List[str]] = []
        self.search_calls: List[str] = []
        self.errors: Dict[str, Exception] = {}

    def add(self, *raw_tickets: Dict[str, Any]) -> None:
        for raw in raw_tickets:
            self.tickets[self._key_of(raw)] = raw

    def add_search(self, query: str, raw_tickets: List[Dict[str, Any]]) -> None:
        self.searches[query] = list(raw_tickets)

    def fetch_by_keys(self, keys):
        self.key_calls.append(list(keys))
        time.sleep(self.delays.get("keys", 0))
        if "keys" in self.errors:
            raise self.errors["keys"]
        return [self.tickets[key] for key in keys if key in self.tickets]

    def search(self, query):
        self.search_calls.append(query)
        time.sleep(self.delays.get(query, 0))
        if query in self.errors:
            raise self.errors[query]
        return list(self.searches.get(query, []))

    def ticket_key(self, raw):
        return self._key_of(raw)


@pytest.fixture
def fake_trackers():
    """Fake clients for both trackers and a client factory that hands them out."""
    bugzilla = FakeTrackerClient(key_of=lambda bug: str(bug["id"]))
    jira = FakeTrackerClient(key_of=lambda issue: issue["key"])
    clients = {Tracker.BUGZILLA: bugzilla, Tracker.JIRA: jira}
    built: List[Tracker] = []

    def factory(tracker, instance):
        built.append(tracker)
        return clients[tracker]

    return SimpleNamespace(bugzilla=bugzilla, jira=jira, factory=factory, built=built)

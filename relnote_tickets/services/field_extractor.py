"""
Extraction of release note fields from raw Bugzilla bugs and Jira issues.

Each tracker stores the release note information in custom fields whose names
differ between instances, so every lookup goes through the project's FieldMap.
Extractors raise FieldExtractionError on any missing or malformed field; the
normalizer decides which of those failures are fatal.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from relnote_tickets.errors import FieldExtractionError
from relnote_tickets.models.enums import DocTextStatus, Tracker
from relnote_tickets.models.tracker import FieldMap, TrackerInstance

logger = logging.getLogger(__name__)

# Bugzilla uses this placeholder for an unset release
BZ_EMPTY_RELEASES = ("---",)

# Bugzilla tickets often lack the doc text flag; treat that as a proposed release note
BZ_DEFAULT_DOC_TEXT_STATUS = "?"

_MISSING = object()


def _lookup(source: Dict[str, Any], names: List[str]) -> Tuple[str, Any]:
    """Return the first configured field name present in the ticket, with its value."""
    for name in names:
        if name in source:
            return name, source[name]
    return names[0], _MISSING


def _extract_string(source: Dict[str, Any], names: List[str], label: str, ticket: str) -> str:
    """
    Read a plain string field.

    A field that exists but is unset counts as an empty string.
    """
    name, value = _lookup(source, names)
    if value is _MISSING:
        raise FieldExtractionError(label, f"The `{name}` field is missing in ticket {ticket}.")
    if value is None:
        logger.warning("Field %s is unset in ticket %s.", name, ticket)
        return ""
    if not isinstance(value, str):
        raise FieldExtractionError(
            label,
            f"The `{name}` field has an unexpected structure in ticket {ticket}: {value!r}"
        )
    return value


def _extract_option_value(source: Dict[str, Any], names: List[str], label: str, ticket: str) -> str:
    """Read a Jira select field, stored as {"value": ...}."""
    name, value = _lookup(source, names)
    if isinstance(value, dict) and isinstance(value.get("value"), str):
        return value["value"]
    if value is _MISSING:
        raise FieldExtractionError(label, f"The `{name}` field is missing in ticket {ticket}.")
    raise FieldExtractionError(
        label,
        f"The `{name}` field is missing or has an unexpected structure in ticket {ticket}: {value!r}"
    )


def _doc_text_status(value: str, ticket: str) -> DocTextStatus:
    try:
        return DocTextStatus.from_tracker_value(value)
    except ValueError as e:
        raise FieldExtractionError("doc_text_status", f"{e} (ticket {ticket})")


class BugzillaFieldExtractor:
    """Reads release note fields from Bugzilla bugs."""

    @staticmethod
    def _ticket(bug: Dict[str, Any]) -> str:
        return f"{Tracker.BUGZILLA}:{bug.get('id')}"

    def doc_type(self, bug: Dict[str, Any], fields: FieldMap) -> str:
        return _extract_string(bug, fields.doc_type, "doc_type", self._ticket(bug))

    def doc_text(self, bug: Dict[str, Any], fields: FieldMap) -> str:
        return _extract_string(bug, fields.doc_text, "doc_text", self._ticket(bug))

    def target_releases(self, bug: Dict[str, Any], fields: FieldMap) -> List[str]:
        ticket = self._ticket(bug)
        name, value = _lookup(bug, fields.target_release)
        if value is _MISSING:
            raise FieldExtractionError(
                "target_releases", f"The `{name}` field is missing in ticket {ticket}."
            )

        # Some Bugzilla instances store the release as a list, others as a string
        releases = value if isinstance(value, list) else [value]
        if not all(isinstance(release, str) for release in releases):
            raise FieldExtractionError(
                "target_releases",
                f"The `{name}` field has an unexpected structure in ticket {ticket}: {value!r}"
            )
        return [r for r in releases if r and r not in BZ_EMPTY_RELEASES]

    def subsystems(self, bug: Dict[str, Any], fields: FieldMap) -> List[str]:
        ticket = self._ticket(bug)
        name, pool = _lookup(bug, fields.subsystems)
        try:
            # A bug belongs to exactly one pool, which is owned by one team
            return [pool["team"]["name"]]
        except (KeyError, TypeError):
            raise FieldExtractionError(
                "subsystems",
                f"The `{name}` field is missing or has an unexpected structure in ticket {ticket}."
            )

    def doc_text_status(self, bug: Dict[str, Any], fields: FieldMap) -> DocTextStatus:
        ticket = self._ticket(bug)
        flags = bug.get("flags")
        if not isinstance(flags, list):
            raise FieldExtractionError(
                "doc_text_status", f"The flags are missing in ticket {ticket}."
            )

        status: Optional[str] = None
        for flag in flags:
            if isinstance(flag, dict) and flag.get("name") in fields.doc_text_status:
                status = flag.get("status")
                break

        if status is None:
            logger.warning(
                "The `%s` flag is missing in ticket %s.", fields.doc_text_status[0], ticket
            )
            status = BZ_DEFAULT_DOC_TEXT_STATUS

        return _doc_text_status(status, ticket)

    def docs_contact(self, bug: Dict[str, Any], fields: FieldMap) -> str:
        contact = _extract_string(bug, fields.docs_contact, "docs_contact", self._ticket(bug))
        if not contact:
            raise FieldExtractionError(
                "docs_contact", f"The docs contact is empty in ticket {self._ticket(bug)}."
            )
        return contact

    def url(self, bug: Dict[str, Any], instance: TrackerInstance) -> str:
        return f"{instance.host}/show_bug.cgi?id={bug['id']}"


class JiraFieldExtractor:
    """Reads release note fields from Jira issues."""

    @staticmethod
    def _ticket(issue: Dict[str, Any]) -> str:
        return f"{Tracker.JIRA}:{issue.get('key')}"

    @staticmethod
    def _fields(issue: Dict[str, Any]) -> Dict[str, Any]:
        return issue.get("fields") or {}

    def doc_type(self, issue: Dict[str, Any], fields: FieldMap) -> str:
        return _extract_option_value(
            self._fields(issue), fields.doc_type, "doc_type", self._ticket(issue)
        )

    def doc_text(self, issue: Dict[str, Any], fields: FieldMap) -> str:
        return _extract_string(self._fields(issue), fields.doc_text, "doc_text", self._ticket(issue))

    def target_releases(self, issue: Dict[str, Any], fields: FieldMap) -> List[str]:
        ticket = self._ticket(issue)
        name, versions = _lookup(self._fields(issue), fields.target_release)
        if not isinstance(versions, list):
            raise FieldExtractionError(
                "target_releases",
                f"The `{name}` field is missing or has an unexpected structure in ticket {ticket}."
            )

        releases = []
        for version in versions:
            if isinstance(version, dict) and "name" in version:
                releases.append(version["name"])
            elif isinstance(version, str):
                releases.append(version)
        return releases

    def subsystems(self, issue: Dict[str, Any], fields: FieldMap) -> List[str]:
        ticket = self._ticket(issue)
        name, values = _lookup(self._fields(issue), fields.subsystems)
        if not isinstance(values, list) or not all(
            isinstance(v, dict) and "value" in v for v in values
        ):
            raise FieldExtractionError(
                "subsystems",
                f"The `{name}` field is missing or has an unexpected structure in ticket {ticket}."
            )
        return [v["value"] for v in values]

    def doc_text_status(self, issue: Dict[str, Any], fields: FieldMap) -> DocTextStatus:
        ticket = self._ticket(issue)
        value = _extract_option_value(
            self._fields(issue), fields.doc_text_status, "doc_text_status", ticket
        )
        return _doc_text_status(value, ticket)

    def docs_contact(self, issue: Dict[str, Any], fields: FieldMap) -> str:
        ticket = self._ticket(issue)
        name, user = _lookup(self._fields(issue), fields.docs_contact)
        if isinstance(user, dict) and user.get("emailAddress"):
            return user["emailAddress"]
        raise FieldExtractionError(
            "docs_contact",
            f"The `{name}` field is missing or has an unexpected structure in ticket {ticket}."
        )

    def url(self, issue: Dict[str, Any], instance: TrackerInstance) -> str:
        return f"{instance.host}/browse/{issue['key']}"


FIELD_EXTRACTORS = {
    Tracker.BUGZILLA: BugzillaFieldExtractor(),
    Tracker.JIRA: JiraFieldExtractor(),
}


def field_extractor_for(tracker: Tracker):
    """Return the field extractor that understands tickets from the given tracker."""
    return FIELD_EXTRACTORS[tracker]

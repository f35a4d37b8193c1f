"""
Conversion of raw Bugzilla bugs and Jira issues into NormalizedTicket records.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from relnote_tickets.errors import FieldExtractionError, TicketNormalizationError
from relnote_tickets.models.enums import FieldSeverity, Tracker
from relnote_tickets.models.ticket import NormalizedTicket, TicketId
from relnote_tickets.models.tracker import TrackerInstance
from relnote_tickets.services.field_extractor import field_extractor_for
from relnote_tickets.services.jira_client import extract_description

logger = logging.getLogger(__name__)

# Whether a ticket survives when a field can't be extracted from it.
# Non-essential fields fall back to the value in FIELD_DEFAULTS.
FIELD_SEVERITY = {
    "doc_type": FieldSeverity.ESSENTIAL,
    "doc_text": FieldSeverity.ESSENTIAL,
    "doc_text_status": FieldSeverity.ESSENTIAL,
    "target_releases": FieldSeverity.NON_ESSENTIAL,
    "subsystems": FieldSeverity.NON_ESSENTIAL,
    "docs_contact": FieldSeverity.NON_ESSENTIAL,
}

FIELD_DEFAULTS: Dict[str, Callable[[], Any]] = {
    "target_releases": list,
    "subsystems": list,
    "docs_contact": lambda: None,
}

JIRA_CLOSED_STATUS = "Closed"
JIRA_MISSING_PRIORITY = "Missing"


def _extract_fields(
    raw: Dict[str, Any],
    tracker: Tracker,
    instance: TrackerInstance,
    ticket_id: TicketId
) -> Dict[str, Any]:
    """Run every field extractor on the raw ticket and apply the severity policy."""
    extractor = field_extractor_for(tracker)
    values: Dict[str, Any] = {}

    for field, severity in FIELD_SEVERITY.items():
        extract = getattr(extractor, field)
        try:
            values[field] = extract(raw, instance.fields)
        except FieldExtractionError as e:
            if severity == FieldSeverity.ESSENTIAL:
                raise TicketNormalizationError(
                    f"Cannot process ticket {ticket_id}: {e}"
                ) from e
            logger.warning("%s Using an empty %s for ticket %s.", e, field, ticket_id)
            values[field] = FIELD_DEFAULTS[field]()

    values["url"] = extractor.url(raw, instance)
    return values


def _names(items: Any, attribute: str = "name") -> List[str]:
    """Pull the names out of a list of Jira objects such as components."""
    if not isinstance(items, list):
        return []
    return [item[attribute] for item in items if isinstance(item, dict) and attribute in item]


def _bugzilla_fields(bug: Dict[str, Any]) -> Dict[str, Any]:
    component = bug.get("component", [])
    components = [component] if isinstance(component, str) else list(component)

    flags = bug.get("flags")
    if isinstance(flags, list):
        flags = [f"{flag.get('name')}: {flag.get('status')}" for flag in flags]
    else:
        flags = None

    groups = list(bug.get("groups") or [])

    return {
        "key": str(bug["id"]),
        "summary": bug.get("summary") or "",
        # The REST bug object doesn't carry the description; it lives in comment #0
        "description": None,
        "status": bug.get("status") or "",
        "is_open": bool(bug.get("is_open", True)),
        "priority": bug.get("priority") or "",
        "assignee": bug.get("assigned_to"),
        "components": components,
        "product": bug.get("product") or "",
        "labels": None,
        "flags": flags,
        "groups": groups,
        # A bug is public if no groups restrict access to it
        "public": not groups,
    }


def _jira_fields(issue: Dict[str, Any]) -> Dict[str, Any]:
    fields = issue.get("fields") or {}
    status = (fields.get("status") or {}).get("name", "")
    priority = fields.get("priority")
    assignee = fields.get("assignee")
    if assignee:
        assignee = assignee.get("name") or assignee.get("displayName")

    return {
        "key": issue["key"],
        "summary": fields.get("summary") or "",
        "description": extract_description(fields.get("description")),
        "status": status,
        "is_open": status != JIRA_CLOSED_STATUS,
        "priority": priority.get("name", JIRA_MISSING_PRIORITY) if priority else JIRA_MISSING_PRIORITY,
        "assignee": assignee or None,
        "components": _names(fields.get("components")),
        "product": (fields.get("project") or {}).get("name", ""),
        "labels": list(fields.get("labels") or []),
        # Jira has no flags and no Bugzilla-style groups
        "flags": None,
        "groups": None,
        # An issue is public if no security level restricts access to it
        "public": fields.get("security") is None,
    }


STRUCTURAL_MAPPERS: Dict[Tracker, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    Tracker.BUGZILLA: _bugzilla_fields,
    Tracker.JIRA: _jira_fields,
}


def normalize(
    raw: Dict[str, Any],
    tracker: Tracker,
    instance: TrackerInstance,
    references: Optional[List[str]] = None
) -> NormalizedTicket:
    """
    Convert a raw tracker ticket into a NormalizedTicket.

    Args:
        raw: The bug or issue as returned by the tracker API
        tracker: The tracker that the ticket comes from
        instance: The tracker configuration, including the field map
        references: Signatures of reference tickets to attach

    Returns:
        The normalized ticket

    Raises:
        TicketNormalizationError: If an essential field is missing or malformed
    """
    try:
        structure = STRUCTURAL_MAPPERS[tracker](raw)
    except (KeyError, TypeError, AttributeError) as e:
        raise TicketNormalizationError(
            f"A ticket from {tracker} has an unexpected structure: {e!r}"
        ) from e

    ticket_id = TicketId(tracker=tracker, key=structure["key"])
    extracted = _extract_fields(raw, tracker, instance, ticket_id)

    try:
        return NormalizedTicket(
            tracker=tracker,
            references=list(references or []),
            **structure,
            **extracted
        )
    except ValidationError as e:
        raise TicketNormalizationError(f"Cannot process ticket {ticket_id}: {e}") from e

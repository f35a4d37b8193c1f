"""
Enums shared by the query model, the trackers configuration, and normalized tickets.
"""
from enum import Enum
from typing import Any


class Tracker(str, Enum):
    """An issue-tracking service that tickets can come from."""

    BUGZILLA = "Bugzilla"
    JIRA = "Jira"

    def __str__(self) -> str:
        return self.value

    @property
    def short_name(self) -> str:
        """The acronym of the service, if it has one."""
        return _SHORT_NAMES[self]

    @classmethod
    def parse(cls, value: Any) -> "Tracker":
        """
        Read a tracker name as written in the configuration files.

        Accepts the full name or the short name, case-insensitively.

        Raises:
            ValueError: If the name matches no supported tracker
        """
        name = str(value).strip().lower()
        for tracker in cls:
            if name in (tracker.value.lower(), tracker.short_name.lower()):
                return tracker
        raise ValueError(f"Unsupported issue tracker: {value!r}")


_SHORT_NAMES = {
    Tracker.BUGZILLA: "BZ",
    Tracker.JIRA: "Jira",
}


class SelectorKind(str, Enum):
    """How a query picks its tickets."""

    KEY = "key"
    SEARCH = "search"


class DocTextStatus(str, Enum):
    """The progress of the release note attached to a ticket."""

    APPROVED = "Done"
    IN_PROGRESS = "WIP"
    NO_DOCUMENTATION = "No docs"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_tracker_value(cls, value: str) -> "DocTextStatus":
        """
        Map a flag or custom field value from Bugzilla or Jira to a status.

        Raises:
            ValueError: If the tracker reports a value that isn't recognized
        """
        for status, raw_values in _DOC_TEXT_STATUS_VALUES.items():
            if value in raw_values:
                return status
        raise ValueError(f"Unrecognized doc text status value: {value!r}")


_DOC_TEXT_STATUS_VALUES = {
    DocTextStatus.APPROVED: ("+", "Done"),
    DocTextStatus.IN_PROGRESS: ("?", "Proposed", "In progress", "Unset"),
    DocTextStatus.NO_DOCUMENTATION: ("-", "Rejected", "Upstream only"),
}


class FieldSeverity(str, Enum):
    """Whether a ticket stays usable when one of its fields can't be extracted."""

    ESSENTIAL = "essential"
    NON_ESSENTIAL = "non_essential"

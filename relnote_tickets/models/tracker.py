"""
Pydantic models for the trackers configuration file.
"""
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from relnote_tickets.models.enums import Tracker


class FieldMap(BaseModel):
    """
    Names of the tracker fields that hold release note information.

    Each entry lists candidate field names. The first one present in a ticket wins,
    which lets a project survive a custom field being renamed on the server.
    """

    doc_type: List[str] = Field(..., description="Field holding the release note type")
    doc_text: List[str] = Field(..., description="Field holding the release note text")
    doc_text_status: List[str] = Field(..., description="Field or flag holding the release note status")
    docs_contact: List[str] = Field(..., description="Field holding the docs contact")
    target_release: List[str] = Field(..., description="Field holding the target release")
    subsystems: List[str] = Field(..., description="Field holding the subsystem or team")

    @field_validator("*", mode="before")
    @classmethod
    def coerce_to_list(cls, v: Any) -> Any:
        """Accept a single field name as shorthand for a one-item list."""
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("*")
    @classmethod
    def require_names(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("at least one field name is required")
        return v


class TrackerInstance(BaseModel):
    """One tracker server with its access credentials and field layout."""

    host: str = Field(..., description="Base URL of the tracker, e.g. https://bugzilla.example.com")
    api_key: Optional[str] = Field(
        None,
        description="API key; falls back to the tracker's environment variable when unset"
    )
    user: Optional[str] = Field(
        None,
        description="Account name for HTTP basic authentication (Jira Cloud); bearer token when unset"
    )
    fields: FieldMap

    @field_validator("host")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class TrackersConfig(BaseModel):
    """The tracker instances configured in a release notes project."""

    bugzilla: TrackerInstance
    jira: TrackerInstance

    def instance(self, tracker: Tracker) -> TrackerInstance:
        """Return the configured instance of the given tracker."""
        return getattr(self, tracker.name.lower())

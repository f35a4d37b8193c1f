"""
The normalized, tracker-independent ticket record.
"""
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, Field

from relnote_tickets.models.enums import DocTextStatus, Tracker
from relnote_tickets.models.query import TicketQuery

DOCS_CONTACT_PLACEHOLDER = "Missing docs contact"

PRIVATE_TICKET_FOOTNOTE = "footnoteref:[PrivateTicketFootnote]"


@dataclass(frozen=True)
class TicketId:
    """Identifies the original ticket on its tracker."""

    tracker: Tracker
    key: str

    def __str__(self) -> str:
        return f"{self.tracker}:{self.key}"


class NormalizedTicket(BaseModel):
    """
    A Bugzilla bug or a Jira issue reduced to the fields that release notes use.

    Two tickets are equal when they come from the same tracker with the same key,
    regardless of the other fields.
    """

    tracker: Tracker = Field(..., frozen=True)
    key: str = Field(..., frozen=True)
    summary: str = ""
    description: Optional[str] = None
    doc_type: str = Field(..., description="Release note type, such as 'Bug Fix'")
    doc_text: str = Field(..., description="Release note text")
    docs_contact: Optional[str] = None
    status: str = ""
    is_open: bool = True
    priority: str = ""
    url: str = ""
    assignee: Optional[str] = None
    components: List[str] = Field(default_factory=list)
    product: str = ""
    labels: Optional[List[str]] = None
    flags: Optional[List[str]] = None
    target_releases: List[str] = Field(default_factory=list)
    subsystems: List[str] = Field(default_factory=list)
    groups: Optional[List[str]] = None
    public: bool = False
    doc_text_status: DocTextStatus
    references: List[str] = Field(
        default_factory=list,
        description="Signatures of the tickets that this ticket cites"
    )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NormalizedTicket):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def id(self) -> TicketId:
        return TicketId(tracker=self.tracker, key=self.key)

    @property
    def docs_contact_display(self) -> str:
        """The docs contact, or a placeholder when the tracker has none."""
        return self.docs_contact or DOCS_CONTACT_PLACEHOLDER

    def signature(self, with_priv_footnote: bool = False) -> str:
        """
        Render the short citation of this ticket.

        Public tickets become a clickable AsciiDoc link, for example
        `link:https://bugzilla.example.com/show_bug.cgi?id=12345[Bugzilla:12345]`.
        Private tickets render as the bare ID, optionally followed by the footnote
        that explains why the link is missing.

        Args:
            with_priv_footnote: Whether the project defines the private ticket footnote

        Returns:
            The signature string
        """
        if self.public:
            return f"link:{self.url}[{self.id}]"
        if with_priv_footnote:
            return f"{self.id}{PRIVATE_TICKET_FOOTNOTE}"
        return str(self.id)

    def anchor(self) -> str:
        """An ID that the rendered release note can set, such as `BZ-12345`."""
        return f"{self.tracker.short_name}-{self.key}"

    def xref(self) -> str:
        """A cross-reference that points back to the rendered release note."""
        return f"xref:{self.anchor()}[{self.id}]"


@dataclass
class AnnotatedTicket:
    """A normalized ticket paired with the query that produced it."""

    ticket: NormalizedTicket
    query: TicketQuery

    def override_fields(self) -> None:
        """Apply the overrides configured on the query, replacing fields wholesale."""
        overrides = self.query.overrides
        if overrides is None:
            return
        if overrides.doc_type is not None:
            self.ticket.doc_type = overrides.doc_type
        if overrides.components is not None:
            self.ticket.components = list(overrides.components)
        if overrides.subsystems is not None:
            self.ticket.subsystems = list(overrides.subsystems)

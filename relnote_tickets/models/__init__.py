"""
Data models for ticket queries, tracker settings, and normalized tickets.
"""
from relnote_tickets.models.enums import DocTextStatus, FieldSeverity, SelectorKind, Tracker
from relnote_tickets.models.query import (
    Overrides,
    Selector,
    TicketQuery,
    flatten_references,
    unique_queries,
)
from relnote_tickets.models.ticket import AnnotatedTicket, NormalizedTicket, TicketId
from relnote_tickets.models.tracker import FieldMap, TrackerInstance, TrackersConfig

__all__ = [
    "AnnotatedTicket",
    "DocTextStatus",
    "FieldMap",
    "FieldSeverity",
    "NormalizedTicket",
    "Overrides",
    "Selector",
    "SelectorKind",
    "TicketId",
    "TicketQuery",
    "Tracker",
    "TrackerInstance",
    "TrackersConfig",
    "flatten_references",
    "unique_queries",
]

"""
Download release note tickets from Bugzilla and Jira and normalize them.
"""
from relnote_tickets.errors import (
    ConfigurationError,
    MatchingError,
    TicketNormalizationError,
    TicketPipelineError,
    TrackerAccessError,
)
from relnote_tickets.models import NormalizedTicket, TicketQuery, Tracker, TrackersConfig
from relnote_tickets.project import Project, load_project
from relnote_tickets.services.assembly import assemble_tickets

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "MatchingError",
    "NormalizedTicket",
    "Project",
    "TicketNormalizationError",
    "TicketPipelineError",
    "TicketQuery",
    "Tracker",
    "TrackerAccessError",
    "TrackersConfig",
    "assemble_tickets",
    "load_project",
]

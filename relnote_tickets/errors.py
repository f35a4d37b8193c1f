"""
Exceptions raised while turning configured ticket queries into normalized tickets.

Every fatal error derives from TicketPipelineError so that the single entry point
(and the CLI on top of it) can stop the whole build with one except clause.
"""
from typing import Optional


class TicketPipelineError(Exception):
    """Base class for errors that abort the ticket pipeline."""
    pass


class ConfigurationError(TicketPipelineError):
    """Raised when the project configuration is missing, malformed, or incomplete."""
    pass


class TrackerAccessError(TicketPipelineError):
    """Raised when downloading tickets from a tracker fails."""

    def __init__(self, tracker: str, operation: str, cause: Optional[Exception] = None):
        self.tracker = tracker
        self.operation = operation
        self.cause = cause
        message = f"Failed to download tickets from {tracker} ({operation})"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class MatchingError(TicketPipelineError):
    """Raised when fetched tickets and configured queries cannot be paired up."""
    pass


class TicketNormalizationError(TicketPipelineError):
    """Raised when a ticket lacks a field that the release note cannot do without."""
    pass


class TrackerClientError(Exception):
    """Raised when a tracker API call fails."""
    pass


class FieldExtractionError(Exception):
    """
    Raised by a field extractor when a field is missing or has an unexpected structure.

    This error is not fatal by itself. The normalizer decides whether the field
    is essential and either aborts or substitutes an empty value.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)

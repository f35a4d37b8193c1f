"""
The single entry point that turns configured queries into ordered, normalized tickets.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from relnote_tickets.errors import ConfigurationError, MatchingError
from relnote_tickets.models.query import TicketQuery, flatten_references
from relnote_tickets.models.ticket import AnnotatedTicket, NormalizedTicket
from relnote_tickets.models.tracker import TrackersConfig
from relnote_tickets.services.fetcher import ClientFactory, FetchedTickets, fetch_tickets
from relnote_tickets.services.normalizer import normalize
from relnote_tickets.services.references import ReferenceSignatures

logger = logging.getLogger(__name__)


def _annotate(
    fetched: FetchedTickets,
    trackers: TrackersConfig,
    references: ReferenceSignatures
) -> List[AnnotatedTicket]:
    """Normalize the main tickets and attach the references of their queries."""
    annotated = []
    for tracker, pairs in fetched.items():
        instance = trackers.instance(tracker)
        for query, raw in pairs:
            ticket = normalize(raw, tracker, instance, references.reattach_to(query))
            annotated.append(AnnotatedTicket(ticket=ticket, query=query))
    return annotated


async def unsorted_tickets(
    queries: Sequence[TicketQuery],
    trackers: TrackersConfig,
    client_factory: Optional[ClientFactory] = None,
    with_priv_footnote: bool = False
) -> List[AnnotatedTicket]:
    """
    Download the main and the reference tickets concurrently and normalize them.

    The result is in no particular order. sort_tickets restores the configured order.
    """
    reference_queries = flatten_references(queries)

    fetched, fetched_references = await asyncio.gather(
        fetch_tickets(queries, trackers, client_factory),
        fetch_tickets(reference_queries, trackers, client_factory),
    )

    references = ReferenceSignatures.from_fetched(
        fetched_references, trackers, reference_queries, with_priv_footnote
    )
    return _annotate(fetched, trackers, references)


def sort_tickets(
    queries: Sequence[TicketQuery],
    annotated: Sequence[AnnotatedTicket]
) -> List[AnnotatedTicket]:
    """
    Put tickets in the order of their queries and apply each query's overrides.

    Tickets from the same query keep the order in which the tracker returned them.
    A query listed more than once gets its tickets at every position, as separate copies.

    Args:
        queries: Main queries in configuration order
        annotated: Tickets paired with the queries that produced them

    Returns:
        The tickets, ordered by query

    Raises:
        MatchingError: If a query produced no tickets
    """
    by_query: Dict[TicketQuery, List[AnnotatedTicket]] = defaultdict(list)
    for item in annotated:
        by_query[item.query].append(item)

    ordered: List[AnnotatedTicket] = []
    emitted = set()
    for query in queries:
        matching = by_query.get(query)
        if not matching:
            raise MatchingError(f"Query produced no tickets: {query}")

        if query in emitted:
            matching = [
                AnnotatedTicket(ticket=item.ticket.model_copy(deep=True), query=query)
                for item in matching
            ]
        emitted.add(query)

        for item in matching:
            item.override_fields()
        ordered.extend(matching)

    return ordered


def assemble_tickets(
    queries: Sequence[TicketQuery],
    trackers: TrackersConfig,
    client_factory: Optional[ClientFactory] = None,
    with_priv_footnote: bool = False
) -> List[NormalizedTicket]:
    """
    Turn configured ticket queries into normalized tickets in configuration order.

    This is the blocking entry point of the pipeline. It downloads all tickets and
    references concurrently, normalizes them, and orders them by query.

    Args:
        queries: Main ticket queries in configuration order
        trackers: Tracker hosts, credentials, and field maps
        client_factory: Builds a client for a tracker (default: an authenticated HTTP client)
        with_priv_footnote: Whether the project defines the private ticket footnote

    Returns:
        The normalized tickets with overrides applied and references attached

    Raises:
        ConfigurationError: If no queries are configured or credentials are missing
        TrackerAccessError: If a download fails
        MatchingError: If a query produced no tickets or a ticket matches no query
        TicketNormalizationError: If a ticket lacks an essential field
    """
    if not queries:
        raise ConfigurationError("No tickets are configured in this project.")

    logger.info("Assembling tickets for %d queries.", len(queries))
    annotated = asyncio.run(
        unsorted_tickets(queries, trackers, client_factory, with_priv_footnote)
    )
    tickets = [item.ticket for item in sort_tickets(queries, annotated)]
    logger.info("Assembled %d tickets.", len(tickets))
    return tickets

"""
Concurrent download of configured tickets from Bugzilla and Jira.

Queries are split by tracker and by selector kind. All key queries for one tracker
share a single batched request; every distinct search string gets its own request.
The requests run concurrently and their results are matched back to queries by
content, so the order in which they complete doesn't matter.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from relnote_tickets.errors import MatchingError, TrackerAccessError, TrackerClientError
from relnote_tickets.models.enums import Tracker
from relnote_tickets.models.query import TicketQuery, unique_queries
from relnote_tickets.models.tracker import TrackerInstance, TrackersConfig
from relnote_tickets.services.tracker_clients import TrackerClient, create_client

logger = logging.getLogger(__name__)

RawTicket = Dict[str, Any]
QueryTicketPairs = List[Tuple[TicketQuery, RawTicket]]
FetchedTickets = Dict[Tracker, QueryTicketPairs]
ClientFactory = Callable[[Tracker, TrackerInstance], TrackerClient]


async def _call_client(
    tracker: Tracker,
    operation: str,
    func: Callable[..., List[RawTicket]],
    *args: Any
) -> List[RawTicket]:
    """Run a blocking client call in a worker thread and wrap its failures."""
    try:
        return await asyncio.to_thread(func, *args)
    except TrackerClientError as e:
        raise TrackerAccessError(str(tracker), operation, e) from e


async def _tickets_from_keys(
    tracker: Tracker,
    client: TrackerClient,
    queries: Sequence[TicketQuery]
) -> QueryTicketPairs:
    """Download all key queries of one tracker in one batch and pair tickets with queries."""
    queries_by_key: Dict[str, List[TicketQuery]] = defaultdict(list)
    for query in queries:
        queries_by_key[query.selector.value].append(query)

    raw_tickets = await _call_client(
        tracker, "fetch by key", client.fetch_by_keys, list(queries_by_key)
    )

    pairs: QueryTicketPairs = []
    for raw in raw_tickets:
        try:
            key = client.ticket_key(raw)
        except (KeyError, TypeError) as e:
            raise MatchingError(f"{tracker} returned a ticket without an identifier: {e!r}") from e

        matching_queries = queries_by_key.get(key)
        if not matching_queries:
            raise MatchingError(f"Ticket {tracker}:{key} doesn't match any configured query.")
        pairs.extend((query, raw) for query in matching_queries)

    return pairs


async def _tickets_from_search(
    tracker: Tracker,
    client: TrackerClient,
    search: str,
    queries: Sequence[TicketQuery]
) -> QueryTicketPairs:
    """Run one search and attribute every result to each query that uses the search."""
    raw_tickets = await _call_client(tracker, f'search "{search}"', client.search, search)
    return [(query, raw) for query in queries for raw in raw_tickets]


async def _tickets_from_tracker(
    tracker: Tracker,
    client: TrackerClient,
    queries: Sequence[TicketQuery]
) -> QueryTicketPairs:
    key_queries = [query for query in queries if query.is_key()]

    searches: Dict[str, List[TicketQuery]] = defaultdict(list)
    for query in queries:
        if query.is_search():
            searches[query.selector.value].append(query)

    downloads = []
    if key_queries:
        downloads.append(_tickets_from_keys(tracker, client, key_queries))
    for search, search_queries in searches.items():
        downloads.append(_tickets_from_search(tracker, client, search, search_queries))

    logger.info("Downloading tickets from %s.", tracker)
    results = await asyncio.gather(*downloads)
    logger.info("Finished downloading from %s.", tracker)

    return [pair for result in results for pair in result]


async def fetch_tickets(
    queries: Sequence[TicketQuery],
    trackers: TrackersConfig,
    client_factory: Optional[ClientFactory] = None
) -> FetchedTickets:
    """
    Download the tickets of all queries from all trackers concurrently.

    A tracker that no query targets is skipped entirely: no client is built
    for it and no request is sent.

    Args:
        queries: Ticket queries, possibly targeting both trackers
        trackers: Tracker hosts, credentials, and field maps
        client_factory: Builds a client for a tracker (default: create_client)

    Returns:
        For each tracker with queries, the (query, raw ticket) pairs

    Raises:
        ConfigurationError: If a tracker with queries has no API key
        TrackerAccessError: If any download fails
        MatchingError: If a tracker returns a ticket that no key query asked for
    """
    client_factory = client_factory or create_client
    queries = unique_queries(queries)

    downloads: Dict[Tracker, Tuple[TrackerClient, List[TicketQuery]]] = {}
    for tracker in Tracker:
        tracker_queries = [query for query in queries if query.tracker == tracker]
        if not tracker_queries:
            logger.debug("No queries target %s. Skipping the download.", tracker)
            continue
        client = client_factory(tracker, trackers.instance(tracker))
        downloads[tracker] = (client, tracker_queries)

    results = await asyncio.gather(*(
        _tickets_from_tracker(tracker, client, tracker_queries)
        for tracker, (client, tracker_queries) in downloads.items()
    ))

    return dict(zip(downloads, results))

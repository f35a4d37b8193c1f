"""
Reference tickets, which a release note cites but doesn't describe.
"""
import logging
from typing import Dict, Iterable, List

from relnote_tickets.models.query import TicketQuery, unique_queries
from relnote_tickets.models.tracker import TrackersConfig
from relnote_tickets.services.fetcher import FetchedTickets
from relnote_tickets.services.normalizer import normalize

logger = logging.getLogger(__name__)


class ReferenceSignatures:
    """Signatures of reference tickets, grouped by the reference query that produced them."""

    def __init__(self, signatures: Dict[TicketQuery, List[str]]):
        self._signatures = signatures

    @classmethod
    def from_fetched(
        cls,
        fetched: FetchedTickets,
        trackers: TrackersConfig,
        reference_queries: Iterable[TicketQuery] = (),
        with_priv_footnote: bool = False
    ) -> "ReferenceSignatures":
        """
        Normalize downloaded reference tickets and render their signatures.

        Args:
            fetched: Reference tickets paired with their queries, per tracker
            trackers: Tracker configuration, used for field maps and URLs
            reference_queries: All requested reference queries, to report those without tickets
            with_priv_footnote: Whether private signatures carry the private ticket footnote

        Returns:
            The signatures, sorted alphabetically within each query
        """
        signatures: Dict[TicketQuery, List[str]] = {query: [] for query in reference_queries}

        for tracker, pairs in fetched.items():
            instance = trackers.instance(tracker)
            for query, raw in pairs:
                ticket = normalize(raw, tracker, instance)
                signatures.setdefault(query, []).append(ticket.signature(with_priv_footnote))

        for query, query_signatures in signatures.items():
            if not query_signatures:
                logger.warning("Reference query %s produced no tickets.", query)
            # Tracker response order isn't stable and would produce noise in output diffs
            query_signatures.sort()

        return cls(signatures)

    def reattach_to(self, main_query: TicketQuery) -> List[str]:
        """Return the sorted signatures of every reference that the main query lists."""
        collected: List[str] = []
        for reference in unique_queries(main_query.references):
            collected.extend(self._signatures.get(reference, []))
        return sorted(collected)

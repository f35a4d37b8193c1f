"""
Ticket queries as configured by the user.

A query asks one tracker for either a single ticket (by key) or for every ticket
that matches a search. Queries are frozen and compare by value, so the same
query can serve as a dictionary key and be matched against fetched tickets
without tracking object identity.
"""
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from relnote_tickets.models.enums import SelectorKind, Tracker


class Selector(BaseModel):
    """Either the key of one ticket or a search string in the tracker's own syntax."""

    model_config = ConfigDict(frozen=True)

    kind: SelectorKind = Field(..., description="Whether the value is a ticket key or a search")
    value: str = Field(..., description="The ticket key, or the search string")


class Overrides(BaseModel):
    """Replacement values that win over whatever the tracker reports."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    doc_type: Optional[str] = None
    components: Optional[Tuple[str, ...]] = None
    subsystems: Optional[Tuple[str, ...]] = None


class TicketQuery(BaseModel):
    """A configured request for one or more tickets from a single tracker."""

    model_config = ConfigDict(frozen=True)

    tracker: Tracker
    selector: Selector
    overrides: Optional[Overrides] = None
    references: Tuple["TicketQuery", ...] = Field(
        default=(),
        description="Queries whose tickets are only cited by the tickets of this query"
    )

    @classmethod
    def key(cls, tracker: Tracker, key: str, **options) -> "TicketQuery":
        return cls(
            tracker=tracker,
            selector=Selector(kind=SelectorKind.KEY, value=str(key)),
            **options
        )

    @classmethod
    def search(cls, tracker: Tracker, search: str, **options) -> "TicketQuery":
        return cls(
            tracker=tracker,
            selector=Selector(kind=SelectorKind.SEARCH, value=search),
            **options
        )

    def is_key(self) -> bool:
        return self.selector.kind == SelectorKind.KEY

    def is_search(self) -> bool:
        return self.selector.kind == SelectorKind.SEARCH

    def __str__(self) -> str:
        if self.is_key():
            return f"{self.tracker}:{self.selector.value}"
        return f'{self.tracker} search "{self.selector.value}"'


TicketQuery.model_rebuild()


def unique_queries(queries: Iterable[TicketQuery]) -> List[TicketQuery]:
    """Drop structurally equal duplicates, keeping the first occurrence of each query."""
    seen = set()
    unique = []
    for query in queries:
        if query not in seen:
            seen.add(query)
            unique.append(query)
    return unique


def flatten_references(queries: Iterable[TicketQuery]) -> List[TicketQuery]:
    """
    Collect every reference query reachable from the given queries.

    References of references are included as well. The result keeps the order
    in which references first appear in the configuration and lists each
    distinct query once.

    Args:
        queries: Main ticket queries in configuration order

    Returns:
        Deduplicated list of reference queries
    """
    collected: List[TicketQuery] = []

    def visit(query: TicketQuery) -> None:
        for reference in query.references:
            collected.append(reference)
            visit(reference)

    for query in queries:
        visit(query)

    return unique_queries(collected)

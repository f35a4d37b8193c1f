"""
Command-line interface for downloading release note tickets.

    relnote-tickets build [PROJECT] [-o tickets.json]
    relnote-tickets ticket [PROJECT] --tracker jira --key PROJ-123
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from relnote_tickets.config import configure_logging
from relnote_tickets.errors import TicketPipelineError
from relnote_tickets.models.enums import Tracker
from relnote_tickets.models.query import TicketQuery
from relnote_tickets.models.ticket import NormalizedTicket
from relnote_tickets.project import (
    DATA_DIR,
    TRACKERS_FILE,
    is_footnote_defined,
    load_project,
    parse_trackers,
)
from relnote_tickets.services.assembly import assemble_tickets

logger = logging.getLogger(__name__)


def _dump_tickets(tickets: Sequence[NormalizedTicket], output: Optional[Path]) -> None:
    text = json.dumps([ticket.model_dump(mode="json") for ticket in tickets], indent=2)
    if output is None:
        sys.stdout.write(text + "\n")
        return
    output.write_text(text + "\n", encoding="utf-8")
    logger.info("Saved %d tickets to %s.", len(tickets), output)


def _cmd_build(args: argparse.Namespace) -> int:
    project = load_project(args.project, args.tickets, args.trackers)
    tickets = assemble_tickets(
        project.tickets,
        project.trackers,
        with_priv_footnote=project.private_footnote
    )
    _dump_tickets(tickets, args.output)
    return 0


def _cmd_ticket(args: argparse.Namespace) -> int:
    # An ad-hoc query needs the trackers but not the configured ticket list
    base_dir = args.project.resolve()
    trackers = parse_trackers(args.trackers or base_dir / DATA_DIR / TRACKERS_FILE)
    tracker = Tracker.parse(args.tracker)
    if args.key is not None:
        query = TicketQuery.key(tracker, args.key)
    else:
        query = TicketQuery.search(tracker, args.search)

    tickets = assemble_tickets(
        [query],
        trackers,
        with_priv_footnote=is_footnote_defined(base_dir)
    )
    _dump_tickets(tickets, args.output)
    return 0


def _add_project_arguments(parser: argparse.ArgumentParser, tickets: bool = True) -> None:
    parser.add_argument(
        "project",
        nargs="?",
        default=".",
        type=Path,
        help="Release notes project directory (default: current directory)."
    )
    if tickets:
        parser.add_argument("-t", "--tickets", type=Path, help="Use this tickets.yaml file.")
    parser.add_argument("-T", "--trackers", type=Path, help="Use this trackers.yaml file.")
    parser.add_argument("-o", "--output", type=Path, help="Write the tickets to this JSON file instead of stdout.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="relnote-tickets",
        description="Download release note tickets from Bugzilla and Jira."
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Display debugging messages."
    )

    sub = parser.add_subparsers(dest="cmd", required=True)

    build_p = sub.add_parser("build", help="Download all tickets configured in the project.")
    _add_project_arguments(build_p)
    build_p.set_defaults(func=_cmd_build)

    ticket_p = sub.add_parser("ticket", help="Download the tickets of a single query.")
    _add_project_arguments(ticket_p, tickets=False)
    ticket_p.add_argument(
        "--tracker",
        required=True,
        choices=[tracker.name.lower() for tracker in Tracker],
        help="Tracker to query."
    )
    selector = ticket_p.add_mutually_exclusive_group(required=True)
    selector.add_argument("--key", help="Ticket key, such as 12345 or PROJ-123.")
    selector.add_argument("--search", help="Bugzilla search query string or Jira JQL.")
    ticket_p.set_defaults(func=_cmd_ticket)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        return args.func(args)
    except TicketPipelineError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

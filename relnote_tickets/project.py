"""
Loading of a release notes project: the tickets and trackers configuration files.

A project keeps its configuration in the `relnote_tickets/` data directory:

    my-release-notes/
        relnote_tickets/
            tickets.yaml
            trackers.yaml

Each entry in tickets.yaml is a list of the tracker, the identifier, and optional options:

    - [BZ, {key: 12345}]
    - [Jira, {search: "project = PROJ AND fixVersion = 2.1"}, {overrides: {doc_type: Bug Fix}}]
    - !key [BZ, 67890, {references: [[Jira, {key: PROJ-1}]]}]
"""
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, NamedTuple, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from relnote_tickets.errors import ConfigurationError
from relnote_tickets.models.enums import SelectorKind, Tracker
from relnote_tickets.models.query import Overrides, Selector, TicketQuery
from relnote_tickets.models.tracker import TrackersConfig

logger = logging.getLogger(__name__)

DATA_DIR = "relnote_tickets"
TICKETS_FILE = "tickets.yaml"
TRACKERS_FILE = "trackers.yaml"

OPTION_KEYS = {"overrides", "references"}

ADOC_EXTENSIONS = (".adoc", ".asciidoc")
FOOTNOTE_PATTERN = re.compile(r"footnoteref:\[PrivateTicketFootnote,.+\]")


class TaggedEntry(NamedTuple):
    """A ticket entry written in the `!key` or `!search` short form."""

    kind: SelectorKind
    items: list


class TicketsLoader(yaml.SafeLoader):
    """A safe YAML loader that understands the `!key` and `!search` entry tags."""
    pass


def _tagged_constructor(kind: SelectorKind):
    def construct(loader: yaml.SafeLoader, node: yaml.Node) -> TaggedEntry:
        if not isinstance(node, yaml.SequenceNode):
            raise yaml.constructor.ConstructorError(
                None, None, f"The !{kind.value} tag expects a list", node.start_mark
            )
        return TaggedEntry(kind, loader.construct_sequence(node, deep=True))
    return construct


for _kind in SelectorKind:
    TicketsLoader.add_constructor(f"!{_kind.value}", _tagged_constructor(_kind))


def _read_yaml(path: Path, loader=yaml.SafeLoader) -> Any:
    try:
        return yaml.load(path.read_text(encoding="utf-8"), Loader=loader)
    except OSError as e:
        raise ConfigurationError(f"Failed to read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML in {path}: {e}") from e


def _parse_tracker(value: Any, location: str) -> Tracker:
    try:
        return Tracker.parse(value)
    except ValueError as e:
        raise ConfigurationError(f"{location}: {e}") from e


def _parse_key(value: Any, location: str) -> str:
    # YAML reads unquoted Bugzilla IDs as integers
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ConfigurationError(f"{location}: A ticket key must be a string or a number, not {value!r}.")
    key = str(value).strip()
    if not key:
        raise ConfigurationError(f"{location}: The ticket key is empty.")
    return key


def _parse_search(value: Any, location: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"{location}: A search must be a non-empty string, not {value!r}.")
    return value


def _parse_identifier(identifier: Any, location: str) -> Selector:
    """Read the `{key: ...}` or `{search: ...}` mapping of a list entry."""
    if not isinstance(identifier, dict):
        raise ConfigurationError(
            f"{location}: The second item must be a mapping with `key` or `search`, not {identifier!r}."
        )

    unknown = set(identifier) - {kind.value for kind in SelectorKind}
    if unknown:
        raise ConfigurationError(f"{location}: Unknown identifier fields: {', '.join(sorted(map(str, unknown)))}.")

    present = [kind for kind in SelectorKind if identifier.get(kind.value) is not None]
    if len(present) != 1:
        raise ConfigurationError(f"{location}: Specify exactly one of `key` or `search`: {identifier!r}.")

    kind = present[0]
    return _selector(kind, identifier[kind.value], location)


def _selector(kind: SelectorKind, value: Any, location: str) -> Selector:
    if kind == SelectorKind.KEY:
        return Selector(kind=kind, value=_parse_key(value, location))
    return Selector(kind=kind, value=_parse_search(value, location))


def _parse_options(options: Any, location: str) -> Tuple[Optional[Overrides], Tuple[TicketQuery, ...]]:
    if options is None:
        return None, ()
    if not isinstance(options, dict):
        raise ConfigurationError(f"{location}: The options must be a mapping, not {options!r}.")

    unknown = set(options) - OPTION_KEYS
    if unknown:
        raise ConfigurationError(f"{location}: Unknown options: {', '.join(sorted(map(str, unknown)))}.")

    overrides = None
    if options.get("overrides") is not None:
        try:
            overrides = Overrides.model_validate(options["overrides"])
        except ValidationError as e:
            raise ConfigurationError(f"{location}: Invalid overrides: {e}") from e

    references = options.get("references") or []
    if not isinstance(references, list):
        raise ConfigurationError(f"{location}: The references must be a list of ticket entries.")

    parsed_references = tuple(
        parse_entry(reference, f"{location}, reference {index}")
        for index, reference in enumerate(references, start=1)
    )
    return overrides, parsed_references


def parse_entry(entry: Union[list, TaggedEntry], location: str = "ticket") -> TicketQuery:
    """
    Convert one entry of the tickets file into a TicketQuery.

    Args:
        entry: The entry as loaded from YAML, either a plain list or a tagged short form
        location: Description of the entry's position, used in error messages

    Returns:
        The ticket query, with its references parsed recursively

    Raises:
        ConfigurationError: If the entry is malformed
    """
    if isinstance(entry, TaggedEntry):
        items = entry.items
        if len(items) not in (2, 3):
            raise ConfigurationError(
                f"{location}: A !{entry.kind.value} entry needs a tracker, a value, and optional options."
            )
        tracker = _parse_tracker(items[0], location)
        selector = _selector(entry.kind, items[1], location)
    elif isinstance(entry, list):
        items = entry
        if len(items) not in (2, 3):
            raise ConfigurationError(
                f"{location}: An entry needs a tracker, an identifier, and optional options: {entry!r}."
            )
        tracker = _parse_tracker(items[0], location)
        selector = _parse_identifier(items[1], location)
    else:
        raise ConfigurationError(f"{location}: A ticket entry must be a list, not {entry!r}.")

    overrides, references = _parse_options(items[2] if len(items) == 3 else None, location)

    return TicketQuery(
        tracker=tracker,
        selector=selector,
        overrides=overrides,
        references=references
    )


def parse_tickets(path: Path) -> List[TicketQuery]:
    """
    Read the tickets configuration file.

    Raises:
        ConfigurationError: If the file is unreadable, malformed, or lists no tickets
    """
    raw = _read_yaml(path, loader=TicketsLoader)
    if raw is None:
        raw = []
    if not isinstance(raw, list):
        raise ConfigurationError(f"Expected a YAML list of tickets in {path}, got {type(raw).__name__}.")
    if not raw:
        raise ConfigurationError(f"No tickets are configured in {path}.")

    tickets = [
        parse_entry(entry, f"{path.name}, entry {index}")
        for index, entry in enumerate(raw, start=1)
    ]
    logger.debug("Parsed tickets configuration:\n%s", "\n".join(f"* {query}" for query in tickets))
    return tickets


def parse_trackers(path: Path) -> TrackersConfig:
    """
    Read the trackers configuration file.

    Raises:
        ConfigurationError: If the file is unreadable or doesn't describe both trackers
    """
    raw = _read_yaml(path)
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Expected a YAML mapping of trackers in {path}.")

    try:
        trackers = TrackersConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid trackers configuration in {path}: {e}") from e

    logger.debug(
        "Parsed trackers configuration: %s",
        trackers.model_dump(exclude={"bugzilla": {"api_key"}, "jira": {"api_key"}})
    )
    return trackers


def _file_defines_footnote(path: str) -> bool:
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                if not line.startswith("//") and FOOTNOTE_PATTERN.search(line):
                    return True
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read AsciiDoc file {path}: {e}") from e
    return False


def is_footnote_defined(project_dir: Path) -> bool:
    """
    Check whether any AsciiDoc file in the project defines the private ticket footnote.

    Hidden directories such as `.git` are skipped.
    """
    for root, dirs, files in os.walk(project_dir):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        for name in sorted(files):
            if name.endswith(ADOC_EXTENSIONS) and _file_defines_footnote(os.path.join(root, name)):
                logger.info("The private ticket footnote is defined.")
                return True
    return False


@dataclass
class Project:
    """The parsed configuration of a release notes project."""

    base_dir: Path
    tickets: List[TicketQuery]
    trackers: TrackersConfig
    private_footnote: bool = False


def load_project(
    directory: Union[str, Path],
    tickets_path: Optional[Union[str, Path]] = None,
    trackers_path: Optional[Union[str, Path]] = None
) -> Project:
    """
    Load the configuration of the release notes project in the given directory.

    Args:
        directory: The project root, which contains the `relnote_tickets/` data directory
        tickets_path: Use this tickets file instead of the one in the data directory
        trackers_path: Use this trackers file instead of the one in the data directory

    Returns:
        The parsed project

    Raises:
        ConfigurationError: If a configuration file is missing or invalid
    """
    base_dir = Path(directory).resolve()
    if not base_dir.is_dir():
        raise ConfigurationError(f"The project directory doesn't exist: {base_dir}")

    data_dir = base_dir / DATA_DIR
    if (tickets_path is None or trackers_path is None) and not data_dir.is_dir():
        raise ConfigurationError(f"The configuration directory is missing: {data_dir}")

    tickets_file = Path(tickets_path) if tickets_path else data_dir / TICKETS_FILE
    trackers_file = Path(trackers_path) if trackers_path else data_dir / TRACKERS_FILE
    logger.debug("Configuration files:\n* %s\n* %s", tickets_file, trackers_file)

    return Project(
        base_dir=base_dir,
        tickets=parse_tickets(tickets_file),
        trackers=parse_trackers(trackers_file),
        private_footnote=is_footnote_defined(base_dir),
    )

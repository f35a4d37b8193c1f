"""
Unit tests for loading tickets.yaml and trackers.yaml and detecting the private ticket footnote.
"""
from pathlib import Path

import pytest
import yaml

from relnote_tickets.errors import ConfigurationError
from relnote_tickets.models import Overrides, TicketQuery, Tracker
from relnote_tickets.project import (
    is_footnote_defined,
    load_project,
    parse_tickets,
    parse_trackers,
)


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def project_dir(tmp_path, trackers_data):
    data_dir = tmp_path / "relnote_tickets"
    _write(data_dir / "trackers.yaml", yaml.safe_dump(trackers_data))
    _write(data_dir / "tickets.yaml", "- [BZ, {key: 111}]\n- [Jira, {search: 'project = X'}]\n")
    return tmp_path


def test_parse_list_entries(tmp_path):
    """Test the list form with identifiers, overrides, and nested references."""
    path = _write(tmp_path / "tickets.yaml", """
- [BZ, {key: 12345}]
- [jira, {search: "project = PROJ AND fixVersion = 2.1"}, {overrides: {doc_type: Bug Fix, subsystems: [Storage]}}]
- [Bugzilla, {key: "00777"}, {references: [[Jira, {key: PROJ-1}, {references: [[BZ, {key: 5}]]}]]}]
""")

    tickets = parse_tickets(path)

    assert tickets[0] == TicketQuery.key(Tracker.BUGZILLA, "12345")
    assert tickets[1] == TicketQuery.search(
        Tracker.JIRA,
        "project = PROJ AND fixVersion = 2.1",
        overrides=Overrides(doc_type="Bug Fix", subsystems=("Storage",))
    )
    assert tickets[2].selector.value == "00777", "Quoted keys keep their leading zeros"
    reference = tickets[2].references[0]
    assert reference == TicketQuery.key(
        Tracker.JIRA, "PROJ-1", references=(TicketQuery.key(Tracker.BUGZILLA, "5"),)
    )


def test_parse_tagged_entries(tmp_path):
    path = _write(tmp_path / "tickets.yaml", """
- !key [BZ, 12345, {overrides: {components: [kernel]}}]
- !search [Jira, "labels = cve", {references: [!key [Jira, PROJ-2]]}]
""")

    tickets = parse_tickets(path)

    assert tickets[0] == TicketQuery.key(
        Tracker.BUGZILLA, "12345", overrides=Overrides(components=("kernel",))
    )
    assert tickets[1] == TicketQuery.search(
        Tracker.JIRA, "labels = cve", references=(TicketQuery.key(Tracker.JIRA, "PROJ-2"),)
    )


@pytest.mark.parametrize("text, message", [
    ("- [BZ, {key: 1, search: 'x'}]\n", "exactly one"),
    ("- [BZ, {}]\n", "exactly one"),
    ("- [BZ, {id: 1}]\n", "Unknown identifier"),
    ("- [GitHub, {key: 1}]\n", "Unsupported issue tracker"),
    ("- [BZ, {key: 1}, {priority: high}]\n", "Unknown options"),
    ("- [BZ, {key: 1}, {overrides: {release: '9.2'}}]\n", "Invalid overrides"),
    ("- [BZ]\n", "tracker, an identifier"),
    ("- BZ-1\n", "must be a list"),
    ("tickets: []\n", "Expected a YAML list"),
    ("[]\n", "No tickets are configured"),
    ("- [BZ, {key: 1}\n", "Failed to parse YAML"),
])
def test_invalid_tickets_are_configuration_errors(tmp_path, text, message):
    path = _write(tmp_path / "tickets.yaml", text)

    with pytest.raises(ConfigurationError) as exc_info:
        parse_tickets(path)

    assert message in str(exc_info.value)


def test_parse_trackers_accepts_field_name_lists(tmp_path, trackers_data):
    path = _write(tmp_path / "trackers.yaml", yaml.safe_dump(trackers_data))

    trackers = parse_trackers(path)

    assert trackers.bugzilla.fields.doc_type == ["cf_doc_type"]
    assert trackers.bugzilla.fields.target_release == ["cf_internal_target_release", "target_release"]
    assert trackers.instance(Tracker.JIRA).host == "https://issues.example.com"


def test_parse_trackers_requires_both_trackers(tmp_path, trackers_data):
    del trackers_data["jira"]
    path = _write(tmp_path / "trackers.yaml", yaml.safe_dump(trackers_data))

    with pytest.raises(ConfigurationError):
        parse_trackers(path)


def test_load_project(project_dir):
    project = load_project(project_dir)

    assert project.base_dir == project_dir.resolve()
    assert [str(query) for query in project.tickets] == ["Bugzilla:111", 'Jira search "project = X"']
    assert project.trackers.bugzilla.api_key == "bz-key"
    assert project.private_footnote is False


def test_load_project_with_explicit_tickets_file(project_dir, tmp_path):
    other = _write(tmp_path / "other" / "tickets.yaml", "- [Jira, {key: PROJ-9}]\n")

    project = load_project(project_dir, tickets_path=other)

    assert project.tickets == [TicketQuery.key(Tracker.JIRA, "PROJ-9")]


def test_missing_data_directory(tmp_path):
    with pytest.raises(ConfigurationError) as exc_info:
        load_project(tmp_path)

    assert "configuration directory is missing" in str(exc_info.value)


def test_footnote_detection(tmp_path):
    """Test that only uncommented footnote definitions in AsciiDoc files count."""
    _write(tmp_path / "main.adoc", "// footnoteref:[PrivateTicketFootnote,Commented out.]\n")
    _write(tmp_path / "notes.txt", "footnoteref:[PrivateTicketFootnote,Not AsciiDoc.]\n")
    _write(tmp_path / ".hidden" / "x.adoc", "footnoteref:[PrivateTicketFootnote,Hidden.]\n")
    assert is_footnote_defined(tmp_path) is False

    _write(
        tmp_path / "modules" / "attributes.asciidoc",
        ":private: footnoteref:[PrivateTicketFootnote,This ticket is private.]\n"
    )
    assert is_footnote_defined(tmp_path) is True

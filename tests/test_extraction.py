"""Tests for issue parsing and per-ticket extraction."""

from datetime import datetime, timedelta, timezone

import pytest

from ticket_sync.exceptions import MalformedIssueError
from ticket_sync.models.issue import RawIssue
from ticket_sync.services.bucket_registry import StatusBucketRegistry
from ticket_sync.services.extraction import extract_outcome, extract_ticket

SERVER = "https://example.atlassian.net"


class TestRawIssue:
    """RawIssue.from_payload parsing."""

    def test_parses_fields_and_changelog(self, make_issue, t0):
        payload = make_issue("PROJ-7", [(t0, "Open", "In Progress")], issue_id="10077")

        issue = RawIssue.from_payload(payload)

        assert issue.issue_id == "10077"
        assert issue.key == "PROJ-7"
        assert issue.priority == "High"
        assert issue.status == "In Progress"
        assert issue.components == ["Backend", "API"]
        assert issue.assignee == "Alex Doe"
        assert issue.reporter == "Sam Roe"
        assert issue.original_estimate == 7200
        assert issue.due_date == datetime(2024, 3, 31, tzinfo=timezone.utc)
        assert issue.changelog[0].created == t0
        assert issue.changelog[0].items[0].to_string == "In Progress"

    def test_missing_optional_fields(self):
        issue = RawIssue.from_payload({"id": "1", "key": "PROJ-1", "fields": {"assignee": None}})

        assert issue.priority is None
        assert issue.assignee is None
        assert issue.components == []
        assert issue.changelog == []

    def test_timestamp_offsets_are_normalised_to_utc(self):
        issue = RawIssue.from_payload({"key": "PROJ-1", "fields": {"created": "2024-03-01T11:00:00.000+0200"}})

        assert issue.created == datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("payload", [
        None,
        {"id": "1", "fields": {}},
        {"key": "PROJ-1", "fields": "oops"},
        {"key": "PROJ-1", "changelog": {"histories": [{"items": []}]}},
        {"key": "PROJ-1", "changelog": {"histories": [{"created": "yesterday", "items": []}]}},
        {"key": "PROJ-1", "fields": {"created": "not a date"}},
    ])
    def test_malformed_payloads(self, payload):
        with pytest.raises(MalformedIssueError):
            RawIssue.from_payload(payload)


def test_extract_closed_ticket(make_issue, proj_config, t0):
    t1, t2 = t0 + timedelta(hours=5), t0 + timedelta(hours=8)
    issue = RawIssue.from_payload(make_issue("PROJ-1", [
        (t0, "Open", "In Progress"),
        (t1, "In Progress", "Blocked"),
        (t2, "Blocked", "Done"),
    ]))

    ticket = extract_ticket(issue, proj_config, SERVER + "/", now=t2 + timedelta(days=3))

    assert ticket is not None
    assert ticket.jira_id == "PROJ-1"
    assert ticket.link == f"{SERVER}/browse/PROJ-1"
    assert ticket.title == "Summary of PROJ-1"
    assert ticket.end_date == t2
    assert ticket.in_progress_time == 5 * 3600
    assert ticket.blocked_time == 3 * 3600
    assert ticket.review_time == 0
    assert ticket.status == "Done"


def test_extract_skips_ticket_that_never_closed(make_issue, proj_config, t0):
    issue = RawIssue.from_payload(make_issue("PROJ-2", [
        (t0, "Open", "In Progress"),
        (t0 + timedelta(hours=1), "In Progress", "Blocked"),
    ]))

    assert extract_ticket(issue, proj_config, SERVER, now=t0 + timedelta(days=1)) is None


def test_extract_defaults_unknown_priority_and_status(make_issue, proj_config, t0):
    payload = make_issue("PROJ-3", [(t0, "Open", "Done")], priority=None, status=None)

    ticket = extract_ticket(RawIssue.from_payload(payload), proj_config, SERVER, now=t0)

    assert ticket.priority == "Unknown"
    assert ticket.status == "Unknown"


def test_outcome_kinds(make_issue, proj_config, t0):
    registry = StatusBucketRegistry([proj_config])
    now = t0 + timedelta(days=1)

    extracted = extract_outcome(make_issue("PROJ-1", [(t0, "Open", "Done")]), registry, SERVER, now)
    skipped = extract_outcome(make_issue("PROJ-2", [(t0, "Open", "In Progress")]), registry, SERVER, now)
    unconfigured = extract_outcome(make_issue("OPS-1", [(t0, "Open", "Done")]), registry, SERVER, now)

    assert extracted.kind == "extracted"
    assert extracted.ticket.jira_id == "PROJ-1"
    assert skipped.kind == "skipped"
    assert skipped.ticket_id == "PROJ-2"
    assert unconfigured.kind == "skipped"


def test_outcome_failed_for_malformed_changelog(make_issue, proj_config, t0):
    payload = make_issue("PROJ-4", [(t0, "Open", "Done")])
    payload["changelog"]["histories"][0]["items"][0]["toString"] = None

    outcome = extract_outcome(payload, StatusBucketRegistry([proj_config]), SERVER, t0)

    assert outcome.kind == "failed"
    assert outcome.ticket_id == "PROJ-4"
    assert "PROJ-4" in outcome.reason


def test_outcome_failed_for_non_object_payload(proj_config, t0):
    outcome = extract_outcome("garbage", StatusBucketRegistry([proj_config]), SERVER, t0)

    assert outcome.kind == "failed"
    assert outcome.ticket_id == "unknown"


def test_include_ongoing_counts_current_status(make_issue, proj_config, t0):
    issue = RawIssue.from_payload(make_issue("PROJ-5", [
        (t0, "Open", "Done"),
        (t0 + timedelta(hours=1), "Done", "Blocked"),
    ]))
    now = t0 + timedelta(hours=3)

    assert extract_ticket(issue, proj_config, SERVER, now=now).blocked_time == 0
    assert extract_ticket(issue, proj_config, SERVER, now=now, include_ongoing=True).blocked_time == 2 * 3600

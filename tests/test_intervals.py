"""Tests for changelog interval reconstruction."""

from datetime import timedelta

import pytest

from ticket_sync.exceptions import MalformedIssueError
from ticket_sync.models.issue import ChangelogEntry, ChangelogItem
from ticket_sync.services.intervals import reconstruct_intervals


def status_entry(ts, to_status, from_status=None, extra_items=()):
    items = list(extra_items) + [ChangelogItem(field="status", from_string=from_status, to_string=to_status)]
    return ChangelogEntry(created=ts, items=items)


def test_example_transitions_produce_contiguous_intervals(t0):
    t1, t2 = t0 + timedelta(hours=5), t0 + timedelta(hours=8)
    changelog = [
        status_entry(t0, "In Progress", "Open"),
        status_entry(t1, "Blocked", "In Progress"),
        status_entry(t2, "Done", "Blocked"),
    ]

    intervals = reconstruct_intervals(changelog)

    assert [(i.status, i.start, i.end) for i in intervals] == [
        ("In Progress", t0, t1),
        ("Blocked", t1, t2),
        ("Done", t2, None),
    ]
    assert not intervals[-1].ongoing


def test_one_interval_per_status_change_and_ends_meet_starts(t0):
    changelog = [status_entry(t0 + timedelta(minutes=17 * n), f"S{n}") for n in range(7)]

    intervals = reconstruct_intervals(changelog, now=t0 + timedelta(days=1))

    assert len(intervals) == 7
    for current, following in zip(intervals, intervals[1:]):
        assert current.end == following.start
        assert not current.ongoing


def test_trailing_interval_closed_at_now_is_flagged_ongoing(t0):
    now = t0 + timedelta(days=2)

    intervals = reconstruct_intervals([status_entry(t0, "Blocked")], now=now)

    assert len(intervals) == 1
    assert intervals[0].end == now
    assert intervals[0].ongoing
    assert not intervals[0].is_complete


def test_now_before_last_transition_does_not_produce_negative_span(t0):
    intervals = reconstruct_intervals([status_entry(t0, "Blocked")], now=t0 - timedelta(hours=1))

    assert intervals[0].duration_seconds == 0


def test_entries_are_sorted_by_timestamp(t0):
    t1 = t0 + timedelta(hours=1)
    changelog = [status_entry(t1, "Done"), status_entry(t0, "In Progress")]

    intervals = reconstruct_intervals(changelog)

    assert [i.status for i in intervals] == ["In Progress", "Done"]
    assert intervals[0].end == t1


def test_same_timestamp_entries_keep_original_order(t0):
    changelog = [status_entry(t0, "Ready for Dev"), status_entry(t0, "In Progress")]

    intervals = reconstruct_intervals(changelog)

    assert [i.status for i in intervals] == ["Ready for Dev", "In Progress"]
    assert intervals[0].duration_seconds == 0


def test_non_status_items_are_ignored(t0):
    entry = status_entry(
        t0, "In Progress",
        extra_items=[ChangelogItem(field="assignee", from_string=None, to_string="Alex Doe")],
    )
    comment_only = ChangelogEntry(
        created=t0 + timedelta(hours=1),
        items=[ChangelogItem(field="priority", from_string="Low", to_string="High")],
    )

    intervals = reconstruct_intervals([entry, comment_only])

    assert [i.status for i in intervals] == ["In Progress"]


def test_no_status_changes_yields_no_intervals(t0):
    entry = ChangelogEntry(created=t0, items=[ChangelogItem(field="summary", to_string="New title")])

    assert reconstruct_intervals([entry], now=t0) == ()
    assert reconstruct_intervals([]) == ()


def test_label_casing_is_preserved(t0):
    intervals = reconstruct_intervals([status_entry(t0, "iN PrOgReSs")])

    assert intervals[0].status == "iN PrOgReSs"


def test_status_change_without_target_is_malformed(t0):
    entry = ChangelogEntry(created=t0, items=[ChangelogItem(field="status", from_string="Open", to_string=None)])

    with pytest.raises(MalformedIssueError):
        reconstruct_intervals([entry])

"""Rebuild status intervals from an issue changelog."""

from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from ..exceptions import MalformedIssueError
from ..models.issue import ChangelogEntry
from ..models.status import StatusInterval


def reconstruct_intervals(
    changelog: Iterable[ChangelogEntry],
    now: Optional[datetime] = None,
) -> Tuple[StatusInterval, ...]:
    """Turn status transitions into contiguous, non-overlapping intervals.

    Entries are ordered by timestamp (stable, so same-instant entries keep
    their original order) and every ``status`` item opens a new interval
    that closes the previous one. Time before the first transition is not
    represented.

    Args:
        changelog: History entries in any order
        now: Measurement instant. When given, the trailing interval is closed
            at it and flagged ``ongoing``; otherwise it is left open.

    Returns:
        Intervals in chronological order; empty if no status ever changed

    Raises:
        MalformedIssueError: If a status change has no target status
    """
    entries = sorted(changelog, key=lambda entry: entry.created)

    transitions: List[Tuple[datetime, str]] = []
    for entry in entries:
        for item in entry.items:
            if not item.is_status_change:
                continue
            if not item.to_string:
                raise MalformedIssueError(f"Status change at {entry.created.isoformat()} has no target status")
            transitions.append((entry.created, item.to_string))

    intervals: List[StatusInterval] = []
    for index, (start, status) in enumerate(transitions):
        if index + 1 < len(transitions):
            intervals.append(StatusInterval(status=status, start=start, end=transitions[index + 1][0]))
        elif now is not None:
            intervals.append(StatusInterval(status=status, start=start, end=max(now, start), ongoing=True))
        else:
            intervals.append(StatusInterval(status=status, start=start))
    return tuple(intervals)

"""Sum status intervals into configured buckets and find the closure timestamp."""

import math
from typing import Dict, List, Sequence

from ..models.status import BucketName, StatusBucketConfig, StatusInterval, StatusTimeSummary


def _round_seconds(seconds: float) -> int:
    # Half-up; fractional seconds only appear in the summed total.
    return int(math.floor(seconds + 0.5))


def aggregate_status_time(
    intervals: Sequence[StatusInterval],
    config: StatusBucketConfig,
    include_ongoing: bool = False,
) -> StatusTimeSummary:
    """Aggregate intervals for one ticket.

    Only completed intervals count towards bucket durations unless
    ``include_ongoing`` is set, in which case the trailing interval
    contributes its time up to the measurement instant.

    Args:
        intervals: Chronological intervals from reconstruct_intervals
        config: Bucket configuration for the ticket's project
        include_ongoing: Count the still-active interval as well

    Returns:
        StatusTimeSummary with per-bucket seconds, the first closure
        timestamp (or None) and statuses no bucket mentions
    """
    totals: Dict[BucketName, float] = {bucket: 0.0 for bucket in BucketName}
    for interval in intervals:
        if interval.end is None:
            continue
        if interval.ongoing and not include_ongoing:
            continue
        for bucket in BucketName:
            if config.matches(bucket, interval.status):
                totals[bucket] += interval.duration_seconds

    closed_at = None
    for interval in intervals:
        if config.is_closed(interval.status):
            closed_at = interval.start
            break

    mapped = config.mapped_statuses()
    seen = set()
    unmapped: List[str] = []
    for interval in intervals:
        lowered = interval.status.lower()
        if lowered in seen:
            continue
        seen.add(lowered)
        if lowered not in mapped:
            unmapped.append(interval.status)

    return StatusTimeSummary(
        durations={bucket: _round_seconds(seconds) for bucket, seconds in totals.items()},
        closed_at=closed_at,
        unmapped_statuses=unmapped,
    )

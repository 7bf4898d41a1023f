"""Per-ticket extraction: raw issue record to ExtractedTicket."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..models.issue import RawIssue
from ..models.status import BucketName, StatusBucketConfig
from ..models.ticket import ExtractedTicket, TicketOutcome
from ..utils.formatters import format_duration
from .aggregator import aggregate_status_time
from .bucket_registry import StatusBucketRegistry
from .intervals import reconstruct_intervals

logger = logging.getLogger(__name__)


def extract_ticket(
    issue: RawIssue,
    config: StatusBucketConfig,
    server_url: str,
    now: datetime,
    include_ongoing: bool = False,
) -> Optional[ExtractedTicket]:
    """Compute the stored representation of one issue.

    Tickets that never entered a closed status are not resolved yet and
    yield None; they are skipped, not stored with an empty closure date.

    Args:
        issue: Parsed issue with changelog
        config: Bucket configuration for the issue's project
        server_url: Jira base URL used to build the browse link
        now: Measurement instant shared by the whole sync run
        include_ongoing: Count the still-active status towards its bucket

    Returns:
        ExtractedTicket, or None if the ticket has no closure timestamp
    """
    intervals = reconstruct_intervals(issue.changelog, now=now)
    summary = aggregate_status_time(intervals, config, include_ongoing=include_ongoing)

    if summary.closed_at is None:
        logger.info(
            "Skipping ticket %s - no close date found using ticket closed statuses. "
            "This ticket may not be resolved.", issue.key
        )
        return None

    if len(intervals) > 1:
        logger.debug("Status periods for %s: %s", issue.key, " -> ".join(i.status for i in intervals))
    if summary.total_seconds:
        logger.info(
            "Ticket %s status times - %s", issue.key,
            ", ".join(f"{bucket.value}: {format_duration(summary.duration(bucket))}" for bucket in BucketName)
        )
    if summary.unmapped_statuses:
        logger.info("Ticket %s has unmapped statuses: %s", issue.key, ", ".join(summary.unmapped_statuses))

    return ExtractedTicket(
        jira_id=issue.key,
        link=f"{server_url.rstrip('/')}/browse/{issue.key}",
        title=issue.summary,
        priority=issue.priority or 'Unknown',
        status=issue.status or 'Unknown',
        create_date=issue.created,
        end_date=summary.closed_at,
        original_estimate=issue.original_estimate,
        components=issue.components,
        due_date=issue.due_date,
        assignee=issue.assignee,
        reporter=issue.reporter,
        in_progress_time=summary.duration(BucketName.IN_PROGRESS),
        blocked_time=summary.duration(BucketName.BLOCKED),
        review_time=summary.duration(BucketName.REVIEW),
        promotion_time=summary.duration(BucketName.PROMOTION),
        refinement_time=summary.duration(BucketName.REFINEMENT),
        ready_for_development_time=summary.duration(BucketName.READY_FOR_DEVELOPMENT),
        unmapped_statuses=summary.unmapped_statuses,
    )


def extract_outcome(
    payload: Dict[str, Any],
    registry: StatusBucketRegistry,
    server_url: str,
    now: datetime,
    include_ongoing: bool = False,
) -> TicketOutcome:
    """Extract one raw issue record, turning any failure into a failed outcome."""
    ticket_id = _payload_key(payload)
    try:
        issue = RawIssue.from_payload(payload)
        config = registry.resolve(issue.key)
        ticket = extract_ticket(issue, config, server_url, now, include_ongoing=include_ongoing)
    except Exception as e:
        logger.error("Error extracting ticket data for %s: %s", ticket_id, e)
        return TicketOutcome.failed(ticket_id, f"Failed to extract data for ticket {ticket_id}: {e}")

    if ticket is None:
        return TicketOutcome.skipped(issue.key, "no transition into a closed status")
    return TicketOutcome.extracted(ticket)


def _payload_key(payload: Any) -> str:
    if isinstance(payload, dict):
        return str(payload.get('key') or payload.get('id') or 'unknown')
    return 'unknown'

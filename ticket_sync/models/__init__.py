"""Data models for Jira Ticket Sync."""

from .issue import ChangelogEntry, ChangelogItem, RawIssue
from .status import BucketName, StatusBucketConfig, StatusInterval, StatusTimeSummary
from .ticket import ExtractedTicket, FetchResult, SyncError, SyncReport, SyncState, TicketOutcome, TicketPage

__all__ = [
    'BucketName',
    'ChangelogEntry',
    'ChangelogItem',
    'ExtractedTicket',
    'FetchResult',
    'RawIssue',
    'StatusBucketConfig',
    'StatusInterval',
    'StatusTimeSummary',
    'SyncError',
    'SyncReport',
    'SyncState',
    'TicketOutcome',
    'TicketPage',
]

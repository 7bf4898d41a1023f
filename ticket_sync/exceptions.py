"""Exceptions raised by the ticket sync engine."""

from typing import Optional


class TicketSyncError(Exception):
    """Base exception for all ticket sync errors."""


class CredentialsError(TicketSyncError):
    """Error when tracker credentials are missing or malformed."""


class JiraApiError(TicketSyncError):
    """Error returned by the Jira REST API or the transport underneath it."""

    def __init__(self, message: str, status_code: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason or message


class JiraConnectionError(JiraApiError):
    """Error when the tracker cannot be reached or rejects the credentials."""


class BatchFetchError(JiraApiError):
    """Error when a single bulk fetch batch fails."""

    def __init__(self, message: str, batch_number: int, issue_count: int, status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code)
        self.batch_number = batch_number
        self.issue_count = issue_count


class MalformedIssueError(TicketSyncError):
    """Error when an issue payload or its changelog has an unexpected shape."""


class PersistenceError(TicketSyncError):
    """Error when a ticket cannot be written to the ticket store."""


class SyncCancelled(TicketSyncError):
    """Raised at a checkpoint once a sync run has been cancelled or timed out."""

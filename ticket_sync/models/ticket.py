"""Extracted ticket and sync report models."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .status import BucketName


class ExtractedTicket(BaseModel):
    """A closed ticket with its time-in-status durations, ready to persist."""

    model_config = ConfigDict(from_attributes=True)

    jira_id: str = Field(..., description="Issue key, unique in the ticket store")
    link: str
    title: str = ''
    priority: str = 'Unknown'
    status: str = 'Unknown'
    create_date: Optional[datetime] = None
    end_date: datetime = Field(..., description="First transition into a closed status")
    original_estimate: Optional[int] = None
    components: List[str] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    assignee: Optional[str] = None
    reporter: Optional[str] = None
    in_progress_time: int = 0
    blocked_time: int = 0
    review_time: int = 0
    promotion_time: int = 0
    refinement_time: int = 0
    ready_for_development_time: int = 0
    unmapped_statuses: List[str] = Field(default_factory=list)

    @property
    def durations(self) -> Dict[BucketName, int]:
        return {bucket: getattr(self, f"{bucket.value}_time") for bucket in BucketName}


class TicketOutcome(BaseModel):
    """Per-ticket extraction result: extracted, skipped (not closed) or failed."""

    ticket_id: str
    kind: Literal['extracted', 'skipped', 'failed']
    ticket: Optional[ExtractedTicket] = None
    reason: Optional[str] = None

    @classmethod
    def extracted(cls, ticket: ExtractedTicket) -> 'TicketOutcome':
        return cls(ticket_id=ticket.jira_id, kind='extracted', ticket=ticket)

    @classmethod
    def skipped(cls, ticket_id: str, reason: str) -> 'TicketOutcome':
        return cls(ticket_id=ticket_id, kind='skipped', reason=reason)

    @classmethod
    def failed(cls, ticket_id: str, reason: str) -> 'TicketOutcome':
        return cls(ticket_id=ticket_id, kind='failed', reason=reason)


class SyncError(BaseModel):
    """A recoverable problem recorded during a sync run."""

    stage: Literal['fetch', 'extract', 'persist']
    message: str
    ticket_id: Optional[str] = None
    batch_number: Optional[int] = None


class FetchResult(BaseModel):
    """Issues returned by the two-phase fetch plus any failed batches."""

    issue_ids: List[str] = Field(default_factory=list)
    issues: List[Dict[str, Any]] = Field(default_factory=list)
    errors: List[SyncError] = Field(default_factory=list)
    batches_total: int = 0
    batches_failed: int = 0


class SyncState(str, Enum):
    """Orchestrator lifecycle."""

    IDLE = "idle"
    COLLECTING_IDS = "collecting-ids"
    FETCHING_DETAILS = "fetching-details"
    EXTRACTING = "extracting"
    PERSISTING = "persisting"
    DONE = "done"
    CANCELLED = "cancelled"


class SyncReport(BaseModel):
    """Summary returned by one sync run."""

    jql: str
    issues_fetched: int = 0
    tickets_extracted: int = 0
    tickets_skipped: int = 0
    tickets_persisted: int = 0
    errors: List[SyncError] = Field(default_factory=list)
    unmapped_statuses: List[str] = Field(default_factory=list)
    state: SyncState = SyncState.IDLE
    cancelled: bool = False
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return not self.errors and not self.cancelled


class TicketPage(BaseModel):
    """One page of stored tickets."""

    tickets: List[ExtractedTicket]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0

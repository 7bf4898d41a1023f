"""Status bucket configuration and time-in-status models."""

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BucketName(str, Enum):
    """Duration buckets tracked per ticket."""

    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    REVIEW = "review"
    PROMOTION = "promotion"
    REFINEMENT = "refinement"
    READY_FOR_DEVELOPMENT = "ready_for_development"


class StatusBucketConfig(BaseModel):
    """Status bucket definitions for one tracker project prefix."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., description="Project prefix matched against ticket keys (e.g., PROJ)")
    in_progress: Tuple[str, ...] = Field(default=(), alias="inProgressStatuses")
    blocked: Tuple[str, ...] = Field(default=(), alias="blockedStatuses")
    review: Tuple[str, ...] = Field(default=(), alias="reviewStatuses")
    promotion: Tuple[str, ...] = Field(default=(), alias="promotionStatuses")
    refinement: Tuple[str, ...] = Field(default=(), alias="refinementStatuses")
    ready_for_development: Tuple[str, ...] = Field(default=(), alias="readyForDevelopmentStatuses")
    closed: Tuple[str, ...] = Field(default=(), alias="ticketClosesStatuses")
    is_active: bool = Field(default=True, alias="isActive")

    @field_validator(
        'in_progress', 'blocked', 'review', 'promotion', 'refinement', 'ready_for_development', 'closed',
        mode='before'
    )
    @classmethod
    def normalize_statuses(cls, v) -> Tuple[str, ...]:
        """Accept any iterable of strings; drop blanks and surrounding whitespace."""
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        return tuple(s.strip() for s in v if s and s.strip())

    def statuses_for(self, bucket: BucketName) -> Tuple[str, ...]:
        return getattr(self, BucketName(bucket).value)

    def _lowered(self, statuses: Tuple[str, ...]) -> FrozenSet[str]:
        return frozenset(s.lower() for s in statuses)

    def matches(self, bucket: BucketName, status: str) -> bool:
        """Check whether a status belongs to a bucket (case-insensitive)."""
        return status.lower() in self._lowered(self.statuses_for(bucket))

    def is_closed(self, status: str) -> bool:
        """Check whether a status means the ticket is closed (case-insensitive)."""
        return status.lower() in self._lowered(self.closed)

    def mapped_statuses(self) -> FrozenSet[str]:
        """All configured statuses (every bucket plus closed), lowercased."""
        statuses = set(self._lowered(self.closed))
        for bucket in BucketName:
            statuses |= self._lowered(self.statuses_for(bucket))
        return frozenset(statuses)

    def is_mapped(self, status: str) -> bool:
        return status.lower() in self.mapped_statuses()


class StatusInterval(BaseModel):
    """A span of time during which a ticket held one status."""

    model_config = ConfigDict(frozen=True)

    status: str
    start: datetime
    end: Optional[datetime] = None
    ongoing: bool = Field(
        default=False,
        description="Trailing interval still active at the measurement instant"
    )

    @property
    def is_complete(self) -> bool:
        """Whether the ticket has left this status."""
        return self.end is not None and not self.ongoing

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.end is None:
            return None
        return (self.end - self.start).total_seconds()


class StatusTimeSummary(BaseModel):
    """Aggregated time-in-status for one ticket."""

    model_config = ConfigDict(frozen=True)

    durations: Dict[BucketName, int]
    closed_at: Optional[datetime] = None
    unmapped_statuses: List[str] = Field(default_factory=list)

    def duration(self, bucket: BucketName) -> int:
        return self.durations.get(BucketName(bucket), 0)

    @property
    def total_seconds(self) -> int:
        return sum(self.durations.values())

"""SQLAlchemy ORM models for stored tickets and status bucket configurations."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JiraTicketRecord(Base):
    """Persisted ticket, unique by Jira key."""
    __tablename__ = 'jira_tickets'

    id = Column(Integer, primary_key=True, autoincrement=True)
    jira_id = Column(String(64), nullable=False, unique=True, index=True)
    link = Column(String(512), nullable=False)
    title = Column(Text, nullable=False, default='')
    priority = Column(String(64), nullable=False, default='Unknown')
    status = Column(String(128), nullable=False, default='Unknown')
    create_date = Column(DateTime(timezone=True))
    end_date = Column(DateTime(timezone=True), nullable=False)
    original_estimate = Column(Integer)
    components = Column(JSON, nullable=False, default=list)
    due_date = Column(DateTime(timezone=True))
    assignee = Column(String(255), index=True)
    reporter = Column(String(255))
    in_progress_time = Column(Integer, nullable=False, default=0)
    blocked_time = Column(Integer, nullable=False, default=0)
    review_time = Column(Integer, nullable=False, default=0)
    promotion_time = Column(Integer, nullable=False, default=0)
    refinement_time = Column(Integer, nullable=False, default=0)
    ready_for_development_time = Column(Integer, nullable=False, default=0)
    unmapped_statuses = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class JiraConfigurationRecord(Base):
    """Status bucket definitions for one project prefix."""
    __tablename__ = 'jira_configurations'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False, unique=True)
    in_progress_statuses = Column(JSON, nullable=False, default=list)
    blocked_statuses = Column(JSON, nullable=False, default=list)
    review_statuses = Column(JSON, nullable=False, default=list)
    promotion_statuses = Column(JSON, nullable=False, default=list)
    refinement_statuses = Column(JSON, nullable=False, default=list)
    ready_for_development_statuses = Column(JSON, nullable=False, default=list)
    ticket_closes_statuses = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


# ExtractedTicket fields written by an upsert, in column order.
TICKET_FIELDS = (
    'link', 'title', 'priority', 'status', 'create_date', 'end_date', 'original_estimate',
    'components', 'due_date', 'assignee', 'reporter', 'in_progress_time', 'blocked_time',
    'review_time', 'promotion_time', 'refinement_time', 'ready_for_development_time',
    'unmapped_statuses',
)

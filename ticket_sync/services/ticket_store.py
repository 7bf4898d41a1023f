"""Relational storage for extracted tickets and status bucket configurations."""

import logging
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..exceptions import PersistenceError
from ..models.records import TICKET_FIELDS, Base, JiraConfigurationRecord, JiraTicketRecord, utcnow
from ..models.status import StatusBucketConfig
from ..models.ticket import ExtractedTicket, TicketPage
from ..utils.formatters import ensure_utc

logger = logging.getLogger(__name__)

_DATETIME_FIELDS = ('create_date', 'end_date', 'due_date')


def build_engine(database: Union[str, Engine]) -> Engine:
    """Accept either a database URL or an existing engine."""
    if isinstance(database, Engine):
        return database
    return create_engine(database)


def _record_to_ticket(record: JiraTicketRecord) -> ExtractedTicket:
    ticket = ExtractedTicket.model_validate(record)
    return ticket.model_copy(update={name: ensure_utc(getattr(ticket, name)) for name in _DATETIME_FIELDS})


class ConfigurationStore:
    """Read access to status bucket configurations."""

    def __init__(self, database: Union[str, Engine]):
        self.engine = build_engine(database)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def load_active(self) -> List[StatusBucketConfig]:
        """Return every active configuration, ordered by name."""
        with self._session_factory() as session:
            records = session.scalars(
                select(JiraConfigurationRecord)
                .where(JiraConfigurationRecord.is_active.is_(True))
                .order_by(JiraConfigurationRecord.name)
            ).all()
            return [
                StatusBucketConfig(
                    name=r.name,
                    in_progress=r.in_progress_statuses,
                    blocked=r.blocked_statuses,
                    review=r.review_statuses,
                    promotion=r.promotion_statuses,
                    refinement=r.refinement_statuses,
                    ready_for_development=r.ready_for_development_statuses,
                    closed=r.ticket_closes_statuses,
                    is_active=r.is_active,
                )
                for r in records
            ]

    def save(self, config: StatusBucketConfig) -> None:
        """Insert or replace a configuration by name (seeding and tests)."""
        values = dict(
            in_progress_statuses=list(config.in_progress),
            blocked_statuses=list(config.blocked),
            review_statuses=list(config.review),
            promotion_statuses=list(config.promotion),
            refinement_statuses=list(config.refinement),
            ready_for_development_statuses=list(config.ready_for_development),
            ticket_closes_statuses=list(config.closed),
            is_active=config.is_active,
        )
        with self._session_factory.begin() as session:
            record = session.scalars(
                select(JiraConfigurationRecord).where(JiraConfigurationRecord.name == config.name)
            ).first()
            if record is None:
                session.add(JiraConfigurationRecord(name=config.name, **values))
            else:
                for key, value in values.items():
                    setattr(record, key, value)


class TicketStore:
    """Ticket persistence keyed by Jira id."""

    def __init__(self, database: Union[str, Engine]):
        self.engine = build_engine(database)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def upsert(self, ticket: ExtractedTicket) -> None:
        """Create or replace the stored ticket with the same jira_id.

        All fields are written in one statement, so a ticket is never partially
        stored.

        Raises:
            PersistenceError: If the database rejects the write
        """
        values = ticket.model_dump(include=set(TICKET_FIELDS))
        try:
            with self._session_factory.begin() as session:
                dialect = self.engine.dialect.name
                if dialect in ('sqlite', 'postgresql'):
                    session.execute(self._on_conflict_upsert(dialect, ticket.jira_id, values))
                else:
                    self._select_then_write(session, ticket.jira_id, values)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to store ticket {ticket.jira_id}: {e}") from e

    @staticmethod
    def _on_conflict_upsert(dialect: str, jira_id: str, values: dict):
        if dialect == 'postgresql':
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert
        now = utcnow()
        stmt = insert(JiraTicketRecord).values(jira_id=jira_id, created_at=now, updated_at=now, **values)
        return stmt.on_conflict_do_update(
            index_elements=['jira_id'],
            set_={**values, 'updated_at': now},
        )

    @staticmethod
    def _select_then_write(session, jira_id: str, values: dict) -> None:
        record = session.scalars(
            select(JiraTicketRecord).where(JiraTicketRecord.jira_id == jira_id).with_for_update()
        ).first()
        if record is None:
            session.add(JiraTicketRecord(jira_id=jira_id, **values))
        else:
            for key, value in values.items():
                setattr(record, key, value)
            record.updated_at = utcnow()

    def get(self, jira_id: str) -> Optional[ExtractedTicket]:
        """Get a stored ticket by Jira id."""
        with self._session_factory() as session:
            record = session.scalars(select(JiraTicketRecord).where(JiraTicketRecord.jira_id == jira_id)).first()
            return _record_to_ticket(record) if record else None

    def list_tickets(
        self,
        assignee: Optional[str] = None,
        reporter: Optional[str] = None,
        priority: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        page: int = 1,
        limit: int = 50,
    ) -> TicketPage:
        """List stored tickets, most recently stored first.

        Args:
            assignee: Case-insensitive substring of the assignee name
            reporter: Case-insensitive substring of the reporter name
            priority: Exact priority name
            created_from: Lower bound on the ticket creation date
            created_to: Upper bound on the ticket creation date
            page: 1-based page number
            limit: Page size

        Returns:
            TicketPage with the matching tickets and the total count
        """
        page = max(page, 1)
        limit = max(limit, 1)
        conditions = []
        if assignee:
            conditions.append(func.lower(JiraTicketRecord.assignee).contains(assignee.lower()))
        if reporter:
            conditions.append(func.lower(JiraTicketRecord.reporter).contains(reporter.lower()))
        if priority:
            conditions.append(JiraTicketRecord.priority == priority)
        if created_from:
            conditions.append(JiraTicketRecord.create_date >= created_from)
        if created_to:
            conditions.append(JiraTicketRecord.create_date <= created_to)

        with self._session_factory() as session:
            total = session.scalar(select(func.count()).select_from(JiraTicketRecord).where(*conditions))
            records = session.scalars(
                select(JiraTicketRecord)
                .where(*conditions)
                .order_by(JiraTicketRecord.created_at.desc(), JiraTicketRecord.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            ).all()
            return TicketPage(
                tickets=[_record_to_ticket(r) for r in records], page=page, limit=limit, total=total or 0
            )

    def delete(self, jira_id: str) -> bool:
        """Delete one ticket; returns False if it was not stored."""
        with self._session_factory.begin() as session:
            result = session.execute(delete(JiraTicketRecord).where(JiraTicketRecord.jira_id == jira_id))
            deleted = result.rowcount > 0
        if deleted:
            logger.info("Jira ticket %s deleted", jira_id)
        return deleted

    def delete_all(self) -> int:
        """Delete every stored ticket and return how many were removed."""
        with self._session_factory.begin() as session:
            result = session.execute(delete(JiraTicketRecord))
            count = result.rowcount or 0
        logger.info("All Jira tickets deleted (%d)", count)
        return count

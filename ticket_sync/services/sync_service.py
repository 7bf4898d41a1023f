"""Ticket sync orchestration: fetch, extract, persist."""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Union

from sqlalchemy.engine import Engine

from ..config.auth import JiraAuth, JiraCredentials
from ..config.settings import Settings, get_settings
from ..exceptions import SyncCancelled
from ..models.ticket import ExtractedTicket, SyncError, SyncReport, SyncState, TicketOutcome
from .bucket_registry import StatusBucketRegistry
from .extraction import extract_outcome
from .jira_service import JiraService
from .ticket_store import ConfigurationStore, TicketStore, build_engine

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TicketSyncService:
    """Drives one sync run end to end and reports per-ticket problems.

    Partial failures (a failed detail batch, a malformed ticket, a rejected
    write) are recorded in the SyncReport and never raised. Only setup
    problems and a failed id collection phase propagate to the caller.
    """

    def __init__(
        self,
        jira_service: JiraService,
        configuration_store: ConfigurationStore,
        ticket_store: TicketStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.jira_service = jira_service
        self.configuration_store = configuration_store
        self.ticket_store = ticket_store
        self.settings = settings or jira_service.settings
        self.clock = clock
        self._state = SyncState.IDLE

    @property
    def state(self) -> SyncState:
        return self._state

    def _transition(self, state: SyncState, report: SyncReport) -> None:
        logger.debug("Sync state: %s -> %s", self._state.value, state.value)
        self._state = state
        report.state = state

    @staticmethod
    def _make_checkpoint(cancel_event: Optional[threading.Event], timeout: Optional[float]) -> Callable[[], None]:
        deadline = time.monotonic() + timeout if timeout else None

        def checkpoint() -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise SyncCancelled("Sync cancelled")
            if deadline is not None and time.monotonic() >= deadline:
                raise SyncCancelled(f"Sync exceeded its {timeout:g}s timeout")

        return checkpoint

    def sync_tickets(
        self,
        jql: str,
        cancel_event: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> SyncReport:
        """Sync every ticket matching a JQL query into the ticket store.

        Args:
            jql: JQL query selecting the tickets
            cancel_event: Set from another thread to stop at the next checkpoint
            timeout: Wall-clock budget in seconds (defaults to SYNC_TIMEOUT)

        Returns:
            SyncReport with fetched/extracted/persisted counts and errors

        Raises:
            JiraConnectionError: If issue ids cannot be collected
        """
        now = self.clock()
        report = SyncReport(jql=jql, started_at=now)
        checkpoint = self._make_checkpoint(cancel_event, timeout if timeout is not None else self.settings.sync_timeout)
        logger.info("Starting Jira ticket extraction")

        try:
            registry = StatusBucketRegistry.load(self.configuration_store)

            self._transition(SyncState.COLLECTING_IDS, report)
            issue_ids = self.jira_service.collect_issue_ids(jql, checkpoint)

            self._transition(SyncState.FETCHING_DETAILS, report)
            fetched = self.jira_service.fetch_issue_details(issue_ids, checkpoint)
            report.issues_fetched = len(fetched.issues)
            report.errors.extend(fetched.errors)

            self._transition(SyncState.EXTRACTING, report)
            tickets = self._extract(fetched.issues, registry, now, checkpoint, report)

            self._transition(SyncState.PERSISTING, report)
            self._persist(tickets, checkpoint, report)

            self._transition(SyncState.DONE, report)
        except SyncCancelled as e:
            logger.warning("%s during %s; returning partial report", e, self._state.value)
            report.cancelled = True
            self._transition(SyncState.CANCELLED, report)
        finally:
            report.finished_at = self.clock()

        logger.info(
            "Jira ticket extraction completed: %d fetched, %d extracted, %d skipped, %d stored, %d error(s)",
            report.issues_fetched, report.tickets_extracted, report.tickets_skipped,
            report.tickets_persisted, len(report.errors)
        )
        return report

    def _extract(
        self,
        issues: Iterable[dict],
        registry: StatusBucketRegistry,
        now: datetime,
        checkpoint: Callable[[], None],
        report: SyncReport,
    ) -> List[ExtractedTicket]:
        tickets: List[ExtractedTicket] = []
        unmapped: Dict[str, str] = {}
        try:
            for payload in issues:
                checkpoint()
                outcome: TicketOutcome = extract_outcome(
                    payload, registry, self.jira_service.server_url, now,
                    include_ongoing=self.settings.count_ongoing_time,
                )
                if outcome.kind == 'extracted':
                    tickets.append(outcome.ticket)
                    for status in outcome.ticket.unmapped_statuses:
                        unmapped.setdefault(status.lower(), status)
                elif outcome.kind == 'skipped':
                    report.tickets_skipped += 1
                else:
                    report.errors.append(SyncError(stage='extract', ticket_id=outcome.ticket_id, message=outcome.reason))
        finally:
            report.tickets_extracted = len(tickets)
            report.unmapped_statuses = sorted(unmapped.values(), key=str.lower)
        return tickets

    def _persist(self, tickets: List[ExtractedTicket], checkpoint: Callable[[], None], report: SyncReport) -> None:
        for ticket in tickets:
            checkpoint()
            try:
                self.ticket_store.upsert(ticket)
            except Exception as e:
                logger.error("Error storing ticket %s in database: %s", ticket.jira_id, e)
                report.errors.append(SyncError(
                    stage='persist', ticket_id=ticket.jira_id, message=f"Failed to store ticket {ticket.jira_id}: {e}"
                ))
            else:
                report.tickets_persisted += 1


def run_sync(
    jql: str,
    credentials: JiraCredentials,
    settings: Optional[Settings] = None,
    database: Optional[Union[str, Engine]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> SyncReport:
    """Sync tickets for a JQL query using the given credentials.

    Builds the Jira client and the stores from configuration, creates the
    schema if needed and runs a single sync. An engine built here from a
    database URL is disposed before returning.

    Args:
        jql: JQL query selecting the tickets
        credentials: Tracker endpoint and secrets
        settings: Application settings (defaults to loading from env)
        database: Database URL or engine (defaults to DATABASE_URL)
        cancel_event: Optional cancellation hook

    Returns:
        SyncReport for the run
    """
    settings = settings or get_settings()
    database = database or settings.database_url
    engine = build_engine(database)
    auth = JiraAuth(credentials, settings)
    try:
        ticket_store = TicketStore(engine)
        ticket_store.create_schema()
        service = TicketSyncService(JiraService(auth, settings), ConfigurationStore(engine), ticket_store, settings)
        return service.sync_tickets(jql, cancel_event=cancel_event)
    finally:
        auth.close()
        if engine is not database:
            engine.dispose()

"""Jira API service for the two-phase issue fetch using requests library."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from ..config.auth import ConnectionCheck, JiraAuth, connection_error_from, extract_jira_error_payload
from ..config.settings import Settings
from ..exceptions import BatchFetchError, JiraConnectionError
from ..models.ticket import FetchResult, SyncError

logger = logging.getLogger(__name__)

Checkpoint = Callable[[], None]


def _no_checkpoint() -> None:
    return None


def chunked(items: Sequence[str], size: int) -> List[List[str]]:
    """Split items into consecutive batches of at most ``size``."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class JiraService:
    """Service for Jira search and bulk fetch operations using requests library."""

    def __init__(self, auth: JiraAuth, settings: Optional[Settings] = None):
        """Initialize Jira service.

        Args:
            auth: Jira authentication handler
            settings: Application settings (defaults to the auth handler's)
        """
        self.auth = auth
        self.settings = settings or auth.settings

    @property
    def server_url(self) -> str:
        return self.auth.credentials.server

    def test_connection(self) -> ConnectionCheck:
        """Check connectivity and credentials; failures raise JiraConnectionError."""
        return self.auth.test_connection()

    def collect_issue_ids(self, jql: str, checkpoint: Checkpoint = _no_checkpoint) -> List[str]:
        """Collect the ids of every issue matching a JQL query.

        Pages through the enhanced search endpoint without requesting any
        fields, following ``nextPageToken`` until it is absent.

        Args:
            jql: JQL query string
            checkpoint: Called before each page; raises to stop the collection

        Returns:
            Issue ids in the order returned by Jira

        Raises:
            JiraConnectionError: If any page cannot be retrieved or parsed
        """
        logger.info("Step 1: Collecting all issue IDs...")
        issue_ids: List[str] = []
        next_page_token: Optional[str] = None
        page = 0

        while True:
            checkpoint()
            page += 1
            request_body: Dict[str, Any] = {
                'jql': jql,
                'maxResults': self.settings.id_page_size,
            }
            if next_page_token:
                request_body['nextPageToken'] = next_page_token

            logger.debug("Collecting issue IDs (page %d): %s", page, request_body)
            try:
                response = self.auth._make_request('POST', '/search/jql', json=request_body)
                data = response.json()
            except requests.exceptions.RequestException as e:
                raise connection_error_from(e, f"Issue ID collection (page {page})") from e
            except ValueError as e:
                raise JiraConnectionError(
                    f"Issue ID collection (page {page}) failed: response is not JSON",
                    reason="Unexpected response"
                ) from e

            issues = (data.get('issues') or []) if isinstance(data, dict) else None
            if not isinstance(issues, list) or not all(isinstance(issue, dict) for issue in issues):
                raise JiraConnectionError(
                    f"Issue ID collection (page {page}) failed: unexpected response shape",
                    reason="Unexpected response"
                )
            page_ids = [str(issue['id']) for issue in issues if issue.get('id') is not None]
            issue_ids.extend(page_ids)
            logger.info("Collected %d issue IDs (total: %d)", len(page_ids), len(issue_ids))

            next_page_token = data.get('nextPageToken')
            if not next_page_token:
                break

        logger.info("Step 1 complete. Total issue IDs collected: %d", len(issue_ids))
        return issue_ids

    def fetch_issue_batch(self, issue_ids: Sequence[str], batch_number: int = 1) -> List[Dict[str, Any]]:
        """Fetch full issue payloads (all fields plus changelog) for one batch.

        Args:
            issue_ids: Issue ids or keys, at most DETAIL_BATCH_SIZE of them
            batch_number: 1-based batch number, used in errors

        Returns:
            Issue JSON objects

        Raises:
            BatchFetchError: On timeout, transport failure, non-2xx status or a
                body that is not an issue list
        """
        body = {
            'issueIdsOrKeys': list(issue_ids),
            'fields': ['*all'],
            'expand': ['changelog'],
        }
        try:
            response = self.auth._make_request('POST', '/issue/bulkfetch', json=body)
            data = response.json()
        except requests.exceptions.RequestException as e:
            response = getattr(e, 'response', None)
            status_code = response.status_code if response is not None else None
            message = str(e)
            if response is not None:
                payload = extract_jira_error_payload(response)
                message = payload['formatted'] or message
            raise BatchFetchError(
                f"Batch {batch_number} failed: {message}",
                batch_number=batch_number,
                issue_count=len(issue_ids),
                status_code=status_code,
            ) from e
        except ValueError as e:
            raise BatchFetchError(
                f"Batch {batch_number} failed: response is not JSON",
                batch_number=batch_number,
                issue_count=len(issue_ids),
            ) from e

        issues = (data.get('issues') or []) if isinstance(data, dict) else None
        if not isinstance(issues, list):
            raise BatchFetchError(
                f"Batch {batch_number} failed: unexpected response shape",
                batch_number=batch_number,
                issue_count=len(issue_ids),
            )
        return issues

    def fetch_issue_details(self, issue_ids: Sequence[str], checkpoint: Checkpoint = _no_checkpoint) -> FetchResult:
        """Fetch issue details in batches, dropping batches that fail.

        Args:
            issue_ids: Ids from collect_issue_ids
            checkpoint: Called before each batch; raises to stop fetching

        Returns:
            FetchResult with the issues of every successful batch and one
            SyncError per failed batch
        """
        logger.info("Step 2: Fetching detailed issue information...")
        batches = chunked(issue_ids, self.settings.detail_batch_size)
        result = FetchResult(issue_ids=list(issue_ids), batches_total=len(batches))

        if self.settings.fetch_workers > 1 and len(batches) > 1:
            outcomes = self._fetch_parallel(batches, checkpoint)
        else:
            outcomes = self._fetch_sequential(batches, checkpoint)

        for batch_number, outcome in outcomes:
            if isinstance(outcome, BatchFetchError):
                result.batches_failed += 1
                result.errors.append(SyncError(stage='fetch', message=str(outcome), batch_number=batch_number))
            else:
                result.issues.extend(outcome)

        logger.info("Step 2 complete. Total detailed tickets retrieved: %d", len(result.issues))
        return result

    def _run_batch(self, batch: List[str], batch_number: int, total: int):
        logger.info("Processing batch %d/%d (%d issues)", batch_number, total, len(batch))
        try:
            issues = self.fetch_issue_batch(batch, batch_number)
        except BatchFetchError as e:
            logger.error("Error processing batch %d: %s", batch_number, e)
            return batch_number, e
        logger.info("Batch %d complete. Retrieved %d detailed tickets", batch_number, len(issues))
        return batch_number, issues

    def _fetch_sequential(self, batches: List[List[str]], checkpoint: Checkpoint):
        outcomes = []
        for index, batch in enumerate(batches, start=1):
            checkpoint()
            outcomes.append(self._run_batch(batch, index, len(batches)))
        return outcomes

    def _fetch_parallel(self, batches: List[List[str]], checkpoint: Checkpoint):
        def run(batch: List[str], batch_number: int):
            checkpoint()
            return self._run_batch(batch, batch_number, len(batches))

        # Results are collected in submission order so output order matches the
        # sequential path.
        with ThreadPoolExecutor(max_workers=self.settings.fetch_workers) as executor:
            futures = [executor.submit(run, batch, index) for index, batch in enumerate(batches, start=1)]
            try:
                return [future.result() for future in futures]
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

    def fetch_all(self, jql: str, checkpoint: Checkpoint = _no_checkpoint) -> FetchResult:
        """Run both fetch phases for a JQL query.

        Raises:
            JiraConnectionError: If the id collection phase fails
        """
        issue_ids = self.collect_issue_ids(jql, checkpoint)
        return self.fetch_issue_details(issue_ids, checkpoint)

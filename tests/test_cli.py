"""Tests for the click CLI."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from ticket_sync.config.auth import ConnectionCheck
from ticket_sync.exceptions import JiraConnectionError
from ticket_sync.main import cli
from ticket_sync.models.ticket import SyncError, SyncReport, SyncState

CREDENTIAL_ARGS = [
    "--server", "https://example.atlassian.net",
    "--username", "bot@example.com",
    "--api-token", "token",
]


@pytest.fixture
def runner(monkeypatch):
    for name in ("JIRA_JQL", "SYNC_TIMEOUT", "FETCH_WORKERS", "LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    with patch("ticket_sync.main.configure_logging"), patch("ticket_sync.commands.sync.configure_logging"):
        yield CliRunner()


def test_help_lists_commands(runner):
    result = runner.invoke(cli, [])

    assert result.exit_code == 0
    assert "sync" in result.output
    assert "test" in result.output


def test_connection_success(runner):
    auth = MagicMock()
    auth.test_connection.return_value = ConnectionCheck(server="https://example.atlassian.net", display_name="Bot")

    with patch("ticket_sync.main.JiraAuth", return_value=auth):
        result = runner.invoke(cli, ["test"])

    assert result.exit_code == 0
    assert "Bot" in result.output
    auth.close.assert_called_once_with()


def test_connection_failure_aborts(runner):
    auth = MagicMock()
    auth.test_connection.side_effect = JiraConnectionError("Jira connection test failed: Authentication failed",
                                                           status_code=401)

    with patch("ticket_sync.main.JiraAuth", return_value=auth):
        result = runner.invoke(cli, ["test"])

    assert result.exit_code == 1
    assert "Authentication failed" in result.output


def test_sync_prints_summary(runner):
    report = SyncReport(
        jql="project = PROJ",
        issues_fetched=3,
        tickets_extracted=2,
        tickets_skipped=1,
        tickets_persisted=2,
        errors=[SyncError(stage='fetch', batch_number=4, message="Batch 4 failed: timeout")],
        unmapped_statuses=["Triage"],
        state=SyncState.DONE,
        started_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
    )

    with patch("ticket_sync.commands.sync.run_sync", return_value=report) as run:
        result = runner.invoke(cli, ["sync", "--jql", "project = PROJ", "--workers", "3", *CREDENTIAL_ARGS])

    assert result.exit_code == 0, result.output
    assert "Sync Summary" in result.output
    assert "Triage" in result.output
    assert "batch 4" in result.output
    jql, credentials = run.call_args.args
    assert jql == "project = PROJ"
    assert credentials.api_token == "token"
    assert run.call_args.kwargs["settings"].fetch_workers == 3


def test_sync_requires_jql(runner):
    with patch("ticket_sync.commands.sync.run_sync") as run:
        result = runner.invoke(cli, ["sync", *CREDENTIAL_ARGS])

    assert result.exit_code == 1
    assert "JQL query is required" in result.output
    run.assert_not_called()


def test_sync_connection_failure_aborts(runner):
    with patch("ticket_sync.commands.sync.run_sync", side_effect=JiraConnectionError("Issue ID collection failed")):
        result = runner.invoke(cli, ["sync", "--jql", "project = PROJ", *CREDENTIAL_ARGS])

    assert result.exit_code == 1
    assert "Issue ID collection failed" in result.output


def test_sync_interrupted_by_user(runner):
    with patch("ticket_sync.commands.sync.run_sync", side_effect=KeyboardInterrupt):
        result = runner.invoke(cli, ["sync", "--jql", "project = PROJ", *CREDENTIAL_ARGS])

    assert result.exit_code == 1
    assert "Sync cancelled by user" in result.output
    assert "Traceback" not in result.output


def test_sync_rejects_server_without_scheme(runner):
    with patch("ticket_sync.commands.sync.run_sync") as run:
        result = runner.invoke(cli, ["sync", "--jql", "project = PROJ", "--server", "example.atlassian.net",
                                     "--username", "bot@example.com", "--api-token", "token"])

    assert result.exit_code == 1
    assert "Invalid Jira credentials" in result.output
    run.assert_not_called()

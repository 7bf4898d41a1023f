"""Shared fixtures for ticket sync tests.

The project root is added to sys.path so ``import ticket_sync`` works when
the package is not installed in editable mode.
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ticket_sync.config.auth import JiraCredentials  # noqa: E402
from ticket_sync.config.settings import Settings  # noqa: E402
from ticket_sync.models.status import StatusBucketConfig  # noqa: E402

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def jira_timestamp(dt: datetime) -> str:
    """Render a datetime the way Jira does (``2024-03-01T09:00:00.000+0000``)."""
    return dt.strftime("%Y-%m-%dT%H:%M:%S.000+0000")


def build_issue_payload(key, transitions=(), issue_id=None, **fields):
    """Build a bulk fetch issue object.

    ``transitions`` is a sequence of ``(timestamp, from_status, to_status)``.
    """
    histories = [
        {
            "id": str(index),
            "created": jira_timestamp(ts),
            "items": [{"field": "status", "fromString": src, "toString": dst}],
        }
        for index, (ts, src, dst) in enumerate(transitions, start=1)
    ]
    base_fields = {
        "summary": f"Summary of {key}",
        "priority": {"name": "High"},
        "status": {"name": transitions[-1][2] if transitions else "Open"},
        "created": jira_timestamp(T0 - timedelta(days=1)),
        "duedate": "2024-03-31",
        "timeoriginalestimate": 7200,
        "components": [{"name": "Backend"}, {"name": "API"}],
        "assignee": {"displayName": "Alex Doe"},
        "reporter": {"displayName": "Sam Roe"},
    }
    base_fields.update(fields)
    return {
        "id": issue_id or str(10000 + sum(ord(c) for c in key)),
        "key": key,
        "fields": base_fields,
        "changelog": {"histories": histories},
    }


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def make_issue():
    return build_issue_payload


@pytest.fixture
def proj_config() -> StatusBucketConfig:
    return StatusBucketConfig(
        name="PROJ",
        in_progress=["In Progress"],
        blocked=["Blocked"],
        review=["Code Review"],
        promotion=["Ready for Release"],
        refinement=["Refinement"],
        ready_for_development=["Ready for Dev"],
        closed=["Done", "Closed"],
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        jira_server="https://example.atlassian.net",
        jira_username="bot@example.com",
        jira_api_token="token",
        database_url="sqlite://",
    )


@pytest.fixture
def credentials() -> JiraCredentials:
    return JiraCredentials(server="https://example.atlassian.net", username="bot@example.com", api_token="token")


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    yield engine
    engine.dispose()

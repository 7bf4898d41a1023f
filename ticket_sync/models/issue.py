"""Jira issue data models."""

from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Optional
from datetime import datetime

from ..exceptions import MalformedIssueError
from ..utils.formatters import parse_jira_date, parse_jira_datetime


class ChangelogItem(BaseModel):
    """One field change inside a changelog history entry."""

    model_config = ConfigDict(frozen=True)

    field: str
    from_string: Optional[str] = None
    to_string: Optional[str] = None

    @property
    def is_status_change(self) -> bool:
        return self.field == 'status'


class ChangelogEntry(BaseModel):
    """A changelog history entry: a timestamp and the fields changed at it."""

    model_config = ConfigDict(frozen=True)

    created: datetime
    items: List[ChangelogItem] = Field(default_factory=list)


class RawIssue(BaseModel):
    """Typed view of an issue record returned by the bulk fetch endpoint."""

    model_config = ConfigDict(from_attributes=True)

    issue_id: Optional[str] = Field(None, description="Numeric Jira issue id")
    key: str = Field(..., description="Issue key (e.g., PROJ-123)")
    summary: str = Field('', description="Issue summary")
    priority: Optional[str] = Field(None, description="Priority name")
    status: Optional[str] = Field(None, description="Current status name")
    created: Optional[datetime] = Field(None, description="Creation date")
    resolution_date: Optional[datetime] = Field(None, description="Resolution date")
    due_date: Optional[datetime] = Field(None, description="Due date")
    original_estimate: Optional[int] = Field(None, description="Original estimate in seconds")
    components: List[str] = Field(default_factory=list)
    assignee: Optional[str] = Field(None, description="Assignee display name")
    reporter: Optional[str] = Field(None, description="Reporter display name")
    changelog: List[ChangelogEntry] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'RawIssue':
        """Build a RawIssue from a Jira REST issue object.

        Args:
            payload: Issue JSON with ``fields`` and ``changelog.histories``

        Returns:
            Parsed RawIssue

        Raises:
            MalformedIssueError: If the payload has no key or a history entry
                has no parsable timestamp
        """
        if not isinstance(payload, dict):
            raise MalformedIssueError(f"Issue payload must be an object, got {type(payload).__name__}")
        key = payload.get('key')
        if not key:
            raise MalformedIssueError(f"Issue {payload.get('id', '?')} has no key")

        fields = payload.get('fields') or {}
        if not isinstance(fields, dict):
            raise MalformedIssueError(f"Issue {key} has malformed fields")

        def display_name(value) -> Optional[str]:
            return value.get('displayName') if isinstance(value, dict) else None

        def name_of(value) -> Optional[str]:
            return value.get('name') if isinstance(value, dict) else None

        try:
            created = parse_jira_datetime(fields.get('created'))
            resolution_date = parse_jira_datetime(fields.get('resolutiondate'))
            due_date = parse_jira_date(fields.get('duedate'))
        except ValueError as e:
            raise MalformedIssueError(f"Issue {key} has an invalid date field: {e}") from e

        return cls(
            issue_id=str(payload['id']) if payload.get('id') is not None else None,
            key=key,
            summary=fields.get('summary') or '',
            priority=name_of(fields.get('priority')),
            status=name_of(fields.get('status')),
            created=created,
            resolution_date=resolution_date,
            due_date=due_date,
            original_estimate=fields.get('timeoriginalestimate') or None,
            components=[c.get('name') for c in fields.get('components') or [] if isinstance(c, dict) and c.get('name')],
            assignee=display_name(fields.get('assignee')),
            reporter=display_name(fields.get('reporter')),
            changelog=cls._parse_changelog(key, payload.get('changelog')),
        )

    @staticmethod
    def _parse_changelog(key: str, changelog: Any) -> List[ChangelogEntry]:
        if not changelog:
            return []
        if not isinstance(changelog, dict):
            raise MalformedIssueError(f"Issue {key} has a malformed changelog")
        histories = changelog.get('histories') or []
        if not isinstance(histories, list):
            raise MalformedIssueError(f"Issue {key} changelog histories is not a list")

        entries = []
        for history in histories:
            if not isinstance(history, dict):
                raise MalformedIssueError(f"Issue {key} has a malformed changelog entry")
            try:
                created = parse_jira_datetime(history.get('created'))
            except ValueError as e:
                raise MalformedIssueError(f"Issue {key} changelog entry has an invalid timestamp: {e}") from e
            if created is None:
                raise MalformedIssueError(f"Issue {key} changelog entry has no timestamp")

            items = [
                ChangelogItem(
                    field=str(item.get('field') or ''),
                    from_string=item.get('fromString'),
                    to_string=item.get('toString'),
                )
                for item in history.get('items') or []
                if isinstance(item, dict)
            ]
            entries.append(ChangelogEntry(created=created, items=items))
        return entries

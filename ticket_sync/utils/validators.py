"""Input validation utilities."""

from typing import Optional
from urllib.parse import urlparse


def validate_server_url(server: str) -> bool:
    """Validate that a Jira server URL is an absolute http(s) URL.

    Args:
        server: Server URL to validate

    Returns:
        True if valid, False otherwise
    """
    if not server or not isinstance(server, str):
        return False
    parsed = urlparse(server.strip())
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def validate_jql(jql: Optional[str]) -> bool:
    """Validate that a JQL query is present."""
    return bool(jql and jql.strip())

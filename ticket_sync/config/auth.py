"""Jira authentication using an API token or legacy password with requests library."""

import logging
import urllib3
from typing import Optional, Dict, Any
import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from requests.auth import HTTPBasicAuth

from .settings import Settings, get_settings
from ..exceptions import CredentialsError, JiraConnectionError
from ..utils.validators import validate_server_url

logger = logging.getLogger(__name__)


def extract_jira_error_payload(response: requests.Response) -> Dict[str, Any]:
    """Extract error payload from JIRA REST API response.

    JIRA REST API returns errors in the following format:
    {
        "errorMessages": ["Error message 1", "Error message 2"],
        "errors": {
            "field1": "Field-specific error",
            "field2": "Another field error"
        }
    }

    Args:
        response: requests.Response object with error status

    Returns:
        Dictionary with error information:
        - errorMessages: List of error messages
        - errors: Dictionary of field-specific errors
        - formatted: One-line summary suitable for logs and sync reports
    """
    result = {
        'errorMessages': [],
        'errors': {},
        'formatted': '',
    }

    try:
        error_data = response.json()
        if isinstance(error_data, dict):
            result['errorMessages'] = error_data.get('errorMessages') or []
            result['errors'] = error_data.get('errors') or {}

        formatted_parts = list(result['errorMessages'])
        formatted_parts.extend(f"{field}: {error}" for field, error in result['errors'].items())
        result['formatted'] = '; '.join(formatted_parts)

    except ValueError:
        # Not JSON, use raw text
        text = response.text or ''
        result['formatted'] = text[:500]

    return result


def describe_http_failure(status_code: Optional[int]) -> str:
    """Translate an HTTP status from the tracker into an operator-facing reason."""
    if status_code == 401:
        return 'Authentication failed - check username and API token/password'
    if status_code == 403:
        return 'Access forbidden - check API token permissions'
    if status_code == 404:
        return 'Jira server not found - check server URL'
    if status_code is None:
        return 'Cannot connect to Jira server - check server URL and network'
    return f'Jira API error: HTTP {status_code}'


def connection_error_from(exc: requests.exceptions.RequestException, action: str) -> JiraConnectionError:
    """Wrap a requests failure into a JiraConnectionError with status and reason."""
    response = getattr(exc, 'response', None)
    status_code = response.status_code if response is not None else None
    reason = describe_http_failure(status_code)
    if isinstance(exc, requests.exceptions.Timeout):
        reason = 'Jira server did not respond before the timeout'
    details = ''
    if response is not None:
        payload = extract_jira_error_payload(response)
        if payload['formatted']:
            details = f" ({payload['formatted']})"
    return JiraConnectionError(f"{action} failed: {reason}{details}", status_code=status_code, reason=reason)


class JiraCredentials(BaseModel):
    """Caller-supplied tracker endpoint and secrets for one sync run."""

    model_config = ConfigDict(frozen=True)

    server: str = Field(..., description="Jira base URL, e.g. https://example.atlassian.net")
    username: str = Field(..., description="Account email or username")
    api_token: Optional[str] = Field(None, description="API token (preferred)")
    password: Optional[str] = Field(None, description="Legacy password")

    @field_validator('server', 'username', mode='before')
    @classmethod
    def require_value(cls, v) -> str:
        """Reject empty server and username values."""
        v = str(v or '').strip()
        if not v:
            raise ValueError("value is required")
        return v

    @field_validator('server')
    @classmethod
    def normalize_server(cls, v: str) -> str:
        """Require an absolute http(s) URL and drop trailing slashes."""
        if not validate_server_url(v):
            raise ValueError("must be an absolute http(s) URL")
        return v.rstrip('/')

    @model_validator(mode='after')
    def require_secret(self) -> 'JiraCredentials':
        if not self.api_token and not self.password:
            raise ValueError("Either apiToken or password must be provided for authentication")
        return self

    @classmethod
    def build(cls, **kwargs) -> 'JiraCredentials':
        """Validate credentials, raising CredentialsError instead of ValidationError."""
        try:
            return cls(**kwargs)
        except ValidationError as e:
            messages = '; '.join(
                f"{'.'.join(str(p) for p in err['loc']) or 'credentials'}: {err['msg']}" for err in e.errors()
            )
            raise CredentialsError(f"Invalid Jira credentials: {messages}") from e

    @property
    def uses_api_token(self) -> bool:
        return bool(self.api_token)

    def basic_auth(self) -> HTTPBasicAuth:
        """Single Basic-Auth credential; the API token takes precedence over the password."""
        secret = self.api_token if self.api_token else self.password
        return HTTPBasicAuth(self.username, secret)


class ConnectionCheck(BaseModel):
    """Result of a successful connectivity test."""

    server: str
    authenticated: bool = True
    display_name: Optional[str] = None
    email: Optional[str] = None
    account_id: Optional[str] = None


class JiraAuth:
    """Jira authentication handler using requests library."""

    def __init__(self, credentials: Optional[JiraCredentials] = None, settings: Optional[Settings] = None):
        """Initialize Jira authentication.

        Args:
            credentials: Tracker credentials (defaults to the ones in settings)
            settings: Application settings (defaults to loading from env)
        """
        self.settings = settings or get_settings()
        self.credentials = credentials or self.settings.credentials()
        self._session: Optional[requests.Session] = None

    @property
    def session(self) -> requests.Session:
        """Get or create requests session with authentication.

        Returns:
            requests.Session with JIRA authentication configured
        """
        if self._session is None:
            self._session = requests.Session()
            self._session.auth = self.credentials.basic_auth()
            if self.credentials.uses_api_token:
                logger.info("Using API Token with Basic Authentication")
            else:
                logger.info("Using Basic Authentication with password (legacy)")

            # Configure SSL verification
            if not self.settings.jira_verify_ssl:
                self._session.verify = False
                urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

            # Set default headers
            self._session.headers.update({
                'Content-Type': 'application/json',
                'Accept': 'application/json'
            })

        return self._session

    @property
    def base_url(self) -> str:
        """Get base JIRA API URL (REST v3 unless overridden)."""
        api_version = (self.settings.jira_api_version or '3').strip()
        return f"{self.credentials.server}/rest/api/{api_version}"

    def _make_request(self, method: str, endpoint: str, timeout: Optional[float] = None, **kwargs) -> requests.Response:
        """Make HTTP request to JIRA API.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            endpoint: API endpoint (e.g., '/myself', '/search/jql')
            timeout: Seconds before the call is abandoned (defaults to REQUEST_TIMEOUT)
            **kwargs: Additional arguments to pass to requests

        Returns:
            requests.Response object

        Raises:
            requests.exceptions.HTTPError: If HTTP error occurs (4xx, 5xx)
            requests.exceptions.RequestException: On transport failures and timeouts
        """
        url = f"{self.base_url}{endpoint}"
        response = self.session.request(
            method, url, timeout=timeout or self.settings.request_timeout, **kwargs
        )

        if not response.ok:
            error_payload = extract_jira_error_payload(response)
            logger.debug("%s %s -> %s: %s", method, url, response.status_code, error_payload['formatted'])

        response.raise_for_status()
        return response

    def test_connection(self) -> ConnectionCheck:
        """Test connection to Jira server using the /myself endpoint.

        Failures are reported immediately and never retried here.

        Returns:
            ConnectionCheck describing the authenticated account

        Raises:
            JiraConnectionError: With HTTP status and reason when the test fails
        """
        logger.info("Testing Jira connection: %s/myself", self.base_url)
        try:
            response = self._make_request('GET', '/myself', timeout=self.settings.connection_test_timeout)
            user_info = response.json()
        except requests.exceptions.RequestException as e:
            raise connection_error_from(e, "Jira connection test") from e
        except ValueError as e:
            raise JiraConnectionError(
                "Jira connection test failed: server did not return JSON", reason="Unexpected response"
            ) from e

        logger.info("Jira connection test successful")
        return ConnectionCheck(
            server=self.credentials.server,
            display_name=user_info.get('displayName', user_info.get('name')),
            email=user_info.get('emailAddress'),
            account_id=user_info.get('accountId'),
        )

    def close(self):
        """Close Jira session connection."""
        if self._session:
            self._session.close()
            self._session = None

"""Application settings management using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Jira Configuration
    jira_server: str = ''
    jira_username: str = ''
    jira_api_token: Optional[str] = None
    jira_password: Optional[str] = None  # Legacy Basic Auth, ignored when a token is set
    jira_jql: Optional[str] = None
    jira_api_version: str = '3'
    jira_verify_ssl: bool = True

    # Network
    request_timeout: float = 30.0  # seconds, per search/bulk fetch call
    connection_test_timeout: float = 10.0
    id_page_size: int = 5000
    detail_batch_size: int = 100
    fetch_workers: int = 1  # 1 = strictly sequential detail batches

    # Sync behaviour
    sync_timeout: Optional[float] = None
    count_ongoing_time: bool = False

    # Storage and logging
    database_url: str = 'sqlite:///jira_tickets.db'
    log_level: str = 'INFO'
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def credentials(self):
        """Build tracker credentials from the configured Jira settings.

        Raises:
            CredentialsError: If server, username or both secrets are missing
        """
        from .auth import JiraCredentials

        return JiraCredentials.build(
            server=self.jira_server,
            username=self.jira_username,
            api_token=self.jira_api_token,
            password=self.jira_password,
        )


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
